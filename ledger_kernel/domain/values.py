"""
Values -- money arithmetic helpers.

All monetary amounts are Decimal, quantized to two places with
ROUND_HALF_UP at every boundary where they are compared or reported.
Floats never enter the ledger.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Any

MONEY_PLACES = 2

ZERO = Decimal("0")
_CENT = Decimal(1).scaleb(-MONEY_PLACES)
_RUPEE = Decimal("1")


def as_decimal(value: Any) -> Decimal:
    """Coerce None, str, int or Decimal to Decimal; missing values are zero."""
    if value is None or value == "":
        return ZERO
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        # Route floats through str so binary noise never lands in the ledger
        return Decimal(repr(value))
    return Decimal(value)


def to_money(value: Any) -> Decimal:
    """Quantize to the ledger's currency precision."""
    return as_decimal(value).quantize(_CENT, rounding=ROUND_HALF_UP)


def to_whole(value: Any) -> Decimal:
    """Round to whole currency units (statutory contribution returns)."""
    return as_decimal(value).quantize(_RUPEE, rounding=ROUND_HALF_UP)


def percent_of(base: Any, rate: Any) -> Decimal:
    """base x rate / 100 at money precision."""
    return to_money(as_decimal(base) * as_decimal(rate) / Decimal("100"))


def money_sum(values) -> Decimal:
    return to_money(sum((as_decimal(v) for v in values), ZERO))

"""
Document line items and GST head split, shared by invoices and bills.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from decimal import ROUND_DOWN, Decimal

from ledger_kernel.domain.values import ZERO, as_decimal, money_sum, percent_of, to_money
from ledger_kernel.exceptions import InvalidLineError


@dataclass(frozen=True)
class DocumentLine:
    """One priced line on an invoice or bill."""

    description: str
    quantity: Decimal
    rate: Decimal
    gst_rate: Decimal = ZERO
    hsn_sac: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "quantity", as_decimal(self.quantity))
        object.__setattr__(self, "rate", as_decimal(self.rate))
        object.__setattr__(self, "gst_rate", as_decimal(self.gst_rate))

    @property
    def amount(self) -> Decimal:
        return to_money(self.quantity * self.rate)

    @property
    def tax(self) -> Decimal:
        return percent_of(self.amount, self.gst_rate)


@dataclass(frozen=True)
class TaxSplit:
    subtotal: Decimal
    cgst: Decimal
    sgst: Decimal
    igst: Decimal

    @property
    def tax(self) -> Decimal:
        return to_money(self.cgst + self.sgst + self.igst)

    @property
    def total(self) -> Decimal:
        return to_money(self.subtotal + self.tax)


def split_tax(lines: Sequence[DocumentLine], is_interstate: bool) -> TaxSplit:
    """
    Total the lines and split GST into heads.

    Interstate supplies carry IGST only.  Intrastate supplies split the tax
    into equal CGST and SGST; an odd paisa goes to CGST so the heads always
    sum to the line tax.
    """
    if not lines:
        raise InvalidLineError(0, "document has no lines")
    for index, line in enumerate(lines):
        if line.quantity <= ZERO or line.rate < ZERO or line.gst_rate < ZERO:
            raise InvalidLineError(index, "quantity must be positive, rate and GST non-negative")

    subtotal = money_sum(line.amount for line in lines)
    tax = money_sum(line.tax for line in lines)
    if is_interstate:
        return TaxSplit(subtotal, ZERO, ZERO, tax)
    sgst = to_money((tax / 2).quantize(Decimal("0.01"), rounding=ROUND_DOWN))
    return TaxSplit(subtotal, to_money(tax - sgst), sgst, ZERO)

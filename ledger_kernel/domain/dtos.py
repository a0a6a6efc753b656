"""
DTOs -- frozen data transfer objects crossing the service boundary.

Services accept and return these instead of ORM instances so callers never
hold a live, mutable row.
"""

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from ledger_kernel.domain.values import ZERO, as_decimal


@dataclass(frozen=True)
class LineSpec:
    """
    One requested journal line.

    Exactly one of debit_amount / credit_amount must be non-zero.  The
    writer validates that and reports the offending line index.
    """

    account_code: str
    debit_amount: Decimal = ZERO
    credit_amount: Decimal = ZERO
    memo: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "debit_amount", as_decimal(self.debit_amount))
        object.__setattr__(self, "credit_amount", as_decimal(self.credit_amount))

    @classmethod
    def debit(cls, account_code: str, amount, memo: str | None = None) -> "LineSpec":
        return cls(account_code=account_code, debit_amount=amount, memo=memo)

    @classmethod
    def credit(cls, account_code: str, amount, memo: str | None = None) -> "LineSpec":
        return cls(account_code=account_code, credit_amount=amount, memo=memo)


@dataclass(frozen=True)
class JournalLineInfo:
    account_code: str
    debit_amount: Decimal
    credit_amount: Decimal
    line_seq: int
    memo: str | None = None


@dataclass(frozen=True)
class JournalEntryInfo:
    id: UUID
    organization_id: UUID
    entry_date: date
    source_type: str
    created_at: datetime
    description: str
    lines: tuple[JournalLineInfo, ...]
    source_module: str | None = None
    reference: str | None = None
    batch_type: str | None = None
    batch_date: date | None = None
    batch_ref: str | None = None
    reversal_of_id: UUID | None = None
    approved_by_id: UUID | None = None
    is_admin_override: bool = False

    @property
    def total_debits(self) -> Decimal:
        return sum((line.debit_amount for line in self.lines), ZERO)

    @property
    def total_credits(self) -> Decimal:
        return sum((line.credit_amount for line in self.lines), ZERO)


@dataclass(frozen=True)
class FiscalPeriodInfo:
    id: UUID
    period_name: str
    financial_year: str
    start_date: date
    end_date: date
    status: str
    closed_at: datetime | None = None

    @property
    def is_open(self) -> bool:
        return self.status == "open"

    @property
    def is_closed(self) -> bool:
        return self.status in ("closed", "locked")

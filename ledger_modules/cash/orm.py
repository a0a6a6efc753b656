"""
Cash ORM Models (``ledger_modules.cash.orm``).

Responsibility
--------------
``BankTransactionModel`` is the bank sub-ledger: one row per movement on
the organization's bank account, recorded by whichever module moved the
money.  ``transaction_type`` follows bank-statement convention: a credit
is money in, a debit is money out.

Invariants enforced
-------------------
* ``amount`` is strictly positive; direction lives in ``transaction_type``.
* Every row that moved money through the GL carries the journal entry id
  that posted it, so the bank reconciliation can trace both sides.
"""

from datetime import date
from decimal import Decimal
from enum import Enum
from uuid import UUID

from sqlalchemy import CheckConstraint, Date, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import OrganizationScoped, TrackedBase, UUIDString


class BankTransactionType(str, Enum):
    CREDIT = "credit"
    DEBIT = "debit"


class BankTransactionModel(TrackedBase, OrganizationScoped):
    __tablename__ = "cash_bank_transactions"

    transaction_date: Mapped[date] = mapped_column(Date, nullable=False)
    transaction_type: Mapped[BankTransactionType] = mapped_column(String(10), nullable=False)
    amount: Mapped[Decimal] = mapped_column(nullable=False)
    description: Mapped[str] = mapped_column(String(500), default="", nullable=False)
    category: Mapped[str | None] = mapped_column(String(100), nullable=True)
    reference: Mapped[str | None] = mapped_column(String(100), nullable=True)
    source_module: Mapped[str | None] = mapped_column(String(30), nullable=True)
    journal_entry_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("journal_entries.id"), nullable=True
    )

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_cash_bank_txn_amount_positive"),
        Index("idx_cash_bank_txn_org_date", "organization_id", "transaction_date"),
    )

    @property
    def signed_amount(self) -> Decimal:
        if self.transaction_type == BankTransactionType.CREDIT.value:
            return self.amount
        return -self.amount

    def __repr__(self) -> str:
        return (
            f"<BankTransactionModel {self.transaction_date} "
            f"{self.transaction_type} {self.amount}>"
        )

"""
Expense ORM Models (``ledger_modules.expense.orm``).

Direct expenses paid without a vendor bill: petty cash, card spends, UPI
transfers.  The payment mode decides which asset is credited and feeds the
cash-payment and TDS-threshold audit checks.
"""

from datetime import date
from decimal import Decimal
from enum import Enum
from uuid import UUID

from sqlalchemy import CheckConstraint, Date, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ledger_kernel.db.base import OrganizationScoped, TrackedBase, UUIDString
from ledger_modules.parties.orm import VendorModel


class PaymentMode(str, Enum):
    CASH = "cash"
    BANK = "bank"
    CARD = "card"
    UPI = "upi"


class ExpenseRecordModel(TrackedBase, OrganizationScoped):
    __tablename__ = "expense_records"

    expense_date: Mapped[date] = mapped_column(Date, nullable=False)
    category: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str] = mapped_column(String(500), default="", nullable=False)
    amount: Mapped[Decimal] = mapped_column(nullable=False)
    payment_mode: Mapped[PaymentMode] = mapped_column(String(10), nullable=False)
    tds_amount: Mapped[Decimal] = mapped_column(default=Decimal("0"), nullable=False)
    vendor_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("parties_vendors.id"), nullable=True
    )
    reference: Mapped[str | None] = mapped_column(String(100), nullable=True)
    journal_entry_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("journal_entries.id"), nullable=True
    )

    vendor: Mapped[VendorModel | None] = relationship(lazy="joined")

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_expense_amount_positive"),
        Index("idx_expense_org_date", "organization_id", "expense_date"),
    )

    def __repr__(self) -> str:
        return f"<ExpenseRecordModel {self.expense_date} {self.category} {self.amount}>"

"""
Payables ORM Models (``ledger_modules.ap.orm``).

Responsibility
--------------
Vendor bills and their line items.  An approved bill is the payables
sub-ledger: the amount owed to the vendor is the total less the TDS
withheld and less payments made.  Withheld TDS is owed to the government
and sits in the TDS payable account, not in accounts payable.

Invariants enforced
-------------------
* ``bill_number`` is unique per vendor within an organization.
* ``tds_amount == subtotal x tds_rate / 100`` when a section applies.
* ``amount_paid`` never exceeds ``total_amount - tds_amount``.
"""

from datetime import date
from decimal import Decimal
from enum import Enum
from uuid import UUID

from sqlalchemy import (
    CheckConstraint,
    Date,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ledger_kernel.db.base import OrganizationScoped, TrackedBase, UUIDString
from ledger_kernel.domain.values import to_money
from ledger_modules.parties.orm import VendorModel


class BillStatus(str, Enum):
    DRAFT = "draft"
    APPROVED = "approved"
    PENDING_PAYMENT = "pending_payment"
    PAID = "paid"
    CANCELLED = "cancelled"


OPEN_BILL_STATUSES = (BillStatus.APPROVED.value, BillStatus.PENDING_PAYMENT.value)

POSTED_BILL_STATUSES = OPEN_BILL_STATUSES + (BillStatus.PAID.value,)


class BillModel(TrackedBase, OrganizationScoped):
    __tablename__ = "ap_bills"

    bill_number: Mapped[str] = mapped_column(String(50), nullable=False)
    vendor_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("parties_vendors.id"), nullable=False
    )
    bill_date: Mapped[date] = mapped_column(Date, nullable=False)
    due_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    is_interstate: Mapped[bool] = mapped_column(default=False, nullable=False)
    # Account role debited for the bill's subtotal
    expense_role: Mapped[str] = mapped_column(String(50), nullable=False)

    subtotal: Mapped[Decimal] = mapped_column(nullable=False)
    cgst_amount: Mapped[Decimal] = mapped_column(nullable=False)
    sgst_amount: Mapped[Decimal] = mapped_column(nullable=False)
    igst_amount: Mapped[Decimal] = mapped_column(nullable=False)
    tax_amount: Mapped[Decimal] = mapped_column(nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(nullable=False)

    tds_section: Mapped[str | None] = mapped_column(String(10), nullable=True)
    tds_rate: Mapped[Decimal] = mapped_column(default=Decimal("0"), nullable=False)
    tds_amount: Mapped[Decimal] = mapped_column(default=Decimal("0"), nullable=False)

    amount_paid: Mapped[Decimal] = mapped_column(default=Decimal("0"), nullable=False)
    status: Mapped[BillStatus] = mapped_column(String(20), nullable=False)
    notes: Mapped[str | None] = mapped_column(String(500), nullable=True)
    journal_entry_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("journal_entries.id"), nullable=True
    )

    vendor: Mapped[VendorModel] = relationship(lazy="joined")
    items: Mapped[list["BillItemModel"]] = relationship(
        back_populates="bill",
        order_by="BillItemModel.line_seq",
        lazy="selectin",
        cascade="all, delete-orphan",
    )
    payments: Mapped[list["BillPaymentModel"]] = relationship(
        back_populates="bill",
        order_by="BillPaymentModel.payment_date",
        lazy="selectin",
    )

    __table_args__ = (
        UniqueConstraint(
            "organization_id", "vendor_id", "bill_number", name="uq_ap_bill_vendor_number"
        ),
        Index("idx_ap_bill_org_date", "organization_id", "bill_date"),
        Index("idx_ap_bill_status", "organization_id", "status"),
    )

    @property
    def payable_amount(self) -> Decimal:
        """What the vendor is owed after TDS withholding."""
        return to_money(self.total_amount - self.tds_amount)

    @property
    def outstanding(self) -> Decimal:
        return to_money(self.payable_amount - self.amount_paid)

    def outstanding_as_of(self, as_of_date: date) -> Decimal:
        paid = sum(
            (p.amount for p in self.payments if p.payment_date <= as_of_date), Decimal("0")
        )
        return to_money(self.payable_amount - paid)

    def __repr__(self) -> str:
        return f"<BillModel {self.bill_number} {self.status} {self.total_amount}>"


class BillItemModel(TrackedBase):
    __tablename__ = "ap_bill_items"

    bill_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("ap_bills.id"), nullable=False, index=True
    )
    line_seq: Mapped[int] = mapped_column(Integer, nullable=False)
    description: Mapped[str] = mapped_column(String(500), default="", nullable=False)
    hsn_sac: Mapped[str | None] = mapped_column(String(10), nullable=True)
    quantity: Mapped[Decimal] = mapped_column(nullable=False)
    rate: Mapped[Decimal] = mapped_column(nullable=False)
    amount: Mapped[Decimal] = mapped_column(nullable=False)
    gst_rate: Mapped[Decimal] = mapped_column(nullable=False)

    bill: Mapped[BillModel] = relationship(back_populates="items")


class BillPaymentModel(TrackedBase, OrganizationScoped):
    __tablename__ = "ap_bill_payments"

    bill_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("ap_bills.id"), nullable=False, index=True
    )
    payment_date: Mapped[date] = mapped_column(Date, nullable=False)
    amount: Mapped[Decimal] = mapped_column(nullable=False)
    reference: Mapped[str | None] = mapped_column(String(100), nullable=True)
    journal_entry_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("journal_entries.id"), nullable=False
    )

    bill: Mapped[BillModel] = relationship(back_populates="payments")

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_ap_payment_amount_positive"),
        Index("idx_ap_payment_org_date", "organization_id", "payment_date"),
    )

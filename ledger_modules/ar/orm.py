"""
Receivables ORM Models (``ledger_modules.ar.orm``).

Responsibility
--------------
Customer invoices and their line items.  An issued invoice is the
receivables sub-ledger: its outstanding amount (total less receipts) rolls
up into the accounts receivable control account.

Invariants enforced
-------------------
* ``invoice_number`` is unique per organization.
* ``total_amount == subtotal + tax_amount`` and
  ``tax_amount == cgst_amount + sgst_amount + igst_amount`` when created
  through ``ReceivablesService``; the audit engine re-checks both.
* ``amount_paid`` never exceeds ``total_amount``.
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
from ledger_modules.parties.orm import CustomerModel


class InvoiceStatus(str, Enum):
    DRAFT = "draft"
    SENT = "sent"
    PARTIALLY_PAID = "partially_paid"
    OVERDUE = "overdue"
    PAID = "paid"
    CANCELLED = "cancelled"


# Statuses that carry an outstanding receivable
OPEN_INVOICE_STATUSES = (
    InvoiceStatus.SENT.value,
    InvoiceStatus.OVERDUE.value,
    InvoiceStatus.PARTIALLY_PAID.value,
)

# Statuses that count as outward supplies for GST returns
ISSUED_INVOICE_STATUSES = OPEN_INVOICE_STATUSES + (InvoiceStatus.PAID.value,)


class InvoiceModel(TrackedBase, OrganizationScoped):
    __tablename__ = "ar_invoices"

    invoice_number: Mapped[str] = mapped_column(String(50), nullable=False)
    customer_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("parties_customers.id"), nullable=False
    )
    invoice_date: Mapped[date] = mapped_column(Date, nullable=False)
    due_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    place_of_supply: Mapped[str | None] = mapped_column(String(2), nullable=True)
    is_interstate: Mapped[bool] = mapped_column(default=False, nullable=False)

    subtotal: Mapped[Decimal] = mapped_column(nullable=False)
    cgst_amount: Mapped[Decimal] = mapped_column(nullable=False)
    sgst_amount: Mapped[Decimal] = mapped_column(nullable=False)
    igst_amount: Mapped[Decimal] = mapped_column(nullable=False)
    tax_amount: Mapped[Decimal] = mapped_column(nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(nullable=False)
    amount_paid: Mapped[Decimal] = mapped_column(default=Decimal("0"), nullable=False)

    status: Mapped[InvoiceStatus] = mapped_column(String(20), nullable=False)
    notes: Mapped[str | None] = mapped_column(String(500), nullable=True)
    journal_entry_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("journal_entries.id"), nullable=True
    )

    customer: Mapped[CustomerModel] = relationship(lazy="joined")
    items: Mapped[list["InvoiceItemModel"]] = relationship(
        back_populates="invoice",
        order_by="InvoiceItemModel.line_seq",
        lazy="selectin",
        cascade="all, delete-orphan",
    )
    receipts: Mapped[list["InvoiceReceiptModel"]] = relationship(
        back_populates="invoice",
        order_by="InvoiceReceiptModel.receipt_date",
        lazy="selectin",
    )

    __table_args__ = (
        UniqueConstraint("organization_id", "invoice_number", name="uq_ar_invoice_number"),
        Index("idx_ar_invoice_org_date", "organization_id", "invoice_date"),
        Index("idx_ar_invoice_status", "organization_id", "status"),
    )

    @property
    def outstanding(self) -> Decimal:
        return to_money(self.total_amount - self.amount_paid)

    def outstanding_as_of(self, as_of_date: date) -> Decimal:
        """Outstanding counting only receipts dated on or before as_of_date."""
        received = sum(
            (r.amount for r in self.receipts if r.receipt_date <= as_of_date), Decimal("0")
        )
        return to_money(self.total_amount - received)

    def __repr__(self) -> str:
        return f"<InvoiceModel {self.invoice_number} {self.status} {self.total_amount}>"


class InvoiceItemModel(TrackedBase):
    __tablename__ = "ar_invoice_items"

    invoice_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("ar_invoices.id"), nullable=False, index=True
    )
    line_seq: Mapped[int] = mapped_column(Integer, nullable=False)
    description: Mapped[str] = mapped_column(String(500), default="", nullable=False)
    hsn_sac: Mapped[str | None] = mapped_column(String(10), nullable=True)
    quantity: Mapped[Decimal] = mapped_column(nullable=False)
    rate: Mapped[Decimal] = mapped_column(nullable=False)
    amount: Mapped[Decimal] = mapped_column(nullable=False)
    gst_rate: Mapped[Decimal] = mapped_column(nullable=False)

    invoice: Mapped[InvoiceModel] = relationship(back_populates="items")


class InvoiceReceiptModel(TrackedBase, OrganizationScoped):
    """One customer receipt against an invoice, dated as banked."""

    __tablename__ = "ar_invoice_receipts"

    invoice_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("ar_invoices.id"), nullable=False, index=True
    )
    receipt_date: Mapped[date] = mapped_column(Date, nullable=False)
    amount: Mapped[Decimal] = mapped_column(nullable=False)
    reference: Mapped[str | None] = mapped_column(String(100), nullable=True)
    journal_entry_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("journal_entries.id"), nullable=False
    )

    invoice: Mapped[InvoiceModel] = relationship(back_populates="receipts")

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_ar_receipt_amount_positive"),
        Index("idx_ar_receipt_org_date", "organization_id", "receipt_date"),
    )

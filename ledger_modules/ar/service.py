"""
Receivables service (``ledger_modules.ar.service``).

Invoice lifecycle::

    draft --issue--> sent --receipt--> partially_paid --receipt--> paid
      |                |
      +--cancel        +--mark_overdue--> overdue --receipt--> ...

Postings:
    issue:    Dr accounts_receivable total
              Cr sales_revenue subtotal, Cr gst_output_* per head
    receipt:  Dr bank / Cr accounts_receivable, plus a bank transaction

Every posting carries an idempotency key derived from the invoice, so a
retried issue never posts twice.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select

from ledger_kernel.domain.values import ZERO, to_money
from ledger_kernel.exceptions import (
    DocumentNotFoundError,
    DuplicateDocumentError,
    InvalidDocumentStateError,
    OverpaymentError,
)
from ledger_kernel.logging_config import get_logger
from ledger_modules._documents import DocumentLine, split_tax
from ledger_modules._posting import ModuleService
from ledger_modules.ar.orm import (
    ISSUED_INVOICE_STATUSES,
    OPEN_INVOICE_STATUSES,
    InvoiceItemModel,
    InvoiceModel,
    InvoiceReceiptModel,
    InvoiceStatus,
)
from ledger_modules.cash.orm import BankTransactionType
from ledger_modules.cash.service import CashService
from ledger_modules.parties.service import PartyService

logger = get_logger("modules.ar.service")


class ReceivablesService(ModuleService):
    source_module = "receivables"

    def create_invoice(
        self,
        invoice_number: str,
        customer_id: UUID,
        invoice_date: date,
        lines: Sequence[DocumentLine],
        actor_id: UUID,
        *,
        due_date: date | None = None,
        place_of_supply: str | None = None,
        home_state: str | None = None,
        notes: str | None = None,
    ) -> InvoiceModel:
        """
        Create a draft invoice.

        The supply is interstate when the place of supply (defaulting to
        the customer's state) differs from ``home_state``; interstate
        invoices carry IGST, intrastate invoices CGST + SGST.
        """
        if self._find(invoice_number) is not None:
            raise DuplicateDocumentError("invoice", invoice_number)

        customer = PartyService(self.session, self.organization_id).get_customer(customer_id)
        place_of_supply = (
            place_of_supply
            or customer.state_code
            or self.config.statutory.gst.default_place_of_supply
            or None
        )
        is_interstate = bool(home_state and place_of_supply and place_of_supply != home_state)
        split = split_tax(lines, is_interstate)

        invoice = InvoiceModel(
            organization_id=self.organization_id,
            invoice_number=invoice_number,
            customer_id=customer.id,
            invoice_date=invoice_date,
            due_date=due_date,
            place_of_supply=place_of_supply,
            is_interstate=is_interstate,
            subtotal=split.subtotal,
            cgst_amount=split.cgst,
            sgst_amount=split.sgst,
            igst_amount=split.igst,
            tax_amount=split.tax,
            total_amount=split.total,
            amount_paid=ZERO,
            status=InvoiceStatus.DRAFT.value,
            notes=notes,
            created_by_id=actor_id,
        )
        for seq, line in enumerate(lines, start=1):
            invoice.items.append(
                InvoiceItemModel(
                    line_seq=seq,
                    description=line.description,
                    hsn_sac=line.hsn_sac,
                    quantity=line.quantity,
                    rate=line.rate,
                    amount=line.amount,
                    gst_rate=line.gst_rate,
                    created_by_id=actor_id,
                )
            )
        self.session.add(invoice)
        self.session.flush()
        logger.info(
            "invoice_created",
            extra={
                "invoice_number": invoice_number,
                "total": str(invoice.total_amount),
                "is_interstate": is_interstate,
            },
        )
        return invoice

    def issue_invoice(self, invoice_id: UUID, actor_id: UUID) -> InvoiceModel:
        invoice = self.get_invoice(invoice_id)
        if invoice.status != InvoiceStatus.DRAFT.value:
            raise InvalidDocumentStateError("invoice", str(invoice_id), invoice.status, "issue")

        entry = self._post(
            invoice.invoice_date,
            [("accounts_receivable", invoice.total_amount)],
            [
                ("sales_revenue", invoice.subtotal),
                ("gst_output_cgst", invoice.cgst_amount),
                ("gst_output_sgst", invoice.sgst_amount),
                ("gst_output_igst", invoice.igst_amount),
            ],
            actor_id,
            description=f"Invoice {invoice.invoice_number}",
            reference=invoice.invoice_number,
            idempotency_key=f"ar:invoice:{invoice.id}:issue",
        )
        invoice.journal_entry_id = entry.id
        invoice.status = InvoiceStatus.SENT.value
        invoice.updated_by_id = actor_id
        self.session.flush()
        logger.info(
            "invoice_issued",
            extra={"invoice_number": invoice.invoice_number, "entry_id": str(entry.id)},
        )
        return invoice

    def record_receipt(
        self,
        invoice_id: UUID,
        amount: Decimal,
        receipt_date: date,
        actor_id: UUID,
        reference: str | None = None,
    ) -> InvoiceModel:
        invoice = self.get_invoice(invoice_id)
        if invoice.status not in OPEN_INVOICE_STATUSES:
            raise InvalidDocumentStateError(
                "invoice", str(invoice_id), invoice.status, "receive payment on"
            )
        amount = to_money(amount)
        if amount <= ZERO or amount > invoice.outstanding:
            raise OverpaymentError(
                "invoice", str(invoice_id), str(amount), str(invoice.outstanding)
            )

        description = f"Receipt against invoice {invoice.invoice_number}"
        entry = self._post(
            receipt_date,
            [("bank", amount)],
            [("accounts_receivable", amount)],
            actor_id,
            description=description,
            reference=reference or invoice.invoice_number,
        )
        CashService(
            self.session, self.organization_id, self.config, self.clock
        ).record_transaction(
            receipt_date,
            BankTransactionType.CREDIT,
            amount,
            description,
            actor_id,
            category="customer_receipt",
            reference=reference or invoice.invoice_number,
            source_module=self.source_module,
            journal_entry_id=entry.id,
        )

        invoice.receipts.append(
            InvoiceReceiptModel(
                organization_id=self.organization_id,
                receipt_date=receipt_date,
                amount=amount,
                reference=reference,
                journal_entry_id=entry.id,
                created_by_id=actor_id,
            )
        )
        invoice.amount_paid = to_money(invoice.amount_paid + amount)
        invoice.status = (
            InvoiceStatus.PAID.value
            if invoice.outstanding == ZERO
            else InvoiceStatus.PARTIALLY_PAID.value
        )
        invoice.updated_by_id = actor_id
        self.session.flush()
        logger.info(
            "invoice_receipt_recorded",
            extra={
                "invoice_number": invoice.invoice_number,
                "amount": str(amount),
                "invoice_status": invoice.status,
            },
        )
        return invoice

    def mark_overdue(self, as_of_date: date, actor_id: UUID) -> list[InvoiceModel]:
        """Flag sent invoices whose due date has passed."""
        invoices = list(
            self.session.execute(
                select(InvoiceModel).where(
                    InvoiceModel.organization_id == self.organization_id,
                    InvoiceModel.status == InvoiceStatus.SENT.value,
                    InvoiceModel.due_date < as_of_date,
                )
            ).scalars()
        )
        for invoice in invoices:
            invoice.status = InvoiceStatus.OVERDUE.value
            invoice.updated_by_id = actor_id
        self.session.flush()
        if invoices:
            logger.info("invoices_marked_overdue", extra={"count": len(invoices)})
        return invoices

    def cancel_invoice(self, invoice_id: UUID, actor_id: UUID) -> InvoiceModel:
        invoice = self.get_invoice(invoice_id)
        if invoice.status != InvoiceStatus.DRAFT.value:
            raise InvalidDocumentStateError("invoice", str(invoice_id), invoice.status, "cancel")
        invoice.status = InvoiceStatus.CANCELLED.value
        invoice.updated_by_id = actor_id
        self.session.flush()
        return invoice

    def get_invoice(self, invoice_id: UUID) -> InvoiceModel:
        invoice = self.session.get(InvoiceModel, invoice_id)
        if invoice is None or invoice.organization_id != self.organization_id:
            raise DocumentNotFoundError("invoice", str(invoice_id))
        return invoice

    def _find(self, invoice_number: str) -> InvoiceModel | None:
        return self.session.execute(
            select(InvoiceModel).where(
                InvoiceModel.organization_id == self.organization_id,
                InvoiceModel.invoice_number == invoice_number,
            )
        ).scalar_one_or_none()

    def outstanding_balance(self, as_of_date: date) -> Decimal:
        """
        Receivables as they stood on as_of_date.

        Invoices issued on or before the date, less receipts dated on or
        before it; an invoice settled later still counts in full.
        """
        invoices = self.session.execute(
            select(InvoiceModel).where(
                InvoiceModel.organization_id == self.organization_id,
                InvoiceModel.status.in_(ISSUED_INVOICE_STATUSES),
                InvoiceModel.invoice_date <= as_of_date,
            )
        ).scalars()
        return to_money(sum((inv.outstanding_as_of(as_of_date) for inv in invoices), ZERO))

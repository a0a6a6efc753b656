"""
Payables service (``ledger_modules.ap.service``).

Bill lifecycle::

    draft --approve--> approved --payment--> pending_payment --payment--> paid
      |
      +--cancel

Postings:
    approve:  Dr <expense_role> subtotal, Dr gst_input_* per head
              Cr accounts_payable (total - tds), Cr tds_payable_non_salary tds
    payment:  Dr accounts_payable / Cr bank, plus a bank transaction

TDS is withheld on the bill subtotal at the section rate from the
configured rate table.  The section comes from the bill, else the vendor's
default; a bill with neither carries no TDS.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select

from ledger_kernel.domain.values import ZERO, percent_of, to_money
from ledger_kernel.exceptions import (
    DocumentNotFoundError,
    DuplicateDocumentError,
    InvalidDocumentStateError,
    OverpaymentError,
)
from ledger_kernel.logging_config import get_logger
from ledger_modules._documents import DocumentLine, split_tax
from ledger_modules._posting import ModuleService
from ledger_modules.ap.orm import (
    OPEN_BILL_STATUSES,
    POSTED_BILL_STATUSES,
    BillItemModel,
    BillModel,
    BillPaymentModel,
    BillStatus,
)
from ledger_modules.cash.orm import BankTransactionType
from ledger_modules.cash.service import CashService
from ledger_modules.parties.service import PartyService

logger = get_logger("modules.ap.service")


class PayablesService(ModuleService):
    source_module = "payables"

    def create_bill(
        self,
        bill_number: str,
        vendor_id: UUID,
        bill_date: date,
        lines: Sequence[DocumentLine],
        actor_id: UUID,
        *,
        due_date: date | None = None,
        is_interstate: bool = False,
        tds_section: str | None = None,
        expense_role: str = "purchases_expense",
        notes: str | None = None,
    ) -> BillModel:
        vendor = PartyService(self.session, self.organization_id).get_vendor(vendor_id)
        if self._find(vendor.id, bill_number) is not None:
            raise DuplicateDocumentError("bill", bill_number)

        split = split_tax(lines, is_interstate)
        section = tds_section or vendor.default_tds_section
        tds_rate = self.config.statutory.tds.rate_for(section) if section else ZERO
        tds_amount = percent_of(split.subtotal, tds_rate)

        bill = BillModel(
            organization_id=self.organization_id,
            bill_number=bill_number,
            vendor_id=vendor.id,
            bill_date=bill_date,
            due_date=due_date,
            is_interstate=is_interstate,
            expense_role=expense_role,
            subtotal=split.subtotal,
            cgst_amount=split.cgst,
            sgst_amount=split.sgst,
            igst_amount=split.igst,
            tax_amount=split.tax,
            total_amount=split.total,
            tds_section=section,
            tds_rate=tds_rate,
            tds_amount=tds_amount,
            amount_paid=ZERO,
            status=BillStatus.DRAFT.value,
            notes=notes,
            created_by_id=actor_id,
        )
        for seq, line in enumerate(lines, start=1):
            bill.items.append(
                BillItemModel(
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
        self.session.add(bill)
        self.session.flush()
        logger.info(
            "bill_created",
            extra={
                "bill_number": bill_number,
                "total": str(bill.total_amount),
                "tds_section": section,
                "tds_amount": str(tds_amount),
            },
        )
        return bill

    def approve_bill(self, bill_id: UUID, actor_id: UUID) -> BillModel:
        bill = self.get_bill(bill_id)
        if bill.status != BillStatus.DRAFT.value:
            raise InvalidDocumentStateError("bill", str(bill_id), bill.status, "approve")

        entry = self._post(
            bill.bill_date,
            [
                (bill.expense_role, bill.subtotal),
                ("gst_input_cgst", bill.cgst_amount),
                ("gst_input_sgst", bill.sgst_amount),
                ("gst_input_igst", bill.igst_amount),
            ],
            [
                ("accounts_payable", bill.payable_amount),
                ("tds_payable_non_salary", bill.tds_amount),
            ],
            actor_id,
            description=f"Bill {bill.bill_number} from {bill.vendor.name}",
            reference=bill.bill_number,
            idempotency_key=f"ap:bill:{bill.id}:approve",
        )
        bill.journal_entry_id = entry.id
        bill.status = BillStatus.APPROVED.value
        bill.updated_by_id = actor_id
        self.session.flush()
        logger.info(
            "bill_approved",
            extra={"bill_number": bill.bill_number, "entry_id": str(entry.id)},
        )
        return bill

    def record_payment(
        self,
        bill_id: UUID,
        amount: Decimal,
        payment_date: date,
        actor_id: UUID,
        reference: str | None = None,
    ) -> BillModel:
        bill = self.get_bill(bill_id)
        if bill.status not in OPEN_BILL_STATUSES:
            raise InvalidDocumentStateError("bill", str(bill_id), bill.status, "pay")
        amount = to_money(amount)
        if amount <= ZERO or amount > bill.outstanding:
            raise OverpaymentError("bill", str(bill_id), str(amount), str(bill.outstanding))

        description = f"Payment of bill {bill.bill_number}"
        entry = self._post(
            payment_date,
            [("accounts_payable", amount)],
            [("bank", amount)],
            actor_id,
            description=description,
            reference=reference or bill.bill_number,
        )
        CashService(
            self.session, self.organization_id, self.config, self.clock
        ).record_transaction(
            payment_date,
            BankTransactionType.DEBIT,
            amount,
            description,
            actor_id,
            category="vendor_payment",
            reference=reference or bill.bill_number,
            source_module=self.source_module,
            journal_entry_id=entry.id,
        )

        bill.payments.append(
            BillPaymentModel(
                organization_id=self.organization_id,
                payment_date=payment_date,
                amount=amount,
                reference=reference,
                journal_entry_id=entry.id,
                created_by_id=actor_id,
            )
        )
        bill.amount_paid = to_money(bill.amount_paid + amount)
        bill.status = (
            BillStatus.PAID.value if bill.outstanding == ZERO else BillStatus.PENDING_PAYMENT.value
        )
        bill.updated_by_id = actor_id
        self.session.flush()
        logger.info(
            "bill_payment_recorded",
            extra={
                "bill_number": bill.bill_number,
                "amount": str(amount),
                "bill_status": bill.status,
            },
        )
        return bill

    def cancel_bill(self, bill_id: UUID, actor_id: UUID) -> BillModel:
        bill = self.get_bill(bill_id)
        if bill.status != BillStatus.DRAFT.value:
            raise InvalidDocumentStateError("bill", str(bill_id), bill.status, "cancel")
        bill.status = BillStatus.CANCELLED.value
        bill.updated_by_id = actor_id
        self.session.flush()
        return bill

    def get_bill(self, bill_id: UUID) -> BillModel:
        bill = self.session.get(BillModel, bill_id)
        if bill is None or bill.organization_id != self.organization_id:
            raise DocumentNotFoundError("bill", str(bill_id))
        return bill

    def _find(self, vendor_id: UUID, bill_number: str) -> BillModel | None:
        return self.session.execute(
            select(BillModel).where(
                BillModel.organization_id == self.organization_id,
                BillModel.vendor_id == vendor_id,
                BillModel.bill_number == bill_number,
            )
        ).scalar_one_or_none()

    def outstanding_balance(self, as_of_date: date) -> Decimal:
        """Amounts owed to vendors on as_of_date, ignoring payments made after it."""
        bills = self.session.execute(
            select(BillModel).where(
                BillModel.organization_id == self.organization_id,
                BillModel.status.in_(POSTED_BILL_STATUSES),
                BillModel.bill_date <= as_of_date,
            )
        ).scalars()
        return to_money(sum((bill.outstanding_as_of(as_of_date) for bill in bills), ZERO))

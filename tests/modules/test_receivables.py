"""
Receivables (AR) tests.

Invoice creation splits GST into heads, issue posts to the ledger exactly
once, and receipts move money through the bank sub-ledger.
"""

from datetime import date
from decimal import Decimal

import pytest

from ledger_kernel.exceptions import (
    DuplicateDocumentError,
    InvalidDocumentStateError,
    OverpaymentError,
)
from ledger_modules.ar.orm import InvoiceStatus
from tests.conftest import goods


class TestInvoiceCreation:

    def test_intrastate_invoice_splits_cgst_sgst(self, receivables, customer, test_actor_id):
        invoice = receivables.create_invoice(
            "INV-001", customer.id, date(2024, 4, 10), goods("10000"), test_actor_id,
            home_state="29",
        )

        assert invoice.status == InvoiceStatus.DRAFT.value
        assert invoice.is_interstate is False
        assert invoice.subtotal == Decimal("10000.00")
        assert invoice.cgst_amount == Decimal("900.00")
        assert invoice.sgst_amount == Decimal("900.00")
        assert invoice.igst_amount == Decimal("0")
        assert invoice.total_amount == Decimal("11800.00")

    def test_interstate_invoice_carries_igst(self, receivables, customer, test_actor_id):
        invoice = receivables.create_invoice(
            "INV-002", customer.id, date(2024, 4, 10), goods("10000"), test_actor_id,
            home_state="27",
        )

        assert invoice.is_interstate is True
        assert invoice.igst_amount == Decimal("1800.00")
        assert invoice.cgst_amount == Decimal("0")

    def test_odd_paisa_goes_to_cgst(self, receivables, customer, test_actor_id):
        invoice = receivables.create_invoice(
            "INV-003", customer.id, date(2024, 4, 10), goods("100.05", gst_rate="18"),
            test_actor_id,
        )
        # 18% of 100.05 = 18.01
        assert invoice.cgst_amount == Decimal("9.01")
        assert invoice.sgst_amount == Decimal("9.00")

    def test_duplicate_number_is_rejected(self, receivables, customer, test_actor_id):
        receivables.create_invoice("INV-001", customer.id, date(2024, 4, 10), goods("10"), test_actor_id)
        with pytest.raises(DuplicateDocumentError):
            receivables.create_invoice(
                "INV-001", customer.id, date(2024, 4, 11), goods("10"), test_actor_id
            )


class TestInvoiceIssue:

    def test_issue_posts_receivable_revenue_and_output_gst(
        self, receivables, ledger_selector, customer, ledger_ready, code_for, test_actor_id
    ):
        invoice = receivables.create_invoice(
            "INV-001", customer.id, date(2024, 4, 10), goods("10000"), test_actor_id
        )
        receivables.issue_invoice(invoice.id, test_actor_id)

        as_of = date(2024, 4, 30)
        assert invoice.status == InvoiceStatus.SENT.value
        assert invoice.journal_entry_id is not None
        assert ledger_selector.account_balance(code_for("accounts_receivable"), as_of) == Decimal("11800.00")
        assert ledger_selector.account_balance(code_for("sales_revenue"), as_of) == Decimal("10000.00")
        assert ledger_selector.account_balance(code_for("gst_output_cgst"), as_of) == Decimal("900.00")
        assert ledger_selector.account_balance(code_for("gst_output_igst"), as_of) == Decimal("0")

    def test_issue_twice_is_rejected(self, receivables, customer, ledger_ready, test_actor_id):
        invoice = receivables.create_invoice(
            "INV-001", customer.id, date(2024, 4, 10), goods("100"), test_actor_id
        )
        receivables.issue_invoice(invoice.id, test_actor_id)

        with pytest.raises(InvalidDocumentStateError):
            receivables.issue_invoice(invoice.id, test_actor_id)

    def test_cancelled_draft_never_posts(
        self, receivables, journal_selector, customer, ledger_ready, test_actor_id
    ):
        invoice = receivables.create_invoice(
            "INV-001", customer.id, date(2024, 4, 10), goods("100"), test_actor_id
        )
        receivables.cancel_invoice(invoice.id, test_actor_id)

        assert invoice.status == InvoiceStatus.CANCELLED.value
        assert journal_selector.entries_between(date(2024, 4, 1), date(2024, 4, 30)) == []
        with pytest.raises(InvalidDocumentStateError):
            receivables.issue_invoice(invoice.id, test_actor_id)


class TestReceipts:

    @pytest.fixture
    def issued(self, receivables, customer, ledger_ready, test_actor_id):
        invoice = receivables.create_invoice(
            "INV-001", customer.id, date(2024, 4, 10), goods("10000"), test_actor_id,
            due_date=date(2024, 5, 10),
        )
        return receivables.issue_invoice(invoice.id, test_actor_id)

    def test_partial_then_full_receipt(self, receivables, cash, issued, test_actor_id):
        receivables.record_receipt(issued.id, Decimal("5000"), date(2024, 4, 20), test_actor_id)
        assert issued.status == InvoiceStatus.PARTIALLY_PAID.value
        assert issued.outstanding == Decimal("6800.00")

        receivables.record_receipt(issued.id, Decimal("6800"), date(2024, 4, 25), test_actor_id)
        assert issued.status == InvoiceStatus.PAID.value
        assert cash.balance(date(2024, 4, 30)) == Decimal("11800.00")

    def test_receipt_clears_control_account(
        self, receivables, ledger_selector, issued, code_for, test_actor_id
    ):
        receivables.record_receipt(issued.id, Decimal("11800"), date(2024, 4, 20), test_actor_id)

        assert ledger_selector.account_balance(code_for("accounts_receivable"), date(2024, 4, 30)) == 0
        assert receivables.outstanding_balance(date(2024, 4, 30)) == 0

    @pytest.mark.parametrize("amount", ["0", "-5", "11800.01"])
    def test_invalid_receipt_amount(self, receivables, issued, test_actor_id, amount):
        with pytest.raises(OverpaymentError):
            receivables.record_receipt(issued.id, Decimal(amount), date(2024, 4, 20), test_actor_id)

    def test_mark_overdue_after_due_date(self, receivables, issued, test_actor_id):
        assert receivables.mark_overdue(date(2024, 5, 10), test_actor_id) == []

        overdue = receivables.mark_overdue(date(2024, 5, 11), test_actor_id)
        assert [inv.id for inv in overdue] == [issued.id]
        assert issued.status == InvoiceStatus.OVERDUE.value

        receivables.record_receipt(issued.id, Decimal("1000"), date(2024, 5, 12), test_actor_id)
        assert issued.status == InvoiceStatus.PARTIALLY_PAID.value

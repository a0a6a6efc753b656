"""
Sub-ledger reconciliation.

The GL side comes from journal lines and the sub-ledger side from the
module's own records, so a posting that bypasses the sub-ledger shows up
as variance.
"""

from datetime import date
from decimal import Decimal

import pytest

from ledger_kernel.exceptions import UnknownReconciliationModuleError
from ledger_kernel.models.reconciliation import VarianceSeverity
from ledger_services import RECONCILED_MODULES
from tests.conftest import goods

AS_OF = date(2024, 4, 30)


@pytest.fixture
def busy_month(
    receivables, payables, payroll, customer, vendor, employee, capital, test_actor_id
):
    """One document of every reconciled kind, each posted through its module."""
    invoice = receivables.create_invoice(
        "INV-001", customer.id, date(2024, 4, 10), goods("10000"), test_actor_id
    )
    receivables.issue_invoice(invoice.id, test_actor_id)
    receivables.record_receipt(invoice.id, Decimal("5000"), date(2024, 4, 20), test_actor_id)

    bill = payables.create_bill("NW-101", vendor.id, date(2024, 4, 12), goods("10000"), test_actor_id)
    payables.approve_bill(bill.id, test_actor_id)

    record = payroll.create_record(
        employee.id, "2024-04", date(2024, 4, 30), Decimal("20000"), test_actor_id,
        hra=Decimal("8000"), tds_amount=Decimal("500"),
    )
    payroll.process(record.id, test_actor_id)
    return invoice, bill, record


class TestReconcile:

    def test_clean_ledger_reconciles_every_module(self, reconciler, busy_month, test_actor_id):
        records = reconciler.reconcile(None, AS_OF, test_actor_id)

        assert [r.module for r in records] == list(RECONCILED_MODULES)
        assert all(r.is_reconciled for r in records)
        assert all(r.variance == 0 for r in records)
        assert {r.severity for r in records} == {VarianceSeverity.NONE.value}
        assert len({r.run_id for r in records}) == 1

        by_module = {r.module: r for r in records}
        assert by_module["receivables"].gl_balance == Decimal("6800.00")
        assert by_module["payroll"].gl_balance == Decimal("25500.00")
        assert by_module["bank"].control_account_code == "1000"

    def test_posting_around_the_subledger_is_variance(
        self, reconciler, busy_month, post_manual, test_actor_id, captured_logs
    ):
        post_manual(date(2024, 4, 15), "accounts_receivable", "sales_revenue", "500")

        (record,) = reconciler.reconcile(["receivables"], AS_OF, test_actor_id)

        assert record.gl_balance == Decimal("7300.00")
        assert record.subledger_balance == Decimal("6800.00")
        assert record.variance == Decimal("500.00")
        assert not record.is_reconciled
        assert record.severity == VarianceSeverity.HIGH.value

        warnings = [r for r in captured_logs() if r["message"] == "reconciliation_variance_detected"]
        assert len(warnings) == 1
        assert warnings[0]["reconciled_module"] == "receivables"
        assert warnings[0]["variance"] == "500.00"

    def test_negative_variance_is_reported_signed(
        self, reconciler, capital, post_manual, test_actor_id
    ):
        post_manual(date(2024, 4, 15), "capital", "bank", "2500")

        (record,) = reconciler.reconcile(["bank"], AS_OF, test_actor_id)

        assert record.variance == Decimal("-2500.00")
        assert record.severity == VarianceSeverity.CRITICAL.value

    def test_tolerance_absorbs_small_variance(
        self, reconciler, busy_month, post_manual, test_actor_id
    ):
        post_manual(date(2024, 4, 15), "accounts_receivable", "sales_revenue", "0.50")

        (record,) = reconciler.reconcile(["receivables"], AS_OF, test_actor_id, tolerance=Decimal("1"))

        assert record.is_reconciled
        assert record.variance == Decimal("0.50")
        assert record.severity == VarianceSeverity.NONE.value

    def test_as_of_date_excludes_later_activity(self, reconciler, busy_month, test_actor_id):
        (record,) = reconciler.reconcile(["receivables"], date(2024, 4, 5), test_actor_id)

        assert record.gl_balance == Decimal("0.00")
        assert record.is_reconciled

    def test_unknown_module_writes_nothing(self, reconciler, ledger_ready, test_actor_id):
        with pytest.raises(UnknownReconciliationModuleError):
            reconciler.reconcile(["bank", "inventory"], AS_OF, test_actor_id)
        assert reconciler.history("bank") == []


class TestPointInTime:
    """Settlements dated after as_of_date leave the earlier balances intact."""

    @pytest.fixture
    def settled_in_may(self, receivables, payables, payroll, busy_month, test_actor_id):
        invoice, bill, record = busy_month
        receivables.record_receipt(invoice.id, Decimal("6800"), date(2024, 5, 5), test_actor_id)
        payables.record_payment(bill.id, Decimal("11800"), date(2024, 5, 5), test_actor_id)
        payroll.pay(record.id, date(2024, 5, 7), test_actor_id)

    def test_earlier_date_still_reconciles(self, reconciler, settled_in_may, test_actor_id):
        records = reconciler.reconcile(None, AS_OF, test_actor_id)

        assert all(r.is_reconciled for r in records)
        by_module = {r.module: r for r in records}
        assert by_module["receivables"].subledger_balance == Decimal("6800.00")
        assert by_module["payables"].subledger_balance == Decimal("11800.00")
        assert by_module["payroll"].subledger_balance == Decimal("25500.00")

    def test_after_settlement_balances_clear(self, reconciler, settled_in_may, test_actor_id):
        records = reconciler.reconcile(None, date(2024, 5, 31), test_actor_id)

        assert all(r.is_reconciled for r in records)
        by_module = {r.module: r for r in records}
        for module in ("receivables", "payables", "payroll"):
            assert by_module[module].subledger_balance == Decimal("0.00")

    def test_partial_receipt_counts_only_up_to_date(
        self, reconciler, receivables, busy_month, test_actor_id
    ):
        invoice, _, _ = busy_month
        receivables.record_receipt(invoice.id, Decimal("800"), date(2024, 5, 2), test_actor_id)

        (april,) = reconciler.reconcile(["receivables"], AS_OF, test_actor_id)
        (may,) = reconciler.reconcile(["receivables"], date(2024, 5, 31), test_actor_id)

        assert (april.subledger_balance, april.variance) == (Decimal("6800.00"), Decimal("0.00"))
        assert (may.subledger_balance, may.variance) == (Decimal("6000.00"), Decimal("0.00"))


class TestSeverity:

    @pytest.mark.parametrize(
        "variance, expected",
        [
            ("0", VarianceSeverity.NONE),
            ("50", VarianceSeverity.MEDIUM),
            ("100", VarianceSeverity.MEDIUM),
            ("100.01", VarianceSeverity.HIGH),
            ("1000.01", VarianceSeverity.CRITICAL),
            ("-1000.01", VarianceSeverity.CRITICAL),
        ],
    )
    def test_bands(self, reconciler, variance, expected):
        assert reconciler.severity_for(Decimal(variance), Decimal("0")) is expected


class TestHistory:

    def test_latest_snapshot_and_history(
        self, reconciler, busy_month, post_manual, deterministic_clock, test_actor_id
    ):
        first = reconciler.reconcile(None, AS_OF, test_actor_id)
        post_manual(date(2024, 4, 15), "accounts_receivable", "sales_revenue", "500")
        deterministic_clock.advance(60)
        second = reconciler.reconcile(["receivables"], AS_OF, test_actor_id)

        latest = reconciler.latest_snapshot()
        assert set(latest) == set(RECONCILED_MODULES)
        assert latest["receivables"].id == second[0].id
        assert latest["bank"].run_id == first[0].run_id

        history = reconciler.history("receivables")
        assert [r.variance for r in history] == [Decimal("0.00"), Decimal("500.00")]
        assert reconciler.total_variance(latest.values()) == Decimal("500.00")

    def test_never_reconciled_modules_are_absent(self, reconciler, ledger_ready):
        assert reconciler.latest_snapshot() == {}

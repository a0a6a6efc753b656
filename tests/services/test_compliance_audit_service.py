"""
Compliance audit runs over live ledger data.

Runs are append-only versions per financial year; only full runs count
as the latest.
"""

import json
from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from ledger_kernel.domain.audit_types import CheckStatus, RunType
from ledger_kernel.exceptions import ComplianceRunNotFoundError, InvalidFinancialYearError
from ledger_kernel.models.journal import JournalEntry, JournalLine, LineSide
from ledger_kernel.services.account_service import AccountService
from tests.conftest import goods

FY = "2024-2025"


@pytest.fixture
def trading_year(
    receivables, payables, payroll, expenses, customer, vendor, employee, capital, test_actor_id
):
    invoice = receivables.create_invoice(
        "INV-001", customer.id, date(2024, 4, 10), goods("10000"), test_actor_id
    )
    receivables.issue_invoice(invoice.id, test_actor_id)

    bill = payables.create_bill(
        "NW-101", vendor.id, date(2024, 4, 12), goods("10000"), test_actor_id, tds_section="194J"
    )
    payables.approve_bill(bill.id, test_actor_id)

    record = payroll.create_record(
        employee.id, "2024-04", date(2024, 4, 30), Decimal("20000"), test_actor_id,
        hra=Decimal("8000"), tds_amount=Decimal("500"),
    )
    payroll.process(record.id, test_actor_id)

    expenses.record_expense(
        date(2024, 5, 3), "consulting", Decimal("40000"), "bank", test_actor_id,
        tds_amount=Decimal("4000"), vendor_id=vendor.id,
    )
    expenses.record_expense(date(2024, 5, 4), "repairs", Decimal("12000"), "cash", test_actor_id)


def _checks(run):
    return {c.check_code: c for c in run.checks}


class TestSnapshot:

    def test_gl_agrees_with_compiled_returns(self, audit_service, trading_year):
        totals = audit_service.build_snapshot(FY).statutory

        assert totals.gl_output_tax == totals.gstr1_tax == Decimal("1800.00")
        assert totals.gl_tds_non_salary == Decimal("5000.00")
        assert totals.tds_26q == Decimal("5000.00")
        assert totals.gl_tds_salary == totals.tds_24q == Decimal("500.00")

    def test_monthly_series_include_lookback(self, audit_service, config, trading_year):
        series = audit_service.build_snapshot(FY).monthly
        lookback = config.anomaly.lookback_months

        assert [s.category for s in series] == ["revenue", "expenses", "cash_expenses", "journal_volume"]
        revenue = series[0]
        assert len(revenue.points) == lookback + 12
        assert revenue.report_from == lookback
        assert revenue.points[0].label == "2024-01"
        assert revenue.points[lookback].value == Decimal("10000.00")

    def test_latest_reconciliation_is_included(self, audit_service, reconciler, trading_year, test_actor_id):
        assert audit_service.build_snapshot(FY).reconciliation == ()

        reconciler.reconcile(None, date(2025, 3, 31), test_actor_id)
        variances = audit_service.build_snapshot(FY).reconciliation

        assert [v.module for v in variances] == ["bank", "payables", "payroll", "receivables"]
        assert all(v.is_reconciled for v in variances)

    def test_reconciliation_of_another_year_is_ignored(
        self, audit_service, reconciler, trading_year, test_actor_id
    ):
        reconciler.reconcile(None, date(2025, 4, 30), test_actor_id)
        assert audit_service.build_snapshot(FY).reconciliation == ()

        reconciler.reconcile(None, date(2024, 12, 31), test_actor_id)
        in_year = audit_service.build_snapshot(FY).reconciliation
        assert len(in_year) == 4
        assert audit_service.build_snapshot("2023-2024").reconciliation == ()

    def test_malformed_year(self, audit_service):
        with pytest.raises(InvalidFinancialYearError):
            audit_service.build_snapshot("2024-25")


class TestRunAudit:

    def test_run_persists_outcome(self, audit_service, config, trading_year, test_actor_id):
        run = audit_service.run_audit(FY, test_actor_id)

        assert run.version == 1
        assert run.run_type == RunType.FULL.value
        assert run.financial_year == FY
        assert run.compliance_score == sum(run.score_breakdown.values())
        assert set(run.risk_breakdown) == set(config.scoring.themes)
        assert run.total_checks == len(run.checks)
        assert run.passed_checks + run.failed_checks + run.warning_checks <= run.total_checks
        assert [t.seq for t in run.themes] == list(range(len(config.scoring.themes)))

        checks = _checks(run)
        assert checks["G4"].status == CheckStatus.PASS.value
        assert checks["T1"].status == CheckStatus.PASS.value
        assert checks["T2"].status == CheckStatus.PASS.value
        assert checks["IT1"].status == CheckStatus.FAIL.value

    def test_run_reconciles_as_of_year_end(self, audit_service, reconciler, trading_year, test_actor_id):
        run = audit_service.run_audit(FY, test_actor_id)

        latest = reconciler.latest_snapshot()
        assert set(latest) == {"bank", "payables", "payroll", "receivables"}
        assert {r.as_of_date for r in latest.values()} == {date(2025, 3, 31)}
        assert _checks(run)["DI2"].status == CheckStatus.PASS.value

    def test_sampled_entries_are_journal_entries(self, audit_service, journal_selector, trading_year, test_actor_id):
        run = audit_service.run_audit(FY, test_actor_id)
        posted = {str(e.id) for e in journal_selector.entries_between(date(2024, 4, 1), date(2025, 3, 31))}

        ids = [s.entity_id for s in run.samples]
        assert ids
        assert len(ids) == len(set(ids))
        assert set(ids) <= posted

    def test_rerun_writes_next_version(self, audit_service, trading_year, test_actor_id):
        first = audit_service.run_audit(FY, test_actor_id)
        second = audit_service.run_audit(FY, test_actor_id)

        assert (first.version, second.version) == (1, 2)
        assert audit_service.latest_run(FY).id == second.id
        assert first.compliance_score == second.compliance_score

    def test_simulation_is_never_latest(self, audit_service, trading_year, test_actor_id):
        full = audit_service.run_audit(FY, test_actor_id)
        simulation = audit_service.run_audit(FY, test_actor_id, run_type="simulation")

        assert simulation.version == 2
        assert audit_service.latest_run(FY).id == full.id
        assert [r.version for r in audit_service.list_runs(FY)] == [1, 2]

    def test_no_runs_yet(self, audit_service, ledger_ready):
        assert audit_service.latest_run(FY) is None

    def test_unbalanced_ledger_fails_integrity_check(
        self, session, org_id, audit_service, ledger_ready, code_for, test_actor_id
    ):
        bank = AccountService(session, org_id).get_by_code(code_for("bank"))
        entry = JournalEntry(
            organization_id=org_id,
            entry_date=date(2024, 6, 5),
            source_type="manual",
            description="one-sided",
            created_by_id=test_actor_id,
        )
        entry.lines.append(
            JournalLine(
                account=bank, side=LineSide.DEBIT.value, amount=Decimal("10.00"),
                line_seq=1, created_by_id=test_actor_id,
            )
        )
        session.add(entry)
        session.flush()

        snapshot = audit_service.build_snapshot(FY)
        assert snapshot.trial_balance_difference == Decimal("10.00")
        assert snapshot.unbalanced_entry_count == 1

        run = audit_service.run_audit(FY, test_actor_id)
        assert _checks(run)["DI1"].status == CheckStatus.FAIL.value

    def test_completion_is_logged(self, audit_service, trading_year, test_actor_id, captured_logs):
        run = audit_service.run_audit(FY, test_actor_id)

        (record,) = [r for r in captured_logs() if r["message"] == "compliance_run_completed"]
        assert record["version"] == 1
        assert record["compliance_score"] == run.compliance_score


class TestAuditorPack:

    def test_pack_contents(self, audit_service, trading_year, test_actor_id):
        run = audit_service.run_audit(FY, test_actor_id)
        pack = audit_service.generate_auditor_pack(run.id)

        assert set(pack) == {"run", "checks", "themes", "anomalies", "samples"}
        assert pack["run"]["version"] == 1
        assert list(pack["checks"]) == sorted(pack["checks"])
        assert sum(len(v) for v in pack["checks"].values()) == run.total_checks
        assert len(pack["samples"]) == len(run.samples)
        # Plain data only
        json.dumps(pack)

    def test_pack_is_stable(self, audit_service, trading_year, test_actor_id):
        run = audit_service.run_audit(FY, test_actor_id)
        first = json.dumps(audit_service.generate_auditor_pack(run.id), sort_keys=True)
        second = json.dumps(audit_service.generate_auditor_pack(run.id), sort_keys=True)
        assert first == second

    def test_unknown_run(self, audit_service):
        with pytest.raises(ComplianceRunNotFoundError):
            audit_service.generate_auditor_pack(uuid4())

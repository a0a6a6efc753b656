"""
Compliance check battery.

Each test builds the smallest snapshot that trips (or clears) one check.
"""

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest

from ledger_engines.compliance import CheckContext, run_checks
from ledger_engines.compliance.checks import CHECKS
from ledger_engines.compliance.snapshot import (
    AssetAudit,
    AuditSnapshot,
    BillAudit,
    EntrySnapshot,
    ExpenseAudit,
    InvoiceAudit,
    PartySnapshot,
    ReconciliationVariance,
    StatutoryTotals,
)
from ledger_kernel.domain.audit_types import CheckSeverity, CheckStatus


@pytest.fixture
def ctx(config):
    return CheckContext(
        thresholds=config.thresholds,
        gst=config.statutory.gst,
        tds=config.statutory.tds,
    )


def snapshot(**kwargs):
    return AuditSnapshot("2024-2025", date(2024, 4, 1), date(2025, 3, 31), **kwargs)


def entry(entry_id, entry_date=date(2024, 6, 10), amount="500", *, source_type="receivables",
          lag_days=0, **kwargs):
    created = datetime.combine(entry_date, datetime.min.time(), tzinfo=timezone.utc)
    return EntrySnapshot(
        entry_id=entry_id,
        entry_date=entry_date,
        created_at=created + timedelta(days=lag_days),
        source_type=source_type,
        amount=Decimal(amount),
        **kwargs,
    )


def result_of(checks, code):
    return next(c for c in checks if c.code == code)


class TestBattery:

    def test_empty_year_has_nothing_to_test(self, ctx):
        checks = run_checks(snapshot(), ctx)

        assert len(checks) == len(CHECKS)
        assert {c.status for c in checks} == {CheckStatus.NA}
        assert all(c.recommendation == "" for c in checks)

    def test_codes_are_unique(self, ctx):
        codes = [c.code for c in run_checks(snapshot(), ctx)]
        assert len(codes) == len(set(codes))


class TestGstChecks:

    def test_malformed_gstin_fails(self, ctx):
        checks = run_checks(
            snapshot(parties=(
                PartySnapshot("c1", "customer", "Good Co", gstin="29ABCDE1234F1Z5"),
                PartySnapshot("v1", "vendor", "Typo Traders", gstin="29ABC"),
            )),
            ctx,
        )

        g1 = result_of(checks, "G1")
        assert g1.status is CheckStatus.FAIL
        assert g1.affected_count == 1
        assert g1.details["invalid"] == ["Typo Traders"]
        assert g1.recommendation

    def test_invoice_heads_beyond_tolerance_fail(self, ctx):
        def invoice(number, tax):
            return InvoiceAudit(
                number, number, date(2024, 4, 5), "c1",
                subtotal=Decimal("1000"), cgst_amount=Decimal("90"), sgst_amount=Decimal("90"),
                igst_amount=Decimal("0"), tax_amount=Decimal(tax), total_amount=Decimal("1180"),
            )

        checks = run_checks(snapshot(invoices=(invoice("I-1", "180.50"), invoice("I-2", "185"))), ctx)

        g2 = result_of(checks, "G2")
        assert g2.status is CheckStatus.FAIL
        assert g2.severity is CheckSeverity.CRITICAL
        assert g2.details["invoices"] == ["I-2"]

    def test_bill_without_vendor_gstin_warns(self, ctx):
        bill = BillAudit(
            "b1", "B-1", date(2024, 4, 6), "v1", "Acme", "",
            subtotal=Decimal("5000"), tax_amount=Decimal("900"), total_amount=Decimal("5900"),
        )
        assert result_of(run_checks(snapshot(bills=(bill,)), ctx), "G3").status is CheckStatus.WARNING

    @pytest.mark.parametrize(
        "gl, reported, expected",
        [
            ("1800", "1800", CheckStatus.PASS),
            ("1800", "1800.90", CheckStatus.PASS),
            ("1800", "1500", CheckStatus.FAIL),
            ("0", "0", CheckStatus.NA),
        ],
    )
    def test_output_tax_against_gstr1(self, ctx, gl, reported, expected):
        totals = StatutoryTotals(gl_output_tax=Decimal(gl), gstr1_tax=Decimal(reported))
        assert result_of(run_checks(snapshot(statutory=totals), ctx), "G4").status is expected


class TestTdsChecks:

    def test_return_totals_are_compared_to_gl(self, ctx):
        totals = StatutoryTotals(
            gl_tds_non_salary=Decimal("1000"), tds_26q=Decimal("800"),
            gl_tds_salary=Decimal("500"), tds_24q=Decimal("500"),
        )
        checks = run_checks(snapshot(statutory=totals), ctx)

        assert result_of(checks, "T1").status is CheckStatus.FAIL
        assert result_of(checks, "T2").status is CheckStatus.PASS

    def test_large_payment_without_tds_warns(self, ctx):
        expenses = (
            ExpenseAudit("e1", date(2024, 5, 1), "consulting", Decimal("40000"), "bank"),
            ExpenseAudit("e2", date(2024, 5, 2), "consulting", Decimal("40000"), "bank",
                         tds_amount=Decimal("4000")),
            ExpenseAudit("e3", date(2024, 5, 3), "stationery", Decimal("500"), "bank"),
        )
        t3 = result_of(run_checks(snapshot(expenses=expenses), ctx), "T3")

        assert t3.status is CheckStatus.WARNING
        assert t3.details["documents"] == ["e1"]

    def test_vendors_without_pan(self, ctx):
        parties = (
            PartySnapshot("v1", "vendor", "Acme", pan="ABCDE1234F"),
            PartySnapshot("v2", "vendor", "No Pan Ltd"),
            PartySnapshot("c1", "customer", "Customer without PAN"),
        )
        t4 = result_of(run_checks(snapshot(parties=parties), ctx), "T4")

        assert t4.status is CheckStatus.WARNING
        assert t4.details["vendors"] == ["No Pan Ltd"]


class TestIncomeTaxChecks:

    def test_cash_payment_above_limit_fails(self, ctx):
        expenses = (
            ExpenseAudit("e1", date(2024, 5, 1), "repairs", Decimal("10000"), "cash"),
            ExpenseAudit("e2", date(2024, 5, 2), "repairs", Decimal("10000.01"), "cash"),
            ExpenseAudit("e3", date(2024, 5, 3), "rent", Decimal("50000"), "bank"),
        )
        it1 = result_of(run_checks(snapshot(expenses=expenses), ctx), "IT1")

        assert it1.status is CheckStatus.FAIL
        assert it1.details["expenses"] == ["e2"]

    def test_round_figures_warn_only_above_count(self, ctx):
        rounded = tuple(entry(f"j{i}", amount="25000") for i in range(21))
        few = run_checks(snapshot(entries=rounded[:20]), ctx)
        many = run_checks(snapshot(entries=rounded), ctx)

        assert result_of(few, "IT2").status is CheckStatus.PASS
        assert result_of(few, "IT2").affected_count == 20
        assert result_of(many, "IT2").status is CheckStatus.WARNING


class TestInternalControlChecks:

    @pytest.mark.parametrize(
        "manual, total, expected",
        [(0, 10, CheckStatus.PASS), (2, 10, CheckStatus.WARNING), (4, 10, CheckStatus.FAIL)],
    )
    def test_manual_ratio(self, ctx, manual, total, expected):
        entries = tuple(
            entry(f"j{i}", source_type="manual" if i < manual else "payables") for i in range(total)
        )
        assert result_of(run_checks(snapshot(entries=entries), ctx), "IFC1").status is expected

    def test_unapproved_entry_fails(self, ctx):
        entries = (entry("j1"), entry("j2", is_approved=False))
        assert result_of(run_checks(snapshot(entries=entries), ctx), "IFC2").status is CheckStatus.FAIL

    def test_march_concentration(self, ctx):
        entries = (
            entry("j1", date(2025, 3, 10)),
            entry("j2", date(2025, 3, 20)),
            entry("j3", date(2024, 6, 1)),
            entry("j4", date(2024, 7, 1)),
        )
        ifc3 = result_of(run_checks(snapshot(entries=entries), ctx), "IFC3")

        assert ifc3.status is CheckStatus.WARNING
        assert ifc3.details["march_pct"] == "50.00"

    def test_admin_overrides_above_limit_fail(self, ctx):
        entries = tuple(entry(f"j{i}", is_admin_override=True) for i in range(6))
        ifc4 = result_of(run_checks(snapshot(entries=entries), ctx), "IFC4")

        assert ifc4.status is CheckStatus.FAIL
        assert ifc4.affected_count == 6

    def test_late_postings_warn(self, ctx):
        entries = (entry("j1", lag_days=30), entry("j2", lag_days=31))
        ifc5 = result_of(run_checks(snapshot(entries=entries), ctx), "IFC5")

        assert ifc5.status is CheckStatus.WARNING
        assert ifc5.affected_count == 1


class TestDataIntegrityChecks:

    def test_unbalanced_ledger_fails(self, ctx):
        checks = run_checks(snapshot(entries=(entry("j1"),), unbalanced_entry_count=1), ctx)
        assert result_of(checks, "DI1").status is CheckStatus.FAIL

    def test_critical_variance_raises_severity(self, ctx):
        recon = (
            ReconciliationVariance("bank", Decimal("100"), Decimal("100"), Decimal("0"), True, "none"),
            ReconciliationVariance(
                "payables", Decimal("5000"), Decimal("3000"), Decimal("2000"), False, "critical"
            ),
        )
        di2 = result_of(run_checks(snapshot(reconciliation=recon), ctx), "DI2")

        assert di2.status is CheckStatus.FAIL
        assert di2.severity is CheckSeverity.CRITICAL
        assert di2.details["modules"] == {"payables": "2000"}

    def test_asset_checks(self, ctx):
        assets = (
            AssetAudit("a1", "FA-001", "active", "straight_line", date(2024, 4, 1), 0),
            AssetAudit("a2", "FA-002", "active", "straight_line", date(2025, 6, 1), 0),
            AssetAudit("a3", "FA-003", "disposed", "straight_line", date(2024, 4, 1), 3),
            AssetAudit("a4", "FA-004", "active", "none", date(2024, 4, 1), 0),
        )
        checks = run_checks(snapshot(assets=assets), ctx)

        fa1 = result_of(checks, "FA1")
        assert fa1.status is CheckStatus.WARNING
        assert fa1.details["assets"] == ["FA-001"]
        assert result_of(checks, "FA2").details["assets"] == ["FA-003"]

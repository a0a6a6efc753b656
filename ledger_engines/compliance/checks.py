"""
Compliance check battery.

Each check is a pure function ``(snapshot, context) -> CheckResult``.  A
check that has nothing to test in the year returns status ``na``, which
removes it from the category's pass ratio instead of counting as a pass.

Categories and the checks they hold:

    gst                G1 GSTIN format, G2 invoice tax consistency,
                       G3 bills without vendor GSTIN, G4 GL vs GSTR-1
    tds                T1 GL vs 26Q, T2 GL vs 24Q, T3 expenses above the
                       TDS threshold without TDS, T4 vendors without PAN
    income_tax         IT1 cash payments above the 40A(3) limit,
                       IT2 round-figure entries
    internal_controls  IFC1 manual ratio, IFC2 unapproved entries,
                       IFC3 March concentration, IFC4 admin overrides,
                       IFC5 back-dated entries
    data_integrity     DI1 balanced ledger, DI2 reconciliation variances,
                       FA1 assets without depreciation, FA2 disposals
                       without a disposal value
"""

from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

from ledger_config.schema import AuditThresholds, GstRates, TdsRates
from ledger_engines.compliance.snapshot import AuditSnapshot, EntrySnapshot
from ledger_kernel.domain.audit_types import CheckSeverity, CheckStatus
from ledger_kernel.domain.values import ZERO, to_money

GSTIN_PATTERN = re.compile(r"^\d{2}[A-Z]{5}\d{4}[A-Z][1-9A-Z]Z[0-9A-Z]$")

MARCH = 3


@dataclass(frozen=True)
class CheckResult:
    code: str
    category: str
    module: str
    name: str
    severity: CheckSeverity
    status: CheckStatus
    affected_count: int = 0
    recommendation: str = ""
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def is_applicable(self) -> bool:
        return self.status is not CheckStatus.NA


@dataclass(frozen=True)
class CheckContext:
    thresholds: AuditThresholds
    gst: GstRates
    tds: TdsRates


def is_round_figure(amount: Decimal, thresholds: AuditThresholds) -> bool:
    return amount > thresholds.round_figure_floor and amount % thresholds.round_figure_unit == 0


def is_backdated(entry: EntrySnapshot, thresholds: AuditThresholds) -> bool:
    return entry.posting_lag_days > thresholds.backdated_days


def _pct(part: int, whole: int) -> Decimal:
    return to_money(Decimal(part) * 100 / Decimal(whole)) if whole else ZERO


def _result(code, category, module, name, severity, status, affected=0, recommendation="", **details):
    return CheckResult(
        code=code,
        category=category,
        module=module,
        name=name,
        severity=severity,
        status=status,
        affected_count=affected,
        recommendation=recommendation if status in (CheckStatus.FAIL, CheckStatus.WARNING) else "",
        details=details,
    )


def _matches(gl_amount: Decimal, return_amount: Decimal, tolerance: Decimal) -> CheckStatus:
    if gl_amount == ZERO and return_amount == ZERO:
        return CheckStatus.NA
    if abs(gl_amount - return_amount) > tolerance:
        return CheckStatus.FAIL
    return CheckStatus.PASS


# ---------------------------------------------------------------------------
# GST
# ---------------------------------------------------------------------------


def check_gstin_format(snapshot: AuditSnapshot, ctx: CheckContext) -> CheckResult:
    registered = [p for p in snapshot.parties if p.gstin]
    invalid = [p for p in registered if not GSTIN_PATTERN.match(p.gstin)]
    if not registered:
        status = CheckStatus.NA
    else:
        status = CheckStatus.FAIL if invalid else CheckStatus.PASS
    return _result(
        "G1", "gst", "gst", "Customer and vendor GSTIN format",
        CheckSeverity.WARNING, status, len(invalid),
        "Correct malformed GSTINs before filing; invalid GSTINs void B2B credit.",
        invalid=[p.name for p in invalid],
    )


def check_invoice_tax_consistency(snapshot: AuditSnapshot, ctx: CheckContext) -> CheckResult:
    tolerance = ctx.gst.consistency_tolerance
    inconsistent = [
        inv.invoice_number
        for inv in snapshot.invoices
        if abs(inv.tax_amount - (inv.cgst_amount + inv.sgst_amount + inv.igst_amount)) > tolerance
    ]
    if not snapshot.invoices:
        status = CheckStatus.NA
    else:
        status = CheckStatus.FAIL if inconsistent else CheckStatus.PASS
    return _result(
        "G2", "gst", "gst", "Invoice tax equals CGST + SGST + IGST",
        CheckSeverity.CRITICAL, status, len(inconsistent),
        "Recompute tax heads on the listed invoices and issue credit notes where needed.",
        invoices=inconsistent,
    )


def check_bills_without_gstin(snapshot: AuditSnapshot, ctx: CheckContext) -> CheckResult:
    missing = [b.bill_number for b in snapshot.bills if not b.vendor_gstin]
    if not snapshot.bills:
        status = CheckStatus.NA
    else:
        status = CheckStatus.WARNING if missing else CheckStatus.PASS
    return _result(
        "G3", "gst", "gst", "Bills from vendors without GSTIN",
        CheckSeverity.WARNING, status, len(missing),
        "Input tax credit is not claimable on these bills; obtain vendor GSTINs.",
        bills=missing,
    )


def check_output_tax_vs_gstr1(snapshot: AuditSnapshot, ctx: CheckContext) -> CheckResult:
    totals = snapshot.statutory
    status = _matches(totals.gl_output_tax, totals.gstr1_tax, ctx.gst.consistency_tolerance)
    return _result(
        "G4", "gst", "gst", "GST output tax matches GSTR-1 aggregate",
        CheckSeverity.CRITICAL, status, 1 if status is CheckStatus.FAIL else 0,
        "Trace output tax postings that are not backed by an issued invoice.",
        gl_output_tax=str(totals.gl_output_tax),
        gstr1_tax=str(totals.gstr1_tax),
    )


# ---------------------------------------------------------------------------
# TDS
# ---------------------------------------------------------------------------


def check_tds_vs_26q(snapshot: AuditSnapshot, ctx: CheckContext) -> CheckResult:
    totals = snapshot.statutory
    status = _matches(totals.gl_tds_non_salary, totals.tds_26q, ctx.gst.consistency_tolerance)
    return _result(
        "T1", "tds", "tds", "TDS deducted matches Form 26Q total",
        CheckSeverity.CRITICAL, status, 1 if status is CheckStatus.FAIL else 0,
        "Reconcile TDS payable postings with the 26Q deductee rows.",
        gl_tds=str(totals.gl_tds_non_salary),
        form_26q=str(totals.tds_26q),
    )


def check_tds_vs_24q(snapshot: AuditSnapshot, ctx: CheckContext) -> CheckResult:
    totals = snapshot.statutory
    status = _matches(totals.gl_tds_salary, totals.tds_24q, ctx.gst.consistency_tolerance)
    return _result(
        "T2", "tds", "tds", "Salary TDS matches Form 24Q total",
        CheckSeverity.CRITICAL, status, 1 if status is CheckStatus.FAIL else 0,
        "Reconcile salary TDS postings with the 24Q employee rows.",
        gl_tds=str(totals.gl_tds_salary),
        form_24q=str(totals.tds_24q),
    )


def check_expenses_without_tds(snapshot: AuditSnapshot, ctx: CheckContext) -> CheckResult:
    threshold = ctx.tds.expense_threshold
    candidates = [e for e in snapshot.expenses if e.amount > threshold]
    candidates_bills = [b for b in snapshot.bills if b.subtotal > threshold]
    missing = [e.expense_id for e in candidates if e.tds_amount == ZERO]
    missing += [b.bill_number for b in candidates_bills if b.tds_amount == ZERO]
    if not candidates and not candidates_bills:
        status = CheckStatus.NA
    else:
        status = CheckStatus.WARNING if missing else CheckStatus.PASS
    return _result(
        "T3", "tds", "tds", f"Payments above {threshold} without TDS",
        CheckSeverity.WARNING, status, len(missing),
        "Confirm whether TDS applies; unwithheld TDS disallows the expense under 40(a)(ia).",
        documents=missing,
    )


def check_vendors_without_pan(snapshot: AuditSnapshot, ctx: CheckContext) -> CheckResult:
    vendors = snapshot.parties_of("vendor")
    missing = [v.name for v in vendors if not v.pan]
    if not vendors:
        status = CheckStatus.NA
    else:
        status = CheckStatus.WARNING if missing else CheckStatus.PASS
    return _result(
        "T4", "tds", "tds", "Vendors without PAN",
        CheckSeverity.WARNING, status, len(missing),
        "Collect PANs; without one TDS applies at the higher 206AA rate.",
        vendors=missing,
    )


# ---------------------------------------------------------------------------
# Income tax
# ---------------------------------------------------------------------------


def check_cash_payments(snapshot: AuditSnapshot, ctx: CheckContext) -> CheckResult:
    limit = ctx.thresholds.cash_payment_limit
    over = [e.expense_id for e in snapshot.expenses if e.is_cash and e.amount > limit]
    if not snapshot.expenses:
        status = CheckStatus.NA
    else:
        status = CheckStatus.FAIL if over else CheckStatus.PASS
    return _result(
        "IT1", "income_tax", "income_tax", f"Cash payments above {limit} (Sec 40A(3))",
        CheckSeverity.CRITICAL, status, len(over),
        "Cash payments above the limit are disallowed; pay through banking channels.",
        expenses=over,
    )


def check_round_figures(snapshot: AuditSnapshot, ctx: CheckContext) -> CheckResult:
    thresholds = ctx.thresholds
    rounded = [e.entry_id for e in snapshot.entries if is_round_figure(e.amount, thresholds)]
    if not snapshot.entries:
        status = CheckStatus.NA
    else:
        too_many = len(rounded) > thresholds.round_figure_warning_count
        status = CheckStatus.WARNING if too_many else CheckStatus.PASS
    return _result(
        "IT2", "income_tax", "income_tax", "Round-figure journal entries",
        CheckSeverity.INFO, status, len(rounded),
        "Review round-figure entries for estimates booked without support.",
    )


# ---------------------------------------------------------------------------
# Internal controls
# ---------------------------------------------------------------------------


def check_manual_ratio(snapshot: AuditSnapshot, ctx: CheckContext) -> CheckResult:
    manual = sum(1 for e in snapshot.entries if e.is_manual)
    ratio = _pct(manual, len(snapshot.entries))
    if not snapshot.entries:
        status = CheckStatus.NA
    elif ratio > ctx.thresholds.manual_ratio_fail_pct:
        status = CheckStatus.FAIL
    elif ratio > ctx.thresholds.manual_ratio_warning_pct:
        status = CheckStatus.WARNING
    else:
        status = CheckStatus.PASS
    return _result(
        "IFC1", "internal_controls", "internal_controls", "Manual journal entry ratio",
        CheckSeverity.WARNING, status, manual,
        "Move recurring manual postings into system workflows.",
        manual_pct=str(ratio),
    )


def check_unapproved_entries(snapshot: AuditSnapshot, ctx: CheckContext) -> CheckResult:
    unapproved = [e.entry_id for e in snapshot.entries if not e.is_approved]
    if not snapshot.entries:
        status = CheckStatus.NA
    else:
        status = CheckStatus.FAIL if unapproved else CheckStatus.PASS
    return _result(
        "IFC2", "internal_controls", "internal_controls", "Posted entries without approval",
        CheckSeverity.CRITICAL, status, len(unapproved),
        "Enforce maker-checker approval before posting.",
    )


def check_march_concentration(snapshot: AuditSnapshot, ctx: CheckContext) -> CheckResult:
    march = sum(1 for e in snapshot.entries if e.entry_date.month == MARCH)
    share = _pct(march, len(snapshot.entries))
    if not snapshot.entries:
        status = CheckStatus.NA
    else:
        concentrated = share > ctx.thresholds.march_concentration_pct
        status = CheckStatus.WARNING if concentrated else CheckStatus.PASS
    return _result(
        "IFC3", "internal_controls", "internal_controls", "Year-end (March) entry concentration",
        CheckSeverity.WARNING, status, march,
        "Review year-end entries for window dressing.",
        march_pct=str(share),
    )


def check_admin_overrides(snapshot: AuditSnapshot, ctx: CheckContext) -> CheckResult:
    overrides = sum(1 for e in snapshot.entries if e.is_admin_override)
    if not snapshot.entries:
        status = CheckStatus.NA
    else:
        status = (
            CheckStatus.FAIL if overrides > ctx.thresholds.admin_override_limit else CheckStatus.PASS
        )
    return _result(
        "IFC4", "internal_controls", "internal_controls", "Administrator overrides",
        CheckSeverity.CRITICAL, status, overrides,
        "Restrict override rights and document each override.",
    )


def check_backdated_entries(snapshot: AuditSnapshot, ctx: CheckContext) -> CheckResult:
    backdated = [e.entry_id for e in snapshot.entries if is_backdated(e, ctx.thresholds)]
    if not snapshot.entries:
        status = CheckStatus.NA
    else:
        status = CheckStatus.WARNING if backdated else CheckStatus.PASS
    return _result(
        "IFC5", "internal_controls", "internal_controls",
        f"Entries recorded more than {ctx.thresholds.backdated_days} days after their date",
        CheckSeverity.WARNING, status, len(backdated),
        "Investigate late postings; they can move results between periods.",
    )


# ---------------------------------------------------------------------------
# Data integrity
# ---------------------------------------------------------------------------


def check_balanced_ledger(snapshot: AuditSnapshot, ctx: CheckContext) -> CheckResult:
    broken = snapshot.unbalanced_entry_count
    if not snapshot.entries:
        status = CheckStatus.NA
    elif broken or snapshot.trial_balance_difference != ZERO:
        status = CheckStatus.FAIL
    else:
        status = CheckStatus.PASS
    return _result(
        "DI1", "data_integrity", "ledger", "Ledger debits equal credits",
        CheckSeverity.CRITICAL, status, broken,
        "Stop posting and investigate: the ledger no longer balances.",
        trial_balance_difference=str(snapshot.trial_balance_difference),
    )


def check_reconciliation_variances(snapshot: AuditSnapshot, ctx: CheckContext) -> CheckResult:
    unreconciled = [r for r in snapshot.reconciliation if not r.is_reconciled]
    if not snapshot.reconciliation:
        status = CheckStatus.NA
    else:
        status = CheckStatus.FAIL if unreconciled else CheckStatus.PASS
    critical = any(r.severity == "critical" for r in unreconciled)
    return _result(
        "DI2", "data_integrity", "reconciliation", "Sub-ledgers agree with control accounts",
        CheckSeverity.CRITICAL if critical else CheckSeverity.WARNING, status, len(unreconciled),
        "Trace each variance to the sub-ledger document or journal entry causing it.",
        modules={r.module: str(r.variance) for r in unreconciled},
    )


def check_assets_without_depreciation(snapshot: AuditSnapshot, ctx: CheckContext) -> CheckResult:
    depreciable = [
        a for a in snapshot.assets
        if a.status == "active"
        and a.depreciation_method == "straight_line"
        and a.depreciation_start_date <= snapshot.fy_end
    ]
    missing = [a.asset_tag for a in depreciable if a.depreciation_line_count == 0]
    if not depreciable:
        status = CheckStatus.NA
    else:
        status = CheckStatus.WARNING if missing else CheckStatus.PASS
    return _result(
        "FA1", "data_integrity", "assets", "Active assets without depreciation",
        CheckSeverity.WARNING, status, len(missing),
        "Run the depreciation batch; book values are overstated.",
        assets=missing,
    )


def check_disposals_without_value(snapshot: AuditSnapshot, ctx: CheckContext) -> CheckResult:
    disposed = [a for a in snapshot.assets if a.status == "disposed"]
    missing = [a.asset_tag for a in disposed if a.disposal_price is None]
    if not disposed:
        status = CheckStatus.NA
    else:
        status = CheckStatus.WARNING if missing else CheckStatus.PASS
    return _result(
        "FA2", "data_integrity", "assets", "Disposed assets without a disposal value",
        CheckSeverity.WARNING, status, len(missing),
        "Record sale proceeds or scrap value for disposed assets.",
        assets=missing,
    )


CHECKS: tuple[Callable[[AuditSnapshot, CheckContext], CheckResult], ...] = (
    check_gstin_format,
    check_invoice_tax_consistency,
    check_bills_without_gstin,
    check_output_tax_vs_gstr1,
    check_tds_vs_26q,
    check_tds_vs_24q,
    check_expenses_without_tds,
    check_vendors_without_pan,
    check_cash_payments,
    check_round_figures,
    check_manual_ratio,
    check_unapproved_entries,
    check_march_concentration,
    check_admin_overrides,
    check_backdated_entries,
    check_balanced_ledger,
    check_reconciliation_variances,
    check_assets_without_depreciation,
    check_disposals_without_value,
)


def run_checks(snapshot: AuditSnapshot, ctx: CheckContext) -> tuple[CheckResult, ...]:
    """Run the full battery in a fixed order."""
    return tuple(check(snapshot, ctx) for check in CHECKS)

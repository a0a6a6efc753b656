"""
ledger_services.compliance_audit_service -- scored compliance runs.

Responsibility:
    Assemble the AuditSnapshot of one financial year from the ledger, the
    sub-ledgers, the year's latest reconciliation and the compiled
    statutory returns; evaluate it with the pure compliance engine; persist the
    outcome as a new, immutable ComplianceRun version.

Architecture position:
    Services -- the only compliance code that touches a session.  The
    engines in ledger_engines.compliance see nothing but the snapshot.

Invariants enforced:
    - Runs are append-only.  A rerun writes version N+1; the run and all of
      its children are built before the first flush.
    - Only ``full`` runs are authoritative for ``latest_run``; simulation
      runs are stored but never returned as the latest.
    - Audit annotations never touch the journal.

Failure modes:
    - InvalidFinancialYearError for a malformed year label.
    - ComplianceRunNotFoundError from ``generate_auditor_pack``.

Audit relevance:
    ``compliance_run_completed`` is logged with the score, risk index and
    IFC rating; the run records which checks failed and which journal
    entries were sampled for substantive testing.
"""

from __future__ import annotations

from collections import defaultdict
from datetime import date
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ledger_config import LedgerConfig, get_active_config
from ledger_engines.compliance import AuditOutcome, AuditSnapshot, evaluate_audit
from ledger_engines.compliance.snapshot import (
    AssetAudit,
    BillAudit,
    EntrySnapshot,
    ExpenseAudit,
    InvoiceAudit,
    MonthlySeries,
    MonthPoint,
    PartySnapshot,
    ReconciliationVariance,
    StatutoryTotals,
)
from ledger_kernel.domain.audit_types import CheckStatus, RunType
from ledger_kernel.domain.clock import Clock
from ledger_kernel.domain.fiscal_calendar import FinancialYear, parse_financial_year
from ledger_kernel.domain.values import ZERO, money_sum, to_money
from ledger_kernel.exceptions import ComplianceRunNotFoundError, LedgerIntegrityError
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.compliance import (
    AuditSample,
    ComplianceAnomaly,
    ComplianceCheck,
    ComplianceRun,
    RiskTheme,
)
from ledger_kernel.selectors.journal_selector import JournalSelector
from ledger_kernel.selectors.ledger_selector import LedgerSelector
from ledger_kernel.services.base import BaseService
from ledger_modules.ap.orm import POSTED_BILL_STATUSES, BillModel
from ledger_modules.ar.orm import ISSUED_INVOICE_STATUSES, InvoiceModel
from ledger_modules.assets.orm import FixedAssetModel
from ledger_modules.expense.orm import ExpenseRecordModel
from ledger_modules.parties.service import PartyService
from ledger_services.reconciliation_service import SubledgerReconciler
from ledger_services.statutory_report_service import StatutoryReportService

logger = get_logger("services.compliance")

OUTPUT_TAX_ROLES = ("gst_output_cgst", "gst_output_sgst", "gst_output_igst")


def _month_labels(first: date, count: int) -> list[str]:
    labels = []
    year, month = first.year, first.month
    for _ in range(count):
        labels.append(f"{year:04d}-{month:02d}")
        month += 1
        if month > 12:
            year, month = year + 1, 1
    return labels


def _shift_months(value: date, months: int) -> date:
    index = value.year * 12 + (value.month - 1) - months
    return date(index // 12, index % 12 + 1, 1)


class ComplianceAuditService(BaseService[ComplianceRun]):
    def __init__(
        self,
        session: Session,
        organization_id: UUID,
        config: LedgerConfig | None = None,
        clock: Clock | None = None,
    ):
        super().__init__(session, organization_id, clock)
        self.config = config or get_active_config()
        self._journal = JournalSelector(session, organization_id)
        self._ledger = LedgerSelector(session, organization_id)
        self._parties = PartyService(session, organization_id, self.clock)
        self._reconciler = SubledgerReconciler(session, organization_id, self.config, self.clock)
        self._statutory = StatutoryReportService(session, organization_id, self.config)

    # -- snapshot ----------------------------------------------------------

    def build_snapshot(self, financial_year: str | FinancialYear) -> AuditSnapshot:
        fy = parse_financial_year(financial_year)
        start, end = fy.start, fy.end
        entries = self._journal.entries_between(start, end)
        trial_difference = ZERO
        try:
            self._ledger.trial_balance(end)
        except LedgerIntegrityError as exc:
            trial_difference = to_money(Decimal(exc.debit_total) - Decimal(exc.credit_total))

        expenses = self._expenses(start, end)
        return AuditSnapshot(
            financial_year=fy.label,
            fy_start=start,
            fy_end=end,
            entries=tuple(
                EntrySnapshot(
                    entry_id=str(e.id),
                    entry_date=e.entry_date,
                    created_at=e.created_at,
                    source_type=e.source_type,
                    amount=to_money(e.total_debits),
                    is_approved=e.approved_by_id is not None,
                    is_admin_override=e.is_admin_override,
                    source_module=e.source_module,
                    reference=e.reference,
                )
                for e in entries
            ),
            parties=self._party_snapshots(),
            invoices=self._invoices(start, end),
            bills=self._bills(start, end),
            expenses=expenses,
            assets=self._assets(),
            reconciliation=tuple(
                ReconciliationVariance(
                    module=r.module,
                    gl_balance=r.gl_balance,
                    subledger_balance=r.subledger_balance,
                    variance=r.variance,
                    is_reconciled=r.is_reconciled,
                    severity=r.severity,
                )
                for _, r in sorted(
                    self._reconciler.latest_snapshot(as_of_from=start, as_of_to=end).items()
                )
            ),
            statutory=self._statutory_totals(fy, expenses),
            unbalanced_entry_count=len(self._journal.unbalanced_entry_ids(start, end)),
            trial_balance_difference=trial_difference,
            monthly=self._monthly_series(fy),
        )

    def _party_snapshots(self) -> tuple[PartySnapshot, ...]:
        customers = [
            PartySnapshot(str(c.id), "customer", c.name, c.gstin or "")
            for c in self._parties.list_customers()
        ]
        vendors = [
            PartySnapshot(str(v.id), "vendor", v.name, v.gstin or "", v.pan or "")
            for v in self._parties.list_vendors()
        ]
        return tuple(customers + vendors)

    def _invoices(self, start: date, end: date) -> tuple[InvoiceAudit, ...]:
        rows = self.session.execute(
            select(InvoiceModel)
            .where(
                InvoiceModel.organization_id == self.organization_id,
                InvoiceModel.status.in_(ISSUED_INVOICE_STATUSES),
                InvoiceModel.invoice_date >= start,
                InvoiceModel.invoice_date <= end,
            )
            .order_by(InvoiceModel.invoice_date, InvoiceModel.invoice_number)
        ).unique().scalars()
        return tuple(
            InvoiceAudit(
                invoice_id=str(inv.id),
                invoice_number=inv.invoice_number,
                invoice_date=inv.invoice_date,
                customer_id=str(inv.customer_id),
                subtotal=inv.subtotal,
                cgst_amount=inv.cgst_amount,
                sgst_amount=inv.sgst_amount,
                igst_amount=inv.igst_amount,
                tax_amount=inv.tax_amount,
                total_amount=inv.total_amount,
            )
            for inv in rows
        )

    def _bills(self, start: date, end: date) -> tuple[BillAudit, ...]:
        rows = self.session.execute(
            select(BillModel)
            .where(
                BillModel.organization_id == self.organization_id,
                BillModel.status.in_(POSTED_BILL_STATUSES),
                BillModel.bill_date >= start,
                BillModel.bill_date <= end,
            )
            .order_by(BillModel.bill_date, BillModel.bill_number)
        ).unique().scalars()
        return tuple(
            BillAudit(
                bill_id=str(bill.id),
                bill_number=bill.bill_number,
                bill_date=bill.bill_date,
                vendor_id=str(bill.vendor_id),
                vendor_name=bill.vendor.name,
                vendor_gstin=bill.vendor.gstin or "",
                subtotal=bill.subtotal,
                tax_amount=bill.tax_amount,
                total_amount=bill.total_amount,
                tds_amount=bill.tds_amount,
            )
            for bill in rows
        )

    def _expenses(self, start: date, end: date) -> tuple[ExpenseAudit, ...]:
        rows = self.session.execute(
            select(ExpenseRecordModel)
            .where(
                ExpenseRecordModel.organization_id == self.organization_id,
                ExpenseRecordModel.expense_date >= start,
                ExpenseRecordModel.expense_date <= end,
            )
            .order_by(ExpenseRecordModel.expense_date, ExpenseRecordModel.created_at)
        ).unique().scalars()
        return tuple(
            ExpenseAudit(
                expense_id=str(exp.id),
                expense_date=exp.expense_date,
                category=exp.category,
                amount=exp.amount,
                payment_mode=exp.payment_mode,
                tds_amount=exp.tds_amount,
            )
            for exp in rows
        )

    def _assets(self) -> tuple[AssetAudit, ...]:
        rows = self.session.execute(
            select(FixedAssetModel)
            .where(FixedAssetModel.organization_id == self.organization_id)
            .order_by(FixedAssetModel.asset_tag)
        ).scalars()
        return tuple(
            AssetAudit(
                asset_id=str(asset.id),
                asset_tag=asset.asset_tag,
                status=asset.status,
                depreciation_method=asset.depreciation_method,
                depreciation_start_date=asset.depreciation_start_date,
                depreciation_line_count=len(asset.depreciation_lines),
                disposal_price=asset.disposal_price,
            )
            for asset in rows
        )

    def _gl_credits(self, role: str, start: date, end: date) -> Decimal:
        _, credit = self._ledger.account_totals(
            self.config.account_code(role), as_of_date=end, from_date=start
        )
        return credit

    def _statutory_totals(
        self, fy: FinancialYear, expenses: tuple[ExpenseAudit, ...]
    ) -> StatutoryTotals:
        start, end = fy.start, fy.end
        gstr1 = self._statutory.gstr1(fy.label)
        form_26q = self._statutory.tds_26q(fy.label)
        form_24q = self._statutory.tds_24q(fy.label)
        # Direct expenses withhold TDS without a bill; they belong to 26Q too
        expense_tds = money_sum(e.tds_amount for e in expenses)
        return StatutoryTotals(
            gl_output_tax=money_sum(self._gl_credits(r, start, end) for r in OUTPUT_TAX_ROLES),
            gstr1_tax=money_sum(row.total_tax for row in gstr1.rows),
            gl_tds_non_salary=self._gl_credits("tds_payable_non_salary", start, end),
            tds_26q=money_sum([*(row.tds_amount for row in form_26q.rows), expense_tds]),
            gl_tds_salary=self._gl_credits("tds_payable_salary", start, end),
            tds_24q=money_sum(row.tds_deducted for row in form_24q.rows),
        )

    def _monthly_series(self, fy: FinancialYear) -> tuple[MonthlySeries, ...]:
        lookback = self.config.anomaly.lookback_months
        first = _shift_months(fy.start, lookback)
        labels = _month_labels(first, lookback + 12)

        def series(category: str, values: dict[str, Decimal]) -> MonthlySeries:
            return MonthlySeries(
                category=category,
                points=tuple(MonthPoint(label, to_money(values.get(label, ZERO))) for label in labels),
                report_from=lookback,
            )

        revenue: dict[str, Decimal] = defaultdict(lambda: ZERO)
        expenses: dict[str, Decimal] = defaultdict(lambda: ZERO)
        for binding in self.config.accounts.roles:
            if binding.account_type not in ("revenue", "expense"):
                continue
            for movement in self._ledger.monthly_movements(binding.code, first, fy.end):
                if binding.account_type == "revenue":
                    revenue[movement.month] += movement.credit_total - movement.debit_total
                else:
                    expenses[movement.month] += movement.debit_total - movement.credit_total

        cash: dict[str, Decimal] = defaultdict(lambda: ZERO)
        for expense in self._expenses(first, fy.end):
            if expense.is_cash:
                cash[expense.expense_date.strftime("%Y-%m")] += expense.amount

        volume: dict[str, Decimal] = defaultdict(lambda: ZERO)
        for entry in self._journal.entries_between(first, fy.end):
            volume[entry.entry_date.strftime("%Y-%m")] += 1

        return (
            series("revenue", revenue),
            series("expenses", expenses),
            series("cash_expenses", cash),
            series("journal_volume", volume),
        )

    # -- runs --------------------------------------------------------------

    def _next_version(self, financial_year: str) -> int:
        current = self.session.execute(
            select(func.max(ComplianceRun.version)).where(
                ComplianceRun.organization_id == self.organization_id,
                ComplianceRun.financial_year == financial_year,
            )
        ).scalar()
        return (current or 0) + 1

    def run_audit(
        self,
        financial_year: str | FinancialYear,
        actor_id: UUID,
        run_type: RunType | str = RunType.FULL,
    ) -> ComplianceRun:
        """
        Evaluate the year and persist the outcome as the next version.

        Every reconciled module is reconciled as of the year end first, so
        the data-integrity checks judge this year's books rather than
        whatever reconciliation happened to run last.

        Returns the flushed ComplianceRun with its checks, themes,
        anomalies and samples attached.
        """
        run_type = RunType(run_type)
        fy = parse_financial_year(financial_year)
        self._reconciler.reconcile(None, fy.end, actor_id)
        snapshot = self.build_snapshot(fy)
        outcome = evaluate_audit(snapshot, self.config)
        run = self._build_run(outcome, run_type, actor_id)
        self.session.add(run)
        self.session.flush()

        logger.info(
            "compliance_run_completed",
            extra={
                "financial_year": run.financial_year,
                "version": run.version,
                "run_type": run.run_type,
                "compliance_score": run.compliance_score,
                "ai_risk_index": run.ai_risk_index,
                "ifc_rating": run.ifc_rating,
                "failed_checks": run.failed_checks,
            },
        )
        return run

    def _build_run(self, outcome: AuditOutcome, run_type: RunType, actor_id: UUID) -> ComplianceRun:
        run = ComplianceRun(
            organization_id=self.organization_id,
            financial_year=outcome.financial_year,
            version=self._next_version(outcome.financial_year),
            run_type=run_type.value,
            compliance_score=outcome.compliance_score,
            ai_risk_index=outcome.ai_risk_index,
            score_breakdown=dict(outcome.score_breakdown),
            risk_breakdown=outcome.risk_breakdown,
            ifc_rating=outcome.ifc_rating.value if outcome.ifc_rating else None,
            total_checks=len(outcome.checks),
            passed_checks=outcome.count(CheckStatus.PASS),
            failed_checks=outcome.count(CheckStatus.FAIL),
            warning_checks=outcome.count(CheckStatus.WARNING),
            completed_at=self.clock.now(),
            created_by_id=actor_id,
        )
        for seq, check in enumerate(outcome.checks):
            run.checks.append(
                ComplianceCheck(
                    seq=seq,
                    check_code=check.code,
                    category=check.category,
                    module=check.module,
                    check_name=check.name,
                    severity=check.severity.value,
                    status=check.status.value,
                    affected_count=check.affected_count,
                    recommendation=check.recommendation,
                    details=check.details or None,
                    created_by_id=actor_id,
                )
            )
        for seq, theme in enumerate(outcome.themes):
            run.themes.append(
                RiskTheme(
                    seq=seq,
                    theme=theme.theme,
                    risk_score=theme.score,
                    max_score=theme.max_score,
                    trigger=theme.trigger,
                    created_by_id=actor_id,
                )
            )
        for seq, anomaly in enumerate(outcome.anomalies):
            run.anomalies.append(
                ComplianceAnomaly(
                    seq=seq,
                    category=anomaly.category,
                    period_label=anomaly.period_label,
                    observed=anomaly.observed,
                    baseline=anomaly.baseline,
                    deviation_pct=anomaly.deviation_pct,
                    risk_score=anomaly.risk_score,
                    confidence_score=anomaly.confidence_score,
                    reason=anomaly.reason,
                    created_by_id=actor_id,
                )
            )
        for seq, sample in enumerate(outcome.samples):
            run.samples.append(
                AuditSample(
                    seq=seq,
                    strategy=sample.strategy.value,
                    entity_type=sample.entity_type,
                    entity_id=sample.entity_id,
                    amount=sample.amount,
                    risk_score=sample.risk_score,
                    value_band=sample.value_band,
                    reason=sample.reason,
                    created_by_id=actor_id,
                )
            )
        return run

    def latest_run(self, financial_year: str) -> ComplianceRun | None:
        """Highest-version full run; simulations are never authoritative."""
        label = parse_financial_year(financial_year).label
        return self.session.execute(
            select(ComplianceRun)
            .where(
                ComplianceRun.organization_id == self.organization_id,
                ComplianceRun.financial_year == label,
                ComplianceRun.run_type == RunType.FULL.value,
            )
            .order_by(ComplianceRun.version.desc())
            .limit(1)
        ).scalar_one_or_none()

    def list_runs(self, financial_year: str) -> list[ComplianceRun]:
        label = parse_financial_year(financial_year).label
        return list(
            self.session.execute(
                select(ComplianceRun)
                .where(
                    ComplianceRun.organization_id == self.organization_id,
                    ComplianceRun.financial_year == label,
                )
                .order_by(ComplianceRun.version)
            ).scalars()
        )

    def get_run(self, run_id: UUID) -> ComplianceRun:
        run = self.session.execute(
            select(ComplianceRun).where(
                ComplianceRun.organization_id == self.organization_id,
                ComplianceRun.id == run_id,
            )
        ).scalar_one_or_none()
        if run is None:
            raise ComplianceRunNotFoundError(str(run_id))
        return run

    def generate_auditor_pack(self, run_id: UUID) -> dict[str, Any]:
        """
        Everything an external auditor needs from one run, as plain data.

        Keys and nested lists are in a fixed order, so the same run always
        serializes to the same JSON.
        """
        run = self.get_run(run_id)
        checks_by_category: dict[str, list[dict[str, Any]]] = {}
        for check in run.checks:
            checks_by_category.setdefault(check.category, []).append(
                {
                    "code": check.check_code,
                    "name": check.check_name,
                    "module": check.module,
                    "severity": check.severity,
                    "status": check.status,
                    "affected_count": check.affected_count,
                    "recommendation": check.recommendation,
                    "details": check.details or {},
                }
            )
        return {
            "run": {
                "id": str(run.id),
                "financial_year": run.financial_year,
                "version": run.version,
                "run_type": run.run_type,
                "completed_at": run.completed_at.isoformat(),
                "compliance_score": run.compliance_score,
                "ai_risk_index": run.ai_risk_index,
                "ifc_rating": run.ifc_rating,
                "score_breakdown": dict(run.score_breakdown),
                "risk_breakdown": dict(run.risk_breakdown),
                "total_checks": run.total_checks,
                "passed_checks": run.passed_checks,
                "failed_checks": run.failed_checks,
                "warning_checks": run.warning_checks,
            },
            "checks": {category: checks_by_category[category] for category in sorted(checks_by_category)},
            "themes": [
                {
                    "theme": t.theme,
                    "risk_score": t.risk_score,
                    "max_score": t.max_score,
                    "trigger": t.trigger,
                }
                for t in run.themes
            ],
            "anomalies": [
                {
                    "category": a.category,
                    "period": a.period_label,
                    "observed": str(to_money(a.observed)),
                    "baseline": str(to_money(a.baseline)),
                    "deviation_pct": str(to_money(a.deviation_pct)),
                    "risk_score": a.risk_score,
                    "confidence_score": str(to_money(a.confidence_score)),
                    "reason": a.reason,
                }
                for a in run.anomalies
            ],
            "samples": [
                {
                    "strategy": s.strategy,
                    "entity_type": s.entity_type,
                    "entity_id": s.entity_id,
                    "amount": str(to_money(s.amount)),
                    "risk_score": s.risk_score,
                    "value_band": s.value_band,
                    "reason": s.reason,
                }
                for s in run.samples
            ],
        }

"""
ledger_services.reconciliation_service -- GL control account vs. sub-ledger.

Responsibility:
    For each requested module, compare the control account balance (from
    the journal) with an independent aggregate of the module's own records
    and append one ReconciliationRecord per module under a shared run_id.

Architecture position:
    Services -- composes LedgerSelector (kernel) with the sub-ledger
    module services.  The two sides are computed from different tables,
    so a posting that bypassed the sub-ledger (or a sub-ledger row without
    its posting) shows up as variance.

Invariants enforced:
    - variance == gl_balance - subledger_balance.
    - is_reconciled == (|variance| <= tolerance).
    - Records are appended, never updated; variances are reported, never
      auto-corrected.

Failure modes:
    - UnknownReconciliationModuleError for a module with no configured
      control role.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from datetime import date
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ledger_config import LedgerConfig, get_active_config
from ledger_kernel.domain.clock import Clock
from ledger_kernel.domain.values import ZERO, to_money
from ledger_kernel.exceptions import UnknownReconciliationModuleError
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.reconciliation import ReconciliationRecord, VarianceSeverity
from ledger_kernel.selectors.ledger_selector import LedgerSelector
from ledger_kernel.services.base import BaseService
from ledger_modules.ap.service import PayablesService
from ledger_modules.ar.service import ReceivablesService
from ledger_modules.cash.service import CashService
from ledger_modules.payroll.service import PayrollService

logger = get_logger("services.reconciliation")

RECONCILED_MODULES = ("bank", "receivables", "payables", "payroll")


class SubledgerReconciler(BaseService[ReconciliationRecord]):
    """
    Contract:
        ``reconcile`` is read-only against the ledger and the sub-ledgers
        and writes only ReconciliationRecord rows.  Flush only.
    """

    def __init__(
        self,
        session: Session,
        organization_id: UUID,
        config: LedgerConfig | None = None,
        clock: Clock | None = None,
    ):
        super().__init__(session, organization_id, clock)
        self.config = config or get_active_config()
        self._ledger = LedgerSelector(session, organization_id)
        args = (session, organization_id, self.config, self.clock)
        self._aggregates: dict[str, Callable[[date], Decimal]] = {
            "bank": CashService(*args).balance,
            "receivables": ReceivablesService(*args).outstanding_balance,
            "payables": PayablesService(*args).outstanding_balance,
            "payroll": PayrollService(*args).outstanding_balance,
        }

    def severity_for(self, variance: Decimal, tolerance: Decimal) -> VarianceSeverity:
        settings = self.config.reconciliation
        magnitude = abs(variance)
        if magnitude <= tolerance:
            return VarianceSeverity.NONE
        if magnitude > settings.critical_variance:
            return VarianceSeverity.CRITICAL
        if magnitude > settings.high_variance:
            return VarianceSeverity.HIGH
        return VarianceSeverity.MEDIUM

    def control_account_code(self, module: str) -> str:
        role = self.config.reconciliation.module_roles.get(module)
        if role is None or module not in self._aggregates:
            raise UnknownReconciliationModuleError(module)
        return self.config.account_code(role)

    def reconcile(
        self,
        modules: Iterable[str] | None,
        as_of_date: date,
        actor_id: UUID,
        tolerance: Decimal | None = None,
    ) -> list[ReconciliationRecord]:
        """
        Append one record per module, in the order given.

        ``modules=None`` reconciles every configured module.  Unknown
        module names are rejected before anything is written.
        """
        modules = list(modules) if modules is not None else list(RECONCILED_MODULES)
        codes = {module: self.control_account_code(module) for module in modules}
        tolerance = to_money(
            self.config.reconciliation.default_tolerance if tolerance is None else tolerance
        )
        run_id = uuid4()
        computed_at = self.clock.now()

        records = []
        for module in modules:
            gl_balance = to_money(self._ledger.account_balance(codes[module], as_of_date))
            subledger_balance = to_money(self._aggregates[module](as_of_date))
            variance = to_money(gl_balance - subledger_balance)
            severity = self.severity_for(variance, tolerance)
            record = ReconciliationRecord(
                organization_id=self.organization_id,
                run_id=run_id,
                module=module,
                control_account_code=codes[module],
                as_of_date=as_of_date,
                gl_balance=gl_balance,
                subledger_balance=subledger_balance,
                variance=variance,
                tolerance=tolerance,
                is_reconciled=abs(variance) <= tolerance,
                severity=severity.value,
                computed_at=computed_at,
                created_by_id=actor_id,
            )
            self.session.add(record)
            records.append(record)
            if not record.is_reconciled:
                logger.warning(
                    "reconciliation_variance_detected",
                    extra={
                        "reconciled_module": module,
                        "as_of_date": str(as_of_date),
                        "gl_balance": str(gl_balance),
                        "subledger_balance": str(subledger_balance),
                        "variance": str(variance),
                        "severity": severity.value,
                    },
                )

        self.session.flush()
        logger.info(
            "reconciliation_completed",
            extra={
                "run_id": str(run_id),
                "as_of_date": str(as_of_date),
                "module_count": len(records),
                "unreconciled_count": sum(1 for r in records if not r.is_reconciled),
            },
        )
        return records

    def latest_snapshot(
        self,
        modules: Sequence[str] | None = None,
        as_of_from: date | None = None,
        as_of_to: date | None = None,
    ) -> dict[str, ReconciliationRecord]:
        """
        Most recent record per module; modules never reconciled are absent.

        ``as_of_from`` / ``as_of_to`` restrict the candidates to records
        whose as_of_date falls in that window, so a year's audit never sees
        a reconciliation taken for another year.
        """
        modules = list(modules) if modules is not None else list(RECONCILED_MODULES)
        conditions = [
            ReconciliationRecord.organization_id == self.organization_id,
            ReconciliationRecord.module.in_(modules),
        ]
        if as_of_from is not None:
            conditions.append(ReconciliationRecord.as_of_date >= as_of_from)
        if as_of_to is not None:
            conditions.append(ReconciliationRecord.as_of_date <= as_of_to)
        latest = (
            select(
                ReconciliationRecord.module,
                func.max(ReconciliationRecord.computed_at).label("computed_at"),
            )
            .where(*conditions)
            .group_by(ReconciliationRecord.module)
            .subquery()
        )
        rows = self.session.execute(
            select(ReconciliationRecord)
            .join(
                latest,
                (ReconciliationRecord.module == latest.c.module)
                & (ReconciliationRecord.computed_at == latest.c.computed_at),
            )
            .where(*conditions)
            .order_by(ReconciliationRecord.module, ReconciliationRecord.created_at)
        ).scalars()
        snapshot: dict[str, ReconciliationRecord] = {}
        for record in rows:
            snapshot[record.module] = record
        return snapshot

    def history(self, module: str) -> list[ReconciliationRecord]:
        """Every record for a module, oldest first."""
        return list(
            self.session.execute(
                select(ReconciliationRecord)
                .where(
                    ReconciliationRecord.organization_id == self.organization_id,
                    ReconciliationRecord.module == module,
                )
                .order_by(ReconciliationRecord.computed_at, ReconciliationRecord.created_at)
            ).scalars()
        )

    def total_variance(self, records: Iterable[ReconciliationRecord]) -> Decimal:
        return to_money(sum((abs(r.variance) for r in records), ZERO))

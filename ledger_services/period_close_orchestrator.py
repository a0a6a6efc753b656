"""
ledger_services.period_close_orchestrator -- month-end close sequencing.

Responsibility:
    Sequence a period close: take the close lock (OPEN -> CLOSING), prove
    the ledger balances as of the period end, post the month's depreciation
    batch as close postings, then flip the period to CLOSED.  All business
    logic lives in PeriodService, LedgerSelector and AssetService; the
    orchestrator adds ordering and the failure path.

Architecture position:
    Services -- composes kernel services with the assets module.

Invariants enforced:
    - Only close postings may land in a CLOSING period, so the depreciation
      batch is the last thing posted before CLOSED.
    - The depreciation batch is idempotent per (asset, period end); closing
      after a manual batch run posts nothing new.
    - On any failure the period is returned to OPEN and the error re-raised.

Failure modes:
    - PeriodNotFoundError, PeriodAlreadyClosedError, PeriodClosingError from
      PeriodService.
    - LedgerIntegrityError if the trial balance does not balance.

Audit relevance:
    The result carries the ledger hash at close and the depreciation
    outcome; ``period_close_completed`` is logged with both.
"""

from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

from sqlalchemy.orm import Session

from ledger_config import LedgerConfig, get_active_config
from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.domain.dtos import FiscalPeriodInfo
from ledger_kernel.logging_config import get_logger
from ledger_kernel.selectors.ledger_selector import LedgerSelector, TrialBalance
from ledger_kernel.services.period_service import PeriodService
from ledger_modules.assets.service import AssetService, DepreciationBatchResult

logger = get_logger("services.period_close")


@dataclass(frozen=True)
class PeriodCloseResult:
    period: FiscalPeriodInfo
    trial_balance: TrialBalance
    depreciation: DepreciationBatchResult
    ledger_hash: str
    next_period: FiscalPeriodInfo | None = None


class PeriodCloseOrchestrator:
    """Runs the close for one period.  Flush only; the caller commits."""

    def __init__(
        self,
        session: Session,
        organization_id: UUID,
        config: LedgerConfig | None = None,
        clock: Clock | None = None,
    ):
        self.session = session
        self.organization_id = organization_id
        self.config = config or get_active_config()
        self.clock = clock or SystemClock()
        self._periods = PeriodService(session, organization_id, self.clock)
        self._ledger = LedgerSelector(session, organization_id)
        self._assets = AssetService(session, organization_id, self.config, self.clock)

    def close_period(
        self,
        period_id: UUID,
        actor_id: UUID,
        open_next: bool = False,
    ) -> PeriodCloseResult:
        period = self._periods.begin_closing(period_id, actor_id)
        try:
            trial_balance = self._ledger.trial_balance(period.end_date)
            depreciation = self._assets.run_depreciation_batch(
                period.end_date, actor_id, is_close_posting=True
            )
            ledger_hash = self._ledger.canonical_hash(period.end_date)
            closed = self._periods.mark_closed(period_id, actor_id)
        except Exception:
            logger.warning(
                "period_close_failed",
                extra={"period_name": period.period_name},
                exc_info=True,
            )
            self._periods.cancel_closing(period_id, actor_id)
            raise

        next_period = self._periods.open_next_period(period_id, actor_id) if open_next else None

        logger.info(
            "period_close_completed",
            extra={
                "period_name": closed.period_name,
                "end_date": str(closed.end_date),
                "depreciation_posted": depreciation.posted,
                "depreciation_total": str(depreciation.total_amount),
                "ledger_hash": ledger_hash,
            },
        )
        return PeriodCloseResult(
            period=closed,
            trial_balance=trial_balance,
            depreciation=depreciation,
            ledger_hash=ledger_hash,
            next_period=next_period,
        )

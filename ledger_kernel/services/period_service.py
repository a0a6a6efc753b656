"""
PeriodService -- fiscal period lifecycle and posting-date validation.

Responsibility:
    Creates contiguous, non-overlapping periods and drives the lifecycle
    OPEN -> CLOSING -> CLOSED -> LOCKED.  Validates that a posting targets
    a period that accepts it.

Invariants enforced:
    - No overlap and no gap between an organization's periods.
    - CLOSED and LOCKED periods reject every posting.
    - CLOSING periods reject every posting except the close's own system
      batch (``is_close_posting=True``).
    - Status transitions follow ALLOWED_TRANSITIONS; closed never reopens.
    - Row lock (SELECT ... FOR UPDATE) on every lifecycle transition, and a
      shared lock on the period row while posting, so a post and a close
      for the same range serialize.

Failure modes:
    - PeriodNotFoundError, ClosedPeriodError, PeriodClosingError,
      PeriodAlreadyClosedError, PeriodOverlapError, PeriodGapError,
      InvalidPeriodTransitionError.
"""

from datetime import date, timedelta
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from ledger_kernel.domain.dtos import FiscalPeriodInfo
from ledger_kernel.domain.fiscal_calendar import (
    financial_year_for,
    months_of,
    parse_financial_year,
)
from ledger_kernel.exceptions import (
    ClosedPeriodError,
    InvalidPeriodTransitionError,
    PeriodAlreadyClosedError,
    PeriodClosingError,
    PeriodGapError,
    PeriodNotFoundError,
    PeriodOverlapError,
)
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.fiscal_period import (
    ALLOWED_TRANSITIONS,
    FiscalPeriod,
    PeriodStatus,
)
from ledger_kernel.services.base import BaseService

logger = get_logger("services.period")


class PeriodService(BaseService[FiscalPeriod]):
    """Service for managing fiscal period lifecycle."""

    def _to_dto(self, period: FiscalPeriod) -> FiscalPeriodInfo:
        return FiscalPeriodInfo(
            id=period.id,
            period_name=period.period_name,
            financial_year=period.financial_year,
            start_date=period.start_date,
            end_date=period.end_date,
            status=PeriodStatus(period.status).value,
            closed_at=period.closed_at,
        )

    # -- creation ----------------------------------------------------------

    def create_period(
        self,
        period_name: str,
        start_date: date,
        end_date: date,
        actor_id: UUID,
    ) -> FiscalPeriodInfo:
        """
        Create a new OPEN fiscal period.

        The new range must not overlap any existing period, and must abut
        its nearest neighbours without leaving uncovered days.

        Raises:
            ValueError: If start_date > end_date.
            PeriodOverlapError: If the range overlaps an existing period.
            PeriodGapError: If the range leaves a gap next to a neighbour.
        """
        if start_date > end_date:
            raise ValueError(
                f"start_date ({start_date}) cannot be after end_date ({end_date})"
            )

        self._validate_no_overlap(period_name, start_date, end_date)
        self._validate_contiguous(period_name, start_date, end_date)

        period = FiscalPeriod(
            organization_id=self.organization_id,
            period_name=period_name,
            financial_year=financial_year_for(start_date).label,
            start_date=start_date,
            end_date=end_date,
            status=PeriodStatus.OPEN.value,
            created_by_id=actor_id,
        )
        self.session.add(period)
        self.session.flush()

        logger.info(
            "period_created",
            extra={
                "period_name": period_name,
                "start_date": str(start_date),
                "end_date": str(end_date),
            },
        )
        return self._to_dto(period)

    def create_financial_year_periods(
        self, financial_year: str, actor_id: UUID
    ) -> list[FiscalPeriodInfo]:
        """Create the twelve monthly periods of a financial year that do not yet exist."""
        fy = parse_financial_year(financial_year)
        created = []
        for month in months_of(fy):
            if self._get_period_orm(month.label) is not None:
                continue
            created.append(
                self.create_period(month.label, month.start, month.end, actor_id)
            )
        return created

    def _validate_no_overlap(self, period_name: str, start_date: date, end_date: date) -> None:
        overlapping = self.session.execute(
            select(FiscalPeriod)
            .where(
                FiscalPeriod.organization_id == self.organization_id,
                FiscalPeriod.start_date <= end_date,
                FiscalPeriod.end_date >= start_date,
            )
            .limit(1)
        ).scalar_one_or_none()
        if overlapping is not None:
            raise PeriodOverlapError(period_name, overlapping.period_name)

    def _validate_contiguous(self, period_name: str, start_date: date, end_date: date) -> None:
        before = self.session.execute(
            select(FiscalPeriod)
            .where(
                FiscalPeriod.organization_id == self.organization_id,
                FiscalPeriod.end_date < start_date,
            )
            .order_by(FiscalPeriod.end_date.desc())
            .limit(1)
        ).scalar_one_or_none()
        if before is not None and before.end_date + timedelta(days=1) != start_date:
            raise PeriodGapError(
                period_name,
                str(before.end_date + timedelta(days=1)),
                str(start_date - timedelta(days=1)),
            )

        after = self.session.execute(
            select(FiscalPeriod)
            .where(
                FiscalPeriod.organization_id == self.organization_id,
                FiscalPeriod.start_date > end_date,
            )
            .order_by(FiscalPeriod.start_date)
            .limit(1)
        ).scalar_one_or_none()
        if after is not None and end_date + timedelta(days=1) != after.start_date:
            raise PeriodGapError(
                period_name,
                str(end_date + timedelta(days=1)),
                str(after.start_date - timedelta(days=1)),
            )

    # -- lifecycle ---------------------------------------------------------

    def _transition(self, period: FiscalPeriod, target: PeriodStatus) -> None:
        current = PeriodStatus(period.status)
        if target not in ALLOWED_TRANSITIONS[current]:
            if target in (PeriodStatus.CLOSING, PeriodStatus.CLOSED) and period.is_closed:
                raise PeriodAlreadyClosedError(period.period_name)
            if target == PeriodStatus.CLOSING and current == PeriodStatus.CLOSING:
                raise PeriodClosingError(period.period_name, str(period.start_date))
            raise InvalidPeriodTransitionError(
                period.period_name, current.value, target.value
            )
        period.status = target.value

    def begin_closing(self, period_id: UUID, actor_id: UUID) -> FiscalPeriodInfo:
        """
        OPEN -> CLOSING.  From here on only close postings are accepted.

        Raises:
            PeriodAlreadyClosedError: If period is already closed.
            PeriodClosingError: If another close is already in progress.
        """
        period = self._require_for_update(period_id)
        self._transition(period, PeriodStatus.CLOSING)
        period.updated_by_id = actor_id
        self.session.flush()
        logger.info("period_closing_begun", extra={"period_name": period.period_name})
        return self._to_dto(period)

    def cancel_closing(self, period_id: UUID, actor_id: UUID) -> FiscalPeriodInfo:
        """CLOSING -> OPEN, releasing the close lock after a failed close."""
        period = self._require_for_update(period_id)
        self._transition(period, PeriodStatus.OPEN)
        period.updated_by_id = actor_id
        self.session.flush()
        logger.info("period_closing_cancelled", extra={"period_name": period.period_name})
        return self._to_dto(period)

    def mark_closed(self, period_id: UUID, actor_id: UUID) -> FiscalPeriodInfo:
        """
        OPEN/CLOSING -> CLOSED.  Terminal for posting.

        An OPEN period passes through CLOSING implicitly.
        """
        period = self._require_for_update(period_id)
        if period.is_open:
            self._transition(period, PeriodStatus.CLOSING)
        self._transition(period, PeriodStatus.CLOSED)
        period.closed_at = self.clock.now()
        period.closed_by_id = actor_id
        period.updated_by_id = actor_id

        try:
            self.session.flush()
        except IntegrityError:
            logger.warning(
                "concurrent_period_close_conflict",
                extra={"period_name": period.period_name},
            )
            raise PeriodAlreadyClosedError(period.period_name)

        logger.info("period_closed", extra={"period_name": period.period_name})
        return self._to_dto(period)

    def lock_period(self, period_id: UUID, actor_id: UUID) -> FiscalPeriodInfo:
        """CLOSED -> LOCKED (year-end hardening)."""
        period = self._require_for_update(period_id)
        self._transition(period, PeriodStatus.LOCKED)
        period.updated_by_id = actor_id
        self.session.flush()
        logger.info("period_locked", extra={"period_name": period.period_name})
        return self._to_dto(period)

    def open_next_period(self, period_id: UUID, actor_id: UUID) -> FiscalPeriodInfo | None:
        """
        Ensure the calendar month after the given period exists.

        Returns the created period, or None if it already existed.
        """
        period = self._require(period_id)
        next_start = period.end_date + timedelta(days=1)
        if self._get_period_for_date_orm(next_start) is not None:
            return None
        month_end = (next_start.replace(day=28) + timedelta(days=4)).replace(day=1) - timedelta(days=1)
        return self.create_period(
            f"{next_start.year:04d}-{next_start.month:02d}",
            next_start,
            month_end,
            actor_id,
        )

    # -- queries -----------------------------------------------------------

    def _scoped(self):
        return select(FiscalPeriod).where(
            FiscalPeriod.organization_id == self.organization_id
        )

    def _get_period_orm(self, period_name: str) -> FiscalPeriod | None:
        return self.session.execute(
            self._scoped().where(FiscalPeriod.period_name == period_name)
        ).scalar_one_or_none()

    def _require(self, period_id: UUID) -> FiscalPeriod:
        period = self.session.execute(
            self._scoped().where(FiscalPeriod.id == period_id)
        ).scalar_one_or_none()
        if period is None:
            raise PeriodNotFoundError(str(period_id))
        return period

    def _require_for_update(self, period_id: UUID) -> FiscalPeriod:
        period = self.session.execute(
            self._scoped()
            .where(FiscalPeriod.id == period_id)
            .with_for_update()
        ).scalar_one_or_none()
        if period is None:
            raise PeriodNotFoundError(str(period_id))
        return period

    def _get_period_for_date_orm(
        self, effective_date: date, *, lock: bool = False
    ) -> FiscalPeriod | None:
        stmt = self._scoped().where(
            FiscalPeriod.start_date <= effective_date,
            FiscalPeriod.end_date >= effective_date,
        )
        if lock:
            stmt = stmt.with_for_update(read=True)
        return self.session.execute(stmt).scalar_one_or_none()

    def get_period(self, period_id: UUID) -> FiscalPeriodInfo:
        return self._to_dto(self._require(period_id))

    def get_period_by_name(self, period_name: str) -> FiscalPeriodInfo | None:
        period = self._get_period_orm(period_name)
        return self._to_dto(period) if period else None

    def get_period_for_date(self, effective_date: date) -> FiscalPeriodInfo | None:
        period = self._get_period_for_date_orm(effective_date)
        return self._to_dto(period) if period else None

    def list_periods(self) -> list[FiscalPeriodInfo]:
        periods = self.session.execute(
            self._scoped().order_by(FiscalPeriod.start_date)
        ).scalars()
        return [self._to_dto(p) for p in periods]

    def validate_effective_date(
        self, effective_date: date, *, is_close_posting: bool = False
    ) -> FiscalPeriodInfo:
        """
        Validate that a posting can be made for the given date.

        Takes a shared lock on the covering period row, so a concurrent
        close (which takes an exclusive lock) waits for this transaction.

        Raises:
            PeriodNotFoundError: If no period covers the date.
            ClosedPeriodError: If the period is closed or locked.
            PeriodClosingError: If the period is closing and this is not
                a close posting.
        """
        period = self._get_period_for_date_orm(effective_date, lock=True)

        if period is None:
            raise PeriodNotFoundError(str(effective_date))

        if period.is_closed:
            logger.warning(
                "posting_rejected_closed_period",
                extra={"period_name": period.period_name, "entry_date": str(effective_date)},
            )
            raise ClosedPeriodError(period.period_name, str(effective_date))

        if period.is_closing and not is_close_posting:
            logger.warning(
                "posting_rejected_closing_period",
                extra={"period_name": period.period_name, "entry_date": str(effective_date)},
            )
            raise PeriodClosingError(period.period_name, str(effective_date))

        return self._to_dto(period)

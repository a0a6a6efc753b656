"""
Module: ledger_kernel.models.fiscal_period
Responsibility: ORM persistence for fiscal periods.
Architecture position: Kernel > Models.

Invariants enforced:
    - period_name is unique within an organization.
    - start_date <= end_date (ck_period_dates).
    - Periods are contiguous and non-overlapping (checked by PeriodService
      at creation time).
    - Status only moves forward: OPEN -> CLOSING -> CLOSED -> LOCKED, with
      CLOSING -> OPEN allowed to abandon a failed close.
"""

from datetime import date, datetime
from enum import Enum
from uuid import UUID

from sqlalchemy import CheckConstraint, Date, DateTime, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import OrganizationScoped, TrackedBase, UUIDString


class PeriodStatus(str, Enum):
    """Lifecycle status of a fiscal period."""

    OPEN = "open"
    CLOSING = "closing"
    CLOSED = "closed"
    LOCKED = "locked"


ALLOWED_TRANSITIONS: dict[PeriodStatus, frozenset[PeriodStatus]] = {
    PeriodStatus.OPEN: frozenset({PeriodStatus.CLOSING}),
    PeriodStatus.CLOSING: frozenset({PeriodStatus.CLOSED, PeriodStatus.OPEN}),
    PeriodStatus.CLOSED: frozenset({PeriodStatus.LOCKED}),
    PeriodStatus.LOCKED: frozenset(),
}


class FiscalPeriod(TrackedBase, OrganizationScoped):
    """A contiguous date range that gates posting."""

    __tablename__ = "fiscal_periods"

    __table_args__ = (
        UniqueConstraint("organization_id", "period_name", name="uq_period_org_name"),
        CheckConstraint("start_date <= end_date", name="ck_period_dates"),
        Index("idx_period_org_dates", "organization_id", "start_date", "end_date"),
    )

    # e.g. "2024-04"
    period_name: Mapped[str] = mapped_column(String(20), nullable=False)

    # e.g. "2024-2025"
    financial_year: Mapped[str] = mapped_column(String(9), nullable=False)

    start_date: Mapped[date] = mapped_column(Date, nullable=False)

    end_date: Mapped[date] = mapped_column(Date, nullable=False)

    status: Mapped[PeriodStatus] = mapped_column(
        String(20),
        default=PeriodStatus.OPEN.value,
        nullable=False,
    )

    closed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    closed_by_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    def __repr__(self) -> str:
        return f"<FiscalPeriod {self.period_name} {self.status}>"

    @property
    def is_open(self) -> bool:
        return self.status == PeriodStatus.OPEN

    @property
    def is_closing(self) -> bool:
        return self.status == PeriodStatus.CLOSING

    @property
    def is_closed(self) -> bool:
        """Closed or locked; either way no posting is accepted."""
        return self.status in (PeriodStatus.CLOSED, PeriodStatus.LOCKED)

    def contains_date(self, check_date: date) -> bool:
        return self.start_date <= check_date <= self.end_date

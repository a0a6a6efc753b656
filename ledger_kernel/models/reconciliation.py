"""
Module: ledger_kernel.models.reconciliation
Responsibility: Append-only history of GL control account vs. sub-ledger
    comparisons.
Architecture position: Kernel > Models.

Invariants enforced:
    - variance == gl_balance - subledger_balance.
    - is_reconciled == (abs(variance) <= tolerance).
    - Rows are never updated or deleted (db/immutability.py).  Each run
      writes one new row per module under a shared run_id, so drift over
      time stays auditable.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from sqlalchemy import Boolean, Date, DateTime, Index, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import OrganizationScoped, TrackedBase, UUIDString


class VarianceSeverity(str, Enum):
    NONE = "none"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ReconciliationRecord(TrackedBase, OrganizationScoped):
    """One module's GL vs. sub-ledger snapshot within a reconciliation run."""

    __tablename__ = "reconciliation_records"

    __table_args__ = (
        Index("idx_recon_org_module", "organization_id", "module", "computed_at"),
        Index("idx_recon_run", "run_id"),
    )

    run_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    module: Mapped[str] = mapped_column(String(30), nullable=False)

    control_account_code: Mapped[str] = mapped_column(String(50), nullable=False)

    as_of_date: Mapped[date] = mapped_column(Date, nullable=False)

    gl_balance: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)

    subledger_balance: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)

    variance: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)

    tolerance: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)

    is_reconciled: Mapped[bool] = mapped_column(Boolean, nullable=False)

    severity: Mapped[VarianceSeverity] = mapped_column(String(10), nullable=False)

    computed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    def __repr__(self) -> str:
        return f"<ReconciliationRecord {self.module} variance={self.variance}>"

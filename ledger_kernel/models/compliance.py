"""
Module: ledger_kernel.models.compliance
Responsibility: ORM persistence for compliance audit runs and their child
    annotations (checks, risk themes, anomalies, audit samples).
Architecture position: Kernel > Models.

Invariants enforced:
    - One run per (organization, financial_year, version); the highest
      version of run_type "full" is authoritative.
    - compliance_score and ai_risk_index are within 0..100.
    - Runs and their children are append-only (db/immutability.py).
      Children are read-only annotations and never touch the ledger.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import (
    JSON,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ledger_kernel.db.base import OrganizationScoped, TrackedBase, UUIDString
from ledger_kernel.domain.audit_types import (
    CheckSeverity,
    CheckStatus,
    IfcRating,
    RunType,
    SampleStrategy,
)

__all__ = [
    "AuditSample",
    "CheckSeverity",
    "CheckStatus",
    "ComplianceAnomaly",
    "ComplianceCheck",
    "ComplianceRun",
    "IfcRating",
    "RiskTheme",
    "RunType",
    "SampleStrategy",
]


class ComplianceRun(TrackedBase, OrganizationScoped):
    """A scored compliance pass over one financial year."""

    __tablename__ = "compliance_runs"

    __table_args__ = (
        UniqueConstraint(
            "organization_id",
            "financial_year",
            "version",
            name="uq_compliance_run_version",
        ),
        CheckConstraint(
            "compliance_score >= 0 AND compliance_score <= 100",
            name="ck_compliance_score_range",
        ),
        CheckConstraint(
            "ai_risk_index >= 0 AND ai_risk_index <= 100",
            name="ck_risk_index_range",
        ),
        Index("idx_compliance_run_fy", "organization_id", "financial_year"),
    )

    financial_year: Mapped[str] = mapped_column(String(9), nullable=False)

    version: Mapped[int] = mapped_column(Integer, nullable=False)

    run_type: Mapped[RunType] = mapped_column(String(20), nullable=False)

    compliance_score: Mapped[int] = mapped_column(Integer, nullable=False)

    ai_risk_index: Mapped[int] = mapped_column(Integer, nullable=False)

    score_breakdown: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)

    risk_breakdown: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)

    ifc_rating: Mapped[str | None] = mapped_column(String(10), nullable=True)

    total_checks: Mapped[int] = mapped_column(Integer, nullable=False)
    passed_checks: Mapped[int] = mapped_column(Integer, nullable=False)
    failed_checks: Mapped[int] = mapped_column(Integer, nullable=False)
    warning_checks: Mapped[int] = mapped_column(Integer, nullable=False)

    completed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )

    checks: Mapped[list["ComplianceCheck"]] = relationship(
        back_populates="run",
        order_by="ComplianceCheck.seq",
        lazy="selectin",
    )
    themes: Mapped[list["RiskTheme"]] = relationship(
        back_populates="run",
        order_by="RiskTheme.seq",
        lazy="selectin",
    )
    anomalies: Mapped[list["ComplianceAnomaly"]] = relationship(
        back_populates="run",
        order_by="ComplianceAnomaly.seq",
        lazy="selectin",
    )
    samples: Mapped[list["AuditSample"]] = relationship(
        back_populates="run",
        order_by="AuditSample.seq",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return (
            f"<ComplianceRun {self.financial_year} v{self.version} "
            f"score={self.compliance_score} risk={self.ai_risk_index}>"
        )


class _RunChild(TrackedBase):
    __abstract__ = True

    run_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("compliance_runs.id"),
        nullable=False,
        index=True,
    )

    # Position within the run, for stable ordering
    seq: Mapped[int] = mapped_column(Integer, nullable=False)


class ComplianceCheck(_RunChild):
    __tablename__ = "compliance_checks"

    check_code: Mapped[str] = mapped_column(String(20), nullable=False)
    category: Mapped[str] = mapped_column(String(30), nullable=False)
    module: Mapped[str] = mapped_column(String(30), nullable=False)
    check_name: Mapped[str] = mapped_column(String(200), nullable=False)
    severity: Mapped[CheckSeverity] = mapped_column(String(10), nullable=False)
    status: Mapped[CheckStatus] = mapped_column(String(10), nullable=False)
    affected_count: Mapped[int] = mapped_column(Integer, nullable=False)
    recommendation: Mapped[str] = mapped_column(String(500), default="", nullable=False)
    details: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)

    run: Mapped[ComplianceRun] = relationship(back_populates="checks")


class RiskTheme(_RunChild):
    __tablename__ = "compliance_risk_themes"

    theme: Mapped[str] = mapped_column(String(40), nullable=False)
    risk_score: Mapped[int] = mapped_column(Integer, nullable=False)
    max_score: Mapped[int] = mapped_column(Integer, nullable=False)
    trigger: Mapped[str] = mapped_column(String(500), default="", nullable=False)

    run: Mapped[ComplianceRun] = relationship(back_populates="themes")


class ComplianceAnomaly(_RunChild):
    __tablename__ = "compliance_anomalies"

    category: Mapped[str] = mapped_column(String(40), nullable=False)
    period_label: Mapped[str] = mapped_column(String(20), nullable=False)
    observed: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)
    baseline: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)
    deviation_pct: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)
    risk_score: Mapped[int] = mapped_column(Integer, nullable=False)
    confidence_score: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)
    reason: Mapped[str] = mapped_column(String(500), default="", nullable=False)

    run: Mapped[ComplianceRun] = relationship(back_populates="anomalies")


class AuditSample(_RunChild):
    __tablename__ = "compliance_audit_samples"

    strategy: Mapped[SampleStrategy] = mapped_column(String(20), nullable=False)
    entity_type: Mapped[str] = mapped_column(String(40), nullable=False)
    entity_id: Mapped[str] = mapped_column(String(64), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)
    risk_score: Mapped[int] = mapped_column(Integer, nullable=False)
    value_band: Mapped[int | None] = mapped_column(Integer, nullable=True)
    reason: Mapped[str] = mapped_column(String(500), default="", nullable=False)

    run: Mapped[ComplianceRun] = relationship(back_populates="samples")

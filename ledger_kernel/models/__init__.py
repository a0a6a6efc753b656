"""Domain models for the ledger kernel."""

from ledger_kernel.models.account import (
    Account,
    AccountType,
    ControlModule,
    NormalBalance,
)
from ledger_kernel.models.compliance import (
    AuditSample,
    CheckSeverity,
    CheckStatus,
    ComplianceAnomaly,
    ComplianceCheck,
    ComplianceRun,
    IfcRating,
    RiskTheme,
    RunType,
    SampleStrategy,
)
from ledger_kernel.models.fiscal_period import FiscalPeriod, PeriodStatus
from ledger_kernel.models.journal import JournalEntry, JournalLine, LineSide, SourceType
from ledger_kernel.models.reconciliation import ReconciliationRecord, VarianceSeverity

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
    "Account",
    "AccountType",
    "ControlModule",
    "NormalBalance",
    "FiscalPeriod",
    "PeriodStatus",
    "JournalEntry",
    "JournalLine",
    "LineSide",
    "SourceType",
    "ReconciliationRecord",
    "VarianceSeverity",
]

"""
Orchestration services: period close, sub-ledger reconciliation,
statutory return compilation and compliance audit runs.

Services compose the kernel, the sub-ledger modules and the pure engines.
They flush within the caller's session and never commit.
"""

from ledger_services.compliance_audit_service import ComplianceAuditService
from ledger_services.period_close_orchestrator import PeriodCloseOrchestrator, PeriodCloseResult
from ledger_services.reconciliation_service import RECONCILED_MODULES, SubledgerReconciler
from ledger_services.statutory_report_service import StatutoryReportService

__all__ = [
    "ComplianceAuditService",
    "PeriodCloseOrchestrator",
    "PeriodCloseResult",
    "RECONCILED_MODULES",
    "StatutoryReportService",
    "SubledgerReconciler",
]

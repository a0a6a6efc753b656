"""
Compliance audit engines: check battery, scoring, risk themes, anomaly
detection and audit sampling over a frozen ``AuditSnapshot``.
"""

from ledger_engines.compliance.anomaly import (
    AnomalyFinding,
    PercentageDeviation,
    ZScoreDeviation,
    detect_anomalies,
    strategy_for,
)
from ledger_engines.compliance.audit import AuditOutcome, evaluate_audit
from ledger_engines.compliance.checks import CheckContext, CheckResult, run_checks
from ledger_engines.compliance.sampling import SampleCandidate, SampleItem, draw_samples
from ledger_engines.compliance.scoring import (
    category_scores,
    compliance_score,
    ifc_rating,
    risk_index,
)
from ledger_engines.compliance.snapshot import AuditSnapshot
from ledger_engines.compliance.themes import ThemeScore, score_themes

__all__ = [
    "AnomalyFinding",
    "AuditOutcome",
    "AuditSnapshot",
    "CheckContext",
    "CheckResult",
    "PercentageDeviation",
    "SampleCandidate",
    "SampleItem",
    "ThemeScore",
    "ZScoreDeviation",
    "category_scores",
    "compliance_score",
    "detect_anomalies",
    "draw_samples",
    "evaluate_audit",
    "ifc_rating",
    "risk_index",
    "run_checks",
    "score_themes",
    "strategy_for",
]

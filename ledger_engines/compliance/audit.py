"""
Audit evaluation -- one pure pass from snapshot to scored outcome.

    checks    -> category scores -> compliance_score, IFC rating
    series    -> anomalies
    snapshot + checks + anomalies -> theme scores -> ai_risk_index
    entries + anomalies -> risk-scored candidates -> samples
"""

from __future__ import annotations

from dataclasses import dataclass

from ledger_config.schema import LedgerConfig
from ledger_engines.compliance.anomaly import AnomalyFinding, detect_anomalies
from ledger_engines.compliance.checks import CheckContext, CheckResult, run_checks
from ledger_engines.compliance.sampling import (
    SampleItem,
    draw_samples,
    entry_candidate,
    month_risk,
)
from ledger_engines.compliance.scoring import (
    category_scores,
    compliance_score,
    ifc_rating,
    risk_index,
)
from ledger_engines.compliance.snapshot import AuditSnapshot
from ledger_engines.compliance.themes import ThemeScore, score_themes
from ledger_engines.tracer import traced_engine
from ledger_kernel.domain.audit_types import CheckStatus, IfcRating


@dataclass(frozen=True)
class AuditOutcome:
    financial_year: str
    checks: tuple[CheckResult, ...]
    score_breakdown: dict[str, int]
    compliance_score: int
    ifc_rating: IfcRating | None
    themes: tuple[ThemeScore, ...]
    ai_risk_index: int
    anomalies: tuple[AnomalyFinding, ...]
    samples: tuple[SampleItem, ...]

    @property
    def risk_breakdown(self) -> dict[str, int]:
        return {t.theme: t.score for t in self.themes}

    def count(self, status: CheckStatus) -> int:
        return sum(1 for c in self.checks if c.status is status)


@traced_engine("compliance_audit", "1.0", fingerprint_fields=("snapshot",))
def evaluate_audit(snapshot: AuditSnapshot, config: LedgerConfig) -> AuditOutcome:
    ctx = CheckContext(
        thresholds=config.thresholds,
        gst=config.statutory.gst,
        tds=config.statutory.tds,
    )
    checks = run_checks(snapshot, ctx)
    breakdown = category_scores(checks, config.scoring.categories)
    anomalies = detect_anomalies(snapshot.monthly, config.anomaly)
    themes = score_themes(
        snapshot, checks, anomalies, config.scoring.themes, config.thresholds
    )
    anomaly_scores = month_risk(anomalies)
    candidates = [
        entry_candidate(e, config.thresholds, anomaly_scores) for e in snapshot.entries
    ]
    samples = draw_samples(candidates, config.sampling, snapshot.financial_year)
    return AuditOutcome(
        financial_year=snapshot.financial_year,
        checks=checks,
        score_breakdown=breakdown,
        compliance_score=compliance_score(breakdown),
        ifc_rating=ifc_rating(checks),
        themes=themes,
        ai_risk_index=risk_index({t.theme: t.score for t in themes}),
        anomalies=anomalies,
        samples=samples,
    )

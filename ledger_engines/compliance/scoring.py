"""
Compliance scoring: weighted category score, IFC rating and risk index.

    category score   = round(pass_ratio x weight), pass_ratio over checks
                       whose status is not ``na``; a category with no
                       applicable checks earns its full weight
    compliance_score = sum of category scores (0..100)
    ai_risk_index    = min(100, sum of theme scores)

Rounding is ROUND_HALF_UP on Decimal so the score never depends on float
representation.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from decimal import ROUND_HALF_UP, Decimal

from ledger_engines.compliance.checks import CheckResult
from ledger_kernel.domain.audit_types import CheckStatus, IfcRating

IFC_CATEGORY = "internal_controls"


def round_score(value: Decimal) -> int:
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def category_scores(
    checks: Iterable[CheckResult], weights: Mapping[str, int]
) -> dict[str, int]:
    checks = list(checks)
    scores: dict[str, int] = {}
    for category, weight in weights.items():
        applicable = [c for c in checks if c.category == category and c.is_applicable]
        if not applicable:
            scores[category] = weight
            continue
        passed = sum(1 for c in applicable if c.status is CheckStatus.PASS)
        scores[category] = round_score(Decimal(passed) * weight / len(applicable))
    return scores


def compliance_score(breakdown: Mapping[str, int]) -> int:
    return max(0, min(100, sum(breakdown.values())))


def ifc_rating(checks: Iterable[CheckResult]) -> IfcRating | None:
    """
    Internal financial controls rating.

    Two or more failed control checks is Weak; one failure or three or more
    warnings is Moderate; otherwise Strong.  None when no control check
    applied.
    """
    controls = [c for c in checks if c.category == IFC_CATEGORY and c.is_applicable]
    if not controls:
        return None
    fails = sum(1 for c in controls if c.status is CheckStatus.FAIL)
    warnings = sum(1 for c in controls if c.status is CheckStatus.WARNING)
    if fails >= 2:
        return IfcRating.WEAK
    if fails == 1 or warnings >= 3:
        return IfcRating.MODERATE
    return IfcRating.STRONG


def risk_index(theme_scores: Mapping[str, int]) -> int:
    return max(0, min(100, sum(theme_scores.values())))

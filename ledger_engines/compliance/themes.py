"""
Risk themes.

Each theme turns observable facts from the snapshot, the check results and
the anomaly findings into a signal in [0, 1]; the theme score is
``round(weight x signal)``, so a theme never exceeds its configured
ceiling.

    revenue_pattern       strongest revenue anomaly
    cash_manipulation     share of cash expenses above the 40A(3) limit,
                          or the strongest cash-expense anomaly
    gst / tds             failed checks count 1, warnings 0.5, averaged over
                          the category's applicable checks
    journal               share of entries that are round-figure or
                          back-dated, or the strongest journal-volume anomaly
    control_override      admin overrides against their limit, plus 0.5
                          when unapproved entries exist
    vendor_concentration  top vendor's share of bill spend beyond the
                          concentration threshold
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from decimal import Decimal

from ledger_config.schema import AuditThresholds
from ledger_engines.compliance.anomaly import AnomalyFinding
from ledger_engines.compliance.checks import CheckResult, is_backdated, is_round_figure
from ledger_engines.compliance.scoring import round_score
from ledger_engines.compliance.snapshot import AuditSnapshot
from ledger_kernel.domain.audit_types import CheckStatus
from ledger_kernel.domain.values import ZERO, to_money

_ONE = Decimal("1")
_HALF = Decimal("0.5")


@dataclass(frozen=True)
class ThemeScore:
    theme: str
    score: int
    max_score: int
    signal: Decimal
    trigger: str


def _clamp(value: Decimal) -> Decimal:
    return max(ZERO, min(_ONE, value))


def _strongest(anomalies: Sequence[AnomalyFinding], category: str) -> tuple[Decimal, str]:
    relevant = [a for a in anomalies if a.category == category]
    if not relevant:
        return ZERO, ""
    top = max(relevant, key=lambda a: (a.risk_score, a.period_label))
    return Decimal(top.risk_score) / 100, top.reason


def _check_signal(checks: Sequence[CheckResult], category: str) -> tuple[Decimal, str]:
    applicable = [c for c in checks if c.category == category and c.is_applicable]
    if not applicable:
        return ZERO, ""
    flagged = [c for c in applicable if c.status in (CheckStatus.FAIL, CheckStatus.WARNING)]
    weight = sum((_ONE if c.status is CheckStatus.FAIL else _HALF for c in flagged), ZERO)
    trigger = f"flagged checks: {', '.join(c.code for c in flagged)}" if flagged else ""
    return weight / len(applicable), trigger


def revenue_pattern(snapshot, checks, anomalies, thresholds):
    return _strongest(anomalies, "revenue")


def cash_manipulation(snapshot, checks, anomalies, thresholds):
    cash = [e for e in snapshot.expenses if e.is_cash]
    over = [e for e in cash if e.amount > thresholds.cash_payment_limit]
    share = Decimal(len(over)) / len(cash) if cash else ZERO
    anomaly_signal, reason = _strongest(anomalies, "cash_expenses")
    if share >= anomaly_signal:
        trigger = f"{len(over)} of {len(cash)} cash expenses above limit" if over else ""
        return share, trigger
    return anomaly_signal, reason


def gst(snapshot, checks, anomalies, thresholds):
    return _check_signal(checks, "gst")


def tds(snapshot, checks, anomalies, thresholds):
    return _check_signal(checks, "tds")


def journal(snapshot, checks, anomalies, thresholds):
    entries = snapshot.entries
    odd = [
        e for e in entries
        if is_round_figure(e.amount, thresholds) or is_backdated(e, thresholds)
    ]
    share = Decimal(len(odd)) / len(entries) if entries else ZERO
    anomaly_signal, reason = _strongest(anomalies, "journal_volume")
    if share >= anomaly_signal:
        trigger = f"{len(odd)} round-figure or back-dated entries" if odd else ""
        return share, trigger
    return anomaly_signal, reason


def control_override(snapshot, checks, anomalies, thresholds):
    overrides = sum(1 for e in snapshot.entries if e.is_admin_override)
    unapproved = sum(1 for e in snapshot.entries if not e.is_approved)
    limit = max(1, thresholds.admin_override_limit)
    signal = Decimal(overrides) / limit + (_HALF if unapproved else ZERO)
    parts = []
    if overrides:
        parts.append(f"{overrides} admin overrides")
    if unapproved:
        parts.append(f"{unapproved} unapproved entries")
    return signal, ", ".join(parts)


def vendor_concentration(snapshot, checks, anomalies, thresholds):
    spend: dict[str, Decimal] = defaultdict(lambda: ZERO)
    names: dict[str, str] = {}
    for bill in snapshot.bills:
        spend[bill.vendor_id] += bill.subtotal
        names[bill.vendor_id] = bill.vendor_name
    total = sum(spend.values(), ZERO)
    if total <= ZERO:
        return ZERO, ""
    vendor_id, top = max(spend.items(), key=lambda kv: (kv[1], kv[0]))
    share = to_money(top * 100 / total)
    limit = thresholds.vendor_concentration_pct
    if share <= limit:
        return ZERO, ""
    return (share - limit) / (100 - limit), f"{names[vendor_id]} holds {share}% of bill spend"


THEMES = {
    "revenue_pattern": revenue_pattern,
    "cash_manipulation": cash_manipulation,
    "gst": gst,
    "tds": tds,
    "journal": journal,
    "control_override": control_override,
    "vendor_concentration": vendor_concentration,
}


def score_themes(
    snapshot: AuditSnapshot,
    checks: Sequence[CheckResult],
    anomalies: Sequence[AnomalyFinding],
    weights: Mapping[str, int],
    thresholds: AuditThresholds,
) -> tuple[ThemeScore, ...]:
    """Theme scores in configured weight order."""
    scores = []
    for theme, weight in weights.items():
        signal, trigger = THEMES[theme](snapshot, checks, anomalies, thresholds)
        signal = _clamp(signal)
        scores.append(
            ThemeScore(
                theme=theme,
                score=round_score(signal * weight),
                max_score=weight,
                signal=signal.quantize(Decimal("0.0001")),
                trigger=trigger,
            )
        )
    return tuple(scores)

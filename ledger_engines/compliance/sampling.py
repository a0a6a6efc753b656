"""
Audit sampling: three disjoint selections over one population.

    high_risk   weighted draw without replacement, probability proportional
                to risk score (Efraimidis-Spirakis keys ``u ** (1 / w)``);
                zero-risk items are never drawn here
    stratified  the remainder split into equal-count value bands (deciles
                by default); per band, the items closest to the band median
    random      uniform draw from what is left after the first two

Each strategy only sees items the earlier strategies did not take, so no
item is selected twice, and every item records the strategy that chose
it.  The generator is seeded with ``"{seed}:{financial_year}"`` and the
population is put in a canonical order first, so a rerun over the same
data selects the same items.
"""

from __future__ import annotations

import random
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from decimal import Decimal

from ledger_config.schema import AuditThresholds, SamplingConfig
from ledger_engines.compliance.anomaly import AnomalyFinding
from ledger_engines.compliance.checks import MARCH, is_backdated, is_round_figure
from ledger_engines.compliance.snapshot import EntrySnapshot
from ledger_kernel.domain.audit_types import SampleStrategy

# Risk points per red flag on a journal entry; capped at 100
RISK_FLAGS = (
    ("round_figure", 30),
    ("manual", 20),
    ("backdated", 30),
    ("admin_override", 30),
    ("march", 10),
    ("unapproved", 20),
)


@dataclass(frozen=True)
class SampleCandidate:
    entity_type: str
    entity_id: str
    amount: Decimal
    risk_score: int = 0
    reason: str = ""


@dataclass(frozen=True)
class SampleItem:
    strategy: SampleStrategy
    entity_type: str
    entity_id: str
    amount: Decimal
    risk_score: int
    value_band: int | None
    reason: str


def entry_flags(entry: EntrySnapshot, thresholds: AuditThresholds) -> tuple[str, ...]:
    raised = {
        "round_figure": is_round_figure(entry.amount, thresholds),
        "manual": entry.is_manual,
        "backdated": is_backdated(entry, thresholds),
        "admin_override": entry.is_admin_override,
        "march": entry.entry_date.month == MARCH,
        "unapproved": not entry.is_approved,
    }
    return tuple(flag for flag, _ in RISK_FLAGS if raised[flag])


def month_risk(anomalies: Sequence[AnomalyFinding]) -> dict[str, int]:
    """Highest anomaly risk_score per ``YYYY-MM`` month across all series."""
    scores: dict[str, int] = {}
    for finding in anomalies:
        scores[finding.period_label] = max(scores.get(finding.period_label, 0), finding.risk_score)
    return scores


def entry_candidate(
    entry: EntrySnapshot,
    thresholds: AuditThresholds,
    anomaly_scores: Mapping[str, int] | None = None,
) -> SampleCandidate:
    """
    Score an entry for the high-risk draw.

    Red-flag points plus the anomaly risk_score of the entry's month, so
    entries booked in an anomalous month weigh more in the draw.
    """
    flags = entry_flags(entry, thresholds)
    points = dict(RISK_FLAGS)
    anomaly = (anomaly_scores or {}).get(entry.entry_date.strftime("%Y-%m"), 0)
    reasons = list(flags) + (["anomalous_month"] if anomaly else [])
    return SampleCandidate(
        entity_type="journal_entry",
        entity_id=entry.entry_id,
        amount=entry.amount,
        risk_score=min(100, sum(points[f] for f in flags) + anomaly),
        reason=", ".join(reasons),
    )


def _weighted_draw(
    rng: random.Random, population: Sequence[SampleCandidate], size: int
) -> list[SampleCandidate]:
    keyed = []
    for candidate in population:
        if candidate.risk_score <= 0:
            continue
        key = rng.random() ** (1.0 / candidate.risk_score)
        keyed.append((key, candidate))
    keyed.sort(key=lambda kv: kv[0], reverse=True)
    return [candidate for _, candidate in keyed[:size]]


def _value_bands(
    population: Sequence[SampleCandidate], bands: int
) -> list[list[SampleCandidate]]:
    ordered = sorted(population, key=lambda c: (c.amount, c.entity_id))
    count = len(ordered)
    bands = min(bands, count)
    return [ordered[i * count // bands:(i + 1) * count // bands] for i in range(bands)]


def _nearest_median(band: Sequence[SampleCandidate], per_band: int) -> list[SampleCandidate]:
    amounts = [c.amount for c in band]
    mid = len(amounts) // 2
    median = amounts[mid] if len(amounts) % 2 else (amounts[mid - 1] + amounts[mid]) / 2
    ranked = sorted(band, key=lambda c: (abs(c.amount - median), c.amount, c.entity_id))
    return ranked[:per_band]


def draw_samples(
    population: Sequence[SampleCandidate],
    config: SamplingConfig,
    financial_year: str,
) -> tuple[SampleItem, ...]:
    rng = random.Random(f"{config.seed}:{financial_year}")
    remaining = sorted(population, key=lambda c: (c.entity_type, c.entity_id))
    items: list[SampleItem] = []

    for candidate in _weighted_draw(rng, remaining, config.high_risk_size):
        items.append(_item(SampleStrategy.HIGH_RISK, candidate, None, candidate.reason))
    taken = {(i.entity_type, i.entity_id) for i in items}
    remaining = [c for c in remaining if (c.entity_type, c.entity_id) not in taken]

    for band_no, band in enumerate(_value_bands(remaining, config.value_bands), start=1):
        for candidate in _nearest_median(band, config.per_band):
            items.append(
                _item(SampleStrategy.STRATIFIED, candidate, band_no, f"value band {band_no}")
            )
    taken = {(i.entity_type, i.entity_id) for i in items}
    remaining = [c for c in remaining if (c.entity_type, c.entity_id) not in taken]

    for candidate in rng.sample(remaining, min(config.random_size, len(remaining))):
        items.append(_item(SampleStrategy.RANDOM, candidate, None, "uniform draw"))

    return tuple(items)


def _item(
    strategy: SampleStrategy, candidate: SampleCandidate, band: int | None, reason: str
) -> SampleItem:
    return SampleItem(
        strategy=strategy,
        entity_type=candidate.entity_type,
        entity_id=candidate.entity_id,
        amount=candidate.amount,
        risk_score=candidate.risk_score,
        value_band=band,
        reason=reason,
    )

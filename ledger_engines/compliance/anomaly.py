"""
Monthly anomaly detection with pluggable deviation strategies.

For every reported month of every series, the strategy compares the
observed total with the trailing history (the ``lookback_months`` months
before it).  Months with fewer than ``min_history`` prior points, or whose
history mean is zero, have no baseline and are not judged.

Strategies:
    percentage  deviation_pct = (observed - mean) / mean x 100; flagged when
                |deviation_pct| > threshold_pct; risk = min(100, |deviation_pct|)
    zscore      z = (observed - mean) / population stdev; flagged when
                |z| > z_threshold; risk = min(100, |z| x 25)

Confidence is the share of the lookback window actually available:
``min(1, len(history) / lookback_months)``.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from decimal import Decimal
from typing import Protocol

from ledger_config.schema import AnomalyConfig
from ledger_engines.compliance.snapshot import MonthlySeries
from ledger_engines.compliance.scoring import round_score
from ledger_kernel.domain.values import ZERO, to_money

_ONE = Decimal("1")


@dataclass(frozen=True)
class Deviation:
    baseline: Decimal
    deviation_pct: Decimal
    risk_score: int
    statistic: Decimal


@dataclass(frozen=True)
class AnomalyFinding:
    category: str
    period_label: str
    observed: Decimal
    baseline: Decimal
    deviation_pct: Decimal
    risk_score: int
    confidence_score: Decimal
    strategy: str
    reason: str


def _mean(values: Sequence[Decimal]) -> Decimal:
    return sum(values, ZERO) / len(values)


def _deviation_pct(observed: Decimal, mean: Decimal) -> Decimal:
    return to_money((observed - mean) * 100 / mean)


class AnomalyStrategy(Protocol):
    name: str

    def evaluate(self, observed: Decimal, history: Sequence[Decimal]) -> Deviation | None:
        """A Deviation when observed is anomalous against history, else None."""
        ...


class PercentageDeviation:
    name = "percentage"

    def __init__(self, threshold_pct: Decimal):
        self.threshold_pct = threshold_pct

    def evaluate(self, observed: Decimal, history: Sequence[Decimal]) -> Deviation | None:
        mean = _mean(history)
        if mean == ZERO:
            return None
        pct = _deviation_pct(observed, mean)
        if abs(pct) <= self.threshold_pct:
            return None
        return Deviation(
            baseline=to_money(mean),
            deviation_pct=pct,
            risk_score=min(100, round_score(abs(pct))),
            statistic=pct,
        )


class ZScoreDeviation:
    name = "zscore"

    def __init__(self, z_threshold: Decimal):
        self.z_threshold = z_threshold

    def evaluate(self, observed: Decimal, history: Sequence[Decimal]) -> Deviation | None:
        mean = _mean(history)
        variance = sum(((v - mean) ** 2 for v in history), ZERO) / len(history)
        if mean == ZERO or variance == ZERO:
            return None
        z = (observed - mean) / variance.sqrt()
        if abs(z) <= self.z_threshold:
            return None
        return Deviation(
            baseline=to_money(mean),
            deviation_pct=_deviation_pct(observed, mean),
            risk_score=min(100, round_score(abs(z) * 25)),
            statistic=z.quantize(Decimal("0.0001")),
        )


def strategy_for(config: AnomalyConfig) -> AnomalyStrategy:
    if config.strategy == "zscore":
        return ZScoreDeviation(config.z_threshold)
    return PercentageDeviation(config.threshold_pct)


def detect_anomalies(
    series: Sequence[MonthlySeries],
    config: AnomalyConfig,
    strategy: AnomalyStrategy | None = None,
) -> tuple[AnomalyFinding, ...]:
    """Findings ordered by series order, then month."""
    strategy = strategy or strategy_for(config)
    lookback = max(1, config.lookback_months)
    findings: list[AnomalyFinding] = []
    for s in series:
        values = [p.value for p in s.points]
        for index in range(s.report_from, len(s.points)):
            history = values[max(0, index - lookback):index]
            if len(history) < max(1, config.min_history):
                continue
            point = s.points[index]
            deviation = strategy.evaluate(point.value, history)
            if deviation is None:
                continue
            direction = "above" if point.value > deviation.baseline else "below"
            findings.append(
                AnomalyFinding(
                    category=s.category,
                    period_label=point.label,
                    observed=to_money(point.value),
                    baseline=deviation.baseline,
                    deviation_pct=deviation.deviation_pct,
                    risk_score=deviation.risk_score,
                    confidence_score=to_money(min(_ONE, Decimal(len(history)) / lookback)),
                    strategy=strategy.name,
                    reason=(
                        f"{s.category} {point.label} is {abs(deviation.deviation_pct)}% "
                        f"{direction} the trailing mean {deviation.baseline}"
                    ),
                )
            )
    return tuple(findings)

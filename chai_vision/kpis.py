"""
Performance summary shown on the KPI cards: achievement, run rate and projections
"""
from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Iterable, Optional

import numpy as np

from chai_vision.models import AggregateResult, Period, SalesRecord, ZERO
from chai_vision.periods import days_elapsed, days_remaining
from chai_vision.targets import (
    DEFAULT_KPI_THRESHOLD, TargetTable, kpi_target, performance_percent, total_target
)

CENT = Decimal('0.01')


@dataclass
class KPISettings:
    threshold: Decimal = DEFAULT_KPI_THRESHOLD
    run_rate_days: int = 14
    conservative_factor: Decimal = Decimal('0.8')
    optimistic_factor: Decimal = Decimal('1.2')

    @classmethod
    def from_config(cls, config: Dict) -> 'KPISettings':
        cfg = config.get('kpi', {}) or {}
        return cls(
            threshold=Decimal(str(cfg.get('threshold', DEFAULT_KPI_THRESHOLD))),
            run_rate_days=int(cfg.get('run_rate_days', 14)),
            conservative_factor=Decimal(str(cfg.get('conservative_factor', '0.8'))),
            optimistic_factor=Decimal(str(cfg.get('optimistic_factor', '1.2'))),
        )


@dataclass
class PerformanceSummary:
    period: Period
    total_revenue: Decimal
    target: Optional[Decimal]
    kpi_target: Optional[Decimal]
    achievement_percent: Optional[Decimal]
    kpi_achievement_percent: Optional[Decimal]
    gap_to_target: Optional[Decimal]
    gap_to_kpi: Optional[Decimal]
    days_in_period: int
    days_elapsed: int
    days_remaining: int
    run_rate: Decimal
    projections: Dict[str, Decimal] = field(default_factory=dict)
    projection_percent: Dict[str, Optional[Decimal]] = field(default_factory=dict)
    required_daily_rate: Optional[Decimal] = None


def run_rate(records: Iterable[SalesRecord], today: date, window_days: int = 14) -> Decimal:
    """
    Weighted average daily revenue over the trailing window

    Days are weighted 1..n from oldest to newest, so recent days count more.
    Only days that have sales are included.
    """
    start = today - timedelta(days=window_days)
    daily: Dict[date, int] = {}
    for record in records:
        if start <= record.date <= today:
            daily[record.date] = daily.get(record.date, 0) + record.revenue_cents

    if not daily:
        return ZERO

    days = sorted(daily)
    values = np.array([daily[d] for d in days], dtype=float) / 100
    weights = np.arange(1, len(days) + 1, dtype=float)
    average = np.average(values, weights=weights)
    return Decimal(str(round(float(average), 2))).quantize(CENT, rounding=ROUND_HALF_UP)


def _gap(target: Optional[Decimal], actual: Decimal) -> Optional[Decimal]:
    if target is None:
        return None
    return max(ZERO, target - actual)


def summarize(aggregate: AggregateResult,
              records: Iterable[SalesRecord],
              target_table: TargetTable,
              today: date,
              settings: Optional[KPISettings] = None,
              brands: Optional[Iterable[str]] = None,
              channels: Optional[Iterable[str]] = None) -> PerformanceSummary:
    """
    Build the KPI card numbers for one period

    Args:
        aggregate: Aggregate for the period (any grouping; only the total is used)
        records: The same filtered records the aggregate was built from
        target_table: Configured targets
        today: Reference day for days elapsed and the run rate window
        settings: KPI threshold, run rate window and projection factors
        brands: Brands whose targets count (None for company total)
        channels: Channels whose targets count (None for all)
    """
    settings = settings or KPISettings()
    period = aggregate.period
    total = aggregate.total

    target = total_target(target_table, period, brands=brands, channels=channels)
    kpi_goal = kpi_target(target, settings.threshold)

    remaining = days_remaining(period, today)
    in_period = [r for r in records if period.contains(r.date)]
    rate = run_rate(in_period, today, settings.run_rate_days)

    factors = {
        'conservative': settings.conservative_factor,
        'realistic': Decimal('1'),
        'optimistic': settings.optimistic_factor,
    }
    projections = {name: total + rate * factor * remaining for name, factor in factors.items()}

    gap_to_kpi = _gap(kpi_goal, total)
    return PerformanceSummary(
        period=period,
        total_revenue=total,
        target=target,
        kpi_target=kpi_goal,
        achievement_percent=performance_percent(total, target),
        kpi_achievement_percent=performance_percent(total, kpi_goal),
        gap_to_target=_gap(target, total),
        gap_to_kpi=gap_to_kpi,
        days_in_period=period.days,
        days_elapsed=days_elapsed(period, today),
        days_remaining=remaining,
        run_rate=rate,
        projections=projections,
        projection_percent={name: performance_percent(value, target) for name, value in projections.items()},
        required_daily_rate=gap_to_kpi / max(1, remaining) if gap_to_kpi is not None else None,
    )

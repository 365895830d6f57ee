"""
Target Comparator - actual revenue against configured targets
"""
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Dict, Iterable, Optional, Sequence, Tuple

from chai_vision.models import (
    AggregateResult, GroupField, HUNDRED, Period, PeriodKind, TargetComparison, ZERO
)
from chai_vision.periods import days_in_month, days_in_quarter
from chai_vision.registry import Registry, normalize_key

DEFAULT_KPI_THRESHOLD = Decimal('0.85')
PERIOD_KEYS = ('annual', 'Q1', 'Q2', 'Q3', 'Q4')
CENT = Decimal('0.01')

BrandChannel = Tuple[str, str]


def _period_key(key: Any) -> str:
    text = str(key).strip()
    if text.lower() == 'annual':
        return 'annual'
    if text.upper() in PERIOD_KEYS:
        return text.upper()
    raise ValueError(f"Unknown target period key: {key!r} (expected one of {', '.join(PERIOD_KEYS)})")


def _amount(value: Any) -> Decimal:
    try:
        amount = Decimal(str(value))
    except InvalidOperation:
        raise ValueError(f"Target amount must be numeric, got {value!r}")
    if not amount.is_finite() or amount < 0:
        raise ValueError(f"Target amount must be a non-negative number, got {value!r}")
    return amount


class TargetTable:
    """
    Revenue targets keyed by (year, period key) then (brand, channel)

    A missing entry means "no target", which is not the same as a target of zero.
    """

    def __init__(self, entries: Optional[Dict[Tuple[int, str], Dict[BrandChannel, Decimal]]] = None):
        self._entries: Dict[Tuple[int, str], Dict[BrandChannel, Decimal]] = {}
        for (year, period_key), amounts in (entries or {}).items():
            bucket = self._entries.setdefault((int(year), _period_key(period_key)), {})
            for (brand, channel), amount in amounts.items():
                bucket[(brand, channel)] = _amount(amount)

    @classmethod
    def from_nested(cls, data: Optional[Dict]) -> 'TargetTable':
        """Build from year -> period key -> brand -> channel -> amount"""
        entries = {}
        for year, periods in (data or {}).items():
            for period_key, brands in (periods or {}).items():
                bucket = entries.setdefault((int(year), _period_key(period_key)), {})
                for brand, channels in (brands or {}).items():
                    for channel, amount in (channels or {}).items():
                        bucket[(str(brand), str(channel))] = amount
        return cls(entries)

    def to_nested(self) -> Dict[int, Dict[str, Dict[str, Dict[str, float]]]]:
        nested: Dict = {}
        for (year, period_key), amounts in sorted(self._entries.items()):
            for (brand, channel), amount in amounts.items():
                nested.setdefault(year, {}).setdefault(period_key, {}).setdefault(brand, {})[channel] = float(amount)
        return nested

    def __len__(self) -> int:
        return sum(len(amounts) for amounts in self._entries.values())

    @property
    def is_empty(self) -> bool:
        return len(self) == 0

    def years(self) -> Sequence[int]:
        return sorted({year for year, _ in self._entries})

    def get(self, year: int, period_key: str, brand: str, channel: str) -> Optional[Decimal]:
        return self._entries.get((int(year), _period_key(period_key)), {}).get((brand, channel))

    def entries_for(self, period: Period) -> Dict[BrandChannel, Decimal]:
        """
        Targets that apply to a period

        Monthly targets are the enclosing quarter's targets scaled by the share
        of the quarter's days that fall in the month.
        """
        if period.kind == PeriodKind.CUSTOM:
            return {}
        amounts = self._entries.get((period.year, period.target_key), {})
        if period.kind != PeriodKind.MONTHLY:
            return dict(amounts)

        quarter = (period.month - 1) // 3 + 1
        ratio = Decimal(days_in_month(period.year, period.month)) / Decimal(days_in_quarter(period.year, quarter))
        return {
            key: (amount * ratio).quantize(CENT, rounding=ROUND_HALF_UP)
            for key, amount in amounts.items()
        }


def _selected(name: str, selection: Optional[Iterable[str]]) -> bool:
    if selection is None:
        return True
    keys = {normalize_key(s) for s in selection}
    return normalize_key(name) in keys


def total_target(target_table: TargetTable, period: Period,
                 brands: Optional[Iterable[str]] = None,
                 channels: Optional[Iterable[str]] = None) -> Optional[Decimal]:
    """Sum of every applicable target, None when nothing is configured"""
    brands = _drop_pseudo(brands, Registry.is_all_brands)
    channels = _drop_pseudo(channels, Registry.is_all_channels)
    amounts = [
        amount for (brand, channel), amount in target_table.entries_for(period).items()
        if _selected(brand, brands) and _selected(channel, channels)
    ]
    if not amounts:
        return None
    return sum(amounts, ZERO)


def _drop_pseudo(selection, is_all) -> Optional[Sequence[str]]:
    if selection is None:
        return None
    if isinstance(selection, str):
        selection = [selection]
    selection = list(selection)
    if any(is_all(s) for s in selection):
        return None
    return selection


def performance_percent(actual: Decimal, target: Optional[Decimal]) -> Optional[Decimal]:
    if target is None or target <= 0:
        return None
    return actual / target * HUNDRED


def kpi_target(target: Optional[Decimal], threshold: Decimal = DEFAULT_KPI_THRESHOLD) -> Optional[Decimal]:
    """The KPI goal tracked next to the full target (85% of it by default)"""
    if target is None:
        return None
    return target * Decimal(str(threshold))


def compare(aggregate: AggregateResult, target_table: TargetTable,
            period: Optional[Period] = None,
            brands: Optional[Iterable[str]] = None,
            channels: Optional[Iterable[str]] = None) -> Dict[Tuple, TargetComparison]:
    """
    Merge aggregated actuals with targets

    Args:
        aggregate: Result grouped by brand, channel or brand+channel
        target_table: Configured targets
        period: Period to read targets for (defaults to the aggregate's period)
        brands: Restrict targets to these brands (e.g. the selected brand)
        channels: Restrict targets to these channels

    Returns:
        Dict mapping each key to its TargetComparison. Keys without a target get
        target=None and performance_percent=None; target keys with no sales get
        actual=0.
    """
    period = period or aggregate.period
    fields = aggregate.group_by
    brands = _drop_pseudo(brands, Registry.is_all_brands)
    channels = _drop_pseudo(channels, Registry.is_all_channels)

    targets_by_key: Dict[Tuple, Decimal] = {}
    display_keys: Dict[Tuple, Tuple] = {}
    if set(fields) <= {GroupField.BRAND, GroupField.CHANNEL}:
        for (brand, channel), amount in target_table.entries_for(period).items():
            if not (_selected(brand, brands) and _selected(channel, channels)):
                continue
            key = tuple(brand if f == GroupField.BRAND else channel for f in fields)
            norm = tuple(normalize_key(part) for part in key)
            targets_by_key[norm] = targets_by_key.get(norm, ZERO) + amount
            display_keys.setdefault(norm, key)

    rows: Dict[Tuple, TargetComparison] = {}
    seen = set()
    for key, bucket in aggregate.buckets.items():
        norm = tuple(normalize_key(part) for part in key)
        seen.add(norm)
        target = targets_by_key.get(norm)
        rows[key] = TargetComparison(
            actual=bucket.revenue,
            target=target,
            performance_percent=performance_percent(bucket.revenue, target),
        )

    for norm, target in targets_by_key.items():
        if norm in seen:
            continue
        rows[display_keys[norm]] = TargetComparison(
            actual=ZERO,
            target=target,
            performance_percent=performance_percent(ZERO, target),
        )

    return {key: rows[key] for key in sorted(rows, key=_sort_key)}


def _sort_key(key: Tuple):
    return tuple(str(part) for part in key)

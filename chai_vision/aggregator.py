"""
Aggregator - groups normalized records inside a period and sums revenue/units
"""
import warnings
from datetime import date
from decimal import Decimal
from typing import Iterable, List, Optional, Sequence, Tuple, Union

import pandas as pd
from loguru import logger

from chai_vision.errors import EmptyResultWarning
from chai_vision.models import (
    AggregateResult, Bucket, GroupField, Period, SalesRecord, UNASSIGNED_SKU, as_key
)
from chai_vision.periods import QUARTER_START_MONTH
from chai_vision.registry import Registry, normalize_key

GroupBy = Union[GroupField, str, Sequence[Union[GroupField, str]]]


def coerce_group_by(group_by: GroupBy) -> Tuple[GroupField, ...]:
    if isinstance(group_by, (GroupField, str)):
        group_by = [group_by]
    fields = []
    for item in group_by:
        try:
            field = GroupField(item)
        except ValueError:
            raise ValueError(f"Unknown group_by field: {item!r}")
        if field not in fields:
            fields.append(field)
    if not fields:
        raise ValueError("group_by needs at least one field")
    return tuple(fields)


def group_value(record: SalesRecord, field: GroupField):
    if field == GroupField.BRAND:
        return record.brand
    if field == GroupField.CHANNEL:
        return record.channel
    if field == GroupField.DATE:
        return record.date
    if field == GroupField.SKU:
        return record.sku or UNASSIGNED_SKU
    if field == GroupField.MONTH:
        return record.date.replace(day=1)
    quarter = (record.date.month - 1) // 3 + 1
    return date(record.date.year, QUARTER_START_MONTH[quarter], 1)


def _cents_to_decimal(cents: int) -> Decimal:
    return Decimal(int(cents)).scaleb(-2)


def aggregate(records: Iterable[SalesRecord], period: Period, group_by: GroupBy) -> AggregateResult:
    """
    Sum revenue and units per group key for records inside `period`

    Revenue is summed in integer cents, so per-key revenue always adds up to
    the total exactly. Keys come back sorted.

    Args:
        records: Normalized sales records
        period: Window; records outside [start, end] are ignored
        group_by: One or more of brand, channel, date, sku, month, quarter

    Returns:
        AggregateResult (empty, with total 0, when nothing matched)
    """
    fields = coerce_group_by(group_by)
    in_period = [r for r in records if period.contains(r.date)]
    result = AggregateResult(period=period, group_by=fields)

    if not in_period:
        warnings.warn(EmptyResultWarning(f"No sales records in {period.label}"), stacklevel=2)
        return result

    columns = [f.value for f in fields]
    frame = pd.DataFrame({f.value: [group_value(r, f) for r in in_period] for f in fields})
    frame['revenue_cents'] = pd.Series([r.revenue_cents for r in in_period], dtype='int64')
    frame['units'] = pd.Series([r.units or 0 for r in in_period], dtype='int64')

    grouped = frame.groupby(columns, sort=True).agg(
        revenue_cents=('revenue_cents', 'sum'),
        units=('units', 'sum'),
        record_count=('revenue_cents', 'size'),
    )

    total_cents = 0
    for key, row in grouped.iterrows():
        cents = int(row['revenue_cents'])
        total_cents += cents
        result.buckets[as_key(key)] = Bucket(
            revenue=_cents_to_decimal(cents),
            units=int(row['units']),
            record_count=int(row['record_count']),
        )

    result.total = _cents_to_decimal(total_cents)
    result.total_units = sum(b.units for b in result.buckets.values())
    logger.debug(f"Aggregated {len(in_period)} records into {len(result)} keys for {period.label}")
    return result


def _as_selection(selection) -> Optional[List[str]]:
    if selection is None:
        return None
    if isinstance(selection, str):
        return [selection]
    return list(selection)


def filter_records(records: Iterable[SalesRecord],
                   brands: Union[str, Sequence[str], None] = None,
                   channels: Union[str, Sequence[str], None] = None) -> List[SalesRecord]:
    """
    Keep records for the selected brands / channels

    "All Brands", "All Brands (Company Total)" and "All Channels" mean no filter.
    Names are matched on their normalized key.
    """
    brand_list = _as_selection(brands)
    channel_list = _as_selection(channels)
    if brand_list is not None and any(Registry.is_all_brands(b) for b in brand_list):
        brand_list = None
    if channel_list is not None and any(Registry.is_all_channels(c) for c in channel_list):
        channel_list = None

    brand_keys = {normalize_key(b) for b in brand_list} if brand_list is not None else None
    channel_keys = {normalize_key(c) for c in channel_list} if channel_list is not None else None

    filtered = []
    for record in records:
        if brand_keys is not None and normalize_key(record.brand) not in brand_keys:
            continue
        if channel_keys is not None and normalize_key(record.channel) not in channel_keys:
            continue
        filtered.append(record)
    return filtered

"""
Utility functions for display formatting and table preparation
"""
from decimal import Decimal
from typing import Dict, Optional, Tuple

import pandas as pd

from chai_vision.models import AggregateResult, ComparisonResult, GroupField, TargetComparison

NOT_AVAILABLE = "—"
NEW_LABEL = "New"


def format_currency(value, compact: bool = True) -> str:
    """
    Format a revenue amount for display

    Args:
        value: Amount (None renders as a dash)
        compact: Use $1.5M / $15K for large values

    Returns:
        Formatted string
    """
    if value is None or pd.isna(value):
        return NOT_AVAILABLE
    value = float(value)
    sign = "-" if value < 0 else ""
    magnitude = abs(value)
    if compact and magnitude >= 1000000:
        return f"{sign}${magnitude / 1000000:.1f}M"
    elif compact and magnitude >= 1000:
        return f"{sign}${magnitude / 1000:.0f}K"
    return f"{sign}${magnitude:,.0f}"


def format_percent(value, decimals: int = 1) -> str:
    """Percent that is already scaled to 0-100; None means no target / no basis"""
    if value is None or pd.isna(value):
        return NOT_AVAILABLE
    if isinstance(value, Decimal) and value.is_infinite():
        return NEW_LABEL
    if isinstance(value, float) and value == float('inf'):
        return NEW_LABEL
    return f"{float(value):.{decimals}f}%"


def format_growth(value, decimals: int = 1) -> str:
    text = format_percent(value, decimals)
    if text in (NOT_AVAILABLE, NEW_LABEL):
        return text
    return f"+{text}" if float(value) > 0 else text


def kpi_label(threshold: Decimal) -> str:
    """Card title for the KPI goal, e.g. "KPI Target (85%)" for a 0.85 threshold"""
    percent = (Decimal(str(threshold)) * 100).normalize()
    return f"KPI Target ({percent:f}%)"


def achievement_status(percent: Optional[Decimal]) -> str:
    """Card colour: success at 100%+, warning from 85%, danger below"""
    if percent is None:
        return 'neutral'
    if percent >= 100:
        return 'success'
    if percent >= 85:
        return 'warning'
    return 'danger'


def _key_columns(group_by: Tuple[GroupField, ...], key: Tuple) -> Dict:
    return {field.value: value for field, value in zip(group_by, key)}


def _to_float(value: Optional[Decimal]) -> float:
    if value is None:
        return float('nan')
    return float(value)


def aggregate_frame(result: AggregateResult) -> pd.DataFrame:
    rows = []
    for key, bucket in result.buckets.items():
        row = _key_columns(result.group_by, key)
        row.update({
            'revenue': float(bucket.revenue),
            'units': bucket.units,
            'records': bucket.record_count,
            'contribution_percent': _to_float(result.contribution_percent(key)),
        })
        rows.append(row)
    columns = [f.value for f in result.group_by] + ['revenue', 'units', 'records', 'contribution_percent']
    return pd.DataFrame(rows, columns=columns)


def targets_frame(comparisons: Dict[Tuple, TargetComparison],
                  group_by: Tuple[GroupField, ...]) -> pd.DataFrame:
    rows = []
    for key, item in comparisons.items():
        row = _key_columns(group_by, key)
        row.update({
            'actual': float(item.actual),
            'target': _to_float(item.target),
            'performance_percent': _to_float(item.performance_percent),
        })
        rows.append(row)
    columns = [f.value for f in group_by] + ['actual', 'target', 'performance_percent']
    return pd.DataFrame(rows, columns=columns)


def growth_frame(comparison: ComparisonResult) -> pd.DataFrame:
    group_by = comparison.current.group_by
    rows = []
    for key, item in comparison.rows.items():
        row = _key_columns(group_by, key)
        row.update({
            'current': float(item.current),
            'prior': float(item.prior),
            'growth_amount': float(item.growth_amount),
            'growth_percent': float(item.growth_percent),  # inf marks new growth
        })
        rows.append(row)
    columns = [f.value for f in group_by] + ['current', 'prior', 'growth_amount', 'growth_percent']
    return pd.DataFrame(rows, columns=columns)

"""
Growth Calculator - current vs prior period, per key and in total
"""
from decimal import Decimal

from chai_vision.models import AggregateResult, ComparisonResult, GrowthRow, HUNDRED, ZERO

# Reported when the prior value is zero and the current one is not
NEW_GROWTH = Decimal('Infinity')


def growth_row(current: Decimal, prior: Decimal) -> GrowthRow:
    amount = current - prior
    if prior > 0:
        percent = amount / prior * HUNDRED
    elif current > 0:
        percent = NEW_GROWTH
    else:
        percent = ZERO
    return GrowthRow(current=current, prior=prior, growth_amount=amount, growth_percent=percent)


def growth(current: AggregateResult, prior: AggregateResult) -> ComparisonResult:
    """
    Compare two aggregates keyed the same way

    Keys present on only one side count as zero on the other, so a key that
    disappeared shows -100% and a key that appeared shows NEW_GROWTH.

    Raises:
        ValueError: If the aggregates are grouped by different fields
    """
    if tuple(current.group_by) != tuple(prior.group_by):
        raise ValueError(
            f"Cannot compare aggregates grouped by {[f.value for f in current.group_by]} "
            f"and {[f.value for f in prior.group_by]}"
        )

    keys = sorted(set(current.buckets) | set(prior.buckets), key=lambda k: tuple(str(p) for p in k))
    rows = {}
    for key in keys:
        now = current.buckets[key].revenue if key in current.buckets else ZERO
        before = prior.buckets[key].revenue if key in prior.buckets else ZERO
        rows[key] = growth_row(now, before)

    return ComparisonResult(
        current=current,
        prior=prior,
        rows=rows,
        total=growth_row(current.total, prior.total),
    )

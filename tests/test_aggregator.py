# tests/test_aggregator.py
from datetime import date
from decimal import Decimal

import pytest

from chai_vision.aggregator import aggregate, coerce_group_by, filter_records
from chai_vision.errors import EmptyResultWarning
from chai_vision.models import GroupField, UNASSIGNED_SKU
from chai_vision.periods import resolve


class TestAggregate:
    @pytest.fixture
    def records(self, make_record):
        return [
            make_record('2025-01-15', 100, brand='A', channel='Amazon'),
            make_record('2025-02-10', 50, brand='A', channel='Amazon'),
        ]

    def test_quarter_by_brand(self, records):
        result = aggregate(records, resolve('quarterly', 2025, quarter=1), 'brand')
        assert result.revenue_by_key() == {'A': Decimal('150')}
        assert result['A'].record_count == 2

    def test_annual_total(self, records):
        result = aggregate(records, resolve('annual', 2025), [GroupField.CHANNEL])
        assert result.total == Decimal('150')
        assert ('Amazon',) in result

    def test_empty_period_warns_not_raises(self, records):
        with pytest.warns(EmptyResultWarning):
            result = aggregate(records, resolve('quarterly', 2025, quarter=2), 'brand')
        assert result.is_empty
        assert len(result) == 0
        assert result.total == Decimal('0')

    def test_no_records(self):
        with pytest.warns(EmptyResultWarning):
            result = aggregate([], resolve('annual', 2025), ['brand', 'channel'])
        assert result.total == Decimal('0')
        assert result.revenue_by_key() == {}

    def test_period_bounds_inclusive(self, make_record):
        records = [
            make_record('2025-03-31', 10),
            make_record('2025-04-01', 20),
            make_record('2024-12-31', 40),
        ]
        result = aggregate(records, resolve('quarterly', 2025, quarter=1), 'channel')
        assert result.total == Decimal('10')

    def test_bucket_sum_equals_total_exactly(self, make_record):
        channels = ['Amazon', 'TikTok', 'Retail']
        records = [
            make_record(date(2025, 1, 1 + i % 28), Decimal('0.10') + Decimal(i) / 100, channel=channels[i % 3])
            for i in range(300)
        ]
        result = aggregate(records, resolve('annual', 2025), 'channel')
        assert sum(b.revenue for b in result.buckets.values()) == result.total
        assert result.total == sum(r.revenue for r in records)

    def test_duplicates_are_summed(self, make_record):
        records = [make_record('2025-01-15', 100), make_record('2025-01-15', 100)]
        result = aggregate(records, resolve('annual', 2025), ['brand', 'channel'])
        assert result[('LifePro', 'Amazon')].revenue == Decimal('200')
        assert result[('LifePro', 'Amazon')].record_count == 2

    def test_multi_field_keys_sorted(self, make_record):
        records = [
            make_record('2025-01-15', 1, brand='PetCove', channel='TikTok'),
            make_record('2025-01-15', 2, brand='LifePro', channel='TikTok'),
            make_record('2025-01-15', 3, brand='LifePro', channel='Amazon'),
        ]
        result = aggregate(records, resolve('annual', 2025), ['brand', 'channel'])
        assert list(result) == [('LifePro', 'Amazon'), ('LifePro', 'TikTok'), ('PetCove', 'TikTok')]

    def test_units_and_sku(self, make_record):
        records = [
            make_record('2025-01-15', 10, units=2, sku='LP-1'),
            make_record('2025-01-16', 5, units=1, sku='LP-1'),
            make_record('2025-01-16', 7),
        ]
        result = aggregate(records, resolve('annual', 2025), 'sku')
        assert result['LP-1'].units == 3
        assert result[UNASSIGNED_SKU].revenue == Decimal('7')
        assert result.total_units == 3

    def test_month_grain(self, make_record):
        records = [make_record('2025-01-15', 10), make_record('2025-01-20', 5), make_record('2025-02-01', 1)]
        result = aggregate(records, resolve('quarterly', 2025, quarter=1), 'month')
        assert result.revenue_by_key() == {date(2025, 1, 1): Decimal('15'), date(2025, 2, 1): Decimal('1')}

    def test_contribution_percent(self, make_record):
        records = [make_record('2025-01-15', 75), make_record('2025-01-15', 25, channel='TikTok')]
        result = aggregate(records, resolve('annual', 2025), 'channel')
        assert result.contribution_percent('Amazon') == Decimal('75')
        assert result.contribution_percent('Retail') == Decimal('0')

    def test_unknown_group_field(self):
        with pytest.raises(ValueError):
            coerce_group_by('region')
        with pytest.raises(ValueError):
            coerce_group_by([])


class TestFilterRecords:
    @pytest.fixture
    def records(self, make_record):
        return [
            make_record('2025-01-15', 10, brand='LifePro', channel='Amazon'),
            make_record('2025-01-15', 20, brand='PetCove', channel='Amazon'),
            make_record('2025-01-15', 30, brand='Loft & Ivy', channel='TikTok'),
        ]

    def test_all_brands_is_no_filter(self, records):
        assert len(filter_records(records, brands='All Brands')) == 3
        assert len(filter_records(records, brands='All Brands (Company Total)', channels='All Channels')) == 3

    def test_names_match_on_normalized_key(self, records):
        assert [r.brand for r in filter_records(records, brands='loft and ivy')] == ['Loft & Ivy']
        assert len(filter_records(records, brands=['LifePro', 'PetCove'], channels=['amazon'])) == 2

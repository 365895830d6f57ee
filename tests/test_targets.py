# tests/test_targets.py
from decimal import Decimal

import pytest

from chai_vision.aggregator import aggregate
from chai_vision.periods import resolve, resolve_range
from chai_vision.targets import TargetTable, compare, kpi_target, performance_percent, total_target


@pytest.fixture
def target_table():
    return TargetTable.from_nested({
        2025: {
            'annual': {
                'LifePro': {'Amazon': 4000, 'TikTok': 2000},
                'PetCove': {'Amazon': 1000},
            },
            'Q1': {
                'LifePro': {'Amazon': 1000, 'TikTok': 500},
                'PetCove': {'Amazon': 900},
            },
        }
    })


class TestPerformancePercent:
    def test_basic(self):
        assert performance_percent(Decimal('250'), Decimal('1000')) == Decimal('25')

    def test_no_target_is_sentinel_not_zero(self):
        assert performance_percent(Decimal('250'), None) is None
        assert performance_percent(Decimal('250'), Decimal('0')) is None

    def test_kpi_target(self):
        assert kpi_target(Decimal('1000')) == Decimal('850')
        assert kpi_target(None) is None


class TestTargetTable:
    def test_lookup_and_round_trip(self, target_table):
        assert target_table.get(2025, 'q1', 'LifePro', 'TikTok') == Decimal('500')
        assert target_table.get(2024, 'annual', 'LifePro', 'TikTok') is None
        assert len(target_table) == 6
        assert TargetTable.from_nested(target_table.to_nested()).get(2025, 'annual', 'PetCove', 'Amazon') == 1000

    def test_rejects_bad_entries(self):
        with pytest.raises(ValueError):
            TargetTable.from_nested({2025: {'annual': {'LifePro': {'Amazon': -5}}}})
        with pytest.raises(ValueError):
            TargetTable.from_nested({2025: {'annual': {'LifePro': {'Amazon': 'lots'}}}})
        with pytest.raises(ValueError):
            TargetTable.from_nested({2025: {'H1': {'LifePro': {'Amazon': 5}}}})

    def test_monthly_target_is_share_of_quarter(self, target_table):
        january = target_table.entries_for(resolve('monthly', 2025, month=1))
        february = target_table.entries_for(resolve('monthly', 2025, month=2))
        assert january[('PetCove', 'Amazon')] == Decimal('310.00')
        assert february[('PetCove', 'Amazon')] == Decimal('280.00')

    def test_custom_range_has_no_targets(self, target_table):
        period = resolve_range(resolve('quarterly', 2025, quarter=1).start, resolve('quarterly', 2025, quarter=1).end)
        assert target_table.entries_for(period) == {}

    def test_total_target(self, target_table):
        q1 = resolve('quarterly', 2025, quarter=1)
        assert total_target(target_table, q1) == Decimal('2400')
        assert total_target(target_table, q1, brands=['LifePro']) == Decimal('1500')
        assert total_target(target_table, q1, brands='All Brands', channels=['amazon']) == Decimal('1900')
        assert total_target(target_table, resolve('quarterly', 2025, quarter=2)) is None


class TestCompare:
    def test_channel_view_for_one_brand(self, make_record, target_table):
        q1 = resolve('quarterly', 2025, quarter=1)
        records = [
            make_record('2025-01-10', 250, channel='Amazon'),
            make_record('2025-01-10', 80, channel='Retail'),
        ]
        result = compare(aggregate(records, q1, 'channel'), target_table, brands=['LifePro'])

        assert list(result) == [('Amazon',), ('Retail',), ('TikTok',)]
        assert result[('Amazon',)].performance_percent == Decimal('25')
        assert result[('Retail',)].target is None
        assert result[('Retail',)].performance_percent is None
        assert not result[('Retail',)].has_target
        # target with no sales still shows up, at zero
        assert result[('TikTok',)].actual == Decimal('0')
        assert result[('TikTok',)].performance_percent == Decimal('0')

    def test_company_total_sums_brands_per_channel(self, make_record, target_table):
        q1 = resolve('quarterly', 2025, quarter=1)
        records = [make_record('2025-02-01', 950, brand='PetCove', channel='Amazon')]
        result = compare(aggregate(records, q1, 'channel'), target_table)
        assert result[('Amazon',)].target == Decimal('1900')
        assert result[('Amazon',)].performance_percent == Decimal('50')

    def test_keys_match_across_spelling(self, make_record, target_table):
        q1 = resolve('quarterly', 2025, quarter=1)
        records = [make_record('2025-02-01', 100, brand='lifepro', channel='amazon')]
        result = compare(aggregate(records, q1, ['brand', 'channel']), target_table)
        assert result[('lifepro', 'amazon')].target == Decimal('1000')
        assert ('LifePro', 'Amazon') not in result

    def test_date_grouping_has_no_targets(self, make_record, target_table):
        q1 = resolve('quarterly', 2025, quarter=1)
        result = compare(aggregate([make_record('2025-02-01', 100)], q1, 'date'), target_table)
        assert all(item.target is None for item in result.values())

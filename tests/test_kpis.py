# tests/test_kpis.py
from datetime import date
from decimal import Decimal

import pytest

from chai_vision.aggregator import aggregate
from chai_vision.kpis import KPISettings, run_rate, summarize
from chai_vision.periods import resolve
from chai_vision.targets import TargetTable

CENT = Decimal('0.01')


class TestRunRate:
    def test_recent_days_weigh_more(self, make_record):
        records = [
            make_record('2025-02-13', 100),
            make_record('2025-02-14', 200),
            make_record('2025-02-15', 300),
        ]
        # (100*1 + 200*2 + 300*3) / 6
        assert run_rate(records, date(2025, 2, 15)) == Decimal('233.33')

    def test_same_day_rows_are_combined(self, make_record):
        records = [make_record('2025-02-15', 100), make_record('2025-02-15', 50, channel='TikTok')]
        assert run_rate(records, date(2025, 2, 15)) == Decimal('150.00')

    def test_outside_window_ignored(self, make_record):
        assert run_rate([make_record('2025-01-01', 100)], date(2025, 2, 15)) == Decimal('0')


class TestSummarize:
    @pytest.fixture
    def records(self, make_record):
        return [
            make_record('2025-01-10', 5000),
            make_record('2025-02-14', 1000),
            make_record('2025-02-15', 2000),
        ]

    @pytest.fixture
    def targets(self):
        return TargetTable.from_nested({2025: {'Q1': {'LifePro': {'Amazon': 90000}}}})

    def test_quarter_summary(self, records, targets):
        q1 = resolve('quarterly', 2025, quarter=1)
        summary = summarize(aggregate(records, q1, 'channel'), records, targets, date(2025, 2, 15))

        assert summary.total_revenue == Decimal('8000')
        assert summary.target == Decimal('90000')
        assert summary.kpi_target == Decimal('76500')
        assert summary.achievement_percent.quantize(CENT) == Decimal('8.89')
        assert summary.gap_to_target == Decimal('82000')
        assert summary.gap_to_kpi == Decimal('68500')
        assert (summary.days_in_period, summary.days_elapsed, summary.days_remaining) == (90, 46, 44)
        # (1000*1 + 2000*2) / 3
        assert summary.run_rate == Decimal('1666.67')
        assert summary.projections['realistic'] == Decimal('8000') + Decimal('1666.67') * 44
        assert summary.projections['conservative'] < summary.projections['realistic'] < summary.projections['optimistic']
        assert summary.required_daily_rate.quantize(CENT) == Decimal('1556.82')

    def test_without_targets(self, records):
        q1 = resolve('quarterly', 2025, quarter=1)
        summary = summarize(aggregate(records, q1, 'channel'), records, TargetTable(), date(2025, 2, 15))
        assert summary.target is None
        assert summary.achievement_percent is None
        assert summary.gap_to_kpi is None
        assert summary.required_daily_rate is None
        assert set(summary.projection_percent.values()) == {None}

    def test_finished_period_projects_actuals(self, records, targets):
        q1 = resolve('quarterly', 2025, quarter=1)
        summary = summarize(aggregate(records, q1, 'channel'), records, targets, date(2025, 6, 1),
                            KPISettings(threshold=Decimal('0.9')))
        assert summary.days_remaining == 0
        assert summary.projections['optimistic'] == summary.total_revenue
        assert summary.kpi_target == Decimal('81000')

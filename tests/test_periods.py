# tests/test_periods.py
from datetime import date

import pytest

from chai_vision.errors import InvalidPeriodError
from chai_vision.models import Period, PeriodKind
from chai_vision.periods import (
    days_elapsed, days_remaining, latest_year, prior_period, resolve, resolve_range,
    shift_years, year_options
)


class TestResolve:
    def test_annual(self):
        period = resolve('annual', 2025)
        assert period.start == date(2025, 1, 1)
        assert period.end == date(2025, 12, 31)
        assert period.label == '2025 Annual'
        assert period.target_key == 'annual'

    def test_quarterly(self):
        period = resolve('quarterly', '2025', quarter='Q1')
        assert (period.start, period.end) == (date(2025, 1, 1), date(2025, 3, 31))
        assert period.label == 'Q1 2025'
        assert period.days == 90

    def test_monthly_leap_years(self):
        assert resolve('monthly', 2024, month=2).end == date(2024, 2, 29)
        assert resolve('monthly', 2025, month=2).end == date(2025, 2, 28)
        assert resolve('monthly', 2024, month=2).label == 'February 2024'

    def test_monthly_target_key_is_enclosing_quarter(self):
        assert resolve('monthly', 2025, month=5).target_key == 'Q2'

    def test_inapplicable_selections_ignored(self):
        period = resolve('annual', 2025, quarter=3, month=7)
        assert period.quarter is None and period.month is None

    @pytest.mark.parametrize('kwargs', [
        {'kind': 'quarterly', 'year': 2025, 'quarter': 5},
        {'kind': 'quarterly', 'year': 2025},
        {'kind': 'monthly', 'year': 2025, 'month': 13},
        {'kind': 'annual', 'year': 'abc'},
        {'kind': 'annual', 'year': 0},
        {'kind': 'weekly', 'year': 2025},
        {'kind': 'custom', 'year': 2025},
    ])
    def test_invalid_selection(self, kwargs):
        with pytest.raises(InvalidPeriodError):
            resolve(**kwargs)

    def test_start_after_end_rejected(self):
        with pytest.raises(InvalidPeriodError):
            Period(kind=PeriodKind.CUSTOM, year=2025, start=date(2025, 2, 1), end=date(2025, 1, 1))


class TestPriorPeriod:
    def test_year_over_year(self):
        assert prior_period(resolve('quarterly', 2025, quarter=1)) == resolve('quarterly', 2024, quarter=1)
        assert prior_period(resolve('monthly', 2025, month=2), 'yoy').end == date(2024, 2, 29)

    def test_period_over_period_wraps_year(self):
        assert prior_period(resolve('quarterly', 2025, quarter=1), 'pop') == resolve('quarterly', 2024, quarter=4)
        assert prior_period(resolve('quarterly', 2025, quarter=3), 'pop') == resolve('quarterly', 2025, quarter=2)
        assert prior_period(resolve('monthly', 2025, month=1), 'pop') == resolve('monthly', 2024, month=12)
        assert prior_period(resolve('annual', 2025), 'pop') == resolve('annual', 2024)

    def test_twice_back_is_two_years(self):
        period = resolve('quarterly', 2025, quarter=2)
        assert prior_period(prior_period(period)) == resolve('quarterly', 2023, quarter=2)

    def test_custom_range(self):
        current = resolve_range(date(2025, 3, 1), date(2025, 3, 10))
        before = prior_period(current, 'pop')
        assert (before.start, before.end) == (date(2025, 2, 19), date(2025, 2, 28))
        assert before.days == current.days

        leap = prior_period(resolve_range(date(2024, 2, 29), date(2024, 3, 5)), 'yoy')
        assert leap.start == date(2023, 2, 28)

    def test_unknown_mode(self):
        with pytest.raises(InvalidPeriodError):
            prior_period(resolve('annual', 2025), 'wow')


class TestDayCounts:
    def test_shift_years_clamps_leap_day(self):
        assert shift_years(date(2024, 2, 29), -1) == date(2023, 2, 28)
        assert shift_years(date(2024, 2, 29), 4) == date(2028, 2, 29)

    def test_shift_past_year_one_is_a_period_error(self):
        with pytest.raises(InvalidPeriodError):
            shift_years(date(1, 3, 1), -1)
        with pytest.raises(InvalidPeriodError):
            prior_period(resolve_range(date(1, 1, 1), date(1, 1, 31)), 'yoy')
        with pytest.raises(InvalidPeriodError):
            prior_period(resolve_range(date(1, 1, 1), date(1, 1, 31)), 'pop')

    def test_elapsed_and_remaining(self):
        period = resolve('quarterly', 2025, quarter=1)
        assert days_elapsed(period, date(2025, 2, 15)) == 46
        assert days_remaining(period, date(2025, 2, 15)) == 44
        assert days_elapsed(period, date(2024, 12, 31)) == 0
        assert days_remaining(period, date(2025, 5, 1)) == 0


class TestYearOptions:
    def test_years_with_data_newest_first(self, make_record):
        records = [make_record('2023-05-01', 10), make_record('2025-01-01', 10), make_record('2019-01-01', 10)]
        assert year_options(records, today=date(2025, 6, 1)) == [2025, 2023]
        assert latest_year(records) == 2025

    def test_without_data(self):
        assert year_options([], today=date(2025, 6, 1)) == [2025, 2024]
        assert latest_year([], today=date(2025, 6, 1)) == 2025

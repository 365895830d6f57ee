"""
Period Resolver - turns a view selection into concrete date ranges
"""
import calendar
from datetime import date, datetime, timedelta
from typing import Dict, Iterable, List, Optional, Union

import pytz

from chai_vision.errors import InvalidPeriodError
from chai_vision.models import ComparisonMode, Period, PeriodKind

QUARTER_START_MONTH = {1: 1, 2: 4, 3: 7, 4: 10}


def shift_years(day: date, years: int) -> date:
    """Same calendar day `years` away; Feb 29 falls back to Feb 28"""
    if not 1 <= day.year + years <= 9999:
        raise InvalidPeriodError(f"Cannot shift {day.isoformat()} by {years} years")
    try:
        return day.replace(year=day.year + years)
    except ValueError:
        return day.replace(year=day.year + years, day=28)


def reporting_today(timezone: str = 'US/Pacific') -> date:
    """Today's date in the dashboard's reporting timezone"""
    return datetime.now(pytz.timezone(timezone)).date()


def _coerce_year(year: Union[int, str]) -> int:
    if isinstance(year, bool):
        raise InvalidPeriodError(f"Invalid year: {year!r}")
    try:
        value = int(str(year).strip())
    except ValueError:
        raise InvalidPeriodError(f"Invalid year: {year!r}")
    if not 1 <= value <= 9999:
        raise InvalidPeriodError(f"Year out of range: {value}")
    return value


def _coerce_quarter(quarter: Union[int, str, None]) -> int:
    if quarter is None or isinstance(quarter, bool):
        raise InvalidPeriodError(f"Quarterly periods need a quarter 1-4, got {quarter!r}")
    text = str(quarter).strip().upper()
    if text.startswith('Q'):
        text = text[1:]
    try:
        value = int(text)
    except ValueError:
        raise InvalidPeriodError(f"Invalid quarter: {quarter!r}")
    if value not in QUARTER_START_MONTH:
        raise InvalidPeriodError(f"Quarter must be 1-4, got {value}")
    return value


def _coerce_month(month: Union[int, str, None]) -> int:
    if month is None or isinstance(month, bool):
        raise InvalidPeriodError(f"Monthly periods need a month 1-12, got {month!r}")
    try:
        value = int(str(month).strip())
    except ValueError:
        raise InvalidPeriodError(f"Invalid month: {month!r}")
    if not 1 <= value <= 12:
        raise InvalidPeriodError(f"Month must be 1-12, got {value}")
    return value


def _coerce_kind(kind: Union[PeriodKind, str]) -> PeriodKind:
    try:
        return PeriodKind(kind)
    except ValueError:
        raise InvalidPeriodError(f"Unknown period kind: {kind!r}")


def month_end(year: int, month: int) -> date:
    return date(year, month, calendar.monthrange(year, month)[1])


def resolve(kind: Union[PeriodKind, str], year: Union[int, str],
            quarter: Union[int, str, None] = None,
            month: Union[int, str, None] = None) -> Period:
    """
    Resolve a view selection into a Period

    Selections that do not apply to the kind (e.g. a month on an annual view)
    are ignored, since the dashboard always carries all three selections.

    Raises:
        InvalidPeriodError: bad kind, year, quarter or month
    """
    kind = _coerce_kind(kind)
    year = _coerce_year(year)

    if kind == PeriodKind.ANNUAL:
        return Period(kind=kind, year=year, start=date(year, 1, 1), end=date(year, 12, 31))

    if kind == PeriodKind.QUARTERLY:
        q = _coerce_quarter(quarter)
        first_month = QUARTER_START_MONTH[q]
        return Period(
            kind=kind, year=year, quarter=q,
            start=date(year, first_month, 1),
            end=month_end(year, first_month + 2),
        )

    if kind == PeriodKind.MONTHLY:
        m = _coerce_month(month)
        return Period(kind=kind, year=year, month=m, start=date(year, m, 1), end=month_end(year, m))

    raise InvalidPeriodError("Custom periods are built with resolve_range(start, end)")


def resolve_range(start: date, end: date) -> Period:
    """Arbitrary inclusive date range, used for custom comparisons"""
    return Period(kind=PeriodKind.CUSTOM, year=start.year, start=start, end=end)


def prior_period(period: Period, mode: Union[ComparisonMode, str] = ComparisonMode.YEAR_OVER_YEAR) -> Period:
    """
    Period to compare against

    year-over-year keeps the kind/quarter/month and steps back one year;
    period-over-period steps to the immediately preceding quarter/month/year.
    """
    try:
        mode = ComparisonMode(mode)
    except ValueError:
        raise InvalidPeriodError(f"Unknown comparison mode: {mode!r}")

    if period.kind == PeriodKind.CUSTOM:
        if mode == ComparisonMode.YEAR_OVER_YEAR:
            return resolve_range(shift_years(period.start, -1), shift_years(period.end, -1))
        try:
            end = period.start - timedelta(days=1)
            return resolve_range(end - timedelta(days=period.days - 1), end)
        except OverflowError:
            raise InvalidPeriodError(f"No period before {period.start.isoformat()}")

    if mode == ComparisonMode.YEAR_OVER_YEAR or period.kind == PeriodKind.ANNUAL:
        return resolve(period.kind, period.year - 1, period.quarter, period.month)

    if period.kind == PeriodKind.QUARTERLY:
        if period.quarter == 1:
            return resolve(PeriodKind.QUARTERLY, period.year - 1, quarter=4)
        return resolve(PeriodKind.QUARTERLY, period.year, quarter=period.quarter - 1)

    if period.month == 1:
        return resolve(PeriodKind.MONTHLY, period.year - 1, month=12)
    return resolve(PeriodKind.MONTHLY, period.year, month=period.month - 1)


def days_in_quarter(year: int, quarter: int) -> int:
    return resolve(PeriodKind.QUARTERLY, year, quarter=quarter).days


def days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def days_elapsed(period: Period, today: date) -> int:
    """Days of the period that have started by `today` (inclusive)"""
    if today < period.start:
        return 0
    if today > period.end:
        return period.days
    return (today - period.start).days + 1


def days_remaining(period: Period, today: date) -> int:
    return max(0, period.days - days_elapsed(period, today))


def current_selection(today: date) -> Dict[str, int]:
    """Default dashboard selection for a given day"""
    return {
        'year': today.year,
        'quarter': (today.month - 1) // 3 + 1,
        'month': today.month,
    }


def year_options(records: Iterable, start_year: int = 2020, today: Optional[date] = None) -> List[int]:
    """
    Years offered in the year dropdown, newest first

    Only years between start_year and the current year that actually have data
    are listed; without data the current and previous year are offered.
    """
    current_year = (today or date.today()).year
    years = {r.date.year for r in records if start_year <= r.date.year <= current_year}
    if not years:
        years.add(current_year)
        if current_year > start_year:
            years.add(current_year - 1)
    return sorted(years, reverse=True)


def latest_year(records: Iterable, today: Optional[date] = None) -> int:
    years = [r.date.year for r in records]
    if not years:
        return (today or date.today()).year
    return max(years)

"""
Dashboard Service - the pipeline entry point used by the CLI and the Streamlit page
"""
from dataclasses import dataclass
from datetime import date
from typing import Dict, List, Optional, Sequence, Union

from loguru import logger

from chai_vision.aggregator import GroupBy, aggregate, filter_records
from chai_vision.growth import growth
from chai_vision.kpis import KPISettings, PerformanceSummary, summarize
from chai_vision.models import (
    AggregateResult, ComparisonMode, ComparisonResult, GroupField, NormalizationResult,
    Period, SalesRecord, TargetComparison
)
from chai_vision.normalizer import ValidationSettings, normalize_records
from chai_vision.periods import latest_year, prior_period, reporting_today, resolve, year_options
from chai_vision.registry import Registry
from chai_vision.sources import (
    RecordSource, TargetSource, build_record_source, build_target_source
)
from chai_vision.targets import TargetTable, compare


@dataclass
class DashboardView:
    """Everything one dashboard screen shows for a selection"""
    period: Period
    brand: Optional[str]
    aggregate: AggregateResult
    targets: Dict[tuple, TargetComparison]
    summary: PerformanceSummary
    comparison: Optional[ComparisonResult] = None


class DashboardService:
    """Service class tying sources, normalization and the aggregation core together"""

    def __init__(self, config: Dict, record_source: RecordSource, target_source: TargetSource,
                 registry: Optional[Registry] = None, today: Optional[date] = None):
        """
        Initialize Dashboard Service

        Args:
            config: Loaded configuration dict
            record_source: Where raw sales rows come from
            target_source: Where the TargetTable comes from
            registry: Channel / brand registry (built from config when omitted)
            today: Fixed reference day; defaults to today in the reporting timezone
        """
        self.config = config
        self.record_source = record_source
        self.target_source = target_source
        self.registry = registry or Registry.from_config(config)
        self.validation = ValidationSettings.from_config(config)
        self.kpi_settings = KPISettings.from_config(config)
        self._today = today
        self._loaded: Optional[NormalizationResult] = None
        self._targets: Optional[TargetTable] = None

    @classmethod
    def from_config(cls, config: Dict, today: Optional[date] = None) -> 'DashboardService':
        return cls(
            config,
            record_source=build_record_source(config, today=today),
            target_source=build_target_source(config),
            today=today,
        )

    @property
    def today(self) -> date:
        if self._today is not None:
            return self._today
        return reporting_today(self.config.get('reporting', {}).get('timezone', 'US/Pacific'))

    def load(self) -> NormalizationResult:
        """Fetch and normalize sales rows once per session"""
        if self._loaded is None:
            raw_rows = self.record_source.load_sales_data()
            self._loaded = normalize_records(raw_rows, self.registry, self.validation, self.today)
        return self._loaded

    def reload(self) -> NormalizationResult:
        """Drop the cached records and targets and fetch again"""
        self._loaded = None
        self._targets = None
        return self.load()

    @property
    def records(self) -> List[SalesRecord]:
        return self.load().records

    @property
    def targets(self) -> TargetTable:
        if self._targets is None:
            self._targets = self.target_source.load_targets()
        return self._targets

    def replace_targets(self, table: TargetTable):
        """Swap the whole target table, e.g. after an admin edit"""
        self._targets = table

    def resolve_period(self, view: str, year, quarter=None, month=None) -> Period:
        return resolve(view, year, quarter=quarter, month=month)

    def selected_records(self, brand: Optional[str] = None,
                         channels: Optional[Sequence[str]] = None) -> List[SalesRecord]:
        return filter_records(self.records, brands=brand, channels=channels)

    def aggregate(self, period: Period, group_by: GroupBy = GroupField.CHANNEL,
                  brand: Optional[str] = None,
                  channels: Optional[Sequence[str]] = None) -> AggregateResult:
        result = aggregate(self.selected_records(brand, channels), period, group_by)
        if result.is_empty:
            logger.info(f"No sales for {period.label} (brand={brand or 'All Brands'})")
        return result

    def compare_periods(self, period: Period,
                        mode: Union[ComparisonMode, str] = ComparisonMode.YEAR_OVER_YEAR,
                        group_by: GroupBy = GroupField.CHANNEL,
                        brand: Optional[str] = None,
                        channels: Optional[Sequence[str]] = None,
                        prior: Optional[Period] = None) -> ComparisonResult:
        """
        Growth of `period` against its prior period

        Args:
            period: Current period
            mode: yoy (same period last year) or pop (immediately preceding period)
            group_by: Grouping for both sides
            brand: Brand selection (None / "All Brands" for the company total)
            channels: Channel selection
            prior: Explicit comparison period, overriding `mode`
        """
        prior = prior or prior_period(period, mode)
        current = self.aggregate(period, group_by, brand, channels)
        previous = self.aggregate(prior, group_by, brand, channels)
        return growth(current, previous)

    def build_view(self, view: str, year, quarter=None, month=None,
                   brand: Optional[str] = None,
                   channels: Optional[Sequence[str]] = None,
                   group_by: GroupBy = GroupField.CHANNEL,
                   compare_mode: Optional[Union[ComparisonMode, str]] = None) -> DashboardView:
        """Resolve the selection and compute aggregate, targets, KPIs and (optionally) growth"""
        period = self.resolve_period(view, year, quarter, month)
        records = self.selected_records(brand, channels)
        result = self.aggregate(period, group_by, brand, channels)
        brands = None if Registry.is_all_brands(brand) else [brand]

        comparison = None
        if compare_mode:
            comparison = self.compare_periods(period, compare_mode, group_by, brand, channels)

        logger.info(f"Built view for {period.label}: revenue {result.total} across {len(result)} keys")
        return DashboardView(
            period=period,
            brand=brand,
            aggregate=result,
            targets=compare(result, self.targets, period, brands=brands, channels=channels),
            summary=summarize(result, records, self.targets, self.today, self.kpi_settings,
                              brands=brands, channels=channels),
            comparison=comparison,
        )

    def trend(self, period: Period, grain: Union[GroupField, str] = GroupField.DATE,
              brand: Optional[str] = None,
              channels: Optional[Sequence[str]] = None) -> AggregateResult:
        """Revenue per time bucket and channel, for trend charts"""
        return self.aggregate(period, [grain, GroupField.CHANNEL], brand, channels)

    def year_options(self, start_year: int = 2020) -> List[int]:
        return year_options(self.records, start_year=start_year, today=self.today)

    def default_year(self, start_year: int = 2020) -> int:
        """Newest year with data, limited to what the year dropdown offers"""
        options = self.year_options(start_year)
        year = latest_year(self.records, today=self.today)
        return year if year in options else options[0]

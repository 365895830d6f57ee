import calendar
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Tuple

from chai_vision.errors import InvalidPeriodError

ZERO = Decimal("0")
HUNDRED = Decimal("100")
UNASSIGNED_SKU = "Unassigned"


class PeriodKind(str, Enum):
    ANNUAL = "annual"
    QUARTERLY = "quarterly"
    MONTHLY = "monthly"
    CUSTOM = "custom"


class ComparisonMode(str, Enum):
    YEAR_OVER_YEAR = "yoy"
    PERIOD_OVER_PERIOD = "pop"


class GroupField(str, Enum):
    BRAND = "brand"
    CHANNEL = "channel"
    DATE = "date"
    SKU = "sku"
    MONTH = "month"      # first day of the month
    QUARTER = "quarter"  # first day of the quarter


@dataclass(frozen=True)
class SalesRecord:
    date: date
    brand: str
    channel: str
    revenue: Decimal  # quantized to cents
    units: Optional[int] = None
    sku: Optional[str] = None

    @property
    def revenue_cents(self) -> int:
        return int(self.revenue * 100)


@dataclass
class RecordError:
    index: int
    row: Dict[str, Any]
    message: str
    field: Optional[str] = None


@dataclass
class NormalizationResult:
    records: List[SalesRecord] = field(default_factory=list)
    errors: List[RecordError] = field(default_factory=list)

    @property
    def total_rows(self) -> int:
        return len(self.records) + len(self.errors)


@dataclass(frozen=True)
class Period:
    kind: PeriodKind
    year: int
    start: date
    end: date  # inclusive
    quarter: Optional[int] = None
    month: Optional[int] = None

    def __post_init__(self):
        if self.start > self.end:
            raise InvalidPeriodError(f"Period start {self.start} is after end {self.end}")
        if (self.quarter is not None) != (self.kind == PeriodKind.QUARTERLY):
            raise InvalidPeriodError(f"quarter must be set only for quarterly periods, got {self.quarter!r}")
        if (self.month is not None) != (self.kind == PeriodKind.MONTHLY):
            raise InvalidPeriodError(f"month must be set only for monthly periods, got {self.month!r}")

    @property
    def label(self) -> str:
        """Human readable name, e.g. 'Q1 2025' or 'February 2024'"""
        if self.kind == PeriodKind.ANNUAL:
            return f"{self.year} Annual"
        if self.kind == PeriodKind.QUARTERLY:
            return f"Q{self.quarter} {self.year}"
        if self.kind == PeriodKind.MONTHLY:
            return f"{calendar.month_name[self.month]} {self.year}"
        return f"{self.start.isoformat()} to {self.end.isoformat()}"

    @property
    def target_key(self) -> Optional[str]:
        """Key used to look this period up in a TargetTable"""
        if self.kind == PeriodKind.ANNUAL:
            return "annual"
        if self.kind == PeriodKind.QUARTERLY:
            return f"Q{self.quarter}"
        if self.kind == PeriodKind.MONTHLY:
            return f"Q{(self.month - 1) // 3 + 1}"
        return None

    @property
    def days(self) -> int:
        return (self.end - self.start).days + 1

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end


@dataclass
class Bucket:
    revenue: Decimal = ZERO
    units: int = 0
    record_count: int = 0


def as_key(key: Any) -> Tuple:
    """Accept a bare value for single-field groupings"""
    return key if isinstance(key, tuple) else (key,)


@dataclass
class AggregateResult:
    period: Period
    group_by: Tuple[GroupField, ...]
    buckets: Dict[Tuple, Bucket] = field(default_factory=dict)
    total: Decimal = ZERO
    total_units: int = 0

    def __len__(self) -> int:
        return len(self.buckets)

    def __iter__(self) -> Iterator[Tuple]:
        return iter(self.buckets)

    def __contains__(self, key: Any) -> bool:
        return as_key(key) in self.buckets

    def __getitem__(self, key: Any) -> Bucket:
        return self.buckets[as_key(key)]

    def get(self, key: Any, default: Optional[Bucket] = None) -> Optional[Bucket]:
        return self.buckets.get(as_key(key), default)

    @property
    def is_empty(self) -> bool:
        return not self.buckets

    def revenue_by_key(self) -> Dict[Any, Decimal]:
        """Plain {key: revenue} mapping; single-field keys are unwrapped"""
        single = len(self.group_by) == 1
        return {
            (key[0] if single else key): bucket.revenue
            for key, bucket in self.buckets.items()
        }

    def contribution_percent(self, key: Any) -> Optional[Decimal]:
        """Share of the period total contributed by one key, None when the total is zero"""
        if self.total <= 0:
            return None
        bucket = self.get(key)
        revenue = bucket.revenue if bucket else ZERO
        return revenue / self.total * HUNDRED


@dataclass
class TargetComparison:
    actual: Decimal
    target: Optional[Decimal]
    performance_percent: Optional[Decimal]  # None when there is no usable target

    @property
    def has_target(self) -> bool:
        return self.target is not None


@dataclass
class GrowthRow:
    current: Decimal
    prior: Decimal
    growth_amount: Decimal
    growth_percent: Decimal  # Decimal('Infinity') marks new growth from zero

    @property
    def is_new(self) -> bool:
        return self.growth_percent.is_infinite()


@dataclass
class ComparisonResult:
    current: AggregateResult
    prior: AggregateResult
    rows: Dict[Tuple, GrowthRow] = field(default_factory=dict)
    total: Optional[GrowthRow] = None

    def __getitem__(self, key: Any) -> GrowthRow:
        return self.rows[as_key(key)]

    def __len__(self) -> int:
        return len(self.rows)

"""
Record Normalizer - turns heterogeneous raw rows into canonical SalesRecords
"""
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Dict, Iterable, Optional

import pandas as pd
from loguru import logger

from chai_vision.errors import ValidationError
from chai_vision.models import NormalizationResult, RecordError, SalesRecord
from chai_vision.periods import shift_years
from chai_vision.registry import Registry, normalize_key

# Canonical field -> accepted source keys (compared after normalize_key)
FIELD_ALIASES = {
    'date': ('date', 'orderdate', 'salesdate'),
    'brand': ('brand', 'brandname'),
    'channel': ('channel', 'channelname'),
    'revenue': ('revenue', 'sales', 'amount'),
    'units': ('units', 'quantity', 'qty'),
    'sku': ('sku', 'skucode'),
}

DATE_FORMATS = ('%Y-%m-%d', '%Y/%m/%d', '%m/%d/%Y')
EXCEL_EPOCH = date(1899, 12, 30)
CENT = Decimal('0.01')


@dataclass
class ValidationSettings:
    max_years_back: int = 10
    max_years_ahead: int = 1
    max_revenue: Decimal = Decimal('100000000')

    @classmethod
    def from_config(cls, config: Dict) -> 'ValidationSettings':
        cfg = config.get('validation', {}) or {}
        return cls(
            max_years_back=int(cfg.get('max_years_back', 10)),
            max_years_ahead=int(cfg.get('max_years_ahead', 1)),
            max_revenue=Decimal(str(cfg.get('max_revenue', '100000000'))),
        )


def _is_missing(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def map_fields(raw: Dict[str, Any]) -> Dict[str, Any]:
    """Pick the canonical fields out of a row using FIELD_ALIASES"""
    by_key = {}
    for key, value in raw.items():
        by_key.setdefault(normalize_key(key), value)

    mapped = {}
    for canonical, aliases in FIELD_ALIASES.items():
        mapped[canonical] = None
        for alias in aliases:
            value = by_key.get(alias)
            if not _is_missing(value):
                mapped[canonical] = value
                break
    return mapped


def parse_date(value: Any) -> date:
    if _is_missing(value):
        raise ValidationError("Date is required", field='date')
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, bool):
        raise ValidationError(f"Invalid date: {value!r}", field='date')
    if isinstance(value, (int, float)):
        # Excel serial day number
        try:
            return EXCEL_EPOCH + timedelta(days=int(value))
        except (OverflowError, ValueError):
            raise ValidationError(f"Invalid date: {value!r}", field='date')

    text = str(value).strip().split('T')[0].split(' ')[0]
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    raise ValidationError(f"Invalid date: {value!r}", field='date')


def parse_revenue(value: Any, max_revenue: Optional[Decimal] = None) -> Decimal:
    if _is_missing(value):
        raise ValidationError("Revenue is required", field='revenue')
    if isinstance(value, bool):
        raise ValidationError(f"Revenue must be numeric, got {value!r}", field='revenue')
    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, (int, float)):
        amount = Decimal(str(value))
    else:
        text = str(value).strip().replace('$', '').replace(',', '').replace(' ', '')
        try:
            amount = Decimal(text)
        except InvalidOperation:
            raise ValidationError(f"Revenue must be numeric, got {value!r}", field='revenue')
    if not amount.is_finite():
        raise ValidationError(f"Revenue must be a finite number, got {value!r}", field='revenue')
    if amount < 0:
        raise ValidationError(f"Revenue must be non-negative, got {amount}", field='revenue')
    if max_revenue is not None and amount > max_revenue:
        raise ValidationError(f"Revenue {value} exceeds the {max_revenue} ceiling", field='revenue')
    try:
        return amount.quantize(CENT, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise ValidationError(f"Revenue out of range: {value!r}", field='revenue')


def parse_units(value: Any) -> Optional[int]:
    if _is_missing(value):
        return None
    if isinstance(value, bool):
        raise ValidationError(f"Units must be an integer, got {value!r}", field='units')
    try:
        amount = Decimal(str(value).strip().replace(',', ''))
    except InvalidOperation:
        raise ValidationError(f"Units must be an integer, got {value!r}", field='units')
    if not amount.is_finite() or amount != amount.to_integral_value():
        raise ValidationError(f"Units must be an integer, got {value!r}", field='units')
    if amount < 0:
        raise ValidationError(f"Units must be non-negative, got {value!r}", field='units')
    return int(amount)


def _clean_text(value: Any) -> Optional[str]:
    if _is_missing(value):
        return None
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def normalize_record(raw: Dict[str, Any],
                     registry: Registry,
                     validation: Optional[ValidationSettings] = None,
                     today: Optional[date] = None) -> SalesRecord:
    """
    Build a SalesRecord from one raw row

    Args:
        raw: Row from an upload, the backend or the demo generator
        registry: Known channels / brands
        validation: Acceptable date window and revenue ceiling
        today: Reference day for the date window (defaults to date.today())

    Returns:
        The canonical record

    Raises:
        ValidationError: If any required field is missing or out of range
    """
    validation = validation or ValidationSettings()
    today = today or date.today()
    fields = map_fields(raw)

    record_date = parse_date(fields['date'])
    earliest = shift_years(today, -validation.max_years_back)
    latest = shift_years(today, validation.max_years_ahead)
    if not earliest <= record_date <= latest:
        raise ValidationError(
            f"Date {record_date.isoformat()} outside accepted range "
            f"{earliest.isoformat()}..{latest.isoformat()}",
            field='date'
        )

    raw_brand = _clean_text(fields['brand'])
    if not raw_brand:
        raise ValidationError("Brand is required", field='brand')
    brand = registry.canonical_brand(raw_brand)
    if not brand:
        raise ValidationError(f"Unknown brand: {raw_brand}", field='brand')

    raw_channel = _clean_text(fields['channel'])
    if not raw_channel:
        raise ValidationError("Channel is required", field='channel')
    channel = registry.canonical_channel(raw_channel)
    if not channel:
        raise ValidationError(f"Unknown channel: {raw_channel}", field='channel')

    revenue = parse_revenue(fields['revenue'], validation.max_revenue)

    return SalesRecord(
        date=record_date,
        brand=brand,
        channel=channel,
        revenue=revenue,
        units=parse_units(fields['units']),
        sku=_clean_text(fields['sku']),
    )


def normalize_records(rows: Iterable[Dict[str, Any]],
                      registry: Registry,
                      validation: Optional[ValidationSettings] = None,
                      today: Optional[date] = None) -> NormalizationResult:
    """Normalize a batch; bad rows are skipped and reported, never fatal"""
    result = NormalizationResult()
    for index, raw in enumerate(rows):
        try:
            result.records.append(normalize_record(raw, registry, validation, today))
        except ValidationError as e:
            logger.debug(f"Row {index} rejected: {e}")
            result.errors.append(RecordError(index=index, row=dict(raw), message=str(e), field=e.field))

    if result.errors:
        logger.warning(f"Skipped {len(result.errors)} of {result.total_rows} rows during normalization")
    logger.info(f"Normalized {len(result.records)} sales records")
    return result

"""
Record and target sources - the only I/O the sales engine depends on
"""
import time
from abc import ABC, abstractmethod
from datetime import date, timedelta
from pathlib import Path
from typing import Any, Dict, List, Optional

import numpy as np
import pandas as pd
import requests
import yaml
from loguru import logger
from tenacity import retry, stop_after_attempt, wait_exponential

from chai_vision.errors import ChaiVisionError
from chai_vision.targets import TargetTable
from chai_vision.utils.paths import resolve_path

RawRecord = Dict[str, Any]

# Daily base revenue per channel for the demo generator
DEMO_CHANNEL_BASE = {
    'Amazon': 250000,
    'TikTok': 30000,
    'DTC-Shopify': 55000,
    'Retail': 11000,
    'CA International': 27000,
    'UK International': 22000,
}
DEMO_BRAND_MULTIPLIER = {'LifePro': 1.0, 'PetCove': 0.12}


class RateLimitedError(ChaiVisionError):
    """Backend answered 429; raised so tenacity retries the request"""


class RecordSource(ABC):
    """Supplies raw sales rows; the engine normalizes them afterwards"""

    @abstractmethod
    def load_sales_data(self) -> List[RawRecord]:
        ...


class TargetSource(ABC):
    """Supplies the TargetTable, read-only to the engine"""

    @abstractmethod
    def load_targets(self) -> TargetTable:
        ...


class CSVRecordSource(RecordSource):
    """Rows from an uploaded CSV or Excel file"""

    def __init__(self, path):
        self.path = Path(path)

    def load_sales_data(self) -> List[RawRecord]:
        if not self.path.exists():
            raise FileNotFoundError(f"Sales data file not found: {self.path}")

        if self.path.suffix.lower() in ('.xlsx', '.xls'):
            df = pd.read_excel(self.path)
        else:
            # Keep cells as text so revenue is not routed through float
            df = pd.read_csv(self.path, dtype=str, keep_default_na=False)

        logger.info(f"Loaded {len(df)} rows from {self.path}")
        return df.to_dict('records')


class SupabaseRecordSource(RecordSource):
    """Rows from the hosted sales_data table through the PostgREST API"""

    def __init__(self, config: Dict):
        cfg = config['supabase']
        self.base_url = str(cfg['url']).rstrip('/')
        self.table = cfg.get('table', 'sales_data')
        self.page_size = int(cfg.get('page_size', 1000))
        self.timeout = cfg.get('timeout', 30)
        # Unique column that keeps rows sharing a date in the same order on every page
        self.tiebreaker = cfg.get('order_key', 'id')

        api_key = cfg.get('anon_key')
        if not api_key:
            raise ValueError("SUPABASE_ANON_KEY not set")

        self.session = requests.Session()
        self.session.headers.update({
            'apikey': api_key,
            'Authorization': f'Bearer {api_key}',
            'Accept': 'application/json'
        })

    @retry(stop=stop_after_attempt(3), wait=wait_exponential(multiplier=1, min=4, max=10))
    def _make_request(self, endpoint: str, params: Optional[Dict] = None) -> List[RawRecord]:
        """Make API request with retry logic"""
        url = f"{self.base_url}{endpoint}"
        logger.debug(f"Making request to {url}")

        response = self.session.get(url, params=params, timeout=self.timeout)

        if response.status_code == 429:  # Too Many Requests
            retry_after = int(response.headers.get('Retry-After', 60))
            logger.warning(f"Rate limited, waiting {retry_after} seconds")
            time.sleep(retry_after)
            raise RateLimitedError("Rate limited, retrying...")

        response.raise_for_status()
        return response.json()

    def load_sales_data(self) -> List[RawRecord]:
        """Fetch every row, newest first, one page at a time"""
        rows: List[RawRecord] = []
        offset = 0
        while True:
            page = self._make_request(f'/rest/v1/{self.table}', {
                'select': '*',
                'order': f'date.desc,{self.tiebreaker}.asc',
                'limit': self.page_size,
                'offset': offset
            })
            rows.extend(page)
            if len(page) < self.page_size:
                break
            offset += self.page_size

        logger.info(f"Loaded {len(rows)} rows from {self.table}")
        return rows


class DemoRecordSource(RecordSource):
    """Synthetic daily sales for every demo brand and channel"""

    def __init__(self, start: date, end: date, seed: Optional[int] = None):
        self.start = start
        self.end = end
        self.seed = seed

    def load_sales_data(self) -> List[RawRecord]:
        rng = np.random.default_rng(self.seed)
        rows = []
        day = self.start
        while day <= self.end:
            is_weekend = day.weekday() >= 5
            for brand, multiplier in DEMO_BRAND_MULTIPLIER.items():
                for channel, base in DEMO_CHANNEL_BASE.items():
                    revenue = base * multiplier
                    if is_weekend:
                        revenue *= 0.7
                    revenue *= rng.uniform(0.8, 1.2)
                    rows.append({
                        'date': day.isoformat(),
                        'brand': brand,
                        'channel': channel,
                        'revenue': int(round(revenue))
                    })
            day += timedelta(days=1)

        logger.info(f"Generated {len(rows)} demo rows from {self.start} to {self.end}")
        return rows


class StaticTargetSource(TargetSource):
    def __init__(self, table: Optional[TargetTable] = None):
        self.table = table or TargetTable()

    def load_targets(self) -> TargetTable:
        return self.table


class YamlTargetSource(TargetSource):
    """Targets file laid out as year -> period -> brand -> channel -> amount"""

    def __init__(self, path):
        self.path = Path(path)

    def load_targets(self) -> TargetTable:
        if not self.path.exists():
            logger.warning(f"Targets file not found: {self.path}; continuing without targets")
            return TargetTable()

        with open(self.path, 'r') as f:
            data = yaml.safe_load(f) or {}

        table = TargetTable.from_nested(data.get('targets', data))
        logger.info(f"Loaded {len(table)} targets for years {list(table.years())}")
        return table


def build_record_source(config: Dict, today: Optional[date] = None) -> RecordSource:
    """Pick the record source named in config['data_source']['type']"""
    source_cfg = config.get('data_source', {})
    source_type = source_cfg.get('type', 'demo')

    if source_type == 'csv':
        return CSVRecordSource(source_cfg['csv_path'])
    if source_type == 'supabase':
        return SupabaseRecordSource(config)
    if source_type == 'demo':
        start = date.fromisoformat(str(source_cfg.get('demo_start', '2025-01-01')))
        # Data lands two days behind, as with the live feeds
        end = (today or date.today()) - timedelta(days=2)
        return DemoRecordSource(start, end, seed=source_cfg.get('demo_seed'))
    raise ValueError(f"Unknown data source: {source_type}")


def build_target_source(config: Dict) -> TargetSource:
    path = Path(config.get('targets', {}).get('path', 'config/targets.yaml'))
    if not path.is_absolute():
        path = resolve_path(str(path))
    return YamlTargetSource(path)

from datetime import date
from decimal import Decimal

import pytest
import yaml

from chai_vision.models import SalesRecord


@pytest.fixture
def make_record():
    """Factory for SalesRecords with sensible defaults"""
    def _make(day, revenue, brand='LifePro', channel='Amazon', units=None, sku=None):
        if isinstance(day, str):
            day = date.fromisoformat(day)
        return SalesRecord(date=day, brand=brand, channel=channel,
                           revenue=Decimal(str(revenue)), units=units, sku=sku)
    return _make


@pytest.fixture
def sample_rows():
    """Raw upload rows as they come out of a CSV"""
    return [
        {'Date': '2025-01-15', 'Channel': 'Amazon', 'Brand': 'LifePro', 'Revenue': '1000.00'},
        {'Date': '2025-02-10', 'Channel': 'Shopify', 'Brand': 'LifePro', 'Revenue': '$500.50'},
        {'Date': '2025-02-11', 'Channel': 'TikTok', 'Brand': 'PetCove', 'Revenue': '250'},
        {'Date': '2024-01-20', 'Channel': 'Amazon', 'Brand': 'LifePro', 'Revenue': '800'},
        {'Date': '2025-04-02', 'Channel': 'Amazon', 'Brand': 'LifePro', 'Revenue': '300'},
    ]


@pytest.fixture
def project_dir(tmp_path, sample_rows):
    """A config.yaml with a CSV source and a targets file, all inside tmp_path"""
    csv_path = tmp_path / 'sales.csv'
    lines = ['Date,Channel,Brand,Revenue']
    lines += [f"{r['Date']},{r['Channel']},{r['Brand']},\"{r['Revenue']}\"" for r in sample_rows]
    csv_path.write_text('\n'.join(lines) + '\n')

    targets_path = tmp_path / 'targets.yaml'
    targets_path.write_text(yaml.safe_dump({'targets': {
        2025: {
            'annual': {'LifePro': {'Amazon': 8000, 'DTC-Shopify': 2000}},
            'Q1': {'LifePro': {'Amazon': 2000, 'DTC-Shopify': 500}},
        }
    }}))

    config = {
        'data_source': {'type': 'csv', 'csv_path': str(csv_path)},
        'targets': {'path': str(targets_path)},
        'paths': {'output_dir': str(tmp_path / 'output'), 'log_dir': str(tmp_path / 'logs')},
    }
    config_path = tmp_path / 'config.yaml'
    config_path.write_text(yaml.safe_dump(config))
    return tmp_path

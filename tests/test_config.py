# tests/test_config.py
import pytest
import yaml

from chai_vision.config import load_config
from chai_vision.kpis import KPISettings
from chai_vision.normalizer import ValidationSettings
from chai_vision.registry import Registry


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ('CHAI_VISION_DATA_SOURCE', 'SUPABASE_URL', 'SUPABASE_ANON_KEY'):
        monkeypatch.delenv(name, raising=False)


def write_config(tmp_path, data):
    data.setdefault('paths', {'output_dir': str(tmp_path / 'out'), 'log_dir': str(tmp_path / 'logs')})
    path = tmp_path / 'config.yaml'
    path.write_text(yaml.safe_dump(data))
    return str(path)


class TestLoadConfig:
    def test_defaults_filled_and_dirs_created(self, tmp_path):
        config = load_config(write_config(tmp_path, {}))

        assert config['data_source']['type'] == 'demo'
        assert config['kpi']['threshold'] == 0.85
        assert config['reporting']['timezone'] == 'US/Pacific'
        assert config['validation']['max_years_back'] == 10
        assert (tmp_path / 'out').is_dir()
        assert (tmp_path / 'logs').is_dir()

    def test_environment_overrides(self, tmp_path, monkeypatch):
        monkeypatch.setenv('CHAI_VISION_DATA_SOURCE', 'supabase')
        monkeypatch.setenv('SUPABASE_URL', 'https://example.supabase.co')
        monkeypatch.setenv('SUPABASE_ANON_KEY', 'secret')

        config = load_config(write_config(tmp_path, {'data_source': {'type': 'csv'}}))

        assert config['data_source']['type'] == 'supabase'
        assert config['supabase']['anon_key'] == 'secret'
        assert config['supabase']['table'] == 'sales_data'

    def test_supabase_needs_credentials(self, tmp_path):
        with pytest.raises(ValueError):
            load_config(write_config(tmp_path, {'data_source': {'type': 'supabase'}}))

    def test_unknown_source(self, tmp_path):
        with pytest.raises(ValueError):
            load_config(write_config(tmp_path, {'data_source': {'type': 'ftp'}}))

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(str(tmp_path / 'nope.yaml'))

    def test_sections_feed_settings(self, tmp_path):
        config = load_config(write_config(tmp_path, {
            'kpi': {'threshold': 0.9, 'run_rate_days': 7},
            'validation': {'max_revenue': 5000},
            'registry': {'channels': ['Amazon', 'Faire'], 'channel_aliases': {'faire wholesale': 'Faire'}},
        }))

        assert KPISettings.from_config(config).run_rate_days == 7
        assert str(ValidationSettings.from_config(config).max_revenue) == '5000'
        registry = Registry.from_config(config)
        assert registry.canonical_channel('Faire Wholesale') == 'Faire'
        assert registry.canonical_channel('TikTok') is None

import yaml
import os
from pathlib import Path
from dotenv import load_dotenv
from chai_vision.utils.paths import resolve_path

DATA_SOURCES = ('csv', 'supabase', 'demo')

def load_config(config_path: str = None) -> dict:
    """Load configuration from YAML file and environment variables"""

    # Load environment variables
    load_dotenv()

    if config_path is None:
        config_file = resolve_path("config", "config.yaml")
    elif Path(config_path).is_absolute():
        config_file = Path(config_path)
    else:
        # Relative paths are taken from the project root
        config_file = resolve_path(config_path)

    if not config_file.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_file}")

    with open(config_file, 'r') as f:
        config = yaml.safe_load(f) or {}

    # Override with environment variables if present
    config.setdefault('data_source', {})
    config.setdefault('supabase', {})
    if os.getenv('CHAI_VISION_DATA_SOURCE'):
        config['data_source']['type'] = os.getenv('CHAI_VISION_DATA_SOURCE')
    if os.getenv('SUPABASE_URL'):
        config['supabase']['url'] = os.getenv('SUPABASE_URL')
    if os.getenv('SUPABASE_ANON_KEY'):
        config['supabase']['anon_key'] = os.getenv('SUPABASE_ANON_KEY')

    # Set defaults
    config['data_source'].setdefault('type', 'demo')
    config['data_source'].setdefault('csv_path', 'data/sales_data.csv')
    config['data_source'].setdefault('demo_start', '2025-01-01')
    config['data_source'].setdefault('demo_seed', 42)

    source_type = config['data_source']['type']
    if source_type not in DATA_SOURCES:
        raise ValueError(f"Unknown data source '{source_type}', expected one of {', '.join(DATA_SOURCES)}")

    config['supabase'].setdefault('table', 'sales_data')
    config['supabase'].setdefault('page_size', 1000)
    config['supabase'].setdefault('timeout', 30)

    # Ensure required settings
    if source_type == 'supabase':
        if not config['supabase'].get('url') or not config['supabase'].get('anon_key'):
            raise ValueError("SUPABASE_URL / SUPABASE_ANON_KEY not found in config or environment")

    config.setdefault('targets', {})
    config['targets'].setdefault('path', 'config/targets.yaml')

    config.setdefault('registry', {})
    config.setdefault('validation', {})
    config['validation'].setdefault('max_years_back', 10)
    config['validation'].setdefault('max_years_ahead', 1)
    config['validation'].setdefault('max_revenue', 100000000)

    config.setdefault('kpi', {})
    config['kpi'].setdefault('threshold', 0.85)
    config['kpi'].setdefault('run_rate_days', 14)

    config.setdefault('reporting', {})
    config['reporting'].setdefault('timezone', 'US/Pacific')

    config.setdefault('paths', {})
    config['paths'].setdefault('output_dir', 'data/output')
    config['paths'].setdefault('log_dir', 'logs')

    config.setdefault('logging', {})
    config['logging'].setdefault('level', 'INFO')

    # Create directories
    for dir_key, dir_path in config['paths'].items():
        Path(dir_path).mkdir(parents=True, exist_ok=True)

    return config

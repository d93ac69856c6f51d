import os
import copy
import yaml
from pathlib import Path
from dotenv import load_dotenv

load_dotenv()

BASE_RPC_URL = os.getenv("BASE_RPC_URL", "https://mainnet.base.org")
RADAR_DB_PATH = os.getenv("RADAR_DB_PATH", "data/tokens.db")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

API_HOST = os.getenv("API_HOST", "0.0.0.0")
API_PORT = int(os.getenv("API_PORT", "8080"))

# Base network addresses
UNISWAP_V4_POOL_MANAGER = "0x498581fF718922c3f8e6A244956aF099B2652b2b"
BASE_WETH = "0x4200000000000000000000000000000000000006"
BASE_USDC = "0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913"

RADAR_CONFIG = {
    'chain_name': 'base',
    'rpc_url': BASE_RPC_URL,
    'pool_manager_address': UNISWAP_V4_POOL_MANAGER,

    # Pairs against these assets mark the other leg as a new token
    'reference_assets': {
        'WETH': BASE_WETH,
        'USDC': BASE_USDC,
    },

    # Block range
    'lookback_blocks': 200,       # ~7 minutes on Base when the cursor is unset
    'max_block_range': 5000,      # never backfill further than this behind head

    # Record lifecycle
    'freshness_seconds': 2 * 3600,  # hidden from top-N after 2h
    'expiry_seconds': 4 * 3600,     # deleted after 4h
    'top_n': 20,
    'spike_threshold': 25,

    # Timeouts / concurrency
    'rpc_timeout_seconds': 10,
    'store_timeout_seconds': 5,
    'metadata_cache_ttl_seconds': 1800,
    'max_concurrent_events': 4,
    'rpc_max_retries': 3,
    'rpc_retry_base_delay': 2,  # seconds, doubled per attempt

    # Scheduling
    'scan_interval_seconds': int(os.getenv("SCAN_INTERVAL_SECONDS", "15")),

    # Storage
    'db_path': RADAR_DB_PATH,
    'persist_cursor': True,

    # Placeholder market data; set for reproducible runs
    'market_data_seed': None,
}

# Optional overrides
RADAR_CONFIG_PATH = Path(os.getenv("RADAR_CONFIG_PATH", Path(__file__).parent / "radar.yaml"))


def load_radar_overrides(path=None):
    """Load overrides from radar.yaml (top-level 'radar' mapping)"""
    path = Path(path) if path else RADAR_CONFIG_PATH
    if path.exists():
        with open(path, 'r') as f:
            data = yaml.safe_load(f) or {}
        return data.get('radar', {}) or {}
    return {}


def get_radar_config(path=None, overrides=None):
    """Return a merged copy of RADAR_CONFIG with YAML and explicit overrides applied."""
    config = copy.deepcopy(RADAR_CONFIG)
    for source in (load_radar_overrides(path), overrides or {}):
        for key, value in source.items():
            if isinstance(value, dict) and isinstance(config.get(key), dict):
                config[key].update(value)
            else:
                config[key] = value
    return config

"""
BASE TOKEN RADAR

Incremental scanner for new Uniswap V4 pools on Base.

Architecture:
  PoolManager Initialize logs
          ↓
  SCAN COORDINATOR (cursor, block range, aging/expiry)
          ↓
  POOL EVENT PROCESSOR (relevance, dedup, metadata, classify, score)
          ↓
  TOKEN STORE (upsert, top-N, age, expire)
"""

from .errors import RadarError, ChainReadError, StoreError, RecordValidationError
from .models import (
    TokenType,
    TokenRecord,
    PoolCreationEvent,
    MarketSnapshot,
    ScanSummary,
    normalize_address,
)
from .score_calculator import calculate_score, is_spiking
from .token_classifier import classify_token
from .metadata_resolver import MetadataResolver, MetadataResolution, MetadataStatus, TokenMetadata
from .market_data import MarketDataSource, SyntheticMarketData, StaticMarketData
from .token_store import TokenStore, SQLiteTokenStore
from .scan_cursor import ScanCursor
from .pool_event_processor import PoolEventProcessor
from .scan_coordinator import ScanCoordinator
from .scheduler import ScanScheduler

__all__ = [
    'RadarError',
    'ChainReadError',
    'StoreError',
    'RecordValidationError',
    'TokenType',
    'TokenRecord',
    'PoolCreationEvent',
    'MarketSnapshot',
    'ScanSummary',
    'normalize_address',
    'calculate_score',
    'is_spiking',
    'classify_token',
    'MetadataResolver',
    'MetadataResolution',
    'MetadataStatus',
    'TokenMetadata',
    'MarketDataSource',
    'SyntheticMarketData',
    'StaticMarketData',
    'TokenStore',
    'SQLiteTokenStore',
    'ScanCursor',
    'PoolEventProcessor',
    'ScanCoordinator',
    'ScanScheduler',
]

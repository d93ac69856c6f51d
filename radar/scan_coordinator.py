"""
Scan Coordinator

One scan cycle:
  1. age + expire stored tokens
  2. pick the block range from the cursor and the chain head
  3. fetch pool-creation events in that range
  4. run every event through the PoolEventProcessor
  5. advance the cursor (only if 3 and 4 completed)
  6. report the top tokens

A chain or store failure aborts the cycle without moving the cursor, and
the coordinator still tries to serve cached tokens from the store.
"""
import asyncio
import logging
import random
import time
from typing import Dict, List, Optional

from .errors import ChainReadError, RadarError, StoreError
from .market_data import SyntheticMarketData
from .metadata_resolver import MetadataResolver
from .models import PoolCreationEvent, ScanSummary
from .pool_event_processor import PoolEventProcessor
from .scan_cursor import ScanCursor
from .token_store import SQLiteTokenStore

logger = logging.getLogger(__name__)

DEGRADED_ERROR = "Scan failed, returning cached data"
TOTAL_FAILURE_ERROR = "Complete system failure"


class ScanCoordinator:
    """
    Drives scan cycles against one chain adapter and one token store.

    Usage:
        coordinator = ScanCoordinator(chain, store, processor, config)
        summary = await coordinator.run_cycle()
        payload, status = summary.to_response(), summary.status_code
    """

    def __init__(self, chain, store, processor: PoolEventProcessor, config: Dict = None,
                 cursor: Optional[ScanCursor] = None):
        """
        Args:
            chain: ChainAdapter
            store: TokenStore
            processor: PoolEventProcessor bound to the same store
            config: Radar configuration dict (see config.RADAR_CONFIG)
            cursor: Explicit cursor; built from config when omitted
        """
        self.config = config or {}
        self.chain = chain
        self.store = store
        self.processor = processor

        self.lookback_blocks = self.config.get('lookback_blocks', 200)
        self.max_block_range = self.config.get('max_block_range', 5000)
        self.freshness_seconds = self.config.get('freshness_seconds', 2 * 3600)
        self.expiry_seconds = self.config.get('expiry_seconds', 4 * 3600)
        self.top_n = self.config.get('top_n', 20)
        self.rpc_timeout = self.config.get('rpc_timeout_seconds', 10)
        self.store_timeout = self.config.get('store_timeout_seconds', 5)
        self.max_concurrent_events = max(1, self.config.get('max_concurrent_events', 4))
        self.spike_threshold = self.config.get('spike_threshold', 25)

        self.cursor = cursor or ScanCursor(store, persist=self.config.get('persist_cursor', True))
        self._cycle_lock = asyncio.Lock()

        self.last_summary: Optional[ScanSummary] = None
        self.cycles_run = 0
        self.cycles_failed = 0

    @classmethod
    def from_config(cls, config: Dict, chain, store=None, market_data=None) -> "ScanCoordinator":
        """
        Wire a coordinator from RADAR_CONFIG-style settings.

        Args:
            config: Radar configuration dict
            chain: Connected ChainAdapter
            store: TokenStore; a SQLiteTokenStore at config['db_path'] when omitted
            market_data: MarketDataSource; SyntheticMarketData when omitted
        """
        if store is None:
            store = SQLiteTokenStore(
                config.get('db_path', 'data/tokens.db'),
                spike_threshold=config.get('spike_threshold', 25),
            )
        if market_data is None:
            seed = config.get('market_data_seed')
            market_data = SyntheticMarketData(random.Random(seed) if seed is not None else None)
        resolver = MetadataResolver(
            chain,
            read_timeout=config.get('rpc_timeout_seconds', 10),
            cache_ttl=config.get('metadata_cache_ttl_seconds', 1800),
        )
        processor = PoolEventProcessor(
            store,
            resolver,
            market_data,
            reference_assets=config['reference_assets'],
            freshness_seconds=config.get('freshness_seconds', 2 * 3600),
            store_timeout=config.get('store_timeout_seconds', 5),
            spike_threshold=config.get('spike_threshold', 25),
        )
        return cls(chain, store, processor, config)

    async def _chain_call(self, func, *args):
        try:
            return await asyncio.wait_for(asyncio.to_thread(func, *args), timeout=self.rpc_timeout)
        except asyncio.TimeoutError as e:
            raise ChainReadError(f"{func.__name__} timed out after {self.rpc_timeout}s") from e
        except ChainReadError:
            raise
        except Exception as e:
            raise ChainReadError(f"{func.__name__} failed: {e}") from e

    async def _store_call(self, func, *args, **kwargs):
        try:
            return await asyncio.wait_for(asyncio.to_thread(func, *args, **kwargs), timeout=self.store_timeout)
        except asyncio.TimeoutError as e:
            raise StoreError(f"{func.__name__} timed out after {self.store_timeout}s") from e
        except StoreError:
            raise
        except Exception as e:
            raise StoreError(f"{func.__name__} failed: {e}") from e

    async def run_cycle(self) -> ScanSummary:
        """Run one scan cycle. Never raises; failures are reported in the summary."""
        async with self._cycle_lock:
            self.cycles_run += 1
            try:
                summary = await self._scan()
            except RadarError as scan_error:
                self.cycles_failed += 1
                logger.error(f"Error in token scan: {scan_error}")
                summary = await self._degraded_summary(scan_error)
            self.last_summary = summary
            return summary

    async def _scan(self) -> ScanSummary:
        logger.info("🔍 Starting Base token scan...")

        aged = await self._store_call(
            self.store.age_all_within, self.freshness_seconds, spike_threshold=self.spike_threshold
        )
        expired = await self._store_call(self.store.expire_older_than, self.expiry_seconds)
        logger.debug(f"Aged {aged} tokens, expired {expired}")

        head = await self._chain_call(self.chain.get_current_block_height)
        logger.info(f"Current block: {head}")

        block_range = self.cursor.next_range(head, self.lookback_blocks, self.max_block_range)
        if block_range is None:
            logger.info(f"⏸️  No new blocks (current: {head}, last: {self.cursor.last_block})")
            tokens = await self._store_call(self.store.query_top, self.top_n, self.freshness_seconds)
            return ScanSummary(tokens=tokens)

        from_block, to_block = block_range
        logger.info(f"Scanning blocks {from_block} to {to_block}")

        events = await self._chain_call(self.chain.get_pool_creation_events, from_block, to_block)
        logger.info(f"Found {len(events)} pool initialization events")

        new_tokens = await self._process_events(events)

        await self._store_call(self.cursor.advance, to_block)

        tokens = await self._store_call(self.store.query_top, self.top_n, self.freshness_seconds)
        logger.info(f"Returning {len(tokens)} tokens ({new_tokens} new this scan)")

        return ScanSummary(
            tokens=tokens,
            blocks_scanned=(from_block, to_block),
            new_tokens_found=new_tokens,
            total_events=len(events),
        )

    async def _process_events(self, events: List[PoolCreationEvent]) -> int:
        """Process events in arrival order with bounded concurrency."""
        semaphore = asyncio.Semaphore(self.max_concurrent_events)

        async def run(event):
            async with semaphore:
                return await self.processor.process(event)

        results = await asyncio.gather(*(run(event) for event in events))
        return sum(1 for recorded in results if recorded)

    async def _degraded_summary(self, scan_error: Exception) -> ScanSummary:
        """Serve cached tokens after a failed scan, or report total failure."""
        try:
            tokens = await self._store_call(self.store.query_top, self.top_n, self.freshness_seconds)
        except RadarError as db_error:
            logger.error(f"❌ Store unavailable after failed scan: {db_error}")
            return ScanSummary(
                error=TOTAL_FAILURE_ERROR,
                scan_error=str(scan_error) or "Unknown scan error",
                db_error=str(db_error) or "Unknown database error",
            )
        return ScanSummary(
            tokens=tokens,
            error=DEGRADED_ERROR,
            details=str(scan_error) or "Unknown error",
        )

    def get_status(self) -> Dict:
        """Snapshot for health checks."""
        summary = self.last_summary
        return {
            'cursor': self.cursor.last_block,
            'cycles_run': self.cycles_run,
            'cycles_failed': self.cycles_failed,
            'last_update': summary.last_update if summary else None,
            'last_new_tokens': summary.new_tokens_found if summary else 0,
            'last_total_events': summary.total_events if summary else 0,
            'processor': dict(self.processor.stats),
            'timestamp': time.time(),
        }

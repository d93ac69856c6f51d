"""
Pool Event Processor

Turns one pool-creation event into at most one new token record:

  relevance -> dedup -> metadata -> classify -> market data -> score -> upsert

Every failure inside this pipeline is local to the event: it is logged and
the event counts as "nothing recorded". The scan cycle never sees it.
"""
import asyncio
import logging
import time
from typing import Dict, Optional, Tuple

from .errors import RecordValidationError, StoreError
from .metadata_resolver import MetadataResolver
from .market_data import MarketDataSource
from .models import PoolCreationEvent, TokenRecord, normalize_address
from .score_calculator import calculate_score, is_spiking
from .token_classifier import classify_token

logger = logging.getLogger(__name__)


class PoolEventProcessor:

    def __init__(self, store, metadata_resolver: MetadataResolver, market_data: MarketDataSource,
                 reference_assets: Dict[str, str], freshness_seconds: float = 7200,
                 store_timeout: float = 5.0, spike_threshold: int = 25):
        """
        Args:
            store: TokenStore handle
            metadata_resolver: Resolver bound to the chain adapter
            market_data: Source of initial liquidity/momentum/price metrics
            reference_assets: {symbolic name: address}, e.g. {'WETH': ..., 'USDC': ...}
            freshness_seconds: Visibility horizon used for the dedup lookup
            store_timeout: Timeout per store call in seconds
            spike_threshold: Score at which a token is flagged as spiking
        """
        self.store = store
        self.metadata_resolver = metadata_resolver
        self.market_data = market_data
        self.reference_assets = {
            normalize_address(address): name for name, address in reference_assets.items()
        }
        self.freshness_seconds = freshness_seconds
        self.store_timeout = store_timeout
        self.spike_threshold = spike_threshold
        # per-address write serialization, dropped once no event holds it
        self._address_locks: Dict[str, asyncio.Lock] = {}
        self._lock_users: Dict[str, int] = {}

        self.stats = {
            'irrelevant': 0,
            'duplicates': 0,
            'metadata_rejected': 0,
            'errors': 0,
            'recorded': 0,
        }

    def match_reference(self, event: PoolCreationEvent) -> Optional[Tuple[str, str]]:
        """
        Returns (candidate token address, paired reference name) or None when
        the pool does not pair a new token against exactly one reference asset.
        """
        leg0 = normalize_address(event.currency0)
        leg1 = normalize_address(event.currency1)
        ref0 = self.reference_assets.get(leg0)
        ref1 = self.reference_assets.get(leg1)
        if ref0 and not ref1:
            return event.currency1, ref0
        if ref1 and not ref0:
            return event.currency0, ref1
        return None

    async def _store_call(self, func, *args):
        try:
            return await asyncio.wait_for(asyncio.to_thread(func, *args), timeout=self.store_timeout)
        except asyncio.TimeoutError as e:
            raise StoreError(f"{func.__name__} timed out after {self.store_timeout}s") from e

    async def process(self, event: PoolCreationEvent) -> bool:
        """
        Process one pool-creation event.

        Returns:
            True if a new token record was written, False otherwise
        """
        match = self.match_reference(event)
        if match is None:
            self.stats['irrelevant'] += 1
            return False

        token_address, paired_with = match
        key = normalize_address(token_address)
        lock = self._address_locks.setdefault(key, asyncio.Lock())
        self._lock_users[key] = self._lock_users.get(key, 0) + 1
        try:
            async with lock:
                return await self._process_candidate(event, token_address, paired_with)
        except Exception as e:
            self.stats['errors'] += 1
            logger.error(f"Error processing pool event {event.pool_id}: {e}")
            return False
        finally:
            self._lock_users[key] -= 1
            if self._lock_users[key] == 0:
                del self._lock_users[key]
                del self._address_locks[key]

    async def _process_candidate(self, event: PoolCreationEvent, token_address: str, paired_with: str) -> bool:
        if await self._store_call(self.store.contains, token_address, self.freshness_seconds):
            self.stats['duplicates'] += 1
            return False

        logger.info(f"🆕 New {paired_with} pair: {token_address}")

        resolution = await self.metadata_resolver.resolve(token_address)
        if not resolution.ok:
            self.stats['metadata_rejected'] += 1
            logger.info(f"Skipping {token_address}: metadata {resolution.status.value} ({resolution.reason})")
            return False
        metadata = resolution.metadata

        token_type = classify_token(event.fee, event.hook_payload)

        snapshot = await self.market_data.get_snapshot(token_address, event.pool_id, paired_with)
        age_minutes = 0
        score = calculate_score(age_minutes, snapshot.liquidity_usd, snapshot.price_change_percent)

        now = time.time()
        record = TokenRecord(
            address=token_address,
            symbol=metadata.symbol,
            name=metadata.name,
            pool_id=event.pool_id,
            paired_with=paired_with,
            score=score,
            liquidity=snapshot.liquidity_usd,
            price=snapshot.price,
            price_change=snapshot.price_change_percent,
            market_cap=snapshot.market_cap,
            volume_24h=snapshot.volume_24h,
            age_minutes=age_minutes,
            is_spiking=is_spiking(score, self.spike_threshold),
            token_type=token_type,
            detected_at=now,
            last_updated=now,
        )
        try:
            record.validate()
        except RecordValidationError as e:
            self.stats['errors'] += 1
            logger.warning(f"⚠️  Discarding invalid record for {token_address}: {e}")
            return False

        _, created = await self._store_call(self.store.upsert, record)
        if not created:
            self.stats['duplicates'] += 1
            logger.info(f"{metadata.symbol} already stored by a concurrent scan")
            return False

        self.stats['recorded'] += 1
        logger.info(f"✅ Saved token: {metadata.symbol} (Score: {score}, Type: {token_type.value})")
        return True

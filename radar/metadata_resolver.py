"""
ERC-20 Token Metadata Resolver

Resolves display metadata for a candidate token:
- name, symbol and decimals read concurrently
- each field falls back to a default on its own failure
- length validation before anything is persisted
- caching with TTL

Outcomes are reported through MetadataStatus, never raised.
"""
import time
import asyncio
import logging
from enum import Enum
from typing import Dict, Optional
from dataclasses import dataclass

from web3 import Web3

from .errors import ChainReadError
from .models import MAX_NAME_LENGTH, MAX_SYMBOL_LENGTH, normalize_address

logger = logging.getLogger(__name__)

DEFAULT_NAME = "Unknown Token"
DEFAULT_SYMBOL = "UNK"
DEFAULT_DECIMALS = 18

FIELD_DEFAULTS = {
    "name": DEFAULT_NAME,
    "symbol": DEFAULT_SYMBOL,
    "decimals": DEFAULT_DECIMALS,
}


class MetadataStatus(Enum):
    RESOLVED = "RESOLVED"
    INVALID = "INVALID"          # fields read but failed validation
    UNAVAILABLE = "UNAVAILABLE"  # chain could not be read at all


@dataclass
class TokenMetadata:
    """Resolved token metadata."""
    address: str
    name: str
    symbol: str
    decimals: int
    fallback_fields: tuple = ()
    timestamp: float = None

    def __post_init__(self):
        if self.timestamp is None:
            self.timestamp = time.time()

    def is_fresh(self, ttl_seconds: int = 1800) -> bool:
        """Check if metadata is still fresh."""
        return time.time() - self.timestamp < ttl_seconds


@dataclass
class MetadataResolution:
    status: MetadataStatus
    metadata: Optional[TokenMetadata] = None
    reason: str = ""

    @property
    def ok(self) -> bool:
        return self.status is MetadataStatus.RESOLVED


def _clean_text(value) -> str:
    if isinstance(value, (bytes, bytearray)):
        value = value.rstrip(b"\x00").decode("utf-8", errors="replace")
    return str(value).replace("\x00", "").strip()


class MetadataResolver:
    """
    Resolves ERC-20 metadata through a chain adapter.

    The three reads are independent: a token without a readable name still
    resolves with the default name.
    """

    def __init__(self, chain, read_timeout: float = 10.0, cache_ttl: int = 1800):
        """
        Args:
            chain: ChainAdapter exposing read_field()
            read_timeout: Timeout per field read in seconds
            cache_ttl: Cache TTL in seconds (default 30 minutes)
        """
        self.chain = chain
        self.read_timeout = read_timeout
        self.cache_ttl = cache_ttl
        self._metadata_cache: Dict[str, TokenMetadata] = {}

    async def _read_field(self, address: str, field_name: str):
        """Returns (value, fell_back, rpc_down)."""
        default = FIELD_DEFAULTS[field_name]
        try:
            value = await asyncio.wait_for(
                asyncio.to_thread(self.chain.read_field, address, field_name),
                timeout=self.read_timeout
            )
        except (asyncio.TimeoutError, ChainReadError) as e:
            logger.debug(f"[META] {field_name} unreadable for {address} (rpc): {e}")
            return default, True, True
        except Exception as e:
            logger.debug(f"[META] {field_name} unreadable for {address}: {e}")
            return default, True, False
        if value is None:
            return default, True, False
        return value, False, False

    async def resolve(self, token_address: str) -> MetadataResolution:
        """
        Resolve token metadata for a contract address.

        Returns:
            MetadataResolution; metadata is set only when status is RESOLVED
        """
        address = normalize_address(token_address)
        if not Web3.is_address(address):
            return MetadataResolution(MetadataStatus.UNAVAILABLE, reason=f"invalid address {token_address!r}")

        cached = self._metadata_cache.get(address)
        if cached and cached.is_fresh(self.cache_ttl):
            logger.debug(f"[META] Cache hit: {cached.symbol} ({cached.name})")
            return MetadataResolution(MetadataStatus.RESOLVED, cached)

        try:
            results = await asyncio.gather(
                self._read_field(address, "name"),
                self._read_field(address, "symbol"),
                self._read_field(address, "decimals"),
            )
            if all(rpc_down for _, _, rpc_down in results):
                return MetadataResolution(MetadataStatus.UNAVAILABLE, reason="chain unreachable for all fields")

            (name, _, _), (symbol, _, _), (decimals, _, _) = results
            fallback = tuple(
                field_name for field_name, (_, fell_back, _) in zip(("name", "symbol", "decimals"), results)
                if fell_back
            )
            name = _clean_text(name)
            symbol = _clean_text(symbol)
            decimals = int(decimals)
        except Exception as e:
            logger.error(f"Error fetching metadata for {address}: {e}")
            return MetadataResolution(MetadataStatus.UNAVAILABLE, reason=str(e))

        if len(symbol) > MAX_SYMBOL_LENGTH or len(name) > MAX_NAME_LENGTH:
            logger.info(f"Skipping token with invalid metadata: {symbol[:40]!r}")
            return MetadataResolution(
                MetadataStatus.INVALID,
                reason=f"symbol {len(symbol)} chars / name {len(name)} chars"
            )

        metadata = TokenMetadata(
            address=address,
            name=name,
            symbol=symbol,
            decimals=decimals,
            fallback_fields=fallback,
        )
        self._prune_cache()
        self._metadata_cache[address] = metadata
        return MetadataResolution(MetadataStatus.RESOLVED, metadata)

    def _prune_cache(self):
        """Drop entries past the TTL."""
        stale = [addr for addr, meta in self._metadata_cache.items() if not meta.is_fresh(self.cache_ttl)]
        for addr in stale:
            del self._metadata_cache[addr]

    def clear_cache(self):
        self._metadata_cache.clear()

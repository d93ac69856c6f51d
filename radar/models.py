"""
Radar domain types

- TokenType: classification tags stored with every record
- PoolCreationEvent: decoded pool Initialize log
- TokenRecord: unit of persisted state
- MarketSnapshot: market metrics for a freshly detected token
- ScanSummary: outcome of one scan cycle, renders to the HTTP payload
"""
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional, Tuple

from .errors import RecordValidationError

MAX_SYMBOL_LENGTH = 20
MAX_NAME_LENGTH = 100
MAX_SCORE = 30
SPIKE_THRESHOLD = 25


class TokenType(Enum):
    STANDARD = "STANDARD"
    HOOKED = "HOOKED"
    BASE_APP = "BASE_APP"
    ZORA = "ZORA"
    UNKNOWN = "UNKNOWN"


def normalize_address(address: str) -> str:
    """Lower-case key used for every address comparison and lookup."""
    return (address or "").strip().lower()


def to_iso(ts: Optional[float]) -> Optional[str]:
    if ts is None:
        return None
    return datetime.fromtimestamp(ts, tz=timezone.utc).isoformat().replace("+00:00", "Z")


def format_age(age_minutes: int) -> str:
    """Short display age: minutes below an hour, whole hours above."""
    if age_minutes < 60:
        return f"{age_minutes}m"
    return f"{age_minutes // 60}h"


@dataclass(frozen=True)
class PoolCreationEvent:
    """A decoded pool-creation log."""
    pool_id: str
    currency0: str
    currency1: str
    fee: int
    hook_payload: bytes = b""
    block_number: int = 0


@dataclass(frozen=True)
class MarketSnapshot:
    liquidity_usd: float
    price_change_percent: float
    price: float
    market_cap: float
    volume_24h: float


@dataclass
class TokenRecord:
    """
    Persisted token state.

    detected_at is only meaningful on first insert; the store never
    overwrites it on the update path.
    """
    address: str
    symbol: str
    name: str
    pool_id: str
    score: int
    liquidity: float = 0.0
    price: float = 0.0
    price_change: float = 0.0
    market_cap: float = 0.0
    volume_24h: float = 0.0
    age_minutes: int = 0
    is_spiking: bool = False
    token_type: TokenType = TokenType.UNKNOWN
    paired_with: str = ""
    detected_at: float = None
    last_updated: float = None

    def __post_init__(self):
        self.address = normalize_address(self.address)
        if isinstance(self.token_type, str):
            try:
                self.token_type = TokenType(self.token_type)
            except ValueError:
                self.token_type = TokenType.UNKNOWN
        if self.detected_at is None:
            self.detected_at = time.time()
        if self.last_updated is None:
            self.last_updated = self.detected_at

    def validate(self):
        """Raise RecordValidationError if any field is outside its allowed range."""
        if not self.address:
            raise RecordValidationError("address is empty")
        if len(self.symbol) > MAX_SYMBOL_LENGTH:
            raise RecordValidationError(f"symbol longer than {MAX_SYMBOL_LENGTH} chars: {self.symbol!r}")
        if len(self.name) > MAX_NAME_LENGTH:
            raise RecordValidationError(f"name longer than {MAX_NAME_LENGTH} chars")
        if not isinstance(self.score, int) or not 0 <= self.score <= MAX_SCORE:
            raise RecordValidationError(f"score out of range: {self.score!r}")
        for field_name in ("liquidity", "price", "price_change", "market_cap", "volume_24h"):
            value = getattr(self, field_name)
            if value is None or value < 0:
                raise RecordValidationError(f"{field_name} must be non-negative, got {value!r}")
        if self.age_minutes < 0:
            raise RecordValidationError(f"age_minutes must be non-negative, got {self.age_minutes}")

    def to_dict(self) -> Dict:
        """JSON shape consumed by the dashboard."""
        return {
            "id": self.address,
            "address": self.address,
            "symbol": self.symbol,
            "name": self.name,
            "poolAddress": self.pool_id,
            "pairedWith": self.paired_with,
            "score": self.score,
            "liquidity": self.liquidity,
            "price": self.price,
            "priceChange": self.price_change,
            "age": format_age(self.age_minutes),
            "ageMinutes": self.age_minutes,
            "detectedAt": to_iso(self.detected_at),
            "lastUpdated": to_iso(self.last_updated),
            "isSpikingNow": self.is_spiking,
            "marketCap": self.market_cap,
            "volume24h": self.volume_24h,
            "tokenType": self.token_type.value,
        }


@dataclass
class ScanSummary:
    """
    Result of one scan cycle.

    Three shapes: success, degraded (scan failed, cached tokens served) and
    total failure (neither chain nor store available).
    """
    tokens: List[TokenRecord] = field(default_factory=list)
    last_update: float = field(default_factory=time.time)
    blocks_scanned: Optional[Tuple[int, int]] = None
    new_tokens_found: int = 0
    total_events: int = 0
    error: Optional[str] = None
    details: Optional[str] = None
    scan_error: Optional[str] = None
    db_error: Optional[str] = None

    @property
    def is_degraded(self) -> bool:
        return self.error is not None and self.db_error is None

    @property
    def is_failure(self) -> bool:
        return self.db_error is not None

    @property
    def status_code(self) -> int:
        return 500 if self.is_failure else 200

    def to_response(self) -> Dict:
        if self.is_failure:
            return {
                "error": self.error,
                "scanError": self.scan_error,
                "dbError": self.db_error,
                "tokens": [],
            }
        tokens = [t.to_dict() for t in self.tokens]
        if self.is_degraded:
            return {
                "tokens": tokens,
                "error": self.error,
                "details": self.details,
                "lastUpdate": to_iso(self.last_update),
            }
        blocks = None
        if self.blocks_scanned:
            blocks = f"{self.blocks_scanned[0]}-{self.blocks_scanned[1]}"
        return {
            "tokens": tokens,
            "lastUpdate": to_iso(self.last_update),
            "blocksScanned": blocks,
            "newTokensFound": self.new_tokens_found,
            "totalEvents": self.total_events,
        }

"""
Token Store - SQLite persistence for detected tokens

Schema:
- tokens: one row per normalized token address (PRIMARY KEY)
- scan_state: key/value table holding the scan cursor

The address key is the only uniqueness guarantee; callers may race on the
"already known?" check and rely on upsert being idempotent.
"""
import time
import sqlite3
import logging
from abc import ABC, abstractmethod
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, List, Optional, Tuple

from .errors import StoreError
from .models import SPIKE_THRESHOLD, TokenRecord, TokenType, normalize_address
from .score_calculator import calculate_score, is_spiking

logger = logging.getLogger(__name__)

CURSOR_KEY = "last_block_processed"

TOKEN_COLUMNS = (
    "address", "symbol", "name", "pool_id", "paired_with", "score",
    "liquidity", "price", "price_change", "market_cap", "volume_24h",
    "age_minutes", "is_spiking", "token_type", "detected_at", "last_updated",
)


class TokenStore(ABC):
    """Persistence capability used by the scan pipeline."""

    @abstractmethod
    def upsert(self, record: TokenRecord, now: float = None) -> Tuple[TokenRecord, bool]:
        """Insert or update by address. Returns (stored record, created)."""

    @abstractmethod
    def query_top(self, limit: int, freshness_seconds: float, now: float = None) -> List[TokenRecord]:
        """Visible records ordered by score desc, detected_at desc."""

    @abstractmethod
    def contains(self, address: str, freshness_seconds: float, now: float = None) -> bool:
        """True if a visible record exists for address (case-insensitive)."""

    @abstractmethod
    def age_all_within(self, freshness_seconds: float, now: float = None,
                       spike_threshold: Optional[int] = None) -> int:
        """Recompute age_minutes, score and is_spiking for visible records. Returns rows touched."""

    @abstractmethod
    def expire_older_than(self, expiry_seconds: float, now: float = None) -> int:
        """Delete records detected before the expiry horizon. Returns rows deleted."""

    def load_cursor(self) -> Optional[int]:
        return None

    def save_cursor(self, block_number: int, now: float = None):
        pass


class SQLiteTokenStore(TokenStore):
    """
    Manages the SQLite token database.

    Every call opens its own connection, so one store handle can be shared
    between the event loop and worker threads.
    """

    def __init__(self, db_path: str = "data/tokens.db", timeout: float = 5.0,
                 scorer: Callable[[int, float, float], int] = calculate_score,
                 spike_threshold: int = SPIKE_THRESHOLD):
        self.db_path = Path(db_path)
        self.timeout = timeout
        self.scorer = scorer
        self.spike_threshold = spike_threshold
        self._ensure_db()

    @contextmanager
    def _connect(self):
        try:
            conn = sqlite3.connect(self.db_path, timeout=self.timeout, isolation_level=None)
        except sqlite3.Error as e:
            raise StoreError(f"cannot open {self.db_path}: {e}") from e
        conn.row_factory = sqlite3.Row
        try:
            yield conn
        except sqlite3.Error as e:
            if conn.in_transaction:
                conn.rollback()
            raise StoreError(str(e)) from e
        finally:
            conn.close()

    def _ensure_db(self):
        """Initialize database and schema."""
        if not self.db_path.parent.exists():
            self.db_path.parent.mkdir(parents=True, exist_ok=True)

        with self._connect() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS tokens (
                    address TEXT PRIMARY KEY,
                    symbol TEXT NOT NULL,
                    name TEXT NOT NULL,
                    pool_id TEXT NOT NULL,
                    paired_with TEXT,
                    score INTEGER NOT NULL CHECK (score BETWEEN 0 AND 30),
                    liquidity REAL NOT NULL DEFAULT 0,
                    price REAL NOT NULL DEFAULT 0,
                    price_change REAL NOT NULL DEFAULT 0,
                    market_cap REAL NOT NULL DEFAULT 0,
                    volume_24h REAL NOT NULL DEFAULT 0,
                    age_minutes INTEGER NOT NULL DEFAULT 0,
                    is_spiking INTEGER NOT NULL DEFAULT 0,
                    token_type TEXT NOT NULL DEFAULT 'UNKNOWN',
                    detected_at REAL NOT NULL,
                    last_updated REAL NOT NULL
                )
            """)
            conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_tokens_detected
                ON tokens (detected_at)
            """)
            conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_tokens_rank
                ON tokens (score DESC, detected_at DESC)
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS scan_state (
                    key TEXT PRIMARY KEY,
                    value INTEGER NOT NULL,
                    updated_at REAL NOT NULL
                )
            """)
        logger.info(f"Token database ready at {self.db_path}")

    @staticmethod
    def _row_to_record(row) -> TokenRecord:
        return TokenRecord(
            address=row["address"],
            symbol=row["symbol"],
            name=row["name"],
            pool_id=row["pool_id"],
            paired_with=row["paired_with"] or "",
            score=int(row["score"]),
            liquidity=row["liquidity"],
            price=row["price"],
            price_change=row["price_change"],
            market_cap=row["market_cap"],
            volume_24h=row["volume_24h"],
            age_minutes=int(row["age_minutes"]),
            is_spiking=bool(row["is_spiking"]),
            token_type=row["token_type"],
            detected_at=row["detected_at"],
            last_updated=row["last_updated"],
        )

    def upsert(self, record: TokenRecord, now: float = None) -> Tuple[TokenRecord, bool]:
        """
        Store a token. The update path refreshes metrics only; identity
        fields and detected_at keep their first-insert values.
        """
        record.validate()
        now = time.time() if now is None else now
        address = normalize_address(record.address)
        values = (
            address, record.symbol, record.name, record.pool_id, record.paired_with,
            record.score, record.liquidity, record.price, record.price_change,
            record.market_cap, record.volume_24h, record.age_minutes,
            1 if record.is_spiking else 0, record.token_type.value,
            record.detected_at, now,
        )
        with self._connect() as conn:
            conn.execute("BEGIN IMMEDIATE")
            existing = conn.execute(
                "SELECT 1 FROM tokens WHERE address = ?", (address,)
            ).fetchone()
            conn.execute(f"""
                INSERT INTO tokens ({', '.join(TOKEN_COLUMNS)})
                VALUES ({', '.join(['?'] * len(TOKEN_COLUMNS))})
                ON CONFLICT (address) DO UPDATE SET
                    score = excluded.score,
                    liquidity = excluded.liquidity,
                    price = excluded.price,
                    price_change = excluded.price_change,
                    age_minutes = excluded.age_minutes,
                    market_cap = excluded.market_cap,
                    volume_24h = excluded.volume_24h,
                    is_spiking = excluded.is_spiking,
                    last_updated = excluded.last_updated
            """, values)
            row = conn.execute(
                "SELECT * FROM tokens WHERE address = ?", (address,)
            ).fetchone()
            conn.execute("COMMIT")
        return self._row_to_record(row), existing is None

    def query_top(self, limit: int, freshness_seconds: float, now: float = None) -> List[TokenRecord]:
        now = time.time() if now is None else now
        with self._connect() as conn:
            rows = conn.execute("""
                SELECT * FROM tokens
                WHERE detected_at > ?
                ORDER BY score DESC, detected_at DESC
                LIMIT ?
            """, (now - freshness_seconds, limit)).fetchall()
        return [self._row_to_record(row) for row in rows]

    def contains(self, address: str, freshness_seconds: float, now: float = None) -> bool:
        now = time.time() if now is None else now
        with self._connect() as conn:
            row = conn.execute(
                "SELECT 1 FROM tokens WHERE address = ? AND detected_at > ?",
                (normalize_address(address), now - freshness_seconds)
            ).fetchone()
        return row is not None

    def get(self, address: str) -> Optional[TokenRecord]:
        """Fetch a record regardless of visibility."""
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM tokens WHERE address = ?", (normalize_address(address),)
            ).fetchone()
        return self._row_to_record(row) if row else None

    def count(self) -> int:
        with self._connect() as conn:
            return conn.execute("SELECT COUNT(*) FROM tokens").fetchone()[0]

    def age_all_within(self, freshness_seconds: float, now: float = None,
                       spike_threshold: Optional[int] = None) -> int:
        """
        Recompute age_minutes from detected_at for visible records, then
        rescore them so older tokens decay in the ranking.

        spike_threshold overrides the store default for this pass.
        """
        now = time.time() if now is None else now
        threshold = self.spike_threshold if spike_threshold is None else spike_threshold
        with self._connect() as conn:
            conn.execute("BEGIN IMMEDIATE")
            rows = conn.execute("""
                SELECT address, detected_at, liquidity, price_change
                FROM tokens WHERE detected_at > ?
            """, (now - freshness_seconds,)).fetchall()
            updates = []
            for row in rows:
                age_minutes = max(0, int((now - row["detected_at"]) // 60))
                score = self.scorer(age_minutes, row["liquidity"], row["price_change"])
                spiking = 1 if is_spiking(score, threshold) else 0
                updates.append((age_minutes, score, spiking, now, row["address"]))
            conn.executemany("""
                UPDATE tokens
                SET age_minutes = ?, score = ?, is_spiking = ?, last_updated = ?
                WHERE address = ?
            """, updates)
            conn.execute("COMMIT")
        return len(updates)

    def expire_older_than(self, expiry_seconds: float, now: float = None) -> int:
        now = time.time() if now is None else now
        with self._connect() as conn:
            cursor = conn.execute(
                "DELETE FROM tokens WHERE detected_at < ?", (now - expiry_seconds,)
            )
            deleted = cursor.rowcount
        if deleted:
            logger.info(f"🧹 Expired {deleted} tokens")
        return deleted

    def load_cursor(self) -> Optional[int]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT value FROM scan_state WHERE key = ?", (CURSOR_KEY,)
            ).fetchone()
        return int(row["value"]) if row else None

    def save_cursor(self, block_number: int, now: float = None):
        now = time.time() if now is None else now
        with self._connect() as conn:
            conn.execute("""
                INSERT INTO scan_state (key, value, updated_at) VALUES (?, ?, ?)
                ON CONFLICT (key) DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at
            """, (CURSOR_KEY, int(block_number), now))

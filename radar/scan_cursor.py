"""
Scan cursor - last fully scanned block height.

Owned by the ScanCoordinator (single writer). Optionally mirrored into the
token store so a restart resumes where the previous process stopped.
"""
import logging
from typing import Optional, Tuple

logger = logging.getLogger(__name__)


class ScanCursor:

    def __init__(self, store=None, persist: bool = False):
        self.store = store
        self.persist = persist and store is not None
        self.last_block: Optional[int] = None
        if self.persist:
            self.last_block = self.store.load_cursor()
            if self.last_block is not None:
                logger.info(f"Resuming scan cursor at block {self.last_block}")

    @property
    def is_set(self) -> bool:
        return self.last_block is not None

    def next_range(self, head: int, lookback: int, max_range: Optional[int] = None) -> Optional[Tuple[int, int]]:
        """
        Block range to scan for the given chain head, or None when there is
        nothing new.

        Unset cursor: the last `lookback` blocks ending at head.
        Set cursor: cursor + 1 .. head, clamped to `max_range` blocks.
        """
        if not self.is_set:
            return max(0, head - lookback), head
        if head <= self.last_block:
            return None
        from_block = self.last_block + 1
        if max_range is not None and head - from_block > max_range:
            clamped = head - max_range
            logger.warning(
                f"⚠️  Cursor {self.last_block} is {head - self.last_block} blocks behind head, "
                f"skipping to {clamped}"
            )
            from_block = clamped
        return from_block, head

    def advance(self, block_number: int):
        """Move forward to block_number. Never moves backwards."""
        if self.is_set and block_number <= self.last_block:
            return
        if self.persist:
            self.store.save_cursor(block_number)
        self.last_block = block_number

    def reset(self):
        self.last_block = None

"""
Scan scheduler

Runs ScanCoordinator.run_cycle() on a fixed cadence. A failed cycle is
logged and the loop keeps going; cycles never overlap because the
coordinator serializes them.
"""
import asyncio
import logging
from datetime import datetime
from typing import Callable, Dict, Optional

logger = logging.getLogger(__name__)


class ScanScheduler:

    def __init__(self, coordinator, config: Dict = None,
                 on_summary: Optional[Callable] = None):
        """
        Args:
            coordinator: ScanCoordinator
            config: Radar configuration dict
            on_summary: Optional callback invoked with every ScanSummary
        """
        self.config = config or {}
        self.coordinator = coordinator
        self.interval = self.config.get('scan_interval_seconds', 15)
        self.on_summary = on_summary

        self.scans_performed = 0
        self.last_scan_time: Optional[datetime] = None
        self._stopped = asyncio.Event()

    def stop(self):
        self._stopped.set()

    async def run_once(self):
        scan_start = datetime.now()
        summary = await self.coordinator.run_cycle()
        self.scans_performed += 1
        self.last_scan_time = scan_start
        if self.on_summary:
            try:
                self.on_summary(summary)
            except Exception as e:
                logger.warning(f"⚠️  Summary callback failed: {e}")
        return summary

    async def run_forever(self, max_cycles: Optional[int] = None):
        """Scan every `interval` seconds until stop() or max_cycles."""
        logger.info(f"[SCHEDULER] Scan task started (every {self.interval}s)")
        while not self._stopped.is_set():
            summary = await self.run_once()
            if summary.error:
                logger.warning(f"[SCHEDULER] Cycle {self.scans_performed} degraded: {summary.error}")
            else:
                logger.info(
                    f"[SCHEDULER] Cycle {self.scans_performed} complete: "
                    f"{summary.new_tokens_found} new, next in {self.interval}s"
                )
            if max_cycles is not None and self.scans_performed >= max_cycles:
                break
            try:
                await asyncio.wait_for(self._stopped.wait(), timeout=self.interval)
            except asyncio.TimeoutError:
                pass
        logger.info("[SCHEDULER] Scan task stopped")

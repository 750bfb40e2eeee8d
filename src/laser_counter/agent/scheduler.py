"""Timer loop that drives ingestion cycles one at a time."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from laser_counter.agent.cycle import CycleResult, IngestionCycle

logger = logging.getLogger(__name__)


class IngestionScheduler:
    """Runs a cycle, waits the poll interval, runs the next one.

    The next tick is only scheduled after the current cycle settles, and the
    run-lock refuses a tick while another one is still in flight.
    """

    def __init__(self, cycle: IngestionCycle, poll_interval: float = 3.0) -> None:
        self._cycle = cycle
        self._poll_interval = poll_interval
        self._lock = asyncio.Lock()
        self._stopping = asyncio.Event()

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    async def tick(self) -> Optional[CycleResult]:
        """Run one cycle unless one is already running."""
        if self._lock.locked():
            logger.debug("Previous cycle still running, tick skipped")
            return None
        async with self._lock:
            try:
                return await self._cycle.run_once()
            except Exception as e:
                logger.exception("Ingestion cycle failed: %s", e)
                return None

    async def run(self) -> None:
        logger.info("Polling for trace files every %.1fs", self._poll_interval)
        while not self._stopping.is_set():
            await self.tick()
            try:
                await asyncio.wait_for(self._stopping.wait(), timeout=self._poll_interval)
            except asyncio.TimeoutError:
                pass
        logger.info("Ingestion loop stopped")

    def stop(self) -> None:
        self._stopping.set()

"""Operations exposed to the dashboard and to operators."""

from __future__ import annotations

import logging
from typing import Optional

from redis.exceptions import RedisError

from laser_counter.agent.state import DashboardSnapshot, DashboardState
from laser_counter.storage.duplicate_index import DuplicateIndex
from laser_counter.storage.ledger import OrderLedger, OrderLedgerEntry

logger = logging.getLogger(__name__)


def expiry_seconds(days: int = 0, hours: int = 0, minutes: int = 0, seconds: int = 0) -> int:
    """Convert a days/hours/minutes/seconds duration into a TTL in seconds."""
    return days * 86400 + hours * 3600 + minutes * 60 + seconds


class CounterService:
    """Read access to the snapshot plus the administrative store edits."""

    def __init__(self, state: DashboardState, ledger: OrderLedger, index: DuplicateIndex) -> None:
        self._state = state
        self._ledger = ledger
        self._index = index

    def get_snapshot(self) -> DashboardSnapshot:
        return self._state.snapshot()

    def flush_notices(self) -> int:
        count = self._state.flush_notices()
        if count:
            logger.info("Flushed %d duplicate notices", count)
        return count

    async def list_orders(self) -> list[OrderLedgerEntry]:
        return await self._ledger.list_orders()

    async def admin_set_counter(self, order_number: str, value: int) -> Optional[OrderLedgerEntry]:
        return await self._ledger.admin_set(order_number, value)

    async def adjust_counter(self, order_number: str, delta: int) -> Optional[OrderLedgerEntry]:
        """Apply an operator correction and show the result on the dashboard."""
        entry = await self._ledger.adjust(order_number, delta)
        if entry is not None:
            self._state.publish_order(entry)
        return entry

    async def expire_order(self, order_number: str, seconds: int) -> bool:
        return await self._ledger.expire_after(order_number, seconds)

    async def create_order(self, order_number: str, part_code: str) -> OrderLedgerEntry:
        """Pre-register an order before its first board is marked."""
        return await self._ledger.create(order_number, part_code)

    async def sweep(self, months_ago: int) -> int:
        return await self._index.sweep_expired(months_ago)

    async def startup_sweep(self, months_ago: int) -> int:
        """Sweep at agent start. A store error here is logged, not fatal."""
        try:
            return await self._index.sweep_expired(months_ago)
        except RedisError:
            logger.exception("Startup sweep of duplicate-index keys failed")
            return 0

"""Per-order board counters kept in Redis hashes."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional

import redis.asyncio as aioredis

from laser_counter.storage.store import now_ms

logger = logging.getLogger(__name__)

# Order numbers are 6-7 digit keys; everything else in the db is something else
ORDER_KEY_MATCH = "[0-9]*"


def is_order_key(key: str) -> bool:
    return key.isdigit() and 6 <= len(key) <= 7


@dataclass
class OrderLedgerEntry:
    """One order's counter hash."""

    order_number: str
    counter: int
    part_code: str
    created_at: int  # epoch ms
    updated_at: int
    modified_at: int = 0  # 0 until edited by an operator

    @property
    def elapsed_ms(self) -> int:
        return self.updated_at - self.created_at

    @classmethod
    def from_hash(cls, order_number: str, data: dict) -> OrderLedgerEntry:
        return cls(
            order_number=order_number,
            counter=int(data.get("counter", 0)),
            part_code=data.get("partCode", ""),
            created_at=int(data.get("createdAt", 0)),
            updated_at=int(data.get("updatedAt", 0)),
            modified_at=int(data.get("modifiedAt", 0)),
        )


class OrderLedger:
    """Board counter per manufacturing order.

    Hash key is the order number; fields are counter, partCode, createdAt,
    updatedAt and modifiedAt. ``get`` then ``create``/``increment`` is not
    atomic, so only one writer may drive it at a time.
    """

    def __init__(self, client: aioredis.Redis, clock: Callable[[], int] = now_ms) -> None:
        self._client = client
        self._clock = clock

    async def get(self, order_number: str) -> Optional[OrderLedgerEntry]:
        data = await self._client.hgetall(order_number)
        if not data:
            return None
        return OrderLedgerEntry.from_hash(order_number, data)

    async def _reload(self, order_number: str) -> OrderLedgerEntry:
        entry = await self.get(order_number)
        if entry is None:
            raise KeyError(order_number)
        return entry

    async def create(self, order_number: str, part_code: str) -> OrderLedgerEntry:
        """Start a counter at 1. Overwrites any existing entry."""
        now = self._clock()
        await self._client.hset(
            order_number,
            mapping={
                "counter": 1,
                "partCode": part_code,
                "createdAt": now,
                "updatedAt": now,
                "modifiedAt": 0,
            },
        )
        logger.info("Created order %s (part %s)", order_number, part_code)
        return await self._reload(order_number)

    async def increment(self, order_number: str, amount: int = 1) -> OrderLedgerEntry:
        """Add ``amount`` boards to the counter and refresh updatedAt."""
        if amount < 0:
            raise ValueError(f"Counter increment must not be negative: {amount}")
        async with self._client.pipeline(transaction=True) as pipe:
            pipe.hset(order_number, "updatedAt", self._clock())
            pipe.hincrby(order_number, "counter", amount)
            await pipe.execute()
        return await self._reload(order_number)

    async def adjust(self, order_number: str, delta: int) -> Optional[OrderLedgerEntry]:
        """Operator correction: add a signed delta and refresh modifiedAt.

        Returns None when the order does not exist.
        """
        if delta == 0:
            raise ValueError("Counter adjustment must be non-zero")
        if not await self._client.exists(order_number):
            return None
        async with self._client.pipeline(transaction=True) as pipe:
            pipe.hincrby(order_number, "counter", delta)
            pipe.hset(order_number, "modifiedAt", self._clock())
            await pipe.execute()
        return await self._reload(order_number)

    async def admin_set(self, order_number: str, counter_value: int) -> Optional[OrderLedgerEntry]:
        """Operator override of the counter value. None for an unknown order."""
        if not await self._client.exists(order_number):
            return None
        await self._client.hset(
            order_number,
            mapping={"counter": counter_value, "modifiedAt": self._clock()},
        )
        logger.info("Order %s counter set to %d", order_number, counter_value)
        return await self._reload(order_number)

    async def expire_after(self, order_number: str, seconds: int) -> bool:
        """Set a TTL on the order. Returns False when the order does not exist."""
        if not await self._client.exists(order_number):
            return False
        result = await self._client.expire(order_number, seconds)
        if result:
            logger.info("Order number %s expires in %d seconds", order_number, seconds)
        return bool(result)

    async def list_orders(self) -> list[OrderLedgerEntry]:
        """All order entries, newest (highest) order number first."""
        keys = [k async for k in self._client.scan_iter(match=ORDER_KEY_MATCH) if is_order_key(k)]
        entries = []
        for key in sorted(keys, key=int, reverse=True):
            entry = await self.get(key)
            if entry is not None:
                entries.append(entry)
        return entries

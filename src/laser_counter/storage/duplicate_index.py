"""Duplicate detection over Redis sorted sets.

Each board gets one sorted set keyed by its canonical code. Members are the
full board code and every pattern code printed on it, scored by the part
code. A ZADD that adds nothing means the member was already there.

Canonical codes start with the ``VR`` marker and embed a YYMM date, so one
month's keys can be found with a glob and dropped in bulk. Keys without the
marker carry no month tag, so they get a TTL of about two months instead.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

import redis.asyncio as aioredis

from laser_counter.ingestion.models import CANONICAL_MARKER

logger = logging.getLogger(__name__)

DEFAULT_MONTHS_AGO = 2
DELETE_BATCH_SIZE = 500
# Lifetime of sets whose key the monthly sweep cannot match
UNTAGGED_KEY_TTL_SECONDS = 62 * 86400


def month_tag(now: datetime, months_ago: int) -> str:
    """YYMM of the calendar month ``months_ago`` months before ``now``."""
    year = now.year
    month = now.month - months_ago
    while month <= 0:
        month += 12
        year -= 1
    return f"{year % 100:02d}{month:02d}"


def month_key_pattern(tag: str) -> str:
    return f"{CANONICAL_MARKER}*{tag}*"


class DuplicateIndex:
    """Has this board or pattern code been marked before?"""

    def __init__(self, client: aioredis.Redis) -> None:
        self._client = client

    async def check_and_record(self, key: str, part_code: str, value: str) -> bool:
        """Add ``value`` to the set at ``key``.

        Returns True when the value was already a member (duplicate),
        False when it was newly recorded.
        """
        added = await self._client.zadd(key, {value: int(part_code)})
        if not key.startswith(CANONICAL_MARKER) and await self._client.ttl(key) < 0:
            await self._client.expire(key, UNTAGGED_KEY_TTL_SECONDS)
        return added == 0

    async def members(self, key: str) -> list[str]:
        return await self._client.zrange(key, 0, -1)

    async def sweep_expired(
        self,
        months_ago: int = DEFAULT_MONTHS_AGO,
        now: Optional[datetime] = None,
    ) -> int:
        """Delete every set tagged with the month ``months_ago`` months back.

        Returns the number of keys deleted.
        """
        tag = month_tag(now or datetime.now(), months_ago)
        pattern = month_key_pattern(tag)
        keys = [k async for k in self._client.scan_iter(match=pattern)]

        deleted = 0
        for i in range(0, len(keys), DELETE_BATCH_SIZE):
            deleted += await self._client.delete(*keys[i : i + DELETE_BATCH_SIZE])

        logger.info("Swept %d duplicate-index keys for month %s", deleted, tag)
        return deleted

"""Redis connection manager."""

from __future__ import annotations

import logging
import time
from typing import Optional

import redis.asyncio as aioredis
from redis.exceptions import RedisError

logger = logging.getLogger(__name__)

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 6379


class StoreUnavailable(RuntimeError):
    """The key-value store could not be reached at startup."""


def now_ms() -> int:
    """Current time as epoch milliseconds, the timestamp unit kept in the store."""
    return int(time.time() * 1000)


def create_client(
    host: str = DEFAULT_HOST,
    port: int = DEFAULT_PORT,
    auth: str = "",
    database: int = 0,
) -> aioredis.Redis:
    """Build an asyncio Redis client that returns str values."""
    return aioredis.Redis(
        host=host,
        port=port,
        password=auth or None,
        db=database,
        decode_responses=True,
        socket_timeout=5,
        socket_connect_timeout=5,
        retry_on_timeout=True,
    )


async def connect(
    host: str = DEFAULT_HOST,
    port: int = DEFAULT_PORT,
    auth: str = "",
    database: int = 0,
    client: Optional[aioredis.Redis] = None,
) -> aioredis.Redis:
    """Create a client and make sure the server answers.

    Raises StoreUnavailable if the PING fails.
    """
    client = client or create_client(host, port, auth, database)
    try:
        await client.ping()
    except RedisError as e:
        raise StoreUnavailable(f"Redis at {host}:{port}/{database} is not reachable: {e}") from e
    logger.info("Connected to Redis %s:%d db=%d", host, port, database)
    return client

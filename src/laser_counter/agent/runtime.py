"""Wires the agent together: store, ledger, index, file source, scheduler."""

from __future__ import annotations

import asyncio
import logging
import signal
import sys
from dataclasses import dataclass
from typing import Optional

import redis.asyncio as aioredis

from laser_counter.agent.config import CounterConfig
from laser_counter.agent.cycle import IngestionCycle
from laser_counter.agent.scheduler import IngestionScheduler
from laser_counter.agent.service import CounterService
from laser_counter.agent.state import DashboardState
from laser_counter.ingestion.file_source import TraceFileSource
from laser_counter.storage import store
from laser_counter.storage.duplicate_index import DuplicateIndex
from laser_counter.storage.ledger import OrderLedger

logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )


@dataclass
class Agent:
    client: aioredis.Redis
    state: DashboardState
    ledger: OrderLedger
    index: DuplicateIndex
    source: TraceFileSource
    cycle: IngestionCycle
    scheduler: IngestionScheduler
    service: CounterService


def build_agent(config: CounterConfig, client: aioredis.Redis) -> Agent:
    """Construct every component once and hand references down."""
    state = DashboardState()
    ledger = OrderLedger(client)
    index = DuplicateIndex(client)
    source = TraceFileSource(config.watch_dir, config.processed_dir, config.file_extension)
    cycle = IngestionCycle(source, ledger, index, state)
    scheduler = IngestionScheduler(cycle, poll_interval=config.poll_interval)
    return Agent(
        client=client,
        state=state,
        ledger=ledger,
        index=index,
        source=source,
        cycle=cycle,
        scheduler=scheduler,
        service=CounterService(state, ledger, index),
    )


def operator_service(client: aioredis.Redis) -> CounterService:
    """Service for one-shot operator commands, outside a running agent."""
    return CounterService(DashboardState(), OrderLedger(client), DuplicateIndex(client))


async def open_store(config: CounterConfig) -> aioredis.Redis:
    """Connect to Redis using the configured host/port/auth/db."""
    return await store.connect(
        host=config.redis_host,
        port=config.redis_port,
        auth=config.redis_auth,
        database=config.redis_database,
    )


async def run_agent(config: CounterConfig, client: Optional[aioredis.Redis] = None) -> None:
    """Sweep stale duplicate sets once, then poll until SIGINT/SIGTERM.

    Raises StoreUnavailable when Redis cannot be reached at startup.
    """
    client = client or await open_store(config)
    agent = build_agent(config, client)

    loop = asyncio.get_running_loop()

    def shutdown(sig, frame):
        logger.info("Shutting down...")
        loop.call_soon_threadsafe(agent.scheduler.stop)

    signal.signal(signal.SIGINT, shutdown)
    signal.signal(signal.SIGTERM, shutdown)

    try:
        await agent.service.startup_sweep(config.sweep_months_ago)
        await agent.scheduler.run()
    finally:
        await client.aclose()

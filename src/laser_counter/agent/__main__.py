"""Laser trace counter agent entry point.

Usage: python -m laser_counter.agent

Picks up laser-marker trace files one at a time, counts boards per
manufacturing order and flags duplicate boards or patterns.
Configure via environment variables:
    TRACE_TMP_DIR      - Directory the machine writes trace files to
    TRACE_SRC_DIR      - Directory processed trace files are moved to
    TRACE_FILE_EXT     - Trace file extension (default: .txt)
    INTERVAL_DELAY_MS  - Milliseconds between cycles (default: 3000)
    REDIS_HOST, REDIS_PORT, REDIS_AUTH, REDIS_DATABASE - Redis connection
    SWEEP_MONTHS_AGO   - Age in months of duplicate sets dropped at startup (default: 2)
    LOG_LEVEL          - Logging level (default: INFO)
"""

from __future__ import annotations

import asyncio
import logging
import sys

from laser_counter.agent.config import CounterConfig
from laser_counter.agent.runtime import configure_logging, run_agent
from laser_counter.storage.store import StoreUnavailable

logger = logging.getLogger("laser_counter")


def main() -> None:
    config = CounterConfig.from_env()
    configure_logging(config.log_level)

    errors = config.validate()
    if errors:
        for err in errors:
            logger.error("Config error: %s", err)
        sys.exit(1)

    logger.info("Starting laser trace counter")
    logger.info("Watching: %s (*%s)", config.watch_dir, config.file_extension)
    logger.info("Processed files go to: %s", config.processed_dir)
    logger.info("Redis: %s:%d db=%d", config.redis_host, config.redis_port, config.redis_database)

    try:
        asyncio.run(run_agent(config))
    except StoreUnavailable as e:
        logger.error("%s", e)
        sys.exit(1)

    logger.info("Agent stopped.")


if __name__ == "__main__":
    main()

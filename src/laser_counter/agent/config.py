"""Agent configuration from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

DEFAULT_PROCESSED_SUBDIR = "processed"


@dataclass
class CounterConfig:
    """Configuration for the trace-file counter agent."""

    # Directory the laser machine drops trace files into
    watch_dir: str = ""
    # Directory trace files are moved to after each attempt; created on first move
    processed_dir: str = ""
    file_extension: str = ".txt"
    # Delay between ingestion cycles
    poll_interval_ms: int = 3000
    # Redis connection
    redis_host: str = "127.0.0.1"
    redis_port: int = 6379
    redis_auth: str = ""
    redis_database: int = 0
    # strftime format for timestamps shown to operators
    datetime_format: str = "%d.%b.%y %H:%M:%S"
    # Duplicate-index sets this many months old are dropped at startup
    sweep_months_ago: int = 2
    log_level: str = "INFO"

    @property
    def poll_interval(self) -> float:
        """Poll interval in seconds."""
        return self.poll_interval_ms / 1000

    @classmethod
    def from_env(cls) -> CounterConfig:
        """Load configuration from environment variables."""
        cwd = os.getcwd()

        return cls(
            watch_dir=os.environ.get("TRACE_TMP_DIR", cwd),
            processed_dir=os.environ.get("TRACE_SRC_DIR", os.path.join(cwd, DEFAULT_PROCESSED_SUBDIR)),
            file_extension=os.environ.get("TRACE_FILE_EXT", ".txt"),
            poll_interval_ms=int(os.environ.get("INTERVAL_DELAY_MS", "3000")),
            redis_host=os.environ.get("REDIS_HOST", "127.0.0.1"),
            redis_port=int(os.environ.get("REDIS_PORT", "6379")),
            redis_auth=os.environ.get("REDIS_AUTH", ""),
            redis_database=int(os.environ.get("REDIS_DATABASE") or "0"),
            datetime_format=os.environ.get("DATETIME_FORMAT", "%d.%b.%y %H:%M:%S"),
            sweep_months_ago=int(os.environ.get("SWEEP_MONTHS_AGO", "2")),
            log_level=os.environ.get("LOG_LEVEL", "INFO"),
        )

    def validate(self) -> list[str]:
        """Return list of validation errors, empty if config is valid."""
        errors = []
        if not self.watch_dir:
            errors.append("TRACE_TMP_DIR is required")
        elif not Path(self.watch_dir).is_dir():
            errors.append(f"TRACE_TMP_DIR does not exist: {self.watch_dir}")
        if not self.processed_dir:
            errors.append("TRACE_SRC_DIR is required")
        elif self.watch_dir and Path(self.processed_dir).resolve() == Path(self.watch_dir).resolve():
            errors.append("TRACE_SRC_DIR must differ from TRACE_TMP_DIR")
        if self.file_extension and not self.file_extension.startswith("."):
            errors.append(f"TRACE_FILE_EXT must start with '.': {self.file_extension}")
        if self.poll_interval_ms <= 0:
            errors.append("INTERVAL_DELAY_MS must be positive")
        if self.sweep_months_ago < 1:
            errors.append("SWEEP_MONTHS_AGO must be at least 1")
        return errors

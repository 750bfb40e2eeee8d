"""Shared test fixtures and sample trace data."""

from __future__ import annotations

import fakeredis
import pytest

from laser_counter.agent.state import DashboardState
from laser_counter.ingestion.file_source import TraceFileSource
from laser_counter.storage.duplicate_index import DuplicateIndex
from laser_counter.storage.ledger import OrderLedger


# 40 word characters between the leading "00" and the trailing 5-digit group
_RARE_BODY = "12345678901234567890ABCDEFGHIJ2608150000"

SAMPLE_LINES = {
    "standard_header": ";AB12345678SOMEGARBAGE;1234567-7654321;MACHINE01",
    "canonical_header": ";VR12345678ABCDEFGHIJ;1234567-7654321;LASER01",
    "separator_header": ";AB12345678-XY.Z;1234567-7654321;LASER01",
    "short_code_header": ";AB12345678;1234567-7654321;LASER01",
    "rare_header": ";00" + _RARE_BODY + "91234;1234567-7654321;LASER02",
    "rare_non9_header": ";AB12345678SOMEGARBAGE;00" + _RARE_BODY + "81234;1234567-7654321;LASER02",
    "both_formats_header": ";AB12345678SOMEGARBAGE;00" + _RARE_BODY + "91234;1234567-7654321;LASER02",
    "no_order_header": ";AB12345678SOMEGARBAGE;12345-7654321;MACHINE01",
    "no_part_header": ";AB12345678SOMEGARBAGE;1234567-ABC;MACHINE01",
    "pattern_1": "x;y;PAT001;",
    "pattern_2": "1;2026-10-19 08:00:01;PAT002;OK",
    "pattern_short": "garbage",
}

RARE_BOARD_CODE = "00" + _RARE_BODY + "91234"


def trace_text(header: str, *patterns: str) -> str:
    return "\n".join([header, *patterns]) + "\n"


@pytest.fixture
def fake_server():
    return fakeredis.FakeServer()


@pytest.fixture
def redis_client(fake_server):
    """Async fake Redis client with str responses, isolated per test."""
    return fakeredis.FakeAsyncRedis(server=fake_server, decode_responses=True)


@pytest.fixture
def ledger(redis_client):
    return OrderLedger(redis_client)


@pytest.fixture
def index(redis_client):
    return DuplicateIndex(redis_client)


@pytest.fixture
def dashboard():
    return DashboardState()


@pytest.fixture
def trace_dirs(tmp_path):
    """(watch_dir, processed_dir) under a temp directory."""
    watch = tmp_path / "trap"
    processed = tmp_path / "processed" / "laser"
    watch.mkdir()
    return watch, processed


@pytest.fixture
def source(trace_dirs):
    watch, processed = trace_dirs
    return TraceFileSource(str(watch), str(processed), ".txt")

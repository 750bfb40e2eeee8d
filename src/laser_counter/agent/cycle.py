"""One ingestion cycle: pick a trace file, count it, check it for duplicates.

    Idle -> Discovering -> Reading -> Parsing -> {Skipped | Recording}
         -> Finalizing -> Idle

Finalizing always moves the file out of the watch directory, so a file that
cannot be parsed is never picked up twice.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from redis.exceptions import RedisError

from laser_counter.agent.state import DashboardState, DuplicateNotice
from laser_counter.ingestion.file_source import TraceFileSource
from laser_counter.ingestion.models import TraceRecord
from laser_counter.ingestion.parser import TraceParseError, parse_trace
from laser_counter.storage.duplicate_index import DuplicateIndex
from laser_counter.storage.ledger import OrderLedger, OrderLedgerEntry

logger = logging.getLogger(__name__)


class CycleState(enum.Enum):
    IDLE = "idle"
    DISCOVERING = "discovering"
    READING = "reading"
    PARSING = "parsing"
    SKIPPED = "skipped"
    RECORDING = "recording"
    FINALIZING = "finalizing"


@dataclass
class CycleResult:
    """What happened to the one file handled by a cycle."""

    file_name: str
    outcome: CycleState = CycleState.SKIPPED
    record: Optional[TraceRecord] = None
    entry: Optional[OrderLedgerEntry] = None
    notices: list[DuplicateNotice] = field(default_factory=list)
    error: str = ""
    relocated: bool = False


class IngestionCycle:
    """Runs the state machine for a single trace file per call."""

    def __init__(
        self,
        source: TraceFileSource,
        ledger: OrderLedger,
        index: DuplicateIndex,
        state: DashboardState,
    ) -> None:
        self._source = source
        self._ledger = ledger
        self._index = index
        self._state = state
        self.current_state = CycleState.IDLE

    def _enter(self, state: CycleState) -> None:
        logger.debug("Cycle %s -> %s", self.current_state.value, state.value)
        self.current_state = state

    async def run_once(self) -> Optional[CycleResult]:
        """Process the first pending file, if any.

        Returns None when the watch directory has nothing to do.
        """
        self._enter(CycleState.DISCOVERING)
        try:
            pending = await self._source.list_pending()
        except OSError as e:
            logger.error("Cannot list %s: %s", self._source.watch_dir, e)
            self._enter(CycleState.IDLE)
            return None

        if not pending:
            self._enter(CycleState.IDLE)
            return None

        result = CycleResult(file_name=pending[0])
        try:
            await self._process(result)
        finally:
            await self._finalize(result)
        return result

    async def _process(self, result: CycleResult) -> None:
        file_name = result.file_name
        try:
            self._enter(CycleState.READING)
            trace = await self._source.read(file_name)
            if trace.is_empty:
                logger.warning("Trace file %s is empty", file_name)
                self._skip(result, "empty file")
                return

            self._enter(CycleState.PARSING)
            record = parse_trace(trace.lines)
            result.record = record
            logger.info(
                "Parsed %s: board=%s key=%s machine=%s part=%s order=%s patterns=%d",
                file_name,
                record.board_code,
                record.canonical_board_code,
                record.machine_id,
                record.part_code,
                record.order_number,
                len(record.pattern_codes),
            )
            if not record.is_valid:
                logger.warning("Skipping %s (no part code or order number)", file_name)
                self._skip(result, "incomplete header")
                return

            self._enter(CycleState.RECORDING)
            result.outcome = CycleState.RECORDING
            await self._record(record, result)

        except TraceParseError as e:
            logger.warning("Skipping %s: %s", file_name, e)
            self._skip(result, str(e))
        except OSError as e:
            logger.error("Cannot read %s: %s", file_name, e)
            self._skip(result, str(e))
        except RedisError as e:
            # Ledger may already be updated; duplicate checks are advisory
            logger.exception("Store error while recording %s", file_name)
            result.error = str(e)

    def _skip(self, result: CycleResult, reason: str) -> None:
        self._enter(CycleState.SKIPPED)
        result.outcome = CycleState.SKIPPED
        result.error = reason

    async def _record(self, record: TraceRecord, result: CycleResult) -> None:
        entry = await self._ledger.get(record.order_number)
        if entry is None:
            entry = await self._ledger.create(record.order_number, record.part_code)
        else:
            entry = await self._ledger.increment(record.order_number, 1)
        result.entry = entry
        self._state.publish_order(entry, record.part_code)
        logger.info("Order %s counter=%d", entry.order_number, entry.counter)

        key = record.index_key
        if key is None or record.board_code is None:
            logger.warning("No board code in %s, duplicate check skipped", result.file_name)
            return

        if await self._index.check_and_record(key, record.part_code, record.board_code):
            self._notify(result, record, record.board_code, board=True)

        for pattern in record.pattern_codes:
            if await self._index.check_and_record(key, record.part_code, pattern):
                self._notify(result, record, pattern, board=False)

    def _notify(self, result: CycleResult, record: TraceRecord, value: str, board: bool) -> None:
        notice = DuplicateNotice(
            title=record.board_code or "",
            is_board_duplicate=board,
            is_pattern_duplicate=not board,
            detected_at=datetime.now(),
            value=value,
        )
        logger.warning(
            "Duplicate %s %s on board %s",
            "board" if board else "pattern",
            value,
            notice.title,
        )
        self._state.add_notice(notice)
        result.notices.append(notice)

    async def _finalize(self, result: CycleResult) -> None:
        self._enter(CycleState.FINALIZING)
        try:
            await self._source.relocate(result.file_name)
            result.relocated = True
        except OSError as e:
            logger.error("Failed to move %s: %s", result.file_name, e)
        finally:
            self._enter(CycleState.IDLE)

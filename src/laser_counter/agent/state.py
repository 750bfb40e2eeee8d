"""Latest counter state and duplicate notices, shared with the dashboard."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Optional

from laser_counter.storage.ledger import OrderLedgerEntry


@dataclass(frozen=True)
class DuplicateNotice:
    """A board or pattern code that was marked more than once."""

    title: str  # full board code of the offending board
    is_board_duplicate: bool
    is_pattern_duplicate: bool
    detected_at: datetime
    value: str = ""  # the duplicated member (board or pattern code)


@dataclass(frozen=True)
class DashboardSnapshot:
    order_number: str = ""
    part_code: str = ""
    counter: int = 0
    created_at: int = 0  # epoch ms
    updated_at: int = 0
    notices: tuple[DuplicateNotice, ...] = ()

    @property
    def elapsed_ms(self) -> int:
        return self.updated_at - self.created_at


@dataclass
class DashboardState:
    """Holder for the current snapshot.

    Written by the ingestion cycle (last writer wins) and by operator
    actions; readers get immutable copies through ``snapshot()``.
    """

    _current: DashboardSnapshot = field(default_factory=DashboardSnapshot)
    _notices: list[DuplicateNotice] = field(default_factory=list)

    def snapshot(self) -> DashboardSnapshot:
        return replace(self._current, notices=tuple(self._notices))

    def publish_order(self, entry: OrderLedgerEntry, part_code: Optional[str] = None) -> None:
        self._current = DashboardSnapshot(
            order_number=entry.order_number,
            part_code=part_code or entry.part_code,
            counter=entry.counter,
            created_at=entry.created_at,
            updated_at=entry.updated_at,
        )

    def add_notice(self, notice: DuplicateNotice) -> None:
        self._notices.append(notice)

    def flush_notices(self) -> int:
        """Drop all accumulated notices. Returns how many were dropped."""
        count = len(self._notices)
        self._notices = []
        return count

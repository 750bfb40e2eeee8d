"""Data models for the ingestion layer."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

# Leading characters of a board code that has already been canonicalized
CANONICAL_MARKER = "VR"
CANONICAL_LENGTH = 16


@dataclass(frozen=True)
class TraceFile:
    """A trace file picked up from the watch directory."""

    name: str
    path: str
    lines: list[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return len(self.lines) == 0


@dataclass(frozen=True)
class TraceRecord:
    """Fields parsed from one trace file (header line + pattern lines)."""

    board_code: Optional[str]
    canonical_board_code: Optional[str]
    machine_id: Optional[str]
    part_code: str  # "smacode", internal part identifier
    order_number: str
    pattern_codes: tuple[str, ...] = ()
    pattern_digest: str = ""

    @property
    def is_valid(self) -> bool:
        """A record is only usable when both part code and order number are set."""
        return bool(self.part_code) and bool(self.order_number)

    @property
    def index_key(self) -> Optional[str]:
        """Key of the duplicate-index set this record belongs to.

        Falls back to the first 16 characters of the raw board code when the
        code has no canonical form.
        """
        if self.canonical_board_code:
            return self.canonical_board_code
        if self.board_code:
            return self.board_code[:CANONICAL_LENGTH]
        return None

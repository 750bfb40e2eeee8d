"""Field extraction for laser-marker trace files.

A trace file holds one marked board. Line 1 is the header:

    ;AB12345678....;1234567-7654321;LASER01

Every following line describes one printed pattern, with the pattern code in
the third ``;``-delimited field. The machine firmware is not consistent about
the shape of the board code, so extraction is pattern-based and lenient.
"""

from __future__ import annotations

import hashlib
import re
from typing import Optional, Sequence

from laser_counter.ingestion.models import (
    CANONICAL_LENGTH,
    CANONICAL_MARKER,
    TraceRecord,
)

# ;AB12345678<anything>;  two letters + 8 digits, lazily up to the next ';'
BOARD_CODE_PATTERN = re.compile(r";[a-zA-Z]{2}\d{8}.*?;", re.ASCII)

# ;00<word chars><5 digits>;  older firmware, full token is 49 chars with the ';'s
RARE_BOARD_CODE_PATTERN = re.compile(r";00\w+([0-9]{5});", re.ASCII)
RARE_BOARD_CODE_LENGTH = 49

# 1234567-  order number right before the dash (lazy: prefer 6 digits)
ORDER_NUMBER_PATTERN = re.compile(r"[0-9]{6,7}?-")

# -7654321;  part code ("smacode") right after the dash
PART_CODE_PATTERN = re.compile(r"-[0-9]{7};?")

NON_WORD = re.compile(r"\W", re.ASCII)
NON_DIGIT = re.compile(r"\D")

MIN_BOARD_CODE_LENGTH = 16
LONG_CANONICAL_LENGTH = 42
PATTERN_FIELD_INDEX = 2


class TraceParseError(ValueError):
    """A trace file could not be turned into a record."""


class FieldNotFound(TraceParseError):
    """A required header field is missing."""


class EmptyTraceFile(TraceParseError):
    """The trace file has no lines at all."""


def extract_board_code(header: str) -> Optional[str]:
    """Return the board ("PMJ") code from the header line, or None.

    The older 49-character format wins over the standard one, but only when
    its trailing five-digit group starts with 9.
    """
    result = None

    m = BOARD_CODE_PATTERN.search(header)
    if m and len(m.group(0)) >= MIN_BOARD_CODE_LENGTH:
        result = NON_WORD.sub("", m.group(0))

    rare = RARE_BOARD_CODE_PATTERN.search(header)
    if rare and len(rare.group(0)) == RARE_BOARD_CODE_LENGTH and rare.group(1).startswith("9"):
        result = NON_WORD.sub("", rare.group(0))

    return result


def canonicalize(board_code: Optional[str]) -> Optional[str]:
    """Normalize a board code into its duplicate-index key form.

    ``00...`` codes get the marker prefix and are cut to 42 characters,
    marker-prefixed codes are cut to 16. A 16-character marker-prefixed code
    is already canonical and is returned as is.
    """
    if not board_code:
        return None

    if len(board_code) == CANONICAL_LENGTH:
        return board_code if board_code.startswith(CANONICAL_MARKER) else None

    if len(board_code) > CANONICAL_LENGTH:
        if board_code.startswith("00"):
            return (CANONICAL_MARKER + board_code[2:])[:LONG_CANONICAL_LENGTH]
        if board_code.startswith(CANONICAL_MARKER):
            return board_code[:CANONICAL_LENGTH]

    return None


def extract_machine_id(header: str) -> Optional[str]:
    """Last ``;`` field of the header with all whitespace removed."""
    if not header:
        return None
    return "".join(header.split(";")[-1].split())


def extract_part_code(header: str) -> str:
    m = PART_CODE_PATTERN.search(header)
    if not m:
        return ""
    return NON_DIGIT.sub("", m.group(0))


def extract_order_number(header: str) -> str:
    """Return the manufacturing order number.

    Raises FieldNotFound when the header has no 6-7 digit run before a dash.
    """
    m = ORDER_NUMBER_PATTERN.search(header)
    if not m:
        raise FieldNotFound(f"Order number not found in line - {header}")
    return NON_DIGIT.sub("", m.group(0))


def _pattern_fields(lines: Sequence[str]) -> list[str]:
    fields = []
    for line in lines[1:]:
        parts = line.split(";")
        if len(parts) > PATTERN_FIELD_INDEX:
            fields.append(parts[PATTERN_FIELD_INDEX])
    return fields


def extract_pattern_codes(lines: Sequence[str]) -> list[str]:
    """Pattern code (third field) of every line after the header."""
    return _pattern_fields(lines)


def digest_patterns(lines: Sequence[str]) -> str:
    """SHA-256 over the concatenated pattern codes of the body lines."""
    if not lines:
        return ""
    joined = "".join(_pattern_fields(lines))
    return hashlib.sha256(joined.encode("utf-8")).hexdigest()


def parse_trace(lines: Sequence[str]) -> TraceRecord:
    """Build a TraceRecord from the raw lines of one trace file.

    Raises EmptyTraceFile for a zero-line file and FieldNotFound when the
    order number is missing. A missing part code is not an error here; the
    record simply comes back invalid.
    """
    if not lines:
        raise EmptyTraceFile("Trace file is empty")

    header = lines[0]
    board_code = extract_board_code(header)
    part_code = extract_part_code(header)
    order_number = extract_order_number(header)

    return TraceRecord(
        board_code=board_code,
        canonical_board_code=canonicalize(board_code),
        machine_id=extract_machine_id(header),
        part_code=part_code,
        order_number=order_number,
        pattern_codes=tuple(extract_pattern_codes(lines)),
        pattern_digest=digest_patterns(lines),
    )

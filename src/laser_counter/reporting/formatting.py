"""Display helpers for counter timestamps and durations."""

from __future__ import annotations

from datetime import datetime

DAY_MS = 24 * 60 * 60 * 1000
HOUR_MS = 60 * 60 * 1000
MINUTE_MS = 60 * 1000


def format_elapsed(elapsed_ms: int) -> str:
    """Render a duration as ``[N day(s) ]H:MM:SS``.

    >>> format_elapsed(90061000)
    '1 day(s) 1:01:01'
    """
    elapsed_ms = max(int(elapsed_ms), 0)
    days, rest = divmod(elapsed_ms, DAY_MS)
    hours, rest = divmod(rest, HOUR_MS)
    minutes, rest = divmod(rest, MINUTE_MS)
    seconds = rest // 1000

    prefix = f"{days} day(s) " if days > 0 else ""
    return f"{prefix}{hours}:{minutes:02d}:{seconds:02d}"


def format_timestamp(epoch_ms: int, fmt: str = "%d.%b.%y %H:%M:%S") -> str:
    """Render an epoch-millisecond timestamp; 0 means never and renders as '-'."""
    if not epoch_ms:
        return "-"
    return datetime.fromtimestamp(int(epoch_ms) / 1000).strftime(fmt)

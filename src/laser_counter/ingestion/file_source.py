"""Watch-directory access for trace files: list, read, relocate."""

from __future__ import annotations

import asyncio
import errno
import logging
import os
import shutil
from pathlib import Path

from laser_counter.ingestion.models import TraceFile

logger = logging.getLogger(__name__)


def move_file(old_path: Path, new_path: Path) -> None:
    """Move a file, creating the destination tree as needed.

    ``rename`` does not work across mount points (EXDEV, e.g. Docker
    volumes), so that case falls back to copy + unlink.
    """
    new_path.parent.mkdir(parents=True, exist_ok=True)
    try:
        os.replace(old_path, new_path)
    except OSError as e:
        if e.errno != errno.EXDEV:
            raise
        logger.debug("Cross-device move for %s, copying instead", old_path.name)
        shutil.copy2(old_path, new_path)
        old_path.unlink()


class TraceFileSource:
    """Trace files waiting in the watch directory.

    Every file handed out by ``read`` is expected to be passed to
    ``relocate`` exactly once afterwards, whatever happened in between.
    """

    def __init__(self, watch_dir: str, processed_dir: str, extension: str = ".txt") -> None:
        self._watch_dir = Path(watch_dir)
        self._processed_dir = Path(processed_dir)
        self._extension = extension

    @property
    def watch_dir(self) -> Path:
        return self._watch_dir

    @property
    def processed_dir(self) -> Path:
        return self._processed_dir

    def _matches(self, entry: Path) -> bool:
        if not entry.is_file():
            return False
        if not self._extension:
            return True
        return entry.suffix == self._extension

    def list_pending_sync(self) -> list[str]:
        return sorted(entry.name for entry in self._watch_dir.iterdir() if self._matches(entry))

    def read_lines_sync(self, filename: str) -> list[str]:
        path = self._watch_dir / filename
        with open(path, "r", encoding="utf-8", errors="replace") as f:
            return f.read().splitlines()

    def relocate_sync(self, filename: str) -> Path:
        old_path = self._watch_dir / filename
        new_path = self._processed_dir / filename
        move_file(old_path, new_path)
        return new_path

    async def list_pending(self) -> list[str]:
        """Names of files in the watch directory with the configured extension."""
        return await asyncio.to_thread(self.list_pending_sync)

    async def read_lines(self, filename: str) -> list[str]:
        """All lines of a pending file. Raises OSError if unreadable."""
        return await asyncio.to_thread(self.read_lines_sync, filename)

    async def read(self, filename: str) -> TraceFile:
        lines = await self.read_lines(filename)
        path = (self._watch_dir / filename).resolve()
        return TraceFile(name=filename, path=str(path), lines=lines)

    async def relocate(self, filename: str) -> Path:
        """Move a file from the watch directory to the processed directory."""
        new_path = await asyncio.to_thread(self.relocate_sync, filename)
        logger.info("Moved %s -> %s", filename, new_path)
        return new_path

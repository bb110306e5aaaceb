"""The record log: an append-only text file mapping originals to graves.

One entry per line, three tab-separated fields::

    <timestamp>\t<original_absolute_path>\t<grave_absolute_path>

The log is only rewritten when entries are removed (exhumed, permanently
deleted or stale). Rewrites go through a temp file and ``os.replace`` so a
reader never sees a half-written log. No file locking is done: two processes
working on the same graveyard can still interleave appends and rewrites.
"""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Callable, Iterable

from graverip.errors import CorruptRecordError, RecordError
from graverip.paths import is_under, lexists

log = logging.getLogger(__name__)

RECORD_NAME = ".record"


@dataclass(frozen=True)
class RecordEntry:
    """One line of the record log."""

    timestamp: str
    original: Path
    grave: Path

    def to_line(self) -> str:
        return f"{self.timestamp}\t{self.original}\t{self.grave}"


def format_timestamp(when: datetime | None = None) -> str:
    """Format like ``Sat Oct  3 09:05:01 2026`` (space-padded day of month)."""
    when = when or datetime.now()
    return f"{when:%a %b} {when.day:>2} {when:%H:%M:%S %Y}"


def parse_line(line: str, record_path: Path, line_no: int) -> RecordEntry:
    """Parse one record line, raising :class:`CorruptRecordError` if malformed."""
    fields = line.split("\t")
    if len(fields) != 3:
        raise CorruptRecordError(record_path, line_no, line)
    timestamp, original, grave = fields
    return RecordEntry(timestamp=timestamp, original=Path(original), grave=Path(grave))


class RecordStore:
    """Reads and writes the record log of one graveyard.

    Parameters
    ----------
    path:
        Path to the log file, usually ``<graveyard>/.record``. The file and
        its parent directories are created on first append.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    @classmethod
    def for_graveyard(cls, graveyard: Path) -> RecordStore:
        return cls(Path(graveyard) / RECORD_NAME)

    # ------------------------------------------------------------------
    # Raw access
    # ------------------------------------------------------------------

    def _read_lines(self) -> list[str]:
        try:
            with open(self.path, encoding="utf-8") as f:
                return f.read().splitlines()
        except FileNotFoundError:
            return []
        except OSError as exc:
            raise RecordError(f"Failed to read record at {self.path}: {exc}") from exc

    def _parsed(self) -> list[tuple[str, RecordEntry]]:
        pairs: list[tuple[str, RecordEntry]] = []
        for i, line in enumerate(self._read_lines(), start=1):
            if not line.strip():
                continue
            pairs.append((line, parse_line(line, self.path, i)))
        return pairs

    # ------------------------------------------------------------------
    # Core operations
    # ------------------------------------------------------------------

    def append(
        self,
        original: Path,
        grave: Path,
        timestamp: str | None = None,
    ) -> RecordEntry:
        """Append one entry and return it."""
        entry = RecordEntry(
            timestamp=timestamp or format_timestamp(),
            original=Path(original),
            grave=Path(grave),
        )
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "a", encoding="utf-8") as f:
                f.write(entry.to_line() + "\n")
                f.flush()
        except OSError as exc:
            raise RecordError(f"Failed to write record at {self.path}: {exc}") from exc
        log.debug("Recorded %s -> %s", entry.original, entry.grave)
        return entry

    def scan(self) -> list[RecordEntry]:
        """Return every entry in log (chronological) order."""
        return [entry for _line, entry in self._parsed()]

    def remove(self, graves: Iterable[Path]) -> int:
        """Rewrite the log without the entries whose grave is in *graves*.

        Returns the number of lines dropped.
        """
        doomed = {Path(g) for g in graves}
        if not doomed:
            return 0

        pairs = self._parsed()
        kept = [line for line, entry in pairs if entry.grave not in doomed]
        removed = len(pairs) - len(kept)
        if removed == 0:
            return 0

        try:
            fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=".record.")
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.writelines(line + "\n" for line in kept)
            shutil.copymode(self.path, tmp_name)
            os.replace(tmp_name, self.path)
        except OSError as exc:
            raise RecordError(f"Failed to rewrite record at {self.path}: {exc}") from exc

        log.debug("Removed %d entr%s from record", removed, "y" if removed == 1 else "ies")
        return removed

    def find_latest(
        self,
        predicate: Callable[[RecordEntry], bool] | None = None,
    ) -> RecordEntry | None:
        """Return the most recent entry matching *predicate* whose grave still exists.

        Matching entries whose grave is gone are pruned from the log as a
        side effect.
        """
        stale: list[Path] = []
        found: RecordEntry | None = None
        for entry in reversed(self.scan()):
            if predicate is not None and not predicate(entry):
                continue
            if lexists(entry.grave):
                found = entry
                break
            stale.append(entry.grave)

        if stale:
            log.info("Pruning %d stale record entr%s", len(stale), "y" if len(stale) == 1 else "ies")
            self.remove(stale)
        return found

    # ------------------------------------------------------------------
    # Query helpers
    # ------------------------------------------------------------------

    def lookup(self, graves: Iterable[Path]) -> list[RecordEntry]:
        """Return the entries for *graves* in log order, one per grave.

        When a grave was recorded more than once the most recent entry wins.
        """
        wanted = {Path(g) for g in graves}
        latest: dict[Path, RecordEntry] = {}
        for entry in self.scan():
            if entry.grave in wanted:
                latest.pop(entry.grave, None)
                latest[entry.grave] = entry
        return list(latest.values())

    def entries_under(self, scope: Path) -> list[RecordEntry]:
        """Return the entries whose grave lies under *scope*, in log order."""
        return [entry for entry in self.scan() if is_under(entry.grave, scope)]

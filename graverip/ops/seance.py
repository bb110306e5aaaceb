"""Seance: list what is recorded in the graveyard. Never mutates the record."""

from __future__ import annotations

import os
import stat
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from graverip.config import SeanceOpts
from graverip.paths import grave_path_for
from graverip.record import RecordEntry, RecordStore

MISSING = "missing"


@dataclass(frozen=True)
class SeanceEntry:
    index: int
    entry: RecordEntry
    kind: str
    modified: str

    @property
    def grave(self) -> Path:
        return self.entry.grave


def file_kind(path: Path) -> str:
    """Classify a grave as ``file``, ``dir``, ``link``, ``other`` or ``missing``."""
    try:
        mode = os.lstat(path).st_mode
    except OSError:
        return MISSING
    if stat.S_ISLNK(mode):
        return "link"
    if stat.S_ISDIR(mode):
        return "dir"
    if stat.S_ISREG(mode):
        return "file"
    return "other"


def _modified(path: Path) -> str:
    try:
        mtime = os.lstat(path).st_mtime
    except OSError:
        return "N/A"
    return datetime.fromtimestamp(mtime).strftime("%Y-%m-%d %H:%M:%S")


def seance_scope(opts: SeanceOpts) -> Path:
    if opts.show_all:
        return opts.graveyard
    return grave_path_for(opts.graveyard, opts.cwd)


def seance(opts: SeanceOpts, store: RecordStore | None = None) -> list[SeanceEntry]:
    """Return the recorded graves under the cwd (or all of them), in log order."""
    store = store or RecordStore(opts.record)
    return [
        SeanceEntry(index=i, entry=entry, kind=file_kind(entry.grave), modified=_modified(entry.grave))
        for i, entry in enumerate(store.entries_under(seance_scope(opts)))
    ]

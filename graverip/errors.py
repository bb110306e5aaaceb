"""Exception hierarchy for the graveyard engine.

Component failures are wrapped with the path and phase that failed so the
orchestrators can report them per target. :class:`RecordError` and its
subclass :class:`CorruptRecordError` are fatal for a whole operation since
the record log is shared state.
"""

from __future__ import annotations

from pathlib import Path


class RipError(Exception):
    """Base class for graveyard engine errors."""


class NotFoundError(RipError):
    """Raised when a target does not exist."""

    def __init__(self, path: Path | str, message: str | None = None) -> None:
        self.path = Path(path)
        super().__init__(message or f"Cannot remove {path}: no such file or directory")


class MoveError(RipError):
    """Raised when relocating a file or tree fails.

    Parameters
    ----------
    path:
        The path whose read/write/copy/rename failed.
    phase:
        ``rename``, ``copy`` or ``remove-source``.
    partial:
        True when a destination may have been partially created and should
        be cleaned up by the caller.
    """

    def __init__(
        self,
        message: str,
        path: Path | str,
        phase: str,
        partial: bool = False,
    ) -> None:
        self.path = Path(path)
        self.phase = phase
        self.partial = partial
        super().__init__(message)


class SpecialFileError(MoveError):
    """Raised when the user declines to permanently delete a special file."""

    def __init__(self, path: Path | str) -> None:
        super().__init__(
            f"Declined to permanently delete special file {path}",
            path,
            phase="copy",
            partial=True,
        )


class ConflictResolutionExhausted(RipError):
    """Raised when no free ``~N`` suffix exists for a grave name."""


class RecordError(RipError):
    """Raised when the record log cannot be read or written."""


class CorruptRecordError(RecordError):
    """Raised when a record line does not split into exactly three fields."""

    def __init__(self, record_path: Path, line_no: int, line: str) -> None:
        self.record_path = record_path
        self.line_no = line_no
        self.line = line
        fields = len(line.split("\t"))
        super().__init__(
            f"Corrupt record at {record_path}:{line_no}: "
            f"expected 3 tab-separated fields, got {fields}"
        )

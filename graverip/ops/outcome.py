"""Outcome records returned by the orchestrators instead of printing."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

BURIED = "buried"
RESTORED = "restored"
DELETED = "deleted"
SKIPPED = "skipped"
FAILED = "failed"


@dataclass(frozen=True)
class Outcome:
    """What happened to one target.

    ``source`` is where the item was, ``dest`` where it ended up (None when
    nothing moved). ``error`` is set only for ``failed`` outcomes.
    """

    action: str
    source: Path
    dest: Path | None = None
    error: Exception | None = None
    detail: str = ""

    @property
    def ok(self) -> bool:
        return self.action != FAILED


def any_failed(outcomes: list[Outcome]) -> bool:
    return any(not o.ok for o in outcomes)

"""The four graveyard operations and their dispatcher.

Each orchestrator takes a resolved operation value, the confirmation
callable and optionally a :class:`~graverip.record.RecordStore`, and
returns result records for the caller to render.
"""

from __future__ import annotations

from typing import Any

from graverip.config import BuryOpts, DecomposeOpts, Operation, SeanceOpts, UnburyOpts
from graverip.mover import Confirm
from graverip.ops.bury import bury
from graverip.ops.decompose import DecomposeResult, decompose
from graverip.ops.outcome import Outcome, any_failed
from graverip.ops.seance import SeanceEntry, seance
from graverip.ops.unbury import unbury


def run(operation: Operation, confirm: Confirm) -> Any:
    """Dispatch *operation* to its orchestrator."""
    if isinstance(operation, BuryOpts):
        return bury(operation, confirm)
    if isinstance(operation, UnburyOpts):
        return unbury(operation, confirm)
    if isinstance(operation, SeanceOpts):
        return seance(operation)
    if isinstance(operation, DecomposeOpts):
        return decompose(operation, confirm)
    raise TypeError(f"Unknown operation {type(operation).__name__}")


__all__ = [
    "DecomposeResult",
    "Outcome",
    "SeanceEntry",
    "any_failed",
    "bury",
    "decompose",
    "run",
    "seance",
    "unbury",
]

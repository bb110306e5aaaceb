"""Decompose: permanently erase the whole graveyard, record included."""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass, field

from graverip.config import DecomposeOpts
from graverip.errors import RipError
from graverip.mover import Confirm
from graverip.ops.seance import file_kind
from graverip.paths import lexists
from graverip.record import RecordEntry, RecordStore

log = logging.getLogger(__name__)


@dataclass
class DecomposeResult:
    """``purged`` is False when the user declined. ``entries`` pairs each
    record entry with the kind of its grave just before deletion."""

    purged: bool
    entries: list[tuple[RecordEntry, str]] = field(default_factory=list)


def decompose(
    opts: DecomposeOpts,
    confirm: Confirm,
    store: RecordStore | None = None,
) -> DecomposeResult:
    if not confirm("Really unlink the entire graveyard?"):
        return DecomposeResult(purged=False)

    if not lexists(opts.graveyard):
        log.info("Graveyard %s does not exist, nothing to decompose", opts.graveyard)
        return DecomposeResult(purged=True)

    store = store or RecordStore(opts.record)
    listing = [(entry, file_kind(entry.grave)) for entry in store.scan()] if opts.verbose else []

    try:
        shutil.rmtree(opts.graveyard)
    except OSError as exc:
        raise RipError(f"Couldn't unlink graveyard {opts.graveyard}: {exc}") from exc
    log.info("Decomposed graveyard %s", opts.graveyard)
    return DecomposeResult(purged=True, entries=listing)

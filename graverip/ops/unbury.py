"""Unbury: exhume graves back to where they were buried from."""

from __future__ import annotations

import logging
from pathlib import Path

from graverip.config import UnburyOpts
from graverip.errors import ConflictResolutionExhausted, MoveError, NotFoundError
from graverip.mover import Confirm, relocate
from graverip.ops.bury import remove_partial
from graverip.ops.outcome import DELETED, FAILED, RESTORED, Outcome
from graverip.paths import grave_path_for, is_under, restore_destination
from graverip.record import RecordEntry, RecordStore
from graverip.selector import expand, is_glob

log = logging.getLogger(__name__)


def resolve_target(target: str, opts: UnburyOpts) -> Path:
    """Map a user-supplied target to a grave path.

    With ``local`` the target is relative to the mirrored cwd. Otherwise an
    absolute path already under the graveyard is used as is, and anything
    else is mirrored under the graveyard root.
    """
    if opts.local:
        return grave_path_for(grave_path_for(opts.graveyard, opts.cwd), target)
    if is_under(target, opts.graveyard):
        return Path(target)
    return grave_path_for(opts.graveyard, target)


def collect_candidates(
    opts: UnburyOpts,
    store: RecordStore,
) -> tuple[list[Path], set[Path]]:
    """Build the grave paths to exhume.

    Returns the ordered candidates and the subset named explicitly (not via
    a glob), which must have a record entry.
    """
    local_root = grave_path_for(opts.graveyard, opts.cwd)
    candidates: list[Path] = []
    explicit: set[Path] = set()

    for target in opts.targets:
        if is_glob(target):
            base = local_root if opts.local else opts.graveyard
            candidates.extend(expand(target, base, opts.max_depth))
        else:
            grave = resolve_target(target, opts)
            candidates.append(grave)
            explicit.add(grave)
    log.debug("Exhume candidates from targets: %s", candidates)

    if opts.seance:
        candidates.extend(entry.grave for entry in store.entries_under(local_root))
        log.debug("Exhume candidates after seance: %s", candidates)

    if not candidates:
        predicate = (lambda e: is_under(e.grave, local_root)) if opts.local else None
        log.debug("Exhuming last bury %s", "locally" if opts.local else "globally")
        latest = store.find_latest(predicate)
        if latest is not None:
            candidates.append(latest.grave)

    return candidates, explicit


def unbury(
    opts: UnburyOpts,
    confirm: Confirm,
    store: RecordStore | None = None,
) -> list[Outcome]:
    """Restore the selected graves and drop them from the record.

    Returns
    -------
    list[Outcome]
        ``restored``, ``deleted`` or ``failed`` per grave, in record order. Explicit
        targets with no record entry are reported as ``failed`` first.
    """
    store = store or RecordStore(opts.record)
    candidates, explicit = collect_candidates(opts, store)

    entries = store.lookup(candidates)
    recorded = {entry.grave for entry in entries}

    outcomes: list[Outcome] = []
    for grave in sorted(explicit - recorded):
        err = NotFoundError(grave, f"No record of {grave} in the graveyard")
        log.warning("%s", err)
        outcomes.append(Outcome(FAILED, grave, error=err))

    exhumed: list[Path] = []
    for entry in entries:
        outcome = _exhume(entry, confirm)
        outcomes.append(outcome)
        if outcome.ok:
            exhumed.append(entry.grave)

    if exhumed:
        store.remove(exhumed)
    return outcomes


def _exhume(entry: RecordEntry, confirm: Confirm) -> Outcome:
    try:
        dest = restore_destination(entry.original)
    except ConflictResolutionExhausted as exc:
        log.error("%s", exc)
        return Outcome(FAILED, entry.grave, error=exc)
    if dest != entry.original:
        log.info("%s is occupied, restoring to %s", entry.original, dest)

    try:
        kept = relocate(entry.grave, dest, confirm)
    except MoveError as exc:
        if exc.partial:
            remove_partial(dest)
        log.error(
            "Unbury failed: couldn't move %s to %s (%s): %s", entry.grave, dest, exc.phase, exc,
        )
        return Outcome(FAILED, entry.grave, dest, error=exc)

    if not kept:
        log.info("%s was deleted instead of restored", entry.grave)
        return Outcome(DELETED, entry.grave, detail="Deleted instead of copying a big file")
    return Outcome(RESTORED, entry.grave, dest)

"""Bury: move targets into the graveyard and record where they came from."""

from __future__ import annotations

import logging
import os
import shutil
import stat
from pathlib import Path

from graverip.config import BuryOpts
from graverip.errors import ConflictResolutionExhausted, MoveError, NotFoundError
from graverip.mover import Confirm, relocate
from graverip.paths import grave_destination, is_under, lexists
from graverip.preview import build_preview
from graverip.record import RecordStore
from graverip.ops.outcome import BURIED, DELETED, FAILED, SKIPPED, Outcome

log = logging.getLogger(__name__)


def canonical_source(path: Path) -> Path:
    """Absolute, symlink-free location of *path* without dereferencing *path* itself."""
    if path.is_symlink():
        return path.parent.resolve() / path.name
    return path.resolve()


def remove_partial(dest: Path) -> None:
    """Remove whatever a failed copy left at *dest*."""
    if not lexists(dest):
        return
    try:
        if dest.is_dir() and not dest.is_symlink():
            shutil.rmtree(dest)
        else:
            dest.unlink()
        log.debug("Removed partial copy at %s", dest)
    except OSError as exc:
        log.warning("Couldn't clean up partial copy at %s: %s", dest, exc)


def _as_grave(source: Path, graveyard: Path) -> Path | None:
    """Return *source* spelled under *graveyard* if it lies inside it, else None.

    *source* has its symlinks resolved while *graveyard* may not, so both the
    literal and the resolved root are checked.
    """
    if is_under(source, graveyard):
        return source
    real_root = graveyard.resolve()
    if is_under(source, real_root):
        return graveyard / source.relative_to(real_root)
    return None


def _unlink_permanently(path: Path) -> None:
    if stat.S_ISDIR(os.lstat(path).st_mode):
        shutil.rmtree(path)
    else:
        os.remove(path)


def bury(
    opts: BuryOpts,
    confirm: Confirm,
    store: RecordStore | None = None,
) -> list[Outcome]:
    """Send every target in *opts* to the graveyard.

    A failing target does not stop the batch; only record log failures
    (:class:`~graverip.errors.RecordError`) propagate.

    Returns
    -------
    list[Outcome]
        One outcome per target, in order.
    """
    store = store or RecordStore(opts.record)
    return [_bury_one(target, opts, confirm, store) for target in opts.targets]


def _bury_one(
    target: str,
    opts: BuryOpts,
    confirm: Confirm,
    store: RecordStore,
) -> Outcome:
    path = opts.cwd / target
    if not lexists(path):
        err = NotFoundError(target)
        log.warning("%s", err)
        return Outcome(FAILED, path, error=err)

    try:
        source = canonical_source(path)
    except OSError as exc:
        return Outcome(FAILED, path, error=exc, detail="Failed to canonicalize path")
    log.debug("Resolved target path: %s", source)

    if opts.inspect:
        preview = build_preview(target, source, opts.inspect_lines, opts.inspect_files)
        if not confirm(f"{preview}\nSend {target} to the graveyard?"):
            return Outcome(SKIPPED, source)

    recorded = _as_grave(source, opts.graveyard)
    if recorded is not None:
        if not confirm(f"{source} is already in the graveyard.\nPermanently unlink it?"):
            return Outcome(SKIPPED, source)
        try:
            _unlink_permanently(source)
        except OSError as exc:
            log.error("Couldn't unlink %s: %s", source, exc)
            return Outcome(FAILED, source, error=exc, detail="Couldn't unlink")
        store.remove([source, recorded])
        return Outcome(DELETED, source)

    try:
        dest = grave_destination(opts.graveyard, source)
    except ConflictResolutionExhausted as exc:
        log.error("%s", exc)
        return Outcome(FAILED, source, error=exc)
    log.debug("Grave for %s: %s", source, dest)

    try:
        kept = relocate(source, dest, confirm)
    except MoveError as exc:
        if exc.partial:
            remove_partial(dest)
        log.error("Failed to bury %s (%s): %s", source, exc.phase, exc)
        return Outcome(FAILED, source, dest, error=exc)

    if not kept:
        log.info("%s was deleted instead of buried", source)
        return Outcome(DELETED, source, detail="Deleted instead of copying a big file")

    store.append(source, dest)
    return Outcome(BURIED, source, dest)

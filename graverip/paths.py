"""Mapping between original paths and their graves.

The graveyard mirrors the absolute path of everything it holds, so a grave
path can be derived from an original path (and back) without consulting the
record log. Name collisions are resolved by appending ``~1``, ``~2``, ...
"""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path

from graverip.errors import ConflictResolutionExhausted

log = logging.getLogger(__name__)

# Upper bound on the ~N suffixes tried for one name
MAX_SUFFIX = sys.maxsize


def lexists(path: Path | str) -> bool:
    """Check existence without following symlinks (dangling links exist)."""
    return os.path.lexists(path)


def grave_path_for(graveyard: Path | str, original: Path | str) -> Path:
    """Mirror *original* under *graveyard*, even if *original* is absolute."""
    original = str(original)
    stripped = original.lstrip(os.sep)
    return Path(graveyard) / stripped if stripped else Path(graveyard)


def resolve_conflict(candidate: Path | str) -> Path:
    """Return *candidate*, or the first free ``candidate~N`` if it is taken."""
    candidate = Path(candidate)
    if not lexists(candidate):
        return candidate

    name = str(candidate)
    for i in range(1, MAX_SUFFIX):
        renamed = Path(f"{name}~{i}")
        if not lexists(renamed):
            log.debug("Grave %s is taken, using %s", candidate, renamed)
            return renamed
    raise ConflictResolutionExhausted(f"Failed to rename duplicate file or directory {candidate}")


def find_blocking_ancestor(candidate: Path | str) -> Path | None:
    """Return the nearest ancestor (or *candidate* itself) that is not a directory.

    Such a file prevents *candidate* from being created as a nested path.
    """
    path = Path(candidate)
    for ancestor in (path, *path.parents):
        if lexists(ancestor) and not ancestor.is_dir():
            return ancestor
    return None


def grave_destination(graveyard: Path | str, original: Path | str) -> Path:
    """Compute a free grave for *original*.

    If the mirrored path is taken it gets a ``~N`` suffix. If one of its
    ancestors inside the graveyard is a plain file, the ancestor name is
    suffixed instead and the grave is re-rooted beneath it, leaving the
    existing file untouched.
    """
    dest = grave_path_for(graveyard, original)
    if lexists(dest):
        return resolve_conflict(dest)

    blocker = find_blocking_ancestor(dest)
    if blocker is None:
        return dest

    renamed = resolve_conflict(blocker)
    rerooted = renamed / dest.relative_to(blocker)
    log.debug("Ancestor %s is a file, re-rooting grave under %s", blocker, renamed)
    return rerooted


def restore_destination(original: Path | str) -> Path:
    """Return *original*, suffixed with ``~N`` if something already occupies it."""
    return resolve_conflict(original)


def is_under(path: Path | str, root: Path | str) -> bool:
    """True if *path* equals *root* or lies beneath it (purely lexical)."""
    return Path(path).is_relative_to(Path(root))

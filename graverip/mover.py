"""Physical relocation of files and directory trees.

Bury and unbury are symmetric: both call :func:`relocate`, with the source
and destination swapped. A plain rename is tried first; when the move
crosses a filesystem boundary (``EXDEV``) the tree is copied and the source
removed only once every copy succeeded.
"""

from __future__ import annotations

import errno
import logging
import os
import shutil
import stat
from pathlib import Path
from typing import Callable

from graverip.errors import MoveError, SpecialFileError
from graverip.paths import lexists
from graverip.preview import humanize_bytes

log = logging.getLogger(__name__)

Confirm = Callable[[str], bool]

# Files above 500 MiB are considered large
BIG_FILE_THRESHOLD = 500 * 1024 * 1024

MARKER_TEXT = (
    "This is a marker for a file that was permanently deleted.  Requiescat in pace."
)


def _missing_parents(path: Path) -> list[Path]:
    """Ancestors of *path* that do not exist yet, deepest first."""
    missing = []
    for parent in path.parents:
        if lexists(parent):
            break
        missing.append(parent)
    return missing


def _remove_created_parents(created: list[Path]) -> None:
    for parent in created:
        try:
            parent.rmdir()
        except OSError as exc:
            log.debug("Leaving %s in place: %s", parent, exc)
            return


def relocate(source: Path, dest: Path, confirm: Confirm) -> bool:
    """Move *source* to *dest*, falling back to copy+delete across devices.

    Returns False when *source* was a big file the user chose to delete
    instead of copying, so nothing exists at *dest*. True otherwise.

    Raises
    ------
    MoveError
        With ``phase`` set to where it failed. ``partial`` is True when a
        destination may have been partially created.
    """
    source, dest = Path(source), Path(dest)

    created = _missing_parents(dest)
    try:
        dest.parent.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        _remove_created_parents(created)
        raise MoveError(
            f"Couldn't create parent dir {dest.parent}: {exc}", dest.parent, phase="rename",
        ) from exc

    try:
        os.rename(source, dest)
        log.debug("Renamed %s -> %s", source, dest)
        return True
    except OSError as exc:
        if exc.errno != errno.EXDEV:
            _remove_created_parents(created)
            raise MoveError(
                f"Failed to move {source} to {dest}: {exc.strerror or exc}", source, phase="rename",
            ) from exc

    log.debug("Cross-device move, copying %s -> %s", source, dest)
    try:
        is_dir = stat.S_ISDIR(os.lstat(source).st_mode)
    except OSError as exc:
        raise MoveError(f"Couldn't get metadata of {source}: {exc}", source, phase="copy") from exc

    if is_dir:
        _copy_tree(source, dest, confirm)
        copied = True
        remove = shutil.rmtree
    else:
        copied = _copy_one(source, dest, confirm)
        remove = os.remove

    try:
        remove(source)
    except OSError as exc:
        raise MoveError(f"Failed to remove {source}: {exc}", source, phase="remove-source") from exc
    return copied


def _copy_tree(source: Path, dest: Path, confirm: Confirm) -> None:
    """Depth-first copy of a directory tree, never following symlinks."""
    try:
        dest.mkdir(parents=True, exist_ok=True)
        shutil.copymode(source, dest)
        entries = sorted(os.scandir(source), key=lambda e: e.name)
    except OSError as exc:
        raise MoveError(
            f"Failed to create {dest} from {source}: {exc}", source, phase="copy", partial=True,
        ) from exc

    for entry in entries:
        child_src = Path(entry.path)
        child_dest = dest / entry.name
        if entry.is_dir(follow_symlinks=False):
            _copy_tree(child_src, child_dest, confirm)
        else:
            _copy_one(child_src, child_dest, confirm)


def _copy_one(source: Path, dest: Path, confirm: Confirm) -> bool:
    """Copy a single non-directory entry according to its file type.

    Returns False when a big file was left uncopied for deletion.
    """
    try:
        st = os.lstat(source)
    except OSError as exc:
        raise MoveError(f"Couldn't get metadata of {source}: {exc}", source, phase="copy", partial=True) from exc
    mode = st.st_mode

    try:
        if stat.S_ISREG(mode):
            if st.st_size > BIG_FILE_THRESHOLD:
                prompt = (
                    f"About to copy a big file ({source} is {humanize_bytes(st.st_size)})\n"
                    "Permanently delete this file instead?"
                )
                if confirm(prompt):
                    log.info("Skipping copy of big file %s, it will be deleted", source)
                    return False
            shutil.copy2(source, dest)
        elif stat.S_ISLNK(mode):
            os.symlink(os.readlink(source), dest)
        elif stat.S_ISFIFO(mode):
            os.mkfifo(dest, stat.S_IMODE(mode))
        else:
            if not confirm(f"Non-regular file: {source}\nPermanently delete the file?"):
                raise SpecialFileError(source)
            # Placeholder so the grave slot still exists for the record
            dest.write_text(MARKER_TEXT)
            log.info("Wrote deletion marker for special file %s at %s", source, dest)
    except MoveError:
        raise
    except OSError as exc:
        raise MoveError(
            f"Failed to copy {source} to {dest}: {exc}", source, phase="copy", partial=True,
        ) from exc
    return True

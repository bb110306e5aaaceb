"""Inspection text shown before a bury is confirmed."""

from __future__ import annotations

import os
import stat
from itertools import islice
from pathlib import Path

# Default number of lines / entries shown when inspecting
LINES_TO_INSPECT = 6
FILES_TO_INSPECT = 6

_UNITS = ("bytes", "KB", "MB", "GB", "TB")


def humanize_bytes(n: int) -> str:
    """Render a byte count in the largest decimal unit in which it exceeds 10."""
    chosen = 0
    for i in range(len(_UNITS)):
        if n // 1000**i > 10:
            chosen = i
        else:
            break
    return f"{n // 1000**chosen} {_UNITS[chosen]}"


def tree_size(path: Path) -> int:
    """Sum of lstat sizes of *path* and everything below it."""
    total = os.lstat(path).st_size
    for dirpath, dirnames, filenames in os.walk(path):
        for name in dirnames + filenames:
            try:
                total += os.lstat(os.path.join(dirpath, name)).st_size
            except OSError:
                continue
    return total


def build_preview(
    label: str,
    path: Path,
    lines: int = LINES_TO_INSPECT,
    files: int = FILES_TO_INSPECT,
) -> str:
    """Describe *path* for the user: size, then first lines or first entries."""
    st = os.lstat(path)
    if stat.S_ISDIR(st.st_mode):
        out = [f"{label}: directory, {humanize_bytes(tree_size(path))} including:"]
        names = sorted(os.listdir(path))[:files]
        out.extend(str(path / name) for name in names)
        return "\n".join(out)

    if stat.S_ISLNK(st.st_mode):
        return f"{label}: symlink -> {os.readlink(path)}"
    if not stat.S_ISREG(st.st_mode):
        return f"{label}: special file"

    out = [f"{label}: file, {humanize_bytes(st.st_size)}"]
    try:
        with open(path, encoding="utf-8", errors="replace") as f:
            out.extend("> " + line.rstrip("\n") for line in islice(f, lines))
    except OSError:
        out.append(f"Error: problem reading {path}")
    return "\n".join(out)

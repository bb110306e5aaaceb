"""Shell-style glob selection of graves.

Patterns follow gitignore conventions:

- ``*`` and ``?`` never cross ``/``; ``**`` does (``**/x``, ``x/**``, ``a/**/b``)
- ``[abc]`` / ``[!abc]`` character classes, ``{png,jpg}`` alternation
- a leading ``!`` negates the pattern, ``\\`` escapes the next character
- a pattern without an inner ``/`` matches the entry name at any depth,
  otherwise it is anchored at the base directory
- a trailing ``/`` only matches directories

When several patterns are given the last one that matches an entry decides.
"""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

log = logging.getLogger(__name__)

# 10 because $XDG_DATA_HOME/graveyard is already pretty deep
DEFAULT_MAX_DEPTH = 10

_GLOB_CHARS = set("*?[{")


def is_glob(target: str) -> bool:
    """Whether *target* should be expanded rather than joined as a path."""
    return target.startswith("!") or any(c in _GLOB_CHARS for c in target)


def _find_closing_brace(pat: str, start: int) -> int:
    depth = 0
    i = start
    while i < len(pat):
        c = pat[i]
        if c == "\\":
            i += 2
            continue
        if c == "{":
            depth += 1
        elif c == "}":
            depth -= 1
            if depth == 0:
                return i
        i += 1
    return -1


def _split_alternatives(body: str) -> list[str]:
    parts: list[str] = []
    depth = 0
    current: list[str] = []
    i = 0
    while i < len(body):
        c = body[i]
        if c == "\\" and i + 1 < len(body):
            current.append(body[i:i + 2])
            i += 2
            continue
        if c == "{":
            depth += 1
        elif c == "}":
            depth -= 1
        elif c == "," and depth == 0:
            parts.append("".join(current))
            current = []
            i += 1
            continue
        current.append(c)
        i += 1
    parts.append("".join(current))
    return parts


def _translate(pat: str) -> str:
    """Translate a glob fragment (no anchoring) into a regex fragment."""
    out: list[str] = []
    i, n = 0, len(pat)
    while i < n:
        c = pat[i]
        if c == "\\" and i + 1 < n:
            out.append(re.escape(pat[i + 1]))
            i += 2
        elif c == "*":
            if pat.startswith("**", i):
                j = i + 2
                at_segment_start = i == 0 or pat[i - 1] == "/"
                if at_segment_start and j < n and pat[j] == "/":
                    out.append("(?:.*/)?")
                    i = j + 1
                elif at_segment_start and j == n:
                    out.append(".*")
                    i = j
                else:
                    out.append("[^/]*")
                    i = j
            else:
                out.append("[^/]*")
                i += 1
        elif c == "?":
            out.append("[^/]")
            i += 1
        elif c == "[":
            j = i + 1
            if j < n and pat[j] in "!^":
                j += 1
            if j < n and pat[j] == "]":
                j += 1
            while j < n and pat[j] != "]":
                j += 1
            if j >= n:
                out.append(re.escape(c))
                i += 1
                continue
            body = pat[i + 1:j]
            negate = body[:1] in ("!", "^")
            if negate:
                body = body[1:]
            body = body.replace("\\", "\\\\").replace("[", "\\[")
            out.append(f"[^/{body}]" if negate else f"[{body}]")
            i = j + 1
        elif c == "{":
            close = _find_closing_brace(pat, i)
            if close < 0:
                out.append(re.escape(c))
                i += 1
                continue
            alternatives = _split_alternatives(pat[i + 1:close])
            out.append("(?:" + "|".join(_translate(a) for a in alternatives) + ")")
            i = close + 1
        else:
            out.append(re.escape(c))
            i += 1
    return "".join(out)


@dataclass(frozen=True)
class _Glob:
    regex: re.Pattern[str]
    negated: bool
    dir_only: bool


def compile_glob(pattern: str) -> _Glob:
    """Compile one pattern into a matcher for base-relative ``/`` paths."""
    negated = pattern.startswith("!")
    if negated:
        pattern = pattern[1:]
    elif pattern.startswith("\\!"):
        pattern = pattern[1:]

    dir_only = pattern.endswith("/") and not pattern.endswith("\\/")
    if dir_only:
        pattern = pattern.rstrip("/")

    anchored = "/" in pattern
    pattern = pattern.lstrip("/")
    prefix = "^" if anchored else "^(?:.*/)?"
    regex = re.compile(prefix + _translate(pattern) + "$", re.DOTALL)
    return _Glob(regex=regex, negated=negated, dir_only=dir_only)


class GlobMatcher:
    """A set of patterns evaluated gitignore-style (last match wins)."""

    def __init__(self, patterns: Iterable[str]) -> None:
        self._globs = [compile_glob(p) for p in patterns]
        self.has_whitelist = any(not g.negated for g in self._globs)

    def match(self, rel: str, is_dir: bool) -> bool | None:
        """True if selected, False if excluded, None if no pattern applies."""
        for g in reversed(self._globs):
            if g.dir_only and not is_dir:
                continue
            if g.regex.match(rel):
                return not g.negated
        return None


def _relative_to_base(pattern: str, base: Path) -> str:
    """Strip *base* from an absolute pattern that points inside it."""
    negated = pattern.startswith("!")
    body = pattern[1:] if negated else pattern
    prefix = str(base).rstrip(os.sep) + os.sep
    if body.startswith(prefix):
        body = body[len(prefix):]
    return ("!" if negated else "") + body


def expand(
    pattern: str | Iterable[str],
    base: Path,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> list[Path]:
    """Return every path under *base* selected by *pattern*.

    At most *max_depth* directory levels below *base* are visited and
    symlinks are never followed. The base itself is never returned.
    """
    base = Path(base)
    patterns = [pattern] if isinstance(pattern, str) else list(pattern)
    matcher = GlobMatcher(_relative_to_base(p, base) for p in patterns)
    results: list[Path] = []

    def walk(directory: str, rel_dir: str, depth: int) -> None:
        if depth > max_depth:
            return
        try:
            entries = sorted(os.scandir(directory), key=lambda e: e.name)
        except OSError as exc:
            log.warning("Skipping unreadable directory %s: %s", directory, exc)
            return
        for entry in entries:
            rel = f"{rel_dir}/{entry.name}" if rel_dir else entry.name
            is_dir = entry.is_dir(follow_symlinks=False)
            verdict = matcher.match(rel, is_dir)
            if verdict is False:
                continue
            if verdict or not matcher.has_whitelist:
                results.append(Path(entry.path))
            if is_dir:
                walk(entry.path, rel, depth + 1)

    if base.is_dir():
        walk(str(base), "", 1)
    log.debug("Glob %s under %s matched %d path(s)", patterns, base, len(results))
    return results

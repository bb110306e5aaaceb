"""Resolve the graveyard location and build operation values.

The engine never reads the environment itself: everything it needs is
collected here once, into one of the frozen operation dataclasses below,
and passed down.

An optional YAML file (``$GRAVERIP_CONFIG``, else
``$XDG_CONFIG_HOME/graverip/config.yaml``, else
``~/.config/graverip/config.yaml``) can set defaults::

    graveyard: ~/.local/share/graveyard
    max_depth: 10
    inspect:
      lines: 6
      files: 6
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Union

import yaml

from graverip.preview import FILES_TO_INSPECT, LINES_TO_INSPECT
from graverip.record import RECORD_NAME
from graverip.selector import DEFAULT_MAX_DEPTH

# Default graveyard location when nothing else is specified (suffixed with -$USER)
GRAVEYARD = "/tmp/graveyard"

# Default config values
DEFAULTS: dict[str, Any] = {
    "graveyard": None,
    "max_depth": DEFAULT_MAX_DEPTH,
    "inspect": {
        "lines": LINES_TO_INSPECT,
        "files": FILES_TO_INSPECT,
    },
}


class ConfigError(Exception):
    """Raised when config is invalid."""


def _deep_merge(base: dict, override: dict) -> dict:
    """Merge override into base recursively. Override wins on conflicts."""
    result = base.copy()
    for key, val in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(val, dict):
            result[key] = _deep_merge(result[key], val)
        else:
            result[key] = val
    return result


def _validate(config: dict) -> None:
    """Validate field types in config."""
    graveyard = config.get("graveyard")
    if graveyard is not None and not isinstance(graveyard, str):
        raise ConfigError("'graveyard' must be a path string")

    max_depth = config.get("max_depth")
    if not isinstance(max_depth, int) or isinstance(max_depth, bool) or max_depth < 0:
        raise ConfigError(f"'max_depth' must be a non-negative integer, got {max_depth!r}")

    inspect = config.get("inspect")
    if not isinstance(inspect, dict):
        raise ConfigError("'inspect' must be a mapping")
    for key in ("lines", "files"):
        val = inspect.get(key)
        if not isinstance(val, int) or isinstance(val, bool) or val < 0:
            raise ConfigError(f"'inspect.{key}' must be a non-negative integer, got {val!r}")


def config_path(env: Mapping[str, str] | None = None) -> Path:
    """Return where the YAML config file is looked up."""
    env = os.environ if env is None else env
    if env.get("GRAVERIP_CONFIG"):
        return Path(env["GRAVERIP_CONFIG"]).expanduser()
    if env.get("XDG_CONFIG_HOME"):
        return Path(env["XDG_CONFIG_HOME"]) / "graverip" / "config.yaml"
    return Path("~/.config/graverip/config.yaml").expanduser()


def load_config(path: Path | None = None, env: Mapping[str, str] | None = None) -> dict:
    """Load the YAML config merged over DEFAULTS.

    A missing file yields the defaults, so callers always get a full dict.
    """
    path = Path(path) if path else config_path(env)
    raw: Any = {}
    if path.exists():
        try:
            with open(path) as f:
                raw = yaml.safe_load(f)
        except yaml.YAMLError as exc:
            raise ConfigError(f"Config at {path} is invalid YAML: {exc}") from exc
        if raw is None:
            raw = {}

    if not isinstance(raw, dict):
        raise ConfigError(f"Config must be a YAML mapping, got {type(raw).__name__}")

    config = _deep_merge(DEFAULTS, raw)
    _validate(config)
    return config


def resolve_graveyard(
    override: Path | str | None = None,
    config: dict | None = None,
    env: Mapping[str, str] | None = None,
) -> Path:
    """Pick the graveyard root.

    Order: explicit override, ``$GRAVEYARD``, the config file's
    ``graveyard`` key, ``$XDG_DATA_HOME/graveyard``, ``/tmp/graveyard-$USER``.
    """
    env = os.environ if env is None else env
    config = config or {}
    if override:
        chosen = str(override)
    elif env.get("GRAVEYARD"):
        chosen = env["GRAVEYARD"]
    elif config.get("graveyard"):
        chosen = config["graveyard"]
    elif env.get("XDG_DATA_HOME"):
        chosen = os.path.join(env["XDG_DATA_HOME"], "graveyard")
    else:
        chosen = f"{GRAVEYARD}-{env.get('USER') or 'unknown'}"
    return Path(os.path.abspath(os.path.expanduser(chosen)))


# ---------------------------------------------------------------------------
# Operation values
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class BuryOpts:
    graveyard: Path
    cwd: Path
    targets: tuple[str, ...]
    inspect: bool = False
    verbose: bool = False
    inspect_lines: int = LINES_TO_INSPECT
    inspect_files: int = FILES_TO_INSPECT

    @property
    def record(self) -> Path:
        return self.graveyard / RECORD_NAME


@dataclass(frozen=True)
class UnburyOpts:
    graveyard: Path
    cwd: Path
    targets: tuple[str, ...] = ()
    local: bool = False
    seance: bool = False
    max_depth: int = DEFAULT_MAX_DEPTH
    full_path: bool = False
    verbose: bool = False

    @property
    def record(self) -> Path:
        return self.graveyard / RECORD_NAME


@dataclass(frozen=True)
class SeanceOpts:
    graveyard: Path
    cwd: Path
    show_all: bool = False
    full_path: bool = False
    plain: bool = False

    @property
    def record(self) -> Path:
        return self.graveyard / RECORD_NAME


@dataclass(frozen=True)
class DecomposeOpts:
    graveyard: Path
    verbose: bool = False

    @property
    def record(self) -> Path:
        return self.graveyard / RECORD_NAME


Operation = Union[BuryOpts, UnburyOpts, SeanceOpts, DecomposeOpts]

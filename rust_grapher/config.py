"""User configuration: display defaults loaded from ``config.toml``.

Only the command surface reads these values; the graph builders receive
explicit option objects.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Dict

import toml

from .models import OutputFormat, Theme

logger = logging.getLogger(__name__)

BASE_DIR = Path(os.environ.get("RUST_GRAPHER_HOME", str(Path.home() / ".rust-grapher"))).expanduser()
CONFIG_FILE = BASE_DIR / "config.toml"

DEFAULT_OUTPUT: Dict[str, str] = {
    "format": OutputFormat.MERMAID.value,
    "direction": "LR",
    "theme": Theme.DEFAULT.value,
}

_ALLOWED: Dict[str, set] = {
    "format": {f.value for f in OutputFormat},
    "direction": {"LR", "RL", "TB", "TD", "BT"},
    "theme": {t.value for t in Theme},
}


def load_config(path: Path = CONFIG_FILE) -> Dict[str, Any]:
    """Load the whole TOML config; a missing or broken file yields ``{}``."""
    if not path.exists():
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            return toml.load(f)
    except (OSError, toml.TomlDecodeError) as exc:
        logger.warning("Ignoring unreadable config %s: %s", path, exc)
        return {}


def load_output_defaults(path: Path = CONFIG_FILE) -> Dict[str, str]:
    """``[output]`` settings merged over the built-in defaults."""
    merged = dict(DEFAULT_OUTPUT)
    section = load_config(path).get("output") or {}
    if not isinstance(section, dict):
        logger.warning("Ignoring [output] in %s: not a table", path)
        return merged

    for key, allowed in _ALLOWED.items():
        value = section.get(key)
        if value is None:
            continue
        value = str(value).upper() if key == "direction" else str(value).lower()
        if value in allowed:
            merged[key] = value
        else:
            logger.warning("Ignoring output.%s = %r in %s", key, value, path)
    return merged


_output = load_output_defaults()

DEFAULT_FORMAT = _output["format"]
DEFAULT_DIRECTION = _output["direction"]
DEFAULT_THEME = _output["theme"]

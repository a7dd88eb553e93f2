"""Configuration resolution: arguments -> env -> config file -> defaults."""

from __future__ import annotations

import logging
import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

DEFAULT_INDENT = 2
DEFAULT_ABSENT_MARKER = "~"
DEFAULT_DATETIME_FORMAT = "%d-%m-%y %H:%M:%S"
DEFAULT_MAX_DEPTH = 32
CONFIG_DIR = Path(os.getenv("XDG_CONFIG_HOME", Path.home() / ".config")) / "record-descriptor"
CONFIG_FILE = CONFIG_DIR / "config.toml"


@dataclass(frozen=True)
class RenderConfig:
    """Resolved rendering settings."""

    indent: int = DEFAULT_INDENT
    absent_marker: str = DEFAULT_ABSENT_MARKER
    datetime_format: str = DEFAULT_DATETIME_FORMAT
    max_depth: int = DEFAULT_MAX_DEPTH

    @property
    def indent_unit(self) -> str:
        return " " * self.indent


DEFAULT_CONFIG = RenderConfig()


def _load_toml(path: Path) -> dict[str, Any]:
    """Load TOML config file, return empty dict if missing."""
    if not path.exists():
        return {}
    try:
        if sys.version_info >= (3, 11):
            import tomllib
        else:
            import tomli as tomllib  # type: ignore[no-redef]
        with open(path, "rb") as f:
            return tomllib.load(f)
    except Exception:
        logger.warning("Failed to parse config file: %s", path)
        return {}


def _resolve(arg_value: Any, env_var: str, toml_value: Any, default: Any) -> Any:
    """Resolve a config value using the precedence chain."""
    if arg_value is not None:
        return arg_value
    env = os.getenv(env_var)
    if env:
        return env
    if toml_value is not None:
        return toml_value
    return default


def _as_int(value: Any, setting: str, default: int) -> int:
    """Parse an integer setting, falling back to ``default`` when it is not one."""
    try:
        return int(value)
    except (TypeError, ValueError):
        logger.warning("Invalid value for %s: %r, using %d", setting, value, default)
        return default


def resolve_config(
    *,
    indent: int | None = None,
    absent_marker: str | None = None,
    datetime_format: str | None = None,
    max_depth: int | None = None,
    config_file: Path | None = None,
) -> RenderConfig:
    """Resolve rendering settings from all sources.

    Resolution order: arguments -> env vars -> config file -> defaults.
    Settings in the file live under a ``[render]`` table. A setting that
    should be an integer but is not logs a warning and uses its default.
    """
    render_data = _load_toml(config_file or CONFIG_FILE).get("render", {})

    resolved_indent = _resolve(indent, "DESCRIPTOR_INDENT", render_data.get("indent"), DEFAULT_INDENT)
    resolved_marker = _resolve(
        absent_marker,
        "DESCRIPTOR_ABSENT_MARKER",
        render_data.get("absent_marker"),
        DEFAULT_ABSENT_MARKER,
    )
    resolved_format = _resolve(
        datetime_format,
        "DESCRIPTOR_DATETIME_FORMAT",
        render_data.get("datetime_format"),
        DEFAULT_DATETIME_FORMAT,
    )
    resolved_depth = _resolve(max_depth, "DESCRIPTOR_MAX_DEPTH", render_data.get("max_depth"), DEFAULT_MAX_DEPTH)

    return RenderConfig(
        indent=_as_int(resolved_indent, "indent", DEFAULT_INDENT),
        absent_marker=str(resolved_marker),
        datetime_format=str(resolved_format),
        max_depth=_as_int(resolved_depth, "max_depth", DEFAULT_MAX_DEPTH),
    )

"""Settings for the visualization collaborators."""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Mapping, MutableMapping

import yaml
from dotenv import find_dotenv, load_dotenv

__all__ = ["ConfigError", "VisualizationSettings", "load_settings"]

ENV_PREFIX = "DUNGEONMAP_"


class ConfigError(RuntimeError):
    """Raised when settings contain invalid values."""


@dataclass(frozen=True)
class VisualizationSettings:
    """Where debug artifacts go and how Graphviz is driven."""

    debug_dir: Path = Path("data") / "dungeon_debug"
    layout_engines: tuple[str, ...] = ("sfdp", "neato", "dot")
    graphviz_timeout: float = 10.0
    image_size: int = 1280
    minimap_size: int = 128
    dpi: int = 300
    transparent_minimap: bool = True


def load_settings(
    path: Path | None = None,
    *,
    environ: Mapping[str, str] | None = None,
) -> VisualizationSettings:
    """Build settings from an optional YAML file and the environment.

    Environment variables prefixed with ``DUNGEONMAP_`` override file values.
    When ``environ`` is omitted, ``.env`` is loaded into ``os.environ`` first.
    """

    if environ is None:
        load_dotenv(find_dotenv(usecwd=True))
        environ = os.environ

    values: MutableMapping[str, object] = {}
    if path is not None:
        values.update(_read_yaml(path))

    overrides = {
        "debug_dir": environ.get(f"{ENV_PREFIX}DEBUG_DIR"),
        "layout_engines": environ.get(f"{ENV_PREFIX}LAYOUT_ENGINES"),
        "graphviz_timeout": environ.get(f"{ENV_PREFIX}GRAPHVIZ_TIMEOUT"),
        "image_size": environ.get(f"{ENV_PREFIX}IMAGE_SIZE"),
        "minimap_size": environ.get(f"{ENV_PREFIX}MINIMAP_SIZE"),
    }
    for key, value in overrides.items():
        if value is not None and value.strip():
            values[key] = value

    return _build(values)


def _read_yaml(path: Path) -> Mapping[str, object]:
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ConfigError(f"Unable to read settings file {path}") from exc
    try:
        raw = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse settings file {path}") from exc
    if raw is None:
        return {}
    if not isinstance(raw, Mapping):
        raise ConfigError(f"Settings file {path} must contain a mapping")
    return raw


_KNOWN_KEYS = frozenset(
    {
        "debug_dir",
        "layout_engines",
        "graphviz_timeout",
        "image_size",
        "minimap_size",
        "dpi",
        "transparent_minimap",
    }
)


def _build(values: Mapping[str, object]) -> VisualizationSettings:
    unknown = sorted(str(key) for key in values if key not in _KNOWN_KEYS)
    if unknown:
        raise ConfigError(f"Unknown setting(s): {', '.join(unknown)}")
    changes: dict[str, object] = {}
    if "debug_dir" in values:
        changes["debug_dir"] = Path(str(values["debug_dir"]))
    if "layout_engines" in values:
        changes["layout_engines"] = _parse_engines(values["layout_engines"])
    if "graphviz_timeout" in values:
        timeout = _parse_number("graphviz_timeout", values["graphviz_timeout"], float)
        if timeout <= 0:
            raise ConfigError("graphviz_timeout must be positive")
        changes["graphviz_timeout"] = timeout
    for key in ("image_size", "minimap_size", "dpi"):
        if key in values:
            number = _parse_number(key, values[key], int)
            if number <= 0:
                raise ConfigError(f"{key} must be positive")
            changes[key] = number
    if "transparent_minimap" in values:
        flag = values["transparent_minimap"]
        if not isinstance(flag, bool):
            raise ConfigError("transparent_minimap must be a boolean")
        changes["transparent_minimap"] = flag
    return replace(VisualizationSettings(), **changes)


def _parse_engines(raw: object) -> tuple[str, ...]:
    if isinstance(raw, str):
        engines = [part.strip() for part in raw.split(",")]
    elif isinstance(raw, (list, tuple)):
        engines = [str(part).strip() for part in raw]
    else:
        raise ConfigError("layout_engines must be a list or a comma separated string")
    cleaned = tuple(engine for engine in engines if engine)
    if not cleaned:
        raise ConfigError("layout_engines must name at least one engine")
    return cleaned


def _parse_number(name: str, raw: object, kind: type) -> float | int:
    if isinstance(raw, bool):
        raise ConfigError(f"{name} must be a number")
    try:
        return kind(raw)
    except (TypeError, ValueError):
        raise ConfigError(f"{name} must be a number, got {raw!r}") from None

"""Load dungeon layouts from structured files."""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Sequence

import yaml

from .graph import DungeonGraph, UnknownRoomError
from .rooms import Room, SchemaError

__all__ = [
    "DungeonLoadError",
    "LayoutDocument",
    "SUPPORTED_EXTENSIONS",
    "find_layout",
    "graph_from_mapping",
    "load_graph",
    "load_layout",
]

SUPPORTED_EXTENSIONS = (".yaml", ".yml", ".json")


class DungeonLoadError(RuntimeError):
    """Raised when a layout could not be loaded from disk."""

    def __init__(self, message: str, *, path: Path | None = None) -> None:
        if path is not None:
            message = f"{message} (source: {path})"
        super().__init__(message)
        self.path = path


@dataclass(frozen=True)
class LayoutDocument:
    """A loaded layout file and the graph built from it."""

    name: str
    path: Path | None
    graph: DungeonGraph


def load_layout(path: Path) -> LayoutDocument:
    raw = _load_structured(path)
    if not isinstance(raw, Mapping):
        raise DungeonLoadError("Layout must be a mapping with 'rooms' and 'connections'", path=path)
    try:
        graph = graph_from_mapping(raw)
    except (SchemaError, UnknownRoomError) as exc:
        raise DungeonLoadError(str(exc), path=path) from exc
    name = str(raw.get("name") or path.stem)
    return LayoutDocument(name=name, path=path, graph=graph)


def load_graph(path: Path) -> DungeonGraph:
    return load_layout(path).graph


def find_layout(directory: Path, name: str) -> Path | None:
    """Return the layout file called ``name`` inside ``directory``, if any."""

    if not name or Path(name).name != name:
        return None
    for suffix in SUPPORTED_EXTENSIONS:
        candidate = directory / f"{name}{suffix}"
        if candidate.is_file():
            return candidate
    return None


def graph_from_mapping(data: Mapping[str, object]) -> DungeonGraph:
    """Build a strict graph from ``rooms`` and ``connections`` entries.

    Connections may be two-element sequences or ``{from, to}`` mappings.
    Connections naming unknown rooms raise :class:`UnknownRoomError`.
    """

    graph = DungeonGraph(strict=True)
    raw_rooms = data.get("rooms") or []
    if not isinstance(raw_rooms, Sequence) or isinstance(raw_rooms, (str, bytes)):
        raise SchemaError("rooms must be a sequence")
    for entry in raw_rooms:
        room = Room.from_mapping(entry)  # type: ignore[arg-type]
        if not graph.add_room(room):
            raise SchemaError(f"Duplicate room '{room.id}'")

    raw_connections = data.get("connections") or []
    if not isinstance(raw_connections, Sequence) or isinstance(raw_connections, (str, bytes)):
        raise SchemaError("connections must be a sequence")
    for entry in raw_connections:
        room_a, room_b = _parse_connection(entry)
        graph.add_connection(room_a, room_b)
    return graph


def _parse_connection(entry: object) -> tuple[str, str]:
    if isinstance(entry, Mapping):
        first = entry.get("from")
        second = entry.get("to")
    elif isinstance(entry, Sequence) and not isinstance(entry, (str, bytes)) and len(entry) == 2:
        first, second = entry[0], entry[1]
    else:
        raise SchemaError("connections entries must be pairs or {from, to} mappings")
    if first is None or second is None:
        raise SchemaError("connection is missing an endpoint")
    return str(first), str(second)


def _load_structured(file_path: Path) -> object:
    try:
        text = file_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise DungeonLoadError("Unable to read layout file", path=file_path) from exc
    suffix = file_path.suffix.lower()
    try:
        if suffix == ".json":
            return json.loads(text)
        if suffix in {".yaml", ".yml"}:
            return yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        raise DungeonLoadError("Failed to parse layout file", path=file_path) from exc
    raise DungeonLoadError(
        f"Unsupported file extension '{file_path.suffix}' for layout file",
        path=file_path,
    )

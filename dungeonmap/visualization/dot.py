"""Render a dungeon graph as Graphviz DOT text."""

from __future__ import annotations

from typing import Mapping

from dungeonmap.graph import DungeonGraph
from dungeonmap.rooms import RoomType

__all__ = ["ROOM_TYPE_COLOURS", "quote", "to_dot"]

ROOM_TYPE_COLOURS: Mapping[RoomType, str] = {
    RoomType.START: "#7fc97f",
    RoomType.COMBAT: "#f0a35e",
    RoomType.ELITE: "#e0584f",
    RoomType.TREASURE: "#f4d35e",
    RoomType.SHOP: "#6fa8dc",
    RoomType.EVENT: "#b39ddb",
    RoomType.REST: "#a8d5ba",
    RoomType.BOSS: "#8e1b1b",
}

_DEFAULT_COLOUR = "#cccccc"


def quote(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n")
    return f'"{escaped}"'


def to_dot(graph: DungeonGraph, *, name: str = "dungeon") -> str:
    lines = [f"graph {quote(name)} {{"]
    lines.append('  node [style=filled, fontname="Helvetica", fontsize=10];')
    lines.append("  edge [color=\"#555555\"];")

    for room in graph.rooms.values():
        room_type = room.type if isinstance(room.type, RoomType) else None
        display = room_type.display_name if room_type else str(room.type)
        colour = ROOM_TYPE_COLOURS.get(room_type, _DEFAULT_COLOUR) if room_type else _DEFAULT_COLOUR
        shape = "doublecircle" if room_type in (RoomType.START, RoomType.BOSS) else "circle"
        font_colour = "white" if room_type is RoomType.BOSS else "black"
        label = quote(f"{room.id}\n{display}")
        lines.append(
            f"  {quote(room.id)} [label={label}, shape={shape}, "
            f'fillcolor="{colour}", fontcolor={font_colour}];'
        )

    for room_a, room_b in graph.edges():
        lines.append(f"  {quote(room_a)} -- {quote(room_b)};")

    lines.append("}")
    return "\n".join(lines) + "\n"

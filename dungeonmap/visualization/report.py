"""Plain text reports describing a generated dungeon graph."""

from __future__ import annotations

from collections import Counter
from pathlib import Path
from typing import Sequence

from dungeonmap.graph import UNREACHABLE, DungeonGraph

__all__ = ["HUB_THRESHOLD", "build_report", "room_marker"]

# Rooms with more connections than this are flagged as hubs.
HUB_THRESHOLD = 3


def _display_name(room_type: object) -> str:
    return getattr(room_type, "display_name", str(room_type))


def room_marker(degree: int) -> str:
    if degree > HUB_THRESHOLD:
        return " [hub]"
    if degree == 1:
        return " [dead end]"
    return ""


def build_report(
    graph: DungeonGraph,
    *,
    validation_errors: Sequence[str] = (),
    is_success: bool | None = None,
    timestamp: str = "",
    preview_path: Path | None = None,
) -> str:
    if is_success is None:
        is_success = not validation_errors
    title = "Dungeon generation report" if is_success else "Dungeon validation failure report"
    statistics = graph.statistics()

    lines = [title]
    if timestamp:
        lines.append(f"Generated at: {timestamp}")
    lines.append("=" * 50)
    lines.append("")

    if not is_success and validation_errors:
        lines.append("Validation errors:")
        lines.extend(f"  - {error}" for error in validation_errors)
        lines.append("")

    lines.append("Statistics:")
    lines.append(f"  - Rooms: {statistics.room_count}")
    lines.append(f"  - Connections: {statistics.connection_count}")
    lines.append(
        f"  - Average connections per room: {statistics.average_connections_per_room:.2f}"
    )
    type_counts = Counter(room.type for room in graph.rooms.values())
    lines.append("  - Rooms by type:")
    for room_type in sorted(type_counts, key=_display_name):
        lines.append(f"    - {_display_name(room_type)}: {type_counts[room_type]}")
    lines.append("")

    lines.append("Connections per room:")
    for room_id, room in graph.rooms.items():
        degree = graph.degree(room_id)
        lines.append(
            f"  - {room_id} ({_display_name(room.type)}): {degree} connection(s){room_marker(degree)}"
        )
    lines.append("")

    lines.append("Connectivity:")
    lines.append(f"  - Connected: {'yes' if statistics.is_connected else 'no'}")
    if statistics.is_connected:
        start = graph.start_room()
        boss = graph.boss_room()
        if start is not None and boss is not None:
            distance = graph.shortest_distance(start.id, boss.id)
            if distance == UNREACHABLE:
                lines.append("  - Start to boss: unreachable")
            else:
                lines.append(f"  - Start to boss: {distance} step(s)")
    lines.append("")

    lines.append("Preview:")
    if preview_path is not None and preview_path.exists():
        lines.append(f"  - Image: {preview_path.name}")
    else:
        lines.append("  - Image: not generated (Graphviz unavailable or failed)")
    lines.append("")

    lines.append("Rendering the DOT file manually:")
    lines.append("  - PNG: dot -Tpng <file>.dot -o <output>.png")
    lines.append("  - SVG: dot -Tsvg <file>.dot -o <output>.svg")
    lines.append("  - PDF: dot -Tpdf <file>.dot -o <output>.pdf")
    return "\n".join(lines) + "\n"

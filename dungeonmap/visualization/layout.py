"""Layout providers producing room coordinates for rendering.

Providers are tried in order by :func:`resolve_layout`. The Graphviz backed
provider depends on the external tool and may decline; the circular provider
is purely geometric and always succeeds, so it closes every chain.
"""

from __future__ import annotations

import logging
import math
import shlex
from dataclasses import dataclass, field
from typing import Dict, Optional, Protocol, Sequence

from dungeonmap.graph import DungeonGraph

from .dot import to_dot
from .graphviz import DEFAULT_TIMEOUT, GraphvizError, run_graphviz

__all__ = [
    "CircularLayoutProvider",
    "GraphvizLayoutProvider",
    "LayoutInfo",
    "LayoutProvider",
    "parse_plain_layout",
    "resolve_layout",
]

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class LayoutInfo:
    """Room centres in layout units with the origin at the bottom left."""

    width: float
    height: float
    positions: Dict[str, tuple[float, float]] = field(default_factory=dict)
    source: str = "unknown"


class LayoutProvider(Protocol):
    name: str

    def compute(self, graph: DungeonGraph) -> Optional[LayoutInfo]:
        ...


def parse_plain_layout(text: str, *, source: str = "graphviz") -> Optional[LayoutInfo]:
    """Parse Graphviz ``-Tplain`` output.

    Width, height and node positions are all in inches, as Graphviz reports
    them. Returns ``None`` when the text has no ``graph`` header or no nodes.
    """

    width: float | None = None
    height: float | None = None
    positions: Dict[str, tuple[float, float]] = {}
    for line in text.splitlines():
        line = line.strip()
        if not line:
            continue
        try:
            tokens = shlex.split(line)
        except ValueError:
            continue
        if not tokens:
            continue
        record = tokens[0]
        try:
            if record == "graph" and len(tokens) >= 4:
                width = float(tokens[2])
                height = float(tokens[3])
            elif record == "node" and len(tokens) >= 4:
                positions[tokens[1]] = (float(tokens[2]), float(tokens[3]))
            elif record == "stop":
                break
        except ValueError:
            continue
    if width is None or height is None or not positions:
        return None
    return LayoutInfo(width=width, height=height, positions=positions, source=source)


class GraphvizLayoutProvider:
    """Ask Graphviz engines for coordinates, one engine after another."""

    name = "graphviz"

    def __init__(
        self,
        engines: Sequence[str] = ("sfdp", "neato", "dot"),
        *,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self.engines = tuple(engines)
        self.timeout = timeout

    def compute(self, graph: DungeonGraph) -> Optional[LayoutInfo]:
        if not len(graph):
            return None
        dot_text = to_dot(graph)
        for engine in self.engines:
            try:
                output = run_graphviz(engine, dot_text, "plain", timeout=self.timeout)
            except GraphvizError as exc:
                log.debug("Layout engine %s failed: %s", engine, exc)
                continue
            layout = parse_plain_layout(output.decode("utf-8", errors="replace"), source=engine)
            if layout is not None:
                log.debug("Layout computed with %s", engine)
                return layout
        log.debug("All Graphviz layout engines failed")
        return None


class CircularLayoutProvider:
    """Place rooms evenly around a circle in insertion order."""

    name = "circular"

    def __init__(self, radius: float = 1.0) -> None:
        if radius <= 0:
            raise ValueError("radius must be positive")
        self.radius = radius

    def compute(self, graph: DungeonGraph) -> LayoutInfo:
        room_ids = list(graph.rooms)
        size = self.radius * 2
        if len(room_ids) == 1:
            return LayoutInfo(
                width=size,
                height=size,
                positions={room_ids[0]: (self.radius, self.radius)},
                source=self.name,
            )
        positions: Dict[str, tuple[float, float]] = {}
        count = len(room_ids)
        for index, room_id in enumerate(room_ids):
            # Start at twelve o'clock and walk clockwise.
            angle = math.pi / 2 - 2 * math.pi * index / count
            x = self.radius + self.radius * math.cos(angle)
            y = self.radius + self.radius * math.sin(angle)
            positions[room_id] = (x, y)
        return LayoutInfo(width=size, height=size, positions=positions, source=self.name)


def resolve_layout(
    graph: DungeonGraph,
    providers: Sequence[LayoutProvider] = (),
) -> LayoutInfo:
    """Return the first layout a provider produces, else a circular one."""

    for provider in providers:
        layout = provider.compute(graph)
        if layout is not None:
            return layout
        log.debug("Layout provider %s declined", provider.name)
    return CircularLayoutProvider().compute(graph)

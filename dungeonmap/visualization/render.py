"""Raster rendering of dungeon graphs with Pillow."""

from __future__ import annotations

from dataclasses import dataclass, field
from io import BytesIO
from typing import Mapping

from PIL import Image, ImageDraw

from dungeonmap.config import VisualizationSettings
from dungeonmap.graph import DungeonGraph
from dungeonmap.rooms import RoomType

from .dot import to_dot
from .graphviz import run_graphviz
from .layout import LayoutInfo

__all__ = ["MiniMapConfig", "fit_to_square", "render_full_preview", "render_minimap"]

Colour = tuple[int, int, int, int]

DEFAULT_ROOM_COLOURS: Mapping[RoomType, Colour] = {
    RoomType.START: (92, 201, 112, 255),
    RoomType.COMBAT: (226, 150, 78, 255),
    RoomType.ELITE: (214, 72, 64, 255),
    RoomType.TREASURE: (244, 211, 94, 255),
    RoomType.SHOP: (96, 156, 220, 255),
    RoomType.EVENT: (170, 140, 214, 255),
    RoomType.REST: (150, 210, 180, 255),
    RoomType.BOSS: (150, 24, 24, 255),
}


@dataclass(frozen=True)
class MiniMapConfig:
    """Configuration controlling how minimaps are rendered."""

    size: int = 128
    margin: int = 10
    room_radius: int = 5
    edge_width: int = 2
    transparent_background: bool = True
    background: Colour = (16, 17, 23, 255)
    edge_colour: Colour = (134, 142, 170, 255)
    room_outline: Colour = (240, 245, 255, 255)
    default_room_colour: Colour = (200, 200, 200, 255)
    room_colours: Mapping[RoomType, Colour] = field(default_factory=lambda: dict(DEFAULT_ROOM_COLOURS))


def render_minimap(
    graph: DungeonGraph,
    layout: LayoutInfo,
    config: MiniMapConfig | None = None,
) -> Image.Image:
    """Draw rooms as dots and connections as lines on a square canvas.

    Layout coordinates are scaled uniformly to fit inside the margin and the
    y axis is flipped so the layout's bottom-left origin ends up bottom-left.
    """

    config = config or MiniMapConfig()
    size = max(16, config.size)
    background = (0, 0, 0, 0) if config.transparent_background else config.background
    image = Image.new("RGBA", (size, size), background)
    draw = ImageDraw.Draw(image)

    placed = {
        room_id: position
        for room_id, position in layout.positions.items()
        if room_id in graph
    }
    if not placed:
        return image

    xs = [position[0] for position in placed.values()]
    ys = [position[1] for position in placed.values()]
    min_x, max_x = min(xs), max(xs)
    min_y, max_y = min(ys), max(ys)
    span = max(max_x - min_x, max_y - min_y)
    # Small canvases shrink the margin and room radius.
    margin = min(config.margin, size // 8)
    radius = max(1, min(config.room_radius, size // 8))
    drawable = max(0, size - 2 * (margin + radius))
    scale = drawable / span if span > 0 else 0.0
    offset_x = (size - (max_x - min_x) * scale) / 2
    offset_y = (size - (max_y - min_y) * scale) / 2

    def to_pixel(room_id: str) -> tuple[float, float]:
        x, y = placed[room_id]
        return (
            offset_x + (x - min_x) * scale,
            size - (offset_y + (y - min_y) * scale),
        )

    # Edges go first so rooms are layered on top.
    for room_a, room_b in graph.edges():
        if room_a not in placed or room_b not in placed:
            continue
        draw.line([to_pixel(room_a), to_pixel(room_b)], fill=config.edge_colour, width=config.edge_width)

    for room_id, room in graph.rooms.items():
        if room_id not in placed:
            continue
        center_x, center_y = to_pixel(room_id)
        fill = config.room_colours.get(room.type, config.default_room_colour)
        draw.ellipse(
            (center_x - radius, center_y - radius, center_x + radius, center_y + radius),
            fill=fill,
            outline=config.room_outline,
            width=1,
        )
    return image


def fit_to_square(
    image: Image.Image,
    size: int = 1280,
    *,
    background: tuple[int, int, int] = (255, 255, 255),
) -> Image.Image:
    """Scale ``image`` to fit a ``size`` square, centred, on a solid background."""

    if size <= 0:
        raise ValueError("size must be positive")
    source = image.convert("RGBA")
    scale = min(size / source.width, size / source.height)
    scaled_width = max(1, int(source.width * scale))
    scaled_height = max(1, int(source.height * scale))
    resized = source.resize((scaled_width, scaled_height), Image.Resampling.LANCZOS)

    canvas = Image.new("RGB", (size, size), background)
    left = (size - scaled_width) // 2
    top = (size - scaled_height) // 2
    canvas.paste(resized, (left, top), resized)
    return canvas


def render_full_preview(graph: DungeonGraph, settings: VisualizationSettings) -> Image.Image:
    """Render the graph through ``dot -Tpng`` and square it to ``image_size``.

    Raises :class:`~dungeonmap.visualization.graphviz.GraphvizError` when the
    tool cannot produce an image.
    """

    inches = settings.image_size / 100
    png_bytes = run_graphviz(
        "dot",
        to_dot(graph),
        "png",
        extra_args=(
            f"-Gdpi={settings.dpi}",
            f"-Gsize={inches:g},{inches:g}!",
            "-Gbgcolor=white",
        ),
        timeout=settings.graphviz_timeout,
    )
    with Image.open(BytesIO(png_bytes)) as rendered:
        rendered.load()
        return fit_to_square(rendered, settings.image_size)

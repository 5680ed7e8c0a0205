"""Presentation helpers layered on top of the dungeon graph."""

from .artifacts import DebugArtifactWriter, VisualizationResult
from .dot import to_dot
from .graphviz import GraphvizError
from .layout import (
    CircularLayoutProvider,
    GraphvizLayoutProvider,
    LayoutInfo,
    LayoutProvider,
    parse_plain_layout,
    resolve_layout,
)
from .preview import PreviewCache, PreviewSnapshot
from .render import MiniMapConfig, fit_to_square, render_minimap
from .report import build_report

__all__ = [
    "CircularLayoutProvider",
    "DebugArtifactWriter",
    "GraphvizError",
    "GraphvizLayoutProvider",
    "LayoutInfo",
    "LayoutProvider",
    "MiniMapConfig",
    "PreviewCache",
    "PreviewSnapshot",
    "VisualizationResult",
    "build_report",
    "fit_to_square",
    "parse_plain_layout",
    "render_minimap",
    "resolve_layout",
    "to_dot",
]

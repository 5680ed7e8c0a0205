"""Write debug artifacts describing a generated dungeon graph."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional, Sequence

from dungeonmap.config import VisualizationSettings
from dungeonmap.graph import DungeonGraph

from .dot import to_dot
from .graphviz import GraphvizError
from .layout import GraphvizLayoutProvider, LayoutProvider, resolve_layout
from .preview import PreviewCache
from .render import MiniMapConfig, render_full_preview, render_minimap
from .report import build_report

__all__ = ["DebugArtifactWriter", "VisualizationResult"]

log = logging.getLogger(__name__)

TIMESTAMP_FORMAT = "%Y-%m-%d_%H-%M-%S"


@dataclass(frozen=True)
class VisualizationResult:
    """Paths of the files written by :class:`DebugArtifactWriter`."""

    success: bool
    message: str
    dot_path: Path | None = None
    report_path: Path | None = None
    image_path: Path | None = None
    minimap_path: Path | None = None


class DebugArtifactWriter:
    """Save DOT, preview images and a text report for a graph.

    Graphviz failures are recovered: the full-size preview is skipped and the
    minimap falls back to a circular layout. Only filesystem errors make the
    result unsuccessful, and even then nothing is raised.
    """

    def __init__(
        self,
        settings: VisualizationSettings | None = None,
        *,
        cache: PreviewCache | None = None,
        layout_providers: Sequence[LayoutProvider] | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.settings = settings or VisualizationSettings()
        self.cache = cache if cache is not None else PreviewCache()
        if layout_providers is None:
            layout_providers = (
                GraphvizLayoutProvider(
                    self.settings.layout_engines,
                    timeout=self.settings.graphviz_timeout,
                ),
            )
        self.layout_providers = tuple(layout_providers)
        self._clock = clock

    def save(
        self,
        graph: DungeonGraph,
        validation_errors: Sequence[str] = (),
        *,
        is_success: bool | None = None,
        prefix: str | None = None,
    ) -> VisualizationResult:
        if is_success is None:
            is_success = not validation_errors
        timestamp = self._clock().strftime(TIMESTAMP_FORMAT)
        stem = f"{prefix or ('success_dungeon' if is_success else 'failed_dungeon')}_{timestamp}"
        debug_dir = self.settings.debug_dir

        try:
            debug_dir.mkdir(parents=True, exist_ok=True)
            dot_path = debug_dir / f"{stem}.dot"
            dot_path.write_text(to_dot(graph), encoding="utf-8")

            image_path = self._write_full_preview(graph, debug_dir / f"{stem}.jpg")
            minimap_path = self._write_minimap(
                graph, debug_dir / f"{stem}_mini_{self.settings.minimap_size}.png"
            )

            report_path = debug_dir / f"{stem}_report.txt"
            report = build_report(
                graph,
                validation_errors=validation_errors,
                is_success=is_success,
                timestamp=timestamp,
                preview_path=image_path,
            )
            report_path.write_text(report, encoding="utf-8")
        except OSError as exc:
            log.error("Failed to save dungeon visualization: %s", exc)
            return VisualizationResult(
                success=False,
                message=f"Failed to save visualization files: {exc}",
            )

        self._log_result(is_success, dot_path, report_path)
        return VisualizationResult(
            success=True,
            message="Visualization files saved",
            dot_path=dot_path,
            report_path=report_path,
            image_path=image_path,
            minimap_path=minimap_path,
        )

    def _write_full_preview(self, graph: DungeonGraph, path: Path) -> Optional[Path]:
        try:
            image = render_full_preview(graph, self.settings)
        except GraphvizError as exc:
            log.info("Full preview unavailable: %s", exc)
            return None
        except OSError as exc:
            log.warning("Graphviz output could not be decoded: %s", exc)
            return None
        image.save(path, format="JPEG", quality=95)
        self.cache.publish(image, kind="full")
        log.info("Preview image (%sx%s): %s", image.width, image.height, path.resolve())
        return path

    def _write_minimap(self, graph: DungeonGraph, path: Path) -> Optional[Path]:
        layout = resolve_layout(graph, self.layout_providers)
        if layout.source == "circular":
            log.info("Graphviz layout unavailable, minimap uses a circular layout")
        config = MiniMapConfig(
            size=self.settings.minimap_size,
            transparent_background=self.settings.transparent_minimap,
        )
        image = render_minimap(graph, layout, config)
        try:
            image.save(path, format="PNG")
        except OSError as exc:
            log.warning("Failed to save minimap: %s", exc)
            return None
        self.cache.publish(image, kind="minimap")
        log.info("Minimap (%sx%s): %s", image.width, image.height, path.resolve())
        return path

    @staticmethod
    def _log_result(is_success: bool, dot_path: Path, report_path: Path) -> None:
        if is_success:
            log.info("Dungeon generated, visualization saved:")
            log.info("  - DOT file: %s", dot_path.resolve())
            log.info("  - Report: %s", report_path.resolve())
        else:
            log.warning("Dungeon generation failed, debug files saved:")
            log.warning("  - DOT file: %s", dot_path.resolve())
            log.warning("  - Failure report: %s", report_path.resolve())

from __future__ import annotations

import math
import subprocess
import threading
from pathlib import Path
from types import SimpleNamespace

import pytest
from PIL import Image

from dungeonmap import DungeonGraph, Room, RoomType
from dungeonmap.visualization import graphviz as graphviz_module
from dungeonmap.visualization import layout as layout_module
from dungeonmap.visualization import (
    CircularLayoutProvider,
    GraphvizError,
    GraphvizLayoutProvider,
    LayoutInfo,
    MiniMapConfig,
    PreviewCache,
    build_report,
    fit_to_square,
    parse_plain_layout,
    render_minimap,
    resolve_layout,
    to_dot,
)
from dungeonmap.visualization.graphviz import find_graphviz_command, run_graphviz
from dungeonmap.visualization.render import DEFAULT_ROOM_COLOURS

PLAIN_OUTPUT = """graph 1 3.5 2
node start 0.5 1 0.75 0.5 "start\\nStart" filled doublecircle black "#7fc97f"
node "great hall" 2.5 1.5 0.75 0.5 "great hall\\nCombat" filled circle black "#f0a35e"
edge start "great hall" 4 0.9 1 1.4 1.1 1.9 1.3 2.2 1.4 solid "#555555"
stop
"""


@pytest.fixture()
def graph() -> DungeonGraph:
    graph = DungeonGraph()
    graph.add_room(Room(id="entrance", type=RoomType.START))
    graph.add_room(Room(id="hall", type=RoomType.COMBAT))
    graph.add_room(Room(id="den", type=RoomType.REST))
    graph.add_room(Room(id="vault", type=RoomType.TREASURE))
    graph.add_room(Room(id="throne", type=RoomType.BOSS))
    graph.add_connection("entrance", "hall")
    graph.add_connection("hall", "den")
    graph.add_connection("hall", "vault")
    graph.add_connection("hall", "throne")
    return graph


def test_dot_lists_rooms_and_each_edge_once(graph: DungeonGraph) -> None:
    text = to_dot(graph, name="Crypt")
    assert text.startswith('graph "Crypt" {')
    assert text.rstrip().endswith("}")
    assert '"entrance" [label="entrance\\nStart", shape=doublecircle' in text
    assert '"hall" [label="hall\\nCombat", shape=circle' in text
    assert text.count(" -- ") == 4
    assert '"entrance" -- "hall";' in text


def test_dot_escapes_identifiers() -> None:
    graph = DungeonGraph()
    graph.add_room(Room(id='say "hi"', type=RoomType.EVENT))
    assert '"say \\"hi\\""' in to_dot(graph)


def test_parse_plain_layout() -> None:
    layout = parse_plain_layout(PLAIN_OUTPUT, source="neato")
    assert layout is not None
    assert layout.width == 3.5
    assert layout.height == 2.0
    assert layout.positions == {"start": (0.5, 1.0), "great hall": (2.5, 1.5)}
    assert layout.source == "neato"


def test_parse_plain_layout_keeps_size_in_node_units() -> None:
    layout = parse_plain_layout("graph 2 1 1\nnode a 0.5 0.5 1 1 a solid circle black white\nstop\n")
    assert layout is not None
    assert (layout.width, layout.height) == (1.0, 1.0)
    assert layout.positions == {"a": (0.5, 0.5)}


@pytest.mark.parametrize("text", ["", "stop\n", "graph 1 2 2\nstop\n", "node a 1 1\n", "garbage here"])
def test_parse_plain_layout_rejects_incomplete_output(text: str) -> None:
    assert parse_plain_layout(text) is None


def test_circular_layout_places_rooms_evenly(graph: DungeonGraph) -> None:
    layout = CircularLayoutProvider(radius=2.0).compute(graph)
    assert layout is not None
    assert layout.source == "circular"
    assert list(layout.positions) == list(graph.rooms)
    assert layout.positions["entrance"] == pytest.approx((2.0, 4.0))
    for x, y in layout.positions.values():
        assert math.hypot(x - 2.0, y - 2.0) == pytest.approx(2.0)


def test_circular_layout_single_room_is_centred() -> None:
    graph = DungeonGraph()
    graph.add_room(Room(id="solo", type=RoomType.START))
    layout = CircularLayoutProvider().compute(graph)
    assert layout is not None
    assert layout.positions == {"solo": (1.0, 1.0)}


def test_circular_layout_requires_positive_radius() -> None:
    with pytest.raises(ValueError):
        CircularLayoutProvider(radius=0)


def test_graphviz_provider_tries_engines_in_order(
    graph: DungeonGraph, monkeypatch: pytest.MonkeyPatch
) -> None:
    calls: list[str] = []

    def fake_run(engine: str, dot_text: str, output_format: str, **kwargs: object) -> bytes:
        calls.append(engine)
        assert output_format == "plain"
        assert kwargs["timeout"] == 3.0
        if engine == "sfdp":
            raise GraphvizError("sfdp missing")
        return PLAIN_OUTPUT.encode("utf-8")

    monkeypatch.setattr(layout_module, "run_graphviz", fake_run)
    provider = GraphvizLayoutProvider(("sfdp", "neato", "dot"), timeout=3.0)
    layout = provider.compute(graph)

    assert calls == ["sfdp", "neato"]
    assert layout is not None
    assert layout.source == "neato"


def test_graphviz_provider_declines_when_all_engines_fail(
    graph: DungeonGraph, monkeypatch: pytest.MonkeyPatch
) -> None:
    def fake_run(engine: str, *args: object, **kwargs: object) -> bytes:
        if engine == "dot":
            return b"not plain output"
        raise GraphvizError("missing")

    monkeypatch.setattr(layout_module, "run_graphviz", fake_run)
    assert GraphvizLayoutProvider().compute(graph) is None
    assert GraphvizLayoutProvider().compute(DungeonGraph()) is None


def test_resolve_layout_falls_back_to_circle(graph: DungeonGraph) -> None:
    declining = SimpleNamespace(name="declining", compute=lambda _graph: None)
    layout = resolve_layout(graph, [declining])
    assert layout.source == "circular"
    assert set(layout.positions) == set(graph.rooms)


def test_resolve_layout_uses_first_available_provider(graph: DungeonGraph) -> None:
    fixed = LayoutInfo(width=1, height=1, positions={"entrance": (0.0, 0.0)}, source="fixed")
    never = SimpleNamespace(name="never", compute=lambda _graph: pytest.fail("should not run"))
    first = SimpleNamespace(name="fixed", compute=lambda _graph: fixed)
    assert resolve_layout(graph, [first, never]) is fixed


def test_run_graphviz_reports_missing_tool(monkeypatch: pytest.MonkeyPatch) -> None:
    def raise_missing(*args: object, **kwargs: object) -> None:
        raise FileNotFoundError("dot")

    monkeypatch.setattr(graphviz_module.subprocess, "run", raise_missing)
    with pytest.raises(GraphvizError, match="not installed"):
        run_graphviz("dot", "graph {}", "plain")


def test_run_graphviz_reports_timeout(monkeypatch: pytest.MonkeyPatch) -> None:
    def raise_timeout(command: list[str], **kwargs: object) -> None:
        raise subprocess.TimeoutExpired(command, kwargs["timeout"])

    monkeypatch.setattr(graphviz_module.subprocess, "run", raise_timeout)
    with pytest.raises(GraphvizError, match="timed out after 0.5s"):
        run_graphviz("neato", "graph {}", "plain", timeout=0.5)


def test_run_graphviz_reports_failed_exit(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(
        graphviz_module.subprocess,
        "run",
        lambda *args, **kwargs: SimpleNamespace(returncode=1, stdout=b"", stderr=b"syntax error"),
    )
    with pytest.raises(GraphvizError, match="status 1: syntax error"):
        run_graphviz("dot", "graph {", "png")


def test_run_graphviz_passes_dot_on_stdin(monkeypatch: pytest.MonkeyPatch) -> None:
    captured: dict[str, object] = {}

    def fake_run(command: list[str], **kwargs: object) -> SimpleNamespace:
        captured["command"] = command
        captured.update(kwargs)
        return SimpleNamespace(returncode=0, stdout=b"graph 1 1 1\n", stderr=b"")

    monkeypatch.setattr(graphviz_module, "find_graphviz_command", lambda name: f"/opt/{name}")
    monkeypatch.setattr(graphviz_module.subprocess, "run", fake_run)
    output = run_graphviz("dot", "graph {}", "png", extra_args=("-Gdpi=300",), timeout=4)

    assert output == b"graph 1 1 1\n"
    assert captured["command"] == ["/opt/dot", "-Tpng", "-Gdpi=300"]
    assert captured["input"] == b"graph {}"
    assert captured["timeout"] == 4
    assert "/usr/local/bin" in captured["env"]["PATH"]  # type: ignore[index]


def test_find_graphviz_command_falls_back_to_name(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(graphviz_module, "COMMON_PATHS", ())
    monkeypatch.setattr(graphviz_module.shutil, "which", lambda name: None)
    assert find_graphviz_command("sfdp") == "sfdp"

    monkeypatch.setattr(graphviz_module.shutil, "which", lambda name: f"/custom/{name}")
    assert find_graphviz_command("sfdp") == "/custom/sfdp"


def test_render_minimap_draws_rooms_and_edges() -> None:
    graph = DungeonGraph()
    graph.add_room(Room(id="a", type=RoomType.START))
    graph.add_room(Room(id="b", type=RoomType.BOSS))
    graph.add_connection("a", "b")
    layout = LayoutInfo(width=10, height=1, positions={"a": (0.0, 0.0), "b": (10.0, 0.0)})
    config = MiniMapConfig(edge_width=3)

    image = render_minimap(graph, layout, config)

    assert image.size == (128, 128)
    assert image.mode == "RGBA"
    assert image.getpixel((0, 0))[3] == 0
    assert image.getpixel((15, 64)) == DEFAULT_ROOM_COLOURS[RoomType.START]
    assert image.getpixel((113, 64)) == DEFAULT_ROOM_COLOURS[RoomType.BOSS]
    assert image.getpixel((64, 64)) == config.edge_colour


def test_render_minimap_keeps_orientation_on_small_canvas() -> None:
    graph = DungeonGraph()
    graph.add_room(Room(id="west", type=RoomType.START))
    graph.add_room(Room(id="east", type=RoomType.BOSS))
    layout = LayoutInfo(width=1, height=1, positions={"west": (0.0, 0.0), "east": (1.0, 0.0)})

    image = render_minimap(graph, layout, MiniMapConfig(size=20))

    assert image.size == (20, 20)
    assert image.getpixel((4, 10)) == DEFAULT_ROOM_COLOURS[RoomType.START]
    assert image.getpixel((16, 10)) == DEFAULT_ROOM_COLOURS[RoomType.BOSS]
    start_columns = [
        x
        for x in range(20)
        for y in range(20)
        if image.getpixel((x, y)) == DEFAULT_ROOM_COLOURS[RoomType.START]
    ]
    assert max(start_columns) < 10


def test_render_minimap_opaque_background_and_empty_layout() -> None:
    config = MiniMapConfig(size=64, transparent_background=False)
    image = render_minimap(DungeonGraph(), LayoutInfo(width=0, height=0), config)
    assert image.size == (64, 64)
    assert image.getpixel((10, 10)) == config.background


def test_fit_to_square_preserves_aspect_ratio() -> None:
    source = Image.new("RGB", (200, 100), (255, 0, 0))
    squared = fit_to_square(source, 100)
    assert squared.size == (100, 100)
    assert squared.mode == "RGB"
    assert squared.getpixel((50, 50)) == (255, 0, 0)
    assert squared.getpixel((50, 5)) == (255, 255, 255)
    with pytest.raises(ValueError):
        fit_to_square(source, 0)


def test_preview_cache_publishes_complete_snapshots() -> None:
    cache = PreviewCache()
    assert cache.current() is None

    first = Image.new("RGBA", (8, 8), (1, 2, 3, 255))
    snapshot = cache.publish(first, kind="minimap")
    first.putpixel((0, 0), (9, 9, 9, 255))
    assert cache.current() is snapshot
    assert snapshot.image.getpixel((0, 0)) == (1, 2, 3, 255)

    seen: list[str] = []

    def reader() -> None:
        for _ in range(200):
            current = cache.current()
            assert current is not None
            seen.append(current.kind)

    thread = threading.Thread(target=reader)
    thread.start()
    for index in range(50):
        cache.publish(Image.new("RGBA", (8, 8)), kind=f"frame-{index}")
    thread.join()

    assert seen
    assert cache.current().kind == "frame-49"  # type: ignore[union-attr]
    cache.clear()
    assert cache.current() is None


def test_report_for_successful_generation(graph: DungeonGraph, tmp_path: Path) -> None:
    preview = tmp_path / "preview.jpg"
    preview.write_bytes(b"jpg")
    report = build_report(graph, timestamp="2024-01-02_03-04-05", preview_path=preview)

    assert report.startswith("Dungeon generation report\n")
    assert "Generated at: 2024-01-02_03-04-05" in report
    assert "  - Rooms: 5" in report
    assert "  - Connections: 4" in report
    assert "  - Average connections per room: 0.80" in report
    assert "    - Boss: 1" in report
    assert report.index("    - Boss: 1") < report.index("    - Combat: 1")
    assert "  - hall (Combat): 4 connection(s) [hub]" in report
    assert "  - den (Rest): 1 connection(s) [dead end]" in report
    assert "  - Connected: yes" in report
    assert "  - Start to boss: 2 step(s)" in report
    assert "  - Image: preview.jpg" in report
    assert "Validation errors" not in report


def test_report_for_failed_generation(tmp_path: Path) -> None:
    graph = DungeonGraph()
    graph.add_room(Room(id="a", type=RoomType.START))
    graph.add_room(Room(id="b", type=RoomType.BOSS))
    report = build_report(
        graph,
        validation_errors=["Boss room is unreachable"],
        preview_path=tmp_path / "missing.jpg",
    )

    assert report.startswith("Dungeon validation failure report\n")
    assert "Validation errors:\n  - Boss room is unreachable" in report
    assert "  - Connected: no" in report
    assert "Start to boss" not in report
    assert "not generated" in report

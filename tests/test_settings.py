from __future__ import annotations

from pathlib import Path

import pytest

from dungeonmap.config import ConfigError, VisualizationSettings, load_settings


def test_defaults_without_file_or_environment() -> None:
    settings = load_settings(environ={})
    assert settings == VisualizationSettings()
    assert settings.layout_engines == ("sfdp", "neato", "dot")
    assert settings.image_size == 1280
    assert settings.minimap_size == 128


def test_yaml_file_values(tmp_path: Path) -> None:
    path = tmp_path / "settings.yaml"
    path.write_text(
        "debug_dir: out/debug\n"
        "layout_engines: [neato]\n"
        "graphviz_timeout: 2.5\n"
        "minimap_size: 64\n"
        "transparent_minimap: false\n",
        encoding="utf-8",
    )
    settings = load_settings(path, environ={})
    assert settings.debug_dir == Path("out/debug")
    assert settings.layout_engines == ("neato",)
    assert settings.graphviz_timeout == 2.5
    assert settings.minimap_size == 64
    assert settings.transparent_minimap is False


def test_environment_overrides_file(tmp_path: Path) -> None:
    path = tmp_path / "settings.yaml"
    path.write_text("graphviz_timeout: 2.5\n", encoding="utf-8")
    settings = load_settings(
        path,
        environ={
            "DUNGEONMAP_GRAPHVIZ_TIMEOUT": "30",
            "DUNGEONMAP_LAYOUT_ENGINES": "dot, neato",
            "DUNGEONMAP_DEBUG_DIR": str(tmp_path / "debug"),
            "DUNGEONMAP_IMAGE_SIZE": " ",
        },
    )
    assert settings.graphviz_timeout == 30.0
    assert settings.layout_engines == ("dot", "neato")
    assert settings.debug_dir == tmp_path / "debug"
    assert settings.image_size == 1280


@pytest.mark.parametrize(
    "environ, message",
    [
        ({"DUNGEONMAP_GRAPHVIZ_TIMEOUT": "soon"}, "graphviz_timeout must be a number"),
        ({"DUNGEONMAP_GRAPHVIZ_TIMEOUT": "-1"}, "graphviz_timeout must be positive"),
        ({"DUNGEONMAP_MINIMAP_SIZE": "0"}, "minimap_size must be positive"),
        ({"DUNGEONMAP_LAYOUT_ENGINES": ", ,"}, "at least one engine"),
    ],
)
def test_invalid_values_raise(environ: dict[str, str], message: str) -> None:
    with pytest.raises(ConfigError, match=message):
        load_settings(environ=environ)


def test_settings_file_must_be_mapping(tmp_path: Path) -> None:
    path = tmp_path / "settings.yaml"
    path.write_text("- nope\n", encoding="utf-8")
    with pytest.raises(ConfigError, match="must contain a mapping"):
        load_settings(path, environ={})


def test_missing_settings_file(tmp_path: Path) -> None:
    with pytest.raises(ConfigError, match="Unable to read"):
        load_settings(tmp_path / "absent.yaml", environ={})


def test_dotenv_is_loaded_when_environment_not_given(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    (tmp_path / ".env").write_text("DUNGEONMAP_MINIMAP_SIZE=96\n", encoding="utf-8")
    monkeypatch.chdir(tmp_path)
    # Registered first so teardown removes whatever dotenv exports.
    monkeypatch.setenv("DUNGEONMAP_MINIMAP_SIZE", "placeholder")
    monkeypatch.delenv("DUNGEONMAP_MINIMAP_SIZE")
    settings = load_settings()
    assert settings.minimap_size == 96


def test_unknown_settings_keys_are_rejected(tmp_path: Path) -> None:
    path = tmp_path / "settings.yaml"
    path.write_text("minimap_sise: 64\ntheme: dark\n", encoding="utf-8")
    with pytest.raises(ConfigError, match="Unknown setting\\(s\\): minimap_sise, theme"):
        load_settings(path, environ={})


def test_settings_file_with_invalid_encoding(tmp_path: Path) -> None:
    path = tmp_path / "settings.yaml"
    path.write_bytes(b"debug_dir: \xff\xfe\n")
    with pytest.raises(ConfigError, match="Unable to read"):
        load_settings(path, environ={})

import pytest
import yaml

from stealthnav import settings as settings_module
from stealthnav.constants import TAU, Heuristic
from stealthnav.settings import (
    EngineSettings,
    PathfindingSettings,
    get_settings,
    load_settings,
    set_settings,
)


@pytest.fixture
def restore_default_settings():
    yield
    set_settings(None)


def _write(tmp_path, text):
    path = tmp_path / "engine.yaml"
    path.write_text(text)
    return path


def test_shipped_config_matches_defaults():
    loaded = load_settings()
    assert loaded == EngineSettings()
    assert loaded.visibility.sort_offset == pytest.approx(TAU / 32)
    assert loaded.pathfinding.heuristic is Heuristic.MANHATTAN


def test_custom_file_overrides_only_given_keys(tmp_path):
    path = _write(tmp_path, "pathfinding:\n  cell_size: 16\n  heuristic: squared_euclidean\n")
    loaded = load_settings(path)
    assert loaded.pathfinding == PathfindingSettings(16.0, Heuristic.SQUARED_EUCLIDEAN)
    assert isinstance(loaded.pathfinding.cell_size, float)
    assert loaded.visibility == EngineSettings().visibility


def test_unknown_keys_are_ignored(tmp_path):
    path = _write(tmp_path, "visibility:\n  bogus: 1\nextra:\n  a: 1\n")
    assert load_settings(path) == EngineSettings()


def test_unknown_heuristic_raises(tmp_path):
    path = _write(tmp_path, "pathfinding:\n  heuristic: diagonal\n")
    with pytest.raises(ValueError):
        load_settings(path)


def test_missing_file_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_settings(tmp_path / "absent.yaml")


def test_malformed_yaml_propagates(tmp_path):
    path = _write(tmp_path, "visibility: [unclosed\n")
    with pytest.raises(yaml.YAMLError):
        load_settings(path)


def test_empty_file_gives_defaults(tmp_path):
    assert load_settings(_write(tmp_path, "")) == EngineSettings()


def test_bad_shapes_raise(tmp_path):
    with pytest.raises(ValueError):
        load_settings(_write(tmp_path, "- 1\n- 2\n"))
    with pytest.raises(ValueError):
        load_settings(_write(tmp_path, "raycast: 5\n"))


def test_process_default_can_be_swapped(restore_default_settings):
    custom = EngineSettings(pathfinding=PathfindingSettings(cell_size=4.0))
    set_settings(custom)
    assert get_settings() is custom
    set_settings(None)
    assert get_settings() == EngineSettings()


def test_default_is_loaded_once(monkeypatch, restore_default_settings):
    calls = []

    def fake_load(path=None):
        calls.append(path)
        return EngineSettings()

    set_settings(None)
    monkeypatch.setattr(settings_module, "load_settings", fake_load)
    get_settings()
    get_settings()
    assert calls == [None]

# stealthnav/settings.py
"""
Engine tunables loaded from YAML.

The defaults shipped in ``config/engine.yaml`` are read once on first use and
cached; callers that need different values either pass an explicit
``settings=`` object to the operation in question or install a new process
default with :func:`set_settings`.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Mapping

import structlog
import yaml

from stealthnav.constants import TAU, Heuristic

log = structlog.get_logger(__name__)

# --- Paths relative to this module ---
CONFIG_DIR = Path(__file__).parent.resolve() / "config"
CONFIG_FILE = CONFIG_DIR / "engine.yaml"


@dataclass(frozen=True)
class VisibilitySettings:
    degree_step: float = 2.0
    corner_epsilon: float = 1e-4
    sort_offset: float = TAU / 32


@dataclass(frozen=True)
class PathfindingSettings:
    cell_size: float = 8.0
    heuristic: Heuristic = Heuristic.MANHATTAN


@dataclass(frozen=True)
class SpatialIndexSettings:
    min_leaf_size: float = 64.0


@dataclass(frozen=True)
class RaycastSettings:
    ray_length: float = 1000.0
    max_segments: int = 4
    max_reflections: int = 1
    exit_nudge: float = 1.0


@dataclass(frozen=True)
class EngineSettings:
    """All engine tunables, grouped by component."""

    visibility: VisibilitySettings = field(default_factory=VisibilitySettings)
    pathfinding: PathfindingSettings = field(default_factory=PathfindingSettings)
    spatial_index: SpatialIndexSettings = field(default_factory=SpatialIndexSettings)
    raycast: RaycastSettings = field(default_factory=RaycastSettings)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "EngineSettings":
        """Build settings from a parsed YAML mapping, defaulting missing keys."""
        sections = {f.name: f for f in fields(cls)}
        values: dict[str, Any] = {}
        for name, section in data.items():
            if name not in sections:
                log.warning("Ignoring unknown settings section", section=name)
                continue
            if not isinstance(section, Mapping):
                log.error("Settings section must be a mapping", section=name)
                raise ValueError(f"Settings section '{name}' must be a mapping.")
            section_type = sections[name].default_factory  # type: ignore[misc]
            values[name] = _build_section(section_type, name, section)
        return cls(**values)


def _build_section(section_type: type, name: str, raw: Mapping[str, Any]) -> Any:
    known = {f.name: f for f in fields(section_type)}
    kwargs: dict[str, Any] = {}
    for key, value in raw.items():
        if key not in known:
            log.warning("Ignoring unknown setting", section=name, key=key)
            continue
        kwargs[key] = _coerce(section_type, key, value)
    return section_type(**kwargs)


def _coerce(section_type: type, key: str, value: Any) -> Any:
    if section_type is PathfindingSettings and key == "heuristic":
        try:
            return Heuristic(value)
        except ValueError:
            log.error("Unknown pathfinding heuristic", heuristic=value)
            raise ValueError(f"Unknown pathfinding heuristic: {value!r}") from None
    default = getattr(section_type(), key)
    if isinstance(default, int):
        return int(value)
    if isinstance(default, float):
        return float(value)
    return value


def load_settings(path: str | Path | None = None) -> EngineSettings:
    """Load engine settings from a YAML file (the shipped defaults if ``None``)."""
    config_path = Path(path) if path is not None else CONFIG_FILE
    if not config_path.is_file():
        log.error("Engine config file not found", path=str(config_path))
        raise FileNotFoundError(f"Engine configuration file not found: {config_path}")
    try:
        with config_path.open("r") as f:
            config_data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        log.error(
            "Error parsing YAML for engine config",
            path=str(config_path),
            error=str(e),
            exc_info=True,
        )
        raise
    if config_data is None:
        log.warning("Engine config file is empty.", path=str(config_path))
        return EngineSettings()
    if not isinstance(config_data, Mapping):
        log.error("Engine config root must be a mapping", path=str(config_path))
        raise ValueError(f"Engine configuration root must be a mapping: {config_path}")
    settings = EngineSettings.from_mapping(config_data)
    log.info("Engine config loaded", path=str(config_path))
    return settings


_current: EngineSettings | None = None


def get_settings() -> EngineSettings:
    """Return the process-wide default settings, loading them on first use."""
    global _current
    if _current is None:
        _current = load_settings()
    return _current


def set_settings(settings: EngineSettings | None) -> None:
    """Install ``settings`` as the process default (``None`` forces a reload)."""
    global _current
    _current = settings


__all__ = [
    "CONFIG_FILE",
    "EngineSettings",
    "VisibilitySettings",
    "PathfindingSettings",
    "SpatialIndexSettings",
    "RaycastSettings",
    "load_settings",
    "get_settings",
    "set_settings",
]

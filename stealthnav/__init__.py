"""Geometry, visibility and grid navigation for a 2D stealth game."""

from stealthnav.diagnostics import Diagnostics
from stealthnav.settings import get_settings, load_settings
from stealthnav.systems.pathfinding.grid import PathGrid
from stealthnav.world.geometry import (
    intersect_rect,
    intersect_segment_point,
    intersect_segments,
)
from stealthnav.world.raycast import trace_ray
from stealthnav.world.shapes import Rect
from stealthnav.world.spatial_index import SpatialIndex
from stealthnav.world.view_cone import ViewCone
from stealthnav.world.visibility import VisibilityPolygon, cast_visibility

__all__ = [
    "Rect",
    "intersect_segments",
    "intersect_segment_point",
    "intersect_rect",
    "cast_visibility",
    "VisibilityPolygon",
    "ViewCone",
    "PathGrid",
    "SpatialIndex",
    "trace_ray",
    "Diagnostics",
    "load_settings",
    "get_settings",
]

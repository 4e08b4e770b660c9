# stealthnav/world/visibility.py
"""
Visibility polygons cast from a point against occluding segments.

Rays are cast along the sampled edge of the view cone and toward every
occluder endpoint inside it, each also nudged a hair to either side so the
fan captures the wall corner and whatever lies just past it. The nearest
hit of every ray becomes a boundary point; sorting those by angle around the
apex yields a simple triangle fan that can be rendered directly and queried
for containment.
"""

from __future__ import annotations

import math
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Iterable, Iterator, Optional, Sequence

import numpy as np
import structlog

from stealthnav.constants import ABS_TOLERANCE, BARYCENTRIC_TOLERANCE, TAU
from stealthnav.diagnostics import Diagnostics
from stealthnav.settings import EngineSettings, get_settings
from stealthnav.world.geometry import (
    angle_in_arc,
    angle_of,
    direction,
    first_hit,
    normalized_radians,
)
from stealthnav.world.shapes import Point, Segment

if TYPE_CHECKING:  # pragma: no cover - for type checking
    from stealthnav.world.spatial_index import SpatialIndex

log = structlog.get_logger(__name__)


@dataclass(frozen=True, eq=False)
class VisibilityPolygon:
    """Apex-anchored triangle fan.

    ``boundary`` is an ``(N, 2)`` array sorted by angle around ``apex``;
    triangle ``i`` is ``(apex, boundary[i], boundary[i + 1])``, plus a closing
    triangle back to ``boundary[0]`` when ``full_circle`` is set.
    """

    apex: Point
    boundary: np.ndarray
    full_circle: bool = False

    @property
    def vertices(self) -> np.ndarray:
        """Mesh vertices: the apex first, then the boundary ring."""
        return np.vstack((np.asarray(self.apex, dtype=np.float64), self.boundary))

    @property
    def indices(self) -> np.ndarray:
        """``(T, 3)`` vertex indices of the fan triangles into :attr:`vertices`."""
        n = len(self.boundary)
        if n < 2:
            return np.empty((0, 3), dtype=np.int32)
        first = np.arange(1, n, dtype=np.int32)
        tris = np.column_stack((np.zeros(n - 1, dtype=np.int32), first, first + 1))
        if self.full_circle:
            tris = np.vstack((tris, np.array([[0, n, 1]], dtype=np.int32)))
        return tris

    def triangles(self) -> Iterator[tuple[Point, Point, Point]]:
        verts = self.vertices
        for i, j, k in self.indices:
            yield (
                (float(verts[i, 0]), float(verts[i, 1])),
                (float(verts[j, 0]), float(verts[j, 1])),
                (float(verts[k, 0]), float(verts[k, 1])),
            )

    def contains(self, p: Point) -> bool:
        """Is ``p`` inside any fan triangle (edges included)?"""
        return bool(self._contains_mask(np.asarray([p], dtype=np.float64))[0])

    def contains_any(self, points: Iterable[Point]) -> bool:
        pts = np.asarray(list(points), dtype=np.float64).reshape(-1, 2)
        if len(pts) == 0:
            return False
        return bool(self._contains_mask(pts).any())

    def _contains_mask(self, pts: np.ndarray) -> np.ndarray:
        assert len(self.boundary) >= 2, "visibility fan needs at least two boundary points"
        verts = self.vertices
        tris = self.indices
        a = verts[tris[:, 0]][None, :, :]
        b = verts[tris[:, 1]][None, :, :]
        c = verts[tris[:, 2]][None, :, :]
        p = pts[:, None, :]

        def cross(u: np.ndarray, v: np.ndarray) -> np.ndarray:
            return u[..., 0] * v[..., 1] - u[..., 1] * v[..., 0]

        area2 = cross(b - a, c - a)
        valid = np.abs(area2) > ABS_TOLERANCE
        safe = np.where(valid, area2, 1.0)
        wa = cross(b - p, c - p) / safe
        wb = cross(c - p, a - p) / safe
        wc = cross(a - p, b - p) / safe
        inside = (
            valid
            & (wa >= -BARYCENTRIC_TOLERANCE)
            & (wb >= -BARYCENTRIC_TOLERANCE)
            & (wc >= -BARYCENTRIC_TOLERANCE)
        )
        return inside.any(axis=1)

    def outline(self) -> list[Point]:
        """Closed polyline around the fan, for drawing."""
        ring = [(float(x), float(y)) for x, y in self.boundary]
        if self.full_circle:
            return ring + ring[:1]
        return [self.apex, *ring, self.apex]


def cone_directions(facing: float, view_angle: float, degree_step: float) -> list[float]:
    """Sampled ray angles from ``facing + half`` down to ``facing - half``.

    Both cone edges are always included; a full circle is sampled once
    around without a duplicated seam.
    """
    if degree_step <= 0:
        log.error("Invalid cone sampling step", degree_step=degree_step)
        raise ValueError("degree_step must be positive.")
    step = math.radians(degree_step)
    if view_angle >= TAU:
        count = max(1, math.ceil(TAU / step - 1e-9))
        return [normalized_radians(facing + math.pi - i * step) for i in range(count)]
    half = view_angle / 2.0
    count = int(view_angle / step + 1e-9)
    angles = [normalized_radians(facing + half - i * step) for i in range(count + 1)]
    low = normalized_radians(facing - half)
    if abs(normalized_radians(angles[-1] - low + math.pi) - math.pi) > 1e-9:
        angles.append(low)
    return angles


def is_point_in_cone(
    apex: Point,
    facing: float,
    view_angle: float,
    max_distance: float,
    p: Point,
) -> bool:
    """Distance and angle test against the unoccluded cone."""
    dx = p[0] - apex[0]
    dy = p[1] - apex[1]
    if math.hypot(dx, dy) > max_distance:
        return False
    if view_angle >= TAU or (abs(dx) <= ABS_TOLERANCE and abs(dy) <= ABS_TOLERANCE):
        return True
    half = view_angle / 2.0
    return angle_in_arc(angle_of((dx, dy)), facing - half, facing + half)


def cast_visibility(
    apex: Point,
    facing: float,
    view_angle: float,
    max_distance: float,
    occluders: Sequence[Segment] = (),
    *,
    full_circle: Optional[bool] = None,
    index: Optional["SpatialIndex"] = None,
    diagnostics: Optional[Diagnostics] = None,
    settings: Optional[EngineSettings] = None,
) -> VisibilityPolygon:
    """Cast the visibility fan seen from ``apex``.

    ``view_angle`` is the full cone width in radians centred on ``facing``;
    ``2π`` or more means all around. When ``index`` is given, occluders near
    the apex are pulled from it in addition to ``occluders``.
    """
    if max_distance <= 0 or view_angle < 0:
        log.error("Invalid visibility cone", max_distance=max_distance, view_angle=view_angle)
        raise ValueError("max_distance must be positive and view_angle non-negative.")
    vis = (settings or get_settings()).visibility
    start_time = time.perf_counter()

    apex = (float(apex[0]), float(apex[1]))
    if full_circle is None:
        full_circle = view_angle >= TAU
    segments = list(occluders)
    if index is not None:
        segments.extend(index.filter_by_radius(apex, max_distance))

    angles = cone_directions(facing, view_angle, vis.degree_step)
    for seg in segments:
        for p in seg:
            if abs(p[0] - apex[0]) <= ABS_TOLERANCE and abs(p[1] - apex[1]) <= ABS_TOLERANCE:
                continue
            if is_point_in_cone(apex, facing, view_angle, max_distance, p):
                angles.append(angle_of((p[0] - apex[0], p[1] - apex[1])))

    eps = vis.corner_epsilon
    points: list[Point] = []
    for angle in angles:
        for a in (angle, angle + eps, angle - eps):
            dx, dy = direction(a)
            end = (apex[0] + dx * max_distance, apex[1] + dy * max_distance)
            points.append(first_hit(apex, end, segments) or end)

    boundary = _sort_around(apex, points, _sort_start(facing, view_angle, full_circle, vis.sort_offset))
    if diagnostics is not None:
        for x, y in boundary:
            diagnostics.circle((float(x), float(y)), 2.0, "fan-point")

    log.debug(
        "Visibility cast",
        apex=apex,
        rays=len(points),
        occluders=len(segments),
        duration_ms=f"{(time.perf_counter() - start_time) * 1000:.2f}",
    )
    return VisibilityPolygon(apex=apex, boundary=boundary, full_circle=full_circle)


def _sort_start(facing: float, view_angle: float, full_circle: bool, offset: float) -> float:
    if full_circle or view_angle >= TAU:
        return -offset
    # The start must stay inside the blind gap behind a wide cone.
    offset = min(offset, (TAU - view_angle) / 2.0)
    return facing - view_angle / 2.0 - offset


def _sort_around(apex: Point, points: list[Point], start: float) -> np.ndarray:
    pts = np.asarray(points, dtype=np.float64).reshape(-1, 2)
    rel = np.arctan2(pts[:, 1] - apex[1], pts[:, 0] - apex[0]) - start
    order = np.argsort(np.mod(rel, TAU), kind="stable")
    return pts[order]


__all__ = [
    "VisibilityPolygon",
    "cone_directions",
    "is_point_in_cone",
    "cast_visibility",
]

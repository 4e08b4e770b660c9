# stealthnav/world/geometry.py
"""
Geometry kernel: segment, point and rectangle intersection primitives.

All comparisons go through :func:`approx_eq` rather than exact float equality
so rounding never turns a touching pair into a miss. Degenerate inputs are
answered, not rejected: a zero-length segment is treated as a point, parallel
segments either overlap or miss, and endpoint contacts count as hits.
"""

from __future__ import annotations

import math
from typing import Iterable, Optional, Sequence

from stealthnav.constants import (
    ABS_TOLERANCE,
    BARYCENTRIC_TOLERANCE,
    REL_TOLERANCE,
    TAU,
)
from stealthnav.world.shapes import Point, Rect, Segment

# Outward unit normals of a rect's edges, in Rect.edges() order (y grows down).
_EDGE_NORMALS: tuple[Point, Point, Point, Point] = (
    (0.0, -1.0),  # top
    (1.0, 0.0),  # right
    (-1.0, 0.0),  # left
    (0.0, 1.0),  # bottom
)

RectHit = tuple[Point, Point, Point, Point]


# --- Tolerant comparison ---


def approx_eq(a: float, b: float) -> bool:
    return math.isclose(a, b, rel_tol=REL_TOLERANCE, abs_tol=ABS_TOLERANCE)


def points_approx_eq(p: Point, q: Point) -> bool:
    return approx_eq(p[0], q[0]) and approx_eq(p[1], q[1])


def _cross(ax: float, ay: float, bx: float, by: float) -> float:
    return ax * by - ay * bx


def _is_zero_cross(value: float, scale: float) -> bool:
    # Cross products grow with the product of the operand lengths.
    return abs(value) <= ABS_TOLERANCE * max(1.0, scale)


def _dist_sq(p: Point, q: Point) -> float:
    dx = q[0] - p[0]
    dy = q[1] - p[1]
    return dx * dx + dy * dy


def _canonical(a1: Point, a2: Point, b1: Point, b2: Point) -> tuple[Segment, Segment]:
    """Order endpoints and segments so argument order never changes results."""
    a1, a2 = (a1[0], a1[1]), (a2[0], a2[1])
    b1, b2 = (b1[0], b1[1]), (b2[0], b2[1])
    a = (a1, a2) if a1 <= a2 else (a2, a1)
    b = (b1, b2) if b1 <= b2 else (b2, b1)
    return (a, b) if a <= b else (b, a)


# --- Segment / point primitives ---


def intersect_segment_point(s1: Point, s2: Point, p: Point) -> Optional[Point]:
    """Return ``p`` if it lies on segment ``s1``-``s2``, else ``None``.

    Colinearity is judged with the distance-sum identity
    ``|AP| + |PB| == |AB|`` under the kernel tolerance.
    """
    if points_approx_eq(s1, p) or points_approx_eq(s2, p):
        return (p[0], p[1])
    ab = math.hypot(s2[0] - s1[0], s2[1] - s1[1])
    ap = math.hypot(p[0] - s1[0], p[1] - s1[1])
    pb = math.hypot(s2[0] - p[0], s2[1] - p[1])
    if approx_eq(ab, ap + pb):
        return (p[0], p[1])
    return None


def collinear_overlap(a1: Point, a2: Point, b1: Point, b2: Point) -> Optional[Segment]:
    """Shared interval of two collinear segments, or ``None``.

    The returned segment is ordered lexicographically; it collapses to a
    single repeated point when the segments only touch end to end.
    """
    (a1, a2), (b1, b2) = _canonical(a1, a2, b1, b2)
    rx, ry = a2[0] - a1[0], a2[1] - a1[1]
    sx, sy = b2[0] - b1[0], b2[1] - b1[1]
    if rx * rx + ry * ry < sx * sx + sy * sy:
        (a1, a2), (b1, b2) = (b1, b2), (a1, a2)
        rx, ry, sx, sy = sx, sy, rx, ry
    r_len_sq = rx * rx + ry * ry
    if r_len_sq <= ABS_TOLERANCE * ABS_TOLERANCE:
        # Both are points.
        return (a1, a1) if points_approx_eq(a1, b1) else None
    r_len = math.sqrt(r_len_sq)
    qx, qy = b1[0] - a1[0], b1[1] - a1[1]
    if not _is_zero_cross(_cross(rx, ry, sx, sy), r_len * math.hypot(sx, sy)):
        return None
    if not _is_zero_cross(_cross(qx, qy, rx, ry), r_len * math.hypot(qx, qy)):
        return None

    t0 = (qx * rx + qy * ry) / r_len_sq
    t1 = ((b2[0] - a1[0]) * rx + (b2[1] - a1[1]) * ry) / r_len_sq
    lo = max(0.0, min(t0, t1))
    hi = min(1.0, max(t0, t1))
    tol = ABS_TOLERANCE / r_len
    if lo > hi + tol:
        return None
    hi = max(lo, hi)
    p = (a1[0] + rx * lo, a1[1] + ry * lo)
    q = (a1[0] + rx * hi, a1[1] + ry * hi)
    return (p, q) if p <= q else (q, p)


def intersect_segments(a1: Point, a2: Point, b1: Point, b2: Point) -> Optional[Point]:
    """Any intersection point of segments ``a1``-``a2`` and ``b1``-``b2``.

    Endpoint contacts count. Collinear overlapping segments report the
    lexicographically smallest point of their shared interval; use
    :func:`collinear_overlap` for the whole interval. The result does not
    depend on argument order.
    """
    (a1, a2), (b1, b2) = _canonical(a1, a2, b1, b2)

    # AABB rejection
    if min(a1[0], a2[0]) > max(b1[0], b2[0]) or max(a1[0], a2[0]) < min(b1[0], b2[0]):
        return None
    if min(a1[1], a2[1]) > max(b1[1], b2[1]) or max(a1[1], a2[1]) < min(b1[1], b2[1]):
        return None

    px, py = a1
    rx, ry = a2[0] - px, a2[1] - py
    sx, sy = b2[0] - b1[0], b2[1] - b1[1]
    qx, qy = b1[0] - px, b1[1] - py
    r_len = math.hypot(rx, ry)
    s_len = math.hypot(sx, sy)

    r_cross_s = _cross(rx, ry, sx, sy)
    if _is_zero_cross(r_cross_s, r_len * s_len):
        a_is_point = points_approx_eq(a1, a2)
        b_is_point = points_approx_eq(b1, b2)
        if a_is_point and b_is_point:
            return (a1[0], a1[1]) if points_approx_eq(a1, b1) else None
        if a_is_point:
            return intersect_segment_point(b1, b2, a1)
        if b_is_point:
            return intersect_segment_point(a1, a2, b1)
        overlap = collinear_overlap(a1, a2, b1, b2)
        return overlap[0] if overlap is not None else None

    t = _cross(qx, qy, sx, sy) / r_cross_s
    u = _cross(qx, qy, rx, ry) / r_cross_s
    t_tol = ABS_TOLERANCE / max(r_len, ABS_TOLERANCE)
    u_tol = ABS_TOLERANCE / max(s_len, ABS_TOLERANCE)
    if -t_tol <= t <= 1.0 + t_tol and -u_tol <= u <= 1.0 + u_tol:
        t = min(max(t, 0.0), 1.0)
        return (px + rx * t, py + ry * t)
    return None


def _is_parallel(a1: Point, a2: Point, b1: Point, b2: Point) -> bool:
    rx, ry = a2[0] - a1[0], a2[1] - a1[1]
    sx, sy = b2[0] - b1[0], b2[1] - b1[1]
    return _is_zero_cross(_cross(rx, ry, sx, sy), math.hypot(rx, ry) * math.hypot(sx, sy))


def first_hit(
    origin: Point,
    end: Point,
    segments: Iterable[Segment],
    skip_origin: bool = True,
) -> Optional[Point]:
    """Intersection nearest to ``origin`` along ``origin``-``end``.

    Collinear overlaps contribute their end nearest the origin. With
    ``skip_origin`` a hit coinciding with the origin is ignored, so a ray cast
    from a point lying on a wall is not stopped by that wall.
    """
    best: Optional[Point] = None
    best_d = math.inf
    for s1, s2 in segments:
        hit = intersect_segments(origin, end, s1, s2)
        if hit is None:
            continue
        if _is_parallel(origin, end, s1, s2):
            overlap = collinear_overlap(origin, end, s1, s2)
            if overlap is not None:
                near, far = overlap
                if skip_origin and points_approx_eq(near, origin):
                    near = far
                hit = near if _dist_sq(origin, near) <= _dist_sq(origin, far) else far
        if skip_origin and points_approx_eq(hit, origin):
            continue
        d = _dist_sq(origin, hit)
        if d < best_d:
            best, best_d = hit, d
    return best


def intersect_rect(segment: Segment, rect: Rect) -> Optional[RectHit]:
    """Where ``segment`` crosses the boundary of ``rect``.

    Returns ``(near_point, near_normal, far_point, far_normal)`` ordered by
    distance from the segment's first point, with outward edge normals, or
    ``None`` when the segment never touches the boundary.
    """
    start, end = segment
    hits: list[tuple[float, Point, Point]] = []
    for (e1, e2), normal in zip(rect.edges(), _EDGE_NORMALS):
        hit = intersect_segments(e1, e2, start, end)
        if hit is not None:
            hits.append((_dist_sq(start, hit), hit, normal))
    if not hits:
        return None
    near = min(hits, key=lambda h: h[0])
    far = max(hits, key=lambda h: h[0])
    return near[1], near[2], far[1], far[2]


def segment_touches_rect(segment: Segment, rect: Rect) -> bool:
    """Segment has an endpoint inside ``rect`` or crosses its boundary."""
    return (
        rect.contains(segment[0])
        or rect.contains(segment[1])
        or intersect_rect(segment, rect) is not None
    )


# --- Triangles and angles ---


def triangle_contains(p: Point, a: Point, b: Point, c: Point) -> bool:
    """Barycentric containment; points on an edge count as inside."""
    area2 = _cross(b[0] - a[0], b[1] - a[1], c[0] - a[0], c[1] - a[1])
    if abs(area2) <= ABS_TOLERANCE:
        return False
    wa = _cross(b[0] - p[0], b[1] - p[1], c[0] - p[0], c[1] - p[1]) / area2
    wb = _cross(c[0] - p[0], c[1] - p[1], a[0] - p[0], a[1] - p[1]) / area2
    wc = _cross(a[0] - p[0], a[1] - p[1], b[0] - p[0], b[1] - p[1]) / area2
    return (
        wa >= -BARYCENTRIC_TOLERANCE
        and wb >= -BARYCENTRIC_TOLERANCE
        and wc >= -BARYCENTRIC_TOLERANCE
    )


def normalized_radians(theta: float) -> float:
    """Wrap an angle into ``[0, 2π)``."""
    theta = math.fmod(theta, TAU)
    if theta < 0.0:
        theta += TAU
    # fmod of a tiny negative angle can round back up to exactly TAU.
    return 0.0 if theta >= TAU else theta


def angle_of(v: Point) -> float:
    return normalized_radians(math.atan2(v[1], v[0]))


def direction(angle: float) -> Point:
    return (math.cos(angle), math.sin(angle))


def rotate(v: Point, angle: float) -> Point:
    c = math.cos(angle)
    s = math.sin(angle)
    return (v[0] * c - v[1] * s, v[0] * s + v[1] * c)


def angle_in_arc(angle: float, lo: float, hi: float) -> bool:
    """Is ``angle`` on the counter-clockwise arc from ``lo`` to ``hi``?"""
    angle = normalized_radians(angle)
    lo = normalized_radians(lo)
    hi = normalized_radians(hi)
    if lo <= hi:
        return lo <= angle <= hi
    return angle >= lo or angle <= hi


# --- Rect helpers ---


def rects_to_segments(rects: Iterable[Rect]) -> list[Segment]:
    """Boundary segments of every rect, four per rect."""
    segments: list[Segment] = []
    for rect in rects:
        segments.extend(rect.edges())
    return segments


def merge_rects(rects: Sequence[Rect]) -> list[Rect]:
    """Shape-preserving merge of tile-sized colliders.

    Horizontally adjacent rects sharing ``y`` and ``h`` are joined first, then
    vertically adjacent results sharing ``x`` and ``w``. The covered area is
    unchanged; only the rect count drops.
    """
    if not rects:
        return []
    rows = _merge_runs(sorted(rects, key=lambda r: (r.y, r.x)), horizontal=True)
    return _merge_runs(sorted(rows, key=lambda r: (r.x, r.y)), horizontal=False)


def _merge_runs(ordered: list[Rect], horizontal: bool) -> list[Rect]:
    merged = [ordered[0]]
    for rect in ordered[1:]:
        last = merged[-1]
        if horizontal:
            adjacent = last.y == rect.y and last.h == rect.h and approx_eq(last.right, rect.x)
        else:
            adjacent = last.x == rect.x and last.w == rect.w and approx_eq(last.bottom, rect.y)
        if adjacent:
            merged[-1] = last.combine(rect)
        else:
            merged.append(rect)
    return merged


def cast_rect(rect: Rect, to: Point, barriers: Sequence[Rect], step: float = 1.0) -> bool:
    """Slide ``rect`` toward ``to`` in ``step`` increments.

    Returns ``True`` if its centre arrives within 1.5 steps of ``to`` before a
    slightly shrunk copy of the rect overlaps any barrier.
    """
    accept = 1.5 * step
    cx, cy = rect.center
    dx, dy = to[0] - cx, to[1] - cy
    dist = math.hypot(dx, dy)
    if dist <= ABS_TOLERANCE:
        return True
    ux, uy = dx / dist * step, dy / dist * step
    probe = rect.shrunk(0.1, 0.1, 0.1, 0.1)
    while math.hypot(to[0] - cx, to[1] - cy) > accept:
        if any(probe.overlaps(b) for b in barriers):
            return False
        probe = probe.translated(ux, uy)
        cx += ux
        cy += uy
    return True


__all__ = [
    "approx_eq",
    "points_approx_eq",
    "intersect_segment_point",
    "collinear_overlap",
    "intersect_segments",
    "first_hit",
    "intersect_rect",
    "segment_touches_rect",
    "triangle_contains",
    "normalized_radians",
    "angle_of",
    "direction",
    "rotate",
    "angle_in_arc",
    "rects_to_segments",
    "merge_rects",
    "cast_rect",
]

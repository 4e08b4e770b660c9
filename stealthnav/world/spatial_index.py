# stealthnav/world/spatial_index.py
"""
Quad-subdivision index over static wall segments.

The build recursively quarters a bounding rect until a node's diagonal is no
larger than ``min_leaf_size``; each leaf keeps every segment that has an
endpoint inside it or crosses its boundary, so segments straddling a split
are stored in every leaf they touch. Queries are broad-phase filters plus a
front-to-back nearest-hit search.
"""

from __future__ import annotations

import math
import time
from dataclasses import dataclass
from typing import Callable, Iterator, Optional, Sequence

import structlog

from stealthnav.diagnostics import Diagnostics
from stealthnav.world.geometry import (
    first_hit,
    intersect_rect,
    segment_touches_rect,
)
from stealthnav.world.shapes import Point, Rect, Segment

log = structlog.get_logger(__name__)

# Leaf hits may sit on the leaf boundary up to this far outside it.
_LEAF_MARGIN: float = 1e-6


@dataclass
class _IndexNode:
    rect: Rect
    children: Optional[list["_IndexNode"]] = None
    segments: Optional[list[Segment]] = None

    def __post_init__(self) -> None:
        assert (self.children is None) != (self.segments is None)

    @classmethod
    def build(cls, rect: Rect, min_leaf_size: float, segments: Sequence[Segment]) -> "_IndexNode":
        if rect.diagonal <= min_leaf_size:
            return cls(rect, segments=[s for s in segments if segment_touches_rect(s, rect)])
        # Segments that miss a node cannot touch any of its descendants.
        local = [s for s in segments if segment_touches_rect(s, rect)]
        return cls(
            rect,
            children=[cls.build(q, min_leaf_size, local) for q in rect.quarters()],
        )

    def filter(self, keep: Callable[[Rect], bool], out: dict[Segment, None]) -> None:
        if not keep(self.rect):
            return
        if self.children is not None:
            for child in self.children:
                child.filter(keep, out)
        else:
            out.update(dict.fromkeys(self.segments))  # type: ignore[arg-type]

    def touches(self, start: Point, end: Point) -> bool:
        return segment_touches_rect((start, end), self.rect)

    def intersect(
        self,
        start: Point,
        end: Point,
        diagnostics: Optional[Diagnostics],
    ) -> Optional[Point]:
        if self.segments is not None:
            hit = self._nearest_local_hit(start, end)
            if hit is not None and diagnostics is not None:
                diagnostics.circle(hit, 2.0, "index-hit")
            return hit

        entries: list[tuple[float, _IndexNode]] = []
        for child in self.children:  # type: ignore[union-attr]
            if child.rect.contains(start):
                entries.append((0.0, child))
                continue
            crossing = intersect_rect((start, end), child.rect)
            if crossing is not None:
                near = crossing[0]
                entries.append((math.hypot(near[0] - start[0], near[1] - start[1]), child))
        entries.sort(key=lambda e: e[0])
        for _, child in entries:
            if diagnostics is not None:
                diagnostics.line(start, child.rect.center, "index-visit")
            hit = child.intersect(start, end, diagnostics)
            if hit is not None:
                return hit
        return None

    def _nearest_local_hit(self, start: Point, end: Point) -> Optional[Point]:
        # Only hits inside this leaf count; a straddling segment hit further
        # along is found again, in order, by the leaf that holds that point.
        r = self.rect
        best: Optional[Point] = None
        best_d = math.inf
        for seg in self.segments:  # type: ignore[union-attr]
            hit = first_hit(start, end, (seg,), skip_origin=False)
            if hit is None:
                continue
            if not (
                r.left - _LEAF_MARGIN <= hit[0] <= r.right + _LEAF_MARGIN
                and r.top - _LEAF_MARGIN <= hit[1] <= r.bottom + _LEAF_MARGIN
            ):
                continue
            d = math.hypot(hit[0] - start[0], hit[1] - start[1])
            if d < best_d:
                best, best_d = hit, d
        return best

    def walk(self) -> Iterator["_IndexNode"]:
        yield self
        if self.children is not None:
            for child in self.children:
                yield from child.walk()


class SpatialIndex:
    """Static region index over wall segments.

    Built once per scene from the level's occluder segments and never
    mutated; rebuild it wholesale on scene reset.
    """

    def __init__(self, root: _IndexNode, min_leaf_size: float) -> None:
        self._root = root
        self.min_leaf_size = min_leaf_size

    @classmethod
    def build(
        cls,
        bounds: Rect,
        min_leaf_size: float,
        segments: Sequence[Segment],
    ) -> "SpatialIndex":
        if not min_leaf_size > 0:
            log.error("Invalid leaf size", min_leaf_size=min_leaf_size)
            raise ValueError("min_leaf_size must be positive.")
        start_time = time.perf_counter()
        segments = [((a[0], a[1]), (b[0], b[1])) for a, b in segments]
        if not all(math.isfinite(v) for seg in segments for p in seg for v in p):
            log.error("Non-finite segment coordinates", segments=len(segments))
            raise ValueError("Segment coordinates must be finite.")
        root = _IndexNode.build(bounds, min_leaf_size, segments)
        index = cls(root, min_leaf_size)
        duration_ms = (time.perf_counter() - start_time) * 1000
        log.info(
            "Spatial index built",
            bounds=tuple(bounds),
            segments=len(segments),
            leaves=sum(1 for _ in index.leaves()),
            depth=index.depth(),
            duration_ms=f"{duration_ms:.2f}",
        )
        return index

    @property
    def bounds(self) -> Rect:
        return self._root.rect

    def filter_by_segment(self, segment: Segment) -> list[Segment]:
        """Candidate segments from every leaf the query segment touches."""
        out: dict[Segment, None] = {}
        self._root.filter(lambda rect: segment_touches_rect(segment, rect), out)
        return list(out)

    def filter_by_radius(self, pos: Point, radius: float) -> list[Segment]:
        """Candidate segments from every leaf within ``radius`` of ``pos``."""
        out: dict[Segment, None] = {}
        self._root.filter(lambda rect: rect.distance_to(pos) <= radius, out)
        return list(out)

    def intersect(
        self,
        start: Point,
        end: Point,
        diagnostics: Optional[Diagnostics] = None,
    ) -> Optional[Point]:
        """Nearest hit of segment ``start``-``end`` against the stored segments."""
        start = (start[0], start[1])
        end = (end[0], end[1])
        if not self._root.touches(start, end):
            return None
        return self._root.intersect(start, end, diagnostics)

    def leaves(self) -> Iterator[_IndexNode]:
        return (node for node in self._root.walk() if node.segments is not None)

    def node_rects(self) -> list[Rect]:
        return [node.rect for node in self._root.walk()]

    def depth(self) -> int:
        def _depth(node: _IndexNode) -> int:
            if node.children is None:
                return 1
            return 1 + max(_depth(c) for c in node.children)

        return _depth(self._root)


__all__ = ["SpatialIndex"]

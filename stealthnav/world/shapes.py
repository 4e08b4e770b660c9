# stealthnav/world/shapes.py
"""
Basic value types for the geometry kernel.

Points and segments are plain tuples so they stay cheap to build in the
per-tick hot paths and hashable for de-duplication; :class:`Rect` is a small
frozen dataclass carrying the axis-aligned box queries the rest of the
engine relies on.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterator, TypeAlias

import structlog

log = structlog.get_logger(__name__)

# --- Type Aliases ---
Point: TypeAlias = tuple[float, float]
Segment: TypeAlias = tuple[Point, Point]


def _spans_overlap(a: float, a_len: float, b: float, b_len: float) -> bool:
    if a_len == 0:
        return b <= a < b + b_len
    if b_len == 0:
        return a <= b < a + a_len
    return a < b + b_len and b < a + a_len


@dataclass(frozen=True, slots=True)
class Rect:
    """Axis-aligned box: origin ``(x, y)`` plus non-negative ``w``/``h``.

    The y axis grows downward (screen convention), so ``top`` is ``y`` and
    ``bottom`` is ``y + h``.
    """

    x: float
    y: float
    w: float
    h: float

    def __post_init__(self) -> None:
        if self.w < 0 or self.h < 0:
            log.error("Invalid rect size", w=self.w, h=self.h)
            raise ValueError("Rect width and height must be non-negative.")

    @classmethod
    def from_center(cls, center: Point, w: float, h: float) -> "Rect":
        return cls(center[0] - w / 2.0, center[1] - h / 2.0, w, h)

    @property
    def left(self) -> float:
        return self.x

    @property
    def right(self) -> float:
        return self.x + self.w

    @property
    def top(self) -> float:
        return self.y

    @property
    def bottom(self) -> float:
        return self.y + self.h

    @property
    def center(self) -> Point:
        return (self.x + self.w / 2.0, self.y + self.h / 2.0)

    @property
    def diagonal(self) -> float:
        return math.hypot(self.w, self.h)

    def contains(self, p: Point) -> bool:
        """Half-open point test: the left/top edges are inside, right/bottom are not."""
        return self.x <= p[0] < self.x + self.w and self.y <= p[1] < self.y + self.h

    def contains_rect(self, other: "Rect") -> bool:
        return (
            self.x <= other.x
            and self.y <= other.y
            and other.x + other.w <= self.x + self.w
            and other.y + other.h <= self.y + self.h
        )

    def overlaps(self, other: "Rect") -> bool:
        """True when the two boxes share a region of positive area.

        A zero-width axis behaves like a point on that axis and overlaps when
        the point falls inside the other box's half-open span.
        """
        return _spans_overlap(self.x, self.w, other.x, other.w) and _spans_overlap(
            self.y, self.h, other.y, other.h
        )

    def combine(self, other: "Rect") -> "Rect":
        """Smallest rect covering both."""
        x = min(self.x, other.x)
        y = min(self.y, other.y)
        return Rect(
            x,
            y,
            max(self.right, other.right) - x,
            max(self.bottom, other.bottom) - y,
        )

    def moved_to_center(self, p: Point) -> "Rect":
        return Rect(p[0] - self.w / 2.0, p[1] - self.h / 2.0, self.w, self.h)

    def translated(self, dx: float, dy: float) -> "Rect":
        return Rect(self.x + dx, self.y + dy, self.w, self.h)

    def shrunk(self, left: float, top: float, right: float, bottom: float) -> "Rect":
        """Inset each edge; used for the tolerant hit boxes movers collide with."""
        return Rect(
            self.x + left,
            self.y + top,
            max(0.0, self.w - left - right),
            max(0.0, self.h - top - bottom),
        )

    def nearest_point(self, p: Point) -> Point:
        return (
            min(max(p[0], self.x), self.x + self.w),
            min(max(p[1], self.y), self.y + self.h),
        )

    def distance_to(self, p: Point) -> float:
        nx, ny = self.nearest_point(p)
        return math.hypot(p[0] - nx, p[1] - ny)

    def corners(self) -> tuple[Point, Point, Point, Point]:
        """Top-left, top-right, bottom-left, bottom-right."""
        return (
            (self.x, self.y),
            (self.x + self.w, self.y),
            (self.x, self.y + self.h),
            (self.x + self.w, self.y + self.h),
        )

    def edges(self) -> tuple[Segment, Segment, Segment, Segment]:
        """Top, right, left, bottom boundary segments."""
        tl, tr, bl, br = self.corners()
        return ((tl, tr), (tr, br), (tl, bl), (bl, br))

    def quarters(self) -> tuple["Rect", "Rect", "Rect", "Rect"]:
        """Four equal children, column-major: (left-top, left-bottom, right-top, right-bottom)."""
        hw = self.w / 2.0
        hh = self.h / 2.0
        return tuple(  # type: ignore[return-value]
            Rect(self.x + h * hw, self.y + v * hh, hw, hh)
            for h in (0, 1)
            for v in (0, 1)
        )

    def __iter__(self) -> Iterator[float]:
        yield from (self.x, self.y, self.w, self.h)


__all__ = ["Point", "Segment", "Rect"]

# stealthnav/world/view_cone.py
"""Per-agent field of view with a memoized visibility fan."""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional, Sequence

import structlog

from stealthnav.diagnostics import Diagnostics
from stealthnav.settings import EngineSettings
from stealthnav.world.shapes import Point, Rect, Segment
from stealthnav.world.visibility import VisibilityPolygon, cast_visibility, is_point_in_cone

if TYPE_CHECKING:  # pragma: no cover - for type checking
    from stealthnav.world.spatial_index import SpatialIndex

log = structlog.get_logger(__name__)


class ViewCone:
    """Field of view owned by a single agent.

    Occluders are fixed for the scene. :meth:`update` re-casts the fan only
    when the apex or facing differs from the last call, since casting against
    every occluder is the most expensive per-tick query.
    """

    def __init__(
        self,
        view_angle: float,
        max_distance: float,
        occluders: Sequence[Segment] = (),
        *,
        index: Optional["SpatialIndex"] = None,
        settings: Optional[EngineSettings] = None,
    ) -> None:
        self.view_angle = view_angle
        self.max_distance = max_distance
        self._occluders = list(occluders)
        self._index = index
        self._settings = settings
        self._key: Optional[tuple[Point, float]] = None
        self._polygon: Optional[VisibilityPolygon] = None
        self.recomputations = 0

    @property
    def polygon(self) -> Optional[VisibilityPolygon]:
        return self._polygon

    @property
    def apex(self) -> Optional[Point]:
        return self._key[0] if self._key else None

    @property
    def facing(self) -> Optional[float]:
        return self._key[1] if self._key else None

    def update(
        self,
        apex: Point,
        facing: float,
        diagnostics: Optional[Diagnostics] = None,
    ) -> VisibilityPolygon:
        key = ((float(apex[0]), float(apex[1])), float(facing))
        if self._polygon is None or key != self._key:
            self._polygon = cast_visibility(
                key[0],
                key[1],
                self.view_angle,
                self.max_distance,
                self._occluders,
                index=self._index,
                diagnostics=diagnostics,
                settings=self._settings,
            )
            self._key = key
            self.recomputations += 1
        return self._polygon

    def invalidate(self) -> None:
        self._key = None
        self._polygon = None

    def in_full_cone(self, p: Point) -> bool:
        """Angle and range test ignoring occluders."""
        assert self._key is not None, "update() must run before querying the cone"
        apex, facing = self._key
        return is_point_in_cone(apex, facing, self.view_angle, self.max_distance, p)

    def can_see(self, p: Point) -> bool:
        return self.in_full_cone(p) and self._polygon.contains(p)  # type: ignore[union-attr]

    def spot(self, rects: Sequence[Rect]) -> Optional[tuple[int, Point]]:
        """First rect with a visible corner, as ``(index, rect centre)``."""
        for idx, rect in enumerate(rects):
            corners = rect.corners()
            if not any(self.in_full_cone(c) for c in corners):
                continue
            if self._polygon.contains_any(corners):  # type: ignore[union-attr]
                log.debug("Rect spotted", index=idx, center=rect.center)
                return idx, rect.center
        return None


__all__ = ["ViewCone"]

# stealthnav/world/raycast.py
"""
Projectile ray tracing with wall reflections.

A shot is a chain of straight legs. Each leg stops at the nearest agent or
collider rect it enters: an agent ends the chain, a collider reflects the
direction about the struck edge, and an empty leg ends at its full length.
Hit targets are reported by index into the caller's own ``agents`` /
``colliders`` sequences so nothing here holds on to game objects.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Collection, Optional, Sequence

import structlog

from stealthnav.constants import ABS_TOLERANCE, HitKind
from stealthnav.diagnostics import Diagnostics
from stealthnav.settings import EngineSettings, get_settings
from stealthnav.world.geometry import intersect_rect
from stealthnav.world.shapes import Point, Rect

log = structlog.get_logger(__name__)


@dataclass(frozen=True)
class HitTarget:
    kind: HitKind
    index: Optional[int] = None


@dataclass(frozen=True)
class RayHit:
    pos: Point
    normal: Point
    target: HitTarget
    direction: Point


def reflect(d: Point, n: Point) -> Point:
    """Mirror direction ``d`` about unit normal ``n``."""
    dot = d[0] * n[0] + d[1] * n[1]
    return (d[0] - 2.0 * dot * n[0], d[1] - 2.0 * dot * n[1])


def trace_ray(
    start: Point,
    direction: Point,
    agents: Sequence[Rect],
    colliders: Sequence[Rect],
    *,
    ignore_agents: Collection[int] = (),
    settings: Optional[EngineSettings] = None,
    diagnostics: Optional[Diagnostics] = None,
) -> list[RayHit]:
    """Follow a shot from ``start`` and return one record per leg."""
    cfg = (settings or get_settings()).raycast
    length = math.hypot(direction[0], direction[1])
    if length <= ABS_TOLERANCE:
        log.debug("Zero-length ray direction", start=start)
        return []
    d = (direction[0] / length, direction[1] / length)
    pos = (float(start[0]), float(start[1]))

    hits: list[RayHit] = []
    reflections = 0
    for _ in range(cfg.max_segments):
        end = (pos[0] + d[0] * cfg.ray_length, pos[1] + d[1] * cfg.ray_length)
        best: Optional[tuple[float, Point, Point, HitTarget]] = None
        candidates = [
            (rect, HitTarget(HitKind.AGENT, i))
            for i, rect in enumerate(agents)
            if i not in ignore_agents
        ]
        candidates.extend((rect, HitTarget(HitKind.COLLIDER, i)) for i, rect in enumerate(colliders))
        for rect, target in candidates:
            crossing = intersect_rect((pos, end), rect)
            if crossing is None:
                continue
            near, near_n, _, _ = crossing
            dist = math.hypot(near[0] - pos[0], near[1] - pos[1])
            if best is None or dist < best[0]:
                best = (dist, near, near_n, target)

        if diagnostics is not None:
            diagnostics.line(pos, best[1] if best else end, "ray-leg")

        if best is None:
            hits.append(RayHit(end, (0.0, 0.0), HitTarget(HitKind.AIR), d))
            break

        _, near, normal, target = best
        if target.kind is HitKind.AGENT:
            hits.append(RayHit(near, normal, target, d))
            break

        d = reflect(d, normal)
        hits.append(RayHit(near, normal, target, d))
        if reflections >= cfg.max_reflections:
            break
        reflections += 1
        pos = (near[0] + d[0] * cfg.exit_nudge, near[1] + d[1] * cfg.exit_nudge)

    log.debug("Ray traced", start=start, legs=len(hits), reflections=reflections)
    return hits


__all__ = ["HitTarget", "RayHit", "reflect", "trace_ray"]

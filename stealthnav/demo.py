# stealthnav/demo.py
"""
Small end-to-end run of the engine on a hand-built level.

Run with ``python -m stealthnav.demo``. Prints the level as ASCII at grid
resolution: walls, the route a crate-sized mover would take, and the cells a
guard can see from the room's doorway.
"""

from __future__ import annotations

import logging
import math

import numpy as np
import structlog

from stealthnav.diagnostics import Diagnostics
from stealthnav.systems.pathfinding.grid import PathGrid
from stealthnav.world.geometry import merge_rects, rects_to_segments
from stealthnav.world.raycast import trace_ray
from stealthnav.world.shapes import Rect
from stealthnav.world.spatial_index import SpatialIndex
from stealthnav.world.view_cone import ViewCone
from stealthnav.utils.logging_utils import setup_logging

log = structlog.get_logger(__name__)

LEVEL_W, LEVEL_H = 320.0, 192.0


def build_level() -> list[Rect]:
    wall = 8.0
    pieces = [
        # outer frame
        Rect(0, 0, LEVEL_W, wall),
        Rect(0, LEVEL_H - wall, LEVEL_W, wall),
        Rect(0, 0, wall, LEVEL_H),
        Rect(LEVEL_W - wall, 0, wall, LEVEL_H),
        # room divider with a doorway
        Rect(160, 0, wall, 72),
        Rect(160, 72, wall, 16),
        Rect(160, 120, wall, 72),
        # crates, laid out as separate tiles
        Rect(64, 48, 16, 16),
        Rect(80, 48, 16, 16),
        Rect(232, 112, 24, 40),
    ]
    return merge_rects(pieces)


def render(grid: PathGrid, path_cells: set, visible: np.ndarray, marks: dict) -> str:
    rows = []
    for r in range(grid.rows):
        line = []
        for c in range(grid.cols):
            cell = (c, r)
            if cell in marks:
                line.append(marks[cell])
            elif grid.is_blocked_cell(cell):
                line.append("#")
            elif cell in path_cells:
                line.append("*")
            elif visible[r, c]:
                line.append(".")
            else:
                line.append(" ")
        rows.append("".join(line))
    return "\n".join(rows)


def main() -> None:
    setup_logging(logging.INFO)

    # 1. Level geometry
    colliders = build_level()
    occluders = rects_to_segments(colliders)
    log.info("Level built", colliders=len(colliders), occluders=len(occluders))

    # 2. Static structures
    grid = PathGrid.build(LEVEL_W, LEVEL_H, colliders)
    index = SpatialIndex.build(Rect(0, 0, LEVEL_W, LEVEL_H), 64.0, occluders)

    # 3. Route a mover from the left room into the right room
    mover = Rect.from_center((36.0, 150.0), 10.0, 10.0)
    target = (284.0, 36.0)
    diagnostics = Diagnostics(enabled=True)
    path = grid.get_path(mover, target, diagnostics=diagnostics)
    if path is None:
        log.warning("No route to target", target=target)
        path = []
    else:
        log.info(
            "Route found",
            waypoints=len(path),
            edges_explored=sum(1 for _ in diagnostics.by_reason("astar-edge")),
        )
    raw = grid.find_cell_path(mover, target) or []

    # 4. Guard in the doorway looking into the left room
    guard = ViewCone(math.radians(100), 140.0, index=index)
    guard_pos = (176.0, 104.0)
    polygon = guard.update(guard_pos, math.pi)
    visible = np.zeros((grid.rows, grid.cols), dtype=bool)
    for r in range(grid.rows):
        for c in range(grid.cols):
            visible[r, c] = guard.can_see(grid.cell_to_world((c, r)))
    spotted = guard.spot([mover])
    log.info(
        "Guard view cast",
        fan_triangles=len(polygon.indices),
        visible_cells=int(visible.sum()),
        mover_spotted=spotted is not None,
    )

    # 5. A shot fired from the guard, bouncing off walls
    for hit in trace_ray(guard_pos, (-1.0, -0.6), [mover], colliders):
        log.info(
            "Shot leg",
            pos=(round(hit.pos[0], 1), round(hit.pos[1], 1)),
            target=hit.target.kind.value,
            index=hit.target.index,
        )

    marks = {
        grid.world_to_cell(mover.center): "M",
        grid.world_to_cell(target): "T",
        grid.world_to_cell(guard_pos): "G",
    }
    for p in path[1:-1]:
        marks.setdefault(grid.world_to_cell(p), "o")
    print("\nLevel (M mover, T target, G guard, * route, o waypoint, . seen):")
    print(render(grid, set(raw), visible, marks))


if __name__ == "__main__":
    main()

# stealthnav/systems/pathfinding/grid.py
"""
Occupancy-grid pathfinding for rectangular movers.

The level's static colliders are rasterised once into a boolean grid (a cell
is blocked when any collider contains its centre). Path queries run A* over
the 4-connected grid, but every edge is validated by sweeping the mover's
real footprint from one cell centre to the next, so a wide mover never
squeezes past a blocking corner. The raw cell path is then shortened by
skipping every waypoint the footprint can reach in a straight line.
"""

from __future__ import annotations

import heapq
import itertools
import math
import time
from typing import Callable, Final, Optional, Sequence, Tuple

import numpy as np
import structlog
from numba import njit

from stealthnav.constants import ABS_TOLERANCE, Heuristic
from stealthnav.diagnostics import Diagnostics
from stealthnav.settings import EngineSettings, get_settings
from stealthnav.world.shapes import Point, Rect

log = structlog.get_logger(__name__)

# --- Type Aliases ---
Cell = Tuple[int, int]  # (col, row) format

# --- Constants ---
NEIGHBORS_4: Final[tuple[Cell, ...]] = ((1, 0), (-1, 0), (0, 1), (0, -1))
# Fallback goals tried, in order, when the target cell itself is unusable.
GOAL_CANDIDATES: Final[tuple[Cell, ...]] = ((0, 0), (1, 0), (-1, 0), (0, 1), (0, -1))


# --- Numba Helper Functions ---
@njit(cache=True)
def _mark_blocked_cells(
    colliders: np.ndarray,  # float64[:, 4] rows of (x, y, w, h)
    cols: int,
    rows: int,
    cell_size: float,
) -> np.ndarray:
    """Flag every cell whose centre lies inside a collider (half-open test)."""
    grid = np.zeros((rows, cols), dtype=np.bool_)
    half = cell_size / 2.0
    for i in range(colliders.shape[0]):
        x = colliders[i, 0]
        y = colliders[i, 1]
        w = colliders[i, 2]
        h = colliders[i, 3]
        c0 = max(0, int(np.floor((x - half) / cell_size)))
        c1 = min(cols - 1, int(np.ceil((x + w - half) / cell_size)))
        r0 = max(0, int(np.floor((y - half) / cell_size)))
        r1 = min(rows - 1, int(np.ceil((y + h - half) / cell_size)))
        for r in range(r0, r1 + 1):
            cy = r * cell_size + half
            if not (y <= cy < y + h):
                continue
            for c in range(c0, c1 + 1):
                cx = c * cell_size + half
                if x <= cx < x + w:
                    grid[r, c] = True
    return grid


def _heuristic(kind: Heuristic, goal: Cell) -> Callable[[Cell], int]:
    gx, gy = goal
    if kind is Heuristic.SQUARED_EUCLIDEAN:
        # Parity with the original game; overestimates on a unit-cost grid.
        return lambda c: (gx - c[0]) ** 2 + (gy - c[1]) ** 2
    return lambda c: abs(gx - c[0]) + abs(gy - c[1])


class PathGrid:
    """Immutable occupancy grid plus path queries over it.

    Build it once per scene with :meth:`build`; a scene reset builds a new
    grid rather than editing this one.
    """

    def __init__(
        self,
        occupancy: np.ndarray,
        cell_size: float,
        heuristic: Heuristic = Heuristic.MANHATTAN,
    ) -> None:
        if occupancy.ndim != 2 or not np.issubdtype(occupancy.dtype, np.bool_):
            raise TypeError("occupancy must be a 2D boolean NumPy array")
        self.occupancy: np.ndarray = occupancy.copy()
        self.occupancy.setflags(write=False)
        self.cell_size: float = float(cell_size)
        self.heuristic: Heuristic = heuristic
        self.rows, self.cols = self.occupancy.shape
        # (col, row) of every blocked cell
        self.blocked_cells: np.ndarray = np.argwhere(self.occupancy)[:, ::-1].copy()
        self.blocked_cells.setflags(write=False)

    @classmethod
    def build(
        cls,
        level_width: float,
        level_height: float,
        colliders: Sequence[Rect],
        cell_size: Optional[float] = None,
        settings: Optional[EngineSettings] = None,
    ) -> "PathGrid":
        cfg = (settings or get_settings()).pathfinding
        cell_size = cfg.cell_size if cell_size is None else cell_size
        func_log = log.bind(level_width=level_width, level_height=level_height, cell_size=cell_size)
        if level_width <= 0 or level_height <= 0:
            func_log.error("Invalid level dimensions")
            raise ValueError("Level width and height must be positive.")
        if cell_size <= 0:
            func_log.error("Invalid cell size")
            raise ValueError("cell_size must be positive.")
        cols = int(level_width // cell_size)
        rows = int(level_height // cell_size)
        if cols == 0 or rows == 0:
            func_log.error("Level smaller than a single cell")
            raise ValueError("Level must span at least one cell in each direction.")

        start_time = time.perf_counter()
        collider_array = np.array(
            [[r.x, r.y, r.w, r.h] for r in colliders], dtype=np.float64
        ).reshape(-1, 4)
        if not np.isfinite(collider_array).all():
            func_log.error("Non-finite collider coordinates")
            raise ValueError("Collider coordinates must be finite.")
        occupancy = _mark_blocked_cells(collider_array, cols, rows, float(cell_size))
        grid = cls(occupancy, cell_size, cfg.heuristic)
        duration_ms = (time.perf_counter() - start_time) * 1000
        func_log.info(
            "Path grid built",
            cols=cols,
            rows=rows,
            colliders=len(collider_array),
            blocked=len(grid.blocked_cells),
            duration_ms=f"{duration_ms:.2f}",
        )
        return grid

    # --- Cell / world mapping ---

    def world_to_cell(self, p: Point) -> Cell:
        return (math.floor(p[0] / self.cell_size), math.floor(p[1] / self.cell_size))

    def cell_to_world(self, cell: Cell) -> Point:
        half = self.cell_size / 2.0
        return (cell[0] * self.cell_size + half, cell[1] * self.cell_size + half)

    def cell_rect(self, cell: Cell) -> Rect:
        return Rect(cell[0] * self.cell_size, cell[1] * self.cell_size, self.cell_size, self.cell_size)

    def is_oob(self, cell: Cell) -> bool:
        return not (0 <= cell[0] < self.cols and 0 <= cell[1] < self.rows)

    def is_blocked_cell(self, cell: Cell) -> bool:
        return not self.is_oob(cell) and bool(self.occupancy[cell[1], cell[0]])

    def blocked_cell_rects(self) -> list[Rect]:
        return [self.cell_rect((int(c), int(r))) for c, r in self.blocked_cells]

    # --- Collision queries ---

    def is_rect_blocked(self, rect: Rect) -> bool:
        """Does ``rect`` overlap any blocked cell?

        Overlap is strict along an axis with positive extent. Along an axis
        where the rect is zero-width it acts as a point, and the cell under
        that coordinate is tested.
        """
        s = self.cell_size
        c0 = math.floor(rect.x / s)
        c1 = math.ceil((rect.x + rect.w) / s) - 1 if rect.w > 0 else c0
        r0 = math.floor(rect.y / s)
        r1 = math.ceil((rect.y + rect.h) / s) - 1 if rect.h > 0 else r0
        c0, c1 = max(0, c0), min(self.cols - 1, c1)
        r0, r1 = max(0, r0), min(self.rows - 1, r1)
        if c0 > c1 or r0 > r1:
            return False
        return bool(self.occupancy[r0 : r1 + 1, c0 : c1 + 1].any())

    def is_direct_path_blocked(self, rect: Rect, to: Point) -> bool:
        """Sweep ``rect`` in a straight line until its centre reaches ``to``.

        The footprint is tested at its start, after every ``cell_size`` step
        short of the destination, and finally centred on ``to``.
        """
        cx, cy = rect.center
        dx, dy = to[0] - cx, to[1] - cy
        dist = math.hypot(dx, dy)
        if dist <= ABS_TOLERANCE:
            return False
        step_x = dx / dist * self.cell_size
        step_y = dy / dist * self.cell_size
        steps = math.ceil(dist / self.cell_size - 1e-9)
        for k in range(steps):
            if self.is_rect_blocked(rect.translated(step_x * k, step_y * k)):
                return True
        return self.is_rect_blocked(rect.moved_to_center(to))

    # --- Path queries ---

    def _resolve_goal(self, mover: Rect, target: Point) -> Optional[Cell]:
        tx, ty = self.world_to_cell(target)
        for dx, dy in GOAL_CANDIDATES:
            cell = (tx + dx, ty + dy)
            if self.is_oob(cell):
                continue
            if not self.is_rect_blocked(mover.moved_to_center(self.cell_to_world(cell))):
                return cell
        return None

    def find_cell_path(
        self,
        mover: Rect,
        target: Point,
        diagnostics: Optional[Diagnostics] = None,
    ) -> Optional[list[Cell]]:
        """Raw A* cell path, start and goal inclusive, or ``None``."""
        start = self.world_to_cell(mover.center)
        if self.is_oob(start):
            log.debug("No path", reason="start-out-of-bounds", start=start)
            return None
        goal = self._resolve_goal(mover, target)
        if goal is None:
            log.debug("No path", reason="goal-blocked", target=target)
            return None

        h = _heuristic(self.heuristic, goal)
        tie = itertools.count()
        g_scores: dict[Cell, int] = {start: 0}
        came_from: dict[Cell, Cell] = {}
        # Min-heap: [(f, seq, g, cell)]
        open_heap: list[tuple[int, int, int, Cell]] = [(h(start), next(tie), 0, start)]

        while open_heap:
            _, _, g, cell = heapq.heappop(open_heap)
            if g > g_scores[cell]:
                continue  # superseded by a cheaper route
            if cell == goal:
                return self._reconstruct(came_from, start, goal, diagnostics)

            here = self.cell_to_world(cell)
            cell_mover = mover.moved_to_center(here)
            for dx, dy in NEIGHBORS_4:
                nb = (cell[0] + dx, cell[1] + dy)
                if self.is_oob(nb):
                    continue
                there = self.cell_to_world(nb)
                if self.is_direct_path_blocked(cell_mover, there):
                    continue
                if diagnostics is not None:
                    diagnostics.line(here, there, "astar-edge")
                nb_g = g + 1
                if nb_g < g_scores.get(nb, math.inf):
                    g_scores[nb] = nb_g
                    came_from[nb] = cell
                    heapq.heappush(open_heap, (nb_g + h(nb), next(tie), nb_g, nb))

        log.debug("No path", reason="unreachable", start=start, goal=goal, explored=len(g_scores))
        return None

    def _reconstruct(
        self,
        came_from: dict[Cell, Cell],
        start: Cell,
        goal: Cell,
        diagnostics: Optional[Diagnostics],
    ) -> list[Cell]:
        path = [goal]
        while path[-1] in came_from:
            path.append(came_from[path[-1]])
        path.reverse()
        assert path[0] == start, "A* parent links must lead back to the start cell"
        if diagnostics is not None:
            for a, b in zip(path, path[1:]):
                diagnostics.line(self.cell_to_world(a), self.cell_to_world(b), "astar-path")
        return path

    def get_path(
        self,
        mover: Rect,
        target: Point,
        simplify: bool = True,
        diagnostics: Optional[Diagnostics] = None,
    ) -> Optional[list[Point]]:
        """World-space waypoints from the mover's cell toward ``target``.

        The first waypoint is the centre of the mover's current cell. With
        ``simplify`` the grid path is shortened by :meth:`simplify_path`.
        """
        cells = self.find_cell_path(mover, target, diagnostics)
        if cells is None:
            return None
        waypoints = [self.cell_to_world(c) for c in cells]
        if simplify:
            waypoints = self.simplify_path(mover, waypoints)
        if diagnostics is not None:
            for a, b in zip(waypoints, waypoints[1:]):
                diagnostics.line(a, b, "path")
        log.debug("Path found", cells=len(cells), waypoints=len(waypoints))
        return waypoints

    def simplify_path(self, mover: Rect, waypoints: Sequence[Point]) -> list[Point]:
        """Drop waypoints the mover can skip in a straight unobstructed line.

        From each kept waypoint, later waypoints are consumed for as long as
        the footprint can sweep straight to them; the last one reached is
        kept and the scan continues from there.
        """
        if not waypoints:
            return []
        kept = [waypoints[0]]
        i = 1
        while i < len(waypoints):
            sweeper = mover.moved_to_center(kept[-1])
            reached = None
            while i < len(waypoints) and not self.is_direct_path_blocked(sweeper, waypoints[i]):
                reached = waypoints[i]
                i += 1
            assert reached is not None, "consecutive waypoints must be mutually reachable"
            kept.append(reached)
        return kept


__all__ = ["PathGrid", "Cell", "NEIGHBORS_4"]

import numpy as np
import pytest

from stealthnav.constants import Heuristic
from stealthnav.diagnostics import Diagnostics
from stealthnav.settings import EngineSettings, PathfindingSettings
from stealthnav.systems.pathfinding.grid import PathGrid
from stealthnav.world.shapes import Rect


def _mover(center=(0.0, 0.0), size=4.0):
    return Rect.from_center(center, size, size)


def _assert_connected(grid, cells):
    for (c0, r0), (c1, r1) in zip(cells, cells[1:]):
        assert abs(c0 - c1) + abs(r0 - r1) == 1
    assert not any(grid.is_blocked_cell(c) for c in cells)


def test_build_marks_cells_whose_centres_are_covered():
    grid = PathGrid.build(64, 32, [Rect(16, 8, 16, 8), Rect(0, 0, 3, 3)], cell_size=8.0)
    assert (grid.cols, grid.rows) == (8, 4)
    assert grid.occupancy.shape == (4, 8)
    assert grid.blocked_cells.tolist() == [[2, 1], [3, 1]]
    assert grid.is_blocked_cell((2, 1))
    assert not grid.is_blocked_cell((0, 0))
    assert not grid.is_blocked_cell((-1, 0))


def test_occupancy_is_read_only():
    grid = PathGrid.build(64, 64, [], cell_size=8.0)
    with pytest.raises(ValueError):
        grid.occupancy[0, 0] = True


def test_build_rejects_bad_input():
    with pytest.raises(ValueError):
        PathGrid.build(64, 64, [], cell_size=0.0)
    with pytest.raises(ValueError):
        PathGrid.build(0, 64, [], cell_size=8.0)
    with pytest.raises(ValueError):
        PathGrid.build(4, 64, [], cell_size=8.0)
    with pytest.raises(ValueError):
        PathGrid.build(64, 64, [Rect(0, 0, float("inf"), 8)], cell_size=8.0)


def test_cell_mapping():
    grid = PathGrid.build(64, 64, [], cell_size=8.0)
    assert grid.world_to_cell((-0.5, 3.0)) == (-1, 0)
    assert grid.world_to_cell((15.9, 16.0)) == (1, 2)
    assert grid.cell_to_world((2, 3)) == (20.0, 28.0)
    assert grid.is_oob((8, 0))
    assert not grid.is_oob((7, 7))


def test_rect_blocking_is_strict():
    grid = PathGrid.build(64, 32, [Rect(16, 8, 8, 8)], cell_size=8.0)
    assert not grid.is_rect_blocked(Rect(10, 10, 6, 4))
    assert grid.is_rect_blocked(Rect(10, 10, 6.5, 4))
    assert not grid.is_rect_blocked(Rect(-20, -20, 5, 5))


def test_zero_size_rect_collides_as_point_or_line():
    grid = PathGrid.build(64, 64, [Rect(16, 16, 8, 8)], cell_size=8.0)
    assert grid.is_rect_blocked(Rect(20, 20, 0, 0))
    assert grid.is_rect_blocked(Rect.from_center((16.0, 16.0), 0, 0))
    assert not grid.is_rect_blocked(Rect(24, 20, 0, 0))
    assert not grid.is_rect_blocked(Rect(-4, 20, 0, 0))
    assert grid.is_rect_blocked(Rect(4, 18, 14, 0))
    assert not grid.is_rect_blocked(Rect(4, 18, 12, 0))
    assert grid.is_rect_blocked(Rect(20, 0, 0, 40))


def test_point_mover_cannot_cross_wall():
    grid = PathGrid.build(160, 80, [Rect(64, 0, 8, 80)], cell_size=8.0)
    point = Rect.from_center((20.0, 36.0), 0, 0)
    assert grid.is_direct_path_blocked(point, (120.0, 36.0))
    assert not grid.is_direct_path_blocked(point, (20.0, 70.0))
    assert grid.get_path(point, (120.0, 36.0)) is None


def test_point_mover_finds_path_around_wall():
    grid = PathGrid.build(160, 160, [Rect(64, 0, 8, 120)], cell_size=8.0)
    point = Rect.from_center((20.0, 20.0), 0, 0)
    cells = grid.find_cell_path(point, (120.0, 20.0))
    _assert_connected(grid, cells)
    assert max(r for _, r in cells) >= 15
    path = grid.get_path(point, (120.0, 20.0))
    for a, b in zip(path, path[1:]):
        assert not grid.is_direct_path_blocked(point.moved_to_center(a), b)


def test_direct_path_blocked_by_wall():
    grid = PathGrid.build(160, 80, [Rect(40, 0, 8, 80)], cell_size=8.0)
    mover = _mover((20.0, 20.0))
    assert grid.is_direct_path_blocked(mover, (80.0, 20.0))
    assert not grid.is_direct_path_blocked(mover, (20.0, 60.0))
    assert not grid.is_direct_path_blocked(mover, (20.0, 20.0))


def test_open_grid_path_length_and_simplification():
    grid = PathGrid.build(160, 160, [], cell_size=8.0)
    mover = _mover((0.0, 0.0))
    cells = grid.find_cell_path(mover, (80.0, 80.0))
    assert len(cells) == 21
    assert cells[0] == (0, 0)
    assert cells[-1] == (10, 10)
    _assert_connected(grid, cells)

    raw = grid.get_path(mover, (80.0, 80.0), simplify=False)
    assert len(raw) == 21
    assert grid.get_path(mover, (80.0, 80.0)) == [(4.0, 4.0), (84.0, 84.0)]


def test_path_to_own_cell_is_single_waypoint():
    grid = PathGrid.build(64, 64, [], cell_size=8.0)
    assert grid.get_path(_mover((10.0, 10.0)), (12.0, 12.0)) == [(12.0, 12.0)]


def test_path_detours_around_wall_and_simplifies_safely():
    grid = PathGrid.build(160, 160, [Rect(64, 0, 8, 120)], cell_size=8.0)
    mover = _mover((20.0, 20.0))
    cells = grid.find_cell_path(mover, (120.0, 20.0))
    assert cells is not None
    _assert_connected(grid, cells)
    assert max(r for _, r in cells) >= 15

    raw = [grid.cell_to_world(c) for c in cells]
    simplified = grid.get_path(mover, (120.0, 20.0))
    assert len(simplified) <= len(raw)
    assert simplified[0] == raw[0]
    assert simplified[-1] == raw[-1]
    for a, b in zip(simplified, simplified[1:]):
        assert not grid.is_direct_path_blocked(mover.moved_to_center(a), b)


def test_blocked_target_falls_back_to_free_neighbour():
    grid = PathGrid.build(160, 160, [Rect(80, 80, 8, 8)], cell_size=8.0)
    cells = grid.find_cell_path(_mover((4.0, 4.0)), (84.0, 84.0))
    assert cells[-1] == (11, 10)


def test_target_and_neighbours_blocked_returns_none():
    grid = PathGrid.build(160, 160, [Rect(64, 64, 32, 32)], cell_size=8.0)
    assert grid.get_path(_mover((4.0, 4.0)), (80.0, 80.0)) is None


def test_walled_off_target_returns_none():
    grid = PathGrid.build(160, 160, [Rect(120, 0, 8, 160)], cell_size=8.0)
    assert grid.find_cell_path(_mover((20.0, 20.0)), (140.0, 20.0)) is None


def test_start_out_of_bounds_returns_none():
    grid = PathGrid.build(64, 64, [], cell_size=8.0)
    assert grid.get_path(_mover((-10.0, 5.0)), (30.0, 30.0)) is None


def test_wide_mover_cannot_use_narrow_gap():
    colliders = [Rect(64, 0, 8, 32), Rect(64, 40, 8, 40)]
    grid = PathGrid.build(160, 80, colliders, cell_size=8.0)
    assert grid.get_path(_mover((20.0, 36.0)), (120.0, 36.0)) is not None
    assert grid.get_path(_mover((20.0, 36.0), size=12.0), (120.0, 36.0)) is None


def test_heuristic_follows_settings():
    settings = EngineSettings(
        pathfinding=PathfindingSettings(cell_size=8.0, heuristic=Heuristic.SQUARED_EUCLIDEAN)
    )
    grid = PathGrid.build(160, 160, [Rect(64, 0, 8, 120)], settings=settings)
    assert grid.heuristic is Heuristic.SQUARED_EUCLIDEAN
    cells = grid.find_cell_path(_mover((20.0, 20.0)), (120.0, 20.0))
    assert cells[0] == (2, 2)
    assert cells[-1] == (15, 2)
    _assert_connected(grid, cells)


def test_cell_size_comes_from_settings():
    settings = EngineSettings(pathfinding=PathfindingSettings(cell_size=16.0))
    grid = PathGrid.build(64, 64, [], settings=settings)
    assert grid.cell_size == 16.0
    assert (grid.cols, grid.rows) == (4, 4)


def test_search_records_diagnostics_only_when_enabled():
    grid = PathGrid.build(64, 64, [], cell_size=8.0)
    diagnostics = Diagnostics(enabled=True)
    cells = grid.find_cell_path(_mover((4.0, 4.0)), (44.0, 4.0), diagnostics)
    assert len(list(diagnostics.by_reason("astar-path"))) == len(cells) - 1
    assert list(diagnostics.by_reason("astar-edge"))

    silent = Diagnostics()
    grid.find_cell_path(_mover((4.0, 4.0)), (44.0, 4.0), silent)
    assert silent.lines == []


def test_blocked_cell_rects_cover_blocked_cells():
    grid = PathGrid.build(64, 32, [Rect(16, 8, 16, 8)], cell_size=8.0)
    assert grid.blocked_cell_rects() == [Rect(16, 8, 8, 8), Rect(24, 8, 8, 8)]
    assert np.array_equal(grid.blocked_cells, np.array([[2, 1], [3, 1]]))

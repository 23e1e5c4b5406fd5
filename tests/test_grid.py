"""Tests for grid distance, pathfinding, line of sight, and target shapes."""

from engine.grid import (
    bresenham,
    distance,
    find_path,
    in_bounds,
    line_of_sight,
    movement_budget,
    tiles_in_cone,
    tiles_in_line,
    tiles_in_radius,
)
from models.combat import Combatant, EntityType
from models.statuses import DebuffStatus


def _make_combatant(mobility: int = 10) -> Combatant:
    """Helper to create a test combatant."""
    return Combatant(
        id="c1",
        session_id="s1",
        entity_type=EntityType.PLAYER,
        name="Test",
        hp=50,
        hp_max=50,
        mobility=mobility,
        position=(0, 0),
    )


class TestDistance:
    """Tests for distance()."""

    def test_manhattan(self):
        assert distance((0, 0), (3, 4)) == 7

    def test_chebyshev(self):
        assert distance((0, 0), (3, 4), "chebyshev") == 4

    def test_euclidean_rounds_down(self):
        assert distance((0, 0), (3, 4), "euclidean") == 5
        assert distance((0, 0), (1, 1), "euclidean") == 1

    def test_same_tile(self):
        assert distance((2, 2), (2, 2)) == 0


class TestInBounds:
    """Tests for in_bounds()."""

    def test_corners(self):
        assert in_bounds((0, 0), 12, 8)
        assert in_bounds((11, 7), 12, 8)

    def test_outside(self):
        assert not in_bounds((12, 0), 12, 8)
        assert not in_bounds((0, -1), 12, 8)


class TestMovementBudget:
    """Tests for movement_budget()."""

    def test_default_mobility(self):
        assert movement_budget(_make_combatant(10)) == 2

    def test_scales_with_mobility(self):
        assert movement_budget(_make_combatant(60)) == 5

    def test_capped(self):
        assert movement_budget(_make_combatant(500)) == 8

    def test_rooted_cannot_move(self):
        c = _make_combatant(60)
        c.statuses.append(DebuffStatus(id="root", expires_turn=5))
        assert movement_budget(c) == 0


class TestFindPath:
    """Tests for find_path()."""

    def test_straight_line(self):
        path = find_path((0, 0), (3, 0), 12, 8, blocked=[])
        assert path == [(0, 0), (1, 0), (2, 0), (3, 0)]

    def test_same_tile(self):
        assert find_path((2, 2), (2, 2), 12, 8, blocked=[]) == [(2, 2)]

    def test_routes_around_wall(self):
        path = find_path((0, 1), (2, 1), 12, 8, blocked=[(1, 1)])
        assert path is not None
        assert (1, 1) not in path
        assert len(path) == 5

    def test_blocked_goal(self):
        assert find_path((0, 0), (1, 0), 12, 8, blocked=[(1, 0)]) is None

    def test_occupied_goal(self):
        assert find_path((0, 0), (1, 0), 12, 8, blocked=[], occupied=[(1, 0)]) is None

    def test_occupied_goal_allowed(self):
        path = find_path((0, 0), (2, 0), 12, 8, blocked=[], occupied=[(2, 0)], allow_occupied_goal=True)
        assert path == [(0, 0), (1, 0), (2, 0)]

    def test_cannot_pass_through_occupied(self):
        path = find_path((0, 0), (2, 0), 3, 1, blocked=[], occupied=[(1, 0)])
        assert path is None

    def test_out_of_bounds_goal(self):
        assert find_path((0, 0), (20, 0), 12, 8, blocked=[]) is None

    def test_enclosed(self):
        walls = [(1, 0), (0, 1)]
        assert find_path((0, 0), (5, 5), 12, 8, blocked=walls) is None


class TestLineOfSight:
    """Tests for bresenham() and line_of_sight()."""

    def test_bresenham_endpoints(self):
        tiles = bresenham((0, 0), (4, 2))
        assert tiles[0] == (0, 0)
        assert tiles[-1] == (4, 2)
        assert len(tiles) == 5

    def test_clear_line(self):
        assert line_of_sight((0, 0), (5, 0), blocked=[(3, 3)])

    def test_wall_blocks(self):
        assert not line_of_sight((0, 0), (5, 0), blocked=[(2, 0)])

    def test_endpoints_never_block(self):
        assert line_of_sight((0, 0), (1, 0), blocked=[(0, 0), (1, 0)])


class TestShapes:
    """Tests for tiles_in_radius(), tiles_in_line(), and tiles_in_cone()."""

    def test_radius_includes_center(self):
        tiles = tiles_in_radius((5, 5), 1, 12, 8)
        assert sorted(tiles) == [(4, 5), (5, 4), (5, 5), (5, 6), (6, 5)]

    def test_radius_clipped_at_edge(self):
        tiles = tiles_in_radius((0, 0), 1, 12, 8)
        assert sorted(tiles) == [(0, 0), (0, 1), (1, 0)]

    def test_line_excludes_origin(self):
        assert tiles_in_line((0, 0), (1, 0), 3, 12, 8) == [(1, 0), (2, 0), (3, 0)]

    def test_line_extends_past_aim(self):
        assert tiles_in_line((0, 0), (1, 0), 5, 12, 8)[-1] == (5, 0)

    def test_line_stops_at_edge(self):
        assert tiles_in_line((10, 0), (11, 0), 5, 12, 8) == [(11, 0)]

    def test_line_zero_aim(self):
        assert tiles_in_line((3, 3), (3, 3), 4, 12, 8) == []

    def test_cone_points_forward(self):
        tiles = tiles_in_cone((5, 4), (6, 4), 2, 12, 8)
        assert (6, 4) in tiles
        assert (7, 4) in tiles
        assert (4, 4) not in tiles
        assert (5, 4) not in tiles

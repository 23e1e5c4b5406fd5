"""Integer grid: distance, pathfinding, line of sight, and target shapes."""

from __future__ import annotations

import math
from collections import deque
from typing import TYPE_CHECKING, Iterable

from engine.status import has_control_status

if TYPE_CHECKING:
    from models.combat import CombatSession, Combatant

Tile = tuple[int, int]

MIN_MOVEMENT_BUDGET = 2
MAX_MOVEMENT_BUDGET = 8
_NEIGHBOURS = ((1, 0), (-1, 0), (0, 1), (0, -1))


def in_bounds(tile: Tile, width: int, height: int) -> bool:
    """Check if a tile lies on a width x height grid."""
    x, y = tile
    return 0 <= x < width and 0 <= y < height


def distance(pos1: Tile, pos2: Tile, metric: str = "manhattan") -> int:
    """Tile distance between two positions.

    Args:
        pos1: (x, y) of first position.
        pos2: (x, y) of second position.
        metric: "manhattan", "chebyshev", or "euclidean" (rounded down).

    Returns:
        Distance in tiles.
    """
    dx = abs(pos1[0] - pos2[0])
    dy = abs(pos1[1] - pos2[1])
    if metric == "chebyshev":
        return max(dx, dy)
    if metric == "euclidean":
        return math.floor(math.hypot(dx, dy))
    return dx + dy


def movement_budget(combatant: Combatant) -> int:
    """Maximum path length a combatant may walk this turn.

    Root and stun pin the combatant in place (budget 0).
    """
    if has_control_status(combatant):
        return 0
    return max(MIN_MOVEMENT_BUDGET, min(MAX_MOVEMENT_BUDGET, combatant.mobility // 20 + 2))


def occupied_tiles(session: CombatSession, exclude_id: str | None = None) -> set[Tile]:
    """Positions of living combatants, optionally excluding one."""
    return {
        c.position for c in session.combatants.values()
        if c.is_alive and c.id != exclude_id
    }


def find_path(
    start: Tile,
    goal: Tile,
    width: int,
    height: int,
    blocked: Iterable[Tile],
    occupied: Iterable[Tile] = (),
    allow_occupied_goal: bool = False,
) -> list[Tile] | None:
    """Shortest 4-neighbour path by breadth-first search.

    Blocked and occupied tiles are never entered, except that the goal
    itself may be occupied when allow_occupied_goal is set (used by AI to
    path toward an enemy).

    Args:
        start: Starting tile.
        goal: Destination tile.
        width: Grid width.
        height: Grid height.
        blocked: Impassable tiles.
        occupied: Tiles held by other living combatants.
        allow_occupied_goal: Treat an occupied goal as enterable.

    Returns:
        The path including start and goal, or None if unreachable.
    """
    if start == goal:
        return [start]
    walls = set(blocked)
    taken = set(occupied)
    if goal in walls or not in_bounds(goal, width, height):
        return None
    if goal in taken and not allow_occupied_goal:
        return None

    came_from: dict[Tile, Tile | None] = {start: None}
    queue: deque[Tile] = deque([start])
    while queue:
        cx, cy = queue.popleft()
        for dx, dy in _NEIGHBOURS:
            nxt = (cx + dx, cy + dy)
            if nxt in came_from or not in_bounds(nxt, width, height):
                continue
            if nxt in walls:
                continue
            if nxt in taken and nxt != goal:
                continue
            came_from[nxt] = (cx, cy)
            if nxt == goal:
                return _rebuild_path(came_from, goal)
            queue.append(nxt)
    return None


def _rebuild_path(came_from: dict[Tile, Tile | None], goal: Tile) -> list[Tile]:
    path = [goal]
    node = came_from[goal]
    while node is not None:
        path.append(node)
        node = came_from[node]
    path.reverse()
    return path


def bresenham(pos1: Tile, pos2: Tile) -> list[Tile]:
    """All tiles on the Bresenham line from pos1 to pos2, inclusive."""
    x0, y0 = pos1
    x1, y1 = pos2
    dx = abs(x1 - x0)
    dy = abs(y1 - y0)
    sx = 1 if x0 < x1 else -1
    sy = 1 if y0 < y1 else -1
    err = dx - dy

    tiles = []
    while True:
        tiles.append((x0, y0))
        if x0 == x1 and y0 == y1:
            break
        e2 = 2 * err
        if e2 > -dy:
            err -= dy
            x0 += sx
        if e2 < dx:
            err += dx
            y0 += sy
    return tiles


def line_of_sight(pos1: Tile, pos2: Tile, blocked: Iterable[Tile]) -> bool:
    """Check if pos1 can see pos2; only blocked tiles obstruct.

    The endpoints themselves never block.
    """
    walls = set(blocked)
    return not any(
        tile in walls for tile in bresenham(pos1, pos2)
        if tile != pos1 and tile != pos2
    )


# ---------------------------------------------------------------------------
# Target shapes
# ---------------------------------------------------------------------------


def tiles_in_radius(center: Tile, radius: int, width: int, height: int) -> list[Tile]:
    """Tiles within a Manhattan radius of center, in row-major order."""
    cx, cy = center
    return [
        (x, y)
        for y in range(cy - radius, cy + radius + 1)
        for x in range(cx - radius, cx + radius + 1)
        if in_bounds((x, y), width, height) and distance(center, (x, y)) <= radius
    ]


def tiles_in_line(origin: Tile, toward: Tile, length: int, width: int, height: int) -> list[Tile]:
    """Tiles along a ray from origin through toward, up to length tiles.

    The origin tile is excluded; the ray stops at the grid edge.
    """
    dx = toward[0] - origin[0]
    dy = toward[1] - origin[1]
    if dx == 0 and dy == 0:
        return []
    steps = max(abs(dx), abs(dy))
    scale = math.ceil((length + 1) / steps)
    far = (origin[0] + dx * scale, origin[1] + dy * scale)
    tiles = []
    for tile in bresenham(origin, far)[1:]:
        if not in_bounds(tile, width, height) or len(tiles) >= length:
            break
        tiles.append(tile)
    return tiles


def tiles_in_cone(
    origin: Tile,
    toward: Tile,
    length: int,
    width: int,
    height: int,
    half_angle_deg: float = 45,
) -> list[Tile]:
    """Tiles within length of origin whose bearing is within the cone."""
    aim_x = toward[0] - origin[0]
    aim_y = toward[1] - origin[1]
    aim_len = math.hypot(aim_x, aim_y)
    if aim_len == 0:
        return []
    min_cos = math.cos(math.radians(half_angle_deg))
    tiles = []
    for y in range(origin[1] - length, origin[1] + length + 1):
        for x in range(origin[0] - length, origin[0] + length + 1):
            tile = (x, y)
            if tile == origin or not in_bounds(tile, width, height):
                continue
            if distance(origin, tile, "chebyshev") > length:
                continue
            vx, vy = x - origin[0], y - origin[1]
            cos = (vx * aim_x + vy * aim_y) / (math.hypot(vx, vy) * aim_len)
            if cos >= min_cos - 1e-9:
                tiles.append(tile)
    return tiles

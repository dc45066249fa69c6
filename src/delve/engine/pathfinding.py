"""Grid search: nearest-floor BFS for map repair and A* for monster AI.

Both searches move in four directions and only through tiles that
``Level.can_walk`` accepts. Neighbours are always produced in the order
right, left, up, down so results never depend on dict iteration order.
"""

import heapq
import itertools
from collections import deque

from .world import Glyph, Level, Position

# right, left, up, down
NEIGHBOR_OFFSETS = ((1, 0), (-1, 0), (0, -1), (0, 1))


def neighbors(level: Level, pos: Position) -> list[Position]:
    """Walkable 4-neighbours of ``pos`` in canonical order."""
    result = []
    for dx, dy in NEIGHBOR_OFFSETS:
        nxt = pos.offset(dx, dy)
        if level.can_walk(nxt):
            result.append(nxt)
    return result


def manhattan(a: Position, b: Position) -> int:
    return abs(a.x - b.x) + abs(a.y - b.y)


def bfs_floor(level: Level, start: Position) -> Glyph:
    """Return the terrain of the closest reachable dirt floor tile.

    Used to give door, stair and spawn tiles a base terrain. When no floor
    is reachable the tile simply becomes dirt floor.
    """
    frontier = deque([start])
    visited = {start}
    while frontier:
        current = frontier.popleft()
        if level.tile(current).base == Glyph.DIRT_FLOOR:
            return Glyph.DIRT_FLOOR
        for nxt in neighbors(level, current):
            if nxt not in visited:
                visited.add(nxt)
                frontier.append(nxt)
    return Glyph.DIRT_FLOOR


class PriorityQueue:
    """Binary min-heap; equal priorities come out in insertion order."""

    def __init__(self) -> None:
        self._heap: list[tuple[int, int, Position]] = []
        self._counter = itertools.count()

    def __len__(self) -> int:
        return len(self._heap)

    def push(self, item: Position, priority: int) -> None:
        heapq.heappush(self._heap, (priority, next(self._counter), item))

    def pop(self) -> tuple[Position, int]:
        priority, _, item = heapq.heappop(self._heap)
        return item, priority


def astar(level: Level, start: Position, goal: Position) -> list[Position]:
    """Shortest 4-connected path from ``start`` to ``goal``, both included.

    Returns an empty list when ``goal`` cannot be reached. Callers treat
    that as "stay put".
    """
    frontier = PriorityQueue()
    frontier.push(start, manhattan(start, goal))
    came_from: dict[Position, Position] = {start: start}
    cost_so_far: dict[Position, int] = {start: 0}

    while frontier:
        current, priority = frontier.pop()
        if priority > cost_so_far[current] + manhattan(current, goal):
            continue  # stale entry, a cheaper route was queued later

        if current == goal:
            path = [current]
            while current != start:
                current = came_from[current]
                path.append(current)
            path.reverse()
            return path

        for nxt in neighbors(level, current):
            new_cost = cost_so_far[current] + 1
            if nxt not in cost_so_far or new_cost < cost_so_far[nxt]:
                cost_so_far[nxt] = new_cost
                came_from[nxt] = current
                frontier.push(nxt, new_cost + manhattan(nxt, goal))

    return []

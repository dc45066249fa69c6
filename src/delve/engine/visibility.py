"""Line of sight from the player.

Every pass starts from a clean slate: all ``visible`` flags are cleared and
rays are cast from the player to each candidate tile in range. ``seen``
flags are only ever set here, never cleared.
"""

import math
from collections.abc import Iterator

from .world import Level, Position


def bresenham(start: Position, end: Position) -> Iterator[Position]:
    """Yield the grid cells from ``start`` to ``end``, both inclusive.

    Lines steeper than 45 degrees are stepped along Y. The error term is
    accumulated the same way whichever direction the major axis runs, so
    a line and its mirror image visit mirrored cells.
    """
    x0, y0, x1, y1 = start.x, start.y, end.x, end.y
    steep = abs(y1 - y0) > abs(x1 - x0)
    if steep:
        x0, y0, x1, y1 = y0, x0, y1, x1

    delta_x = abs(x1 - x0)
    delta_y = abs(y1 - y0)
    xstep = 1 if x1 >= x0 else -1
    ystep = 1 if y1 >= y0 else -1

    err = 0
    y = y0
    for x in range(x0, x1 + xstep, xstep):
        yield Position(y, x) if steep else Position(x, y)
        err += delta_y
        if 2 * err >= delta_x:
            y += ystep
            err -= delta_x


def in_sight_range(dx: int, dy: int, sight_range: int) -> bool:
    # Rounded Euclidean distance: range 1 covers the full 3x3 block.
    return round(math.sqrt(dx * dx + dy * dy)) <= sight_range


def cast_ray(level: Level, start: Position, end: Position) -> None:
    """Mark tiles along one ray, stopping after the first opaque tile."""
    for pos in bresenham(start, end):
        if not level.in_range(pos):
            return
        t = level.tile(pos)
        t.visible = True
        t.seen = True
        if not level.can_see_through(pos):
            return


def recompute_visibility(level: Level) -> None:
    """Recompute ``visible``/``seen`` flags around the level's player."""
    level.clear_visible()
    player = level.player
    if player is None:
        return

    origin = player.pos
    dist = player.sight_range
    for y in range(origin.y - dist, origin.y + dist + 1):
        for x in range(origin.x - dist, origin.x + dist + 1):
            if in_sight_range(x - origin.x, y - origin.y, dist):
                cast_ray(level, origin, Position(x, y))

"""Parse level maps and the world file into a World object.

A data directory holds one ``<name>.map`` file per level and a world file.
Map files are plain character grids:

    #  stone wall        .  dirt floor
    |  closed door       /  open door
    u  up stair          d  down stair
    @  player start      R, S  monster start (see state.BESTIARY)
    space or tab: blank, unexplored rock

The world file is CSV. Its first row names the starting level; each
following row is a one-directional portal:

    level, x, y, target_level, target_x, target_y

Any structural problem raises LoadError before a level is handed out.
"""

import csv
import io
from pathlib import Path

from ..logging import get_logger
from .pathfinding import bfs_floor
from .state import BESTIARY, EVENT_LOG_SIZE, PLAYER_GLYPH, new_monster, new_player
from .visibility import recompute_visibility
from .world import EventLog, Glyph, Level, Portal, Position, Tile, World

logger = get_logger(__name__)

MAP_SUFFIX = ".map"
WORLD_FILE = "world.txt"

# Glyphs that map straight to a terrain tile
TERRAIN_GLYPHS = {
    "#": Glyph.STONE_WALL,
    ".": Glyph.DIRT_FLOOR,
    " ": Glyph.BLANK,
    "\t": Glyph.BLANK,
}

# Furniture glyphs: terrain underneath is resolved after parsing
OVERLAY_GLYPHS = {
    "|": Glyph.CLOSED_DOOR,
    "/": Glyph.OPEN_DOOR,
    "u": Glyph.UP_STAIR,
    "d": Glyph.DOWN_STAIR,
}

PORTAL_FIELDS = 6


class LoadError(Exception):
    """A map or world file is missing, unreadable or malformed."""


def _parse_tile(level: Level, char: str, pos: Position) -> Tile:
    if char in TERRAIN_GLYPHS:
        return Tile(base=TERRAIN_GLYPHS[char])

    if char in OVERLAY_GLYPHS:
        return Tile(base=Glyph.PENDING, overlay=OVERLAY_GLYPHS[char])

    if char == PLAYER_GLYPH:
        if level.player_start is not None:
            raise LoadError(
                f"{level.name}: second player start at {pos.x},{pos.y}"
            )
        level.player_start = pos
        return Tile(base=Glyph.PENDING)

    if char in BESTIARY:
        level.place_monster(new_monster(char, pos))
        return Tile(base=Glyph.PENDING)

    raise LoadError(
        f"{level.name}: invalid character {char!r} at line {pos.y + 1}, "
        f"column {pos.x + 1}"
    )


def _resolve_pending(level: Level) -> None:
    """Give every pending tile the terrain of its nearest floor."""
    for y, row in enumerate(level.tiles):
        for x, t in enumerate(row):
            if t.base == Glyph.PENDING:
                t.base = bfs_floor(level, Position(x, y))


def parse_level(name: str, text: str, event_log_size: int = EVENT_LOG_SIZE) -> Level:
    """Build a Level from map text. Ragged rows are padded with blank tiles."""
    lines = text.splitlines()
    while lines and not lines[-1].strip():
        lines.pop()
    if not lines:
        raise LoadError(f"{name}: map is empty")

    width = max(len(line) for line in lines)
    level = Level(name=name, tiles=[], events=EventLog(event_log_size))

    for y, line in enumerate(lines):
        row = [_parse_tile(level, char, Position(x, y)) for x, char in enumerate(line)]
        row.extend(Tile(base=Glyph.BLANK) for _ in range(width - len(row)))
        level.tiles.append(row)

    _resolve_pending(level)
    return level


def load_level(path: Path, event_log_size: int = EVENT_LOG_SIZE) -> Level:
    try:
        text = path.read_text()
    except OSError as e:
        raise LoadError(f"cannot read map {path}: {e}") from e
    return parse_level(Path(path.name).stem, text, event_log_size)


def load_levels(data_dir: Path, event_log_size: int = EVENT_LOG_SIZE) -> dict[str, Level]:
    """Load every ``*.map`` file in ``data_dir``, keyed by file stem."""
    try:
        entries = sorted(
            (p for p in data_dir.iterdir() if p.name.endswith(MAP_SUFFIX)),
            key=lambda p: p.name,
        )
    except OSError as e:
        raise LoadError(f"cannot list data directory {data_dir}: {e}") from e

    levels = {}
    for path in entries:
        level = load_level(path, event_log_size)
        levels[level.name] = level
    if not levels:
        raise LoadError(f"no {MAP_SUFFIX} files in {data_dir}")
    return levels


def _lookup_level(levels: dict[str, Level], name: str, row_number: int) -> Level:
    level = levels.get(name)
    if level is None:
        raise LoadError(f"world file row {row_number}: unknown level {name!r}")
    return level


def _parse_position(level: Level, x: str, y: str, row_number: int) -> Position:
    try:
        pos = Position(int(x), int(y))
    except ValueError as e:
        raise LoadError(f"world file row {row_number}: bad coordinate ({e})") from e
    if not level.in_range(pos):
        raise LoadError(
            f"world file row {row_number}: {pos.x},{pos.y} is outside {level.name}"
        )
    return pos


def parse_world_file(text: str, levels: dict[str, Level]) -> str:
    """Register portals on ``levels``. Returns the starting level's name."""
    try:
        rows = [
            row
            for row in csv.reader(io.StringIO(text), skipinitialspace=True)
            if any(field.strip() for field in row)
        ]
    except csv.Error as e:
        raise LoadError(f"world file is not valid CSV: {e}") from e
    if not rows:
        raise LoadError("world file is empty")

    start = _lookup_level(levels, rows[0][0].strip(), 1).name

    for row_number, row in enumerate(rows[1:], start=2):
        if len(row) != PORTAL_FIELDS:
            raise LoadError(
                f"world file row {row_number}: expected {PORTAL_FIELDS} fields, "
                f"got {len(row)}"
            )
        source_name, x, y, target_name, tx, ty = (field.strip() for field in row)
        source = _lookup_level(levels, source_name, row_number)
        target = _lookup_level(levels, target_name, row_number)
        pos = _parse_position(source, x, y, row_number)
        target_pos = _parse_position(target, tx, ty, row_number)
        source.portals[pos] = Portal(level=target.name, pos=target_pos)

    return start


def load_world(
    data_dir: Path,
    world_file: str = WORLD_FILE,
    event_log_size: int = EVENT_LOG_SIZE,
) -> World:
    """Load all levels and portals from ``data_dir`` and place the player."""
    levels = load_levels(data_dir, event_log_size)

    world_path = data_dir / world_file
    try:
        text = world_path.read_text()
    except OSError as e:
        raise LoadError(f"cannot read world file {world_path}: {e}") from e
    start = parse_world_file(text, levels)

    level = levels[start]
    if level.player_start is None:
        raise LoadError(f"{start}: starting level has no player start ({PLAYER_GLYPH})")

    player = new_player(level.player_start)
    level.player = player
    recompute_visibility(level)

    logger.info(
        "world_loaded",
        levels=len(levels),
        portals=sum(len(lv.portals) for lv in levels.values()),
        monsters=sum(len(lv.monsters) for lv in levels.values()),
        start=start,
    )
    return World(levels=levels, current=start, player=player)

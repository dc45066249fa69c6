"""Data structures for the dungeon: tiles, characters, levels and the world.

Levels are built once by the loader and afterwards mutated only by the
turn engine (movement, combat, visibility).
"""

from dataclasses import dataclass, field
from enum import Enum


@dataclass(frozen=True)
class Position:
    """A grid coordinate."""

    x: int
    y: int

    def offset(self, dx: int, dy: int) -> "Position":
        return Position(self.x + dx, self.y + dy)


class Glyph(str, Enum):
    """Terrain and furniture symbols."""

    STONE_WALL = "#"
    DIRT_FLOOR = "."
    CLOSED_DOOR = "|"
    OPEN_DOOR = "/"
    UP_STAIR = "u"
    DOWN_STAIR = "d"
    BLANK = " "
    PENDING = "?"  # only exists while a level is being loaded


@dataclass
class Tile:
    """One map cell: immutable terrain plus mutable overlay and sight flags."""

    base: Glyph
    overlay: Glyph = Glyph.BLANK
    visible: bool = False
    seen: bool = False


class Role(Enum):
    PLAYER = "player"
    MONSTER = "monster"


@dataclass
class Character:
    """Stats shared by the player and monsters."""

    name: str
    glyph: str
    pos: Position
    role: Role
    hp: int
    strength: int
    speed: float
    ap: float = 0.0
    sight_range: int = 0

    @property
    def is_alive(self) -> bool:
        return self.hp > 0


@dataclass(frozen=True)
class Portal:
    """Destination of a one-directional link: a level name and a position."""

    level: str
    pos: Position


class EventKind(Enum):
    """What happened last on a level, for client feedback (sound, animation)."""

    NONE = "none"
    MOVE = "move"
    DOOR_OPEN = "door_open"
    ATTACK = "attack"
    HIT = "hit"
    PORTAL = "portal"


class EventLog:
    """Fixed-capacity circular log of event lines."""

    def __init__(self, capacity: int = 10):
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self._lines: list[str] = [""] * capacity
        self._cursor = 0

    @property
    def capacity(self) -> int:
        return len(self._lines)

    @property
    def cursor(self) -> int:
        """Index of the slot the next line will be written to."""
        return self._cursor

    @property
    def slots(self) -> tuple[str, ...]:
        """Raw ring contents in storage order."""
        return tuple(self._lines)

    def add(self, line: str) -> None:
        self._lines[self._cursor] = line
        self._cursor = (self._cursor + 1) % len(self._lines)

    def __iter__(self):
        """Yield written lines oldest first."""
        ordered = self._lines[self._cursor:] + self._lines[: self._cursor]
        return (line for line in ordered if line)

    def __len__(self) -> int:
        return sum(1 for line in self._lines if line)


@dataclass
class Level:
    """A single map with its occupants."""

    name: str
    tiles: list[list[Tile]]
    player: Character | None = None
    monsters: dict[Position, Character] = field(default_factory=dict)
    portals: dict[Position, Portal] = field(default_factory=dict)
    events: EventLog = field(default_factory=EventLog)
    last_event: EventKind = EventKind.NONE
    player_start: Position | None = None

    @property
    def width(self) -> int:
        return len(self.tiles[0]) if self.tiles else 0

    @property
    def height(self) -> int:
        return len(self.tiles)

    def in_range(self, pos: Position) -> bool:
        return 0 <= pos.x < self.width and 0 <= pos.y < self.height

    def tile(self, pos: Position) -> Tile:
        return self.tiles[pos.y][pos.x]

    def can_see_through(self, pos: Position) -> bool:
        """Whether light passes through ``pos``. Monsters never block sight."""
        if not self.in_range(pos):
            return False
        t = self.tile(pos)
        if t.base in (Glyph.STONE_WALL, Glyph.BLANK):
            return False
        return t.overlay != Glyph.CLOSED_DOOR

    def can_walk(self, pos: Position) -> bool:
        return self.can_see_through(pos) and pos not in self.monsters

    def clear_visible(self) -> None:
        for row in self.tiles:
            for t in row:
                t.visible = False

    def add_event(self, line: str) -> None:
        self.events.add(line)

    def place_monster(self, monster: Character) -> None:
        if monster.pos in self.monsters:
            raise ValueError(f"tile {monster.pos} already holds a monster")
        self.monsters[monster.pos] = monster

    def relocate_monster(self, monster: Character, to: Position) -> None:
        """Move a monster and its map key together."""
        del self.monsters[monster.pos]
        monster.pos = to
        self.monsters[to] = monster

    def remove_monster(self, monster: Character) -> None:
        self.monsters.pop(monster.pos, None)


@dataclass
class World:
    """All levels, linked by portals, and the level the player is on."""

    levels: dict[str, Level]
    current: str
    player: Character

    @property
    def current_level(self) -> Level:
        return self.levels[self.current]

"""Starting stats for the player and the monster bestiary.

Map files place monsters by glyph; the glyph picks the template below.
"""

from dataclasses import dataclass

from .world import Character, Position, Role

PLAYER_NAME = "Dralanor"
PLAYER_GLYPH = "@"
PLAYER_HP = 20
PLAYER_STRENGTH = 20
PLAYER_SPEED = 1.0
PLAYER_SIGHT_RANGE = 7

# Capacity of each level's event log
EVENT_LOG_SIZE = 10


@dataclass(frozen=True)
class MonsterTemplate:
    name: str
    hp: int
    strength: int
    speed: float


BESTIARY: dict[str, MonsterTemplate] = {
    "R": MonsterTemplate(name="Rat", hp=50, strength=5, speed=2.0),
    "S": MonsterTemplate(name="Spider", hp=100, strength=10, speed=1.0),
}


def new_player(pos: Position) -> Character:
    return Character(
        name=PLAYER_NAME,
        glyph=PLAYER_GLYPH,
        pos=pos,
        role=Role.PLAYER,
        hp=PLAYER_HP,
        strength=PLAYER_STRENGTH,
        speed=PLAYER_SPEED,
        sight_range=PLAYER_SIGHT_RANGE,
    )


def new_monster(glyph: str, pos: Position) -> Character:
    """Create a monster from its map glyph. Raises KeyError for unknown glyphs."""
    template = BESTIARY[glyph]
    return Character(
        name=template.name,
        glyph=glyph,
        pos=pos,
        role=Role.MONSTER,
        hp=template.hp,
        strength=template.strength,
        speed=template.speed,
    )

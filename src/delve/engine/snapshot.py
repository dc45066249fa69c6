"""Immutable views of a level, handed to display clients.

A snapshot is taken once per broadcast and shared by every client. Later
turns mutate the live level, never a snapshot that is already out.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType

from .world import Character, EventKind, Glyph, Level, Position


@dataclass(frozen=True)
class TileView:
    base: Glyph
    overlay: Glyph
    visible: bool
    seen: bool


@dataclass(frozen=True)
class CharacterView:
    name: str
    glyph: str
    pos: Position
    hp: int
    strength: int

    @classmethod
    def of(cls, character: Character) -> "CharacterView":
        return cls(
            name=character.name,
            glyph=character.glyph,
            pos=character.pos,
            hp=character.hp,
            strength=character.strength,
        )


@dataclass(frozen=True)
class LevelView:
    """Everything a renderer needs to draw one frame."""

    name: str
    turn: int
    tiles: tuple[tuple[TileView, ...], ...]
    player: CharacterView | None
    monsters: Mapping[Position, CharacterView]
    events: tuple[str, ...]
    event_slots: tuple[str, ...]
    event_cursor: int
    last_event: EventKind

    def tile(self, pos: Position) -> TileView:
        return self.tiles[pos.y][pos.x]


def snapshot(level: Level, turn: int = 0) -> LevelView:
    tiles = tuple(
        tuple(TileView(t.base, t.overlay, t.visible, t.seen) for t in row)
        for row in level.tiles
    )
    monsters = {pos: CharacterView.of(m) for pos, m in level.monsters.items()}
    return LevelView(
        name=level.name,
        turn=turn,
        tiles=tiles,
        player=CharacterView.of(level.player) if level.player else None,
        monsters=MappingProxyType(monsters),
        events=tuple(level.events),
        event_slots=level.events.slots,
        event_cursor=level.events.cursor,
        last_event=level.last_event,
    )

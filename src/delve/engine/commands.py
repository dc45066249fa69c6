"""Player input and its effect on the world.

handle_input(world, input) is the main entry point. It resolves the
player's action on the current level, following portals to other levels,
and reports whether a turn passed so the caller can let monsters act.
"""

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from ..logging import get_logger
from .combat import player_attack
from .visibility import recompute_visibility
from .world import EventKind, Glyph, Level, Position, World

if TYPE_CHECKING:
    from ..session import ClientChannel

logger = get_logger(__name__)


class InputType(Enum):
    NONE = "none"
    UP = "up"
    DOWN = "down"
    LEFT = "left"
    RIGHT = "right"
    SEARCH = "search"
    QUIT_GAME = "quit_game"
    CLOSE_WINDOW = "close_window"


@dataclass(frozen=True)
class Input:
    """A request from a client. ``channel`` is only set for CLOSE_WINDOW."""

    type: InputType
    channel: "ClientChannel | None" = None


DIRECTIONS: dict[InputType, tuple[int, int]] = {
    InputType.UP: (0, -1),
    InputType.DOWN: (0, 1),
    InputType.LEFT: (-1, 0),
    InputType.RIGHT: (1, 0),
}

# Inputs that advance the game by one turn
TURN_INPUTS = frozenset(DIRECTIONS) | {InputType.SEARCH}


def open_door(level: Level, pos: Position) -> bool:
    """Open a closed door at ``pos``. Returns False if there is none."""
    t = level.tile(pos)
    if t.overlay != Glyph.CLOSED_DOOR:
        return False
    t.overlay = Glyph.OPEN_DOOR
    level.last_event = EventKind.DOOR_OPEN
    recompute_visibility(level)
    logger.debug("door_opened", level=level.name, pos=pos)
    return True


def _take_portal(world: World, level: Level, to: Position) -> None:
    portal = level.portals[to]
    target = world.levels[portal.level]
    if portal.pos in target.monsters:
        level.add_event("Something blocks the way")
        logger.debug("portal_blocked", level=level.name, pos=to, target=portal.level)
        return

    player = level.player
    level.player = None
    player.pos = portal.pos
    target.player = player
    world.current = target.name
    target.last_event = EventKind.PORTAL
    recompute_visibility(target)
    logger.info(
        "level_changed",
        source=level.name,
        target=target.name,
        pos=portal.pos,
    )


def move(world: World, to: Position) -> None:
    """Move the player to ``to`` on the current level, following portals."""
    level = world.current_level
    if to in level.portals:
        _take_portal(world, level, to)
        return

    level.player.pos = to
    level.last_event = EventKind.MOVE
    recompute_visibility(level)


def resolve_movement(world: World, pos: Position) -> None:
    """Attack, walk, or open a door at ``pos``, whichever applies."""
    level = world.current_level
    monster = level.monsters.get(pos)
    if monster is not None:
        player_attack(level, monster)
    elif level.can_walk(pos):
        move(world, pos)
    elif level.in_range(pos):
        open_door(level, pos)


def handle_input(world: World, player_input: Input) -> bool:
    """Apply a turn-taking input. Returns True when a turn was spent."""
    if player_input.type not in TURN_INPUTS:
        return False

    level = world.current_level
    level.last_event = EventKind.NONE

    offset = DIRECTIONS.get(player_input.type)
    if offset is not None:
        resolve_movement(world, level.player.pos.offset(*offset))
    return True

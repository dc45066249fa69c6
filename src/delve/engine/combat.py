"""Attack resolution and monster turns.

Damage is subtractive and deterministic: the defender loses exactly the
attacker's strength. A monster at zero HP or below leaves the level; the
player at zero HP or below ends the game via ``PlayerDied``.
"""

from ..logging import get_logger
from .pathfinding import astar
from .world import Character, EventKind, Level, Role

logger = get_logger(__name__)


class PlayerDied(Exception):
    """The player's HP dropped to zero or below. Not recoverable."""

    def __init__(self, player: Character, killer: Character):
        super().__init__(f"{player.name} was killed by {killer.name}")
        self.player = player
        self.killer = killer


def attack(level: Level, attacker: Character, defender: Character) -> None:
    attacker.ap -= 1
    damage = attacker.strength
    defender.hp -= damage

    if defender.hp > 0:
        level.add_event(f"{attacker.name} attacked {defender.name} for {damage}")
    else:
        level.add_event(f"{attacker.name} killed {defender.name}")

    if defender.role is Role.PLAYER:
        level.last_event = EventKind.HIT
    else:
        level.last_event = EventKind.ATTACK

    logger.debug(
        "attack",
        attacker=attacker.name,
        defender=defender.name,
        damage=damage,
        defender_hp=defender.hp,
    )


def player_attack(level: Level, monster: Character) -> None:
    """The player swings at ``monster``; a dead monster is removed."""
    attack(level, level.player, monster)
    if not monster.is_alive:
        level.remove_monster(monster)
        logger.info("monster_killed", monster=monster.name, pos=monster.pos)


def update_monster(level: Level, monster: Character) -> None:
    """Give one monster its turn: accrue AP, chase the player, maybe attack."""
    player = level.player
    monster.ap += monster.speed
    path = astar(level, monster.pos, player.pos)

    if not path:
        # Nothing reachable: forfeit this turn's accrual.
        monster.ap -= monster.speed
        logger.debug("monster_passed", monster=monster.name, pos=monster.pos)
        return

    for step in path[1:]:
        if monster.ap < 1:
            break
        if step == player.pos:
            attack(level, monster, player)
            if not player.is_alive:
                logger.info("player_killed", killer=monster.name, hp=player.hp)
                raise PlayerDied(player, monster)
            break
        if step in level.monsters:
            break
        level.relocate_monster(monster, step)
        monster.ap -= 1


def update_monsters(level: Level) -> None:
    """Run every monster on the level once, in map order."""
    for monster in list(level.monsters.values()):
        if level.monsters.get(monster.pos) is monster:
            update_monster(level, monster)

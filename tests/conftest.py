"""Shared test fixtures for delve."""

import pytest

from delve.app import _get_data_path
from delve.engine.loader import load_world, parse_level
from delve.engine.state import new_player
from delve.engine.visibility import recompute_visibility
from delve.engine.world import Level, World


@pytest.fixture
def world() -> World:
    return load_world(_get_data_path())


@pytest.fixture
def make_level():
    """Build a level from map rows; an ``@`` row places the player."""

    def _make(*rows: str, name: str = "test", sight_range: int | None = None) -> Level:
        level = parse_level(name, "\n".join(rows))
        if level.player_start is not None:
            level.player = new_player(level.player_start)
            if sight_range is not None:
                level.player.sight_range = sight_range
            recompute_visibility(level)
        return level

    return _make


@pytest.fixture
def make_world():
    """Wrap levels in a World; the first level hosts the player."""

    def _make(*levels: Level) -> World:
        first = levels[0]
        return World(
            levels={level.name: level for level in levels},
            current=first.name,
            player=first.player,
        )

    return _make

"""Tests for the turn engine and snapshot broadcast."""

import asyncio

import pytest

from delve.engine.commands import Input, InputType
from delve.engine.world import Position
from delve.session import (
    BroadcastPolicy,
    ChannelClosed,
    ClientChannel,
    EngineState,
    GameSession,
    Outcome,
)


def _corridor_session(make_level, make_world, **kwargs) -> GameSession:
    level = make_level("#######", "#@....#", "#######")
    return GameSession(make_world(level), **kwargs)


def test_quit_stops_without_broadcast(make_level, make_world):
    session = _corridor_session(make_level, make_world)

    async def scenario():
        channel = session.open_channel()
        await session.submit(Input(InputType.QUIT_GAME))
        outcome = await session.run()
        return outcome, channel

    outcome, channel = asyncio.run(scenario())

    assert outcome is Outcome.QUIT
    assert session.state is EngineState.TERMINATED
    assert channel.sent == 1
    assert channel.closed
    assert [view.turn for view in channel.drain()] == [0]


def test_every_client_sees_every_turn_in_order(make_level, make_world):
    session = _corridor_session(make_level, make_world, channel_size=8)

    async def scenario():
        first = session.open_channel("first")
        second = session.open_channel("second")
        for input_type in (InputType.RIGHT, InputType.SEARCH, InputType.QUIT_GAME):
            session.submit_nowait(Input(input_type))
        await session.run()
        return first.drain(), second.drain()

    first, second = asyncio.run(scenario())

    assert [view.turn for view in first] == [0, 1, 2]
    assert [view.turn for view in second] == [0, 1, 2]
    assert all(a is b for a, b in zip(first, second))
    assert first[0].player.pos == Position(1, 1)
    assert first[1].player.pos == Position(2, 1)


def test_blocking_broadcast_waits_for_slow_client(make_level, make_world):
    """With a one-slot queue the engine waits for the client to catch up."""
    session = _corridor_session(make_level, make_world, channel_size=1)

    async def scenario():
        channel = session.open_channel()
        received = []

        async def slow_client():
            async for view in channel:
                received.append(view.turn)
                await asyncio.sleep(0.01)

        client = asyncio.create_task(slow_client())
        for _ in range(3):
            session.submit_nowait(Input(InputType.RIGHT))
        session.submit_nowait(Input(InputType.QUIT_GAME))
        await session.run()
        await client
        return received, channel

    received, channel = asyncio.run(scenario())
    assert received == [0, 1, 2, 3]
    assert channel.dropped == 0


def test_drop_oldest_never_waits(make_level, make_world):
    session = _corridor_session(
        make_level, make_world, policy=BroadcastPolicy.DROP_OLDEST, channel_size=1
    )

    async def scenario():
        channel = session.open_channel()
        for _ in range(3):
            session.submit_nowait(Input(InputType.SEARCH))
        session.submit_nowait(Input(InputType.QUIT_GAME))
        outcome = await session.run()
        return outcome, channel

    outcome, channel = asyncio.run(scenario())
    assert outcome is Outcome.QUIT
    assert channel.sent == 4
    assert channel.dropped == 3
    assert [view.turn for view in channel.drain()] == [3]


def test_closing_last_window_ends_session(make_level, make_world):
    session = _corridor_session(make_level, make_world)

    async def scenario():
        channel = session.open_channel()
        session.submit_nowait(Input(InputType.CLOSE_WINDOW, channel))
        session.submit_nowait(Input(InputType.RIGHT))
        outcome = await session.run()
        return outcome, channel

    outcome, channel = asyncio.run(scenario())

    assert outcome is Outcome.NO_CLIENTS
    assert channel.closed
    assert channel.sent == 1
    assert session.channels == []
    assert session.turn == 0


def test_closing_one_window_keeps_others(make_level, make_world):
    session = _corridor_session(make_level, make_world, channel_size=8)

    async def scenario():
        first = session.open_channel("first")
        second = session.open_channel("second")
        session.submit_nowait(Input(InputType.CLOSE_WINDOW, first))
        session.submit_nowait(Input(InputType.RIGHT))
        session.submit_nowait(Input(InputType.QUIT_GAME))
        outcome = await session.run()
        return outcome, first, second

    outcome, first, second = asyncio.run(scenario())
    assert outcome is Outcome.QUIT
    assert first.sent == 1
    assert second.sent == 2
    assert session.channels == [second]


def test_none_input_is_ignored(make_level, make_world):
    session = _corridor_session(make_level, make_world, channel_size=8)

    async def scenario():
        channel = session.open_channel()
        session.submit_nowait(Input(InputType.NONE))
        session.submit_nowait(Input(InputType.QUIT_GAME))
        await session.run()
        return channel

    channel = asyncio.run(scenario())
    assert channel.sent == 1
    assert session.turn == 0


def test_player_death_ends_session(make_level, make_world):
    level = make_level("#####", "#@S.#", "#####")
    level.monsters[Position(2, 1)].strength = 25
    session = GameSession(make_world(level), channel_size=8)

    async def scenario():
        channel = session.open_channel()
        session.submit_nowait(Input(InputType.SEARCH))
        session.submit_nowait(Input(InputType.SEARCH))
        outcome = await session.run()
        return outcome, channel

    outcome, channel = asyncio.run(scenario())
    assert outcome is Outcome.PLAYER_DIED
    assert session.world.player.hp == -5
    assert channel.sent == 1
    assert channel.closed


def test_no_clients_at_start(make_level, make_world):
    session = _corridor_session(make_level, make_world)
    assert asyncio.run(session.run()) is Outcome.NO_CLIENTS
    assert session.state is EngineState.TERMINATED


def test_monsters_act_after_player(make_level, make_world):
    level = make_level("#######", "#@...R#", "#######")
    session = GameSession(make_world(level), channel_size=8)

    async def scenario():
        channel = session.open_channel()
        session.submit_nowait(Input(InputType.SEARCH))
        session.submit_nowait(Input(InputType.QUIT_GAME))
        await session.run()
        return channel.drain()

    views = asyncio.run(scenario())
    assert set(views[0].monsters) == {Position(5, 1)}
    assert set(views[1].monsters) == {Position(3, 1)}


def test_closed_channel_rejects_frames():
    channel = ClientChannel("gone")
    channel.close()
    with pytest.raises(ChannelClosed):
        channel.offer(object())
    assert asyncio.run(channel.receive()) is None


def test_close_wakes_waiting_reader():
    async def scenario():
        channel = ClientChannel("reader")
        reader = asyncio.create_task(channel.receive())
        await asyncio.sleep(0)
        channel.close()
        return await reader

    assert asyncio.run(scenario()) is None


def test_channel_size_must_be_positive():
    with pytest.raises(ValueError):
        ClientChannel("bad", maxsize=0)


def test_channel_closed_by_its_client_is_dropped(make_level, make_world):
    """A channel the client closed itself is unregistered, not sent to."""
    session = _corridor_session(make_level, make_world, channel_size=8)

    async def scenario():
        first = session.open_channel("first")
        second = session.open_channel("second")
        first.close()
        session.submit_nowait(Input(InputType.RIGHT))
        session.submit_nowait(Input(InputType.CLOSE_WINDOW, first))
        session.submit_nowait(Input(InputType.QUIT_GAME))
        outcome = await session.run()
        return outcome, first, second

    outcome, first, second = asyncio.run(scenario())
    assert outcome is Outcome.QUIT
    assert session.state is EngineState.TERMINATED
    assert first.sent == 0
    assert second.sent == 2
    assert second.closed
    assert session.channels == [second]


def test_all_channels_closed_by_clients(make_level, make_world):
    session = _corridor_session(make_level, make_world)

    async def scenario():
        channel = session.open_channel()
        channel.close()
        session.submit_nowait(Input(InputType.RIGHT))
        return await session.run()

    assert asyncio.run(scenario()) is Outcome.NO_CLIENTS
    assert session.state is EngineState.TERMINATED
    assert session.turn == 0


def test_unexpected_error_still_terminates(make_level, make_world, monkeypatch):
    session = _corridor_session(make_level, make_world, channel_size=8)

    def broken(world, player_input):
        raise RuntimeError("boom")

    monkeypatch.setattr("delve.session.handle_input", broken)

    opened = []

    async def scenario():
        opened.append(session.open_channel())
        session.submit_nowait(Input(InputType.RIGHT))
        await session.run()

    with pytest.raises(RuntimeError, match="boom"):
        asyncio.run(scenario())
    assert session.state is EngineState.TERMINATED
    assert opened[0].closed

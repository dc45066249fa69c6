"""Turn engine: the single owner of the world, fanning snapshots out to clients.

One coroutine (GameSession.run) dequeues inputs, mutates the world, and
broadcasts a LevelView to every open client channel after each turn.
Clients never touch the world; they read snapshots from their channel and
put Input values on the shared input queue.
"""

import asyncio
from enum import Enum

from .engine.combat import PlayerDied, update_monsters
from .engine.commands import Input, InputType, handle_input
from .engine.snapshot import LevelView, snapshot
from .engine.world import World
from .logging import get_logger

logger = get_logger(__name__)


class EngineState(Enum):
    IDLE = "idle"
    AWAIT_INPUT = "await_input"
    RESOLVE = "resolve"
    BROADCAST = "broadcast"
    TERMINATED = "terminated"


class Outcome(Enum):
    QUIT = "quit"
    NO_CLIENTS = "no_clients"
    PLAYER_DIED = "player_died"


class BroadcastPolicy(Enum):
    """What the engine does when a client's queue is full.

    BLOCK waits for the client, so the slowest client sets the pace for
    everyone. DROP_OLDEST never waits: the oldest unread frame is discarded
    to make room for the newest.
    """

    BLOCK = "block"
    DROP_OLDEST = "drop_oldest"


class ChannelClosed(Exception):
    """A snapshot was sent on a channel that has been closed."""


_CLOSED = object()


class ClientChannel:
    """Bounded, ordered stream of snapshots for one display client."""

    def __init__(self, name: str, maxsize: int = 1):
        if maxsize < 1:
            raise ValueError("maxsize must be at least 1")
        self.name = name
        self.closed = False
        self.sent = 0
        self.dropped = 0
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)

    def __repr__(self) -> str:
        return f"ClientChannel({self.name!r}, closed={self.closed})"

    async def send(self, view: LevelView) -> None:
        """Queue a snapshot, waiting while the client is behind."""
        if self.closed:
            raise ChannelClosed(self.name)
        await self._queue.put(view)
        self.sent += 1

    def offer(self, view: LevelView) -> None:
        """Queue a snapshot without waiting, evicting the oldest if full."""
        if self.closed:
            raise ChannelClosed(self.name)
        if self._queue.full():
            self._queue.get_nowait()
            self.dropped += 1
        self._queue.put_nowait(view)
        self.sent += 1

    def close(self) -> None:
        """Mark the channel closed. Frames already queued stay readable."""
        if self.closed:
            return
        self.closed = True
        if self._queue.empty():
            # Wakes a reader that is waiting on an empty queue.
            self._queue.put_nowait(_CLOSED)

    async def receive(self) -> LevelView | None:
        """Next snapshot, or None once the channel is closed and drained."""
        if self.closed and self._queue.empty():
            return None
        item = await self._queue.get()
        if item is _CLOSED:
            return None
        return item

    def drain(self) -> list[LevelView]:
        """Take every queued snapshot without waiting."""
        views = []
        while not self._queue.empty():
            item = self._queue.get_nowait()
            if item is not _CLOSED:
                views.append(item)
        return views

    def __aiter__(self):
        return self

    async def __anext__(self) -> LevelView:
        view = await self.receive()
        if view is None:
            raise StopAsyncIteration
        return view


class GameSession:
    """Runs the game loop for one world and any number of display clients."""

    def __init__(
        self,
        world: World,
        policy: BroadcastPolicy = BroadcastPolicy.BLOCK,
        channel_size: int = 1,
    ):
        self.world = world
        self.policy = policy
        self.channel_size = channel_size
        self.inputs: asyncio.Queue[Input] = asyncio.Queue()
        self.channels: list[ClientChannel] = []
        self.state = EngineState.IDLE
        self.turn = 0

    def open_channel(self, name: str | None = None) -> ClientChannel:
        """Register a new client. Broadcasts go out in registration order."""
        channel = ClientChannel(
            name or f"client-{len(self.channels) + 1}", self.channel_size
        )
        self.channels.append(channel)
        logger.debug("channel_opened", channel=channel.name)
        return channel

    async def submit(self, player_input: Input) -> None:
        await self.inputs.put(player_input)

    def submit_nowait(self, player_input: Input) -> None:
        self.inputs.put_nowait(player_input)

    def _close_channel(self, channel: ClientChannel | None) -> None:
        if channel not in self.channels:
            logger.warning("close_unknown_channel", channel=repr(channel))
            return
        channel.close()
        self.channels.remove(channel)
        logger.info("channel_closed", channel=channel.name, remaining=len(self.channels))

    async def _broadcast(self) -> None:
        self.state = EngineState.BROADCAST
        view = snapshot(self.world.current_level, self.turn)
        for channel in list(self.channels):
            if channel.closed:
                # Closed by its client before the CLOSE_WINDOW arrived
                self._close_channel(channel)
                continue
            if self.policy is BroadcastPolicy.BLOCK:
                await channel.send(view)
            else:
                channel.offer(view)

    async def _loop(self) -> Outcome:
        while True:
            self.state = EngineState.AWAIT_INPUT
            player_input = await self.inputs.get()

            match player_input.type:
                case InputType.QUIT_GAME:
                    return Outcome.QUIT
                case InputType.CLOSE_WINDOW:
                    self._close_channel(player_input.channel)
                    if not self.channels:
                        return Outcome.NO_CLIENTS
                    continue

            self.state = EngineState.RESOLVE
            if not handle_input(self.world, player_input):
                continue
            update_monsters(self.world.current_level)
            self.turn += 1
            logger.debug(
                "turn_resolved",
                turn=self.turn,
                input=player_input.type.value,
                level=self.world.current,
                pos=self.world.player.pos,
            )

            await self._broadcast()
            if not self.channels:
                return Outcome.NO_CLIENTS

    async def run(self) -> Outcome:
        """Play until the game is quit, every client is gone, or the player dies."""
        logger.info("session_started", clients=len(self.channels), level=self.world.current)
        outcome = Outcome.NO_CLIENTS
        try:
            if self.channels:
                await self._broadcast()
            if self.channels:
                outcome = await self._loop()
        except PlayerDied as e:
            logger.info("player_died", killer=e.killer.name, turn=self.turn + 1)
            outcome = Outcome.PLAYER_DIED
        finally:
            self.state = EngineState.TERMINATED
            for channel in self.channels:
                channel.close()
        logger.info("session_terminated", outcome=outcome.value, turns=self.turn)
        return outcome

"""Plain-text display client.

Reads single-letter commands from stdin on a background thread and prints
each broadcast snapshot as rows of glyphs. Only meant for driving the
engine from a terminal.
"""

import asyncio
import sys
import threading
from typing import TextIO

from .engine.commands import Input, InputType
from .engine.snapshot import LevelView
from .engine.world import Glyph, Position
from .logging import get_logger
from .session import ClientChannel, GameSession, Outcome

logger = get_logger(__name__)

KEYMAP: dict[str, InputType] = {
    "w": InputType.UP,
    "s": InputType.DOWN,
    "a": InputType.LEFT,
    "d": InputType.RIGHT,
    ".": InputType.SEARCH,
    "q": InputType.QUIT_GAME,
    "x": InputType.CLOSE_WINDOW,
}

HELP = "w/a/s/d move, . wait, q quit, x close window"


def render(view: LevelView) -> str:
    """Draw a snapshot. Unseen tiles are blank; remembered tiles show terrain only."""
    rows = []
    for y, row in enumerate(view.tiles):
        chars = []
        for x, t in enumerate(row):
            pos = Position(x, y)
            if not t.seen:
                chars.append(" ")
            elif t.visible and view.player and view.player.pos == pos:
                chars.append(view.player.glyph)
            elif t.visible and pos in view.monsters:
                chars.append(view.monsters[pos].glyph)
            elif t.overlay != Glyph.BLANK:
                chars.append(t.overlay.value)
            else:
                chars.append(t.base.value)
        rows.append("".join(chars).rstrip())

    status = f"[{view.name}] turn {view.turn}"
    if view.player:
        status += f"  {view.player.name} HP {view.player.hp}"
    lines = rows + ["", status]
    lines.extend(f"  {event}" for event in view.events)
    return "\n".join(lines) + "\n"


def _parse_line(line: str, channel: ClientChannel) -> list[Input]:
    inputs = []
    for char in line.strip().lower():
        input_type = KEYMAP.get(char)
        if input_type is InputType.CLOSE_WINDOW:
            inputs.append(Input(input_type, channel))
        elif input_type is not None:
            inputs.append(Input(input_type))
    return inputs


def _read_keys(
    loop: asyncio.AbstractEventLoop,
    session: GameSession,
    channel: ClientChannel,
    stream: TextIO,
) -> None:
    try:
        for line in stream:
            for player_input in _parse_line(line, channel):
                loop.call_soon_threadsafe(session.submit_nowait, player_input)
                if player_input.type in (InputType.QUIT_GAME, InputType.CLOSE_WINDOW):
                    return
        loop.call_soon_threadsafe(session.submit_nowait, Input(InputType.QUIT_GAME))
    except RuntimeError:
        # Event loop already closed: the game ended first.
        logger.debug("input_reader_stopped")


async def display(channel: ClientChannel, out: TextIO) -> int:
    """Print every snapshot until the channel closes. Returns frames shown."""
    frames = 0
    async for view in channel:
        out.write(render(view))
        out.flush()
        frames += 1
    return frames


async def play(
    session: GameSession,
    stdin: TextIO = sys.stdin,
    stdout: TextIO = sys.stdout,
) -> Outcome:
    """Attach a console client to ``session`` and run the game."""
    channel = session.open_channel("console")
    stdout.write(HELP + "\n")

    loop = asyncio.get_running_loop()
    reader = threading.Thread(
        target=_read_keys, args=(loop, session, channel, stdin), daemon=True
    )
    reader.start()

    display_task = asyncio.create_task(display(channel, stdout))
    outcome = await session.run()
    await display_task

    if outcome is Outcome.PLAYER_DIED:
        stdout.write("You died.\n")
    return outcome

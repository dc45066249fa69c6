"""Session factory: load a world and build the turn engine around it."""

from importlib import resources
from pathlib import Path

from .config import Config
from .engine.loader import load_world
from .logging import get_logger
from .session import BroadcastPolicy, GameSession

logger = get_logger(__name__)


def _get_data_path() -> Path:
    """Locate the sample world via importlib.resources (works when installed)."""
    return resources.files("delve").joinpath("data")


def create_session(config: Config | None = None) -> GameSession:
    """Load the configured world and wrap it in a GameSession."""
    config = config or Config.from_env()

    data_dir = config.data_dir or _get_data_path()
    world = load_world(
        data_dir,
        world_file=config.world_file,
        event_log_size=config.event_log_size,
    )

    session = GameSession(
        world,
        policy=BroadcastPolicy(config.broadcast_policy),
        channel_size=config.channel_size,
    )
    logger.debug(
        "session_created",
        data_dir=str(data_dir),
        policy=session.policy.value,
        channel_size=config.channel_size,
    )
    return session

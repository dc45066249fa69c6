"""Tile-based dungeon simulation engine."""

import asyncio

from .app import create_session
from .config import Config
from .engine.loader import LoadError
from .logging import configure_logging, get_logger

__all__ = ["main", "create_session", "Config"]


def main() -> None:
    """Entry point: play the configured world in the terminal."""
    from .console import play

    try:
        config = Config.from_env()
    except ValueError as e:
        configure_logging()
        get_logger(__name__).error("config_invalid", error=str(e))
        raise SystemExit(1) from e

    configure_logging(
        log_level=config.log_level,
        log_file=config.log_file,
        json_logs=config.json_logs,
    )

    logger = get_logger(__name__)
    logger.info(
        "application_starting",
        data_dir=str(config.data_dir or "<packaged>"),
        policy=config.broadcast_policy,
        log_level=config.log_level,
    )

    try:
        session = create_session(config)
    except LoadError as e:
        logger.error("world_load_failed", error=str(e))
        raise SystemExit(1) from e
    except ValueError as e:
        logger.error("config_invalid", error=str(e))
        raise SystemExit(1) from e

    outcome = asyncio.run(play(session))
    logger.info("application_stopped", outcome=outcome.value)

"""Configuration for delve."""

import os
from dataclasses import dataclass
from pathlib import Path

from .engine.loader import WORLD_FILE
from .engine.state import EVENT_LOG_SIZE
from .session import BroadcastPolicy


@dataclass
class Config:
    """Engine configuration."""

    data_dir: Path | None = None  # None: the sample world shipped with the package
    world_file: str = WORLD_FILE
    event_log_size: int = EVENT_LOG_SIZE
    broadcast_policy: str = "block"
    channel_size: int = 1
    log_level: str = "INFO"
    log_file: Path | None = None
    json_logs: bool = False

    @classmethod
    def from_env(cls) -> "Config":
        """Load configuration from environment variables.

        Raises ValueError for an unknown broadcast policy or a non-numeric size.
        """
        data_dir = os.getenv("DELVE_DATA_DIR")
        log_file = os.getenv("DELVE_LOG_FILE")
        broadcast_policy = os.getenv("DELVE_BROADCAST_POLICY", cls.broadcast_policy)
        allowed = [policy.value for policy in BroadcastPolicy]
        if broadcast_policy not in allowed:
            raise ValueError(
                f"DELVE_BROADCAST_POLICY must be one of {allowed}, got {broadcast_policy!r}"
            )

        return cls(
            data_dir=Path(data_dir) if data_dir else None,
            world_file=os.getenv("DELVE_WORLD_FILE", cls.world_file),
            event_log_size=int(
                os.getenv("DELVE_EVENT_LOG_SIZE", str(cls.event_log_size))
            ),
            broadcast_policy=broadcast_policy,
            channel_size=int(os.getenv("DELVE_CHANNEL_SIZE", str(cls.channel_size))),
            log_level=os.getenv("DELVE_LOG_LEVEL", cls.log_level),
            log_file=Path(log_file) if log_file else None,
            json_logs=os.getenv("DELVE_JSON_LOGS", "").lower()
            in ("true", "1", "yes"),
        )

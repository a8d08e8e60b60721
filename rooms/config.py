"""
Room engine tunables.

Values come from the environment (prefix `ROOMS_`) or a `.env` file.
Django settings stay in `studyroom.settings`; this class only covers the
realtime protocol.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class RoomSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="ROOMS_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        extra="ignore",
    )

    # How many messages a joining connection receives (most recent first, sent ascending).
    HISTORY_LIMIT: int = 200
    # Upper bound on the history read; on timeout the join gets an empty list.
    HISTORY_TIMEOUT_SECONDS: float = 5.0
    # Store liveness probe deadline; a slower answer counts as unavailable.
    PROBE_TIMEOUT_SECONDS: float = 2.0
    # react/pin/delete failures are logged only (False: also reported to the sender).
    SILENT_BEST_EFFORT: bool = True
    # Use the store's atomic increment for reactions (False: read-increment-write).
    ATOMIC_REACTIONS: bool = True
    # Leave every other room before joining a new one.
    AUTO_LEAVE_ON_JOIN: bool = False


def get_room_settings() -> RoomSettings:
    return RoomSettings()

"""Runtime configuration: env-driven via pydantic-settings.

Reads from a .env file and WALLSYNC_* environment variables.
"""

from __future__ import annotations

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

from wallsync.models.api import ApiVersion


class WallSyncConfig(BaseSettings):
    """Synchronizer configuration with environment variable overrides.

    Examples
    --------
    Override via environment::

        export WALLSYNC_SERVER_URL=https://ci.example.org
        export WALLSYNC_API_VERSION=8.0
        export WALLSYNC_LOG_LEVEL=DEBUG

    Or via .env file::

        WALLSYNC_USERNAME=wall
        WALLSYNC_PASSWORD=secret
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="WALLSYNC_",
        env_file_encoding="utf-8",
    )

    # Runtime environment
    environment: str = "development"
    log_level: str = "INFO"

    # Remote server
    server_url: str = "http://localhost:8111"
    username: str = ""
    password: str = ""
    api_version: ApiVersion = ApiVersion.API_8_1
    request_timeout_seconds: float = 30.0

    # Worker pool
    max_workers: int = 8

    # Poll cadence
    status_poll_seconds: float = 10.0
    queue_poll_seconds: float = 10.0
    catalog_poll_seconds: float = 300.0

    # Monitored-list seed
    seed_path: Path = Path(".wallsync/monitored.json")

    @property
    def uses_credentials(self) -> bool:
        """Whether requests should authenticate instead of using guest access."""
        return bool(self.username)


# Module-level singleton; import as `from wallsync.config import config`
config = WallSyncConfig()

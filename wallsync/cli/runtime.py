"""Shared helpers for CLI commands: logging setup, config overrides, engine construction."""

from __future__ import annotations

import logging
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

from wallsync.config import WallSyncConfig, config
from wallsync.core.engine import SynchronizationEngine
from wallsync.models.api import ApiVersion
from wallsync.seed import MonitoredSeed


def configure_logging(level: str, console: Console | None = None) -> None:
    """Send log records through a Rich handler on stderr at *level*."""
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[
            RichHandler(
                console=console or Console(stderr=True),
                rich_tracebacks=True,
                show_path=False,
            )
        ],
        force=True,
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


def resolve_config(
    server: str | None = None,
    api_version: ApiVersion | None = None,
    seed_path: Path | None = None,
    base: WallSyncConfig | None = None,
) -> WallSyncConfig:
    """Return *base* (the process config by default) with CLI overrides applied."""
    base = base or config
    update: dict[str, object] = {}
    if server:
        update["server_url"] = server
    if api_version is not None:
        update["api_version"] = api_version
    if seed_path is not None:
        update["seed_path"] = seed_path
    return base.model_copy(update=update) if update else base


def make_engine(cfg: WallSyncConfig, seed: MonitoredSeed | None = None) -> SynchronizationEngine:
    """Build the engine a command runs against."""
    return SynchronizationEngine.from_config(cfg, seed=seed)

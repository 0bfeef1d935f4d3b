"""``wallsync watch``: keep polling the CI server and show a live wall.

Starts the polling scheduler and re-renders the wall whenever the engine
publishes a change.  With ``--persist`` the monitored subsets are written
back to the seed after every catalog reconciliation, so build types the
server dropped are also dropped from the seed.
"""

from __future__ import annotations

import threading
from pathlib import Path

import typer
from rich.console import Console

from wallsync.cli import runtime
from wallsync.core.notifier import ChangeKind
from wallsync.core.scheduler import PollingScheduler
from wallsync.models.api import ApiVersion
from wallsync.monitor.renderer import WallRenderer
from wallsync.seed import SeedFormatError, load_seed, save_seed

console = Console()


def watch_cmd(
    server: str = typer.Option(
        None,
        "--server",
        "-s",
        help="CI server base URL (defaults to WALLSYNC_SERVER_URL).",
    ),
    api_version: ApiVersion = typer.Option(
        None,
        "--api-version",
        "-a",
        help="REST API revision to speak.",
    ),
    seed: Path = typer.Option(
        None,
        "--seed",
        help="Path to the monitored seed file.",
    ),
    persist: bool = typer.Option(
        False,
        "--persist",
        "-p",
        help="Save the monitored subsets after each catalog refresh.",
    ),
    refresh_hz: float = typer.Option(
        2.0,
        "--refresh",
        "-r",
        help="Maximum wall re-renders per second.",
    ),
) -> None:
    """Poll the CI server continuously and show a live wall (Ctrl+C to exit)."""
    cfg = runtime.resolve_config(server, api_version, seed)
    try:
        saved = load_seed(cfg.seed_path)
    except SeedFormatError as exc:
        console.print(f"[bold red]Invalid seed:[/bold red] {exc}")
        raise typer.Exit(code=1)

    engine = runtime.make_engine(cfg, saved)
    changed = threading.Event()
    engine.notifier.subscribe(lambda _: changed.set())

    if persist:

        def _persist(_: object) -> None:
            save_seed(
                cfg.seed_path,
                engine.build_types.monitored_build_types(),
                engine.projects.monitored_projects(),
            )

        engine.notifier.subscribe(
            _persist,
            kinds=[ChangeKind.PROJECT_REGISTRY, ChangeKind.BUILD_TYPE_REGISTRY],
        )

    scheduler = PollingScheduler.from_config(engine, cfg)
    console.print(
        f"[dim]Watching {cfg.server_url} (API {cfg.api_version.value}). "
        "Press Ctrl+C to exit.[/dim]"
    )
    scheduler.start()
    try:
        WallRenderer(console=console).render_live(
            engine.projects,
            engine.build_types,
            changed,
            server_url=cfg.server_url,
            refresh_hz=refresh_hz,
        )
    finally:
        scheduler.stop()
        engine.shutdown()

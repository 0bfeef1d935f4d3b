"""``wallsync sync``: one full synchronization cycle, then print the wall.

Loads the project and build-type catalogs, refreshes queue membership and
the status of every monitored build type, and renders the result once.
Build types passed with ``--build-type`` are monitored for this run and,
with ``--save``, written back to the monitored seed.
"""

from __future__ import annotations

from concurrent.futures import wait
from pathlib import Path

import typer
from rich.console import Console

from wallsync.cli import runtime
from wallsync.models.api import ApiVersion
from wallsync.monitor.renderer import WallRenderer
from wallsync.seed import SeedFormatError, load_seed, save_seed

console = Console()


def sync_cmd(
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
    build_type: list[str] = typer.Option(
        [],
        "--build-type",
        "-b",
        help="Monitor this build type id (repeatable).",
    ),
    save: bool = typer.Option(
        False,
        "--save",
        help="Write the monitored subsets back to the seed file.",
    ),
    timeout: float = typer.Option(
        60.0,
        "--timeout",
        "-t",
        help="Seconds to wait for each synchronization phase.",
    ),
) -> None:
    """Synchronize once with the CI server and print the wall."""
    cfg = runtime.resolve_config(server, api_version, seed)
    try:
        saved = load_seed(cfg.seed_path)
    except SeedFormatError as exc:
        console.print(f"[bold red]Invalid seed:[/bold red] {exc}")
        raise typer.Exit(code=1)

    engine = runtime.make_engine(cfg, saved)
    try:
        try:
            engine.load_catalog().result(timeout=timeout)
        except Exception as exc:
            console.print(f"[bold red]Connection failure:[/bold red] {exc}")
            raise typer.Exit(code=1)

        for build_type_id in build_type:
            found = engine.build_types.get(build_type_id)
            if found is None:
                console.print(f"[yellow]Unknown build type:[/yellow] {build_type_id}")
                continue
            engine.build_types.activate_monitoring(found)

        # Failures are logged by the engine; the wall shows whatever arrived.
        wait(
            [engine.refresh_queue_membership(), engine.refresh_monitored_statuses()],
            timeout=timeout,
        )

        WallRenderer(console=console).print_wall(
            engine.projects, engine.build_types, server_url=cfg.server_url
        )
        if save:
            save_seed(
                cfg.seed_path,
                engine.build_types.monitored_build_types(),
                engine.projects.monitored_projects(),
            )
            console.print(f"[dim]Monitored seed written to {cfg.seed_path}[/dim]")
    finally:
        engine.shutdown()

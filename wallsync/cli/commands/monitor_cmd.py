"""``wallsync monitor``: edit the monitored seed.

``add`` looks the entity up in the live catalog, so it needs the server;
``remove`` and ``list`` work offline on the seed file alone.
"""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from wallsync.cli import runtime
from wallsync.core.registry import BuildTypeRegistry, ProjectRegistry
from wallsync.seed import MonitoredSeed, SeedFormatError, load_seed, save_seed

console = Console()

monitor_app = typer.Typer(
    name="monitor",
    help="Edit the monitored build types and projects.",
    no_args_is_help=True,
)


def _load(seed_path: Path) -> MonitoredSeed:
    try:
        return load_seed(seed_path)
    except SeedFormatError as exc:
        console.print(f"[bold red]Invalid seed:[/bold red] {exc}")
        raise typer.Exit(code=1)


@monitor_app.command(name="add", help="Monitor a build type (or project) from the live catalog.")
def add_cmd(
    entity_id: str = typer.Argument(..., help="Build type id, or project id with --project."),
    project: bool = typer.Option(False, "--project", help="ENTITY_ID names a project."),
    position: int = typer.Option(
        None, "--position", "-n", help="1-based position in the monitored list."
    ),
    alias: str = typer.Option(None, "--alias", help="Display name override."),
    branch: str = typer.Option(None, "--branch", help="Branch locator for build types."),
    server: str = typer.Option(None, "--server", "-s", help="CI server base URL."),
    seed: Path = typer.Option(None, "--seed", help="Path to the monitored seed file."),
    timeout: float = typer.Option(60.0, "--timeout", "-t", help="Catalog load timeout."),
) -> None:
    """Look *entity_id* up on the server and add it to the monitored seed."""
    cfg = runtime.resolve_config(server, None, seed)
    engine = runtime.make_engine(cfg, _load(cfg.seed_path))
    try:
        try:
            engine.load_catalog().result(timeout=timeout)
        except Exception as exc:
            console.print(f"[bold red]Connection failure:[/bold red] {exc}")
            raise typer.Exit(code=1)

        registry: ProjectRegistry | BuildTypeRegistry
        registry = engine.projects if project else engine.build_types
        found = registry.get(entity_id)
        if found is None:
            kind = "project" if project else "build type"
            console.print(f"[bold red]Unknown {kind}:[/bold red] {entity_id}")
            raise typer.Exit(code=1)

        if alias is not None:
            found.alias = alias
        if branch is not None and not project:
            found.branch = branch
        if position is not None:
            registry.request_position(found, position)
        else:
            registry.activate_monitoring(found)

        save_seed(
            cfg.seed_path,
            engine.build_types.monitored_build_types(),
            engine.projects.monitored_projects(),
        )
        console.print(
            f"[green]Monitoring[/green] {found.display_name} "
            f"at position {registry.position(found)}"
        )
    finally:
        engine.shutdown()


@monitor_app.command(name="remove", help="Stop monitoring a build type (or project).")
def remove_cmd(
    entity_id: str = typer.Argument(..., help="Build type id, or project id with --project."),
    project: bool = typer.Option(False, "--project", help="ENTITY_ID names a project."),
    seed: Path = typer.Option(None, "--seed", help="Path to the monitored seed file."),
) -> None:
    """Remove *entity_id* from the monitored seed without contacting the server."""
    cfg = runtime.resolve_config(seed_path=seed)
    saved = _load(cfg.seed_path)
    build_types = BuildTypeRegistry(saved.build_types)
    projects = ProjectRegistry(saved.projects)

    registry: ProjectRegistry | BuildTypeRegistry = projects if project else build_types
    found = registry.get(entity_id)
    if found is None:
        console.print(f"[bold red]Not monitored:[/bold red] {entity_id}")
        raise typer.Exit(code=1)

    registry.deactivate_monitoring(found)
    save_seed(cfg.seed_path, build_types.monitored_build_types(), projects.monitored_projects())
    console.print(f"[yellow]Stopped monitoring[/yellow] {found.display_name}")


@monitor_app.command(name="list", help="Show the monitored seed.")
def list_cmd(
    seed: Path = typer.Option(None, "--seed", help="Path to the monitored seed file."),
) -> None:
    cfg = runtime.resolve_config(seed_path=seed)
    saved = _load(cfg.seed_path)
    if not saved.build_types and not saved.projects:
        console.print("[dim]Nothing monitored yet. Add with: wallsync monitor add ID[/dim]")
        return

    table = Table(title=f"Monitored ({cfg.seed_path})", header_style="bold cyan")
    table.add_column("#", style="dim", justify="right")
    table.add_column("Kind")
    table.add_column("Id", style="cyan")
    table.add_column("Name")
    table.add_column("Branch", style="dim")
    for position, bt in enumerate(saved.build_types, start=1):
        table.add_row(
            str(position), "build type", bt.build_type_id, bt.alias or bt.name, bt.branch or "-"
        )
    for position, p in enumerate(saved.projects, start=1):
        table.add_row(str(position), "project", p.project_id, p.alias or p.name, "-")
    console.print(table)

"""Rich terminal renderer for the synchronized wall.

Turns registry snapshots into Rich tables.  The renderer holds no state of
its own; every call re-reads the registries.

Color scheme
------------
- green     : SUCCESS
- red       : FAILURE
- bold red  : ERROR
- dim       : UNKNOWN / no build yet
- yellow    : running
- cyan      : queued
"""

from __future__ import annotations

import threading
from datetime import timedelta

from rich.console import Console, Group
from rich.live import Live
from rich.panel import Panel
from rich.table import Table

from wallsync.core.registry import BuildTypeRegistry, ProjectRegistry
from wallsync.models.api import ApiFeature, ApiVersion
from wallsync.models.builds import Build, BuildState, BuildStatus
from wallsync.models.catalog import BuildType

_STATUS_STYLES: dict[BuildStatus, str] = {
    BuildStatus.SUCCESS: "green",
    BuildStatus.FAILURE: "red",
    BuildStatus.ERROR: "bold red",
    BuildStatus.UNKNOWN: "dim",
}


def format_remaining(remaining: timedelta) -> str:
    """Render a remaining-time estimate as ``m:ss``, prefixed ``+`` once overrun."""
    seconds = int(remaining.total_seconds())
    sign = "+" if seconds < 0 else ""
    minutes, secs = divmod(abs(seconds), 60)
    return f"{sign}{minutes}:{secs:02d}"


def _status_cell(build: Build | None) -> str:
    if build is None:
        return "[dim]-[/dim]"
    style = _STATUS_STYLES[build.status]
    return f"[{style}]{build.status.value}[/{style}]"


def _activity_cell(build_type: BuildType) -> str:
    running = build_type.history.in_state(BuildState.RUNNING)
    parts: list[str] = []
    if running:
        build = running[0]
        parts.append(
            f"[yellow]running {build.percentage_complete}% "
            f"({format_remaining(build.remaining_time)})[/yellow]"
        )
    if build_type.queued:
        parts.append("[cyan]queued[/cyan]")
    return " | ".join(parts) if parts else "[dim]idle[/dim]"


class WallRenderer:
    """Renders registries as Rich terminal output.

    Parameters
    ----------
    console:
        Rich Console instance.  A new one is created if not provided.
    """

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()

    def build_type_table(self, registry: BuildTypeRegistry) -> Table:
        """Monitored build types in their manual order."""
        table = Table(title="Monitored build types", header_style="bold cyan", expand=True)
        table.add_column("#", style="dim", justify="right", width=4)
        table.add_column("Build type", min_width=20)
        table.add_column("Project")
        table.add_column("Last status", justify="center")
        table.add_column("Activity")
        table.add_column("Finished", style="dim")

        for position, build_type in enumerate(registry.monitored_build_types(), start=1):
            last = build_type.last_build(BuildState.FINISHED)
            finished = (
                last.finished_at.strftime("%Y-%m-%d %H:%M")
                if last is not None and last.finished_at is not None
                else "-"
            )
            table.add_row(
                str(position),
                build_type.display_name,
                build_type.project_name,
                _status_cell(last),
                _activity_cell(build_type),
                finished,
            )
        return table

    def project_table(self, registry: ProjectRegistry) -> Table:
        """Health rollup for monitored projects, or every project if none are monitored."""
        projects = registry.monitored_projects() or registry.projects()
        table = Table(title="Projects", header_style="bold cyan", expand=True)
        table.add_column("Project", min_width=20)
        table.add_column("Build types", justify="right")
        table.add_column("Success", justify="right", style="green")
        table.add_column("Failure", justify="right", style="red")
        table.add_column("Error", justify="right", style="bold red")

        for project in projects:
            table.add_row(
                project.display_name,
                str(len(project.build_type_ids)),
                str(project.count_build_types_by_status(BuildStatus.SUCCESS)),
                str(project.count_build_types_by_status(BuildStatus.FAILURE)),
                str(project.count_build_types_by_status(BuildStatus.ERROR)),
            )
        return table

    def render_wall(
        self,
        projects: ProjectRegistry,
        build_types: BuildTypeRegistry,
        *,
        server_url: str = "",
    ) -> Panel:
        return Panel(
            Group(self.build_type_table(build_types), self.project_table(projects)),
            title="[bold]wallsync[/bold]",
            subtitle=server_url or None,
            border_style="blue",
        )

    def print_wall(
        self,
        projects: ProjectRegistry,
        build_types: BuildTypeRegistry,
        *,
        server_url: str = "",
    ) -> None:
        self.console.print(self.render_wall(projects, build_types, server_url=server_url))

    @staticmethod
    def capability_table() -> Table:
        """Which features each API revision exposes."""
        table = Table(title="API capabilities", header_style="bold cyan")
        table.add_column("Version")
        for feature in ApiFeature:
            table.add_column(feature.value, justify="center")
        for version in ApiVersion:
            table.add_row(
                version.value,
                *(
                    "[green]yes[/green]" if version.is_supported(feature) else "[dim]no[/dim]"
                    for feature in ApiFeature
                ),
            )
        return table

    def render_live(
        self,
        projects: ProjectRegistry,
        build_types: BuildTypeRegistry,
        changed: threading.Event,
        *,
        server_url: str = "",
        refresh_hz: float = 2.0,
    ) -> None:
        """Keep the wall on screen, re-rendering whenever *changed* is set.

        Blocks until Ctrl+C.

        Parameters
        ----------
        projects, build_types:
            Registries to render.
        changed:
            Set by a change subscriber; cleared here after each re-render.
        server_url:
            Shown as the panel subtitle.
        refresh_hz:
            Upper bound on re-renders per second.
        """
        interval = 1.0 / max(refresh_hz, 0.1)

        with Live(
            self.render_wall(projects, build_types, server_url=server_url),
            console=self.console,
            refresh_per_second=refresh_hz,
            transient=False,
        ) as live:
            try:
                while True:
                    if changed.wait(interval):
                        changed.clear()
                        live.update(
                            self.render_wall(projects, build_types, server_url=server_url)
                        )
            except KeyboardInterrupt:
                live.update(self.render_wall(projects, build_types, server_url=server_url))

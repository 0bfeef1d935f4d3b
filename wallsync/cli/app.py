"""Main Typer application: imports and registers all CLI commands.

Entry point: ``wallsync`` (configured via pyproject.toml project.scripts).

Commands: sync, watch, capabilities, monitor add|remove|list.
"""

from __future__ import annotations

import typer
from rich.console import Console

from wallsync.cli.commands.monitor_cmd import monitor_app
from wallsync.cli.commands.sync_cmd import sync_cmd
from wallsync.cli.commands.watch_cmd import watch_cmd
from wallsync.cli.runtime import configure_logging
from wallsync.config import config

app = typer.Typer(
    name="wallsync",
    help="wallsync: mirror a CI server's projects, build types and builds onto a wall.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)


@app.callback()
def main_callback(
    log_level: str = typer.Option(
        None,
        "--log-level",
        "-l",
        help="Logging level (defaults to WALLSYNC_LOG_LEVEL).",
    ),
) -> None:
    """Configure logging before any command runs."""
    configure_logging(log_level or config.log_level)


# Register subcommands
app.command(name="sync", help="Synchronize once and print the wall.")(sync_cmd)
app.command(name="watch", help="Poll continuously and show a live wall.")(watch_cmd)
app.add_typer(monitor_app, name="monitor")


@app.command(name="capabilities", help="Show which features each API revision exposes.")
def capabilities_cmd() -> None:
    """Print the API revision capability table."""
    from wallsync.monitor.renderer import WallRenderer

    Console().print(WallRenderer.capability_table())


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()

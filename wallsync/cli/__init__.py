"""wallsync CLI: Typer-based command-line interface.

Provides the ``wallsync`` command with subcommands for one-shot
synchronization, live watching, capability lookup and editing the
monitored seed.

All output uses Rich for formatted terminal display.
"""

"""Waypoint CLI - modular command structure.

Package structure:
    cli/
    ├── __init__.py           # This file - app assembly
    ├── helpers.py            # Logging state and input loading
    ├── output.py             # Rich formatting
    └── commands/
        ├── __init__.py       # Command exports
        ├── validate.py       # validate command
        ├── presets.py        # presets, checkpoints commands
        └── evaluate.py       # evaluate, history commands
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer

from waypoint import __version__

from . import helpers as helpers
from .commands import (
    checkpoints,
    evaluate,
    history,
    presets,
    validate,
)
from .helpers import (
    configure_global_logging,
    set_log_file,
    set_log_format,
    set_log_level,
)
from .output import console

# =============================================================================
# Typer app definition
# =============================================================================

app = typer.Typer(
    name="waypoint",
    help="Milestone triggers and power-law QA sampling for documents",
    add_completion=False,
)


# =============================================================================
# Global option callbacks
# =============================================================================


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"Waypoint v{__version__}")
        raise typer.Exit()


def log_level_callback(value: str | None) -> str | None:
    if value:
        set_log_level(value)
    return value


def log_file_callback(value: Path | None) -> Path | None:
    if value:
        set_log_file(value)
    return value


def log_format_callback(value: str | None) -> str | None:
    if value:
        set_log_format(value)
    return value


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
    log_level: Annotated[
        str | None,
        typer.Option(
            "--log-level",
            "-L",
            callback=log_level_callback,
            help="Logging level (DEBUG, INFO, WARNING, ERROR)",
            envvar="WAYPOINT_LOG_LEVEL",
        ),
    ] = None,
    log_file: Annotated[
        Path | None,
        typer.Option(
            "--log-file",
            callback=log_file_callback,
            help="Path for log file output",
            envvar="WAYPOINT_LOG_FILE",
        ),
    ] = None,
    log_format: Annotated[
        str | None,
        typer.Option(
            "--log-format",
            callback=log_format_callback,
            help="Log format: json, console, or both",
            envvar="WAYPOINT_LOG_FORMAT",
        ),
    ] = None,
) -> None:
    """Waypoint - milestone triggers and QA sampling for documents."""
    configure_global_logging(console)


# =============================================================================
# Command registration
# =============================================================================

app.command()(validate)
app.command()(presets)
app.command()(checkpoints)
app.command()(evaluate)
app.command()(history)


__all__ = ["app", "console", "helpers"]

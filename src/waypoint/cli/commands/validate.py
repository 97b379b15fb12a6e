"""Validate command for the Waypoint CLI.

Checks a milestone settings file in two layers: YAML syntax, then the
Pydantic schema with its cross-field validators.

Exit codes:
  0: Valid
  2: Cannot read, cannot parse, or fails schema validation
"""

from __future__ import annotations

import warnings
from pathlib import Path
from typing import NoReturn

import typer
import yaml
from rich.markup import escape

from waypoint.core.config import MilestoneSettings
from waypoint.core.errors import ConfigurationError

from ..helpers import configure_global_logging
from ..output import console, print_json


def _fail(json_output: bool, label: str, error: object) -> NoReturn:
    if json_output:
        print_json({"valid": False, "error": f"{label}: {error}"})
    else:
        console.print(f"[red]{label}:[/red] {escape(str(error))}")
    raise typer.Exit(2)


def validate(
    settings_file: Path = typer.Argument(
        ...,
        help="Path to YAML milestone settings file",
    ),
    json_output: bool = typer.Option(
        False,
        "--json",
        "-j",
        help="Output validation results as JSON",
    ),
) -> None:
    """Validate a milestone settings file."""
    configure_global_logging(console)

    try:
        raw_yaml = settings_file.read_text(encoding="utf-8")
    except OSError as e:
        _fail(json_output, "Cannot read file", e)

    try:
        yaml.safe_load(raw_yaml)
    except yaml.YAMLError as e:
        _fail(json_output, "YAML syntax error", e)

    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter("always")
        try:
            settings = MilestoneSettings.from_yaml_string(raw_yaml)
        except ConfigurationError as e:
            _fail(json_output, "Schema validation failed", e)

    warning_messages = [str(w.message) for w in caught]
    active = settings.active_milestones()

    if json_output:
        print_json({
            "valid": True,
            "enabled": settings.enabled,
            "milestones": len(settings.user_milestones),
            "active_milestones": [m.id for m in active],
            "warnings": warning_messages,
        })
        return

    console.print(f"\nValidating [cyan]{settings_file}[/cyan]...")
    console.print("[green]✓[/green] YAML syntax valid")
    console.print("[green]✓[/green] Schema validation passed")
    for message in warning_messages:
        console.print(f"[yellow]![/yellow] {message}")
    console.print()
    console.print("[dim]Settings summary:[/dim]")
    console.print(f"  Milestones enabled: {settings.enabled}")
    console.print(f"  Configured milestones: {len(settings.user_milestones)}")
    console.print(f"  Active milestones: {len(active)}")
    console.print(f"  Git snapshots: {'on' if settings.git.enabled else 'off'}")
    console.print(f"  QA sampling: {settings.qa_verbosity if settings.qa_enabled else 'off'}")
    console.print("\n[green]Valid configuration[/green]")

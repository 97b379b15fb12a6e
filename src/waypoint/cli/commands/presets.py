"""Informational commands: built-in presets and sampling checkpoints."""

from __future__ import annotations

import typer

from waypoint.core.config import milestone_from_preset, preset_names
from waypoint.core.constants import POWER_CHECKPOINTS
from waypoint.qa.sampler import is_checkpoint

from ..helpers import configure_global_logging
from ..output import console, create_checkpoints_table, create_presets_table


def presets() -> None:
    """List the built-in milestone presets."""
    configure_global_logging(console)

    table = create_presets_table()
    for name in preset_names():
        milestone = milestone_from_preset(name, milestone_id=name.lower().replace(" ", "-"))
        table.add_row(
            milestone.name,
            milestone.trigger.type,
            milestone.snapshot_form.operation,
            "yes" if milestone.repeatable else "no",
            str(milestone.priority),
            milestone.description or "",
        )
    console.print(table)


def checkpoints(
    limit: int = typer.Option(
        15,
        "--limit",
        "-n",
        min=1,
        help="Number of checkpoint values to show",
    ),
) -> None:
    """Show the occurrence counts at which QA snapshots are captured."""
    configure_global_logging(console)

    table = create_checkpoints_table()
    value = 0
    shown = 0
    while shown < limit:
        value += 1
        if not is_checkpoint(value):
            continue
        shown += 1
        phase = "power" if value <= POWER_CHECKPOINTS[-1] else "linear"
        table.add_row(str(shown), str(value), phase)
    console.print(table)

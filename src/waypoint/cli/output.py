"""Rich output formatting for the Waypoint CLI.

Centralizes the shared console, table builders and small formatters so
every command renders milestones, presets and history the same way.
"""

from __future__ import annotations

import json
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from rich.console import Console
from rich.table import Table

if TYPE_CHECKING:
    from collections.abc import Iterable

    from waypoint.milestones.models import MilestoneHistoryEntry, MilestoneTriggeredEvent

# =============================================================================
# Shared console instance
# =============================================================================

console = Console()


# =============================================================================
# Formatters
# =============================================================================


def format_epoch_ms(timestamp_ms: int | None) -> str:
    """Format epoch milliseconds as a UTC timestamp, or '-'."""
    if timestamp_ms is None:
        return "-"
    dt = datetime.fromtimestamp(timestamp_ms / 1000, UTC)
    return dt.strftime("%Y-%m-%d %H:%M:%S UTC")


def format_success(success: bool) -> str:
    return "[green]✓[/green]" if success else "[red]✗[/red]"


def print_json(data: Any, console_instance: Console | None = None) -> None:
    """Print data as JSON without Rich markup, highlighting or wrapping."""
    out = console_instance or console
    out.print(json.dumps(data, indent=2), markup=False, highlight=False, soft_wrap=True)


# =============================================================================
# Table builders
# =============================================================================


def create_presets_table() -> Table:
    table = Table(title="Milestone Presets")
    table.add_column("Name", style="cyan", no_wrap=True)
    table.add_column("Trigger", style="bold")
    table.add_column("Snapshot", style="yellow")
    table.add_column("Repeatable", justify="center")
    table.add_column("Priority", justify="right")
    table.add_column("Description", style="dim")
    return table


def create_checkpoints_table() -> Table:
    table = Table(title="Sampling Checkpoints", show_header=True, header_style="bold")
    table.add_column("#", justify="right", style="cyan", width=4)
    table.add_column("Occurrence", justify="right")
    table.add_column("Phase", style="dim")
    return table


def create_triggered_table(events: Iterable[MilestoneTriggeredEvent]) -> Table:
    """Build a table of milestones fired during one evaluation."""
    table = Table(title="Triggered Milestones", show_header=True, header_style="bold")
    table.add_column("Milestone", style="cyan")
    table.add_column("Snapshot", width=18)
    table.add_column("Consequences", justify="right")
    table.add_column("OK", justify="center", width=4)
    table.add_column("Error", style="dim", no_wrap=False)

    for event in events:
        snapshot = event.snapshot.operation if event.snapshot else "-"
        applied = sum(1 for c in event.consequences if c.applied)
        errors = [event.snapshot.error] if event.snapshot and event.snapshot.error else []
        errors.extend(c.error for c in event.consequences if c.error)
        table.add_row(
            event.milestone.name,
            snapshot,
            f"{applied}/{len(event.consequences)}",
            format_success(event.success),
            "; ".join(errors) or "-",
        )
    return table


def create_history_table(entries: Iterable[MilestoneHistoryEntry]) -> Table:
    table = Table(title="Milestone History", show_header=True, header_style="bold")
    table.add_column("When", style="dim", no_wrap=True)
    table.add_column("Milestone", style="cyan")
    table.add_column("Document")
    table.add_column("OK", justify="center", width=4)
    table.add_column("Commit", style="yellow", no_wrap=True)
    table.add_column("Error", style="dim", no_wrap=False)

    for entry in entries:
        commit = entry.git_snapshot.commit_sha if entry.git_snapshot else None
        table.add_row(
            format_epoch_ms(entry.timestamp),
            entry.milestone_name,
            entry.document_path,
            format_success(entry.success),
            (commit or "-")[:10],
            entry.error or "-",
        )
    return table

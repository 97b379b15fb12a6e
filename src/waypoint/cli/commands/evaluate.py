"""Evaluate and history commands for the Waypoint CLI.

``evaluate`` runs one dry-run evaluation pass: callbacks only report what
they would do, so nothing touches git or the document. With ``--state-dir``
the evaluator state is restored before the pass and saved after it, which
makes consecutive runs behave like one long-lived evaluator.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any

import typer
from pydantic import ValidationError
from rich.markup import escape

from waypoint.core.config import (
    MilestoneSettings,
    SnapshotForm,
    StubFilter,
    StubMutationAction,
)
from waypoint.core.constants import EVALUATOR_STATE_KEY
from waypoint.core.errors import StateLoadError
from waypoint.core.logging import get_logger
from waypoint.milestones.evaluator import MilestoneEvaluator
from waypoint.milestones.models import (
    CallbackResult,
    DocumentState,
    EvaluatorState,
    GitSnapshotCallbackResult,
    MilestoneCallbacks,
    MilestoneTriggeredEvent,
    TemplateVariables,
)
from waypoint.milestones.templating import render_template
from waypoint.state import JsonStateStore, restore_evaluator, save_evaluator

from ..helpers import configure_global_logging, load_document, load_settings_or_exit
from ..output import console, create_history_table, create_triggered_table, print_json

_logger = get_logger("cli.evaluate")

DEFAULT_COMMIT_MESSAGE = "milestone: {{milestone}} for {{document}}"


class DryRunCallbacks:
    """Callbacks that record the actions they would take and always succeed."""

    def __init__(self) -> None:
        self.actions: list[str] = []

    async def execute_git_snapshot(
        self,
        form: SnapshotForm,
        document_path: str,
        variables: TemplateVariables,
    ) -> GitSnapshotCallbackResult:
        message = render_template(form.message_template or DEFAULT_COMMIT_MESSAGE, variables)
        branch = render_template(form.branch_pattern, variables) if form.branch_pattern else None
        tag = render_template(form.tag_pattern, variables) if form.tag_pattern else None
        self.actions.append(f"git {form.operation} {document_path}: {message}")
        return GitSnapshotCallbackResult(
            success=True,
            commit_message=message,
            branch_name=branch if form.operation == "branch" else None,
            tag_name=tag if form.operation == "tag" else None,
        )

    async def apply_property_change(
        self,
        document_path: str,
        property: str,  # noqa: A002
        value: Any,
    ) -> CallbackResult:
        self.actions.append(f"set {property}={value!r} on {document_path}")
        return CallbackResult(success=True)

    async def apply_stub_mutation(
        self,
        document_path: str,
        filter: StubFilter,  # noqa: A002
        mutation: StubMutationAction,
    ) -> CallbackResult:
        criteria = filter.model_dump(exclude_none=True)
        self.actions.append(f"stubs {mutation.action} {criteria} on {document_path}")
        return CallbackResult(success=True)

    def as_callbacks(self) -> MilestoneCallbacks:
        return MilestoneCallbacks(
            execute_git_snapshot=self.execute_git_snapshot,
            apply_property_change=self.apply_property_change,
            apply_stub_mutation=self.apply_stub_mutation,
        )


def _event_to_dict(event: MilestoneTriggeredEvent) -> dict[str, Any]:
    return {
        "milestone_id": event.milestone.id,
        "milestone_name": event.milestone.name,
        "document_path": event.document_path,
        "timestamp": event.timestamp,
        "success": event.success,
        "trigger": event.trigger_result.to_dict(),
        "snapshot": (
            {
                "operation": event.snapshot.operation,
                "success": event.snapshot.success,
                "error": event.snapshot.error,
            }
            if event.snapshot
            else None
        ),
        "consequences": [
            {"type": c.consequence.type, "applied": c.applied, "error": c.error}
            for c in event.consequences
        ],
    }


async def _evaluate(
    settings: MilestoneSettings,
    state: DocumentState,
    properties: dict[str, Any],
    events: list[str],
    state_dir: Path | None,
    dry_run: DryRunCallbacks,
) -> list[MilestoneTriggeredEvent]:
    evaluator = MilestoneEvaluator.from_settings(settings, dry_run.as_callbacks())
    store = JsonStateStore(state_dir) if state_dir else None

    if store is not None:
        restored = await restore_evaluator(store, evaluator)
        _logger.debug("cli.state_restored", restored=restored, state_dir=str(state_dir))

    for event in events:
        evaluator.record_event(event)

    triggered = await evaluator.evaluate(state.path, state, tags=state.tags, properties=properties)

    if store is not None:
        await save_evaluator(store, evaluator)
    return triggered


def evaluate(
    settings_file: Path = typer.Argument(
        ...,
        help="Path to YAML milestone settings file",
    ),
    document_file: Path = typer.Argument(
        ...,
        help="Path to a JSON file with the document state",
    ),
    event: list[str] = typer.Option(
        [],
        "--event",
        "-e",
        help="Record an event before evaluating (repeatable)",
    ),
    state_dir: Path | None = typer.Option(
        None,
        "--state-dir",
        "-s",
        help="Directory for persisted evaluator state",
    ),
    json_output: bool = typer.Option(
        False,
        "--json",
        "-j",
        help="Output triggered milestones as JSON",
    ),
) -> None:
    """Dry-run milestone evaluation for one document."""
    configure_global_logging(console)

    settings = load_settings_or_exit(settings_file, console)
    state, properties = load_document(document_file, console)
    dry_run = DryRunCallbacks()

    triggered = asyncio.run(_evaluate(settings, state, properties, event, state_dir, dry_run))

    if json_output:
        print_json({
            "document_path": state.path,
            "triggered": [_event_to_dict(e) for e in triggered],
            "actions": dry_run.actions,
        })
        return

    if not triggered:
        console.print(f"No milestones triggered for [cyan]{state.path}[/cyan]")
        return

    console.print(create_triggered_table(triggered))
    console.print()
    console.print("[dim]Actions (dry run):[/dim]")
    for action in dry_run.actions:
        console.print(f"  {action}", markup=False)


async def _load_state(state_dir: Path) -> dict[str, Any] | None:
    store = JsonStateStore(state_dir, strict=True)
    return await store.load(EVALUATOR_STATE_KEY)


def history(
    state_dir: Path = typer.Option(
        ...,
        "--state-dir",
        "-s",
        help="Directory with persisted evaluator state",
    ),
    limit: int = typer.Option(
        20,
        "--limit",
        "-n",
        min=1,
        help="Show at most this many of the newest entries",
    ),
    json_output: bool = typer.Option(
        False,
        "--json",
        "-j",
        help="Output history as JSON",
    ),
) -> None:
    """Show milestone history from saved evaluator state."""
    configure_global_logging(console)

    try:
        data = asyncio.run(_load_state(state_dir))
    except StateLoadError as e:
        console.print(f"[red]Cannot load state:[/red] {escape(str(e))}")
        raise typer.Exit(2) from None

    if data is None:
        console.print(f"No saved evaluator state in [cyan]{state_dir}[/cyan]")
        raise typer.Exit(1)

    try:
        saved = EvaluatorState.model_validate(data)
    except ValidationError as e:
        console.print(f"[red]Saved state is invalid:[/red] {e.error_count()} validation error(s)")
        raise typer.Exit(2) from None
    entries = saved.history[-limit:]

    if json_output:
        print_json({
            "event_counters": saved.event_counters,
            "history": [e.model_dump(mode="json") for e in entries],
        })
        return

    if not entries:
        console.print("No milestones have fired yet")
        return
    console.print(create_history_table(entries))

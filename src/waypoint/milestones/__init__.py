"""Milestone evaluation: triggers, scope, consequences and the evaluator."""

from waypoint.milestones.consequences import apply_consequence
from waypoint.milestones.evaluator import MilestoneEvaluator
from waypoint.milestones.models import (
    CallbackResult,
    ConsequenceResult,
    DocumentState,
    EvaluatorState,
    EventRecord,
    GitSnapshotCallbackResult,
    GitSnapshotResult,
    MilestoneCallbacks,
    MilestoneHistoryEntry,
    MilestoneTriggeredEvent,
    PropertyChange,
    SnapshotOutcome,
    TriggerEvalResult,
)
from waypoint.milestones.scope import glob_to_regex, matches_scope
from waypoint.milestones.templating import build_template_variables, render_template
from waypoint.milestones.triggers import evaluate_trigger

__all__ = [
    "CallbackResult",
    "ConsequenceResult",
    "DocumentState",
    "EvaluatorState",
    "EventRecord",
    "GitSnapshotCallbackResult",
    "GitSnapshotResult",
    "MilestoneCallbacks",
    "MilestoneEvaluator",
    "MilestoneHistoryEntry",
    "MilestoneTriggeredEvent",
    "PropertyChange",
    "SnapshotOutcome",
    "TriggerEvalResult",
    "apply_consequence",
    "build_template_variables",
    "evaluate_trigger",
    "glob_to_regex",
    "matches_scope",
    "render_template",
]

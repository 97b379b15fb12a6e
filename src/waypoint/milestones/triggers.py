"""Trigger evaluation.

Maps a trigger plus the current document state, event counters and event
history to a matched/unmatched verdict. Evaluation is pure: configuration
problems (an unknown property, operator or trigger type) are reported in
``details["error"]`` and never match, so a bad milestone cannot abort an
evaluation pass.
"""

from __future__ import annotations

import operator as _op
from collections.abc import Callable, Iterable, Mapping
from typing import Any

from waypoint.core.config import (
    CompositeTrigger,
    EventCountTrigger,
    EventSequenceTrigger,
    ThresholdTrigger,
)
from waypoint.core.constants import MS_PER_HOUR, MS_PER_MINUTE
from waypoint.milestones.models import DocumentState, EventRecord, TriggerEvalResult
from waypoint.utils.time import now_ms as _wall_clock

_THRESHOLD_PROPERTIES = frozenset({
    "refinement",
    "health",
    "stub_count",
    "usefulness_margin",
    "potential_energy",
})

_COMPARATORS: dict[str, Callable[[float, float], bool]] = {
    ">=": _op.ge,
    ">": _op.gt,
    "<=": _op.le,
    "<": _op.lt,
    "==": _op.eq,
}


def evaluate_threshold(trigger: ThresholdTrigger, state: DocumentState) -> TriggerEvalResult:
    if trigger.property not in _THRESHOLD_PROPERTIES:
        return TriggerEvalResult(
            matched=False,
            details={"error": "Unknown property", "property": trigger.property},
        )

    actual = float(getattr(state, trigger.property))
    details: dict[str, Any] = {
        "property": trigger.property,
        "operator": trigger.operator,
        "threshold": trigger.value,
        "actual": actual,
    }

    compare = _COMPARATORS.get(trigger.operator)
    if compare is None:
        return TriggerEvalResult(matched=False, details={**details, "error": "Unknown operator"})

    return TriggerEvalResult(matched=compare(actual, trigger.value), details=details)


def evaluate_event_count(
    trigger: EventCountTrigger,
    counters: Mapping[str, int],
    event_history: Iterable[EventRecord],
    now: int,
) -> TriggerEvalResult:
    if trigger.window_hours:
        cutoff = now - trigger.window_hours * MS_PER_HOUR
        actual = sum(
            1 for e in event_history if e.event == trigger.event and e.timestamp >= cutoff
        )
    else:
        actual = counters.get(trigger.event, 0)

    return TriggerEvalResult(
        matched=actual >= trigger.count,
        details={
            "event": trigger.event,
            "required": trigger.count,
            "actual": actual,
            "window_hours": trigger.window_hours,
        },
    )


def evaluate_event_sequence(
    trigger: EventSequenceTrigger,
    event_history: Iterable[EventRecord],
) -> TriggerEvalResult:
    """Scan history once for the ordered steps.

    A step matched outside its gap bound resets progress to the first step;
    the late event is dropped rather than retried as a new first step.
    """
    steps = trigger.sequence
    names = [step.event for step in steps]
    progress = 0
    last_match: int | None = None

    if not steps:
        return TriggerEvalResult(matched=False, details={"sequence": names, "progress_index": 0})

    for record in event_history:
        expected = steps[progress]
        if record.event != expected.event:
            continue

        if expected.max_gap_minutes and last_match is not None:
            gap = record.timestamp - last_match
            if gap > expected.max_gap_minutes * MS_PER_MINUTE:
                progress = 0
                last_match = None
                continue

        last_match = record.timestamp
        progress += 1
        if progress >= len(steps):
            return TriggerEvalResult(
                matched=True,
                details={"sequence": names, "matched_at": record.timestamp},
            )

    return TriggerEvalResult(
        matched=False,
        details={"sequence": names, "progress_index": progress},
    )


def evaluate_composite(
    trigger: CompositeTrigger,
    state: DocumentState,
    counters: Mapping[str, int],
    event_history: Iterable[EventRecord],
    now: int,
) -> TriggerEvalResult:
    # History may be a one-shot iterable; every child needs its own pass
    history = list(event_history)
    results = [
        evaluate_trigger(child, state, counters, history, now_ms=now)
        for child in trigger.triggers
    ]

    if trigger.operator == "and":
        matched = all(r.matched for r in results)
    elif trigger.operator == "or":
        matched = any(r.matched for r in results)
    else:
        return TriggerEvalResult(
            matched=False,
            details={"error": "Unknown operator", "operator": trigger.operator},
        )

    return TriggerEvalResult(
        matched=matched,
        details={
            "operator": trigger.operator,
            "child_results": [r.to_dict() for r in results],
        },
    )


def evaluate_trigger(
    trigger: Any,
    state: DocumentState,
    counters: Mapping[str, int],
    event_history: Iterable[EventRecord],
    *,
    now_ms: int | None = None,
) -> TriggerEvalResult:
    """Evaluate any trigger variant.

    Args:
        trigger: A ``MilestoneTrigger`` variant.
        state: Current document state.
        counters: All-time event counts.
        event_history: Recorded events, oldest first.
        now_ms: Reference time for windowed counts. Defaults to the wall clock.

    Returns:
        The verdict with diagnostic details. Never raises for bad configuration.
    """
    now = now_ms if now_ms is not None else _wall_clock()

    if isinstance(trigger, ThresholdTrigger):
        return evaluate_threshold(trigger, state)
    if isinstance(trigger, EventCountTrigger):
        return evaluate_event_count(trigger, counters, event_history, now)
    if isinstance(trigger, EventSequenceTrigger):
        return evaluate_event_sequence(trigger, event_history)
    if isinstance(trigger, CompositeTrigger):
        return evaluate_composite(trigger, state, counters, event_history, now)
    return TriggerEvalResult(
        matched=False,
        details={"error": "Unknown trigger type", "type": getattr(trigger, "type", None)},
    )


__all__ = [
    "evaluate_composite",
    "evaluate_event_count",
    "evaluate_event_sequence",
    "evaluate_threshold",
    "evaluate_trigger",
]

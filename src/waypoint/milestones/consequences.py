"""Consequence application.

Computes the property mutation a consequence implies for the current state,
without performing any I/O. ``None`` means the document is already in the
target state; callers treat it as a successful no-op. Stub mutations are not
resolved here: the evaluator hands them straight to the stub callback.
"""

from __future__ import annotations

from typing import Any

from waypoint.core.config import (
    ArrayMutation,
    PropertyEnumChange,
    RefinementBump,
    StubMutation,
)
from waypoint.milestones.models import DocumentState, PropertyChange


def apply_consequence(consequence: Any, state: DocumentState) -> PropertyChange | None:
    """Return the property change implied by ``consequence``, or None."""
    if isinstance(consequence, RefinementBump):
        refinement = state.refinement + consequence.delta
        if consequence.max is not None:
            refinement = min(refinement, consequence.max)
        if consequence.min is not None:
            refinement = max(refinement, consequence.min)
        return PropertyChange("refinement", refinement)

    if isinstance(consequence, PropertyEnumChange):
        return PropertyChange(consequence.property, consequence.value)

    if isinstance(consequence, ArrayMutation):
        current: list[str] = list(getattr(state, consequence.property, None) or [])
        if consequence.operation == "add":
            if consequence.value in current:
                return None
            return PropertyChange(consequence.property, [*current, consequence.value])
        if consequence.operation == "remove":
            remaining = [v for v in current if v != consequence.value]
            if len(remaining) == len(current):
                return None
            return PropertyChange(consequence.property, remaining)
        return None

    if isinstance(consequence, StubMutation):
        return None

    return None


__all__ = ["apply_consequence"]

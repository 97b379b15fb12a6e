"""Milestone trigger configuration models.

A trigger is the condition that decides whether a milestone fires. Triggers
form a closed tagged union discriminated on ``type``; composites nest any
trigger, including other composites.

Example YAML:
    trigger:
      type: composite
      operator: and
      triggers:
        - type: threshold
          property: refinement
          operator: ">="
          value: 0.9
        - type: event_sequence
          sequence:
            - event: document_analyzed
            - event: suggestion_accepted
              max_gap_minutes: 30
"""

from __future__ import annotations

from typing import Annotated, Literal

from pydantic import BaseModel, Field

ThresholdProperty = Literal[
    "refinement", "health", "stub_count", "usefulness_margin", "potential_energy"
]
ComparisonOperator = Literal[">=", ">", "<=", "<", "=="]


class ThresholdTrigger(BaseModel):
    """Numeric threshold on a computed document metric (e.g. refinement >= 0.8)."""

    type: Literal["threshold"] = "threshold"
    property: ThresholdProperty = Field(
        description="Document metric to compare",
    )
    operator: ComparisonOperator = Field(
        description="Comparison operator applied as <actual> <operator> <value>",
    )
    value: float = Field(
        description="Threshold value",
    )


class EventCountTrigger(BaseModel):
    """Fires once an event has been recorded at least ``count`` times."""

    type: Literal["event_count"] = "event_count"
    event: str = Field(
        min_length=1,
        description="Event name to count (e.g. suggestion_accepted, stub_resolved)",
    )
    count: int = Field(
        ge=1,
        description="Number of occurrences required",
    )
    window_hours: float | None = Field(
        default=None,
        gt=0,
        description="Trailing window in hours. None counts all recorded occurrences.",
    )


class SequenceStep(BaseModel):
    """One step of an event sequence."""

    event: str = Field(min_length=1)
    max_gap_minutes: float | None = Field(
        default=None,
        gt=0,
        description="Maximum minutes since the previous step matched (None = no limit)",
    )


class EventSequenceTrigger(BaseModel):
    """Fires when the steps appear in order in the event history.

    Other events may appear between steps. A step that arrives later than its
    ``max_gap_minutes`` resets matching to the first step.
    """

    type: Literal["event_sequence"] = "event_sequence"
    sequence: list[SequenceStep] = Field(
        min_length=1,
        description="Ordered steps that must occur",
    )


class CompositeTrigger(BaseModel):
    """Combines child triggers with AND or OR."""

    type: Literal["composite"] = "composite"
    operator: Literal["and", "or"] = Field(
        description="and: every child matches; or: at least one child matches",
    )
    triggers: list[MilestoneTrigger] = Field(
        min_length=1,
        description="Child triggers",
    )


MilestoneTrigger = Annotated[
    ThresholdTrigger | EventCountTrigger | EventSequenceTrigger | CompositeTrigger,
    Field(discriminator="type"),
]

CompositeTrigger.model_rebuild()

__all__ = [
    "ComparisonOperator",
    "CompositeTrigger",
    "EventCountTrigger",
    "EventSequenceTrigger",
    "MilestoneTrigger",
    "SequenceStep",
    "ThresholdProperty",
    "ThresholdTrigger",
]

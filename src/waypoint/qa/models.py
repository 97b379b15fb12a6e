"""QA sampling data types.

Snapshots and the persisted sampler state are Pydantic models so a sampler
can be exported to JSON and restored in another process. Event types are
plain strings on the wire; ``QAMilestoneEvent`` names the built-in ones.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator


class QAMilestoneEvent(str, Enum):
    """Built-in QA event types.

    Any other string is accepted wherever an event type is expected.
    """

    # Workflow
    WORKFLOW_COMPLETED = "workflow_completed"
    WORKFLOW_FAILED = "workflow_failed"
    # Refinement
    REFINEMENT_QUARTILE_CHANGE = "refinement_quartile_change"
    REFINEMENT_REGRESSION = "refinement_regression"
    # Acceptance
    ACCEPTANCE_RATE_INFLECTION = "acceptance_rate_inflection"
    SUGGESTION_BATCH_PROCESSED = "suggestion_batch_processed"
    # Document
    DOCUMENT_TOUCH_POWER = "document_touch_power"
    DOCUMENT_ANALYZED = "document_analyzed"
    DOCUMENT_STUBS_CLEARED = "document_stubs_cleared"
    # Session
    SESSION_STARTED = "session_started"
    SESSION_ENDED = "session_ended"
    DAILY_SUMMARY = "daily_summary"
    # Provider
    PROVIDER_SWITCHED = "provider_switched"
    PROVIDER_ERROR_THRESHOLD = "provider_error_threshold"
    # Performance
    LATENCY_SPIKE = "latency_spike"
    COST_THRESHOLD = "cost_threshold"


def event_name(event: QAMilestoneEvent | str) -> str:
    """Normalize an event type to its plain string name."""
    if isinstance(event, QAMilestoneEvent):
        return event.value
    return str(event)


class QAMilestoneSnapshot(BaseModel):
    """Health snapshot captured at a sampling checkpoint."""

    event: str
    timestamp: int = Field(description="Epoch milliseconds")
    occurrence_number: int = Field(ge=0)
    document_path: str | None = None
    session_id: str
    metrics: dict[str, Any] = Field(
        default_factory=dict,
        description="Quality, acceptance, performance and volume metrics",
    )
    provider_stats: dict[str, Any] | None = Field(
        default=None,
        description="Per-provider call statistics, as reported by the provider",
    )
    stub_distribution: dict[str, Any] | None = Field(
        default=None,
        description="Stub counts by type, as reported by the provider",
    )

    @field_validator("event", mode="before")
    @classmethod
    def _normalize_event(cls, v: Any) -> Any:
        if isinstance(v, QAMilestoneEvent):
            return v.value
        return v


class SamplerState(BaseModel):
    """Persisted power-law sampler state."""

    counters: dict[str, int] = Field(default_factory=dict)
    captured_checkpoints: list[str] = Field(default_factory=list)
    snapshots: dict[str, list[QAMilestoneSnapshot]] = Field(default_factory=dict)


@dataclass(frozen=True)
class CaptureDecision:
    """Outcome of incrementing a counter: the new count and whether to capture."""

    should_capture: bool
    count: int


@dataclass
class SamplerStats:
    """Summary of sampler state."""

    total_counters: int
    total_checkpoints_captured: int
    total_snapshots: int
    snapshots_by_event: dict[str, int] = field(default_factory=dict)
    counters: dict[str, int] = field(default_factory=dict)


__all__ = [
    "CaptureDecision",
    "QAMilestoneEvent",
    "QAMilestoneSnapshot",
    "SamplerState",
    "SamplerStats",
    "event_name",
]

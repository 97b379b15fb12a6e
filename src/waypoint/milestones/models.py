"""Runtime data types for milestone evaluation.

Document state and the persisted history are Pydantic models so they
round-trip through plain JSON. Per-evaluation results are dataclasses, in the
same way hook results are: they are produced, returned and inspected, never
parsed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol

from pydantic import BaseModel, Field

from waypoint.core.config import (
    GitOperation,
    MilestoneConsequence,
    SnapshotForm,
    StubFilter,
    StubMutationAction,
    UserMilestoneConfig,
)

TemplateVariables = dict[str, str]


class DocumentState(BaseModel):
    """Computed metrics and list properties of one document."""

    path: str
    refinement: float = 0.0
    health: float = 0.0
    stub_count: int = 0
    usefulness_margin: float = 0.0
    potential_energy: float = 0.0
    audience: str | None = None
    origin: str | None = None
    form: str | None = None
    tags: list[str] = Field(default_factory=list)
    links: list[str] = Field(default_factory=list)
    aliases: list[str] = Field(default_factory=list)


class EventRecord(BaseModel):
    """One recorded user-interaction event."""

    event: str
    timestamp: int = Field(description="Epoch milliseconds")


class GitSnapshotResult(BaseModel):
    """Git metadata captured after a successful snapshot.

    Kept in history so historical document versions can be located later.
    """

    commit_sha: str | None = None
    branch_name: str | None = None
    tag_name: str | None = None
    commit_message: str | None = None
    git_timestamp: int | None = None


class MilestoneHistoryEntry(BaseModel):
    """Audit record of one milestone firing."""

    milestone_id: str
    milestone_name: str
    document_path: str
    timestamp: int
    success: bool
    error: str | None = None
    git_snapshot: GitSnapshotResult | None = None


class EvaluatorState(BaseModel):
    """Persisted milestone evaluator state. Plain data, no behavior."""

    event_counters: dict[str, int] = Field(default_factory=dict)
    event_history: list[EventRecord] = Field(default_factory=list)
    history: list[MilestoneHistoryEntry] = Field(default_factory=list)
    last_triggered: dict[str, int] = Field(default_factory=dict)


# ─── Callback contracts ──────────────────────────────────────────────────


class GitSnapshotCallbackResult(BaseModel):
    """What the host's git snapshot callback reports back."""

    success: bool
    commit_sha: str | None = None
    branch_name: str | None = None
    tag_name: str | None = None
    commit_message: str | None = None
    error: str | None = None


class CallbackResult(BaseModel):
    """What the property and stub callbacks report back."""

    success: bool
    error: str | None = None


class ExecuteGitSnapshot(Protocol):
    async def __call__(
        self,
        form: SnapshotForm,
        document_path: str,
        variables: TemplateVariables,
    ) -> GitSnapshotCallbackResult | dict[str, Any]: ...


class ApplyPropertyChange(Protocol):
    async def __call__(
        self,
        document_path: str,
        property: str,
        value: Any,
    ) -> CallbackResult | dict[str, Any]: ...


class ApplyStubMutation(Protocol):
    async def __call__(
        self,
        document_path: str,
        filter: StubFilter,
        mutation: StubMutationAction,
    ) -> CallbackResult | dict[str, Any]: ...


@dataclass
class MilestoneCallbacks:
    """Host integrations. Any callback may be omitted.

    A missing callback that a milestone needs is recorded as a failure in
    that milestone's history entry rather than raised.
    """

    execute_git_snapshot: ExecuteGitSnapshot | None = None
    apply_property_change: ApplyPropertyChange | None = None
    apply_stub_mutation: ApplyStubMutation | None = None


# ─── Evaluation results ──────────────────────────────────────────────────


@dataclass
class TriggerEvalResult:
    """Verdict of a trigger evaluation with diagnostic details."""

    matched: bool
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"matched": self.matched, "details": self.details}


@dataclass(frozen=True)
class PropertyChange:
    """A document property mutation implied by a consequence."""

    property: str
    value: Any


@dataclass
class SnapshotOutcome:
    """Result of the snapshot step for one firing."""

    operation: GitOperation
    success: bool
    error: str | None = None
    git_snapshot: GitSnapshotResult | None = None


@dataclass
class ConsequenceResult:
    """Result of applying one consequence."""

    consequence: MilestoneConsequence
    applied: bool
    error: str | None = None


@dataclass
class MilestoneTriggeredEvent:
    """Everything that happened when a milestone fired for a document."""

    milestone: UserMilestoneConfig
    document_path: str
    trigger_result: TriggerEvalResult
    timestamp: int
    snapshot: SnapshotOutcome | None = None
    consequences: list[ConsequenceResult] = field(default_factory=list)

    @property
    def success(self) -> bool:
        snapshot_ok = self.snapshot is None or self.snapshot.error is None
        return snapshot_ok and all(c.applied for c in self.consequences)


__all__ = [
    "ApplyPropertyChange",
    "ApplyStubMutation",
    "CallbackResult",
    "ConsequenceResult",
    "DocumentState",
    "EvaluatorState",
    "EventRecord",
    "ExecuteGitSnapshot",
    "GitSnapshotCallbackResult",
    "GitSnapshotResult",
    "MilestoneCallbacks",
    "MilestoneHistoryEntry",
    "MilestoneTriggeredEvent",
    "PropertyChange",
    "SnapshotOutcome",
    "TemplateVariables",
    "TriggerEvalResult",
]

"""Shared test helpers for Waypoint tests."""

from typing import Any

from waypoint.core.config import UserMilestoneConfig
from waypoint.milestones.models import DocumentState

DEFAULT_START_MS = 1_700_000_000_000


class FakeClock:
    """Callable clock returning a settable epoch-millisecond time."""

    def __init__(self, start: int = DEFAULT_START_MS) -> None:
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


def make_state(path: str = "notes/doc.md", **overrides: Any) -> DocumentState:
    """Build a DocumentState with neutral defaults."""
    return DocumentState(path=path, **overrides)


def make_milestone(
    milestone_id: str = "m1",
    *,
    trigger: dict[str, Any] | None = None,
    **overrides: Any,
) -> UserMilestoneConfig:
    """Build a milestone from plain data, defaulting to refinement >= 0.7."""
    data: dict[str, Any] = {
        "id": milestone_id,
        "name": overrides.pop("name", f"Milestone {milestone_id}"),
        "trigger": trigger
        or {"type": "threshold", "property": "refinement", "operator": ">=", "value": 0.7},
    }
    data.update(overrides)
    return UserMilestoneConfig.model_validate(data)

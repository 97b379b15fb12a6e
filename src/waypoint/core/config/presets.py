"""Built-in milestone templates.

Presets are stored without ids; ``milestone_from_preset`` stamps one on.
All presets start disabled so adding one never changes behavior by itself.
"""

from __future__ import annotations

import uuid
from typing import Any

from waypoint.core.config.milestones import UserMilestoneConfig

MILESTONE_PRESETS: tuple[dict[str, Any], ...] = (
    {
        "name": "Publication Ready",
        "description": "Triggers when a document reaches publication-ready quality",
        "enabled": False,
        "trigger": {
            "type": "composite",
            "operator": "and",
            "triggers": [
                {"type": "threshold", "property": "refinement", "operator": ">=", "value": 0.9},
                {"type": "threshold", "property": "stub_count", "operator": "==", "value": 0},
            ],
        },
        "snapshot_form": {
            "operation": "commit_and_push",
            "message_template": "milestone: {{document}} ready for publication (r={{refinement}})",
            "commit_scope": "document",
        },
        "consequences": [
            {"type": "property_enum_change", "property": "audience", "value": "public"},
            {
                "type": "array_mutation",
                "property": "tags",
                "operation": "add",
                "value": "publication-ready",
            },
        ],
        "scope": {"mode": "all"},
        "repeatable": False,
        "priority": 10,
    },
    {
        "name": "Research Complete",
        "description": "Triggers when all source stubs are resolved",
        "enabled": False,
        "trigger": {"type": "event_count", "event": "stub_resolved", "count": 5},
        "snapshot_form": {
            "operation": "commit",
            "message_template": "research: {{document}} sources verified",
            "commit_scope": "document",
        },
        "consequences": [{"type": "refinement_bump", "delta": 0.1, "max": 1.0}],
        "scope": {"mode": "all"},
        "repeatable": True,
        "cooldown_hours": 24,
        "priority": 20,
    },
    {
        "name": "First Draft Complete",
        "description": "Triggers when refinement crosses 0.5",
        "enabled": False,
        "trigger": {"type": "threshold", "property": "refinement", "operator": ">=", "value": 0.5},
        "snapshot_form": {
            "operation": "commit",
            "message_template": "draft: {{document}} first draft complete",
            "commit_scope": "document",
        },
        "consequences": [
            {"type": "property_enum_change", "property": "audience", "value": "internal"},
        ],
        "scope": {"mode": "all"},
        "repeatable": False,
        "priority": 30,
    },
)


def preset_names() -> list[str]:
    return [preset["name"] for preset in MILESTONE_PRESETS]


def milestone_from_preset(name: str, milestone_id: str | None = None) -> UserMilestoneConfig:
    """Build a milestone from a preset.

    Args:
        name: Preset display name (case-insensitive).
        milestone_id: Id to assign. Defaults to a random UUID.

    Raises:
        KeyError: If no preset has that name.
    """
    for preset in MILESTONE_PRESETS:
        if preset["name"].lower() == name.lower():
            return UserMilestoneConfig.model_validate(
                {**preset, "id": milestone_id or str(uuid.uuid4())}
            )
    raise KeyError(f"Unknown milestone preset '{name}'. Available: {preset_names()}")


__all__ = ["MILESTONE_PRESETS", "milestone_from_preset", "preset_names"]

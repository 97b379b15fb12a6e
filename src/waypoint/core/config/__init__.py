"""Configuration models for Waypoint.

This package provides Pydantic models for loading and validating milestone
settings from YAML. All models are re-exported from this ``__init__`` so
callers can write ``from waypoint.core.config import ...``.
"""

# Consequences
from waypoint.core.config.consequences import (
    ArrayMutation,
    DeferStubs,
    MilestoneConsequence,
    PropertyEnumChange,
    RefinementBump,
    ResolveStubs,
    SetStubPriority,
    StubFilter,
    StubMutation,
    StubMutationAction,
)

# Milestones, scope and snapshot forms
from waypoint.core.config.milestones import (
    CommitScope,
    GitOperation,
    MilestoneScope,
    PropertyCondition,
    SnapshotForm,
    UserMilestoneConfig,
)

# Presets
from waypoint.core.config.presets import (
    MILESTONE_PRESETS,
    milestone_from_preset,
    preset_names,
)

# Settings
from waypoint.core.config.settings import (
    GitSettings,
    LogConfig,
    MilestoneSettings,
    QAVerbosity,
)

# Triggers
from waypoint.core.config.triggers import (
    ComparisonOperator,
    CompositeTrigger,
    EventCountTrigger,
    EventSequenceTrigger,
    MilestoneTrigger,
    SequenceStep,
    ThresholdProperty,
    ThresholdTrigger,
)

__all__ = [
    # Consequences
    "ArrayMutation",
    "DeferStubs",
    "MilestoneConsequence",
    "PropertyEnumChange",
    "RefinementBump",
    "ResolveStubs",
    "SetStubPriority",
    "StubFilter",
    "StubMutation",
    "StubMutationAction",
    # Milestones
    "CommitScope",
    "GitOperation",
    "MilestoneScope",
    "PropertyCondition",
    "SnapshotForm",
    "UserMilestoneConfig",
    # Presets
    "MILESTONE_PRESETS",
    "milestone_from_preset",
    "preset_names",
    # Settings
    "GitSettings",
    "LogConfig",
    "MilestoneSettings",
    "QAVerbosity",
    # Triggers
    "ComparisonOperator",
    "CompositeTrigger",
    "EventCountTrigger",
    "EventSequenceTrigger",
    "MilestoneTrigger",
    "SequenceStep",
    "ThresholdProperty",
    "ThresholdTrigger",
]

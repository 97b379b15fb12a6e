"""Internal QA sampling: power-law checkpoints and the milestone collector."""

from waypoint.qa.collector import QAMilestoneCollector, create_collector
from waypoint.qa.models import (
    CaptureDecision,
    QAMilestoneEvent,
    QAMilestoneSnapshot,
    SamplerState,
    SamplerStats,
)
from waypoint.qa.sampler import PowerLawSampler, is_checkpoint

__all__ = [
    "CaptureDecision",
    "PowerLawSampler",
    "QAMilestoneCollector",
    "QAMilestoneEvent",
    "QAMilestoneSnapshot",
    "SamplerState",
    "SamplerStats",
    "create_collector",
    "is_checkpoint",
]

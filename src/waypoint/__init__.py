"""Waypoint - milestone triggers and power-law QA sampling for documents.

Evaluates user-configured milestones against document quality metrics and
recorded interaction events, dispatches snapshot and property consequences
through caller-supplied callbacks, and samples QA health snapshots at
exponentially spaced checkpoints.
"""

__version__ = "0.4.0"

from waypoint.milestones.evaluator import MilestoneEvaluator
from waypoint.qa.collector import QAMilestoneCollector
from waypoint.qa.sampler import PowerLawSampler

__all__ = [
    "MilestoneEvaluator",
    "PowerLawSampler",
    "QAMilestoneCollector",
    "__version__",
]

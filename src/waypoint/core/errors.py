"""Exception hierarchy for Waypoint.

Evaluation and sampling never raise: failures there are reported as data.
These exceptions are reserved for the load and persistence seams, where a
caller asked for something that cannot be produced (an unreadable settings
file, a corrupt state file under strict loading).
"""

from __future__ import annotations


class WaypointError(Exception):
    """Base exception for all Waypoint errors."""


class ConfigurationError(WaypointError):
    """Raised when milestone settings cannot be read or fail validation.

    Examples: missing file, YAML syntax error, schema violations.
    """


class DuplicateMilestoneError(ConfigurationError):
    """Raised when an edit would give two milestones the same id."""

    def __init__(self, milestone_id: str) -> None:
        self.milestone_id = milestone_id
        super().__init__(f"Milestone id '{milestone_id}' is already configured")


class StateLoadError(WaypointError):
    """Raised when persisted state is unreadable and strict loading is enabled."""

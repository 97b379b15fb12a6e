"""Core configuration, logging and error types."""

from waypoint.core.config import LogConfig, MilestoneSettings, UserMilestoneConfig
from waypoint.core.errors import (
    ConfigurationError,
    DuplicateMilestoneError,
    StateLoadError,
    WaypointError,
)

__all__ = [
    "ConfigurationError",
    "DuplicateMilestoneError",
    "LogConfig",
    "MilestoneSettings",
    "StateLoadError",
    "UserMilestoneConfig",
    "WaypointError",
]

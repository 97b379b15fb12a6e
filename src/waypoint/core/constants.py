"""Global constants for Waypoint.

Centralizes magic numbers used throughout the codebase,
making them discoverable, consistent, and easy to modify.
"""

# =============================================================================
# Time Conversion
# =============================================================================

MS_PER_MINUTE = 60 * 1000
"""Milliseconds in one minute, for sequence gap bounds."""

MS_PER_HOUR = 60 * MS_PER_MINUTE
"""Milliseconds in one hour, for cooldowns and event-count windows."""

# =============================================================================
# Milestone Evaluator Capacities
# =============================================================================

DEFAULT_MAX_EVENT_HISTORY = 1000
"""Maximum recorded events kept for windowed counts and sequence matching."""

DEFAULT_MAX_MILESTONE_HISTORY = 1000
"""Maximum triggered-milestone history entries kept (oldest evicted first)."""

# =============================================================================
# Power-Law Sampling
# =============================================================================

POWER_CHECKPOINTS: tuple[int, ...] = (1, 2, 4, 8, 16, 32, 64, 128, 256, 512, 1000)
"""Occurrence counts captured during the exponential phase."""

LINEAR_CHECKPOINT_INTERVAL = 1000
"""Above the last power checkpoint, every multiple of this value is captured."""

DEFAULT_MAX_SNAPSHOTS_PER_TYPE = 50
"""Ring-buffer capacity for QA snapshots per event type."""

# =============================================================================
# Persistence
# =============================================================================

EVALUATOR_STATE_KEY = "milestones"
"""Default state-store key for milestone evaluator state."""

SAMPLER_STATE_KEY = "qa-sampler"
"""Default state-store key for QA sampler state."""

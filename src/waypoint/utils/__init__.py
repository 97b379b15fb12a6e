"""Shared utilities for Waypoint.

Contains cross-cutting utilities used by multiple modules.
"""

from waypoint.utils.time import Clock, iso_date, now_ms, utc_now

__all__ = ["Clock", "iso_date", "now_ms", "utc_now"]

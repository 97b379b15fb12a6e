"""Scope matching: does a milestone apply to a given document?

Missing inputs (no tags for a tag scope, no properties for a property scope)
mean "does not apply", never an error.
"""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from typing import Any

from waypoint.core.config import MilestoneScope, PropertyCondition, UserMilestoneConfig


def glob_to_regex(pattern: str) -> re.Pattern[str]:
    """Translate a folder glob into a regex anchored at the path start.

    ``**`` matches across directories, ``*`` matches within one path segment.
    Everything else is literal.
    """
    parts = []
    for i, chunk in enumerate(pattern.split("**")):
        if i:
            parts.append(".*")
        parts.append("[^/]*".join(re.escape(piece) for piece in chunk.split("*")))
    return re.compile("^" + "".join(parts))


def _matches_property(
    condition: PropertyCondition,
    properties: Mapping[str, Any],
) -> bool:
    actual = properties.get(condition.name)

    if condition.operator == "exists":
        return actual is not None
    if condition.operator == "==":
        return actual is not None and str(actual) == condition.value
    if condition.operator == "!=":
        return actual is None or str(actual) != condition.value
    if condition.operator == "contains":
        return actual is not None and (condition.value or "") in str(actual)
    return False


def matches_scope(
    milestone: UserMilestoneConfig,
    document_path: str,
    tags: Sequence[str] | None = None,
    properties: Mapping[str, Any] | None = None,
) -> bool:
    """Decide whether ``milestone`` applies to a document."""
    scope: MilestoneScope = milestone.scope

    if scope.mode == "all":
        return True

    if scope.mode == "folder":
        if not scope.folder_pattern:
            return True
        return glob_to_regex(scope.folder_pattern).match(document_path) is not None

    if scope.mode == "tag":
        if not scope.tag or tags is None:
            return False
        return scope.tag in tags

    if scope.mode == "property":
        if scope.property is None or properties is None:
            return False
        return _matches_property(scope.property, properties)

    return False


__all__ = ["glob_to_regex", "matches_scope"]

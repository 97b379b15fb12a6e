"""Template rendering for commit messages and branch/tag names.

Templates use ``{{name}}`` placeholders. Known variables: {{document}},
{{refinement}}, {{milestone}}, {{date}}. Unknown placeholders are left in
place and logged so a typo shows up in the commit rather than vanishing.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from pathlib import PurePosixPath

from waypoint.core.config import UserMilestoneConfig
from waypoint.core.logging import get_logger
from waypoint.milestones.models import DocumentState, TemplateVariables
from waypoint.utils.time import iso_date

_logger = get_logger("milestones.templating")

_PLACEHOLDER = re.compile(r"\{\{(\w+)\}\}")


def render_template(template: str, variables: Mapping[str, str | int | float]) -> str:
    """Substitute ``{{name}}`` placeholders from ``variables``."""
    unknown: list[str] = []

    def _substitute(match: re.Match[str]) -> str:
        key = match.group(1)
        if key in variables:
            return str(variables[key])
        unknown.append(key)
        return match.group(0)

    result = _PLACEHOLDER.sub(_substitute, template)
    if unknown:
        _logger.warning(
            "unknown_template_variable",
            variables=unknown,
            template=template,
            known_vars=sorted(variables),
        )
    return result


def document_basename(document_path: str) -> str:
    """File name without directory or final extension ("notes/a.md" -> "a")."""
    return PurePosixPath(document_path).stem or document_path


def build_template_variables(
    milestone: UserMilestoneConfig,
    document_path: str,
    state: DocumentState,
    timestamp_ms: int,
) -> TemplateVariables:
    return {
        "document": document_basename(document_path),
        "refinement": f"{state.refinement:.2f}",
        "milestone": milestone.name,
        "date": iso_date(timestamp_ms),
    }


__all__ = ["build_template_variables", "document_basename", "render_template"]

"""User milestone configuration models.

A milestone pairs a trigger with a snapshot form (the git operation to run),
a list of consequences, and a scope selecting which documents it applies to.

Example YAML:
    user_milestones:
      - id: publication-ready
        name: Publication Ready
        enabled: true
        priority: 10
        trigger:
          type: threshold
          property: refinement
          operator: ">="
          value: 0.9
        snapshot_form:
          operation: commit_and_push
          message_template: "milestone: {{document}} ready (r={{refinement}})"
        consequences:
          - type: property_enum_change
            property: audience
            value: public
        scope:
          mode: folder
          folder_pattern: "projects/**"
"""

from __future__ import annotations

import warnings
from typing import Literal

from pydantic import BaseModel, Field, model_validator

from waypoint.core.config.consequences import MilestoneConsequence
from waypoint.core.config.triggers import MilestoneTrigger

GitOperation = Literal["commit", "commit_and_push", "branch", "tag", "none"]
CommitScope = Literal["document", "session", "vault"]


class SnapshotForm(BaseModel):
    """How to capture state when a milestone fires.

    Templates support ``{{document}}``, ``{{refinement}}``, ``{{milestone}}``
    and ``{{date}}``.
    """

    operation: GitOperation = Field(
        default="none",
        description="Git operation to perform; 'none' skips the snapshot entirely",
    )
    message_template: str | None = Field(
        default=None,
        description="Commit message template",
    )
    commit_scope: CommitScope = Field(
        default="document",
        description="Which changes the commit includes",
    )
    branch_pattern: str | None = Field(
        default=None,
        description="Branch name template for the 'branch' operation",
    )
    tag_pattern: str | None = Field(
        default=None,
        description="Tag name template for the 'tag' operation",
    )
    auto_push: bool = Field(
        default=False,
        description="Push after committing (for the 'commit' operation)",
    )


class PropertyCondition(BaseModel):
    """Frontmatter property predicate for property-mode scopes."""

    name: str = Field(min_length=1)
    operator: Literal["==", "!=", "contains", "exists"]
    value: str | None = Field(
        default=None,
        description="Comparison value; ignored by 'exists'",
    )


class MilestoneScope(BaseModel):
    """Which documents a milestone applies to."""

    mode: Literal["all", "folder", "tag", "property"] = "all"
    folder_pattern: str | None = Field(
        default=None,
        description="Glob for folder mode: ** spans directories, * stays within one",
    )
    tag: str | None = Field(
        default=None,
        description="Tag required in tag mode",
    )
    property: PropertyCondition | None = Field(
        default=None,
        description="Property condition for property mode",
    )

    @model_validator(mode="after")
    def _require_mode_inputs(self) -> MilestoneScope:
        if self.mode == "tag" and not self.tag:
            raise ValueError("scope mode 'tag' requires a tag")
        if self.mode == "property" and self.property is None:
            raise ValueError("scope mode 'property' requires a property condition")
        return self


class UserMilestoneConfig(BaseModel):
    """Complete user-defined milestone configuration."""

    id: str = Field(
        min_length=1,
        description="Unique identifier",
    )
    name: str = Field(
        min_length=1,
        description="Display name, also available to templates as {{milestone}}",
    )
    description: str | None = None
    enabled: bool = True
    trigger: MilestoneTrigger
    snapshot_form: SnapshotForm = Field(default_factory=SnapshotForm)
    consequences: list[MilestoneConsequence] = Field(default_factory=list)
    scope: MilestoneScope = Field(default_factory=MilestoneScope)
    repeatable: bool = Field(
        default=False,
        description="Whether the milestone can fire more than once per document",
    )
    cooldown_hours: float | None = Field(
        default=None,
        gt=0,
        description="Minimum hours between firings; only used when repeatable",
    )
    priority: int = Field(
        default=100,
        ge=0,
        description="Evaluation order (lower = earlier)",
    )

    @model_validator(mode="after")
    def _warn_ignored_cooldown(self) -> UserMilestoneConfig:
        if self.cooldown_hours is not None and not self.repeatable:
            warnings.warn(
                f"Milestone '{self.id}' sets cooldown_hours but is not repeatable; "
                "the cooldown has no effect.",
                UserWarning,
                stacklevel=2,
            )
        return self


__all__ = [
    "CommitScope",
    "GitOperation",
    "MilestoneScope",
    "PropertyCondition",
    "SnapshotForm",
    "UserMilestoneConfig",
]

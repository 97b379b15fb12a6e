"""Top-level milestone settings, git and logging configuration.

``MilestoneSettings`` is the document loaded from a settings YAML file. Edits
go through the ``with_*``/``without_*`` methods, which return new settings
objects and leave the original untouched.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field, ValidationError, model_validator

from waypoint.core.config.milestones import UserMilestoneConfig
from waypoint.core.errors import ConfigurationError, DuplicateMilestoneError

QAVerbosity = Literal["minimal", "standard", "verbose"]


class GitSettings(BaseModel):
    """Git integration settings handed to the snapshot callback's host."""

    enabled: bool = Field(
        default=False,
        description="Run snapshot operations. When disabled, snapshot forms are skipped.",
    )
    default_branch: str = Field(
        default="main",
        description="Default branch for milestone commits",
    )
    auto_pull: bool = Field(
        default=True,
        description="Pull before committing",
    )
    sign_commits: bool = Field(
        default=False,
        description="Sign commits with GPG",
    )


class LogConfig(BaseModel):
    """Configuration for structured logging.

    Controls log level, output format, and file rotation settings.
    """

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Minimum log level to capture",
    )
    format: Literal["json", "console", "both"] = Field(
        default="console",
        description="Output format: json for structured, console for human-readable, "
        "both for console to stderr and JSON to file",
    )
    file_path: Path | None = Field(
        default=None,
        description="Path for log file output (required if format='both')",
    )
    max_file_size_mb: int = Field(
        default=50,
        gt=0,
        le=1000,
        description="Maximum log file size before rotation (MB)",
    )
    backup_count: int = Field(
        default=5,
        ge=0,
        le=100,
        description="Number of rotated log files to keep",
    )
    include_timestamps: bool = Field(
        default=True,
        description="Include ISO8601 UTC timestamps in log entries",
    )
    include_context: bool = Field(
        default=True,
        description="Include evaluation context (pass_id, document_path) in log entries",
    )

    @model_validator(mode="after")
    def _check_file_path_required(self) -> LogConfig:
        if self.format == "both" and self.file_path is None:
            raise ValueError(
                f"file_path is required when format='{self.format}'"
            )
        return self


class MilestoneSettings(BaseModel):
    """Milestone system settings.

    Example YAML:
        enabled: true
        qa_enabled: true
        qa_verbosity: standard
        git:
          enabled: true
          default_branch: main
        user_milestones:
          - id: first-draft
            name: First Draft Complete
            trigger: {type: threshold, property: refinement, operator: ">=", value: 0.5}
    """

    enabled: bool = Field(
        default=True,
        description="Enable the milestone system",
    )
    user_milestones: list[UserMilestoneConfig] = Field(
        default_factory=list,
        description="User-defined milestones",
    )
    qa_enabled: bool = Field(
        default=True,
        description="Enable power-law QA sampling",
    )
    qa_verbosity: QAVerbosity = Field(
        default="standard",
        description="minimal: metrics only; standard: adds provider stats; "
        "verbose: adds stub distribution",
    )
    git: GitSettings = Field(default_factory=GitSettings)
    logging: LogConfig = Field(default_factory=LogConfig)

    @model_validator(mode="after")
    def _validate_unique_ids(self) -> MilestoneSettings:
        seen: set[str] = set()
        for milestone in self.user_milestones:
            if milestone.id in seen:
                raise ValueError(f"Duplicate milestone id '{milestone.id}'")
            seen.add(milestone.id)
        return self

    @classmethod
    def from_yaml(cls, path: Path) -> MilestoneSettings:
        """Load settings from a YAML file.

        Raises:
            ConfigurationError: If the file cannot be read, parsed or validated.
        """
        try:
            text = Path(path).read_text(encoding="utf-8")
        except OSError as e:
            raise ConfigurationError(f"Cannot read settings file {path}: {e}") from e
        return cls.from_yaml_string(text)

    @classmethod
    def from_yaml_string(cls, yaml_str: str) -> MilestoneSettings:
        """Load settings from a YAML string.

        Raises:
            ConfigurationError: If the YAML cannot be parsed or validated.
        """
        try:
            data = yaml.safe_load(yaml_str)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"YAML syntax error: {e}") from e
        try:
            return cls.model_validate(data or {})
        except ValidationError as e:
            raise ConfigurationError(f"Schema validation failed: {e}") from e

    def to_yaml(self) -> str:
        """Serialize settings back to YAML."""
        return yaml.safe_dump(
            self.model_dump(mode="json", exclude_none=True),
            sort_keys=False,
        )

    def active_milestones(self) -> list[UserMilestoneConfig]:
        """Enabled milestones in evaluation order (ascending priority, stable)."""
        if not self.enabled:
            return []
        return sorted(
            (m for m in self.user_milestones if m.enabled),
            key=lambda m: m.priority,
        )

    def get_milestone(self, milestone_id: str) -> UserMilestoneConfig | None:
        for milestone in self.user_milestones:
            if milestone.id == milestone_id:
                return milestone
        return None

    # ─── Immutable edits ────────────────────────────────────────────────

    def with_enabled(self, enabled: bool) -> MilestoneSettings:
        return self.model_copy(update={"enabled": enabled})

    def with_git(self, **changes: Any) -> MilestoneSettings:
        """Return settings with git fields replaced (validated)."""
        git = GitSettings.model_validate({**self.git.model_dump(), **changes})
        return self.model_copy(update={"git": git})

    def with_qa(
        self,
        *,
        enabled: bool | None = None,
        verbosity: QAVerbosity | None = None,
    ) -> MilestoneSettings:
        update: dict[str, Any] = {}
        if enabled is not None:
            update["qa_enabled"] = enabled
        if verbosity is not None:
            update["qa_verbosity"] = verbosity
        return self.model_copy(update=update)

    def _with_milestones(self, milestones: list[UserMilestoneConfig]) -> MilestoneSettings:
        """Return settings with a new milestone list, keeping ids unique.

        Raises:
            DuplicateMilestoneError: If two milestones share an id.
        """
        seen: set[str] = set()
        for milestone in milestones:
            if milestone.id in seen:
                raise DuplicateMilestoneError(milestone.id)
            seen.add(milestone.id)
        return self.model_copy(update={"user_milestones": milestones})

    def with_milestone_added(self, milestone: UserMilestoneConfig) -> MilestoneSettings:
        """Append a milestone.

        Raises:
            DuplicateMilestoneError: If the id is already configured.
        """
        return self._with_milestones([*self.user_milestones, milestone])

    def with_milestone_updated(self, milestone_id: str, **updates: Any) -> MilestoneSettings:
        """Replace fields of one milestone; unknown ids leave settings unchanged.

        Updated milestones are re-validated, so nested fields may be given as
        plain dicts.

        Raises:
            DuplicateMilestoneError: If the update renames a milestone to an id
                already in use.
        """
        milestones = [
            UserMilestoneConfig.model_validate({**m.model_dump(), **updates})
            if m.id == milestone_id
            else m
            for m in self.user_milestones
        ]
        return self._with_milestones(milestones)

    def without_milestone(self, milestone_id: str) -> MilestoneSettings:
        return self._with_milestones(
            [m for m in self.user_milestones if m.id != milestone_id]
        )

    def with_milestone_toggled(self, milestone_id: str, enabled: bool) -> MilestoneSettings:
        return self.with_milestone_updated(milestone_id, enabled=enabled)


__all__ = [
    "GitSettings",
    "LogConfig",
    "MilestoneSettings",
    "QAVerbosity",
]

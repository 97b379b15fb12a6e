"""Milestone consequence configuration models.

Consequences are the document mutations applied after a milestone fires.
Property-level consequences are resolved by the consequence applier; stub
mutations are opaque here and handed to the host's stub callback.
"""

from __future__ import annotations

from typing import Annotated, Literal

from pydantic import BaseModel, Field, model_validator


class RefinementBump(BaseModel):
    """Additive refinement change, optionally clamped."""

    type: Literal["refinement_bump"] = "refinement_bump"
    delta: float = Field(
        description="Amount to add (positive) or subtract (negative)",
    )
    max: float | None = Field(
        default=None,
        description="Upper clamp applied after adding delta",
    )
    min: float | None = Field(
        default=None,
        description="Lower clamp applied after the upper clamp",
    )

    @model_validator(mode="after")
    def _validate_clamp_bounds(self) -> RefinementBump:
        if self.min is not None and self.max is not None and self.min > self.max:
            raise ValueError(f"min ({self.min}) must not exceed max ({self.max})")
        return self


class PropertyEnumChange(BaseModel):
    """Sets an enumerated document property (e.g. audience: internal -> public)."""

    type: Literal["property_enum_change"] = "property_enum_change"
    property: Literal["audience", "origin", "form"]
    value: str


class ArrayMutation(BaseModel):
    """Adds a value to, or removes one from, a list-valued document property."""

    type: Literal["array_mutation"] = "array_mutation"
    property: Literal["tags", "links", "aliases"]
    operation: Literal["add", "remove"]
    value: str


class StubFilter(BaseModel):
    """Selects which stubs a stub mutation affects. Empty matches all stubs."""

    type: str | None = None
    priority: str | None = None
    min_age_days: float | None = Field(default=None, ge=0)


class ResolveStubs(BaseModel):
    action: Literal["resolve"] = "resolve"


class SetStubPriority(BaseModel):
    action: Literal["set_priority"] = "set_priority"
    priority: Literal["critical", "high", "medium", "low"]


class DeferStubs(BaseModel):
    action: Literal["defer"] = "defer"
    days: int = Field(ge=1)


StubMutationAction = Annotated[
    ResolveStubs | SetStubPriority | DeferStubs,
    Field(discriminator="action"),
]


class StubMutation(BaseModel):
    """Stub change delegated entirely to the host's ``apply_stub_mutation``."""

    type: Literal["stub_mutation"] = "stub_mutation"
    filter: StubFilter = Field(default_factory=StubFilter)
    mutation: StubMutationAction


MilestoneConsequence = Annotated[
    RefinementBump | PropertyEnumChange | ArrayMutation | StubMutation,
    Field(discriminator="type"),
]

__all__ = [
    "ArrayMutation",
    "DeferStubs",
    "MilestoneConsequence",
    "PropertyEnumChange",
    "RefinementBump",
    "ResolveStubs",
    "SetStubPriority",
    "StubFilter",
    "StubMutation",
    "StubMutationAction",
]

"""Define Pydantic models for validating domain, problem, plan, and compiler YAML files."""

from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Optional, Type, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from robotics_planning.io.yaml_utils import load_yaml_data

ModelT = TypeVar("ModelT", bound=BaseModel)

ATOM_PATTERN = r"^\(\S.*\)$"
"""Canonical atoms are parenthesized, beginning with the predicate or function name."""

# =============================================================================
# Domain Schemata
# =============================================================================


class ParameterSchema(BaseModel):
    """Schema for a typed action parameter, e.g., `{name: ?r, type: robot}`."""

    name: str = Field(min_length=1)
    type: str = "object"

    model_config = ConfigDict(extra="forbid")


ParameterSpec = Union[str, ParameterSchema]
"""A parameter may be given as a bare name (of type `object`) or as a typed dictionary."""


class DurativeActionSchemaModel(BaseModel):
    """Schema for a durative action with timed requirements and effects."""

    name: str = Field(min_length=1)
    parameters: List[ParameterSpec] = Field(default_factory=list)
    duration: Optional[float] = Field(default=None, ge=0, description="Duration (seconds)")
    at_start_requirements: str = ""
    over_all_requirements: str = ""
    at_end_requirements: str = ""
    at_start_effects: str = ""
    at_end_effects: str = ""

    model_config = ConfigDict(extra="forbid")


class InstantActionSchemaModel(BaseModel):
    """Schema for a non-durative action with a single precondition and effect."""

    name: str = Field(min_length=1)
    parameters: List[ParameterSpec] = Field(default_factory=list)
    precondition: str = ""
    effect: str = ""

    model_config = ConfigDict(extra="forbid")


class DomainSchema(BaseModel):
    """Schema for a planning domain: its types, symbols, and action schemas."""

    name: str = Field(min_length=1)
    types: List[str] = Field(default_factory=list)
    predicates: List[str] = Field(default_factory=list)
    functions: List[str] = Field(default_factory=list)
    durative_actions: List[DurativeActionSchemaModel] = Field(default_factory=list)
    actions: List[InstantActionSchemaModel] = Field(default_factory=list)

    model_config = ConfigDict(extra="forbid")

    @model_validator(mode="after")
    def check_unique_action_names(self) -> DomainSchema:
        """Verify that no two actions in the domain share a name."""
        names = [a.name for a in self.durative_actions] + [a.name for a in self.actions]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(f"Duplicate action names in domain: {', '.join(duplicates)}")
        return self


# =============================================================================
# Problem and Plan Schemata
# =============================================================================


class ProblemSchema(BaseModel):
    """Schema for a planning problem: typed objects, initial state, and goal."""

    name: str = "problem"
    objects: Dict[str, str] = Field(default_factory=dict, description="Object name -> type")
    predicates: List[str] = Field(default_factory=list)
    functions: Dict[str, float] = Field(default_factory=dict)
    goal: str = ""

    model_config = ConfigDict(extra="forbid")

    @model_validator(mode="after")
    def check_atoms_are_canonical(self) -> ProblemSchema:
        """Verify that every initial predicate and function is a parenthesized atom."""
        for atom in [*self.predicates, *self.functions]:
            if not atom.startswith("(") or not atom.endswith(")"):
                raise ValueError(f"Expected a parenthesized atom but found '{atom}'")
        return self


class PlanItemSchema(BaseModel):
    """Schema for a single timed action in a plan."""

    action: str = Field(pattern=ATOM_PATTERN, description="Ground action, e.g. (move r2d2 a b)")
    time: float = Field(ge=0, description="Start time (seconds)")
    duration: float = Field(default=0.0, ge=0, description="Duration (seconds)")

    model_config = ConfigDict(extra="forbid")


class PlanSchema(BaseModel):
    """Schema for a plan: an ordered list of timed actions."""

    actions: List[PlanItemSchema] = Field(default_factory=list)

    model_config = ConfigDict(extra="forbid")


# =============================================================================
# Compiler Configuration Schemata
# =============================================================================


class CompilerConfigSchema(BaseModel):
    """Schema configuring the grammar of the behavior trees emitted by the plan compiler."""

    action_template: str = Field(
        default="default",
        description="Name of a registered action template, or XML containing ACTION_ID",
    )
    tree_id: str = Field(default="MainTree", min_length=1)
    sequence_tag: str = Field(default="Sequence", min_length=1)
    parallel_tag: str = Field(default="Parallel", min_length=1)
    parallel_failure_threshold: int = Field(default=1, ge=1)
    time_tolerance_s: float = Field(
        default=1e-3,
        ge=0,
        description="Intervals overlapping by at most this duration are treated as disjoint",
    )

    model_config = ConfigDict(extra="forbid")


def validate_yaml(yaml_path: Path | str, schema: Type[ModelT]) -> ModelT:
    """Load a YAML file and validate its contents against the given Pydantic schema.

    :param yaml_path: Path to the YAML file to be loaded
    :param schema: Pydantic model class describing the expected contents
    :return: Validated instance of the schema
    :raises RuntimeError: If the file's contents don't match the schema
    """
    data = load_yaml_data(yaml_path)
    try:
        return schema.model_validate(data if data is not None else {})
    except ValidationError as error:
        message = f"Invalid {schema.__name__} in YAML file {yaml_path}:\n{error}"
        raise RuntimeError(message) from error

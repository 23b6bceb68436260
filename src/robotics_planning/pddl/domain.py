"""Define the domain collaborator interface and an in-memory domain implementing it."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Protocol

from robotics_planning.io.pydantic_schemata import (
    DomainSchema,
    ParameterSchema,
    ParameterSpec,
    validate_yaml,
)
from robotics_planning.pddl.actions import ActionSchema, Parameter
from robotics_planning.pddl.expression_parser import parse_expression

logger = logging.getLogger(__name__)


class DomainCollaborator(Protocol):
    """A collaborator providing the action schemas of a planning domain."""

    def get_action(self, name: str) -> ActionSchema | None:
        """Retrieve the schema of the named action, or None if the domain has no such action."""
        ...


def _to_parameter(spec: ParameterSpec) -> Parameter:
    """Convert a validated parameter specification into a Parameter."""
    if isinstance(spec, ParameterSchema):
        return Parameter(spec.name, spec.type)
    return Parameter(spec)


class Domain:
    """An in-memory planning domain storing action schemas by name."""

    def __init__(
        self,
        name: str,
        actions: Iterable[ActionSchema] = (),
        types: Iterable[str] = (),
    ) -> None:
        """Initialize the domain from a collection of action schemas.

        :param name: Name of the planning domain
        :param actions: Action schemas in the domain (names must be unique)
        :param types: Names of the object types declared by the domain
        """
        self.name = name
        self.types = tuple(types)
        self.actions: dict[str, ActionSchema] = {}
        for action in actions:
            self.add_action(action)

    @classmethod
    def from_yaml(cls, yaml_path: Path | str) -> Domain:
        """Load a domain and its durative and instantaneous actions from a YAML file."""
        schema = validate_yaml(yaml_path, DomainSchema)

        actions = [
            ActionSchema(
                name=a.name,
                parameters=tuple(_to_parameter(p) for p in a.parameters),
                at_start_requirements=parse_expression(a.at_start_requirements),
                over_all_requirements=parse_expression(a.over_all_requirements),
                at_end_requirements=parse_expression(a.at_end_requirements),
                at_start_effects=parse_expression(a.at_start_effects),
                at_end_effects=parse_expression(a.at_end_effects),
                duration=a.duration,
            )
            for a in schema.durative_actions
        ]
        actions.extend(
            ActionSchema.from_instant(
                a.name,
                tuple(_to_parameter(p) for p in a.parameters),
                precondition=parse_expression(a.precondition),
                effect=parse_expression(a.effect),
            )
            for a in schema.actions
        )

        logger.debug(f"Loaded domain '{schema.name}' with {len(actions)} actions.")
        return cls(schema.name, actions, schema.types)

    def __contains__(self, name: str) -> bool:
        """Check whether the domain defines an action with the given name."""
        return name in self.actions

    def add_action(self, action: ActionSchema) -> None:
        """Add an action schema to the domain.

        :raises ValueError: If the domain already has an action with the same name
        """
        if action.name in self.actions:
            raise ValueError(f"Domain '{self.name}' already has an action named '{action.name}'.")
        self.actions[action.name] = action

    def get_action(self, name: str) -> ActionSchema | None:
        """Retrieve the schema of the named action, or None if the domain has no such action."""
        return self.actions.get(name)

"""Ground action strings into fully instantiated actions using schemas from a domain."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from robotics_planning.errors import GroundingError
from robotics_planning.pddl.actions import TIMED_EXPRESSIONS, InstantiatedAction
from robotics_planning.pddl.expressions import free_variables, substitute

if TYPE_CHECKING:
    from robotics_planning.pddl.domain import DomainCollaborator

logger = logging.getLogger(__name__)


def _split_action(action_string: str) -> list[str]:
    """Split a ground action string `(name arg1 ... argN)` into its tokens."""
    return action_string.strip().removeprefix("(").removesuffix(")").split()


def get_name(action_string: str) -> str:
    """Retrieve the action name from a ground action string, e.g., `move`."""
    tokens = _split_action(action_string)
    return tokens[0] if tokens else ""


def get_params(action_string: str) -> list[str]:
    """Retrieve the ordered arguments from a ground action string, e.g., `["r2d2", "bedroom"]`."""
    return _split_action(action_string)[1:]


def ground(action_string: str, domain: DomainCollaborator) -> InstantiatedAction:
    """Instantiate an action by binding its schema's parameters to the given arguments.

    Parameters are bound positionally: the i-th argument replaces the i-th parameter of the
    schema throughout all five of its timed expressions.

    :param action_string: Ground action in canonical form, e.g., `(move r2d2 kitchen bedroom)`
    :param domain: Domain collaborator providing the action's schema
    :return: Instantiated action with fully grounded requirements and effects
    :raises GroundingError: If the string is malformed, the action is unknown, the number of
        arguments doesn't match the schema, or a schema expression uses an unbound variable
    """
    text = action_string.strip()
    name = get_name(text)
    if not (text.startswith("(") and text.endswith(")")) or not name:
        raise GroundingError(f"Malformed ground action string: '{action_string}'")

    schema = domain.get_action(name)
    if schema is None:
        raise GroundingError(f"No action schema named '{name}' exists in the domain.")

    arguments = get_params(text)
    if len(arguments) != len(schema.parameters):
        raise GroundingError(
            f"Action '{name}' expects {len(schema.parameters)} arguments "
            f"but {len(arguments)} were given: {action_string}",
        )

    bindings = {param.name: arg for param, arg in zip(schema.parameters, arguments, strict=True)}

    grounded = {}
    for field_name in TIMED_EXPRESSIONS:
        tree = substitute(getattr(schema, field_name), bindings)
        unbound = free_variables(tree)
        if unbound:
            raise GroundingError(
                f"Cannot ground {field_name} of '{name}'; unbound variables: "
                f"{', '.join(sorted(unbound))}",
            )
        grounded[field_name] = tree

    logger.debug(f"Grounded {text} using bindings {bindings}.")
    return InstantiatedAction(schema, tuple(arguments), **grounded)


get_action_from_string = ground

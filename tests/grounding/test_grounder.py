"""Unit tests for grounding action strings into instantiated actions."""

import pytest

from robotics_planning.errors import GroundingError
from robotics_planning.grounding import get_action_from_string, get_name, get_params, ground
from robotics_planning.pddl import ActionSchema, Domain, Parameter, parse_expression
from robotics_planning.pddl.expressions import to_pddl


def test_get_name_and_params() -> None:
    """Verify that an action string is split into its name and ordered arguments."""
    # Arrange - Define a ground action string
    action_string = "(move r2d2 bedroom)"

    # Act - Extract the name and arguments of the action
    name = get_name(action_string)
    params = get_params(action_string)

    # Assert - Expect the first token as the name and the remaining tokens as arguments
    assert name == "move"
    assert params == ["r2d2", "bedroom"]


def test_get_params_without_arguments() -> None:
    """Verify that an action without arguments has an empty list of parameters."""
    # Arrange/Act/Assert - Expect the name and no parameters
    assert get_name("(wait)") == "wait"
    assert get_params("(wait)") == []


def test_ground_teleport(robot_domain: Domain) -> None:
    """Verify that grounding binds every placeholder of the schema's requirements."""
    # Arrange - The domain containing the `teleport` action is provided by the test fixture

    # Act - Ground the teleport action
    action = ground("(teleport r2d2 kitchen bedroom)", robot_domain)

    # Assert - Expect the grounded at-start requirements and effects
    assert to_pddl(action.at_start_requirements) == (
        "(and (robot_at r2d2 kitchen)(is_teleporter_enabled kitchen)"
        "(is_teleporter_destination bedroom))"
    )
    assert to_pddl(action.at_start_effects) == "(not (robot_at r2d2 kitchen))"
    assert to_pddl(action.at_end_effects) == "(robot_at r2d2 bedroom)"
    assert action.over_all_requirements is None


def test_ground_instantiated_action_properties(robot_domain: Domain) -> None:
    """Verify the name, typed parameters, and PDDL string of an instantiated action."""
    # Arrange/Act - Ground the move action using the alias of `ground`
    action = get_action_from_string("(move r2d2 kitchen corridor)", robot_domain)

    # Assert - Expect concrete parameters typed as in the schema
    assert action.name == "move"
    assert action.arguments == ("r2d2", "kitchen", "corridor")
    assert action.parameters == (
        Parameter("r2d2", "robot"),
        Parameter("kitchen", "room"),
        Parameter("corridor", "room"),
    )
    assert action.to_pddl() == "(move r2d2 kitchen corridor)"
    assert str(action) == "(move r2d2 kitchen corridor)"


def test_ground_numeric_effect(robot_domain: Domain) -> None:
    """Verify that the targets of numeric effects are grounded along with predicates."""
    # Arrange/Act - Ground the charge action, whose parameters are untyped in the YAML file
    action = ground("(charge r2d2 corridor)", robot_domain)

    # Assert - Expect grounded requirements and numeric effects
    assert action.describe() == {
        "at_start_requirements": "",
        "over_all_requirements": "(and (robot_at r2d2 corridor)(charger_at corridor))",
        "at_end_requirements": "",
        "at_start_effects": "",
        "at_end_effects": "(assign (battery r2d2) 100)",
    }


def test_ground_instant_action(robot_domain: Domain) -> None:
    """Verify that a non-durative action is grounded as a durative action of zero duration."""
    # Arrange/Act - Ground the instantaneous open_door action
    action = ground("(open_door r2d2 front_door kitchen)", robot_domain)

    # Assert - Expect the precondition at the start and the effect at the end
    assert action.schema.duration == 0.0
    assert to_pddl(action.at_start_requirements) == (
        "(and (robot_at r2d2 kitchen)(door_at front_door kitchen))"
    )
    assert to_pddl(action.at_end_effects) == "(door_open front_door)"


def test_ground_does_not_modify_schema(robot_domain: Domain) -> None:
    """Verify that grounding leaves the schema's lifted expressions unchanged."""
    # Arrange - Retrieve the lifted move schema
    schema = robot_domain.get_action("move")
    assert schema is not None

    # Act - Ground the move action twice, using different arguments
    ground("(move r2d2 kitchen corridor)", robot_domain)
    ground("(move c3po lab office)", robot_domain)

    # Assert - Expect the schema to still refer to its placeholders
    assert to_pddl(schema.at_end_effects) == "(and (robot_at ?r ?to)(decrease (battery ?r) 10))"


@pytest.mark.parametrize(
    ("action_string", "message"),
    [
        ("move r2d2 kitchen corridor", "Malformed"),
        ("()", "Malformed"),
        ("(fly r2d2 kitchen)", "No action schema named 'fly'"),
        ("(move r2d2 kitchen)", "expects 3 arguments but 2 were given"),
        ("(move r2d2 kitchen corridor bedroom)", "expects 3 arguments but 4 were given"),
    ],
)
def test_ground_invalid_action_string(
    robot_domain: Domain,
    action_string: str,
    message: str,
) -> None:
    """Verify that grounding raises a GroundingError for invalid action strings."""
    # Arrange/Act/Assert - Expect that grounding the action string raises an error
    with pytest.raises(GroundingError, match=message):
        ground(action_string, robot_domain)


def test_ground_unbound_variable() -> None:
    """Verify that a schema expression using a variable that isn't a parameter can't be grounded."""
    # Arrange - Create a domain whose schema refers to an undeclared variable
    schema = ActionSchema(
        name="wander",
        parameters=(Parameter("?r", "robot"),),
        at_end_effects=parse_expression("(robot_at ?r ?somewhere)"),
    )
    domain = Domain("broken", [schema])

    # Act/Assert - Expect that grounding raises an error naming the unbound variable
    with pytest.raises(GroundingError, match=r"\?somewhere"):
        ground("(wander r2d2)", domain)

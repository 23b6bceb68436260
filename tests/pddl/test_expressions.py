"""Unit tests for expression trees and their traversal helpers."""

from robotics_planning.pddl import And, Atom, FunctionModifier, Not, Number, parse_expression
from robotics_planning.pddl.expressions import free_variables, get_atoms, substitute, to_pddl


def test_atom_from_terms() -> None:
    """Verify that an atom built from its name and arguments has canonical text."""
    # Arrange/Act - Construct an atom from its terms
    atom = Atom.from_terms("robot_at", ("r2d2", "kitchen"))

    # Assert - Expect canonical text and access to its name and arguments
    assert atom.text == "(robot_at r2d2 kitchen)"
    assert atom.name == "robot_at"
    assert atom.arguments == ("r2d2", "kitchen")
    assert not atom.is_function


def test_number_to_pddl() -> None:
    """Verify that integral numbers are written without a decimal point."""
    # Arrange/Act/Assert - Expect the shortest representation of each number
    assert Number(3.0).to_pddl() == "3"
    assert Number(-2.0).to_pddl() == "-2"
    assert Number(2.5).to_pddl() == "2.5"


def test_to_pddl_of_absent_expression() -> None:
    """Verify that an absent expression is written as an empty string."""
    # Arrange/Act/Assert - Expect an empty string
    assert to_pddl(None) == ""


def test_get_atoms_in_pre_order() -> None:
    """Verify that every atom of a tree is collected, including numeric effect targets."""
    # Arrange - Parse an effect containing predicates and a numeric effect
    effect = parse_expression("(and (not (robot_at ?r ?from))(decrease (battery ?r) (cost ?r)))")

    # Act - Collect the atoms of the effect
    atoms = get_atoms(effect)

    # Assert - Expect all three atoms, in pre-order
    assert [a.text for a in atoms] == ["(robot_at ?r ?from)", "(battery ?r)", "(cost ?r)"]


def test_free_variables() -> None:
    """Verify that free variables are the placeholder arguments of a tree's atoms."""
    # Arrange - Parse a requirement referring to two variables and one object
    requirement = parse_expression("(and (robot_at ?r ?from)(connected ?from kitchen))")

    # Act/Assert - Expect both variables and no object names
    assert free_variables(requirement) == {"?r", "?from"}


def test_substitute_replaces_bound_arguments() -> None:
    """Verify that substitution replaces every bound placeholder throughout a tree."""
    # Arrange - Parse an effect and define bindings for its placeholders
    effect = parse_expression("(and (not (robot_at ?r ?from))(robot_at ?r ?to))")
    bindings = {"?r": "r2d2", "?from": "kitchen", "?to": "bedroom"}

    # Act - Substitute the bindings into the effect
    result = substitute(effect, bindings)

    # Assert - Expect a fully grounded effect
    assert to_pddl(result) == "(and (not (robot_at r2d2 kitchen))(robot_at r2d2 bedroom))"
    assert free_variables(result) == set()


def test_substitute_preserves_original_tree() -> None:
    """Verify that substitution produces a new tree and leaves its input unchanged."""
    # Arrange - Create a numeric effect referring to a placeholder
    effect = parse_expression("(increase (battery ?r) 5)")
    assert isinstance(effect, FunctionModifier)

    # Act - Substitute a binding for the placeholder
    result = substitute(effect, {"?r": "r2d2"})

    # Assert - Expect the function target to be grounded and the original to be unchanged
    assert isinstance(result, FunctionModifier)
    assert result.target == Atom("(battery r2d2)", is_function=True)
    assert effect.target == Atom("(battery ?r)", is_function=True)


def test_substitute_leaves_unbound_placeholders() -> None:
    """Verify that placeholders without bindings are kept in the resulting tree."""
    # Arrange - Create a negated atom with two placeholders
    node = Not(Atom("(robot_at ?r ?room)"))

    # Act - Bind only one of the placeholders
    result = substitute(node, {"?r": "c3po"})

    # Assert - Expect the unbound placeholder to remain
    assert result == Not(Atom("(robot_at c3po ?room)"))
    assert free_variables(result) == {"?room"}


def test_expressions_are_hashable() -> None:
    """Verify that identical expression trees compare and hash equal."""
    # Arrange - Build two identical conjunctions
    first = And((Atom("(door_open d1)"), Not(Atom("(door_open d2)"))))
    second = parse_expression("(and (door_open d1)(not (door_open d2)))")

    # Act/Assert - Expect equality and a single element in a set of both
    assert first == second
    assert len({first, second}) == 1

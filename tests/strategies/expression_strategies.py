"""Define strategies for generating expression trees and world states for property-based testing."""

from typing import Callable

import hypothesis.strategies as st

from robotics_planning.pddl.expressions import (
    And,
    Arithmetic,
    ArithmeticOperator,
    Atom,
    Comparison,
    ComparisonOperator,
    Expression,
    Not,
    Number,
    Or,
    Unknown,
)
from robotics_planning.state.world_state import LocalWorldState

PREDICATE_ATOMS = [
    "(robot_at r2d2 kitchen)",
    "(robot_at r2d2 bedroom)",
    "(robot_at c3po lab)",
    "(door_open front_door)",
    "(charger_at corridor)",
]

FUNCTION_ATOMS = ["(battery r2d2)", "(battery c3po)", "(distance kitchen bedroom)"]


@st.composite
def predicate_atoms(draw: Callable) -> Atom:
    """Generate predicate atoms from a small vocabulary."""
    return Atom(draw(st.sampled_from(PREDICATE_ATOMS)))


@st.composite
def numbers(draw: Callable) -> Number:
    """Generate numeric literals."""
    return Number(float(draw(st.integers(min_value=-1000, max_value=1000))))


@st.composite
def numeric_expressions(draw: Callable) -> Expression:
    """Generate numbers, function atoms, and (possibly nested) arithmetic expressions."""
    leaves = st.one_of(
        numbers(),
        st.sampled_from(FUNCTION_ATOMS).map(lambda text: Atom(text, is_function=True)),
    )
    return draw(
        st.recursive(
            leaves,
            lambda children: st.builds(
                Arithmetic,
                st.sampled_from(list(ArithmeticOperator)),
                children,
                children,
            ),
            max_leaves=4,
        ),
    )


@st.composite
def comparisons(draw: Callable) -> Comparison:
    """Generate numeric comparisons."""
    operator = draw(st.sampled_from(list(ComparisonOperator)))
    return Comparison(operator, draw(numeric_expressions()), draw(numeric_expressions()))


@st.composite
def conditions(draw: Callable) -> Expression:
    """Generate (possibly nested) logical expressions, including malformed leaves."""
    leaves = st.one_of(
        predicate_atoms(),
        comparisons(),
        numbers(),
        st.just(Unknown("(robot_at")),
    )
    return draw(
        st.recursive(
            leaves,
            lambda children: st.one_of(
                st.builds(Not, children),
                st.lists(children, max_size=3).map(lambda cs: And(tuple(cs))),
                st.lists(children, max_size=3).map(lambda cs: Or(tuple(cs))),
            ),
            max_leaves=8,
        ),
    )


@st.composite
def literal_conjunctions(draw: Callable) -> And:
    """Generate conjunctions of positive and negated literals over distinct predicate atoms."""
    texts = draw(st.lists(st.sampled_from(PREDICATE_ATOMS), min_size=1, unique=True))
    literals: list[Expression] = []
    for text in texts:
        negated = draw(st.booleans())
        literals.append(Not(Atom(text)) if negated else Atom(text))
    return And(tuple(literals))


@st.composite
def world_states(draw: Callable) -> LocalWorldState:
    """Generate world states over the predicate and function vocabularies."""
    predicates = draw(st.sets(st.sampled_from(PREDICATE_ATOMS)))
    values = st.integers(min_value=-1000, max_value=1000).map(float)
    functions = draw(st.dictionaries(st.sampled_from(FUNCTION_ATOMS), values))
    return LocalWorldState(predicates, functions)

"""Evaluate expression trees against world states, either as queries or as applied effects.

A single recursive function serves both purposes. In query mode (`apply=False`) it computes the
truth and numeric value of an expression without changing the world state. In apply mode
(`apply=True`) every atom of the expression is treated as an effect: positive literals are
inserted into the state, negated literals are removed, and numeric effects update functions.
"""

from __future__ import annotations

import logging
import math
from typing import TYPE_CHECKING, NamedTuple

from typing_extensions import assert_never

from robotics_planning.errors import EvaluationError, KnowledgeBaseError
from robotics_planning.pddl.expressions import (
    And,
    Arithmetic,
    ArithmeticOperator,
    Atom,
    Comparison,
    ComparisonOperator,
    Expression,
    FunctionModifier,
    ModifierOperator,
    Not,
    Number,
    Or,
    Unknown,
)

if TYPE_CHECKING:
    from robotics_planning.state.knowledge_base import KnowledgeBaseClient
    from robotics_planning.state.world_state import WorldState

logger = logging.getLogger(__name__)


class EvaluationResult(NamedTuple):
    """The outcome of evaluating an expression; compares equal to a plain 3-tuple."""

    success: bool
    """False if the expression was malformed or a lookup failed."""

    truth: bool
    """Truth value of the expression (after any mutation, in apply mode)."""

    value: float
    """Numeric value of the expression (zero for purely logical expressions)."""


VACUOUS = EvaluationResult(success=True, truth=True, value=0.0)
"""Result of evaluating an absent expression: there is no condition to check."""

FAILURE = EvaluationResult(success=False, truth=False, value=0.0)
"""Result of an evaluation that could not be completed."""


class ClientWorldState:
    """Adapts a knowledge-base client to the world-state interface, without any caching."""

    def __init__(self, client: KnowledgeBaseClient) -> None:
        """Wrap the given knowledge-base client."""
        self.client = client

    def contains(self, atom: str) -> bool:
        """Ask the knowledge base whether the predicate atom holds (unresolved means absent)."""
        return bool(self.client.get_predicate(atom))

    def insert(self, atom: str) -> None:
        """Ask the knowledge base to add the predicate atom."""
        if not self.client.add_predicate(atom):
            raise KnowledgeBaseError(f"Knowledge base rejected adding predicate {atom}")

    def remove(self, atom: str) -> None:
        """Ask the knowledge base to remove the predicate atom."""
        if not self.client.remove_predicate(atom):
            raise KnowledgeBaseError(f"Knowledge base rejected removing predicate {atom}")

    def get_function(self, atom: str) -> float | None:
        """Ask the knowledge base for the value of the function atom."""
        return self.client.get_function(atom)

    def set_function(self, atom: str, value: float) -> None:
        """Ask the knowledge base to assign a value to the function atom."""
        if not self.client.set_function(atom, value):
            raise KnowledgeBaseError(f"Knowledge base rejected setting function {atom}")


class _Context(NamedTuple):
    """Where lookups and mutations are directed during one evaluation."""

    state: WorldState | None
    fallback: KnowledgeBaseClient | None
    """Client consulted for function values that the state leaves undefined."""

    def target(self) -> WorldState:
        """Retrieve the world state that lookups and mutations are directed to."""
        if self.state is None:
            raise EvaluationError("No world state or knowledge-base client to evaluate against.")
        return self.state

    def function_value(self, atom: str) -> float:
        """Resolve the value of a function atom, defaulting to zero if undefined."""
        value = self.target().get_function(atom)
        if value is None and self.fallback is not None:
            value = self.fallback.get_function(atom)
        return 0.0 if value is None else float(value)


def evaluate(
    node: Expression | None,
    state: WorldState | None = None,
    apply: bool = False,
    negate: bool = False,
    use_state: bool = True,
    client: KnowledgeBaseClient | None = None,
) -> EvaluationResult:
    """Evaluate an expression tree against a world state, optionally applying it as an effect.

    :param node: Expression tree to be evaluated (None is vacuously true)
    :param state: World state the expression is evaluated against (used if `use_state`)
    :param apply: Whether to apply the expression as an effect, mutating the state
    :param negate: Whether the expression is negated (i.e., it appears within a `not`)
    :param use_state: Whether to use `state`; if False, `client` is queried and mutated instead
    :param client: Optional knowledge-base client, also consulted for undefined functions
    :return: Success flag, truth value, and numeric value of the expression
    """
    if use_state:
        context = _Context(state, client)
    else:
        context = _Context(ClientWorldState(client) if client is not None else None, None)

    return _evaluate(node, context, apply, negate)


def _evaluate(
    node: Expression | None,
    context: _Context,
    apply: bool,
    negate: bool,
) -> EvaluationResult:
    """Recursively evaluate an expression tree within the given context."""
    match node:
        case None:
            return VACUOUS

        case Unknown():
            logger.debug(f"Cannot evaluate malformed expression '{node.text}'.")
            return FAILURE

        case Number(value):
            return EvaluationResult(True, value != 0, float(value))

        case Atom(is_function=True):
            try:
                return EvaluationResult(True, False, context.function_value(node.text))
            except (EvaluationError, OSError) as error:
                logger.debug(f"Failed to look up function {node.text}: {error}")
                return FAILURE

        case Atom():
            return _evaluate_predicate(node, context, apply, negate)

        case Not(child):
            result = _evaluate(child, context, apply, not negate)
            return EvaluationResult(result.success, result.truth, 0.0)

        case And(children) | Or(children):
            results = [_evaluate(c, context, apply, negate) for c in children]
            success = all(r.success for r in results)

            # Under negation, queries follow De Morgan's laws: not (a and b) = (not a) or (not b)
            use_all = isinstance(node, And) != (negate and not apply)
            truths = (r.truth for r in results)
            return EvaluationResult(success, all(truths) if use_all else any(truths), 0.0)

        case Comparison(operator, left, right):
            lhs = _evaluate(left, context, apply=False, negate=False)
            rhs = _evaluate(right, context, apply=False, negate=False)
            if not (lhs.success and rhs.success):
                return FAILURE
            return EvaluationResult(True, compare(operator, lhs.value, rhs.value) != negate, 0.0)

        case Arithmetic(operator, left, right):
            lhs = _evaluate(left, context, apply=False, negate=False)
            rhs = _evaluate(right, context, apply=False, negate=False)
            if not (lhs.success and rhs.success):
                return FAILURE
            try:
                return EvaluationResult(True, False, calculate(operator, lhs.value, rhs.value))
            except ZeroDivisionError:
                logger.debug(f"Division by zero while evaluating {node}.")
                return FAILURE

        case FunctionModifier():
            return _evaluate_modifier(node, context, apply)

        case _:
            assert_never(node)


def _evaluate_predicate(
    atom: Atom,
    context: _Context,
    apply: bool,
    negate: bool,
) -> EvaluationResult:
    """Query a predicate atom or, in apply mode, insert/remove it from the world state."""
    try:
        state = context.target()
        if apply:
            if negate:
                state.remove(atom.text)
            else:
                state.insert(atom.text)
            return EvaluationResult(True, state.contains(atom.text), 0.0)

        return EvaluationResult(True, state.contains(atom.text) != negate, 0.0)

    except (EvaluationError, OSError) as error:
        logger.debug(f"Failed to evaluate predicate {atom.text}: {error}")
        return FAILURE


def _evaluate_modifier(
    modifier: FunctionModifier,
    context: _Context,
    apply: bool,
) -> EvaluationResult:
    """Compute the updated value of a function and, in apply mode, assign it."""
    operand = _evaluate(modifier.value, context, apply=False, negate=False)
    if not operand.success:
        return FAILURE

    try:
        current = context.function_value(modifier.target.text)
        new_value = modify(modifier.operator, current, operand.value)
        if apply:
            context.target().set_function(modifier.target.text, new_value)
    except ZeroDivisionError:
        logger.debug(f"Division by zero while evaluating {modifier}.")
        return FAILURE
    except (EvaluationError, OSError) as error:
        logger.debug(f"Failed to update function {modifier.target.text}: {error}")
        return FAILURE

    return EvaluationResult(True, False, new_value)


def compare(operator: ComparisonOperator, lhs: float, rhs: float) -> bool:
    """Compare two numeric values using the given comparison operator."""
    match operator:
        case ComparisonOperator.LESS:
            return lhs < rhs
        case ComparisonOperator.GREATER:
            return lhs > rhs
        case ComparisonOperator.LESS_EQUAL:
            return lhs <= rhs
        case ComparisonOperator.GREATER_EQUAL:
            return lhs >= rhs
        case ComparisonOperator.EQUAL:
            return math.isclose(lhs, rhs, abs_tol=1e-9)
        case _:
            assert_never(operator)


def calculate(operator: ArithmeticOperator, lhs: float, rhs: float) -> float:
    """Combine two numeric values using the given arithmetic operator.

    :raises ZeroDivisionError: If dividing by zero
    """
    match operator:
        case ArithmeticOperator.ADD:
            return lhs + rhs
        case ArithmeticOperator.SUBTRACT:
            return lhs - rhs
        case ArithmeticOperator.MULTIPLY:
            return lhs * rhs
        case ArithmeticOperator.DIVIDE:
            return lhs / rhs
        case _:
            assert_never(operator)


def modify(operator: ModifierOperator, current: float, operand: float) -> float:
    """Compute the new value of a function updated by a numeric effect.

    :raises ZeroDivisionError: If scaling down by zero
    """
    match operator:
        case ModifierOperator.ASSIGN:
            return operand
        case ModifierOperator.INCREASE:
            return current + operand
        case ModifierOperator.DECREASE:
            return current - operand
        case ModifierOperator.SCALE_UP:
            return current * operand
        case ModifierOperator.SCALE_DOWN:
            return current / operand
        case _:
            assert_never(operator)


def get_subtrees(node: Expression | None) -> list[Expression]:
    """Retrieve the direct children of a top-level conjunction.

    Only one level of an `and` is decomposed; disjunctions, leaves, and absent expressions
    yield no subtrees, so they are tracked as single units.
    """
    if isinstance(node, And):
        return list(node.children)
    return []

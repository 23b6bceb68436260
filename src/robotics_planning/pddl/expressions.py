"""Define immutable expression trees representing PDDL conditions and effects.

An expression tree is a closed set of node types. Code that walks a tree matches on every node
type and ends with `assert_never`, so adding a node type is flagged wherever it isn't handled.

Canonical atom text has the form `(name arg1 arg2 ... argN)`; it is the key used to index world
states, so two atoms refer to the same entity if and only if their strings are identical.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Iterator, Mapping, Union

from typing_extensions import assert_never


class ComparisonOperator(StrEnum):
    """Enumeration of the numeric comparisons allowed in PDDL conditions."""

    LESS = "<"
    GREATER = ">"
    LESS_EQUAL = "<="
    GREATER_EQUAL = ">="
    EQUAL = "="


class ArithmeticOperator(StrEnum):
    """Enumeration of the binary arithmetic operators allowed in numeric expressions."""

    ADD = "+"
    SUBTRACT = "-"
    MULTIPLY = "*"
    DIVIDE = "/"


class ModifierOperator(StrEnum):
    """Enumeration of the numeric effects that update the value of a function."""

    ASSIGN = "assign"
    INCREASE = "increase"
    DECREASE = "decrease"
    SCALE_UP = "scale-up"
    SCALE_DOWN = "scale-down"


@dataclass(frozen=True)
class And:
    """A conjunction of sub-expressions."""

    children: tuple[Expression, ...]

    def __str__(self) -> str:
        """Return the canonical PDDL string of the conjunction."""
        return self.to_pddl()

    def to_pddl(self) -> str:
        """Return the canonical PDDL string of the conjunction, e.g., `(and (p a)(q b))`."""
        return f"(and {''.join(c.to_pddl() for c in self.children)})"


@dataclass(frozen=True)
class Or:
    """A disjunction of sub-expressions."""

    children: tuple[Expression, ...]

    def __str__(self) -> str:
        """Return the canonical PDDL string of the disjunction."""
        return self.to_pddl()

    def to_pddl(self) -> str:
        """Return the canonical PDDL string of the disjunction, e.g., `(or (p a)(q b))`."""
        return f"(or {''.join(c.to_pddl() for c in self.children)})"


@dataclass(frozen=True)
class Not:
    """The negation of a sub-expression."""

    child: Expression

    def __str__(self) -> str:
        """Return the canonical PDDL string of the negation."""
        return self.to_pddl()

    def to_pddl(self) -> str:
        """Return the canonical PDDL string of the negation, e.g., `(not (p a))`."""
        return f"(not {self.child.to_pddl()})"


@dataclass(frozen=True)
class Atom:
    """A reference to a predicate or a function, stored in canonical textual form."""

    text: str
    """Canonical string `(name arg1 ... argN)` identifying the predicate or function."""

    is_function: bool = False
    """True if the atom refers to a numeric function rather than a predicate."""

    @classmethod
    def from_terms(cls, name: str, arguments: tuple[str, ...], is_function: bool = False) -> Atom:
        """Construct an atom from its name and ordered arguments."""
        return cls(f"({' '.join((name, *arguments))})", is_function=is_function)

    def __str__(self) -> str:
        """Return the canonical text of the atom."""
        return self.text

    @property
    def tokens(self) -> tuple[str, ...]:
        """Retrieve the whitespace-separated tokens between the atom's parentheses."""
        return tuple(self.text.strip().removeprefix("(").removesuffix(")").split())

    @property
    def name(self) -> str:
        """Retrieve the name of the referenced predicate or function."""
        return self.tokens[0] if self.tokens else ""

    @property
    def arguments(self) -> tuple[str, ...]:
        """Retrieve the ordered arguments of the atom."""
        return self.tokens[1:]

    def to_pddl(self) -> str:
        """Return the canonical PDDL string of the atom."""
        return self.text


@dataclass(frozen=True)
class Number:
    """A numeric literal."""

    value: float

    def __str__(self) -> str:
        """Return the canonical PDDL string of the number."""
        return self.to_pddl()

    def to_pddl(self) -> str:
        """Return the shortest string representing the number (e.g., `3` rather than `3.0`)."""
        if float(self.value).is_integer():
            return str(int(self.value))
        return repr(float(self.value))


@dataclass(frozen=True)
class Comparison:
    """A numeric comparison between two expressions, e.g., `(> (battery r2d2) 10)`."""

    operator: ComparisonOperator
    left: Expression
    right: Expression

    def __str__(self) -> str:
        """Return the canonical PDDL string of the comparison."""
        return self.to_pddl()

    def to_pddl(self) -> str:
        """Return the canonical PDDL string of the comparison."""
        return f"({self.operator} {self.left.to_pddl()} {self.right.to_pddl()})"


@dataclass(frozen=True)
class Arithmetic:
    """A binary arithmetic expression, e.g., `(+ (distance a b) 2)`."""

    operator: ArithmeticOperator
    left: Expression
    right: Expression

    def __str__(self) -> str:
        """Return the canonical PDDL string of the arithmetic expression."""
        return self.to_pddl()

    def to_pddl(self) -> str:
        """Return the canonical PDDL string of the arithmetic expression."""
        return f"({self.operator} {self.left.to_pddl()} {self.right.to_pddl()})"


@dataclass(frozen=True)
class FunctionModifier:
    """A numeric effect updating a function, e.g., `(decrease (battery r2d2) 5)`."""

    operator: ModifierOperator
    target: Atom
    value: Expression

    def __str__(self) -> str:
        """Return the canonical PDDL string of the numeric effect."""
        return self.to_pddl()

    def to_pddl(self) -> str:
        """Return the canonical PDDL string of the numeric effect."""
        return f"({self.operator} {self.target.to_pddl()} {self.value.to_pddl()})"


@dataclass(frozen=True)
class Unknown:
    """A sentinel node produced from malformed input; it never evaluates successfully."""

    text: str = ""
    """The input text that could not be interpreted (kept for error messages)."""

    def __str__(self) -> str:
        """Return the text that could not be interpreted."""
        return self.to_pddl()

    def to_pddl(self) -> str:
        """Return the text that could not be interpreted."""
        return self.text


Expression = Union[And, Or, Not, Atom, Number, Comparison, Arithmetic, FunctionModifier, Unknown]
"""Any node of an expression tree."""


def to_pddl(node: Expression | None) -> str:
    """Return the canonical PDDL string of an optional expression (empty if absent)."""
    return "" if node is None else node.to_pddl()


def iter_atoms(node: Expression | None) -> Iterator[Atom]:
    """Iterate over every atom referenced in an expression tree, in pre-order."""
    match node:
        case None | Number() | Unknown():
            return
        case Atom():
            yield node
        case And(children) | Or(children):
            for child in children:
                yield from iter_atoms(child)
        case Not(child):
            yield from iter_atoms(child)
        case Comparison(_, left, right) | Arithmetic(_, left, right):
            yield from iter_atoms(left)
            yield from iter_atoms(right)
        case FunctionModifier(_, target, value):
            yield target
            yield from iter_atoms(value)
        case _:
            assert_never(node)


def get_atoms(node: Expression | None) -> list[Atom]:
    """Collect every atom referenced in an expression tree, in pre-order."""
    return list(iter_atoms(node))


def free_variables(node: Expression | None) -> set[str]:
    """Find all `?variable` terms appearing as atom arguments in an expression tree."""
    return {arg for atom in iter_atoms(node) for arg in atom.arguments if arg.startswith("?")}


def substitute(node: Expression | None, bindings: Mapping[str, str]) -> Expression | None:
    """Replace atom arguments according to the given bindings, producing a new tree.

    :param node: Expression tree to be rewritten (None is returned unchanged)
    :param bindings: Map from placeholder terms to the symbols that replace them
    :return: New expression tree in which every bound placeholder has been replaced
    """
    match node:
        case None | Number() | Unknown():
            return node
        case Atom(text, is_function):
            if not text.strip():
                return node
            args = tuple(bindings.get(arg, arg) for arg in node.arguments)
            return Atom.from_terms(node.name, args, is_function=is_function)
        case And(children):
            return And(tuple(_substitute_child(c, bindings) for c in children))
        case Or(children):
            return Or(tuple(_substitute_child(c, bindings) for c in children))
        case Not(child):
            return Not(_substitute_child(child, bindings))
        case Comparison(op, left, right):
            new_left = _substitute_child(left, bindings)
            new_right = _substitute_child(right, bindings)
            return Comparison(op, new_left, new_right)
        case Arithmetic(op, left, right):
            new_left = _substitute_child(left, bindings)
            new_right = _substitute_child(right, bindings)
            return Arithmetic(op, new_left, new_right)
        case FunctionModifier(op, target, value):
            new_target = _substitute_child(target, bindings)
            assert isinstance(new_target, Atom)
            return FunctionModifier(op, new_target, _substitute_child(value, bindings))
        case _:
            assert_never(node)


def _substitute_child(node: Expression, bindings: Mapping[str, str]) -> Expression:
    """Substitute within a child node, which is never None."""
    result = substitute(node, bindings)
    assert result is not None
    return result

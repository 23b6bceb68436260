"""Define the knowledge-base interface and an in-memory problem implementing it."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Iterable, Mapping, Protocol

from robotics_planning.io.pydantic_schemata import ProblemSchema, validate_yaml
from robotics_planning.pddl.expression_parser import parse_expression

if TYPE_CHECKING:
    from robotics_planning.pddl.expressions import Expression

logger = logging.getLogger(__name__)


class KnowledgeBaseClient(Protocol):
    """A collaborator storing the current predicates and function values of a problem.

    Lookups return None when the knowledge base cannot resolve an atom; the evaluator then
    treats the atom as absent. Communication failures raise a `KnowledgeBaseError`.
    """

    def get_predicate(self, atom: str) -> bool | None:
        """Retrieve whether the given predicate atom currently holds."""
        ...

    def get_function(self, atom: str) -> float | None:
        """Retrieve the current value of the given function atom."""
        ...

    def add_predicate(self, atom: str) -> bool:
        """Add the given predicate atom, returning True on success."""
        ...

    def remove_predicate(self, atom: str) -> bool:
        """Remove the given predicate atom, returning True on success."""
        ...

    def set_function(self, atom: str, value: float) -> bool:
        """Assign a value to the given function atom, returning True on success."""
        ...

    def get_predicates(self) -> set[str]:
        """Retrieve all predicate atoms that currently hold."""
        ...

    def get_functions(self) -> dict[str, float]:
        """Retrieve the values of all defined function atoms."""
        ...


class Problem:
    """An in-memory planning problem: objects, an initial state, and a goal."""

    def __init__(
        self,
        name: str = "problem",
        objects: Mapping[str, str] | None = None,
        predicates: Iterable[str] = (),
        functions: Mapping[str, float] | None = None,
        goal: Expression | None = None,
    ) -> None:
        """Initialize the problem from its initial predicates, function values, and goal.

        :param name: Name of the problem
        :param objects: Optional map from object names to their types
        :param predicates: Canonical strings of the predicate atoms that initially hold
        :param functions: Optional map from canonical function atoms to initial values
        :param goal: Optional goal expression of the problem
        """
        self.name = name
        self.objects: dict[str, str] = dict(objects or {})
        self.predicates: set[str] = set(predicates)
        self.functions: dict[str, float] = dict(functions or {})
        self.goal = goal

    @classmethod
    def from_yaml(cls, yaml_path: Path | str) -> Problem:
        """Load a problem from a YAML file."""
        schema = validate_yaml(yaml_path, ProblemSchema)
        return cls(
            name=schema.name,
            objects=schema.objects,
            predicates=schema.predicates,
            functions=schema.functions,
            goal=parse_expression(schema.goal),
        )

    def __repr__(self) -> str:
        """Return a compact description of the problem."""
        return (
            f"Problem(name={self.name!r}, predicates={len(self.predicates)}, "
            f"functions={len(self.functions)})"
        )

    def get_predicate(self, atom: str) -> bool | None:
        """Retrieve whether the given predicate atom currently holds (closed world)."""
        return atom in self.predicates

    def get_function(self, atom: str) -> float | None:
        """Retrieve the current value of the given function atom (None if undefined)."""
        return self.functions.get(atom)

    def add_predicate(self, atom: str) -> bool:
        """Add the given predicate atom to the problem's current state."""
        self.predicates.add(atom)
        logger.debug(f"Added predicate {atom} to problem '{self.name}'.")
        return True

    def remove_predicate(self, atom: str) -> bool:
        """Remove the given predicate atom from the problem's current state."""
        self.predicates.discard(atom)
        logger.debug(f"Removed predicate {atom} from problem '{self.name}'.")
        return True

    def set_function(self, atom: str, value: float) -> bool:
        """Assign a value to the given function atom."""
        self.functions[atom] = value
        return True

    def get_predicates(self) -> set[str]:
        """Retrieve a copy of all predicate atoms that currently hold."""
        return set(self.predicates)

    def get_functions(self) -> dict[str, float]:
        """Retrieve a copy of the values of all defined function atoms."""
        return dict(self.functions)

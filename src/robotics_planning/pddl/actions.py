"""Define classes to represent durative action schemas and their grounded instances."""

from __future__ import annotations

from dataclasses import dataclass

from robotics_planning.pddl.expressions import And, Expression, to_pddl

TIMED_EXPRESSIONS = (
    "at_start_requirements",
    "over_all_requirements",
    "at_end_requirements",
    "at_start_effects",
    "at_end_effects",
)
"""Names of the five timed expression trees carried by every action."""


def conjoin(*expressions: Expression | None) -> Expression | None:
    """Combine the given optional expressions into one conjunction, skipping absent ones."""
    present = tuple(e for e in expressions if e is not None)
    if not present:
        return None
    return present[0] if len(present) == 1 else And(present)


@dataclass(frozen=True)
class Parameter:
    """A typed parameter of an action schema, e.g., `?r - robot`."""

    name: str
    type_name: str = "object"

    def __str__(self) -> str:
        """Return the PDDL string of the typed parameter."""
        return f"{self.name} - {self.type_name}"


@dataclass(frozen=True)
class ActionSchema:
    """A lifted durative action whose expressions refer to its parameter placeholders.

    Reference: Section 8 ("Durative Actions") of Fox & Long (2003).
    """

    name: str
    parameters: tuple[Parameter, ...] = ()
    at_start_requirements: Expression | None = None
    over_all_requirements: Expression | None = None
    at_end_requirements: Expression | None = None
    at_start_effects: Expression | None = None
    at_end_effects: Expression | None = None
    duration: float | None = None
    """Nominal duration (seconds) of the action, if the domain specifies one."""

    @classmethod
    def from_instant(
        cls,
        name: str,
        parameters: tuple[Parameter, ...],
        precondition: Expression | None,
        effect: Expression | None,
    ) -> ActionSchema:
        """Express a non-durative action as a durative action of zero duration.

        The precondition must hold at the start of the action, and the effect takes place at
        its end.
        """
        return cls(
            name,
            parameters,
            at_start_requirements=precondition,
            at_end_effects=effect,
            duration=0.0,
        )

    def to_pddl(self) -> str:
        """Return a PDDL string summarizing the schema, e.g., `(move ?r - robot ?to - room)`."""
        params = " ".join(str(p) for p in self.parameters)
        return f"({self.name}{' ' + params if params else ''})"


@dataclass(frozen=True)
class InstantiatedAction:
    """A durative action whose parameters have been bound to concrete objects.

    All five expression trees are fully grounded: no parameter placeholder remains.
    """

    schema: ActionSchema
    arguments: tuple[str, ...]
    at_start_requirements: Expression | None = None
    over_all_requirements: Expression | None = None
    at_end_requirements: Expression | None = None
    at_start_effects: Expression | None = None
    at_end_effects: Expression | None = None

    def __str__(self) -> str:
        """Return the ground action string, e.g., `(move r2d2 kitchen bedroom)`."""
        return self.to_pddl()

    @property
    def name(self) -> str:
        """Retrieve the name of the instantiated action."""
        return self.schema.name

    @property
    def parameters(self) -> tuple[Parameter, ...]:
        """Retrieve the concrete arguments as parameters, typed as in the schema."""
        return tuple(
            Parameter(arg, p.type_name)
            for arg, p in zip(self.arguments, self.schema.parameters, strict=True)
        )

    def to_pddl(self) -> str:
        """Return the ground action string, e.g., `(move r2d2 kitchen bedroom)`."""
        return f"({' '.join((self.name, *self.arguments))})"

    def effects(self) -> Expression | None:
        """Combine the at-start and at-end effects, in the order they take place."""
        return conjoin(self.at_start_effects, self.at_end_effects)

    def describe(self) -> dict[str, str]:
        """Map the name of each timed expression to its canonical PDDL string."""
        return {name: to_pddl(getattr(self, name)) for name in TIMED_EXPRESSIONS}

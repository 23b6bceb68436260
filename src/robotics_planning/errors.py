"""Define the exceptions raised while evaluating, grounding, and compiling plans."""


class PlanningError(Exception):
    """Base class for all errors raised by `robotics_planning`."""


class PDDLSyntaxError(PlanningError):
    """An error raised when a string of PDDL cannot be parsed."""


class EvaluationError(PlanningError):
    """An error raised when an expression cannot be evaluated against a world state.

    The evaluator never propagates this error; it is reported as `success=False` instead.
    """


class KnowledgeBaseError(EvaluationError):
    """An error raised when a knowledge-base lookup or update fails or times out."""


class GroundingError(PlanningError):
    """An error raised when a ground action string cannot be instantiated from its schema."""


class CompilationError(PlanningError):
    """An error raised when a plan cannot be compiled into an execution tree."""

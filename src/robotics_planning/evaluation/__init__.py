"""Import functions that evaluate expressions against world states."""

from .evaluator import EvaluationResult as EvaluationResult
from .evaluator import evaluate as evaluate
from .evaluator import get_subtrees as get_subtrees

"""Import classes and functions used to compile plans into executable behavior trees."""

from .bt_builder import ACTION_TEMPLATES as ACTION_TEMPLATES
from .bt_builder import ExecutionTreeBuilder as ExecutionTreeBuilder
from .dependency_graph import DependencyGraph as DependencyGraph
from .dependency_graph import PlanNode as PlanNode
from .execution_status import ActionExecutionInfo as ActionExecutionInfo
from .execution_status import ActionExecutionMap as ActionExecutionMap
from .execution_status import ActionExecutionStatus as ActionExecutionStatus
from .execution_tree import ActionNode as ActionNode
from .execution_tree import ExecutionNode as ExecutionNode
from .execution_tree import ParallelNode as ParallelNode
from .execution_tree import SequenceNode as SequenceNode
from .execution_tree import iter_actions as iter_actions
from .plan import Plan as Plan
from .plan import PlanItem as PlanItem

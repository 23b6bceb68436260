"""Infer the causal dependencies between the actions of a timed plan.

Each requirement of an action is traced back to the action whose effects establish it. The
resulting directed acyclic graph is the single source from which both the execution tree and
its diagnostic drawing are produced.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import StrEnum
from typing import Iterator

import networkx as nx

from robotics_planning.errors import CompilationError
from robotics_planning.evaluation.evaluator import evaluate
from robotics_planning.pddl.actions import InstantiatedAction
from robotics_planning.pddl.expressions import And, Atom, Expression, Not, to_pddl
from robotics_planning.state.world_state import LocalWorldState

from .plan import PlanItem

logger = logging.getLogger(__name__)


class RequirementTiming(StrEnum):
    """When during an action one of its requirements must hold."""

    AT_START = "at-start"
    OVER_ALL = "over-all"
    AT_END = "at-end"


@dataclass(frozen=True)
class PlanNode:
    """A plan item paired with its grounded action."""

    index: int
    """Position of the item in the plan, as emitted by the planner."""

    item: PlanItem
    action: InstantiatedAction

    @property
    def action_id(self) -> str:
        """Retrieve the identifier of the node's plan item."""
        return self.item.action_id

    @property
    def sort_key(self) -> tuple[float, int]:
        """Retrieve the key ordering nodes by start time, breaking ties by plan order."""
        return (self.item.time, self.index)


def flatten_conjuncts(expression: Expression | None) -> list[Expression]:
    """Split an expression into the conditions it conjoins, descending through nested `and`s."""
    if expression is None:
        return []
    if isinstance(expression, And):
        return [c for child in expression.children for c in flatten_conjuncts(child)]
    return [expression]


def _force_false(condition: Expression, state: LocalWorldState) -> None:
    """Modify the state so that a literal condition no longer holds; other conditions are kept."""
    match condition:
        case Atom(is_function=False):
            state.remove(condition.text)
        case Not(Atom(is_function=False) as atom):
            state.insert(atom.text)


def _holds(condition: Expression, state: LocalWorldState) -> bool:
    """Check whether a condition is successfully evaluated as true in the given state."""
    result = evaluate(condition, state)
    return result.success and result.truth


def _makes_true(
    effects: Expression | None,
    condition: Expression,
    state: LocalWorldState,
) -> bool:
    """Check whether applying effects makes a condition true, starting from where it is false.

    The condition is first made false in a copy of the state (when it is a literal), then the
    effects are applied to that copy.
    """
    if effects is None:
        return False

    scratch = state.copy()
    _force_false(condition, scratch)
    if _holds(condition, scratch):
        return False

    evaluate(effects, scratch, apply=True)
    return _holds(condition, scratch)


def timed_conjuncts(action: InstantiatedAction) -> Iterator[tuple[RequirementTiming, Expression]]:
    """Yield each condition an action requires, paired with when it must hold."""
    for timing, requirement in (
        (RequirementTiming.AT_START, action.at_start_requirements),
        (RequirementTiming.OVER_ALL, action.over_all_requirements),
        (RequirementTiming.AT_END, action.at_end_requirements),
    ):
        for condition in flatten_conjuncts(requirement):
            yield timing, condition


class DependencyGraph:
    """A directed graph whose edges lead from each action to the actions that depend on it."""

    def __init__(self, nodes: list[PlanNode], initial_state: LocalWorldState) -> None:
        """Initialize the graph with one vertex per plan node and no dependencies yet.

        :param nodes: Grounded plan items, indexed by their position in the plan
        :param initial_state: Snapshot of the world state from which the plan executes
        """
        self.nodes = nodes
        self.initial_state = initial_state

        self.graph = nx.DiGraph()
        for node in nodes:
            self.graph.add_node(node.index, node=node)

        self._closure: nx.DiGraph | None = None

    @classmethod
    def build(cls, nodes: list[PlanNode], initial_state: LocalWorldState) -> DependencyGraph:
        """Infer the dependencies between plan nodes and verify that they are consistent.

        :param nodes: Grounded plan items, indexed by their position in the plan
        :param initial_state: Snapshot of the world state from which the plan executes
        :return: Acyclic dependency graph whose edges record the conditions they provide
        :raises CompilationError: If a requirement has no provider, the dependencies are
            cyclic, or executing the actions in dependency order violates a requirement
        """
        dependencies = cls(nodes, initial_state)
        by_time = sorted(nodes, key=lambda n: n.sort_key)

        for position, consumer in enumerate(by_time):
            for timing, condition in timed_conjuncts(consumer.action):
                dependencies._link(condition, timing, consumer, by_time, position)

        dependencies._check_acyclic()
        dependencies._check_executable()

        logger.debug(
            f"Inferred {dependencies.graph.number_of_edges()} dependencies "
            f"between {len(nodes)} plan actions.",
        )
        return dependencies

    def _link(
        self,
        condition: Expression,
        timing: RequirementTiming,
        consumer: PlanNode,
        by_time: list[PlanNode],
        position: int,
    ) -> None:
        """Connect the provider of one required condition to the node that requires it.

        Conditions checked after an action starts may be established by its own at-start
        effects. Otherwise the latest provider ordered before the consumer is chosen. A provider
        ordered after the consumer is only accepted when both start at the same time.

        :raises CompilationError: If no provider starting no later than the consumer exists
        """
        if timing is not RequirementTiming.AT_START and _makes_true(
            consumer.action.at_start_effects,
            condition,
            self.initial_state,
        ):
            return

        earlier = [n for n in by_time[:position] if self.establishes(n, condition)]
        if earlier:
            self._add_dependency(earlier[-1], consumer, condition)
            return

        if _holds(condition, self.initial_state):
            return

        later = [n for n in by_time[position + 1 :] if self.establishes(n, condition)]
        if later and later[0].item.time <= consumer.item.time:
            self._add_dependency(later[0], consumer, condition)
            return
        if later:
            raise CompilationError(
                f"Requirement {to_pddl(condition)} of {consumer.action_id} is only established "
                f"by {later[0].action_id}, which is scheduled to start after it.",
            )

        raise CompilationError(
            f"Requirement {to_pddl(condition)} of {consumer.action_id} is neither satisfied "
            "initially nor established by any action in the plan.",
        )

    def establishes(self, provider: PlanNode, condition: Expression) -> bool:
        """Check whether the effects of a plan node make a condition become true."""
        return _makes_true(provider.action.effects(), condition, self.initial_state)

    def _add_dependency(
        self,
        provider: PlanNode,
        consumer: PlanNode,
        condition: Expression,
    ) -> None:
        """Add (or extend) the edge stating that the consumer depends on the provider."""
        if provider.index == consumer.index:
            return

        if self.graph.has_edge(provider.index, consumer.index):
            self.graph.edges[provider.index, consumer.index]["conditions"].append(
                to_pddl(condition),
            )
        else:
            self.graph.add_edge(provider.index, consumer.index, conditions=[to_pddl(condition)])
        self._closure = None

    def _check_acyclic(self) -> None:
        """Verify that the dependencies contain no cycle.

        :raises CompilationError: If some action transitively depends on itself
        """
        if nx.is_directed_acyclic_graph(self.graph):
            return

        cycle = nx.find_cycle(self.graph)
        actions = " -> ".join(self.node(u).action_id for u, _ in cycle)
        raise CompilationError(f"Plan actions depend on each other cyclically: {actions}")

    def _check_executable(self) -> None:
        """Simulate the plan in dependency order to verify that every requirement holds.

        :raises CompilationError: If a requirement is unsatisfied when its action executes
        """
        state = self.initial_state.copy()
        for node in self.ordered_nodes():
            steps = (
                ("at-start requirements", node.action.at_start_requirements, False),
                ("at-start effects", node.action.at_start_effects, True),
                ("over-all requirements", node.action.over_all_requirements, False),
                ("at-end requirements", node.action.at_end_requirements, False),
                ("at-end effects", node.action.at_end_effects, True),
            )
            for description, expression, apply in steps:
                result = evaluate(expression, state, apply=apply)
                if not result.success or (not apply and not result.truth):
                    raise CompilationError(
                        f"The {description} of {node.action_id} fail in state {state}",
                    )

    def node(self, index: int) -> PlanNode:
        """Retrieve the plan node stored at the given vertex."""
        return self.graph.nodes[index]["node"]

    def ordered_nodes(self) -> Iterator[PlanNode]:
        """Iterate over the nodes in dependency order, breaking ties by start time and index."""
        order = nx.lexicographical_topological_sort(
            self.graph,
            key=lambda i: self.node(i).sort_key,
        )
        return (self.node(i) for i in order)

    def dependencies(self) -> Iterator[tuple[PlanNode, PlanNode, list[str]]]:
        """Iterate over (provider, consumer, conditions) triples for every dependency."""
        for u, v, conditions in self.graph.edges(data="conditions"):
            yield self.node(u), self.node(v), conditions

    def reaches(self, source: int, target: int) -> bool:
        """Check whether the target node transitively depends on the source node."""
        if self._closure is None:
            self._closure = nx.transitive_closure_dag(self.graph)
        return self._closure.has_edge(source, target)

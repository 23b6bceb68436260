"""Define the execution tree of a plan and its series-parallel decomposition.

Two plan actions are ordered if one depends (transitively) on the other or if one is scheduled
to finish before the other starts. Actions are otherwise free to execute concurrently.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterator, Union

import networkx as nx
from typing_extensions import assert_never

from .dependency_graph import DependencyGraph, PlanNode

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ActionNode:
    """A leaf of the execution tree, executing one plan action."""

    action_id: str
    action: str
    time: float
    duration: float


@dataclass(frozen=True)
class SequenceNode:
    """A composite node executing its children one after another."""

    children: tuple[ExecutionNode, ...] = ()


@dataclass(frozen=True)
class ParallelNode:
    """A composite node executing its children concurrently."""

    children: tuple[ExecutionNode, ...] = ()


ExecutionNode = Union[ActionNode, SequenceNode, ParallelNode]


def iter_actions(node: ExecutionNode) -> Iterator[ActionNode]:
    """Iterate over the action leaves of an execution tree, in depth-first order."""
    match node:
        case ActionNode():
            yield node
        case SequenceNode(children) | ParallelNode(children):
            for child in children:
                yield from iter_actions(child)
        case _:
            assert_never(node)


class SeriesParallelDecomposer:
    """Decomposes the ordering of plan actions into nested sequences and parallel groups."""

    def __init__(self, dependencies: DependencyGraph, tolerance_s: float = 1e-3) -> None:
        """Initialize the decomposer for the given dependency graph.

        :param dependencies: Dependencies between the actions of a plan
        :param tolerance_s: Time tolerance (seconds) used when comparing scheduled times
        """
        self.dependencies = dependencies
        self.tolerance_s = tolerance_s

    def precedes(self, first: PlanNode, second: PlanNode) -> bool:
        """Check whether the first node must (or is scheduled to) finish before the second."""
        if self.dependencies.reaches(first.index, second.index):
            return True
        if self.dependencies.reaches(second.index, first.index):
            return False
        if first.item.overlaps(second.item, self.tolerance_s):
            return False
        return (first.item.time, first.item.end_time) <= (second.item.time, second.item.end_time)

    def ordered(self, first: PlanNode, second: PlanNode) -> bool:
        """Check whether two nodes cannot execute concurrently."""
        return self.precedes(first, second) or self.precedes(second, first)

    def decompose(self) -> SequenceNode:
        """Compute the execution tree of the plan, whose root is always a sequence."""
        members = list(self.dependencies.ordered_nodes())
        if not members:
            return SequenceNode()

        tree = self._compose(members)
        return tree if isinstance(tree, SequenceNode) else SequenceNode((tree,))

    def _compose(self, members: list[PlanNode]) -> ExecutionNode:
        """Recursively compose the execution tree of the given nodes (in dependency order)."""
        if len(members) == 1:
            item = members[0].item
            return ActionNode(item.action_id, item.action, item.time, item.duration)

        groups = self._independent_groups(members)
        if len(groups) > 1:
            return ParallelNode(tuple(self._compose(g) for g in groups))

        blocks = self._series_blocks(members)
        if len(blocks) == 1:
            # Not series-parallel; commit to the first action, then decompose the rest
            logger.debug(f"Sequencing {members[0].action_id} before {len(members) - 1} actions.")
            blocks = [members[:1], members[1:]]

        return SequenceNode(tuple(_splice(self._compose(b) for b in blocks)))

    def _independent_groups(self, members: list[PlanNode]) -> list[list[PlanNode]]:
        """Partition nodes into groups such that no two nodes of distinct groups are ordered."""
        relation = nx.Graph()
        relation.add_nodes_from(range(len(members)))
        for i, first in enumerate(members):
            for j in range(i + 1, len(members)):
                if self.ordered(first, members[j]):
                    relation.add_edge(i, j)

        components = sorted(sorted(c) for c in nx.connected_components(relation))
        return [[members[i] for i in component] for component in components]

    def _series_blocks(self, members: list[PlanNode]) -> list[list[PlanNode]]:
        """Cut nodes into consecutive blocks such that every block precedes all later blocks."""
        blocks = []
        start = 0
        for cut in range(1, len(members)):
            if all(
                self.precedes(first, second) for first in members[:cut] for second in members[cut:]
            ):
                blocks.append(members[start:cut])
                start = cut
        blocks.append(members[start:])
        return blocks


def _splice(nodes: Iterator[ExecutionNode]) -> Iterator[ExecutionNode]:
    """Inline the children of nested sequences into their parent sequence."""
    for node in nodes:
        if isinstance(node, SequenceNode):
            yield from node.children
        else:
            yield node

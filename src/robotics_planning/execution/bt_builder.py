"""Compile timed plans into behavior trees and draw their dependency graphs."""

from __future__ import annotations

import copy
import logging
from pathlib import Path
from typing import TYPE_CHECKING
from xml.etree import ElementTree
from xml.etree.ElementTree import Element, ParseError

from defusedxml.ElementTree import fromstring
from typing_extensions import assert_never

from robotics_planning.errors import CompilationError, GroundingError, KnowledgeBaseError
from robotics_planning.grounding.grounder import ground
from robotics_planning.io.logging import console
from robotics_planning.io.pydantic_schemata import CompilerConfigSchema, validate_yaml
from robotics_planning.state.world_state import LocalWorldState

from .dependency_graph import DependencyGraph, PlanNode
from .execution_status import ActionExecutionInfo, ActionExecutionMap, ActionExecutionStatus
from .execution_tree import (
    ActionNode,
    ExecutionNode,
    ParallelNode,
    SequenceNode,
    SeriesParallelDecomposer,
)

if TYPE_CHECKING:
    from robotics_planning.pddl.domain import DomainCollaborator
    from robotics_planning.state.knowledge_base import KnowledgeBaseClient

    from .plan import Plan

logger = logging.getLogger(__name__)

ACTION_ID = "ACTION_ID"
"""Placeholder replaced by the identifier of each action when instantiating a template."""

ACTION_TEMPLATES = {
    "default": """
<Sequence name="ACTION_ID">
  <WaitAtStartReq name="wait_at_start_req" action="ACTION_ID"/>
  <ApplyAtStartEffect name="apply_at_start_effect" action="ACTION_ID"/>
  <ReactiveSequence name="ACTION_ID">
    <CheckOverAllReq name="check_over_all_req" action="ACTION_ID"/>
    <ExecuteAction name="execute_action" action="ACTION_ID"/>
  </ReactiveSequence>
  <CheckAtEndReq name="check_at_end_req" action="ACTION_ID"/>
  <ApplyAtEndEffect name="apply_at_end_effect" action="ACTION_ID"/>
</Sequence>
""",
    "execute_only": """<ExecuteAction name="execute_action" action="ACTION_ID"/>""",
}
"""Registered templates describing the subtree that executes a single action."""


def parse_action_template(template: str | None) -> Element:
    """Resolve an action template from its registered name or from a raw XML fragment.

    :param template: Name of a registered template, XML containing `ACTION_ID`, or None/""
        to select the default template
    :return: Root element of the parsed template
    :raises ValueError: If the template is unknown, isn't valid XML, or lacks `ACTION_ID`
    """
    xml = ACTION_TEMPLATES.get(template or "default", template)
    if xml is None or ACTION_ID not in xml:
        raise ValueError(f"Unknown action template, or template lacks {ACTION_ID}: {template}")

    try:
        return fromstring(xml.strip())
    except ParseError as error:
        raise ValueError(f"Action template is not valid XML: {error}") from error


def instantiate_template(template: Element, action_id: str) -> Element:
    """Create a copy of an action template with every placeholder bound to the action ID."""
    element = copy.deepcopy(template)
    for child in element.iter():
        child.attrib = {k: v.replace(ACTION_ID, action_id) for k, v in child.attrib.items()}
        if child.text is not None:
            child.text = child.text.replace(ACTION_ID, action_id)
    return element


def _quote(text: str) -> str:
    """Quote a string for use as a Graphviz identifier or label."""
    escaped = text.replace('"', '\\"')
    return f'"{escaped}"'


class ExecutionTreeBuilder:
    """Compiles timed plans into behavior trees that execute independent actions concurrently."""

    def __init__(
        self,
        domain: DomainCollaborator,
        problem: KnowledgeBaseClient,
        config: CompilerConfigSchema | None = None,
    ) -> None:
        """Initialize the builder using the given planning collaborators.

        :param domain: Domain collaborator providing action schemas
        :param problem: Knowledge base providing the state from which plans execute
        :param config: Optional configuration of the emitted behavior trees
        """
        self.domain = domain
        self.problem = problem
        self.config = config if config is not None else CompilerConfigSchema()

        self.dependencies: DependencyGraph | None = None
        """Dependency graph of the most recently compiled plan."""

        self.initialize(self.config.action_template)

    @classmethod
    def from_yaml(
        cls,
        domain: DomainCollaborator,
        problem: KnowledgeBaseClient,
        config_path: Path | str,
    ) -> ExecutionTreeBuilder:
        """Construct a builder configured by the given YAML file."""
        return cls(domain, problem, validate_yaml(config_path, CompilerConfigSchema))

    def initialize(self, template: str | None = None) -> None:
        """Select the template used to execute each action of compiled plans.

        Sequences within registered templates use the configured sequence tag, whereas raw XML
        templates are used as written.

        :param template: Name of a registered template, XML containing `ACTION_ID`, or None/""
            to select the default template
        :raises ValueError: If the template cannot be resolved
        """
        self.action_template = parse_action_template(template)
        if (template or "default") in ACTION_TEMPLATES:
            for element in list(self.action_template.iter("Sequence")):
                element.tag = self.config.sequence_tag
        logger.debug(f"Using action template: {template or 'default'}")

    def build_execution_tree(self, plan: Plan) -> SequenceNode:
        """Compile a plan into an execution tree.

        :param plan: Timed plan whose actions are ground action strings
        :return: Root sequence of the execution tree
        :raises CompilationError: If the plan cannot be grounded, its dependencies cannot be
            inferred, or they are cyclic
        """
        self.dependencies = None
        try:
            initial_state = LocalWorldState.from_client(self.problem)
        except (KnowledgeBaseError, OSError) as error:
            raise CompilationError(f"Unable to read the initial state: {error}") from error

        nodes = []
        for index, item in enumerate(plan):
            try:
                nodes.append(PlanNode(index, item, ground(item.action, self.domain)))
            except GroundingError as error:
                raise CompilationError(f"Unable to ground plan item {item}") from error

        self.dependencies = DependencyGraph.build(nodes, initial_state)

        decomposer = SeriesParallelDecomposer(self.dependencies, self.config.time_tolerance_s)
        tree = decomposer.decompose()
        logger.info(f"Compiled a plan of {len(plan)} actions into an execution tree.")
        return tree

    def get_tree(self, plan: Plan) -> str:
        """Compile a plan into the XML of a behavior tree.

        :param plan: Timed plan whose actions are ground action strings
        :return: XML string of the behavior tree
        :raises CompilationError: If the plan cannot be compiled
        """
        tree = self.build_execution_tree(plan)

        root = Element("root", {"main_tree_to_execute": self.config.tree_id})
        behavior_tree = ElementTree.SubElement(root, "BehaviorTree", {"ID": self.config.tree_id})
        behavior_tree.append(self._to_xml(tree))

        ElementTree.indent(root, space="  ")
        return ElementTree.tostring(root, encoding="unicode")

    def _to_xml(self, node: ExecutionNode) -> Element:
        """Recursively convert an execution tree node into XML elements."""
        match node:
            case ActionNode():
                return instantiate_template(self.action_template, node.action_id)
            case SequenceNode(children):
                element = Element(self.config.sequence_tag)
            case ParallelNode(children):
                element = Element(
                    self.config.parallel_tag,
                    {
                        "success_threshold": str(len(children)),
                        "failure_threshold": str(self.config.parallel_failure_threshold),
                    },
                )
            case _:
                assert_never(node)

        for child in children:
            element.append(self._to_xml(child))
        return element

    def get_dotgraph(
        self,
        action_map: ActionExecutionMap | None = None,
        enable_legend: bool = False,
        enable_print_graph: bool = False,
    ) -> str:
        """Describe the dependency graph of the last compiled plan in the Graphviz DOT language.

        :param action_map: Optional map from action IDs to their execution info
        :param enable_legend: Whether to draw a legend explaining the node colors
        :param enable_print_graph: Whether to also print the graph to the console
        :return: DOT description of the graph (an empty digraph if no plan was compiled)
        """
        action_map = action_map or {}
        lines = [
            "digraph plan {",
            "  rankdir=LR;",
            '  node [shape=box, style="rounded,filled", fontname="Helvetica"];',
        ]

        if self.dependencies is not None:
            for node in self.dependencies.ordered_nodes():
                info = action_map.get(node.action_id, ActionExecutionInfo())
                lines.append(
                    f"  {_quote(node.action_id)} [label={_quote(self._label(node, info))}, "
                    f"fillcolor={_quote(info.status.color)}];",
                )

            for provider, consumer, conditions in self.dependencies.dependencies():
                lines.append(
                    f"  {_quote(provider.action_id)} -> {_quote(consumer.action_id)} "
                    f"[label={_quote(' '.join(conditions))}];",
                )

        if enable_legend:
            lines.extend(self._legend())

        lines.append("}")
        dotgraph = "\n".join(lines)

        if enable_print_graph:
            console.print(dotgraph, markup=False, highlight=False)

        return dotgraph

    @staticmethod
    def _label(node: PlanNode, info: ActionExecutionInfo) -> str:
        """Create the label of a graph node from its action, schedule, and status."""
        item = node.item
        label = f"{item.action}\\n[{item.time:.3f}, {item.end_time:.3f}]"
        if info.status == ActionExecutionStatus.EXECUTING:
            label += f"\\n{info.progress:.0%}"
        if info.message:
            label += f"\\n{info.message}"
        return label

    @staticmethod
    def _legend() -> list[str]:
        """Create the lines of a cluster explaining the color of each execution status."""
        lines = ["  subgraph cluster_legend {", '    label="Legend";']
        for status in ActionExecutionStatus:
            lines.append(
                f"    {_quote('legend_' + status.value)} [label={_quote(status.value)}, "
                f"fillcolor={_quote(status.color)}];",
            )
        lines.append("  }")
        return lines

"""Define the execution status of actions, as reported by the runtime executing a plan."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Mapping


class ActionExecutionStatus(StrEnum):
    """Enumeration of the states an action passes through during execution."""

    NOT_EXECUTED = "not_executed"
    EXECUTING = "executing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"

    @property
    def color(self) -> str:
        """Retrieve the Graphviz color used to draw actions with this status."""
        return STATUS_COLORS[self]


STATUS_COLORS = {
    ActionExecutionStatus.NOT_EXECUTED: "lightgray",
    ActionExecutionStatus.EXECUTING: "yellow",
    ActionExecutionStatus.SUCCEEDED: "palegreen",
    ActionExecutionStatus.FAILED: "salmon",
}


@dataclass(frozen=True)
class ActionExecutionInfo:
    """A snapshot of the execution of one action."""

    status: ActionExecutionStatus = ActionExecutionStatus.NOT_EXECUTED
    progress: float = 0.0
    """Fraction of the action completed so far, in [0, 1]."""

    message: str = ""
    """Optional feedback from the action's executor (e.g., a failure reason)."""


ActionExecutionMap = Mapping[str, ActionExecutionInfo]
"""Maps action identifiers (see `PlanItem.action_id`) to their execution info."""

"""Define classes to represent timed plans produced by a temporal planner."""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator

from robotics_planning.io.pydantic_schemata import PlanSchema, validate_yaml

PLANNER_LINE_REGEX = re.compile(
    r"^\s*(?P<time>\d+(?:\.\d+)?)\s*:\s*(?P<action>\([^)]*\))\s*\[(?P<duration>\d+(?:\.\d+)?)\]",
)
"""Matches plan lines of the form `0.000: (move r2d2 kitchen bedroom)  [5.000]`."""


@dataclass(frozen=True)
class PlanItem:
    """A ground action scheduled to start at a given time and last for a given duration."""

    action: str
    """Ground action string in canonical form, e.g., `(move r2d2 kitchen bedroom)`."""

    time: float
    """Start time of the action (seconds since the start of the plan)."""

    duration: float = 0.0
    """Duration of the action (seconds)."""

    def __str__(self) -> str:
        """Return the plan item in the planner's output format."""
        return f"{self.time:.3f}: {self.action}  [{self.duration:.3f}]"

    @property
    def end_time(self) -> float:
        """Retrieve the time at which the action is scheduled to finish."""
        return self.time + self.duration

    @property
    def action_id(self) -> str:
        """Retrieve the identifier of the item: its action and start time in milliseconds."""
        return f"{self.action}:{round(self.time * 1000)}"

    def overlaps(self, other: PlanItem, tolerance_s: float = 0.0) -> bool:
        """Evaluate whether the time intervals of two plan items overlap.

        :param other: Plan item compared against this one
        :param tolerance_s: Intervals overlapping by at most this duration count as disjoint
        :return: True if both items are scheduled to execute at the same time, else False
        """
        return (
            self.time < other.end_time - tolerance_s and other.time < self.end_time - tolerance_s
        )


class Plan:
    """An ordered collection of timed actions, kept in the order the planner emitted them."""

    def __init__(self, items: Iterable[PlanItem] = ()) -> None:
        """Initialize the plan from a collection of plan items."""
        self.items: tuple[PlanItem, ...] = tuple(items)

    @classmethod
    def from_rows(cls, rows: Iterable[tuple[float, str, float]]) -> Plan:
        """Construct a plan from (start time, action, duration) rows."""
        return cls(PlanItem(action, float(t), float(duration)) for t, action, duration in rows)

    @classmethod
    def from_yaml(cls, yaml_path: Path | str) -> Plan:
        """Load a plan from a YAML file listing its timed actions."""
        schema = validate_yaml(yaml_path, PlanSchema)
        return cls(PlanItem(a.action, a.time, a.duration) for a in schema.actions)

    @classmethod
    def parse_planner_output(cls, output: str) -> Plan:
        """Extract a plan from the textual output of a temporal planner (e.g., POPF or OPTIC).

        Lines that don't describe a timed action (such as comments or statistics) are skipped.
        """
        items = []
        for line in output.splitlines():
            mo = PLANNER_LINE_REGEX.match(line)
            if mo is not None:
                items.append(
                    PlanItem(mo["action"], float(mo["time"]), float(mo["duration"])),
                )
        return cls(items)

    def __len__(self) -> int:
        """Retrieve the number of items in the plan."""
        return len(self.items)

    def __iter__(self) -> Iterator[PlanItem]:
        """Iterate over the items in the plan, in planner order."""
        return iter(self.items)

    def __getitem__(self, index: int) -> PlanItem:
        """Retrieve the plan item at the given index."""
        return self.items[index]

    def __str__(self) -> str:
        """Return the plan in the planner's output format, one item per line."""
        return "\n".join(str(item) for item in self.items)

    @property
    def makespan(self) -> float:
        """Retrieve the time at which the last action of the plan finishes."""
        return max((item.end_time for item in self.items), default=0.0)

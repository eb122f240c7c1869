"""Partitioning of workflow steps into parallel and sequential groups."""

from __future__ import annotations

from typing import Iterable, List

from pydantic import BaseModel, Field

from .contracts import WorkflowStep


class StepGroup(BaseModel):
    """A run of steps executed together."""

    parallel: bool = False
    steps: List[WorkflowStep] = Field(default_factory=list)

    @property
    def runs_concurrently(self) -> bool:
        return self.parallel and len(self.steps) > 1


def group_steps(steps: Iterable[WorkflowStep]) -> List[StepGroup]:
    """Group consecutive ``parallel`` steps; every other step stands alone.

    Only the ``parallel`` flag is consulted. Two dependent steps that are both
    flagged parallel end up in the same group and race each other.
    """

    groups: List[StepGroup] = []
    pending: List[WorkflowStep] = []

    for step in steps:
        if step.parallel:
            pending.append(step)
            continue
        if pending:
            groups.append(StepGroup(parallel=True, steps=pending))
            pending = []
        groups.append(StepGroup(parallel=False, steps=[step]))

    if pending:
        groups.append(StepGroup(parallel=True, steps=pending))
    return groups


def flatten_groups(groups: Iterable[StepGroup]) -> List[WorkflowStep]:
    return [step for group in groups for step in group.steps]

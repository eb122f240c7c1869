"""Data dependency analysis between workflow steps.

A step *reads* the root fields named by its condition paths plus any fields
listed under ``config["inputs"]``. A step *writes* the fields listed under
``config["outputs"]``; the local annotation steps have a known write set,
and remote steps that declare nothing are assumed to write anything.
"""

from __future__ import annotations

from typing import List, Optional, Sequence, Set

from .contracts import StepType, WorkflowStep

ANNOTATION_FIELDS = {
    StepType.CLASSIFY.value: "classified",
    StepType.TRANSFORM.value: "transformed",
    StepType.VALIDATE.value: "valid",
}


def _root(path: str) -> str:
    return path.split(".", 1)[0]


def _declared(step: WorkflowStep, key: str) -> Optional[Set[str]]:
    value = step.config.get(key)
    if value is None:
        return None
    if isinstance(value, str):
        return {_root(value)}
    return {_root(str(item)) for item in value}


def step_reads(step: WorkflowStep) -> Set[str]:
    reads = {_root(condition.field) for condition in step.conditions}
    reads |= _declared(step, "inputs") or set()
    return reads


def step_writes(step: WorkflowStep) -> Optional[Set[str]]:
    """Fields produced by ``step``, or ``None`` when they cannot be known."""
    declared = _declared(step, "outputs")
    if declared is not None:
        return declared
    if step.type in ANNOTATION_FIELDS:
        return {ANNOTATION_FIELDS[step.type]}
    return None


def has_data_dependency(upstream: WorkflowStep, downstream: WorkflowStep) -> bool:
    """Return ``True`` if ``downstream`` may consume what ``upstream`` produces."""
    if upstream.parallel and downstream.parallel:
        return False
    writes = step_writes(upstream)
    if writes is None:
        return True
    return bool(writes & step_reads(downstream))


def find_parallelizable_steps(steps: Sequence[WorkflowStep]) -> List[str]:
    """Ids of steps belonging to an adjacent pair with no data dependency."""
    found: List[str] = []
    for current, following in zip(steps, steps[1:]):
        if has_data_dependency(current, following):
            continue
        for step_id in (current.id, following.id):
            if step_id not in found:
                found.append(step_id)
    return found


def plan_parallel_runs(steps: Sequence[WorkflowStep]) -> List[List[WorkflowStep]]:
    """Split ``steps`` into runs that can safely share a parallel group.

    Members of a run are pairwise independent. The step right after a run
    depends on that run, so it is left out of every run; otherwise flagging
    it would merge it into the preceding group.
    """
    runs: List[List[WorkflowStep]] = []
    current: List[WorkflowStep] = []
    for step in steps:
        if current and not any(has_data_dependency(m, step) for m in current):
            current.append(step)
            continue
        if len(current) > 1:
            runs.append(current)
            current = []
            continue
        current = [step]
    if len(current) > 1:
        runs.append(current)
    return runs

"""In-memory implementation of the execution repository."""

from __future__ import annotations

from typing import Dict, List

from ..contracts import Workflow, WorkflowExecution
from .repository import ExecutionRepository


class InMemoryExecutionRepository(ExecutionRepository):
    """Store executions and workflows in local memory.

    Useful for tests or when no database is configured. Data is not
    persisted across process restarts.
    """

    def __init__(self) -> None:
        self._executions: Dict[str, WorkflowExecution] = {}
        self._workflows: Dict[str, Workflow] = {}

    # ------------------------------------------------------------------
    async def insert_execution(self, execution: WorkflowExecution) -> None:
        if execution.id in self._executions:
            raise ValueError(f"Execution {execution.id} already stored")
        self._executions[execution.id] = execution.model_copy(deep=True)

    async def upsert_workflow(self, workflow: Workflow) -> None:
        self._workflows[workflow.id] = workflow.model_copy(deep=True)

    async def recent_executions(self, limit: int = 100) -> List[WorkflowExecution]:
        ordered = sorted(
            self._executions.values(), key=lambda e: e.start_time, reverse=True
        )
        return [e.model_copy(deep=True) for e in ordered[:limit]]

    async def list_executions(
        self, workflow_id: str, limit: int = 100
    ) -> List[WorkflowExecution]:
        ordered = sorted(
            (e for e in self._executions.values() if e.workflow_id == workflow_id),
            key=lambda e: e.start_time,
            reverse=True,
        )
        return [e.model_copy(deep=True) for e in ordered[:limit]]

    async def get_workflow(self, workflow_id: str) -> Workflow | None:
        workflow = self._workflows.get(workflow_id)
        return workflow.model_copy(deep=True) if workflow else None

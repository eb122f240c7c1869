"""Repository abstraction for execution history and workflow persistence."""

from __future__ import annotations

from typing import Protocol

from ..contracts import Workflow, WorkflowExecution


class ExecutionRepository(Protocol):
    """Protocol for durable storage backends.

    From the engine's point of view storage is insert-only for executions and
    upsert-only for workflows.
    """

    async def insert_execution(self, execution: WorkflowExecution) -> None:
        """Persist a finished execution."""

    async def upsert_workflow(self, workflow: Workflow) -> None:
        """Insert or replace a workflow definition."""

    async def recent_executions(self, limit: int = 100) -> list[WorkflowExecution]:
        """Return the most recent executions, newest first by start time."""

    async def list_executions(
        self, workflow_id: str, limit: int = 100
    ) -> list[WorkflowExecution]:
        """Return executions of one workflow, newest first."""

    async def get_workflow(self, workflow_id: str) -> Workflow | None:
        """Retrieve a workflow definition by id."""

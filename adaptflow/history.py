"""Rolling execution history backed by a durable repository."""

from __future__ import annotations

import logging
from collections import defaultdict, deque
from typing import Deque, Dict, List

from .constants import DEFAULT_HISTORY_LIMIT, DEFAULT_HISTORY_LOAD_LIMIT
from .contracts import Workflow, WorkflowExecution
from .persistence import ExecutionRepository

logger = logging.getLogger(__name__)


class ExecutionHistory:
    """Per-workflow window of the most recent executions.

    The in-memory window feeds the learner; every execution is also inserted
    into the repository. Storage failures are logged and never propagate,
    since history is telemetry and must not change the outcome of a run.
    """

    def __init__(
        self,
        repository: ExecutionRepository,
        limit: int = DEFAULT_HISTORY_LIMIT,
        load_limit: int = DEFAULT_HISTORY_LOAD_LIMIT,
    ) -> None:
        self._repository = repository
        self.limit = limit
        self.load_limit = load_limit
        self._executions: Dict[str, Deque[WorkflowExecution]] = defaultdict(
            lambda: deque(maxlen=self.limit)
        )

    async def load(self) -> int:
        """Load recent executions from storage, grouped by workflow id."""
        try:
            records = await self._repository.recent_executions(self.load_limit)
        except Exception as exc:
            logger.error(f"Failed to load execution history: {exc}")
            return 0

        # Storage returns newest first; the window is kept oldest first.
        for execution in reversed(records):
            self._executions[execution.workflow_id].append(execution)
        logger.info(
            f"Loaded {len(records)} executions for {len(self._executions)} workflows"
        )
        return len(records)

    def append(self, execution: WorkflowExecution) -> None:
        self._executions[execution.workflow_id].append(execution)

    async def persist(self, execution: WorkflowExecution) -> bool:
        try:
            await self._repository.insert_execution(execution)
        except Exception as exc:
            logger.error(
                f"Failed to store execution {execution.id} "
                f"for workflow {execution.workflow_id}: {exc}"
            )
            return False
        return True

    async def store(self, execution: WorkflowExecution) -> bool:
        self.append(execution)
        return await self.persist(execution)

    async def save_workflow(self, workflow: Workflow) -> bool:
        try:
            await self._repository.upsert_workflow(workflow)
        except Exception as exc:
            logger.error(f"Failed to save workflow {workflow.id}: {exc}")
            return False
        return True

    def executions(self, workflow_id: str) -> List[WorkflowExecution]:
        if workflow_id not in self._executions:
            return []
        return list(self._executions[workflow_id])

    def count(self, workflow_id: str) -> int:
        return len(self._executions.get(workflow_id, ()))

    @property
    def workflow_ids(self) -> List[str]:
        return list(self._executions)

    def __len__(self) -> int:
        return sum(len(window) for window in self._executions.values())

"""Workflow orchestration over step groups with history-driven optimization."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional

from .collaborators import BaseCollaborator, get_collaborator
from .config import AdaptflowConfig, load_config
from .contracts import (
    ExecutionStatus,
    OptimalConfig,
    Optimization,
    Workflow,
    WorkflowExecution,
)
from .executor import StepExecutor
from .handlers import HandlerRegistry, default_handlers
from .history import ExecutionHistory
from .learner import Learner
from .optimizer import OptimizationApplier
from .persistence import ExecutionRepository, get_repository
from .scheduler import StepGroup, group_steps

logger = logging.getLogger(__name__)


class WorkflowEngine:
    """Executes workflows and learns from their history.

    The engine owns its history window and learned-config cache. Create one
    per application, call :meth:`start` (or use ``async with``) to load
    history, and share the instance by reference.
    """

    def __init__(
        self,
        repository: ExecutionRepository,
        collaborator: BaseCollaborator,
        config: Optional[AdaptflowConfig] = None,
        handlers: Optional[HandlerRegistry] = None,
    ) -> None:
        self.config = config or AdaptflowConfig()
        self.collaborator = collaborator
        self.history = ExecutionHistory(
            repository,
            limit=self.config.history.limit,
            load_limit=self.config.history.load_limit,
        )
        self.learner = Learner(self.history, self.config.learning)
        self.handlers = handlers or default_handlers(collaborator)
        self.executor = StepExecutor(self.handlers, self.learner, self.config.retry)
        self.applier = OptimizationApplier(self.history, self.learner)
        self._started = False

    @classmethod
    def from_config(cls, config: Optional[AdaptflowConfig] = None) -> "WorkflowEngine":
        """Build an engine with the configured repository and collaborator."""
        config = config or load_config()
        return cls(
            repository=get_repository(config=config),
            collaborator=get_collaborator(config=config),
            config=config,
        )

    # ------------------------------------------------------------------
    # Lifecycle
    async def start(self) -> None:
        """Load execution history; safe to call more than once."""
        if self._started:
            return
        self._started = True
        await self.history.load()

    async def aclose(self) -> None:
        await self.collaborator.aclose()

    async def __aenter__(self) -> "WorkflowEngine":
        await self.collaborator.connect()
        await self.start()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    # ------------------------------------------------------------------
    # Execution
    async def execute_workflow(
        self, workflow: Workflow, payload: Optional[Dict[str, Any]], user_id: str
    ) -> WorkflowExecution:
        """Run ``workflow`` over ``payload`` and return the finished execution.

        Step failures that survive their retry policy mark the execution
        failed, persist it and propagate to the caller.
        """
        execution = WorkflowExecution(
            workflow_id=workflow.id,
            workflow_version=workflow.version,
            status=ExecutionStatus.RUNNING,
        )
        logger.info(
            f"Executing workflow {workflow.id} v{workflow.version} as execution {execution.id}"
        )

        current: Dict[str, Any] = dict(payload or {})
        try:
            for group in group_steps(workflow.steps):
                current = await self._run_group(group, current, workflow, user_id, execution)
        except Exception as exc:
            execution.finalize(ExecutionStatus.FAILED)
            logger.error(
                f"Execution {execution.id} of workflow {workflow.id} failed "
                f"after {execution.metrics.duration_ms:.0f}ms: {exc}"
            )
            await self.history.store(execution)
            raise

        execution.finalize(ExecutionStatus.COMPLETED, results=current)
        self.history.append(execution)

        accepted: List[Optimization] = []
        if workflow.optimization.enabled:
            execution.optimizations = self.learner.optimize_workflow(workflow)
            if workflow.optimization.auto_apply:
                accepted = [o for o in execution.optimizations if o.applied]

        await self.history.persist(execution)
        if accepted:
            await self.applier.apply_optimizations(workflow, accepted)

        logger.info(
            f"Execution {execution.id} completed in {execution.metrics.duration_ms:.0f}ms"
        )
        return execution

    async def _run_group(
        self,
        group: StepGroup,
        current: Dict[str, Any],
        workflow: Workflow,
        user_id: str,
        execution: WorkflowExecution,
    ) -> Dict[str, Any]:
        if not group.runs_concurrently:
            for step in group.steps:
                current = await self.executor.execute_step_with_retry(
                    step, current, workflow, user_id, execution
                )
            return current

        outcomes = await asyncio.gather(
            *(
                self.executor.execute_step_with_retry(
                    step, dict(current), workflow, user_id, execution
                )
                for step in group.steps
            ),
            return_exceptions=True,
        )
        for outcome in outcomes:
            if isinstance(outcome, BaseException):
                raise outcome

        # Later steps win on key collisions; unchanged keys never overwrite.
        merged = dict(current)
        for outcome in outcomes:
            merged.update(
                {k: v for k, v in outcome.items() if k not in current or current[k] != v}
            )
        return merged

    async def trigger_workflow(
        self, workflow_id: str, payload: Optional[Dict[str, Any]], user_id: str
    ) -> Any:
        """Forward a manual workflow-level trigger to the custom collaborator."""
        body = {**(payload or {}), "workflowId": workflow_id, "userId": user_id}
        logger.info(f"Manually triggering workflow {workflow_id} for user {user_id}")
        return await self.collaborator.execute_custom(body)

    # ------------------------------------------------------------------
    # Learning
    def history_for(self, workflow_id: str) -> List[WorkflowExecution]:
        return self.history.executions(workflow_id)

    def get_optimal_config(
        self, workflow_id: str, step_id: str, version: Optional[int] = None
    ) -> OptimalConfig:
        return self.learner.get_optimal_config(workflow_id, step_id, version)

    def optimize_workflow(self, workflow: Workflow) -> List[Optimization]:
        return self.learner.optimize_workflow(workflow)

    async def apply_optimizations(
        self, workflow: Workflow, optimizations: List[Optimization]
    ) -> Workflow:
        return await self.applier.apply_optimizations(workflow, optimizations)

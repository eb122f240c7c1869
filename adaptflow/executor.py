"""Execution of single workflow steps with conditions and retries."""

from __future__ import annotations

import logging
import time
from typing import Any, Dict, Optional

from .conditions import evaluate_conditions
from .config import RetryConfig
from .constants import METRICS_KEY
from .contracts import (
    RetryPolicy,
    StepFailed,
    StepStatus,
    Workflow,
    WorkflowExecution,
    WorkflowStep,
)
from .handlers import HandlerRegistry
from .learner import Learner
from .utils import retry

logger = logging.getLogger(__name__)


def _elapsed_ms(started: float) -> float:
    return max((time.monotonic() - started) * 1000, 0.0)


class StepExecutor:
    """Runs workflow steps against a handler registry."""

    def __init__(
        self,
        handlers: HandlerRegistry,
        learner: Learner,
        retry_config: Optional[RetryConfig] = None,
    ) -> None:
        self.handlers = handlers
        self.learner = learner
        self.retry_config = retry_config or RetryConfig()

    def resolve_config(self, step: WorkflowStep, workflow: Workflow) -> Dict[str, Any]:
        """Static step config overlaid with learned overrides."""
        optimal = self.learner.get_optimal_config(workflow.id, step.id, workflow.version)
        return {**step.config, **optimal.config}

    async def execute_step(
        self,
        step: WorkflowStep,
        payload: Dict[str, Any],
        workflow: Workflow,
        user_id: str,
        execution: WorkflowExecution,
    ) -> Optional[Dict[str, Any]]:
        """Run one attempt of ``step``.

        Returns ``None`` when the step's conditions do not hold; the skip is
        recorded on ``execution`` and the caller passes ``payload`` through.
        """
        if step.conditions and not evaluate_conditions(step.conditions, payload):
            logger.info(f"Skipping step {step.id}: conditions not met")
            execution.record_step(step.id, StepStatus.SKIPPED, 0)
            return None

        config = self.resolve_config(step, workflow)
        handler = self.handlers.get(step.type)
        output = await handler(dict(payload), config, user_id)
        if not isinstance(output, dict):
            raise StepFailed(
                f"Step {step.id} returned {type(output).__name__}, expected a mapping"
            )

        reported = output.pop(METRICS_KEY, None)
        if isinstance(reported, dict):
            execution.metrics.absorb(reported)
        return output

    async def execute_step_with_retry(
        self,
        step: WorkflowStep,
        payload: Dict[str, Any],
        workflow: Workflow,
        user_id: str,
        execution: WorkflowExecution,
    ) -> Dict[str, Any]:
        """Run ``step`` with its retry policy and record the outcome.

        Raises the last error once all ``1 + max_retries`` attempts fail.
        """
        policy = step.retry_policy or RetryPolicy()
        max_retries = policy.max_retries
        started = time.monotonic()
        last_error: Optional[BaseException] = None
        attempts = 0

        for attempt in range(max_retries + 1):
            attempts = attempt + 1
            try:
                output = await self.execute_step(step, payload, workflow, user_id, execution)
            except Exception as exc:
                last_error = exc
                retryable = getattr(exc, "retryable", True)
                logger.warning(
                    f"Step {step.id} attempt {attempts}/{max_retries + 1} failed: {exc}"
                )
                if not retryable:
                    break
                if attempt < max_retries:
                    await retry.schedule_retry(
                        attempt,
                        multiplier=policy.backoff_multiplier,
                        base_delay=self.retry_config.base_delay_seconds,
                    )
                continue

            if output is None:
                return payload
            execution.record_step(
                step.id,
                StepStatus.COMPLETED,
                _elapsed_ms(started),
                attempts=attempts,
                config=self.resolve_config(step, workflow),
            )
            return output

        execution.record_step(
            step.id,
            StepStatus.FAILED,
            _elapsed_ms(started),
            error=str(last_error),
            attempts=attempts,
        )
        logger.error(f"Step {step.id} of workflow {workflow.id} failed: {last_error}")
        raise last_error

"""Applies accepted optimization proposals to workflow definitions."""

from __future__ import annotations

import logging
import math
from typing import Iterable

from .constants import MAX_TOKENS_REDUCTION_FACTOR
from .contracts import Optimization, Workflow, utcnow
from .dependencies import plan_parallel_runs
from .history import ExecutionHistory
from .learner import ENABLE_CACHING, PARALLELIZE, REDUCE_MAX_TOKENS, Learner

logger = logging.getLogger(__name__)


class OptimizationApplier:
    """Rewrites workflow steps for accepted proposals and bumps the version."""

    def __init__(self, history: ExecutionHistory, learner: Learner) -> None:
        self.history = history
        self.learner = learner

    def _parallelize(self, workflow: Workflow) -> None:
        runs = plan_parallel_runs(workflow.steps)
        flagged = {step.id for run in runs for step in run}
        for step in workflow.steps:
            step.parallel = step.id in flagged
        logger.debug(
            f"Parallel runs for workflow {workflow.id}: "
            f"{[[s.id for s in run] for run in runs]}"
        )

    @staticmethod
    def _enable_caching(workflow: Workflow) -> None:
        for step in workflow.steps:
            step.config["cache"] = True

    @staticmethod
    def _reduce_max_tokens(workflow: Workflow) -> None:
        for step in workflow.steps:
            max_tokens = step.config.get("maxTokens")
            if max_tokens is None:
                continue
            if isinstance(max_tokens, bool) or not isinstance(max_tokens, (int, float)):
                logger.warning(
                    f"Leaving non-numeric maxTokens {max_tokens!r} of step {step.id} "
                    f"in workflow {workflow.id} unchanged"
                )
                continue
            if max_tokens:
                step.config["maxTokens"] = math.ceil(max_tokens * MAX_TOKENS_REDUCTION_FACTOR)

    async def apply_optimizations(
        self, workflow: Workflow, optimizations: Iterable[Optimization]
    ) -> Workflow:
        """Mutate ``workflow`` in place, bump its version and persist it."""
        applied = []
        for optimization in optimizations:
            if optimization.type == PARALLELIZE:
                self._parallelize(workflow)
            elif optimization.type == ENABLE_CACHING:
                self._enable_caching(workflow)
            elif optimization.type == REDUCE_MAX_TOKENS:
                self._reduce_max_tokens(workflow)
            else:
                logger.warning(
                    f"Ignoring unsupported optimization {optimization.type} "
                    f"for workflow {workflow.id}"
                )
                continue
            applied.append(optimization.type)

        workflow.version += 1
        workflow.updated_at = utcnow()
        self.learner.invalidate(workflow.id)
        await self.history.save_workflow(workflow)
        logger.info(
            f"Applied {applied} to workflow {workflow.id}, now at version {workflow.version}"
        )
        return workflow

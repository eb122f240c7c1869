"""Derives learned step configuration and optimization proposals from history."""

from __future__ import annotations

import logging
from statistics import fmean
from typing import Dict, Iterable, List, Optional, Tuple

from .config import LearningConfig
from .contracts import (
    ExecutionStatus,
    OptimalConfig,
    Optimization,
    StepStatus,
    Workflow,
    WorkflowExecution,
)
from .dependencies import find_parallelizable_steps
from .history import ExecutionHistory
from .utils.canonical import canonical_json

logger = logging.getLogger(__name__)

PARALLELIZE = "parallelize"
USE_CHEAPER_MODEL = "use_cheaper_model"
ENABLE_CACHING = "enable_caching"
REDUCE_MAX_TOKENS = "reduce_max_tokens"


def metric_value(execution: WorkflowExecution) -> float:
    """Score used to rank runs: accuracy, else quality, else 0."""
    return execution.metrics.accuracy or execution.metrics.quality or 0.0


def _mean(values: Iterable[float]) -> float:
    values = list(values)
    return fmean(values) if values else 0.0


class Learner:
    """Mines an :class:`ExecutionHistory` for better configurations."""

    def __init__(
        self, history: ExecutionHistory, config: Optional[LearningConfig] = None
    ) -> None:
        self.history = history
        self.config = config or LearningConfig()
        self._optimal_configs: Dict[Tuple[str, str, Optional[int]], OptimalConfig] = {}

    # ------------------------------------------------------------------
    # Learned configuration
    def get_optimal_config(
        self, workflow_id: str, step_id: str, version: Optional[int] = None
    ) -> OptimalConfig:
        """Best known configuration overrides for one step.

        Results backed by runs of the requested version are cached per
        ``(workflow_id, step_id, version)`` until :meth:`invalidate`.
        """
        key = (workflow_id, step_id, version)
        cached = self._optimal_configs.get(key)
        if cached is not None:
            return cached

        executions = self.history.executions(workflow_id)
        if len(executions) < self.config.min_executions_for_config:
            return OptimalConfig(step_id=step_id, based_on_executions=len(executions))

        successful = [e for e in executions if e.status == ExecutionStatus.COMPLETED]
        if not successful:
            return OptimalConfig(step_id=step_id, based_on_executions=0)

        confidence = min(len(successful) / self.config.confidence_saturation, 1.0)
        candidates = successful
        if version is not None:
            candidates = [e for e in successful if e.workflow_version == version]
        if not candidates:
            # Nothing ran at this version yet; learn once it has
            return OptimalConfig(
                step_id=step_id,
                confidence=confidence,
                based_on_executions=len(successful),
            )

        best = max(candidates, key=metric_value)
        optimal = OptimalConfig(
            step_id=step_id,
            config=self._step_config(best, step_id),
            confidence=confidence,
            based_on_executions=len(successful),
        )
        self._optimal_configs[key] = optimal
        return optimal

    @staticmethod
    def _step_config(execution: WorkflowExecution, step_id: str) -> Dict:
        for result in execution.step_results:
            if result.step_id == step_id and result.status == StepStatus.COMPLETED:
                return dict(result.config or {})
        return {}

    def invalidate(self, workflow_id: str) -> None:
        """Drop cached configurations for ``workflow_id``."""
        for key in [k for k in self._optimal_configs if k[0] == workflow_id]:
            del self._optimal_configs[key]

    # ------------------------------------------------------------------
    # Optimization proposals
    def optimize_workflow(self, workflow: Workflow) -> List[Optimization]:
        """Propose optimizations; every matching proposal is returned."""
        executions = self.history.executions(workflow.id)
        if len(executions) < self.config.min_executions_for_optimization:
            return []

        successful = [e for e in executions if e.status == ExecutionStatus.COMPLETED]
        avg_duration = _mean(e.metrics.duration_ms for e in successful)
        avg_accuracy = _mean(e.metrics.accuracy or 0.0 for e in successful)
        avg_cost = _mean(e.metrics.cost or 0.0 for e in successful)

        proposals: List[Optimization] = []

        if avg_duration > self.config.parallelize_duration_ms:
            if find_parallelizable_steps(workflow.steps):
                proposals.append(
                    Optimization(
                        type=PARALLELIZE,
                        applied=True,
                        impact={"duration": -35, "cost": 0, "accuracy": 0},
                    )
                )

        if (
            avg_accuracy > self.config.cheaper_model_accuracy
            and avg_cost > self.config.cheaper_model_cost
        ):
            # Trades accuracy for cost, so it always needs approval
            proposals.append(
                Optimization(
                    type=USE_CHEAPER_MODEL,
                    applied=False,
                    impact={"duration": 20, "cost": -60, "accuracy": -2},
                )
            )

        duplicates = self.find_duplicate_results(executions)
        if duplicates > self.config.caching_duplicate_fraction:
            proposals.append(
                Optimization(
                    type=ENABLE_CACHING,
                    applied=True,
                    impact={
                        "duration": -duplicates * 100,
                        "cost": -duplicates * 100,
                        "accuracy": 0,
                    },
                )
            )

        proposals.extend(self.analyze_parameters(executions))

        if proposals:
            logger.info(
                f"Proposed {[p.type for p in proposals]} for workflow {workflow.id} "
                f"from {len(executions)} executions"
            )
        return proposals

    @staticmethod
    def find_duplicate_results(executions: List[WorkflowExecution]) -> float:
        """Fraction of executions whose results repeat an earlier execution."""
        if not executions:
            return 0.0
        seen = set()
        duplicates = 0
        for execution in executions:
            digest = canonical_json(execution.results)
            if digest in seen:
                duplicates += 1
            else:
                seen.add(digest)
        return duplicates / len(executions)

    @staticmethod
    def analyze_parameters(executions: List[WorkflowExecution]) -> List[Optimization]:
        # Any token usage at all is enough to propose a smaller budget.
        avg_tokens = _mean(e.metrics.tokens_used or 0 for e in executions)
        if avg_tokens > 0:
            return [
                Optimization(
                    type=REDUCE_MAX_TOKENS,
                    applied=True,
                    impact={"duration": 10, "cost": -30, "accuracy": 0},
                )
            ]
        return []

"""Core contracts for adaptflow workflows and their executions."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AdaptflowError(Exception):
    """Base class for engine errors."""


class StepFailed(AdaptflowError):
    """Raised when a step attempt fails."""

    def __init__(self, message: str, retryable: bool = True) -> None:
        super().__init__(message)
        self.retryable = retryable


class UnknownStepTypeError(StepFailed):
    """No handler is registered for a step type."""

    def __init__(self, step_type: str) -> None:
        super().__init__(f"Unknown step type: {step_type}", retryable=False)
        self.step_type = step_type


class CollaboratorError(StepFailed):
    """A remote collaborator call failed."""


class StepType(str, Enum):
    EXTRACT = "extract"
    CLASSIFY = "classify"
    SUMMARIZE = "summarize"
    TRANSFORM = "transform"
    VALIDATE = "validate"
    CUSTOM = "custom"


class ConditionOperator(str, Enum):
    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    CONTAINS = "contains"
    NOT_CONTAINS = "not_contains"
    GREATER = "greater"
    LESS = "less"
    EXISTS = "exists"


class ExecutionStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class StepStatus(str, Enum):
    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"


class Condition(BaseModel):
    """Entry condition evaluated against the step input."""

    field: str = Field(..., description="Dotted path into the payload")
    operator: ConditionOperator
    value: Any = None


class RetryPolicy(BaseModel):
    max_retries: int = Field(default=0, ge=0)
    backoff_multiplier: float = Field(default=2.0, gt=0)


class WorkflowStep(BaseModel):
    """Defines one step in a workflow."""

    id: str
    name: str = ""
    # Plain string so definitions with unknown tags still load.
    type: str
    config: Dict[str, Any] = Field(default_factory=dict)
    conditions: List[Condition] = Field(default_factory=list)
    parallel: bool = False
    retry_policy: Optional[RetryPolicy] = None


class Trigger(BaseModel):
    type: str = "manual"
    config: Dict[str, Any] = Field(default_factory=dict)


class OptimizationPolicy(BaseModel):
    enabled: bool = False
    metrics: List[str] = Field(default_factory=lambda: ["duration", "accuracy", "cost"])
    target_metric: str = "duration"
    auto_apply: bool = False


class Workflow(BaseModel):
    """Versioned, user-owned workflow definition."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    user_id: str
    name: str
    description: str = ""
    steps: List[WorkflowStep] = Field(default_factory=list)
    triggers: List[Trigger] = Field(default_factory=list)
    optimization: OptimizationPolicy = Field(default_factory=OptimizationPolicy)
    version: int = Field(default=1, ge=1)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class StepResult(BaseModel):
    """Outcome of a single step within an execution."""

    step_id: str
    status: StepStatus
    duration_ms: float = Field(default=0.0, ge=0)
    error: Optional[str] = None
    attempts: int = 0
    config: Optional[Dict[str, Any]] = None


class ExecutionMetrics(BaseModel):
    duration_ms: float = Field(default=0.0, ge=0)
    accuracy: Optional[float] = None
    cost: Optional[float] = 0.0
    quality: Optional[float] = None
    tokens_used: Optional[int] = 0

    def absorb(self, reported: Dict[str, Any]) -> None:
        """Fold metrics reported by a step handler into the run totals."""
        if "tokens_used" in reported:
            self.tokens_used = (self.tokens_used or 0) + int(reported["tokens_used"])
        if "cost" in reported:
            self.cost = (self.cost or 0.0) + float(reported["cost"])
        if "accuracy" in reported:
            self.accuracy = float(reported["accuracy"])
        if "quality" in reported:
            self.quality = float(reported["quality"])


class Optimization(BaseModel):
    """A proposed or applied workflow optimization."""

    type: str
    applied: bool = False
    impact: Dict[str, float] = Field(default_factory=dict)


class WorkflowExecution(BaseModel):
    """One run of a workflow."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    workflow_id: str
    workflow_version: int
    status: ExecutionStatus = ExecutionStatus.PENDING
    start_time: datetime = Field(default_factory=utcnow)
    end_time: Optional[datetime] = None
    metrics: ExecutionMetrics = Field(default_factory=ExecutionMetrics)
    results: Any = Field(default_factory=dict)
    step_results: List[StepResult] = Field(default_factory=list)
    optimizations: List[Optimization] = Field(default_factory=list)

    def record_step(
        self,
        step_id: str,
        status: StepStatus,
        duration_ms: float,
        error: Optional[str] = None,
        attempts: int = 0,
        config: Optional[Dict[str, Any]] = None,
    ) -> StepResult:
        result = StepResult(
            step_id=step_id,
            status=status,
            duration_ms=max(duration_ms, 0.0),
            error=error,
            attempts=attempts,
            config=config,
        )
        self.step_results.append(result)
        return result

    def finalize(self, status: ExecutionStatus, results: Any = None) -> None:
        """Mark the execution terminal and record its duration."""
        self.status = status
        self.end_time = utcnow()
        if self.end_time < self.start_time:
            self.end_time = self.start_time
        delta = self.end_time - self.start_time
        self.metrics.duration_ms = delta.total_seconds() * 1000
        if results is not None:
            self.results = results

    def to_record(self) -> Dict[str, Any]:
        """Serialize to the flat record shape used by persistence backends."""
        return self.model_dump(mode="json")

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "WorkflowExecution":
        return cls.model_validate(record)


class OptimalConfig(BaseModel):
    """Learned configuration overrides for one workflow step."""

    step_id: str
    config: Dict[str, Any] = Field(default_factory=dict)
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    based_on_executions: int = 0

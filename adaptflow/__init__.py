"""adaptflow: self-optimizing workflow execution engine."""

from .collaborators import get_collaborator
from .config import AdaptflowConfig, load_config
from .contracts import (
    Condition,
    OptimalConfig,
    Optimization,
    OptimizationPolicy,
    RetryPolicy,
    StepType,
    Workflow,
    WorkflowExecution,
    WorkflowStep,
)
from .engine import WorkflowEngine
from .handlers import HandlerRegistry
from .persistence import get_repository

__version__ = "0.1.0"
__all__ = [
    "AdaptflowConfig",
    "Condition",
    "HandlerRegistry",
    "OptimalConfig",
    "Optimization",
    "OptimizationPolicy",
    "RetryPolicy",
    "StepType",
    "Workflow",
    "WorkflowEngine",
    "WorkflowExecution",
    "WorkflowStep",
    "get_collaborator",
    "get_repository",
    "load_config",
]

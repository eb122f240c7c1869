"""Shared fixtures for adaptflow tests."""

from datetime import timedelta

import pytest

from adaptflow import AdaptflowConfig, Workflow, WorkflowEngine, WorkflowExecution
from adaptflow.collaborators import InMemoryCollaborator
from adaptflow.contracts import ExecutionStatus, StepResult, StepStatus, utcnow
from adaptflow.persistence import InMemoryExecutionRepository


@pytest.fixture
def collaborator():
    return InMemoryCollaborator()


@pytest.fixture
def repository():
    return InMemoryExecutionRepository()


@pytest.fixture
def fast_config():
    """Configuration without retry delays."""
    config = AdaptflowConfig()
    config.retry.base_delay_seconds = 0
    return config


@pytest.fixture
def engine(repository, collaborator, fast_config):
    return WorkflowEngine(repository, collaborator, config=fast_config)


@pytest.fixture
def make_workflow():
    def _make(steps, **kwargs):
        kwargs.setdefault("id", "wf-1")
        kwargs.setdefault("user_id", "user-1")
        kwargs.setdefault("name", "Test workflow")
        return Workflow.model_validate({"steps": steps, **kwargs})

    return _make


@pytest.fixture
def make_execution():
    counter = {"n": 0}

    def _make(
        workflow_id="wf-1",
        status=ExecutionStatus.COMPLETED,
        duration_ms=100.0,
        accuracy=None,
        quality=None,
        cost=0.0,
        tokens_used=0,
        results=None,
        version=1,
        step_configs=None,
    ):
        counter["n"] += 1
        start = utcnow() - timedelta(hours=1) + timedelta(seconds=counter["n"])
        execution = WorkflowExecution(
            workflow_id=workflow_id,
            workflow_version=version,
            status=status,
            start_time=start,
            end_time=start + timedelta(milliseconds=duration_ms),
            results={"n": counter["n"]} if results is None else results,
        )
        execution.metrics.duration_ms = duration_ms
        execution.metrics.accuracy = accuracy
        execution.metrics.quality = quality
        execution.metrics.cost = cost
        execution.metrics.tokens_used = tokens_used
        for step_id, config in (step_configs or {}).items():
            execution.step_results.append(
                StepResult(
                    step_id=step_id,
                    status=StepStatus.COMPLETED,
                    duration_ms=1.0,
                    attempts=1,
                    config=config,
                )
            )
        return execution

    return _make

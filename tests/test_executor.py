import pytest

from adaptflow.config import RetryConfig
from adaptflow.contracts import (
    StepFailed,
    StepStatus,
    WorkflowExecution,
    WorkflowStep,
)
from adaptflow.executor import StepExecutor
from adaptflow.handlers import HandlerRegistry
from adaptflow.history import ExecutionHistory
from adaptflow.learner import Learner
from adaptflow.persistence import InMemoryExecutionRepository


@pytest.fixture
def history():
    return ExecutionHistory(InMemoryExecutionRepository())


def _executor(history, handlers):
    return StepExecutor(
        HandlerRegistry(handlers), Learner(history), RetryConfig(base_delay_seconds=0)
    )


def _execution(workflow):
    return WorkflowExecution(workflow_id=workflow.id, workflow_version=workflow.version)


@pytest.mark.asyncio
async def test_execute_step_passes_config_and_user(history, make_workflow):
    seen = {}

    async def echo(payload, config, user_id):
        seen.update(payload=payload, config=config, user_id=user_id)
        return {**payload, "done": True}

    workflow = make_workflow([{"id": "s1", "type": "echo", "config": {"mode": "fast"}}])
    executor = _executor(history, {"echo": echo})
    execution = _execution(workflow)

    output = await executor.execute_step(
        workflow.steps[0], {"x": 1}, workflow, "user-7", execution
    )

    assert output == {"x": 1, "done": True}
    assert seen == {"payload": {"x": 1}, "config": {"mode": "fast"}, "user_id": "user-7"}
    # single attempts do not record results; the retry wrapper does
    assert execution.step_results == []


@pytest.mark.asyncio
async def test_skipped_step_recorded_once(history, make_workflow):
    calls = []

    async def never(payload, config, user_id):
        calls.append(payload)
        return payload

    workflow = make_workflow(
        [
            {
                "id": "s1",
                "type": "never",
                "conditions": [{"field": "score", "operator": "greater", "value": 10}],
                "retry_policy": {"max_retries": 2},
            }
        ]
    )
    executor = _executor(history, {"never": never})
    execution = _execution(workflow)
    payload = {"score": 3}

    output = await executor.execute_step_with_retry(
        workflow.steps[0], payload, workflow, "u", execution
    )

    assert output is payload
    assert calls == []
    assert len(execution.step_results) == 1
    assert execution.step_results[0].status == StepStatus.SKIPPED
    assert execution.step_results[0].duration_ms == 0


@pytest.mark.asyncio
async def test_non_mapping_output_fails_step(history, make_workflow):
    async def bad(payload, config, user_id):
        return ["not", "a", "dict"]

    workflow = make_workflow([{"id": "s1", "type": "bad"}])
    executor = _executor(history, {"bad": bad})
    execution = _execution(workflow)

    with pytest.raises(StepFailed, match="expected a mapping"):
        await executor.execute_step_with_retry(workflow.steps[0], {}, workflow, "u", execution)

    result = execution.step_results[0]
    assert result.status == StepStatus.FAILED
    assert result.attempts == 1


@pytest.mark.asyncio
async def test_non_retryable_error_stops_retries(history, make_workflow):
    calls = []

    async def rejected(payload, config, user_id):
        calls.append(1)
        raise StepFailed("invalid document", retryable=False)

    workflow = make_workflow(
        [{"id": "s1", "type": "rejected", "retry_policy": {"max_retries": 5}}]
    )
    executor = _executor(history, {"rejected": rejected})
    execution = _execution(workflow)

    with pytest.raises(StepFailed):
        await executor.execute_step_with_retry(workflow.steps[0], {}, workflow, "u", execution)

    assert len(calls) == 1
    assert execution.step_results[0].attempts == 1


@pytest.mark.asyncio
async def test_completed_step_records_resolved_config(history, make_workflow):
    async def ok(payload, config, user_id):
        return payload

    workflow = make_workflow([{"id": "s1", "type": "ok", "config": {"model": "m1"}}])
    executor = _executor(history, {"ok": ok})
    execution = _execution(workflow)

    await executor.execute_step_with_retry(workflow.steps[0], {}, workflow, "u", execution)

    result = execution.step_results[0]
    assert result.status == StepStatus.COMPLETED
    assert result.attempts == 1
    assert result.config == {"model": "m1"}
    assert result.error is None


def test_resolve_config_overlays_learned_values(history, make_workflow, make_execution):
    workflow = make_workflow(
        [{"id": "s1", "type": "ok", "config": {"model": "m1", "temperature": 0.2}}]
    )
    for _ in range(10):
        history.append(make_execution(accuracy=0.5, step_configs={"s1": {"model": "m2"}}))

    executor = _executor(history, {})

    assert executor.resolve_config(workflow.steps[0], workflow) == {
        "model": "m2",
        "temperature": 0.2,
    }

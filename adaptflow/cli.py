"""Command line interface for running and inspecting adaptflow workflows."""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

import typer

from adaptflow import WorkflowEngine, load_config
from adaptflow.contracts import AdaptflowError
from adaptflow.loader import WorkflowDefinitionError, load_workflow, save_workflow
from adaptflow.persistence import get_repository
from adaptflow.scheduler import group_steps

app = typer.Typer(help="CLI for adaptflow workflows")

# Command groups
workflow_app = typer.Typer(help="Commands for running and optimizing workflows")
history_app = typer.Typer(help="Commands for inspecting execution history")

app.add_typer(workflow_app, name="workflow")
app.add_typer(history_app, name="history")


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """adaptflow CLI entry point."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _parse_input(raw: Optional[str]) -> Dict[str, Any]:
    if not raw:
        return {}
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        typer.secho(f"Invalid JSON input: {exc}", fg=typer.colors.RED)
        raise typer.Exit(code=1)
    if not isinstance(data, dict):
        typer.secho("Input must be a JSON object", fg=typer.colors.RED)
        raise typer.Exit(code=1)
    return data


def _load(workflow_path: Path):
    try:
        return load_workflow(workflow_path)
    except WorkflowDefinitionError as exc:
        typer.secho(str(exc), fg=typer.colors.RED)
        raise typer.Exit(code=1)


@workflow_app.command("validate")
def workflow_validate(workflow_path: Path) -> None:
    """
    Validate a workflow definition and show how its steps are grouped.

    Example:
        adaptflow workflow validate ./guides/document_pipeline.yaml
        # Output: Workflow document-pipeline v1: 3 steps
        #         [sequential] extract
        #         [parallel] classify, tag
    """
    workflow = _load(workflow_path)
    typer.echo(f"Workflow {workflow.id} v{workflow.version}: {len(workflow.steps)} steps")
    for group in group_steps(workflow.steps):
        kind = "parallel" if group.runs_concurrently else "sequential"
        typer.echo(f"  [{kind}] {', '.join(step.id for step in group.steps)}")


@workflow_app.command("run")
def workflow_run(
    workflow_path: Path,
    input_json: Optional[str] = typer.Option(None, "--input", "-i", help="JSON object input"),
    user_id: str = typer.Option("cli", "--user-id", "-u", help="User running the workflow"),
    save: bool = typer.Option(
        False, help="Write the definition back if optimizations were applied"
    ),
) -> None:
    """
    Execute a workflow definition and print the execution summary.

    Example:
        adaptflow workflow run ./guides/document_pipeline.yaml --input '{"text": "hello"}'
        # Output: Execution 1f0c...: completed (12ms)
        #         - extract: completed (5ms)
        #         Results: {"text": "hello", "extracted": true}
    """
    workflow = _load(workflow_path)
    payload = _parse_input(input_json)
    version_before = workflow.version

    async def _run():
        async with WorkflowEngine.from_config(load_config()) as engine:
            return await engine.execute_workflow(workflow, payload, user_id)

    try:
        execution = asyncio.run(_run())
    except AdaptflowError as exc:
        typer.secho(f"Workflow failed: {exc}", fg=typer.colors.RED)
        raise typer.Exit(code=1)

    typer.echo(
        f"Execution {execution.id}: {execution.status.value} "
        f"({execution.metrics.duration_ms:.0f}ms)"
    )
    for result in execution.step_results:
        line = f"- {result.step_id}: {result.status.value} ({result.duration_ms:.0f}ms)"
        if result.error:
            line += f" error={result.error}"
        typer.echo(line)
    typer.echo(f"Results: {json.dumps(execution.results, default=str)}")
    for optimization in execution.optimizations:
        state = "applied" if optimization.applied else "needs approval"
        typer.echo(f"Optimization {optimization.type}: {state} {optimization.impact}")

    if save and workflow.version != version_before:
        save_workflow(workflow, workflow_path)
        typer.echo(f"Saved {workflow_path} at version {workflow.version}")


@workflow_app.command("optimize")
def workflow_optimize(
    workflow_path: Path,
    apply: bool = typer.Option(False, help="Apply the auto-applicable proposals"),
    save: bool = typer.Option(False, help="Write the optimized definition back"),
) -> None:
    """
    Analyze stored execution history and propose optimizations.

    Example:
        adaptflow workflow optimize ./guides/document_pipeline.yaml --apply --save
    """
    workflow = _load(workflow_path)

    async def _optimize():
        async with WorkflowEngine.from_config(load_config()) as engine:
            proposals = engine.optimize_workflow(workflow)
            accepted = [p for p in proposals if p.applied]
            if apply and accepted:
                await engine.apply_optimizations(workflow, accepted)
            return proposals

    proposals = asyncio.run(_optimize())
    if not proposals:
        typer.echo("No optimizations proposed")
        return
    for proposal in proposals:
        state = "auto" if proposal.applied else "manual"
        typer.echo(f"{proposal.type}\t{state}\t{proposal.impact}")
    if apply and save:
        save_workflow(workflow, workflow_path)
        typer.echo(f"Saved {workflow_path} at version {workflow.version}")


@workflow_app.command("trigger")
def workflow_trigger(
    workflow_id: str,
    input_json: Optional[str] = typer.Option(None, "--input", "-i", help="JSON object input"),
    user_id: str = typer.Option("cli", "--user-id", "-u"),
) -> None:
    """Send a manual trigger for a workflow to the custom step function."""
    payload = _parse_input(input_json)

    async def _trigger():
        async with WorkflowEngine.from_config(load_config()) as engine:
            return await engine.trigger_workflow(workflow_id, payload, user_id)

    try:
        response = asyncio.run(_trigger())
    except AdaptflowError as exc:
        typer.secho(f"Trigger failed: {exc}", fg=typer.colors.RED)
        raise typer.Exit(code=1)
    typer.echo(json.dumps(response, default=str))


@history_app.command("list")
def history_list(
    workflow_id: str,
    limit: int = typer.Option(20, help="Maximum executions to show"),
) -> None:
    """
    List recent executions of a workflow, newest first.

    Example:
        adaptflow history list document-pipeline
        # Output: 1f0c...    v1    completed    12ms
    """
    repo = get_repository(config=load_config())
    executions = asyncio.run(repo.list_executions(workflow_id, limit))
    if not executions:
        typer.echo("No executions found")
        return
    for execution in executions:
        typer.echo(
            f"{execution.id}\tv{execution.workflow_version}\t"
            f"{execution.status.value}\t{execution.metrics.duration_ms:.0f}ms"
        )


@history_app.command("show")
def history_show(workflow_id: str, execution_id: str) -> None:
    """Show step results and metrics of one execution."""
    repo = get_repository(config=load_config())
    executions = asyncio.run(repo.list_executions(workflow_id, limit=1000))
    execution = next((e for e in executions if e.id == execution_id), None)
    if execution is None:
        typer.echo("Execution not found")
        raise typer.Exit(code=1)
    typer.echo(f"Execution {execution.id}: {execution.status.value}")
    typer.echo(f"Started: {execution.start_time} Ended: {execution.end_time}")
    typer.echo(f"Metrics: {execution.metrics.model_dump(exclude_none=True)}")
    for result in execution.step_results:
        typer.echo(
            f"- {result.step_id}: {result.status.value} ({result.duration_ms:.0f}ms)"
            + (f" error={result.error}" if result.error else "")
        )


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    app()

import asyncio
import json

import pytest
from typer.testing import CliRunner

from adaptflow.cli import app
from adaptflow.persistence import SQLiteExecutionRepository

PIPELINE = """
id: document-pipeline
user_id: user-1
name: Document pipeline
steps:
  - id: extract
    type: extract
  - id: classify
    type: classify
    parallel: true
  - id: tag
    type: transform
    parallel: true
"""


@pytest.fixture
def env(tmp_path, monkeypatch):
    for name in ("ADAPTFLOW_DATABASE_URL", "DATABASE_URL", "ADAPTFLOW_FUNCTIONS_URL"):
        monkeypatch.delenv(name, raising=False)
    db_path = tmp_path / "history.db"
    config_path = tmp_path / "adaptflow.yaml"
    config_path.write_text(f"database_url: sqlite://{db_path}\n")
    monkeypatch.setenv("ADAPTFLOW_CONFIG", str(config_path))
    workflow_path = tmp_path / "pipeline.yaml"
    workflow_path.write_text(PIPELINE)
    return {"db": db_path, "workflow": workflow_path, "tmp": tmp_path}


def test_validate_shows_groups(env):
    runner = CliRunner()
    result = runner.invoke(app, ["workflow", "validate", str(env["workflow"])])

    assert result.exit_code == 0, result.stdout
    assert "Workflow document-pipeline v1: 3 steps" in result.stdout
    assert "[sequential] extract" in result.stdout
    assert "[parallel] classify, tag" in result.stdout


def test_run_then_inspect_history(env):
    runner = CliRunner()
    result = runner.invoke(
        app, ["workflow", "run", str(env["workflow"]), "--input", '{"text": "hello"}']
    )
    assert result.exit_code == 0, result.stdout
    assert ": completed" in result.stdout
    assert "- extract: completed" in result.stdout
    results_line = next(
        line for line in result.stdout.splitlines() if line.startswith("Results: ")
    )
    assert json.loads(results_line[len("Results: "):]) == {
        "text": "hello",
        "extracted": True,
        "classified": True,
        "transformed": True,
    }

    repo = SQLiteExecutionRepository(env["db"])
    execution = asyncio.run(repo.list_executions("document-pipeline"))[0]
    repo.close()

    listed = runner.invoke(app, ["history", "list", "document-pipeline"])
    assert listed.exit_code == 0, listed.stdout
    assert execution.id in listed.stdout
    assert "completed" in listed.stdout

    shown = runner.invoke(app, ["history", "show", "document-pipeline", execution.id])
    assert shown.exit_code == 0, shown.stdout
    assert "- classify: completed" in shown.stdout

    missing = runner.invoke(app, ["history", "show", "document-pipeline", "missing-id"])
    assert missing.exit_code == 1
    assert "Execution not found" in missing.stdout


def test_run_reports_failure(env):
    broken = env["tmp"] / "broken.yaml"
    broken.write_text(
        "user_id: u\nname: broken\nsteps:\n  - id: t\n    type: translate\n"
    )

    result = CliRunner().invoke(app, ["workflow", "run", str(broken)])

    assert result.exit_code == 1
    assert "Unknown step type: translate" in result.stdout


def test_run_rejects_bad_input(env):
    result = CliRunner().invoke(
        app, ["workflow", "run", str(env["workflow"]), "--input", "[1, 2]"]
    )

    assert result.exit_code == 1
    assert "Input must be a JSON object" in result.stdout


def test_optimize_without_history(env):
    result = CliRunner().invoke(app, ["workflow", "optimize", str(env["workflow"])])

    assert result.exit_code == 0, result.stdout
    assert "No optimizations proposed" in result.stdout


def test_history_list_empty(env):
    result = CliRunner().invoke(app, ["history", "list", "nothing-here"])

    assert result.exit_code == 0
    assert "No executions found" in result.stdout


def test_trigger_uses_custom_collaborator(env):
    result = CliRunner().invoke(
        app, ["workflow", "trigger", "document-pipeline", "--input", '{"doc": 1}']
    )

    assert result.exit_code == 0, result.stdout
    assert json.loads(result.stdout.strip()) == {"custom": True}

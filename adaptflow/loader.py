"""Loading workflow definitions from YAML or JSON files."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict

import yaml
from pydantic import ValidationError

from .contracts import AdaptflowError, Workflow


class WorkflowDefinitionError(AdaptflowError):
    """Raised when a workflow file cannot be parsed or validated."""


def parse_workflow(data: Dict[str, Any]) -> Workflow:
    if not isinstance(data, dict):
        raise WorkflowDefinitionError("Workflow definition must be a mapping")
    try:
        return Workflow.model_validate(data)
    except ValidationError as exc:
        raise WorkflowDefinitionError(str(exc)) from exc


def load_workflow(path: str | Path) -> Workflow:
    """Read a workflow definition; ``.json`` files are parsed as JSON, others as YAML."""
    path = Path(path)
    if not path.exists():
        raise WorkflowDefinitionError(f"Workflow file not found: {path}")

    text = path.read_text()
    try:
        data = json.loads(text) if path.suffix == ".json" else yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        raise WorkflowDefinitionError(f"Could not parse {path}: {exc}") from exc
    return parse_workflow(data or {})


def dump_workflow(workflow: Workflow) -> Dict[str, Any]:
    return workflow.model_dump(mode="json")


def save_workflow(workflow: Workflow, path: str | Path) -> None:
    path = Path(path)
    data = dump_workflow(workflow)
    if path.suffix == ".json":
        path.write_text(json.dumps(data, indent=2))
    else:
        path.write_text(yaml.safe_dump(data, sort_keys=False))

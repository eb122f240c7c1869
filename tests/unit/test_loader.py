import json

import pytest

from adaptflow.loader import (
    WorkflowDefinitionError,
    load_workflow,
    parse_workflow,
    save_workflow,
)

YAML_DEFINITION = """
id: document-pipeline
user_id: user-1
name: Document pipeline
steps:
  - id: extract
    type: extract
    config:
      maxTokens: 1000
    retry_policy:
      max_retries: 2
  - id: classify
    type: classify
    parallel: true
  - id: tag
    type: transform
    parallel: true
    conditions:
      - field: doc.lang
        operator: equals
        value: en
optimization:
  enabled: true
  auto_apply: true
"""


def test_load_yaml_definition(tmp_path):
    path = tmp_path / "pipeline.yaml"
    path.write_text(YAML_DEFINITION)

    workflow = load_workflow(path)

    assert workflow.id == "document-pipeline"
    assert workflow.version == 1
    assert [s.id for s in workflow.steps] == ["extract", "classify", "tag"]
    assert workflow.steps[0].retry_policy.max_retries == 2
    assert workflow.steps[0].retry_policy.backoff_multiplier == 2.0
    assert workflow.steps[2].conditions[0].operator == "equals"
    assert workflow.optimization.auto_apply is True


def test_save_and_reload_json(tmp_path):
    source = tmp_path / "pipeline.yaml"
    source.write_text(YAML_DEFINITION)
    workflow = load_workflow(source)
    workflow.version = 4

    target = tmp_path / "pipeline.json"
    save_workflow(workflow, target)

    assert json.loads(target.read_text())["version"] == 4
    assert load_workflow(target).version == 4


def test_invalid_definitions(tmp_path):
    with pytest.raises(WorkflowDefinitionError, match="not found"):
        load_workflow(tmp_path / "missing.yaml")

    broken = tmp_path / "broken.json"
    broken.write_text("{not json")
    with pytest.raises(WorkflowDefinitionError, match="Could not parse"):
        load_workflow(broken)

    with pytest.raises(WorkflowDefinitionError):
        parse_workflow({"name": "no owner", "steps": []})

    with pytest.raises(WorkflowDefinitionError):
        parse_workflow(["not", "a", "mapping"])

    negative_retries = {"id": "s", "type": "x", "retry_policy": {"max_retries": -1}}
    with pytest.raises(WorkflowDefinitionError):
        parse_workflow({"user_id": "u", "name": "n", "steps": [negative_retries]})

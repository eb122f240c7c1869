"""Example replacing a built-in step handler and calling the remote functions."""

import asyncio
import os

from adaptflow import Workflow, WorkflowEngine, load_config
from adaptflow.handlers import default_handlers
from adaptflow.collaborators import get_collaborator
from adaptflow.persistence import get_repository


async def classify_by_keyword(payload, config, user_id):
    text = str(payload.get("text", "")).lower()
    label = next((k for k in config.get("keywords", []) if k in text), "other")
    return {**payload, "classified": True, "label": label}


async def main():
    # Point ADAPTFLOW_FUNCTIONS_URL at the functions host to use the HTTP collaborator
    config = load_config(os.getenv("ADAPTFLOW_CONFIG"))
    collaborator = get_collaborator(config=config)
    handlers = default_handlers(collaborator)
    handlers.register("classify", classify_by_keyword)

    workflow = Workflow(
        user_id="demo-user",
        name="Keyword routing",
        steps=[
            {"id": "classify", "type": "classify", "config": {"keywords": ["invoice", "contract"]}},
            {
                "id": "summarize",
                "type": "summarize",
                "conditions": [{"field": "label", "operator": "not_equals", "value": "other"}],
            },
        ],
    )

    engine = WorkflowEngine(get_repository(config=config), collaborator, config, handlers)
    async with engine:
        execution = await engine.execute_workflow(
            workflow, {"text": "Signed contract for Q3"}, workflow.user_id
        )
    print(f"✅ {execution.status.value}: {execution.results}")


if __name__ == "__main__":
    asyncio.run(main())

"""Simple example running a workflow definition with the in-memory collaborator."""

import asyncio
from pathlib import Path

from adaptflow import WorkflowEngine
from adaptflow.collaborators import InMemoryCollaborator
from adaptflow.loader import load_workflow
from adaptflow.persistence import SQLiteExecutionRepository


async def main():
    """Run the document pipeline a few times and show what the engine learned."""
    workflow = load_workflow(Path(__file__).with_name("document_pipeline.yaml"))
    repository = SQLiteExecutionRepository("adaptflow-demo.db")

    async with WorkflowEngine(repository, InMemoryCollaborator()) as engine:
        for i in range(3):
            execution = await engine.execute_workflow(
                workflow, {"text": f"Invoice #{i} from ACME", "lang": "en"}, workflow.user_id
            )
            print(f"✅ Execution {execution.id}: {execution.status.value}")
            for result in execution.step_results:
                print(f"   - {result.step_id}: {result.status.value} ({result.duration_ms:.1f}ms)")

        optimal = engine.get_optimal_config(workflow.id, "extract", workflow.version)
        print(f"📋 Learned config for extract: {optimal.config} (confidence {optimal.confidence:.2f})")
        print(f"🔗 Proposals: {[o.type for o in engine.optimize_workflow(workflow)]}")

    repository.close()


if __name__ == "__main__":
    asyncio.run(main())

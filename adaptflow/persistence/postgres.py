"""PostgreSQL implementation of the execution repository."""

from __future__ import annotations

import json
from typing import Any

import asyncpg

from ..contracts import Workflow, WorkflowExecution
from .repository import ExecutionRepository

_EXECUTION_COLUMNS = (
    "id, workflow_id, workflow_version, status, start_time, end_time, "
    "metrics, results, step_results, optimizations"
)


def _json(value: Any) -> Any:
    # asyncpg hands JSONB back as text unless a codec is registered
    return json.loads(value) if isinstance(value, str) else value


class PostgresExecutionRepository(ExecutionRepository):
    """Persist executions and workflows using PostgreSQL."""

    def __init__(self, dsn: str):
        self._dsn = dsn
        self._initialized = False

    async def _connect(self) -> asyncpg.Connection:
        conn = await asyncpg.connect(self._dsn)
        if not self._initialized:
            await self._ensure_schema(conn)
            self._initialized = True
        return conn

    async def _ensure_schema(self, conn: asyncpg.Connection) -> None:
        await conn.execute(
            """
            CREATE TABLE IF NOT EXISTS workflow_executions (
                id TEXT PRIMARY KEY,
                workflow_id TEXT NOT NULL,
                workflow_version INTEGER NOT NULL,
                status TEXT NOT NULL,
                start_time TIMESTAMPTZ NOT NULL,
                end_time TIMESTAMPTZ,
                metrics JSONB NOT NULL,
                results JSONB,
                step_results JSONB NOT NULL,
                optimizations JSONB
            )
            """
        )
        await conn.execute(
            """
            CREATE TABLE IF NOT EXISTS workflows (
                id TEXT PRIMARY KEY,
                user_id TEXT NOT NULL,
                name TEXT NOT NULL,
                description TEXT,
                steps JSONB NOT NULL,
                triggers JSONB NOT NULL,
                optimization JSONB NOT NULL,
                version INTEGER NOT NULL,
                created_at TIMESTAMPTZ,
                updated_at TIMESTAMPTZ
            )
            """
        )

    @staticmethod
    def _row_to_execution(row: asyncpg.Record) -> WorkflowExecution:
        return WorkflowExecution.from_record(
            {
                "id": row["id"],
                "workflow_id": row["workflow_id"],
                "workflow_version": row["workflow_version"],
                "status": row["status"],
                "start_time": row["start_time"],
                "end_time": row["end_time"],
                "metrics": _json(row["metrics"]),
                "results": _json(row["results"]) if row["results"] is not None else {},
                "step_results": _json(row["step_results"]),
                "optimizations": _json(row["optimizations"]) or [],
            }
        )

    # ------------------------------------------------------------------
    async def insert_execution(self, execution: WorkflowExecution) -> None:
        record = execution.to_record()
        conn = await self._connect()
        try:
            await conn.execute(
                f"INSERT INTO workflow_executions ({_EXECUTION_COLUMNS}) "
                "VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10)",
                execution.id,
                execution.workflow_id,
                execution.workflow_version,
                record["status"],
                execution.start_time,
                execution.end_time,
                json.dumps(record["metrics"]),
                json.dumps(record["results"]),
                json.dumps(record["step_results"]),
                json.dumps(record["optimizations"]),
            )
        finally:
            await conn.close()

    async def upsert_workflow(self, workflow: Workflow) -> None:
        record = workflow.model_dump(mode="json")
        conn = await self._connect()
        try:
            await conn.execute(
                """
                INSERT INTO workflows
                    (id, user_id, name, description, steps, triggers, optimization, version, created_at, updated_at)
                VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10)
                ON CONFLICT (id) DO UPDATE SET
                    user_id = EXCLUDED.user_id,
                    name = EXCLUDED.name,
                    description = EXCLUDED.description,
                    steps = EXCLUDED.steps,
                    triggers = EXCLUDED.triggers,
                    optimization = EXCLUDED.optimization,
                    version = EXCLUDED.version,
                    updated_at = EXCLUDED.updated_at
                """,
                workflow.id,
                workflow.user_id,
                workflow.name,
                workflow.description,
                json.dumps(record["steps"]),
                json.dumps(record["triggers"]),
                json.dumps(record["optimization"]),
                workflow.version,
                workflow.created_at,
                workflow.updated_at,
            )
        finally:
            await conn.close()

    async def recent_executions(self, limit: int = 100) -> list[WorkflowExecution]:
        conn = await self._connect()
        try:
            rows = await conn.fetch(
                f"SELECT {_EXECUTION_COLUMNS} FROM workflow_executions "
                "ORDER BY start_time DESC LIMIT $1",
                limit,
            )
        finally:
            await conn.close()
        return [self._row_to_execution(r) for r in rows]

    async def list_executions(
        self, workflow_id: str, limit: int = 100
    ) -> list[WorkflowExecution]:
        conn = await self._connect()
        try:
            rows = await conn.fetch(
                f"SELECT {_EXECUTION_COLUMNS} FROM workflow_executions "
                "WHERE workflow_id = $1 ORDER BY start_time DESC LIMIT $2",
                workflow_id,
                limit,
            )
        finally:
            await conn.close()
        return [self._row_to_execution(r) for r in rows]

    async def get_workflow(self, workflow_id: str) -> Workflow | None:
        conn = await self._connect()
        try:
            row = await conn.fetchrow(
                "SELECT id, user_id, name, description, steps, triggers, optimization, "
                "version, created_at, updated_at FROM workflows WHERE id = $1",
                workflow_id,
            )
        finally:
            await conn.close()
        if not row:
            return None
        return Workflow.model_validate(
            {
                "id": row["id"],
                "user_id": row["user_id"],
                "name": row["name"],
                "description": row["description"] or "",
                "steps": _json(row["steps"]),
                "triggers": _json(row["triggers"]),
                "optimization": _json(row["optimization"]),
                "version": row["version"],
                "created_at": row["created_at"],
                "updated_at": row["updated_at"],
            }
        )

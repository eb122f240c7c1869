"""SQLite implementation of the execution repository."""

from __future__ import annotations

import asyncio
import json
import sqlite3
from pathlib import Path
from typing import Any

from ..contracts import Workflow, WorkflowExecution
from .repository import ExecutionRepository

_EXECUTION_COLUMNS = (
    "id, workflow_id, workflow_version, status, start_time, end_time, "
    "metrics, results, step_results, optimizations"
)


class SQLiteExecutionRepository(ExecutionRepository):
    """Persist executions and workflows using SQLite."""

    def __init__(self, db_path: str | Path):
        self.db_path = str(db_path)
        self._conn = sqlite3.connect(self.db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._ensure_schema()

    # ------------------------------------------------------------------
    # Schema management
    def _ensure_schema(self) -> None:
        cur = self._conn.cursor()
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS workflow_executions (
                id TEXT PRIMARY KEY,
                workflow_id TEXT NOT NULL,
                workflow_version INTEGER NOT NULL,
                status TEXT NOT NULL,
                start_time TEXT NOT NULL,
                end_time TEXT,
                metrics TEXT NOT NULL,
                results TEXT,
                step_results TEXT NOT NULL,
                optimizations TEXT
            )
            """
        )
        cur.execute(
            """
            CREATE INDEX IF NOT EXISTS idx_workflow_executions_start
            ON workflow_executions (start_time DESC)
            """
        )
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS workflows (
                id TEXT PRIMARY KEY,
                user_id TEXT NOT NULL,
                name TEXT NOT NULL,
                description TEXT,
                steps TEXT NOT NULL,
                triggers TEXT NOT NULL,
                optimization TEXT NOT NULL,
                version INTEGER NOT NULL,
                created_at TEXT,
                updated_at TEXT
            )
            """
        )
        self._conn.commit()

    def close(self) -> None:
        self._conn.close()

    # ------------------------------------------------------------------
    # Helper methods
    def _execute(self, query: str, *params: Any) -> None:
        cur = self._conn.cursor()
        cur.execute(query, params)
        self._conn.commit()

    def _fetchone(self, query: str, *params: Any) -> sqlite3.Row | None:
        cur = self._conn.cursor()
        cur.execute(query, params)
        return cur.fetchone()

    def _fetchall(self, query: str, *params: Any) -> list[sqlite3.Row]:
        cur = self._conn.cursor()
        cur.execute(query, params)
        return cur.fetchall()

    @staticmethod
    def _row_to_execution(row: sqlite3.Row) -> WorkflowExecution:
        return WorkflowExecution.from_record(
            {
                "id": row["id"],
                "workflow_id": row["workflow_id"],
                "workflow_version": row["workflow_version"],
                "status": row["status"],
                "start_time": row["start_time"],
                "end_time": row["end_time"],
                "metrics": json.loads(row["metrics"]),
                "results": json.loads(row["results"]) if row["results"] else {},
                "step_results": json.loads(row["step_results"]),
                "optimizations": json.loads(row["optimizations"]) if row["optimizations"] else [],
            }
        )

    # ------------------------------------------------------------------
    # Repository API
    async def insert_execution(self, execution: WorkflowExecution) -> None:
        record = execution.to_record()
        await asyncio.to_thread(
            self._execute,
            f"INSERT INTO workflow_executions ({_EXECUTION_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
            record["id"],
            record["workflow_id"],
            record["workflow_version"],
            record["status"],
            record["start_time"],
            record["end_time"],
            json.dumps(record["metrics"]),
            json.dumps(record["results"]),
            json.dumps(record["step_results"]),
            json.dumps(record["optimizations"]),
        )

    async def upsert_workflow(self, workflow: Workflow) -> None:
        record = workflow.model_dump(mode="json")
        await asyncio.to_thread(
            self._execute,
            """
            INSERT INTO workflows
                (id, user_id, name, description, steps, triggers, optimization, version, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
                user_id = excluded.user_id,
                name = excluded.name,
                description = excluded.description,
                steps = excluded.steps,
                triggers = excluded.triggers,
                optimization = excluded.optimization,
                version = excluded.version,
                updated_at = excluded.updated_at
            """,
            record["id"],
            record["user_id"],
            record["name"],
            record["description"],
            json.dumps(record["steps"]),
            json.dumps(record["triggers"]),
            json.dumps(record["optimization"]),
            record["version"],
            record["created_at"],
            record["updated_at"],
        )

    async def recent_executions(self, limit: int = 100) -> list[WorkflowExecution]:
        rows = await asyncio.to_thread(
            self._fetchall,
            f"SELECT {_EXECUTION_COLUMNS} FROM workflow_executions ORDER BY start_time DESC LIMIT ?",
            limit,
        )
        return [self._row_to_execution(r) for r in rows]

    async def list_executions(
        self, workflow_id: str, limit: int = 100
    ) -> list[WorkflowExecution]:
        rows = await asyncio.to_thread(
            self._fetchall,
            f"SELECT {_EXECUTION_COLUMNS} FROM workflow_executions WHERE workflow_id = ? "
            "ORDER BY start_time DESC LIMIT ?",
            workflow_id,
            limit,
        )
        return [self._row_to_execution(r) for r in rows]

    async def get_workflow(self, workflow_id: str) -> Workflow | None:
        row = await asyncio.to_thread(
            self._fetchone,
            "SELECT id, user_id, name, description, steps, triggers, optimization, version, "
            "created_at, updated_at FROM workflows WHERE id = ?",
            workflow_id,
        )
        if not row:
            return None
        return Workflow.model_validate(
            {
                "id": row["id"],
                "user_id": row["user_id"],
                "name": row["name"],
                "description": row["description"] or "",
                "steps": json.loads(row["steps"]),
                "triggers": json.loads(row["triggers"]),
                "optimization": json.loads(row["optimization"]),
                "version": row["version"],
                "created_at": row["created_at"],
                "updated_at": row["updated_at"],
            }
        )

"""PostgreSQL-backed task record store."""

from __future__ import annotations

import asyncio
from typing import Any

import psycopg
from loguru import logger
from psycopg.rows import dict_row
from psycopg.types.json import Jsonb

from taskmaster.application.ports.task_store import TaskRecordStore
from taskmaster.domain.errors import RecordError, TaskNotFound
from taskmaster.domain.models import Task, TaskUpdate
from taskmaster.infrastructure.postgres_client import PostgresClientWrapper

_COLUMNS = (
    "id, owner_id, title, description, completed, priority, category, "
    "created_at, due_date, attachment_refs"
)

# Columns a TaskUpdate may touch
_UPDATABLE = (
    "title",
    "description",
    "completed",
    "priority",
    "category",
    "due_date",
    "attachment_refs",
)


def _row_to_task(row: dict[str, Any]) -> Task:
    return Task(
        id=str(row["id"]),
        owner_id=row["owner_id"],
        title=row["title"],
        description=row["description"],
        completed=row["completed"],
        priority=row["priority"],
        category=row["category"],
        created_at=row["created_at"],
        due_date=row["due_date"],
        attachment_refs=list(row["attachment_refs"] or []),
    )


def _to_db(column: str, value: Any) -> Any:
    if column == "attachment_refs":
        return Jsonb(list(value))
    if column in ("priority", "category") and value is not None:
        return value.value
    return value


class PostgresTaskStore(TaskRecordStore):
    """Task records in the ``tasks`` table. Blocking calls run in a worker thread."""

    def __init__(self, client: PostgresClientWrapper):
        self.client = client

    def _execute(self, sql: str, params: tuple | list) -> list[dict[str, Any]]:
        # The pooled connection commits on exit and rolls back if the block raises
        try:
            with self.client.pool.connection() as conn:
                with conn.cursor(row_factory=dict_row) as cur:
                    cur.execute(sql, params)
                    return cur.fetchall() if cur.description else []
        except psycopg.Error as e:
            raise RecordError(f"Task store query failed: {e}") from e

    async def create_task(self, task: Task) -> Task:
        values = [
            task.id,
            task.owner_id,
            task.title,
            task.description,
            task.completed,
            task.priority.value,
            task.category.value,
            task.created_at,
            task.due_date,
            Jsonb(task.attachment_refs),
        ]
        rows = await asyncio.to_thread(
            self._execute,
            f"INSERT INTO tasks ({_COLUMNS}) VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s) "
            f"RETURNING {_COLUMNS}",
            values,
        )
        logger.info(f"Created task {task.id} for {task.owner_id}")
        return _row_to_task(rows[0])

    async def get_task(self, task_id: str, *, owner_id: str) -> Task:
        rows = await asyncio.to_thread(
            self._execute,
            f"SELECT {_COLUMNS} FROM tasks WHERE id = %s AND owner_id = %s",
            (task_id, owner_id),
        )
        if not rows:
            raise TaskNotFound(task_id)
        return _row_to_task(rows[0])

    async def list_tasks(self, owner_id: str) -> list[Task]:
        rows = await asyncio.to_thread(
            self._execute,
            f"SELECT {_COLUMNS} FROM tasks WHERE owner_id = %s ORDER BY created_at DESC",
            (owner_id,),
        )
        return [_row_to_task(r) for r in rows]

    async def update_task(self, task_id: str, update: TaskUpdate, *, owner_id: str) -> Task:
        changes = update.model_dump(exclude_unset=True)
        columns = [c for c in _UPDATABLE if c in changes]
        if not columns:
            return await self.get_task(task_id, owner_id=owner_id)

        assignments = ", ".join(f"{c} = %s" for c in columns)
        params = [_to_db(c, changes[c]) for c in columns] + [task_id, owner_id]
        rows = await asyncio.to_thread(
            self._execute,
            f"UPDATE tasks SET {assignments} WHERE id = %s AND owner_id = %s RETURNING {_COLUMNS}",
            params,
        )
        if not rows:
            raise TaskNotFound(task_id)
        logger.debug(f"Updated task {task_id}: {', '.join(columns)}")
        return _row_to_task(rows[0])

    async def delete_task(self, task_id: str, *, owner_id: str) -> None:
        rows = await asyncio.to_thread(
            self._execute,
            "DELETE FROM tasks WHERE id = %s AND owner_id = %s RETURNING id",
            (task_id, owner_id),
        )
        if not rows:
            raise TaskNotFound(task_id)

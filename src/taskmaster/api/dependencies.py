"""Request-scoped collaborators for the API routes."""

from __future__ import annotations

import asyncio
from functools import lru_cache
from typing import Any

from fastapi import Header, HTTPException

from taskmaster.application.ports.blob_store import BlobStore
from taskmaster.application.ports.task_store import TaskRecordStore
from taskmaster.application.use_cases.edit_task import EditSessionRegistry


def get_owner_id(x_owner_id: str = Header(default="", alias="x-owner-id")) -> str:
    """Owner id of the already-authenticated caller, set by the auth proxy."""
    if not x_owner_id:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return x_owner_id


@lru_cache
def get_task_store() -> TaskRecordStore:
    from taskmaster.infrastructure import get_postgres_client
    from taskmaster.infrastructure.stores import PostgresTaskStore

    return PostgresTaskStore(get_postgres_client())


@lru_cache
def get_blob_store() -> BlobStore:
    from taskmaster.infrastructure import get_blob_store as _get

    return _get()


@lru_cache
def get_session_registry() -> EditSessionRegistry:
    return EditSessionRegistry()


async def get_database_health() -> dict[str, Any]:
    from taskmaster.infrastructure import get_postgres_client

    return await asyncio.to_thread(get_postgres_client().health_check)

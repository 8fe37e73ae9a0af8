"""Store implementations."""

from taskmaster.infrastructure.stores.postgres_task_store import PostgresTaskStore

__all__ = [
    "PostgresTaskStore",
]

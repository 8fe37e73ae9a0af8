"""Domain models and entities."""

from taskmaster.domain.models import (
    Category,
    Priority,
    Task,
    TaskUpdate,
)

__all__ = [
    "Category",
    "Priority",
    "Task",
    "TaskUpdate",
]

"""Domain models for Task Master."""

from datetime import datetime, timezone
from enum import Enum
from uuid import uuid4

from pydantic import BaseModel, Field, field_validator


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Priority(str, Enum):
    """Task priority levels."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Category(str, Enum):
    """Task categories."""

    WORK = "work"
    PERSONAL = "personal"
    SHOPPING = "shopping"
    HEALTH = "health"
    LEARNING = "learning"


class Task(BaseModel):
    """A task owned by a single user."""

    id: str = Field(default_factory=lambda: str(uuid4()))
    owner_id: str
    title: str = Field(..., min_length=1)
    description: str | None = None
    completed: bool = False
    priority: Priority = Priority.MEDIUM
    category: Category = Category.PERSONAL
    created_at: datetime = Field(default_factory=_utcnow)
    due_date: datetime | None = None
    # Committed, ordered attachment refs
    attachment_refs: list[str] = Field(default_factory=list)


class TaskUpdate(BaseModel):
    """Partial update of a task record. Unset fields are left untouched."""

    title: str | None = Field(None, min_length=1)
    description: str | None = None
    completed: bool | None = None
    priority: Priority | None = None
    category: Category | None = None
    due_date: datetime | None = None
    attachment_refs: list[str] | None = None

    @field_validator("title", "completed", "priority", "category", "attachment_refs")
    @classmethod
    def reject_null(cls, value):
        # Omit a field to leave it unchanged; these columns have no null state
        if value is None:
            raise ValueError("may be omitted but not null")
        return value

    def apply_to(self, task: Task) -> Task:
        """Return a copy of ``task`` with the set fields replaced."""
        return task.model_copy(update=self.model_dump(exclude_unset=True))

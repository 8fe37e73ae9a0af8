# tests/test_models.py

from __future__ import annotations

import pytest
from pydantic import ValidationError

from taskmaster.domain.models import Priority, Task, TaskUpdate


@pytest.mark.parametrize("field", ["title", "completed", "priority", "category", "attachment_refs"])
def test_update_rejects_null_for_non_nullable_fields(field: str) -> None:
    with pytest.raises(ValidationError):
        TaskUpdate(**{field: None})


def test_update_applies_only_set_fields(task: Task) -> None:
    updated = TaskUpdate(priority=Priority.HIGH, due_date=None).apply_to(task)

    assert updated.priority is Priority.HIGH
    assert updated.due_date is None
    assert updated.title == task.title
    assert updated.attachment_refs == task.attachment_refs

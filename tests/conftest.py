# tests/conftest.py

from __future__ import annotations

import pytest

from taskmaster.domain.models import Task

from .fakes import OWNER, FakeBlobStore, FakeTaskStore, ref


@pytest.fixture()
def task() -> Task:
    """A task that already has two stored images, a then b."""
    return Task(
        owner_id=OWNER,
        title="Finish project proposal",
        description="Q4 marketing campaign proposal",
        attachment_refs=[ref("a"), ref("b")],
    )


@pytest.fixture()
def blob_store(task: Task) -> FakeBlobStore:
    return FakeBlobStore(existing=task.attachment_refs)


@pytest.fixture()
def task_store(task: Task) -> FakeTaskStore:
    return FakeTaskStore([task])

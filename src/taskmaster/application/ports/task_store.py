from __future__ import annotations
from typing import Protocol
from taskmaster.domain.models import Task, TaskUpdate

class TaskRecordStore(Protocol):
    async def create_task(self, task: Task) -> Task: ...
    async def get_task(self, task_id: str, *, owner_id: str) -> Task: ...
    async def list_tasks(self, owner_id: str) -> list[Task]: ...
    async def update_task(self, task_id: str, update: TaskUpdate, *, owner_id: str) -> Task: ...
    async def delete_task(self, task_id: str, *, owner_id: str) -> None: ...

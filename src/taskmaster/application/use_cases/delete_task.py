"""Delete a task together with its attachment blobs."""

from __future__ import annotations

from loguru import logger

from taskmaster.application.ports.blob_store import BlobStore
from taskmaster.application.ports.task_store import TaskRecordStore
from taskmaster.application.use_cases.reconcile_attachments import (
    AttachmentFailure,
    delete_blobs,
)
from taskmaster.domain.models import Task


class DeleteTaskUseCase:
    """
    Remove a task record, then clean up its blobs.

    The record goes first: if that fails nothing is touched. Blob cleanup is
    best effort and failures come back as warnings.
    """

    def __init__(self, blob_store: BlobStore, record_store: TaskRecordStore) -> None:
        self.blob_store = blob_store
        self.record_store = record_store

    async def run(self, task: Task) -> list[AttachmentFailure]:
        await self.record_store.delete_task(task.id, owner_id=task.owner_id)
        logger.info(f"Deleted task {task.id}")

        failures = await delete_blobs(self.blob_store, list(dict.fromkeys(task.attachment_refs)))
        if failures:
            logger.warning(f"{len(failures)} blob(s) of task {task.id} could not be deleted")
        return failures

"""Reconcile an edited attachment set against the blob store and task record."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Literal

from loguru import logger

from taskmaster.application.ports.blob_store import BlobStore
from taskmaster.application.ports.task_store import TaskRecordStore
from taskmaster.domain.entities.attachment import PendingSlot, PersistedSlot
from taskmaster.domain.entities.attachment_set import AttachmentSet
from taskmaster.domain.errors import RecordError
from taskmaster.domain.models import Task, TaskUpdate


@dataclass(frozen=True)
class AttachmentFailure:
    """A per-attachment blob operation that failed without aborting the save."""

    operation: Literal["upload", "delete"]
    identity: str  # local_id for uploads, ref for deletes
    reason: str


@dataclass
class ReconcileResult:
    """Outcome of a successful save. ``failures`` are warnings only."""

    attachment_refs: list[str]
    task: Task
    failures: list[AttachmentFailure] = field(default_factory=list)
    uploaded: int = 0
    deleted: int = 0

    @property
    def has_warnings(self) -> bool:
        return bool(self.failures)


class ReconcileAttachmentsUseCase:
    """Turn an edit session's attachment changes into blob and record writes.

    Flow:
    1. Diff initial vs. final: dropped persisted refs, new pending slots
    2. Delete dropped refs and upload pending slots concurrently
    3. Walk the final order, swapping uploaded slots for their new refs
       and dropping slots whose upload failed
    4. Write the task record once

    Blob failures are collected as warnings. A failed record write raises
    RecordError; blobs already uploaded in this run are left in place and
    reported on the error as orphans.
    """

    def __init__(self, blob_store: BlobStore, record_store: TaskRecordStore) -> None:
        self.blob_store = blob_store
        self.record_store = record_store

    async def run(
        self,
        initial: AttachmentSet,
        final: AttachmentSet,
        *,
        task_id: str,
        owner_id: str,
        fields: TaskUpdate | None = None,
    ) -> ReconcileResult:
        final_slots = final.snapshot()
        to_delete = self._dropped_refs(initial, final)
        to_upload = [s for s in final_slots if isinstance(s, PendingSlot)]

        logger.info(
            f"Reconciling task {task_id}: {len(to_upload)} to upload, {len(to_delete)} to delete"
        )

        failures: list[AttachmentFailure] = []
        delete_failures, uploaded = await asyncio.gather(
            delete_blobs(self.blob_store, to_delete),
            self._upload_all(to_upload, owner_id=owner_id, failures=failures),
        )
        failures.extend(delete_failures)

        kept = {s.ref for s in final_slots if isinstance(s, PersistedSlot)}
        refs: list[str] = []
        new_refs: list[str] = []
        for slot in final_slots:
            match slot:
                case PersistedSlot(ref=ref):
                    refs.append(ref)
                case PendingSlot(local_id=local_id):
                    new_ref = uploaded.get(local_id)
                    if new_ref is None:
                        continue
                    if new_ref in kept or new_ref in new_refs:
                        # Same blob as another slot: keep one copy and never delete it
                        logger.warning(f"Upload {local_id} resolved to existing ref {new_ref}, dropping it")
                        failures.append(
                            AttachmentFailure("upload", local_id, f"Duplicate of existing attachment {new_ref}")
                        )
                        continue
                    refs.append(new_ref)
                    new_refs.append(new_ref)
                case _:
                    raise TypeError(f"Not an attachment slot: {slot!r}")

        update_fields = fields.model_dump(exclude_unset=True) if fields else {}
        update_fields["attachment_refs"] = refs
        try:
            task = await self.record_store.update_task(
                task_id, TaskUpdate(**update_fields), owner_id=owner_id
            )
        except RecordError as e:
            logger.error(
                f"Task {task_id} record write failed, {len(new_refs)} uploaded blob(s) orphaned: {e}"
            )
            e.orphaned_refs = new_refs
            e.failures = failures
            raise

        deleted = len(to_delete) - len(delete_failures)
        logger.info(
            f"Task {task_id} saved with {len(refs)} attachment(s) "
            f"({len(new_refs)} uploaded, {deleted} deleted, {len(failures)} warning(s))"
        )
        return ReconcileResult(
            attachment_refs=refs,
            task=task,
            failures=failures,
            uploaded=len(new_refs),
            deleted=deleted,
        )

    @staticmethod
    def _dropped_refs(initial: AttachmentSet, final: AttachmentSet) -> list[str]:
        kept = {s.ref for s in final.snapshot() if isinstance(s, PersistedSlot)}
        dropped: list[str] = []
        for slot in initial.snapshot():
            match slot:
                case PersistedSlot(ref=ref):
                    if ref not in kept and ref not in dropped:
                        dropped.append(ref)
                case PendingSlot():
                    # Never uploaded, nothing to clean up
                    pass
                case _:
                    raise TypeError(f"Not an attachment slot: {slot!r}")
        return dropped

    async def _upload_all(
        self,
        slots: list[PendingSlot],
        *,
        owner_id: str,
        failures: list[AttachmentFailure],
    ) -> dict[str, str]:
        uploaded: dict[str, str] = {}

        async def upload_one(slot: PendingSlot) -> None:
            try:
                key = await self.blob_store.upload(
                    owner_id=owner_id,
                    payload=slot.payload,
                    content_type=slot.mime_hint,
                )
            except Exception as e:
                logger.warning(f"Failed to upload attachment {slot.local_id}: {e}")
                failures.append(AttachmentFailure("upload", slot.local_id, str(e)))
                return
            uploaded[slot.local_id] = self.blob_store.resolve_public_ref(key)
            logger.debug(f"Uploaded attachment {slot.local_id} as {key}")

        await asyncio.gather(*(upload_one(s) for s in slots))
        return uploaded


async def delete_blobs(blob_store: BlobStore, refs: list[str]) -> list[AttachmentFailure]:
    """Delete refs in one batch; every failure becomes a warning, never an exception."""
    if not refs:
        return []
    try:
        outcomes = await blob_store.delete(refs)
    except Exception as e:
        logger.warning(f"Batch delete of {len(refs)} blob(s) failed: {e}")
        return [AttachmentFailure("delete", ref, str(e)) for ref in refs]

    failures: list[AttachmentFailure] = []
    for ref in refs:
        error = outcomes.get(ref)
        if error is not None:
            logger.warning(f"Failed to delete blob {ref}: {error}")
            failures.append(AttachmentFailure("delete", ref, str(error)))
    return failures


async def reconcile(
    initial: AttachmentSet,
    final: AttachmentSet,
    blob_store: BlobStore,
    record_store: TaskRecordStore,
    task_id: str,
    *,
    owner_id: str,
    fields: TaskUpdate | None = None,
) -> ReconcileResult:
    """Convenience wrapper around ReconcileAttachmentsUseCase."""
    use_case = ReconcileAttachmentsUseCase(blob_store, record_store)
    return await use_case.run(initial, final, task_id=task_id, owner_id=owner_id, fields=fields)

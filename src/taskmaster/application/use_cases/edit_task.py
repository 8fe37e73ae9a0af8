"""Edit sessions: the in-memory lifetime of a task's attachment set."""

from __future__ import annotations

import uuid

from loguru import logger

from taskmaster.application.drag_reorder import DragReorderController
from taskmaster.application.ports.blob_store import BlobStore
from taskmaster.application.ports.task_store import TaskRecordStore
from taskmaster.application.use_cases.reconcile_attachments import (
    ReconcileAttachmentsUseCase,
    ReconcileResult,
)
from taskmaster.domain.entities.attachment import PendingSlot
from taskmaster.domain.entities.attachment_set import AttachmentSet
from taskmaster.domain.errors import SessionClosed, SessionNotFound
from taskmaster.domain.models import Task, TaskUpdate


class TaskEditSession:
    """
    Editing state for one task.

    The initial set is frozen when the session opens; all user actions go to
    ``attachments``. Nothing is persisted until ``commit``; ``cancel`` throws
    the working set away.
    """

    def __init__(self, task: Task) -> None:
        self.session_id = uuid.uuid4().hex
        self.task = task
        self.initial = AttachmentSet.from_refs(task.attachment_refs)
        self.attachments = self.initial.copy()
        self.drag = DragReorderController(self.attachments)
        self.closed = False

    @classmethod
    def open(cls, task: Task) -> TaskEditSession:
        session = cls(task)
        logger.info(
            f"Opened edit session {session.session_id} for task {task.id} "
            f"({len(session.initial)} attachment(s))"
        )
        return session

    def _ensure_open(self) -> None:
        if self.closed:
            raise SessionClosed(f"Edit session {self.session_id} is closed")

    def add_attachment(self, payload: bytes, mime_hint: str) -> PendingSlot:
        self._ensure_open()
        return self.attachments.add(payload, mime_hint)

    def remove_attachment(self, identity: str) -> None:
        self._ensure_open()
        self.attachments.remove(identity)

    def reorder_attachment(self, identity: str, new_index: int) -> None:
        self._ensure_open()
        self.attachments.reorder(identity, new_index)

    def cancel(self) -> None:
        self.closed = True
        self.drag.release()
        logger.info(f"Cancelled edit session {self.session_id} for task {self.task.id}")

    async def commit(
        self,
        blob_store: BlobStore,
        record_store: TaskRecordStore,
        fields: TaskUpdate | None = None,
    ) -> ReconcileResult:
        """Reconcile the working set and write the task. Closes the session."""
        self._ensure_open()
        self.closed = True
        self.drag.release()
        use_case = ReconcileAttachmentsUseCase(blob_store, record_store)
        return await use_case.run(
            self.initial,
            self.attachments,
            task_id=self.task.id,
            owner_id=self.task.owner_id,
            fields=fields,
        )


class EditSessionRegistry:
    """Open edit sessions, at most one per task."""

    def __init__(self) -> None:
        self._sessions: dict[str, TaskEditSession] = {}
        self._by_task: dict[str, str] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def open(self, task: Task) -> TaskEditSession:
        previous = self._by_task.get(task.id)
        if previous is not None:
            logger.info(f"Replacing edit session {previous} for task {task.id}")
            self.close(previous)
        session = TaskEditSession.open(task)
        self._sessions[session.session_id] = session
        self._by_task[task.id] = session.session_id
        return session

    def get(self, session_id: str, *, owner_id: str | None = None) -> TaskEditSession:
        session = self._sessions.get(session_id)
        if session is None or (owner_id is not None and session.task.owner_id != owner_id):
            raise SessionNotFound(f"Edit session {session_id} not found")
        return session

    def close(self, session_id: str) -> None:
        session = self._sessions.pop(session_id, None)
        if session is None:
            return
        if self._by_task.get(session.task.id) == session_id:
            del self._by_task[session.task.id]
        if not session.closed:
            session.cancel()

"""
API routes for the Task Master service.

Tasks are plain CRUD over the record store. Attachments only change through
edit sessions: open a session, add/remove/reorder slots, then save, which
reconciles the slots against the blob store in one pass.
"""

from datetime import datetime, timezone
from typing import Any, Literal

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile
from loguru import logger
from pydantic import BaseModel, Field, field_validator

from taskmaster import __version__
from taskmaster.api.dependencies import (
    get_blob_store,
    get_database_health,
    get_owner_id,
    get_session_registry,
    get_task_store,
)
from taskmaster.application.ports.blob_store import BlobStore
from taskmaster.application.ports.task_store import TaskRecordStore
from taskmaster.application.task_filters import TaskFilter, filter_tasks, task_stats
from taskmaster.application.use_cases.delete_task import DeleteTaskUseCase
from taskmaster.application.use_cases.edit_task import EditSessionRegistry, TaskEditSession
from taskmaster.domain import Category, Priority, Task, TaskUpdate
from taskmaster.domain.entities.attachment import PendingSlot, PersistedSlot
from taskmaster.domain.entities.attachment_set import MAX_ATTACHMENTS
from taskmaster.domain.errors import (
    CapacityExceeded,
    RecordError,
    SessionClosed,
    SessionNotFound,
    TaskNotFound,
)

router = APIRouter()


# ============================================================================
# Request/Response Models
# ============================================================================


class TaskCreate(BaseModel):
    """Request body for creating a task."""

    title: str = Field(..., min_length=1, description="Task title")
    description: str | None = Field(None, description="Optional details")
    priority: Priority = Priority.MEDIUM
    category: Category = Category.PERSONAL
    due_date: datetime | None = None


class TaskPatch(BaseModel):
    """Request body for editing task fields (attachments excluded)."""

    title: str | None = Field(None, min_length=1)
    description: str | None = None
    completed: bool | None = None
    priority: Priority | None = None
    category: Category | None = None
    due_date: datetime | None = None

    @field_validator("title", "completed", "priority", "category")
    @classmethod
    def reject_null(cls, value):
        if value is None:
            raise ValueError("may be omitted but not null")
        return value

    def to_update(self) -> TaskUpdate:
        return TaskUpdate(**self.model_dump(exclude_unset=True))


class TaskStatsResponse(BaseModel):
    total: int
    completed: int
    pending: int
    high_priority: int
    progress: int


class SlotView(BaseModel):
    """One attachment slot as shown in the editor."""

    kind: Literal["pending", "persisted"]
    identity: str
    ref: str | None = None
    mime_hint: str | None = None
    size_bytes: int | None = None


class EditSessionView(BaseModel):
    session_id: str
    task_id: str
    max_attachments: int = MAX_ATTACHMENTS
    slots: list[SlotView]


class RemoveRequest(BaseModel):
    identity: str = Field(..., description="local_id of a pending slot or ref of a persisted one")


class ReorderRequest(BaseModel):
    identity: str
    new_index: int = Field(..., description="Absolute target position, clamped to the set")


class FailureView(BaseModel):
    operation: Literal["upload", "delete"]
    identity: str
    reason: str


class SaveResponse(BaseModel):
    task: Task
    attachment_refs: list[str]
    uploaded: int
    deleted: int
    warnings: list[FailureView] = Field(default_factory=list)


class DeleteResponse(BaseModel):
    status: str
    task_id: str
    warnings: list[FailureView] = Field(default_factory=list)


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    timestamp: str
    version: str
    database: dict[str, Any] = Field(default_factory=dict)


# ============================================================================
# Helpers
# ============================================================================


def _slot_view(slot) -> SlotView:
    match slot:
        case PendingSlot(local_id=local_id, mime_hint=mime_hint):
            return SlotView(
                kind="pending",
                identity=local_id,
                mime_hint=mime_hint,
                size_bytes=slot.size_bytes,
            )
        case PersistedSlot(ref=ref):
            return SlotView(kind="persisted", identity=ref, ref=ref)
        case _:
            raise TypeError(f"Not an attachment slot: {slot!r}")


def _session_view(session: TaskEditSession) -> EditSessionView:
    return EditSessionView(
        session_id=session.session_id,
        task_id=session.task.id,
        slots=[_slot_view(s) for s in session.attachments.snapshot()],
    )


def _failure_views(failures) -> list[FailureView]:
    return [
        FailureView(operation=f.operation, identity=f.identity, reason=f.reason)
        for f in failures
    ]


def _record_error_detail(error: RecordError) -> dict[str, Any]:
    """Error body for a failed save; lists blobs the save uploaded but no task references."""
    return {
        "message": str(error),
        "orphaned_refs": error.orphaned_refs,
        "warnings": [w.model_dump() for w in _failure_views(error.failures)],
    }


async def _load_task(store: TaskRecordStore, task_id: str, owner_id: str) -> Task:
    try:
        return await store.get_task(task_id, owner_id=owner_id)
    except TaskNotFound:
        raise HTTPException(status_code=404, detail=f"Task {task_id} not found")
    except RecordError as e:
        logger.error(f"Failed to load task {task_id}: {e}")
        raise HTTPException(status_code=502, detail=str(e))


def _load_session(registry: EditSessionRegistry, session_id: str, owner_id: str) -> TaskEditSession:
    try:
        return registry.get(session_id, owner_id=owner_id)
    except SessionNotFound:
        raise HTTPException(status_code=404, detail=f"Edit session {session_id} not found")


# ============================================================================
# Health
# ============================================================================


@router.get("/health", response_model=HealthResponse)
async def health_check(database: dict[str, Any] = Depends(get_database_health)) -> HealthResponse:
    """Service health; degraded while the task database is unreachable."""
    return HealthResponse(
        status="healthy" if database.get("status") == "healthy" else "degraded",
        database=database,
        timestamp=datetime.now(timezone.utc).isoformat(),
        version=__version__,
    )


# ============================================================================
# Tasks
# ============================================================================


@router.get("/tasks", response_model=list[Task])
async def list_tasks(
    search: str = Query("", description="Case-insensitive match on title or description"),
    priority: Literal["all", "low", "medium", "high"] = "all",
    category: str = "all",
    status: Literal["all", "pending", "completed"] = "all",
    owner_id: str = Depends(get_owner_id),
    store: TaskRecordStore = Depends(get_task_store),
) -> list[Task]:
    """List the caller's tasks, newest first, with optional filters."""
    try:
        tasks = await store.list_tasks(owner_id)
    except RecordError as e:
        logger.error(f"Failed to list tasks for {owner_id}: {e}")
        raise HTTPException(status_code=502, detail=str(e))
    task_filter = TaskFilter(search=search, priority=priority, category=category, status=status)
    return filter_tasks(tasks, task_filter)


@router.get("/tasks/stats", response_model=TaskStatsResponse)
async def get_task_stats(
    owner_id: str = Depends(get_owner_id),
    store: TaskRecordStore = Depends(get_task_store),
) -> TaskStatsResponse:
    try:
        tasks = await store.list_tasks(owner_id)
    except RecordError as e:
        logger.error(f"Failed to list tasks for {owner_id}: {e}")
        raise HTTPException(status_code=502, detail=str(e))
    stats = task_stats(tasks)
    return TaskStatsResponse(
        total=stats.total,
        completed=stats.completed,
        pending=stats.pending,
        high_priority=stats.high_priority,
        progress=stats.progress,
    )


@router.post("/tasks", response_model=Task, status_code=201)
async def create_task(
    request: TaskCreate,
    owner_id: str = Depends(get_owner_id),
    store: TaskRecordStore = Depends(get_task_store),
) -> Task:
    task = Task(owner_id=owner_id, **request.model_dump())
    try:
        return await store.create_task(task)
    except RecordError as e:
        logger.error(f"Failed to create task for {owner_id}: {e}")
        raise HTTPException(status_code=502, detail=str(e))


@router.get("/tasks/{task_id}", response_model=Task)
async def get_task(
    task_id: str,
    owner_id: str = Depends(get_owner_id),
    store: TaskRecordStore = Depends(get_task_store),
) -> Task:
    return await _load_task(store, task_id, owner_id)


@router.patch("/tasks/{task_id}", response_model=Task)
async def update_task(
    task_id: str,
    request: TaskPatch,
    owner_id: str = Depends(get_owner_id),
    store: TaskRecordStore = Depends(get_task_store),
) -> Task:
    try:
        return await store.update_task(task_id, request.to_update(), owner_id=owner_id)
    except TaskNotFound:
        raise HTTPException(status_code=404, detail=f"Task {task_id} not found")
    except RecordError as e:
        logger.error(f"Failed to update task {task_id}: {e}")
        raise HTTPException(status_code=502, detail=str(e))


@router.delete("/tasks/{task_id}", response_model=DeleteResponse)
async def delete_task(
    task_id: str,
    owner_id: str = Depends(get_owner_id),
    store: TaskRecordStore = Depends(get_task_store),
    blob_store: BlobStore = Depends(get_blob_store),
) -> DeleteResponse:
    """Delete a task and, best effort, its attachment blobs."""
    task = await _load_task(store, task_id, owner_id)
    try:
        failures = await DeleteTaskUseCase(blob_store, store).run(task)
    except TaskNotFound:
        raise HTTPException(status_code=404, detail=f"Task {task_id} not found")
    except RecordError as e:
        logger.error(f"Failed to delete task {task_id}: {e}")
        raise HTTPException(status_code=502, detail=str(e))
    return DeleteResponse(status="deleted", task_id=task_id, warnings=_failure_views(failures))


# ============================================================================
# Edit sessions
# ============================================================================


@router.post("/tasks/{task_id}/edit-sessions", response_model=EditSessionView, status_code=201)
async def open_edit_session(
    task_id: str,
    owner_id: str = Depends(get_owner_id),
    store: TaskRecordStore = Depends(get_task_store),
    registry: EditSessionRegistry = Depends(get_session_registry),
) -> EditSessionView:
    """Start editing a task's attachments. Replaces any open session for the task."""
    task = await _load_task(store, task_id, owner_id)
    try:
        session = registry.open(task)
    except CapacityExceeded as e:
        raise HTTPException(status_code=409, detail=str(e))
    return _session_view(session)


@router.get("/edit-sessions/{session_id}", response_model=EditSessionView)
async def get_edit_session(
    session_id: str,
    owner_id: str = Depends(get_owner_id),
    registry: EditSessionRegistry = Depends(get_session_registry),
) -> EditSessionView:
    return _session_view(_load_session(registry, session_id, owner_id))


@router.post("/edit-sessions/{session_id}/attachments", response_model=SlotView, status_code=201)
async def add_attachment(
    session_id: str,
    file: UploadFile = File(...),
    owner_id: str = Depends(get_owner_id),
    registry: EditSessionRegistry = Depends(get_session_registry),
) -> SlotView:
    """Add a picked image as a pending slot. Nothing is uploaded until save."""
    session = _load_session(registry, session_id, owner_id)
    content_type = file.content_type or "application/octet-stream"
    if not content_type.startswith("image/"):
        raise HTTPException(status_code=415, detail=f"Unsupported attachment type {content_type}")

    payload = await file.read()
    try:
        slot = session.add_attachment(payload, content_type)
    except CapacityExceeded as e:
        raise HTTPException(status_code=409, detail=str(e))
    except SessionClosed as e:
        raise HTTPException(status_code=409, detail=str(e))
    return _slot_view(slot)


@router.post("/edit-sessions/{session_id}/attachments/remove", response_model=EditSessionView)
async def remove_attachment(
    session_id: str,
    request: RemoveRequest,
    owner_id: str = Depends(get_owner_id),
    registry: EditSessionRegistry = Depends(get_session_registry),
) -> EditSessionView:
    session = _load_session(registry, session_id, owner_id)
    try:
        session.remove_attachment(request.identity)
    except SessionClosed as e:
        raise HTTPException(status_code=409, detail=str(e))
    return _session_view(session)


@router.post("/edit-sessions/{session_id}/attachments/reorder", response_model=EditSessionView)
async def reorder_attachment(
    session_id: str,
    request: ReorderRequest,
    owner_id: str = Depends(get_owner_id),
    registry: EditSessionRegistry = Depends(get_session_registry),
) -> EditSessionView:
    session = _load_session(registry, session_id, owner_id)
    try:
        session.reorder_attachment(request.identity, request.new_index)
    except SessionClosed as e:
        raise HTTPException(status_code=409, detail=str(e))
    return _session_view(session)


@router.post("/edit-sessions/{session_id}/save", response_model=SaveResponse)
async def save_edit_session(
    session_id: str,
    request: TaskPatch | None = None,
    owner_id: str = Depends(get_owner_id),
    store: TaskRecordStore = Depends(get_task_store),
    blob_store: BlobStore = Depends(get_blob_store),
    registry: EditSessionRegistry = Depends(get_session_registry),
) -> SaveResponse:
    """
    Commit the session: upload new images, delete dropped ones, write the task.

    Per-image failures come back as warnings on a successful save. A failed
    record write returns 502 (404 if the task is gone) and lists blobs
    uploaded by this save that no task references.
    """
    session = _load_session(registry, session_id, owner_id)
    fields = request.to_update() if request else None
    try:
        result = await session.commit(blob_store, store, fields)
    except SessionClosed as e:
        raise HTTPException(status_code=409, detail=str(e))
    except TaskNotFound as e:
        raise HTTPException(status_code=404, detail=_record_error_detail(e))
    except RecordError as e:
        raise HTTPException(status_code=502, detail=_record_error_detail(e))
    finally:
        registry.close(session_id)

    return SaveResponse(
        task=result.task,
        attachment_refs=result.attachment_refs,
        uploaded=result.uploaded,
        deleted=result.deleted,
        warnings=_failure_views(result.failures),
    )


@router.delete("/edit-sessions/{session_id}", status_code=204)
async def cancel_edit_session(
    session_id: str,
    owner_id: str = Depends(get_owner_id),
    registry: EditSessionRegistry = Depends(get_session_registry),
) -> None:
    """Discard the session's changes."""
    _load_session(registry, session_id, owner_id)
    registry.close(session_id)

"""Application layer - attachment editing, reconciliation and task queries."""

from taskmaster.application.drag_reorder import DragReorderController, SlotRect
from taskmaster.application.task_filters import TaskFilter, TaskStats, filter_tasks, task_stats
from taskmaster.application.use_cases.delete_task import DeleteTaskUseCase
from taskmaster.application.use_cases.edit_task import EditSessionRegistry, TaskEditSession
from taskmaster.application.use_cases.reconcile_attachments import (
    AttachmentFailure,
    ReconcileAttachmentsUseCase,
    ReconcileResult,
    reconcile,
)

__all__ = [
    "AttachmentFailure",
    "DeleteTaskUseCase",
    "DragReorderController",
    "EditSessionRegistry",
    "ReconcileAttachmentsUseCase",
    "ReconcileResult",
    "SlotRect",
    "TaskEditSession",
    "TaskFilter",
    "TaskStats",
    "filter_tasks",
    "reconcile",
    "task_stats",
]

"""Error types raised by the attachment engine and its adapters."""

from __future__ import annotations


class TaskMasterError(Exception):
    """Base class for all Task Master errors."""


class CapacityExceeded(TaskMasterError):
    """Adding a slot would push an attachment set past its hard cap."""

    def __init__(self, limit: int) -> None:
        super().__init__(f"Attachment limit reached ({limit} max)")
        self.limit = limit


class UploadError(TaskMasterError):
    """A single blob upload failed."""


class DeleteError(TaskMasterError):
    """A single blob deletion failed."""

    def __init__(self, ref: str, reason: str) -> None:
        super().__init__(f"Failed to delete {ref}: {reason}")
        self.ref = ref
        self.reason = reason


class RecordError(TaskMasterError):
    """The task record could not be read or written.

    When raised out of a reconciliation, ``orphaned_refs`` lists the blobs
    uploaded during that run which no task references, and ``failures`` the
    per-attachment warnings collected before the write was attempted.
    """

    def __init__(self, message: str, *, orphaned_refs=None, failures=None) -> None:
        super().__init__(message)
        self.orphaned_refs: list[str] = list(orphaned_refs or [])
        self.failures = list(failures or [])


class TaskNotFound(RecordError):
    """No task with the given id exists for the owner."""

    def __init__(self, task_id: str) -> None:
        super().__init__(f"Task {task_id} not found")
        self.task_id = task_id


class SessionNotFound(TaskMasterError):
    """Unknown or expired edit session id."""


class SessionClosed(TaskMasterError):
    """The edit session was already committed or cancelled."""

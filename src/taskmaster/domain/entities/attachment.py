from __future__ import annotations

import uuid
from dataclasses import dataclass, field


@dataclass(frozen=True)
class PendingSlot:
    """A locally picked file that has not been uploaded yet."""

    payload: bytes = field(repr=False)
    mime_hint: str
    # Never sent to the blob store; only identifies the slot during editing
    local_id: str = field(default_factory=lambda: uuid.uuid4().hex)

    @property
    def identity(self) -> str:
        return self.local_id

    @property
    def size_bytes(self) -> int:
        return len(self.payload)


@dataclass(frozen=True)
class PersistedSlot:
    """An attachment that already lives in the blob store."""

    ref: str

    @property
    def identity(self) -> str:
        return self.ref


AttachmentSlot = PendingSlot | PersistedSlot


def slot_identity(slot: AttachmentSlot) -> str:
    """Return the identity used by remove/reorder for either slot kind."""
    match slot:
        case PendingSlot(local_id=local_id):
            return local_id
        case PersistedSlot(ref=ref):
            return ref
        case _:
            raise TypeError(f"Not an attachment slot: {slot!r}")

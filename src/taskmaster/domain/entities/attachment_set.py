"""Ordered, capped collection of task attachments for one edit session."""

from __future__ import annotations

from typing import Iterable, Iterator

from loguru import logger

from taskmaster.domain.entities.attachment import (
    AttachmentSlot,
    PendingSlot,
    PersistedSlot,
    slot_identity,
)
from taskmaster.domain.errors import CapacityExceeded

MAX_ATTACHMENTS = 9


class AttachmentSet:
    """Mixed list of pending uploads and persisted refs.

    Order is display order and storage order. All mutations are local;
    nothing here touches the network.
    """

    def __init__(self, slots: Iterable[AttachmentSlot] = ()) -> None:
        self._slots: list[AttachmentSlot] = list(slots)
        if len(self._slots) > MAX_ATTACHMENTS:
            raise CapacityExceeded(MAX_ATTACHMENTS)

    @classmethod
    def from_refs(cls, refs: Iterable[str]) -> AttachmentSet:
        """Build a set of persisted slots from a task's stored refs."""
        seen: set[str] = set()
        slots: list[AttachmentSlot] = []
        for ref in refs:
            if ref in seen:
                logger.warning(f"Dropping duplicate attachment ref {ref}")
                continue
            seen.add(ref)
            slots.append(PersistedSlot(ref=ref))
        return cls(slots)

    def __len__(self) -> int:
        return len(self._slots)

    def __iter__(self) -> Iterator[AttachmentSlot]:
        return iter(self.snapshot())

    def __repr__(self) -> str:
        return f"AttachmentSet({self.identities()!r})"

    def copy(self) -> AttachmentSet:
        return AttachmentSet(self._slots)

    def snapshot(self) -> tuple[AttachmentSlot, ...]:
        return tuple(self._slots)

    def identities(self) -> list[str]:
        return [slot_identity(s) for s in self._slots]

    def index_of(self, identity: str) -> int | None:
        for i, slot in enumerate(self._slots):
            if slot_identity(slot) == identity:
                return i
        return None

    def add(self, payload: bytes, mime_hint: str) -> PendingSlot:
        """Append a new pending slot."""
        if len(self._slots) >= MAX_ATTACHMENTS:
            raise CapacityExceeded(MAX_ATTACHMENTS)
        slot = PendingSlot(payload=payload, mime_hint=mime_hint)
        self._slots.append(slot)
        logger.debug(f"Added pending attachment {slot.local_id} ({len(payload)} bytes, {mime_hint})")
        return slot

    def remove(self, identity: str) -> None:
        """Drop the slot with this identity, if present.

        Blob deletion for persisted slots happens at reconciliation.
        """
        index = self.index_of(identity)
        if index is None:
            return
        del self._slots[index]

    def reorder(self, identity: str, new_index: int) -> None:
        """Move a slot to an absolute position, shifting the others."""
        source = self.index_of(identity)
        if source is None:
            return
        target = max(0, min(new_index, len(self._slots) - 1))
        if source == target:
            return
        slot = self._slots.pop(source)
        self._slots.insert(target, slot)

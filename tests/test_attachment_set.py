# tests/test_attachment_set.py

from __future__ import annotations

import pytest

from taskmaster.domain.entities.attachment import PendingSlot, PersistedSlot, slot_identity
from taskmaster.domain.entities.attachment_set import MAX_ATTACHMENTS, AttachmentSet
from taskmaster.domain.errors import CapacityExceeded


def test_add_up_to_cap_then_reject_without_mutation() -> None:
    attachments = AttachmentSet()
    for i in range(MAX_ATTACHMENTS):
        slot = attachments.add(f"img{i}".encode(), "image/png")
        assert isinstance(slot, PendingSlot)
    before = attachments.identities()

    with pytest.raises(CapacityExceeded):
        attachments.add(b"one too many", "image/png")

    assert len(attachments) == MAX_ATTACHMENTS
    assert attachments.identities() == before


def test_cap_counts_persisted_slots() -> None:
    attachments = AttachmentSet.from_refs([f"r{i}" for i in range(MAX_ATTACHMENTS)])
    with pytest.raises(CapacityExceeded):
        attachments.add(b"x", "image/jpeg")


def test_from_refs_rejects_more_than_cap() -> None:
    with pytest.raises(CapacityExceeded):
        AttachmentSet.from_refs([f"r{i}" for i in range(MAX_ATTACHMENTS + 1)])


def test_from_refs_drops_duplicate_refs() -> None:
    attachments = AttachmentSet.from_refs(["a", "b", "a"])
    assert attachments.identities() == ["a", "b"]
    assert all(isinstance(s, PersistedSlot) for s in attachments)


def test_remove_by_identity_for_both_kinds() -> None:
    attachments = AttachmentSet.from_refs(["a", "b"])
    pending = attachments.add(b"x", "image/png")

    attachments.remove("a")
    attachments.remove(pending.local_id)

    assert attachments.identities() == ["b"]


def test_remove_unknown_identity_is_noop() -> None:
    attachments = AttachmentSet.from_refs(["a"])
    attachments.remove("missing")
    assert attachments.identities() == ["a"]


def test_readding_a_removed_file_gets_a_new_local_id() -> None:
    attachments = AttachmentSet()
    first = attachments.add(b"same bytes", "image/png")
    attachments.remove(first.local_id)
    second = attachments.add(b"same bytes", "image/png")

    assert second.local_id != first.local_id
    assert attachments.identities() == [second.local_id]


def test_reorder_moves_to_absolute_index() -> None:
    attachments = AttachmentSet.from_refs(["a", "b", "c", "d"])
    attachments.reorder("a", 2)
    assert attachments.identities() == ["b", "c", "a", "d"]

    attachments.reorder("d", 0)
    assert attachments.identities() == ["d", "b", "c", "a"]


def test_reorder_clamps_index() -> None:
    attachments = AttachmentSet.from_refs(["a", "b", "c"])
    attachments.reorder("a", 99)
    assert attachments.identities() == ["b", "c", "a"]
    attachments.reorder("a", -5)
    assert attachments.identities() == ["a", "b", "c"]


def test_reorder_unknown_or_same_position_is_noop() -> None:
    attachments = AttachmentSet.from_refs(["a", "b", "c"])
    attachments.reorder("zzz", 0)
    attachments.reorder("b", 1)
    assert attachments.identities() == ["a", "b", "c"]


@pytest.mark.parametrize("first,second", [(0, 3), (3, 0), (2, 2), (1, 4)])
def test_reorder_twice_equals_reorder_once(first: int, second: int) -> None:
    twice = AttachmentSet.from_refs(["a", "b", "c", "d", "e"])
    once = twice.copy()

    twice.reorder("c", first)
    twice.reorder("c", second)
    once.reorder("c", second)

    assert twice.identities() == once.identities()


def test_snapshot_is_detached_from_later_mutations() -> None:
    attachments = AttachmentSet.from_refs(["a", "b"])
    snap = attachments.snapshot()
    attachments.remove("a")

    assert [slot_identity(s) for s in snap] == ["a", "b"]
    assert attachments.identities() == ["b"]


def test_copy_is_independent() -> None:
    original = AttachmentSet.from_refs(["a", "b"])
    working = original.copy()
    working.add(b"x", "image/png")
    working.remove("a")

    assert original.identities() == ["a", "b"]


def test_slot_identity_rejects_non_slots() -> None:
    with pytest.raises(TypeError):
        slot_identity("a")  # type: ignore[arg-type]

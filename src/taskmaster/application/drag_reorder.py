"""Pointer-drag reordering of attachment slots."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Sequence

from loguru import logger

from taskmaster.domain.entities.attachment_set import AttachmentSet


@dataclass(frozen=True)
class SlotRect:
    """Rendered bounds of one slot cell, in display order."""

    left: float
    top: float
    width: float
    height: float

    @property
    def center(self) -> tuple[float, float]:
        return (self.left + self.width / 2, self.top + self.height / 2)


class DragReorderController:
    """
    Interpret a drag gesture over the rendered attachment grid.

    The cell nearest (by center distance) to the dragged item's center is
    the drop target; the move is applied to the set as soon as the target
    changes, so releasing has nothing left to do.
    """

    def __init__(self, attachments: AttachmentSet) -> None:
        self.attachments = attachments
        self._cells: list[SlotRect] = []
        self.active_identity: str | None = None

    @property
    def dragging(self) -> bool:
        return self.active_identity is not None

    def measure(self, rects: Sequence[SlotRect]) -> None:
        self._cells = list(rects)

    def grab(self, identity: str) -> bool:
        if self.attachments.index_of(identity) is None:
            return False
        self.active_identity = identity
        return True

    def hover(self, x: float, y: float) -> int | None:
        """Move the grabbed slot to the cell closest to (x, y).

        Returns the slot's new index, or None if nothing moved.
        """
        if self.active_identity is None or not self._cells:
            return None

        target = self._nearest_cell(x, y)
        before = self.attachments.index_of(self.active_identity)
        if before is None:
            # Slot removed mid-drag
            self.active_identity = None
            return None

        self.attachments.reorder(self.active_identity, target)
        after = self.attachments.index_of(self.active_identity)
        if after == before:
            return None
        logger.debug(f"Drag moved {self.active_identity} from {before} to {after}")
        return after

    def release(self) -> None:
        self.active_identity = None

    def _nearest_cell(self, x: float, y: float) -> int:
        best_index = 0
        best_distance = math.inf
        for i, rect in enumerate(self._cells):
            cx, cy = rect.center
            distance = math.hypot(cx - x, cy - y)
            if distance < best_distance:
                best_index, best_distance = i, distance
        return best_index

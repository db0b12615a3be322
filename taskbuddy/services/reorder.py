"""
Drag-and-drop handling for task columns.

A gesture starts on one task and ends over nothing, over a column drop zone,
or over another task. Dropping into a different column is a status change.
Dropping onto a task of the same column moves the dragged task to the target's
index and rewrites positions for the whole visible column.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple, TypeVar

from ..models import TaskStatus
from ..schemas.task import TaskRead

logger = logging.getLogger(__name__)

T = TypeVar("T")


class DropTargetKind(str, enum.Enum):
    COLUMN = "column"
    TASK = "task"


class DropOutcome(str, enum.Enum):
    DISCARDED = "discarded"
    UNCHANGED = "unchanged"
    STATUS_CHANGED = "status_changed"
    REORDERED = "reordered"


@dataclass(frozen=True)
class DropTarget:
    kind: DropTargetKind
    id: Optional[str] = None
    status: Optional[TaskStatus] = None


@dataclass(frozen=True)
class DragEvent:
    active_id: str
    over: Optional[DropTarget] = None


@dataclass(frozen=True)
class DropResult:
    outcome: DropOutcome
    task_id: Optional[str] = None
    status: Optional[str] = None
    order: Tuple[str, ...] = ()
    navigate_to: Optional[str] = None


def array_move(items: Sequence[T], old_index: int, new_index: int) -> List[T]:
    """Move one element from old_index to new_index; everything else shifts."""
    out = list(items)
    item = out.pop(old_index)
    out.insert(new_index, item)
    return out


def _find(tasks: Sequence[TaskRead], task_id: Optional[str]) -> Optional[TaskRead]:
    for t in tasks:
        if t.id == task_id:
            return t
    return None


class ReorderingEngine:
    """Gesture state machine bound to one TaskBoard."""

    def __init__(self, board) -> None:
        self._board = board
        self.active: Optional[TaskRead] = None

    def start(self, active_id: str) -> Optional[TaskRead]:
        """Snapshot the dragged task for the drag overlay."""
        self.active = self._board.get(active_id)
        return self.active

    def cancel(self) -> None:
        self.active = None

    def drop(self, event: DragEvent) -> DropResult:
        try:
            return self._drop(event)
        finally:
            self.active = None

    def _drop(self, event: DragEvent) -> DropResult:
        over = event.over
        if over is None:
            return DropResult(DropOutcome.DISCARDED)

        tasks = self._board.tasks
        moved = _find(tasks, event.active_id)
        if moved is None:
            logger.debug("Drop ignored: active task %s not in view", event.active_id)
            return DropResult(DropOutcome.DISCARDED)

        target: Optional[TaskRead] = None
        if DropTargetKind(over.kind) is DropTargetKind.COLUMN:
            if over.status is None:
                return DropResult(DropOutcome.DISCARDED, moved.id)
            new_status = TaskStatus(over.status).value
        else:
            target = _find(tasks, over.id)
            if target is None:
                return DropResult(DropOutcome.DISCARDED, moved.id)
            new_status = target.status

        if new_status != moved.status:
            change = self._board.update_status(moved.id, new_status)
            return DropResult(
                DropOutcome.STATUS_CHANGED,
                moved.id,
                new_status,
                navigate_to=change.navigate_to if change is not None else None,
            )

        if target is None:
            return DropResult(DropOutcome.UNCHANGED, moved.id, new_status)

        column = self._board.column(new_status)
        old_index = next(i for i, t in enumerate(column) if t.id == moved.id)
        new_index = next(i for i, t in enumerate(column) if t.id == target.id)
        if old_index == new_index:
            return DropResult(DropOutcome.UNCHANGED, moved.id, new_status)

        reordered = array_move(column, old_index, new_index)
        self._board.update_task_positions(reordered, new_status)
        self._board.fetch_tasks()
        return DropResult(
            DropOutcome.REORDERED,
            moved.id,
            new_status,
            order=tuple(t.id for t in reordered),
        )

"""
Live task updates.

Two producers change a view's task list: request/response mutations (local
patches) and the push channel (ChangeFeed). Both hand ChangeEvents to a
TaskProjection, which applies them one at a time and keeps, per row id, the
revision of the last change applied. Anything older is dropped, so the final
state depends on revisions, not on arrival order.
"""

from __future__ import annotations

import enum
import itertools
import logging
import threading
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional

from ..schemas.task import TaskRead

logger = logging.getLogger(__name__)


class ChangeKind(str, enum.Enum):
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


@dataclass(frozen=True)
class ChangeEvent:
    kind: ChangeKind
    user_id: str
    task_id: str
    revision: int
    task: Optional[TaskRead] = None

    def to_dict(self) -> dict:
        return {
            "eventType": self.kind.value,
            "revision": self.revision,
            "old": {"id": self.task_id},
            "new": self.task.model_dump(mode="json") if self.task is not None else None,
        }


class RevisionCounter:
    """Thread-safe, monotonically increasing revision source."""

    def __init__(self, start: int = 1) -> None:
        self._counter = itertools.count(start)
        self._current = start - 1
        self._lock = threading.Lock()

    def next(self) -> int:
        with self._lock:
            self._current = next(self._counter)
            return self._current

    @property
    def current(self) -> int:
        with self._lock:
            return self._current


Subscriber = Callable[[ChangeEvent], None]


class ChangeFeed:
    """In-process push channel for row changes on the tasks table."""

    def __init__(self, revisions: Optional[RevisionCounter] = None) -> None:
        self.revisions = revisions or RevisionCounter()
        self._subscribers: Dict[int, tuple] = {}
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    def subscribe(self, user_id: str, callback: Subscriber) -> Callable[[], None]:
        """Deliver the user's events to callback. Returns an unsubscribe function."""
        sub_id = next(self._ids)
        with self._lock:
            self._subscribers[sub_id] = (user_id, callback)
        logger.debug("ChangeFeed subscribe id=%s user=%s", sub_id, user_id)

        def unsubscribe() -> None:
            with self._lock:
                self._subscribers.pop(sub_id, None)

        return unsubscribe

    def publish(
        self,
        kind: ChangeKind,
        user_id: str,
        task_id: str,
        task: Optional[TaskRead] = None,
    ) -> ChangeEvent:
        event = ChangeEvent(
            kind=ChangeKind(kind),
            user_id=user_id,
            task_id=task_id,
            revision=self.revisions.next(),
            task=task,
        )
        with self._lock:
            targets = [cb for uid, cb in self._subscribers.values() if uid == user_id]
        for cb in targets:
            try:
                cb(event)
            except Exception:
                logger.exception("ChangeFeed subscriber failed event=%s task_id=%s", kind, task_id)
        return event

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)


class TaskProjection:
    """
    Local, ordered projection of a task list.

    - reset() replaces the contents after a fetch (reconciliation)
    - apply() merges one change, last writer wins per row id
    """

    def __init__(self) -> None:
        self._tasks: List[TaskRead] = []
        self._revisions: Dict[str, int] = {}
        self._floor = 0
        self._lock = threading.Lock()

    def reset(self, tasks: Iterable[TaskRead], revision: int) -> None:
        """
        Replace contents with freshly fetched rows.

        revision is the feed revision observed before the fetch started;
        later events still override the fetched rows.
        """
        with self._lock:
            self._tasks = list(tasks)
            self._floor = revision
            self._revisions = {t.id: revision for t in self._tasks}

    def apply(self, event: ChangeEvent) -> bool:
        """Apply one change. Returns False when it was stale and ignored."""
        with self._lock:
            last = self._revisions.get(event.task_id, self._floor)
            if event.revision <= last:
                logger.debug(
                    "Stale change dropped task_id=%s rev=%s last=%s",
                    event.task_id,
                    event.revision,
                    last,
                )
                return False
            self._revisions[event.task_id] = event.revision

            idx = self._index(event.task_id)
            if event.kind is ChangeKind.DELETE:
                if idx is not None:
                    del self._tasks[idx]
            elif event.task is not None:
                if idx is not None:
                    self._tasks[idx] = event.task
                elif event.kind is ChangeKind.INSERT:
                    self._tasks.append(event.task)
            return True

    def _index(self, task_id: str) -> Optional[int]:
        for i, t in enumerate(self._tasks):
            if t.id == task_id:
                return i
        return None

    def snapshot(self) -> List[TaskRead]:
        with self._lock:
            return list(self._tasks)

    def get(self, task_id: str) -> Optional[TaskRead]:
        with self._lock:
            idx = self._index(task_id)
            return self._tasks[idx] if idx is not None else None

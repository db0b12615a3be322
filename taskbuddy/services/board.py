"""
TaskBoard: the state behind one list or board view.

Holds the fetched task list (as a TaskProjection), the loading flag, the
active filters and the bulk selection. Mutations go through the services and
are mirrored locally with a revisioned patch; reorders reconcile by
re-fetching.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Callable, List, Optional, Set

from ..models import TaskStatus
from ..schemas.task import TaskRead
from .filters import ALL, TaskFilters, in_bucket
from .live import ChangeEvent, ChangeFeed, ChangeKind, RevisionCounter, TaskProjection
from .reorder import ReorderingEngine
from .task_mutation import StatusChange, TaskMutationService
from .task_query import TaskQueryService

logger = logging.getLogger(__name__)


class TaskBoard:
    def __init__(
        self,
        user_id: Optional[str],
        queries: TaskQueryService,
        mutations: TaskMutationService,
        feed: Optional[ChangeFeed] = None,
        filters: Optional[TaskFilters] = None,
        today: Optional[date] = None,
    ) -> None:
        self.user_id = user_id
        self.filters = filters or TaskFilters()
        self.today = today
        self.loading = True
        self.selection: Set[str] = set()

        self._queries = queries
        self._mutations = mutations
        self._feed = feed
        self._revisions = feed.revisions if feed is not None else RevisionCounter()
        self._projection = TaskProjection()
        self._unsubscribe: Optional[Callable[[], None]] = None

        self.drag = ReorderingEngine(self)

    # ---- view ----

    @property
    def tasks(self) -> List[TaskRead]:
        return self._projection.snapshot()

    def get(self, task_id: str) -> Optional[TaskRead]:
        return self._projection.get(task_id)

    def column(self, status: str) -> List[TaskRead]:
        status = TaskStatus(status).value
        return [t for t in self.tasks if t.status == status]

    def fetch_tasks(self, filters: Optional[TaskFilters] = None) -> List[TaskRead]:
        """
        Reload the list with the given (or current) filters.

        Failures are logged and leave an empty list; loading is always
        cleared. Without a user this is a no-op.
        """
        if filters is not None:
            self.filters = filters
        if not self.user_id:
            return self.tasks

        baseline = self._revisions.current
        f = self.filters
        try:
            rows = self._queries.fetch_tasks(
                self.user_id,
                search=f.search,
                category=f.category,
                due=f.due,
                sort_field=f.sort_field,
                sort_direction=f.sort_direction,
                today=self.today,
            )
            self._projection.reset([TaskRead.model_validate(r) for r in rows or []], baseline)
        except Exception:
            logger.exception("Error fetching tasks user=%s", self.user_id)
            self._projection.reset([], baseline)
        finally:
            self.loading = False
        return self.tasks

    # ---- live updates ----

    def attach(self) -> None:
        """Start applying pushed changes for this user."""
        if self._feed is None or self._unsubscribe is not None or not self.user_id:
            return
        self._unsubscribe = self._feed.subscribe(self.user_id, self.apply)

    def detach(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def _matches(self, task: TaskRead) -> bool:
        f = self.filters
        if f.search and f.search.lower() not in task.title.lower():
            return False
        if f.category and f.category != ALL and task.category != f.category:
            return False
        return in_bucket(f.due, task.due_date, task.status, self.today or date.today())

    def apply(self, event: ChangeEvent) -> bool:
        """Merge one pushed change; rows leaving the filter are dropped."""
        if event.task is not None and not self._matches(event.task):
            event = ChangeEvent(ChangeKind.DELETE, event.user_id, event.task_id, event.revision)
        return self._projection.apply(event)

    def _patch(self, kind: ChangeKind, task_id: str, task: Optional[TaskRead] = None) -> None:
        self.apply(ChangeEvent(kind, self.user_id or "", task_id, self._revisions.next(), task))

    # ---- mutations ----

    def delete_task(self, task_id: str) -> bool:
        try:
            deleted = self._mutations.delete_task(self.user_id, task_id)
        except Exception:
            logger.exception("Error deleting task id=%s", task_id)
            return False
        if deleted:
            self._patch(ChangeKind.DELETE, task_id)
        return deleted

    def update_status(self, task_id: str, status: str) -> Optional[StatusChange]:
        """Returns the change (with its navigation hint) or None on failure."""
        try:
            change = self._mutations.update_status(self.user_id, task_id, TaskStatus(status))
        except Exception:
            logger.exception("Error updating task status id=%s", task_id)
            return None
        self._patch(ChangeKind.UPDATE, task_id, change.task)
        return change

    def update_task_positions(self, ordered: List[TaskRead], status: str) -> bool:
        if not self.user_id:
            logger.error("User is not authenticated.")
            return False
        try:
            self._mutations.update_positions(self.user_id, [t.id for t in ordered], TaskStatus(status))
        except Exception:
            logger.exception("Error updating task positions status=%s", status)
            return False
        return True

    # ---- selection / bulk ----

    def select(self, task_id: str) -> None:
        self.selection.add(task_id)

    def deselect(self, task_id: str) -> None:
        self.selection.discard(task_id)

    def bulk_update_status(self, status: str) -> None:
        for task_id in list(self.selection):
            self.update_status(task_id, status)
        self.selection.clear()

    def bulk_delete(self) -> None:
        for task_id in list(self.selection):
            self.delete_task(task_id)
        self.selection.clear()

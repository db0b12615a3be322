"""Read side: filtered task lists, task detail, attachments and activity."""

from __future__ import annotations

import logging
from datetime import date
from typing import List, Optional

from sqlmodel import Session, col, select

from ..config import ACTIVITY_LOG_LIMIT
from ..models import ActivityLog, Task, TaskAttachment, TaskStatus
from ..storage import ATTACHMENTS_BUCKET, ObjectStorage
from .filters import (
    ALL,
    DueDateBucket,
    SortDirection,
    SortField,
    due_date_range,
    sort_tasks,
)

logger = logging.getLogger(__name__)


def attachment_download_url(path: str) -> str:
    return f"/api/storage/{ATTACHMENTS_BUCKET}/{path}"


class TaskQueryService:
    def __init__(self, session: Session, storage: Optional[ObjectStorage] = None) -> None:
        self._session = session
        self._storage = storage

    def fetch_tasks(
        self,
        user_id: Optional[str],
        search: str = "",
        category: str = ALL,
        due: DueDateBucket = DueDateBucket.ALL,
        sort_field: Optional[SortField] = SortField.DUE_DATE,
        sort_direction: SortDirection = SortDirection.ASC,
        today: Optional[date] = None,
    ) -> Optional[List[Task]]:
        """
        Return the user's tasks matching every given filter.

        Rows come back in position order and are then stably sorted by
        sort_field. Returns None (and does nothing) when user_id is empty.
        Store errors propagate.
        """
        if not user_id:
            return None

        today = today or date.today()
        query = select(Task).where(Task.user_id == user_id)

        if search:
            query = query.where(col(Task.title).ilike(f"%{search}%"))
        if category and category != ALL:
            query = query.where(Task.category == category)

        bounds = due_date_range(due, today)
        if bounds is not None:
            low, high = bounds
            if low is not None:
                query = query.where(col(Task.due_date) >= low)
            if high is not None:
                query = query.where(col(Task.due_date) <= high)
            if DueDateBucket(due) is DueDateBucket.OVERDUE:
                query = query.where(Task.status != TaskStatus.COMPLETED.value)

        query = query.order_by(col(Task.position).asc())
        rows = self._session.exec(query).all()
        logger.debug(
            "fetch_tasks user=%s search=%r category=%s due=%s -> %d rows",
            user_id,
            search,
            category,
            due,
            len(rows),
        )
        return sort_tasks(rows, sort_field, sort_direction)

    def list_all_tasks(self, user_id: str) -> List[Task]:
        """Every task of the user ordered by due date."""
        query = (
            select(Task)
            .where(Task.user_id == user_id)
            .order_by(col(Task.due_date).asc())
        )
        return list(self._session.exec(query).all())

    def get_task(self, user_id: str, task_id: str) -> Optional[Task]:
        task = self._session.get(Task, task_id)
        if task is None or task.user_id != user_id:
            return None
        return task

    def list_attachments(self, user_id: str, task_id: str) -> List[dict]:
        """
        Attachments of a task, each with a download_url.

        download_url is None when the blob cannot be read; the failure is only
        logged.
        """
        if self.get_task(user_id, task_id) is None:
            return []

        rows = self._session.exec(
            select(TaskAttachment).where(TaskAttachment.task_id == task_id)
        ).all()

        out: List[dict] = []
        for row in rows:
            url: Optional[str] = attachment_download_url(row.file_url)
            if self._storage is not None and not self._storage.exists(ATTACHMENTS_BUCKET, row.file_url):
                logger.error("Error downloading attachment: %s missing", row.file_url)
                url = None
            out.append({"id": row.id, "file_url": row.file_url, "download_url": url})
        return out

    def activity_log(self, user_id: str, task_id: str, limit: int = ACTIVITY_LOG_LIMIT) -> List[ActivityLog]:
        """Newest-first activity of a task; errors yield an empty list."""
        try:
            if self.get_task(user_id, task_id) is None:
                return []
            query = (
                select(ActivityLog)
                .where(ActivityLog.task_id == task_id)
                .order_by(col(ActivityLog.created_at).desc())
                .limit(limit)
            )
            return list(self._session.exec(query).all())
        except Exception:
            logger.exception("Error fetching activity log task_id=%s", task_id)
            return []

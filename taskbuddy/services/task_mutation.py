"""Write side: create/update, delete, status changes and position rewrites."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional, Tuple

from sqlmodel import Session, col, select

from ..config import HOME_PATH
from ..exceptions import TaskNotFoundError
from ..models import Task, TaskAttachment, TaskCategory, TaskStatus
from ..schemas.task import TaskCreate, TaskRead
from ..storage import ATTACHMENTS_BUCKET, ObjectStorage
from .live import ChangeFeed, ChangeKind

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Attachment:
    filename: str
    content: bytes

    @property
    def extension(self) -> str:
        return self.filename.rsplit(".", 1)[-1]


@dataclass(frozen=True)
class StatusChange:
    """Result of a status update. navigate_to is a hint; nothing navigates here."""
    task: TaskRead
    navigate_to: Optional[str] = None


class TaskMutationService:
    def __init__(
        self,
        session: Session,
        storage: Optional[ObjectStorage] = None,
        feed: Optional[ChangeFeed] = None,
        clock: Callable[[], float] = time.time,
        home_path: Optional[str] = HOME_PATH,
    ) -> None:
        self._session = session
        self._storage = storage
        self._feed = feed
        self._clock = clock
        self._home_path = home_path

    # ---- helpers ----

    def _owned(self, user_id: str, task_id: str) -> Task:
        task = self._session.get(Task, task_id)
        if task is None or task.user_id != user_id:
            raise TaskNotFoundError(task_id)
        return task

    def _publish(self, kind: ChangeKind, task: Task) -> None:
        if self._feed is None:
            return
        snapshot = TaskRead.model_validate(task) if kind is not ChangeKind.DELETE else None
        self._feed.publish(kind, task.user_id, task.id, snapshot)

    def next_position(self, user_id: str, status: str, exclude_id: Optional[str] = None) -> int:
        """
        One past the highest position in the user's status column, 0 if empty.

        Read only; the caller's later write is not atomic with this lookup.
        """
        query = (
            select(Task.position)
            .where(Task.user_id == user_id, Task.status == TaskStatus(status).value)
            .order_by(col(Task.position).desc())
            .limit(1)
        )
        if exclude_id is not None:
            query = query.where(Task.id != exclude_id)
        top = self._session.exec(query).first()
        return 0 if top is None else top + 1

    # ---- contracts ----

    def save_task(
        self,
        user_id: str,
        data: TaskCreate,
        task_id: Optional[str] = None,
        attachment: Optional[Attachment] = None,
    ) -> str:
        """
        Create (no task_id) or update a task, then attach a file if given.

        The task row is committed before the upload; an upload or link
        failure raises without undoing it.
        """
        status = TaskStatus(data.status).value
        position = data.position
        if position is None:
            position = self.next_position(user_id, status, exclude_id=task_id)

        fields = dict(
            title=data.title,
            description=data.description or "",
            category=TaskCategory(data.category).value,
            due_date=data.due_date,
            status=status,
            position=position,
        )

        try:
            if task_id:
                task = self._owned(user_id, task_id)
                for k, v in fields.items():
                    setattr(task, k, v)
                kind = ChangeKind.UPDATE
            else:
                task = Task(user_id=user_id, **fields)
                self._session.add(task)
                kind = ChangeKind.INSERT
            self._session.commit()
            self._session.refresh(task)
        except Exception:
            self._session.rollback()
            raise

        saved_id = task.id
        logger.info(
            "Task %s id=%s user=%s status=%s position=%s",
            "created" if kind is ChangeKind.INSERT else "updated",
            saved_id,
            user_id,
            status,
            position,
        )

        if attachment is not None:
            self._attach(user_id, saved_id, attachment)

        self._publish(kind, task)
        return saved_id

    def _attach(self, user_id: str, task_id: str, attachment: Attachment) -> TaskAttachment:
        if self._storage is None:
            raise RuntimeError("Attachment given but no object storage configured")

        millis = int(self._clock() * 1000)
        path = f"{user_id}/{task_id}-{millis}.{attachment.extension}"
        self._storage.upload(ATTACHMENTS_BUCKET, path, attachment.content)

        link = TaskAttachment(task_id=task_id, file_url=path)
        try:
            self._session.add(link)
            self._session.commit()
            self._session.refresh(link)
        except Exception:
            self._session.rollback()
            raise
        logger.info("Attachment linked task_id=%s path=%s", task_id, path)
        return link

    def delete_task(self, user_id: str, task_id: str) -> bool:
        """Delete one task. Tags and attachment rows go with it; blobs stay."""
        task = self._session.get(Task, task_id)
        if task is None or task.user_id != user_id:
            return False
        try:
            self._session.delete(task)
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise
        logger.info("Task deleted id=%s user=%s", task_id, user_id)
        if self._feed is not None:
            self._feed.publish(ChangeKind.DELETE, user_id, task_id)
        return True

    def update_status(self, user_id: str, task_id: str, status: TaskStatus) -> StatusChange:
        """Change only the status field; position is left as is."""
        task = self._owned(user_id, task_id)
        task.status = TaskStatus(status).value
        try:
            self._session.commit()
            self._session.refresh(task)
        except Exception:
            self._session.rollback()
            raise
        logger.info("Task status id=%s -> %s", task_id, task.status)
        self._publish(ChangeKind.UPDATE, task)
        return StatusChange(task=TaskRead.model_validate(task), navigate_to=self._home_path)

    def update_positions(self, user_id: str, ordered_ids: Iterable[str], status: TaskStatus) -> int:
        """
        Rewrite a column: position = index, status = status for each id.

        Ids not owned by the user are skipped. Returns rows written.
        """
        status_value = TaskStatus(status).value
        touched: List[Task] = []
        for index, task_id in enumerate(ordered_ids):
            task = self._session.get(Task, task_id)
            if task is None or task.user_id != user_id:
                logger.warning("update_positions: skipping unknown task_id=%s", task_id)
                continue
            task.position = index
            task.status = status_value
            touched.append(task)

        try:
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise

        for task in touched:
            self._session.refresh(task)
            self._publish(ChangeKind.UPDATE, task)
        logger.info("Positions rewritten user=%s status=%s rows=%d", user_id, status_value, len(touched))
        return len(touched)

    def bulk_update_status(
        self, user_id: str, task_ids: Iterable[str], status: TaskStatus
    ) -> Tuple[List[str], List[str]]:
        """Sequential update_status per id. Returns (succeeded, failed)."""
        ok: List[str] = []
        failed: List[str] = []
        for task_id in task_ids:
            try:
                self.update_status(user_id, task_id, status)
                ok.append(task_id)
            except Exception:
                logger.exception("Error updating task status id=%s", task_id)
                failed.append(task_id)
        return ok, failed

    def bulk_delete(self, user_id: str, task_ids: Iterable[str]) -> Tuple[List[str], List[str]]:
        """Sequential delete_task per id. Returns (succeeded, failed)."""
        ok: List[str] = []
        failed: List[str] = []
        for task_id in task_ids:
            try:
                if self.delete_task(user_id, task_id):
                    ok.append(task_id)
                else:
                    failed.append(task_id)
            except Exception:
                logger.exception("Error deleting task id=%s", task_id)
                failed.append(task_id)
        return ok, failed

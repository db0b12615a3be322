from sqlmodel import SQLModel, Field, Relationship
from datetime import date, datetime, timezone
from typing import List, Optional
from uuid import uuid4
import enum


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TaskStatus(str, enum.Enum):
    TODO = "To Do"
    IN_PROGRESS = "In Progress"
    COMPLETED = "Completed"


class TaskCategory(str, enum.Enum):
    WORK = "Work"
    PERSONAL = "Personal"


_CASCADE = {"cascade": "all, delete-orphan"}


class Task(SQLModel, table=True):
    """A user's task.

    status and category are stored as their display strings. position orders
    the task inside its (user_id, status) column.
    """
    __tablename__ = "tasks"

    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True)
    user_id: str = Field(index=True)
    title: str
    description: str = Field(default="")
    category: str = Field(default=TaskCategory.WORK.value)
    due_date: Optional[date] = Field(default=None, index=True)
    status: str = Field(default=TaskStatus.TODO.value, index=True)
    position: int = Field(default=0)
    created_at: datetime = Field(default_factory=_utcnow)

    tags: List["TaskTag"] = Relationship(back_populates="task", sa_relationship_kwargs=_CASCADE)
    attachments: List["TaskAttachment"] = Relationship(
        back_populates="task", sa_relationship_kwargs=_CASCADE
    )
    activity: List["ActivityLog"] = Relationship(
        back_populates="task", sa_relationship_kwargs=_CASCADE
    )


class TaskTag(SQLModel, table=True):
    __tablename__ = "task_tags"

    id: Optional[int] = Field(default=None, primary_key=True)
    task_id: str = Field(index=True, foreign_key="tasks.id")
    tag: str

    task: Optional[Task] = Relationship(back_populates="tags")


class TaskAttachment(SQLModel, table=True):
    """Link between a task and a blob in the task_attachments bucket."""
    __tablename__ = "task_attachments"

    id: Optional[int] = Field(default=None, primary_key=True)
    task_id: str = Field(index=True, foreign_key="tasks.id")
    file_url: str

    task: Optional[Task] = Relationship(back_populates="attachments")


class ActivityLog(SQLModel, table=True):
    """Append-only history entry for a task. Never written by this service."""
    __tablename__ = "activity_logs"

    id: Optional[int] = Field(default=None, primary_key=True)
    task_id: str = Field(index=True, foreign_key="tasks.id")
    action: str
    description: str = Field(default="")
    created_at: datetime = Field(default_factory=_utcnow)

    task: Optional[Task] = Relationship(back_populates="activity")

from pydantic import BaseModel, Field
from datetime import date, datetime
from typing import List, Literal, Optional

from ..config import DESCRIPTION_MAX_LENGTH
from ..models import TaskCategory, TaskStatus
from ..services.filters import DueDateBucket, SortDirection, SortField


class TaskBase(BaseModel):
    """Base task schema with common fields."""
    title: str = Field(min_length=1)
    description: str = Field(default="", max_length=DESCRIPTION_MAX_LENGTH)
    category: TaskCategory = TaskCategory.WORK
    due_date: Optional[date] = None
    status: TaskStatus = TaskStatus.TODO


class TaskCreate(TaskBase):
    """Schema for creating or fully re-saving a task.

    position is assigned from the status column when left unset.
    """
    position: Optional[int] = Field(default=None, ge=0)


class TaskTagRead(BaseModel):
    tag: str

    class Config:
        from_attributes = True


class TaskAttachmentRead(BaseModel):
    id: int
    file_url: str

    class Config:
        from_attributes = True


class AttachmentDownload(TaskAttachmentRead):
    """Attachment with a URL the client can fetch the blob from."""
    download_url: Optional[str] = None


class TaskRead(BaseModel):
    """Complete task schema with tags and attachments."""
    id: str
    user_id: str
    title: str
    description: str = ""
    category: str
    due_date: Optional[date] = None
    status: str
    position: int
    created_at: Optional[datetime] = None
    tags: List[TaskTagRead] = []
    attachments: List[TaskAttachmentRead] = []

    class Config:
        from_attributes = True


class ActivityLogRead(BaseModel):
    id: int
    action: str
    description: str
    created_at: datetime

    class Config:
        from_attributes = True


class TaskSaved(BaseModel):
    id: str
    created: bool


class StatusUpdate(BaseModel):
    status: TaskStatus


class StatusChangeResponse(BaseModel):
    task: TaskRead
    navigate_to: Optional[str] = None


class BulkStatusUpdate(BaseModel):
    task_ids: List[str]
    status: TaskStatus


class BulkDelete(BaseModel):
    task_ids: List[str]


class BulkResult(BaseModel):
    succeeded: List[str]
    failed: List[str]


class TaskQuery(BaseModel):
    """Filter and sort selection of a task view."""
    search: str = ""
    category: str = "All"
    due: DueDateBucket = DueDateBucket.ALL
    sort: Optional[SortField] = SortField.DUE_DATE
    order: SortDirection = SortDirection.ASC


class DropTargetIn(BaseModel):
    kind: Literal["column", "task"]
    id: Optional[str] = None
    status: Optional[TaskStatus] = None


class ReorderRequest(BaseModel):
    active_id: str
    over: Optional[DropTargetIn] = None
    view: TaskQuery = TaskQuery()


class ReorderResponse(BaseModel):
    outcome: str
    task_id: Optional[str] = None
    status: Optional[str] = None
    order: List[str] = []
    navigate_to: Optional[str] = None
    tasks: List[TaskRead] = []

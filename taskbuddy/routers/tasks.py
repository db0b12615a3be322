import logging
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from pydantic import ValidationError

from ..dependencies import get_task_board, get_task_mutations, get_task_queries
from ..exceptions import TaskNotFoundError
from ..schemas.auth import SessionUser
from ..schemas.task import (
    ActivityLogRead,
    AttachmentDownload,
    BulkDelete,
    BulkResult,
    BulkStatusUpdate,
    ReorderRequest,
    ReorderResponse,
    StatusChangeResponse,
    StatusUpdate,
    TaskCreate,
    TaskQuery,
    TaskRead,
    TaskSaved,
)
from ..security import get_current_user
from ..services.board import TaskBoard
from ..services.filters import DueDateBucket, SortDirection, SortField, TaskFilters
from ..services.reorder import DragEvent, DropTarget, DropTargetKind
from ..services.task_mutation import Attachment, TaskMutationService
from ..services.task_query import TaskQueryService

logger = logging.getLogger(__name__)

router = APIRouter()


def _filters(query: TaskQuery) -> TaskFilters:
    return TaskFilters(
        search=query.search,
        category=query.category,
        due=query.due,
        sort_field=query.sort,
        sort_direction=query.order,
    )


def _task_form(
    title: str = Form(...),
    description: str = Form(""),
    category: str = Form("Work"),
    due_date: Optional[date] = Form(None),
    status: str = Form("To Do"),
    position: Optional[int] = Form(None),
) -> TaskCreate:
    try:
        return TaskCreate(
            title=title,
            description=description,
            category=category,
            due_date=due_date,
            status=status,
            position=position,
        )
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=e.errors(include_url=False))


def _read_attachment(file: Optional[UploadFile]) -> Optional[Attachment]:
    if file is None or not file.filename:
        return None
    return Attachment(filename=file.filename, content=file.file.read())


@router.get("/tasks", response_model=List[TaskRead])
def list_tasks(
    search: str = "",
    category: str = "All",
    due: DueDateBucket = DueDateBucket.ALL,
    sort: Optional[SortField] = SortField.DUE_DATE,
    order: SortDirection = SortDirection.ASC,
    board: TaskBoard = Depends(get_task_board),
):
    """Filtered, sorted task list of the current user."""
    query = TaskQuery(search=search, category=category, due=due, sort=sort, order=order)
    return board.fetch_tasks(_filters(query))


@router.get("/tasks/all", response_model=List[TaskRead])
def list_all_tasks(
    current_user: SessionUser = Depends(get_current_user),
    queries: TaskQueryService = Depends(get_task_queries),
):
    try:
        return queries.list_all_tasks(current_user.id)
    except Exception:
        logger.exception("Error fetching tasks user=%s", current_user.id)
        return []


@router.post("/tasks", response_model=TaskSaved, status_code=status.HTTP_201_CREATED)
def create_task(
    data: TaskCreate = Depends(_task_form),
    file: Optional[UploadFile] = File(None),
    current_user: SessionUser = Depends(get_current_user),
    mutations: TaskMutationService = Depends(get_task_mutations),
):
    """Create a task, optionally with one attachment."""
    attachment = _read_attachment(file)
    try:
        task_id = mutations.save_task(current_user.id, data, attachment=attachment)
    except Exception:
        logger.exception("Error saving task user=%s", current_user.id)
        raise HTTPException(status_code=500, detail="There was an issue saving the task. Please try again.")
    return TaskSaved(id=task_id, created=True)


@router.post("/tasks/bulk/status", response_model=BulkResult)
def bulk_update_status(
    payload: BulkStatusUpdate,
    current_user: SessionUser = Depends(get_current_user),
    mutations: TaskMutationService = Depends(get_task_mutations),
):
    ok, failed = mutations.bulk_update_status(current_user.id, payload.task_ids, payload.status)
    return BulkResult(succeeded=ok, failed=failed)


@router.post("/tasks/bulk/delete", response_model=BulkResult)
def bulk_delete(
    payload: BulkDelete,
    current_user: SessionUser = Depends(get_current_user),
    mutations: TaskMutationService = Depends(get_task_mutations),
):
    ok, failed = mutations.bulk_delete(current_user.id, payload.task_ids)
    return BulkResult(succeeded=ok, failed=failed)


@router.post("/tasks/reorder", response_model=ReorderResponse)
def reorder_tasks(
    payload: ReorderRequest,
    board: TaskBoard = Depends(get_task_board),
):
    """
    Apply a drag-and-drop gesture against the given view.

    The view (filters and sort) must match what the client showed, since the
    drop index is resolved inside that view.
    """
    board.fetch_tasks(_filters(payload.view))
    over = None
    if payload.over is not None:
        over = DropTarget(
            kind=DropTargetKind(payload.over.kind),
            id=payload.over.id,
            status=payload.over.status,
        )
    board.drag.start(payload.active_id)
    result = board.drag.drop(DragEvent(active_id=payload.active_id, over=over))
    return ReorderResponse(
        outcome=result.outcome.value,
        task_id=result.task_id,
        status=result.status,
        order=list(result.order),
        navigate_to=result.navigate_to,
        tasks=board.tasks,
    )


@router.get("/tasks/{task_id}", response_model=TaskRead)
def get_task(
    task_id: str,
    current_user: SessionUser = Depends(get_current_user),
    queries: TaskQueryService = Depends(get_task_queries),
):
    task = queries.get_task(current_user.id, task_id)
    if not task:
        raise HTTPException(status_code=404, detail="Task not found")
    return task


@router.put("/tasks/{task_id}", response_model=TaskSaved)
def update_task(
    task_id: str,
    data: TaskCreate = Depends(_task_form),
    file: Optional[UploadFile] = File(None),
    current_user: SessionUser = Depends(get_current_user),
    mutations: TaskMutationService = Depends(get_task_mutations),
):
    attachment = _read_attachment(file)
    try:
        saved_id = mutations.save_task(current_user.id, data, task_id=task_id, attachment=attachment)
    except TaskNotFoundError:
        raise HTTPException(status_code=404, detail="Task not found")
    except Exception:
        logger.exception("Error saving task id=%s", task_id)
        raise HTTPException(status_code=500, detail="There was an issue saving the task. Please try again.")
    return TaskSaved(id=saved_id, created=False)


@router.delete("/tasks/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_task(
    task_id: str,
    current_user: SessionUser = Depends(get_current_user),
    mutations: TaskMutationService = Depends(get_task_mutations),
):
    if not mutations.delete_task(current_user.id, task_id):
        raise HTTPException(status_code=404, detail="Task not found")


@router.patch("/tasks/{task_id}/status", response_model=StatusChangeResponse)
def update_task_status(
    task_id: str,
    payload: StatusUpdate,
    current_user: SessionUser = Depends(get_current_user),
    mutations: TaskMutationService = Depends(get_task_mutations),
):
    """Change the status; navigate_to tells the client where to go next."""
    try:
        change = mutations.update_status(current_user.id, task_id, payload.status)
    except TaskNotFoundError:
        raise HTTPException(status_code=404, detail="Task not found")
    return StatusChangeResponse(task=change.task, navigate_to=change.navigate_to)


@router.get("/tasks/{task_id}/attachments", response_model=List[AttachmentDownload])
def list_task_attachments(
    task_id: str,
    current_user: SessionUser = Depends(get_current_user),
    queries: TaskQueryService = Depends(get_task_queries),
):
    if not queries.get_task(current_user.id, task_id):
        raise HTTPException(status_code=404, detail="Task not found")
    return queries.list_attachments(current_user.id, task_id)


@router.get("/tasks/{task_id}/activity", response_model=List[ActivityLogRead])
def get_activity_log(
    task_id: str,
    current_user: SessionUser = Depends(get_current_user),
    queries: TaskQueryService = Depends(get_task_queries),
):
    """Ten most recent activity entries, newest first."""
    return queries.activity_log(current_user.id, task_id)

"""Due-date buckets and the client-side sort applied after retrieval."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any, Iterable, List, Optional, Tuple

from ..models import TaskStatus

ALL = "All"


class DueDateBucket(str, enum.Enum):
    ALL = "All"
    TODAY = "Today"
    TOMORROW = "Tomorrow"
    THIS_WEEK = "This Week"
    OVERDUE = "Overdue"


class SortField(str, enum.Enum):
    TITLE = "title"
    DUE_DATE = "due_date"
    STATUS = "status"
    CATEGORY = "category"
    POSITION = "position"


class SortDirection(str, enum.Enum):
    ASC = "asc"
    DESC = "desc"


@dataclass(frozen=True)
class TaskFilters:
    search: str = ""
    category: str = ALL
    due: DueDateBucket = DueDateBucket.ALL
    sort_field: Optional[SortField] = SortField.DUE_DATE
    sort_direction: SortDirection = SortDirection.ASC


def start_of_week(today: date) -> date:
    """Sunday on or before today."""
    return today - timedelta(days=(today.weekday() + 1) % 7)


def due_date_range(bucket: DueDateBucket, today: date) -> Optional[Tuple[Optional[date], Optional[date]]]:
    """
    Inclusive (low, high) bounds for a bucket, or None for "All".

    Overdue is (None, today - 1); the caller also excludes Completed tasks.
    """
    bucket = DueDateBucket(bucket)
    if bucket is DueDateBucket.TODAY:
        return today, today
    if bucket is DueDateBucket.TOMORROW:
        tomorrow = today + timedelta(days=1)
        return tomorrow, tomorrow
    if bucket is DueDateBucket.THIS_WEEK:
        start = start_of_week(today)
        return start, start + timedelta(days=6)
    if bucket is DueDateBucket.OVERDUE:
        return None, today - timedelta(days=1)
    return None


def in_bucket(bucket: DueDateBucket, due_date: Optional[date], status: str, today: date) -> bool:
    """In-memory counterpart of the query filter, used for pushed rows."""
    bounds = due_date_range(bucket, today)
    if bounds is None:
        return True
    if due_date is None:
        return False
    low, high = bounds
    if low is not None and due_date < low:
        return False
    if high is not None and due_date > high:
        return False
    if DueDateBucket(bucket) is DueDateBucket.OVERDUE and status == TaskStatus.COMPLETED.value:
        return False
    return True


def _sort_key(field: SortField, task: Any):
    """
    Sort key for one task.

    A missing due date is not read as the epoch: undated tasks sort after
    every dated task in ascending order and before them in descending order.
    """
    value = getattr(task, field.value, None)
    if field is SortField.DUE_DATE:
        return (value is None, value.toordinal() if value is not None else 0)
    if field is SortField.POSITION:
        return value if value is not None else 0
    if isinstance(value, enum.Enum):
        value = value.value
    return "" if value is None else str(value)


def sort_tasks(
    tasks: Iterable[Any],
    field: Optional[SortField],
    direction: SortDirection = SortDirection.ASC,
) -> List[Any]:
    """Stable sort by one field; equal keys keep their incoming order."""
    items = list(tasks)
    if field is None:
        return items
    field = SortField(field)
    reverse = SortDirection(direction) is SortDirection.DESC
    return sorted(items, key=lambda t: _sort_key(field, t), reverse=reverse)

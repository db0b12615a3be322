from .task import ActivityLog, Task, TaskAttachment, TaskCategory, TaskStatus, TaskTag
from .profile import Profile

# Export all models for easy importing
__all__ = [
    "ActivityLog",
    "Profile",
    "Task",
    "TaskAttachment",
    "TaskCategory",
    "TaskStatus",
    "TaskTag",
]

class TaskBuddyError(Exception):
    """Base class for service-level failures."""


class TaskNotFoundError(TaskBuddyError, LookupError):
    def __init__(self, task_id: str):
        super().__init__(f"Task {task_id} not found")
        self.task_id = task_id


class StorageError(TaskBuddyError):
    """Upload or download against object storage failed."""


class IdentityError(TaskBuddyError):
    """The identity provider rejected or failed a code exchange."""


class NotOwnerError(TaskBuddyError, PermissionError):
    """A stored object was referenced by someone other than its owner."""

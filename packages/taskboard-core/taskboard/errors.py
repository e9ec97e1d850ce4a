"""
Error types for Taskboard.

Validation and not-found errors are raised to the caller. Backend errors are
caught by the task service, rolled back, and reported as SyncFailure results.
"""

from typing import Dict, List, Optional


class TaskboardError(Exception):
    """Base class for all Taskboard errors."""


class ValidationError(TaskboardError):
    """
    Task input failed one or more field constraints.

    Attributes:
        errors: Mapping of field name to a human-readable message
    """

    def __init__(self, errors: Dict[str, str]):
        self.errors = dict(errors)
        details = "; ".join(f"{name}: {msg}" for name, msg in self.errors.items())
        super().__init__(f"Invalid task data ({details})")

    @property
    def fields(self) -> List[str]:
        """Names of the offending fields, in the order they were checked."""
        return list(self.errors)


class NotFoundError(TaskboardError):
    """No task exists with the given identifier."""

    def __init__(self, task_id: str):
        self.task_id = task_id
        super().__init__(f"Task not found: {task_id}")


class DuplicateTaskError(TaskboardError):
    """A task with the same identifier is already in the store."""

    def __init__(self, task_id: str):
        self.task_id = task_id
        super().__init__(f"Task already exists: {task_id}")


class BackendError(TaskboardError):
    """The persistence backend could not complete a request."""


class SyncFailure(TaskboardError):
    """
    A backend call failed after a local optimistic change was applied.

    The local change has already been rolled back when this is reported.
    """

    def __init__(self, operation: str, task_id: str, cause: Optional[BaseException] = None):
        self.operation = operation
        self.task_id = task_id
        self.cause = cause
        message = f"Could not {operation} task {task_id}"
        if cause is not None:
            message += f": {cause}"
        super().__init__(message)

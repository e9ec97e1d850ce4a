"""
Task Service for Taskboard.

Create, update, soft-delete and status-cycle operations over the local task
store, each synced to a backend with an optimistic update: the change is
applied and broadcast locally first, then sent to the backend, and undone
if the backend call fails.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from taskboard.backends.interface import TaskBackend
from taskboard.errors import BackendError, NotFoundError, SyncFailure, ValidationError
from taskboard.models.requests import (
    MAX_IMAGE_BYTES,
    TaskFormData,
    UpdateTaskRequest,
    check_color,
    check_image,
)
from taskboard.models.task import (
    STATUS_COMPLETED,
    STATUS_IN_PROGRESS,
    TASK_PRIORITIES,
    TASK_STATUSES,
    Task,
    next_status,
    parse_date,
)
from taskboard.store import TaskStore

logger = logging.getLogger(__name__)

# Fields callers may change through update()
EDITABLE_FIELDS = (
    "title", "description", "due_date", "priority", "status",
    "tags", "background_color", "image",
)


@dataclass
class SyncResult:
    """
    Outcome of a mutation.

    Attributes:
        ok: True if the backend accepted the change
        task: The task as it now stands in the local store
        error: The failure, when the change was rolled back
    """

    ok: bool
    task: Optional[Task] = None
    error: Optional[SyncFailure] = None

    def unwrap(self) -> Optional[Task]:
        """Return the task, or raise the sync failure."""
        if self.error is not None:
            raise self.error
        return self.task


class TaskService:
    """
    Service for managing tasks.

    All writes go through the TaskStore, so subscribers see every change
    (and every rollback) as a new snapshot.
    """

    def __init__(
        self,
        store: Optional[TaskStore] = None,
        backend: Optional[TaskBackend] = None,
        max_image_bytes: int = MAX_IMAGE_BYTES,
    ):
        """
        Initialize task service.

        Args:
            store: TaskStore to mutate. A fresh empty store if not provided.
            backend: Optional TaskBackend. If not provided, uses the configured backend.
            max_image_bytes: Upper bound for data URL card images
        """
        self.store = store if store is not None else TaskStore()
        self._backend = backend
        self.max_image_bytes = max_image_bytes

    @property
    def backend(self) -> TaskBackend:
        """Get the task backend."""
        if self._backend is None:
            from taskboard.backends import get_backend
            self._backend = get_backend()
        return self._backend

    async def load(self) -> int:
        """
        Replace the store contents with the backend's tasks.

        Returns:
            Number of tasks loaded
        """
        tasks = await self.backend.list_tasks()
        self.store.load(tasks)
        logger.info(f"Loaded {len(tasks)} tasks from {self.backend.name} backend")
        return len(tasks)

    def get(self, task_id: str) -> Task:
        """
        Get a task by ID.

        Raises:
            NotFoundError: if no such task exists
        """
        task = self.store.get(task_id)
        if task is None:
            raise NotFoundError(task_id)
        return task

    async def create(self, form: TaskFormData) -> SyncResult:
        """
        Create a new task from form input.

        The task is inserted locally before the backend is called and
        discarded again if the backend rejects it.

        Args:
            form: Submitted form data

        Returns:
            SyncResult with the created task (status Not Started)

        Raises:
            ValidationError: naming every invalid field; nothing is inserted
        """
        request = form.validate(max_image_bytes=self.max_image_bytes)
        request.created_at = self.store.now()
        task = self.store.insert(request.to_task())

        try:
            await self.backend.create_task(request)
        except BackendError as e:
            self.store.discard(task.id)
            return self._failed("create", task.id, e)

        logger.info(f"Created task: {task.id} - {task.title}")
        return SyncResult(ok=True, task=task)

    async def update(self, task_id: str, **fields) -> SyncResult:
        """
        Update a task.

        Args:
            task_id: Task ID
            **fields: Any of title, description, due_date, priority, status,
                tags, background_color, image

        Returns:
            SyncResult with the updated task, or the restored one on failure

        Raises:
            NotFoundError: if no such task exists
            ValidationError: for unknown fields or invalid values
        """
        previous = self.get(task_id)
        changes = self._clean_changes(fields)
        if not changes:
            return SyncResult(ok=True, task=previous)

        if "status" in changes:
            changes.update(self._completion_changes(previous, changes["status"]))

        return await self._apply(previous, changes, "update")

    async def delete(self, task_id: str) -> SyncResult:
        """
        Soft delete a task.

        Deleting an already-deleted task is a successful no-op.

        Raises:
            NotFoundError: if no such task exists
        """
        previous = self.get(task_id)
        if previous.is_deleted:
            return SyncResult(ok=True, task=previous)

        changes = {"is_deleted": True}
        task = self.store.patch(task_id, changes)
        try:
            await self.backend.delete_task(task_id, deleted_at=task.updated_at)
        except BackendError as e:
            reverted = self._rollback(previous, task, changes)
            return self._failed("delete", task_id, e, reverted)

        logger.info(f"Deleted task: {task_id}")
        return SyncResult(ok=True, task=task)

    async def cycle_status(self, task_id: str) -> SyncResult:
        """
        Advance a task to its next status.

        Not Started -> In Progress -> Completed -> Not Started.

        Raises:
            NotFoundError: if no such task exists
        """
        previous = self.get(task_id)
        status = next_status(previous.status)
        changes = {"status": status}
        changes.update(self._completion_changes(previous, status))
        return await self._apply(previous, changes, "update")

    async def restore(self, task_id: str) -> SyncResult:
        """Move a completed task back to In Progress."""
        return await self.update(task_id, status=STATUS_IN_PROGRESS)

    async def set_color(self, task_id: str, color: str) -> SyncResult:
        """Change a task card's background colour."""
        return await self.update(task_id, background_color=color)

    async def _apply(self, previous: Task, changes: dict, operation: str) -> SyncResult:
        task = self.store.patch(previous.id, changes)
        request = UpdateTaskRequest(id=task.id, changes={**changes, "updated_at": task.updated_at})

        try:
            await self.backend.update_task(request)
        except BackendError as e:
            reverted = self._rollback(previous, task, changes)
            return self._failed(operation, previous.id, e, reverted)

        logger.info(f"Updated task: {task.id} ({', '.join(changes)})")
        return SyncResult(ok=True, task=task)

    def _rollback(self, previous: Task, optimistic: Task, changes: dict) -> Task:
        """
        Undo an optimistic patch field by field.

        A field is only put back if it still holds the value this patch
        wrote; anything another mutation changed since is kept.
        """
        current = self.get(previous.id)
        inverse = {
            key: getattr(previous, key)
            for key in changes
            if getattr(current, key) == getattr(optimistic, key)
        }
        if current.updated_at == optimistic.updated_at:
            inverse["updated_at"] = previous.updated_at
        return self.store.revert(previous.id, inverse)

    def _failed(self, operation: str, task_id: str, cause: BackendError, task: Optional[Task] = None) -> SyncResult:
        failure = SyncFailure(operation, task_id, cause)
        logger.warning(f"{failure}; local change rolled back")
        return SyncResult(ok=False, task=task, error=failure)

    def _completion_changes(self, previous: Task, status: str) -> dict:
        """Keep completed_at in step with a status change."""
        if status == STATUS_COMPLETED:
            if previous.status != STATUS_COMPLETED:
                return {"completed_at": self.store.now()}
            return {}
        return {"completed_at": None}

    def _clean_changes(self, fields: dict) -> dict:
        """Validate an update's fields and normalize their values."""
        errors = {}
        changes = {}

        for key, value in fields.items():
            if key not in EDITABLE_FIELDS:
                errors[key] = "cannot be updated"
                continue
            if value is None and key not in ("background_color", "image"):
                continue
            changes[key] = value

        for key in ("title", "description"):
            if key in changes and not isinstance(changes[key], str):
                errors[key] = "must be text"

        if "title" in changes and "title" not in errors:
            changes["title"] = changes["title"].strip()
            if not changes["title"]:
                errors["title"] = "cannot be empty"

        if "status" in changes and changes["status"] not in TASK_STATUSES:
            errors["status"] = f"must be one of: {', '.join(TASK_STATUSES)}"

        if "priority" in changes and changes["priority"] not in TASK_PRIORITIES:
            errors["priority"] = f"must be one of: {', '.join(TASK_PRIORITIES)}"

        if "due_date" in changes:
            try:
                changes["due_date"] = parse_date(changes["due_date"])
            except (TypeError, ValueError):
                errors["due_date"] = f"is not a valid date: {changes['due_date']!r}"

        if "tags" in changes:
            tags = changes["tags"]
            if not isinstance(tags, (list, tuple)) or not all(isinstance(t, str) for t in tags):
                errors["tags"] = "must be a list of strings"
            else:
                changes["tags"] = [t.strip() for t in tags if t.strip()]

        color_error = check_color(changes.get("background_color"))
        if color_error:
            errors["background_color"] = color_error

        image_error = check_image(changes.get("image"), self.max_image_bytes)
        if image_error:
            errors["image"] = image_error

        if errors:
            raise ValidationError(errors)
        return changes

"""
Abstract task backend interface.

A backend is the persistence side of the dashboard: the task service applies
every change locally first and then asks the backend to make it durable.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional

from taskboard.models.requests import CreateTaskRequest, UpdateTaskRequest
from taskboard.models.task import Task


class TaskBackend(ABC):
    """
    Abstract base class for task backends.

    Implementations must:
    - Return tasks including soft-deleted ones (views do the filtering)
    - Raise BackendError for any failure, so the caller can roll back
    """

    name: str = "abstract"

    @abstractmethod
    async def connect(self) -> None:
        """Open connections / load initial data."""
        pass

    @abstractmethod
    async def close(self) -> None:
        """Release connections."""
        pass

    @abstractmethod
    async def list_tasks(self) -> List[Task]:
        """
        Fetch every task.

        Returns:
            All tasks, soft-deleted ones included
        """
        pass

    @abstractmethod
    async def create_task(self, request: CreateTaskRequest) -> Task:
        """
        Persist a new task.

        Args:
            request: Validated creation payload carrying the task ID

        Returns:
            The stored Task
        """
        pass

    @abstractmethod
    async def update_task(self, request: UpdateTaskRequest) -> Task:
        """
        Apply a partial update.

        Args:
            request: Task ID plus the changed fields

        Returns:
            The stored Task after the update
        """
        pass

    @abstractmethod
    async def delete_task(self, task_id: str, deleted_at: Optional[datetime] = None) -> None:
        """
        Soft delete a task.

        Args:
            task_id: Task ID
            deleted_at: Stored as updated_at. Defaults to the current time.
        """
        pass

    async def ping(self) -> bool:
        """Check the backend is reachable. Default assumes it is."""
        return True

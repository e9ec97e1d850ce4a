"""
Taskboard Core Library

Single-user task dashboard: an in-memory task store with optimistic sync to
a pluggable backend, plus the derived views the dashboard renders.
"""

__version__ = "0.1.0"

from taskboard.config import TaskboardConfig, load_config
from taskboard.dashboard import Dashboard
from taskboard.errors import NotFoundError, SyncFailure, ValidationError
from taskboard.models import Task, TaskFormData
from taskboard.services import SyncResult, TaskService
from taskboard.store import TaskStore

__all__ = [
    "load_config",
    "TaskboardConfig",
    "Dashboard",
    "Task",
    "TaskFormData",
    "TaskStore",
    "TaskService",
    "SyncResult",
    "ValidationError",
    "NotFoundError",
    "SyncFailure",
]

"""
Core data models for Taskboard.
"""

from taskboard.models.requests import CreateTaskRequest, TaskFormData, UpdateTaskRequest
from taskboard.models.task import (
    TASK_COLORS,
    TASK_PRIORITIES,
    TASK_STATUSES,
    Task,
    next_status,
)

__all__ = [
    "Task",
    "TaskFormData",
    "CreateTaskRequest",
    "UpdateTaskRequest",
    "TASK_STATUSES",
    "TASK_PRIORITIES",
    "TASK_COLORS",
    "next_status",
]

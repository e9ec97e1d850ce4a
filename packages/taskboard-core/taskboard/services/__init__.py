"""
Business logic services for Taskboard.
"""

from taskboard.services.tasks import SyncResult, TaskService

__all__ = [
    "TaskService",
    "SyncResult",
]

"""
Persistence backends: in-memory mock and SQLite.
"""

from taskboard.backends.factory import get_backend
from taskboard.backends.interface import TaskBackend
from taskboard.backends.memory import MemoryTaskBackend

__all__ = [
    "TaskBackend",
    "MemoryTaskBackend",
    "get_backend",
]

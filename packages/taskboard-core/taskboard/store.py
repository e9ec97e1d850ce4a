"""
In-memory task store.

Holds the authoritative local collection of tasks for one dashboard session
and broadcasts a full snapshot to every subscriber after each change.
"""

import logging
from datetime import datetime
from typing import Callable, Iterable, List, Optional, Tuple

from taskboard.errors import DuplicateTaskError, NotFoundError
from taskboard.models.task import Task

logger = logging.getLogger(__name__)

Snapshot = Tuple[Task, ...]
Subscriber = Callable[[Snapshot], None]

# Fields a patch may never touch
_IMMUTABLE_FIELDS = frozenset({"id", "created_at"})


class TaskStore:
    """
    Ordered in-memory task collection with synchronous change broadcast.

    All writes go through this class so that identifier uniqueness and
    `updated_at` are enforced in one place. Readers only ever get copies.
    """

    def __init__(self, tasks: Optional[Iterable[Task]] = None, clock: Optional[Callable[[], datetime]] = None):
        """
        Initialize the store.

        Args:
            tasks: Optional initial tasks
            clock: Callable returning the current time. Defaults to datetime.utcnow.
        """
        self._clock = clock or datetime.utcnow
        self._tasks: List[Task] = []
        self._subscribers: List[Subscriber] = []
        if tasks:
            for task in tasks:
                self._append(task)

    def now(self) -> datetime:
        """Current time according to the store clock."""
        return self._clock()

    def __len__(self) -> int:
        return len(self._tasks)

    def __contains__(self, task_id: str) -> bool:
        return self._index(task_id) is not None

    def snapshot(self) -> Snapshot:
        """Point-in-time copy of every task, deleted ones included."""
        return tuple(task.copy() for task in self._tasks)

    def get(self, task_id: str) -> Optional[Task]:
        """Get a copy of a task by ID."""
        index = self._index(task_id)
        if index is None:
            return None
        return self._tasks[index].copy()

    def subscribe(self, callback: Subscriber, replay: bool = False) -> Callable[[], None]:
        """
        Register a callback for snapshots.

        Args:
            callback: Called with the full snapshot after every change
            replay: Also call it immediately with the current snapshot

        Returns:
            A function that removes the subscription
        """
        self._subscribers.append(callback)
        if replay:
            callback(self.snapshot())

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def load(self, tasks: Iterable[Task]) -> None:
        """Replace the whole collection (initial load) and broadcast."""
        self._tasks = []
        for task in tasks:
            self._append(task)
        logger.debug(f"Loaded {len(self._tasks)} tasks into store")
        self._broadcast()

    def insert(self, task: Task) -> Task:
        """
        Add a new task.

        Raises:
            DuplicateTaskError: if a task with the same ID exists
        """
        self._append(task)
        self._broadcast()
        return task.copy()

    def patch(self, task_id: str, changes: dict) -> Task:
        """
        Merge `changes` into a task and stamp `updated_at`.

        Raises:
            NotFoundError: if the task does not exist
            ValueError: if `changes` touches an immutable field
        """
        illegal = _IMMUTABLE_FIELDS.intersection(changes)
        if illegal:
            raise ValueError(f"Cannot change {', '.join(sorted(illegal))} of a task")

        index = self._require(task_id)
        task = self._tasks[index].copy()
        for key, value in changes.items():
            if not hasattr(task, key):
                raise ValueError(f"Unknown task field: {key}")
            setattr(task, key, value)

        now = self.now()
        task.updated_at = max(now, task.created_at) if task.created_at else now
        self._tasks[index] = task
        self._broadcast()
        return task.copy()

    def revert(self, task_id: str, fields: dict) -> Task:
        """
        Set `fields` back verbatim, leaving every other field alone.

        Used to undo an optimistic change, so `updated_at` is only touched
        when it is one of `fields`.

        Raises:
            NotFoundError: if the task does not exist
            ValueError: if `fields` touches an immutable or unknown field
        """
        illegal = _IMMUTABLE_FIELDS.intersection(fields)
        if illegal:
            raise ValueError(f"Cannot change {', '.join(sorted(illegal))} of a task")

        index = self._require(task_id)
        task = self._tasks[index].copy()
        for key, value in fields.items():
            if not hasattr(task, key):
                raise ValueError(f"Unknown task field: {key}")
            setattr(task, key, value)

        self._tasks[index] = task
        self._broadcast()
        return task.copy()

    def discard(self, task_id: str) -> None:
        """
        Remove a task outright.

        Only for rolling back an optimistic create; deletion is a flag.
        """
        index = self._require(task_id)
        del self._tasks[index]
        self._broadcast()

    def _append(self, task: Task) -> None:
        if self._index(task.id) is not None:
            raise DuplicateTaskError(task.id)
        self._tasks.append(task.copy())

    def _index(self, task_id: str) -> Optional[int]:
        for i, task in enumerate(self._tasks):
            if task.id == task_id:
                return i
        return None

    def _require(self, task_id: str) -> int:
        index = self._index(task_id)
        if index is None:
            raise NotFoundError(task_id)
        return index

    def _broadcast(self) -> None:
        snapshot = self.snapshot()
        for callback in list(self._subscribers):
            try:
                callback(snapshot)
            except Exception as e:
                logger.error(f"Task store subscriber {callback!r} failed: {e}")

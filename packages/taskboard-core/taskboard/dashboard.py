"""
Dashboard session.

One Dashboard per application session: it owns the task service and its
store subscription, keeps the search query, recomputes the derived views on
every store broadcast and turns sync failures into user-visible
notifications.
"""

import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Callable, Deque, List, Optional, Tuple

from taskboard.models.requests import TaskFormData
from taskboard.models.task import Task
from taskboard.services.tasks import SyncResult, TaskService
from taskboard.store import Snapshot
from taskboard.views import (
    StatusBreakdown,
    TodoStats,
    active_tasks,
    completed_tasks,
    status_breakdown,
    task_card,
    todo_stats,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Notification:
    """A non-fatal message for the user, e.g. a failed sync."""

    message: str
    level: str = "error"
    created_at: datetime = field(default_factory=datetime.utcnow)


@dataclass(frozen=True)
class DashboardState:
    """Everything the dashboard renders, computed from one snapshot."""

    active: Tuple[Task, ...]
    completed: Tuple[Task, ...]
    todo: TodoStats
    status: StatusBreakdown
    search_query: str = ""
    today: Optional[date] = None

    def to_dict(self) -> dict:
        today = self.today or date.today()
        return {
            "active": [task_card(t, today) for t in self.active],
            "completed": [task_card(t, today) for t in self.completed],
            "todo": self.todo.to_dict(),
            "status": self.status.to_dict(),
            "search_query": self.search_query,
        }


class Dashboard:
    """
    Session object behind the dashboard UI.

    Usage:
        async with Dashboard(service) as dashboard:
            await dashboard.create(TaskFormData(...))
            dashboard.set_search_query("meeting")
            state = dashboard.state
    """

    def __init__(
        self,
        service: TaskService,
        today: Optional[Callable[[], date]] = None,
        notification_limit: int = 20,
    ):
        """
        Initialize dashboard session.

        Args:
            service: TaskService whose store this dashboard follows
            today: Callable returning the reference day for "due today"
            notification_limit: How many notifications to keep
        """
        self.service = service
        self._today = today or date.today
        self._search_query = ""
        self._tasks: Snapshot = ()
        self._listeners: List[Callable[[DashboardState], None]] = []
        self.notifications: Deque[Notification] = deque(maxlen=notification_limit)
        self._unsubscribe = service.store.subscribe(self._on_snapshot, replay=True)

    @classmethod
    def from_config(cls, config=None) -> "Dashboard":
        """Build a dashboard with the configured backend."""
        from taskboard.backends import get_backend
        from taskboard.config import get_config

        config = config or get_config()
        service = TaskService(
            backend=get_backend(config),
            max_image_bytes=config.dashboard.max_image_bytes,
        )
        return cls(service, notification_limit=config.dashboard.notification_limit)

    async def open(self) -> None:
        """Connect the backend and load its tasks."""
        await self.service.backend.connect()
        await self.service.load()

    async def close(self) -> None:
        """Stop following the store and release the backend."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self._listeners.clear()
        await self.service.backend.close()

    async def __aenter__(self) -> "Dashboard":
        await self.open()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Outbound: state and change notifications
    # ------------------------------------------------------------------

    @property
    def tasks(self) -> Snapshot:
        """Latest snapshot received from the store."""
        return self._tasks

    @property
    def search_query(self) -> str:
        return self._search_query

    @property
    def active_tasks(self) -> List[Task]:
        return active_tasks(self._tasks, self._search_query)

    @property
    def completed_tasks(self) -> List[Task]:
        return completed_tasks(self._tasks, self._search_query)

    @property
    def todo_stats(self) -> TodoStats:
        return todo_stats(self._tasks, self._today())

    @property
    def task_status(self) -> StatusBreakdown:
        return status_breakdown(self._tasks)

    @property
    def today(self) -> date:
        """The reference day for the due-date views."""
        return self._today()

    @property
    def state(self) -> DashboardState:
        return DashboardState(
            active=tuple(self.active_tasks),
            completed=tuple(self.completed_tasks),
            todo=self.todo_stats,
            status=self.task_status,
            search_query=self._search_query,
            today=self.today,
        )

    def on_change(self, listener: Callable[[DashboardState], None]) -> Callable[[], None]:
        """
        Register a listener for recomputed dashboard state.

        Returns:
            A function that removes the listener
        """
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def _on_snapshot(self, snapshot: Snapshot) -> None:
        self._tasks = snapshot
        self._emit()

    def _emit(self) -> None:
        if not self._listeners:
            return
        state = self.state
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception as e:
                logger.error(f"Dashboard listener {listener!r} failed: {e}")

    # ------------------------------------------------------------------
    # Inbound: user actions
    # ------------------------------------------------------------------

    def set_search_query(self, query: Optional[str]) -> None:
        """Filter the task lists by a free-text query."""
        self._search_query = query or ""
        self._emit()

    async def create(self, form: TaskFormData) -> SyncResult:
        return self._report(await self.service.create(form))

    async def update(self, task_id: str, **fields) -> SyncResult:
        return self._report(await self.service.update(task_id, **fields))

    async def delete(self, task_id: str) -> SyncResult:
        return self._report(await self.service.delete(task_id))

    async def cycle_status(self, task_id: str) -> SyncResult:
        return self._report(await self.service.cycle_status(task_id))

    async def restore(self, task_id: str) -> SyncResult:
        return self._report(await self.service.restore(task_id))

    async def set_color(self, task_id: str, color: str) -> SyncResult:
        return self._report(await self.service.set_color(task_id, color))

    def dismiss_notifications(self) -> None:
        self.notifications.clear()

    def _report(self, result: SyncResult) -> SyncResult:
        if not result.ok and result.error is not None:
            self.notifications.append(Notification(message=str(result.error)))
        return result

"""
In-memory mock backend.

Stands in for the remote task API during development. It can be seeded with
the sample dashboard tasks and told to fail, which is how the optimistic
rollback path gets exercised.
"""

import logging
from datetime import date, datetime
from typing import Dict, List, Optional

from taskboard.backends.interface import TaskBackend
from taskboard.errors import BackendError
from taskboard.models.requests import CreateTaskRequest, UpdateTaskRequest
from taskboard.models.task import Task

logger = logging.getLogger(__name__)


def sample_tasks() -> List[Task]:
    """The sample cards the dashboard ships with."""
    return [
        Task(
            id="1",
            title="Attend Nischal's Birthday Party",
            description="Buy gifts on the way and pick up cake from the bakery. (6 PM)",
            due_date=date(2024, 6, 20),
            priority="Medium",
            status="Not Started",
            image="assets/images/birthday-party.jpg",
        ),
        Task(
            id="2",
            title="Landing Page Design for TravelDays",
            description="Get the work done by EOD and discuss with clients about the pricing. (3 PM | Meeting Room)",
            due_date=date(2024, 6, 21),
            priority="Medium",
            status="In Progress",
            image="assets/images/landing-page.jpg",
        ),
        Task(
            id="3",
            title="Presentation on Final Product",
            description=(
                "Make sure everything is functioning and all the necessities are properly met. "
                "Prepare the team and get the documents ready for..."
            ),
            due_date=date(2024, 6, 22),
            priority="Medium",
            status="In Progress",
            image="assets/images/presentation.jpg",
        ),
        Task(
            id="4",
            title="Walk the dog",
            description="Take the dog to the park and bring treats as well.",
            due_date=date(2024, 6, 19),
            priority="Low",
            status="Completed",
            image="assets/images/walk-dog.jpg",
            completed_at=datetime(2024, 6, 19, 14, 30),
        ),
        Task(
            id="5",
            title="Conduct meeting",
            description="Meet with the client and finalize requirements.",
            due_date=date(2024, 6, 18),
            priority="High",
            status="Completed",
            image="assets/images/meeting.jpg",
            completed_at=datetime(2024, 6, 18, 11, 0),
        ),
    ]


class MemoryTaskBackend(TaskBackend):
    """
    Dict-backed backend.

    Requests can be made to fail with fail_next(), simulating an
    unreachable API.
    """

    name = "memory"

    def __init__(self, tasks: Optional[List[Task]] = None, seed_mock_data: bool = False):
        """
        Initialize memory backend.

        Args:
            tasks: Optional initial tasks
            seed_mock_data: Load the sample dashboard tasks on connect
        """
        self.seed_mock_data = seed_mock_data
        self._tasks: Dict[str, Task] = {}
        self._failures: List[BackendError] = []
        self.requests: List[object] = []
        for task in tasks or []:
            self._tasks[task.id] = task.copy()

    def fail_next(self, count: int = 1, message: str = "backend unavailable") -> None:
        """Make the next `count` write requests raise BackendError."""
        self._failures.extend(BackendError(message) for _ in range(count))

    def _maybe_fail(self) -> None:
        if self._failures:
            raise self._failures.pop(0)

    async def connect(self) -> None:
        if self.seed_mock_data and not self._tasks:
            for task in sample_tasks():
                self._tasks[task.id] = task
            logger.info(f"Memory backend seeded with {len(self._tasks)} sample tasks")

    async def close(self) -> None:
        pass

    async def list_tasks(self) -> List[Task]:
        return [task.copy() for task in self._tasks.values()]

    async def create_task(self, request: CreateTaskRequest) -> Task:
        self.requests.append(request)
        self._maybe_fail()
        if request.id in self._tasks:
            raise BackendError(f"Task already exists: {request.id}")

        task = request.to_task()
        self._tasks[task.id] = task
        return task.copy()

    async def update_task(self, request: UpdateTaskRequest) -> Task:
        self.requests.append(request)
        self._maybe_fail()
        task = self._tasks.get(request.id)
        if task is None:
            raise BackendError(f"Task not found: {request.id}")

        for key, value in request.changes.items():
            setattr(task, key, value)
        if "updated_at" not in request.changes:
            task.updated_at = datetime.utcnow()
        return task.copy()

    async def delete_task(self, task_id: str, deleted_at: Optional[datetime] = None) -> None:
        self.requests.append(("delete", task_id))
        self._maybe_fail()
        task = self._tasks.get(task_id)
        if task is None:
            raise BackendError(f"Task not found: {task_id}")
        task.is_deleted = True
        task.updated_at = deleted_at or datetime.utcnow()

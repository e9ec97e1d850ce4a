"""
Derived dashboard views.

Pure functions over a task snapshot: the active and completed lists,
search filtering, the "due today" counter and the per-status breakdown
shown in the progress rings. Soft-deleted tasks never appear in any view.
"""

import math
from dataclasses import dataclass
from datetime import date, datetime
from typing import Iterable, List, Optional

from taskboard.models.task import (
    STATUS_COMPLETED,
    STATUS_IN_PROGRESS,
    STATUS_NOT_STARTED,
    Task,
)

TODAY_LABEL = "• Today"


@dataclass(frozen=True)
class StatusCount:
    """Number of tasks in one status and their share of the total."""

    count: int
    percentage: int

    def to_dict(self) -> dict:
        return {"count": self.count, "percentage": self.percentage}


@dataclass(frozen=True)
class StatusBreakdown:
    """Counts and percentages for each status among visible tasks."""

    completed: StatusCount
    in_progress: StatusCount
    not_started: StatusCount

    @property
    def total(self) -> int:
        return self.completed.count + self.in_progress.count + self.not_started.count

    def to_dict(self) -> dict:
        return {
            "completed": self.completed.to_dict(),
            "in_progress": self.in_progress.to_dict(),
            "not_started": self.not_started.to_dict(),
        }


@dataclass(frozen=True)
class TodoStats:
    """Header counter: tasks due on the reference day."""

    total: int
    label: str = TODAY_LABEL

    def to_dict(self) -> dict:
        return {"total": self.total, "label": self.label}


def visible_tasks(tasks: Iterable[Task]) -> List[Task]:
    """Tasks that have not been soft-deleted."""
    return [task for task in tasks if not task.is_deleted]


def matches_search(task: Task, query: Optional[str]) -> bool:
    """
    Check whether a task matches a free-text query.

    A blank query matches everything. Otherwise the query must appear,
    ignoring case, in the title, the description or any tag.
    """
    if not query or not query.strip():
        return True

    needle = query.lower()
    if needle in (task.title or "").lower():
        return True
    if needle in (task.description or "").lower():
        return True
    return any(needle in tag.lower() for tag in task.tags or [])


def active_tasks(tasks: Iterable[Task], query: Optional[str] = "") -> List[Task]:
    """Visible, not-completed tasks matching `query`."""
    return [
        task for task in tasks
        if not task.is_deleted and task.status != STATUS_COMPLETED and matches_search(task, query)
    ]


def completed_tasks(tasks: Iterable[Task], query: Optional[str] = "") -> List[Task]:
    """Visible, completed tasks matching `query`."""
    return [
        task for task in tasks
        if not task.is_deleted and task.status == STATUS_COMPLETED and matches_search(task, query)
    ]


def _calendar_day(value) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


def today_count(tasks: Iterable[Task], reference) -> int:
    """
    Count visible tasks due on the same calendar day as `reference`.

    Args:
        tasks: Task snapshot
        reference: A date or datetime; the time of day is ignored
    """
    day = _calendar_day(reference)
    return sum(
        1 for task in tasks
        if not task.is_deleted and task.due_date is not None and _calendar_day(task.due_date) == day
    )


def todo_stats(tasks: Iterable[Task], reference) -> TodoStats:
    """The "due today" header counter."""
    return TodoStats(total=today_count(tasks, reference))


def _percentage(count: int, total: int) -> int:
    # Round half up, per bucket
    if total <= 0:
        return 0
    return (200 * count + total) // (2 * total)


def status_breakdown(tasks: Iterable[Task]) -> StatusBreakdown:
    """
    Count visible tasks per status.

    Each percentage is rounded on its own, so the three need not add up
    to exactly 100.
    """
    visible = visible_tasks(tasks)
    total = len(visible)

    def bucket(status: str) -> StatusCount:
        count = sum(1 for task in visible if task.status == status)
        return StatusCount(count=count, percentage=_percentage(count, total))

    return StatusBreakdown(
        completed=bucket(STATUS_COMPLETED),
        in_progress=bucket(STATUS_IN_PROGRESS),
        not_started=bucket(STATUS_NOT_STARTED),
    )


def completed_ago(task: Task, now: Optional[datetime] = None) -> str:
    """
    Describe how long ago a completed task was finished.

    Falls back to `updated_at` when `completed_at` is missing. Partial days
    round up, so anything after the exact moment counts as a day.
    """
    finished = task.completed_at or task.updated_at
    if finished is None:
        return "recently"

    now = now or datetime.utcnow()
    diff_days = math.ceil(abs((now - finished).total_seconds()) / 86400)

    if diff_days == 0:
        return "today"
    if diff_days == 1:
        return "1 day ago"
    if diff_days < 7:
        return f"{diff_days} days ago"
    if diff_days < 30:
        weeks = diff_days // 7
        return "1 week ago" if weeks == 1 else f"{weeks} weeks ago"
    months = diff_days // 30
    return "1 month ago" if months == 1 else f"{months} months ago"


def is_overdue(task: Task, reference) -> bool:
    """True if the task was due before `reference`'s calendar day and is not done."""
    if task.due_date is None or task.status == STATUS_COMPLETED:
        return False
    return _calendar_day(task.due_date) < _calendar_day(reference)


def due_label(task: Task, reference) -> str:
    """
    Short due date for a task card.

    "Today", "Tomorrow" or "Yesterday" relative to `reference`, otherwise
    month and day, e.g. "Jun 5".
    """
    if task.due_date is None:
        return ""

    due = _calendar_day(task.due_date)
    offset = (due - _calendar_day(reference)).days
    if offset == 0:
        return "Today"
    if offset == 1:
        return "Tomorrow"
    if offset == -1:
        return "Yesterday"
    return f"{due:%b} {due.day}"


def task_card(task: Task, reference, now: Optional[datetime] = None) -> dict:
    """A task's fields plus the labels its card shows."""
    data = task.to_dict()
    data["due_label"] = due_label(task, reference)
    data["overdue"] = is_overdue(task, reference)
    if task.status == STATUS_COMPLETED:
        data["completed_ago"] = completed_ago(task, now)
    return data

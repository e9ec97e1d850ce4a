"""
Task model for Taskboard.

Tasks are the cards shown on the dashboard. They are created, edited,
cycled through their statuses and soft-deleted, never physically removed.
"""

import json
from dataclasses import dataclass, field, replace
from datetime import date, datetime
from typing import List, Optional
from uuid import uuid4

# Valid status values, in cycle order
TASK_STATUSES = ("Not Started", "In Progress", "Completed")

STATUS_NOT_STARTED, STATUS_IN_PROGRESS, STATUS_COMPLETED = TASK_STATUSES

# Valid priority values
TASK_PRIORITIES = ("High", "Medium", "Low")

# Card background colours offered by the colour picker
TASK_COLORS = (
    "#FFFFFF", "#FFF3E0", "#E8F5E8", "#E3F2FD",
    "#FCE4EC", "#F3E5F5", "#FFF8E1", "#E0F2F1",
    "#FFEBEE", "#F1F8E9", "#E8EAF6", "#FFF9C4",
)


def next_status(status: str) -> str:
    """Return the status that follows `status` in the card's toggle cycle."""
    if status not in TASK_STATUSES:
        return STATUS_IN_PROGRESS
    index = TASK_STATUSES.index(status)
    return TASK_STATUSES[(index + 1) % len(TASK_STATUSES)]


def parse_date(value) -> Optional[date]:
    """
    Coerce a due date to a calendar date.

    Accepts a date, a datetime (time of day is dropped) or an ISO string.
    Raises ValueError for anything else.
    """
    if value is None or (isinstance(value, date) and not isinstance(value, datetime)):
        return value
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, str):
        text = value.strip()
        if "T" in text:
            return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
        return date.fromisoformat(text)
    raise ValueError(f"Not a date: {value!r}")


@dataclass
class Task:
    """
    A task card.

    Attributes:
        id: Unique identifier (UUID string), never changes once assigned
        title: Task title
        description: Longer description shown on the card
        due_date: Calendar date the task is due
        priority: High, Medium or Low
        status: Not Started, In Progress or Completed
        tags: Free-form tags, searched alongside title and description
        background_color: Card colour as #RRGGBB
        image: Data URL or asset path of the card image
        is_deleted: Soft delete flag
        completed_at: When the task last moved to Completed
        created_at: When the task was created
        updated_at: When last modified
    """

    title: str
    id: str = field(default_factory=lambda: str(uuid4()))
    description: str = ""
    due_date: Optional[date] = None
    priority: str = "Medium"
    status: str = STATUS_NOT_STARTED
    tags: List[str] = field(default_factory=list)
    background_color: Optional[str] = None
    image: Optional[str] = None
    is_deleted: bool = False
    completed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self):
        if self.created_at is None:
            self.created_at = datetime.utcnow()
        if self.updated_at is None:
            self.updated_at = self.created_at

    @property
    def is_complete(self) -> bool:
        """Check if task is completed."""
        return self.status == STATUS_COMPLETED

    @property
    def is_active(self) -> bool:
        """Check if task is visible and not yet completed."""
        return not self.is_deleted and not self.is_complete

    def copy(self) -> "Task":
        """Return an independent copy (tags list included)."""
        return replace(self, tags=list(self.tags))

    def to_dict(self) -> dict:
        """Convert to dictionary for storage/serialization."""
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "due_date": self.due_date.isoformat() if self.due_date else None,
            "priority": self.priority,
            "status": self.status,
            "tags": list(self.tags),
            "background_color": self.background_color,
            "image": self.image,
            "is_deleted": self.is_deleted,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Task":
        """Create Task from dictionary (e.g., database row)."""
        data = dict(data)

        for field_name in ("completed_at", "created_at", "updated_at"):
            if data.get(field_name) and isinstance(data[field_name], str):
                data[field_name] = datetime.fromisoformat(data[field_name].replace("Z", "+00:00"))

        # Tags are a JSON string in SQLite
        if isinstance(data.get("tags"), str):
            data["tags"] = json.loads(data["tags"])

        return cls(
            id=data.get("id") or str(uuid4()),
            title=data.get("title", ""),
            description=data.get("description") or "",
            due_date=parse_date(data.get("due_date")),
            priority=data.get("priority", "Medium"),
            status=data.get("status", STATUS_NOT_STARTED),
            tags=data.get("tags") or [],
            background_color=data.get("background_color"),
            image=data.get("image"),
            is_deleted=bool(data.get("is_deleted", False)),
            completed_at=data.get("completed_at"),
            created_at=data.get("created_at"),
            updated_at=data.get("updated_at"),
        )

"""
Request models for Taskboard.

TaskFormData is what the "new task" form submits. Once validated it becomes
a CreateTaskRequest, which is what crosses the persistence boundary.
UpdateTaskRequest carries a partial change set for an existing task.
"""

import base64
import binascii
import re
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, List, Optional
from uuid import uuid4

from taskboard.errors import ValidationError
from taskboard.models.task import TASK_PRIORITIES, STATUS_NOT_STARTED, Task, parse_date

TITLE_MIN_LENGTH = 3
DESCRIPTION_MIN_LENGTH = 10

# 5 MiB, the limit of the image upload widget
MAX_IMAGE_BYTES = 5 * 1024 * 1024

COLOR_PATTERN = re.compile(r"^#[0-9A-Fa-f]{6}$")

_DATA_URL_PATTERN = re.compile(r"^data:(?P<mime>[^;,]*)(?P<b64>;base64)?,(?P<payload>.*)$", re.DOTALL)


def check_color(value: Optional[str]) -> Optional[str]:
    """Return an error message if `value` is not a #RRGGBB colour."""
    if value is not None and not COLOR_PATTERN.match(value):
        return "must be a colour in #RRGGBB form"
    return None


def check_image(value: Optional[str], max_bytes: int = MAX_IMAGE_BYTES) -> Optional[str]:
    """
    Return an error message if `value` is not an acceptable card image.

    Asset paths are accepted as-is. Data URLs must carry an image MIME type
    and decode to at most `max_bytes`.
    """
    if not value or not value.startswith("data:"):
        return None

    match = _DATA_URL_PATTERN.match(value)
    if not match:
        return "is not a valid data URL"
    if not match.group("mime").startswith("image/"):
        return "must be an image file"

    payload = match.group("payload")
    if match.group("b64"):
        try:
            size = len(base64.b64decode(payload, validate=True))
        except (binascii.Error, ValueError):
            return "is not valid base64 image data"
    else:
        size = len(payload.encode("utf-8"))

    if size > max_bytes:
        return f"must be smaller than {max_bytes // (1024 * 1024)}MB"
    return None


@dataclass
class CreateTaskRequest:
    """
    Validated payload for creating a task.

    The identifier is assigned on the client so the optimistic local copy
    and the persisted copy share it.
    """

    title: str
    description: str
    due_date: date
    priority: str = "Medium"
    tags: List[str] = field(default_factory=list)
    background_color: Optional[str] = None
    image: Optional[str] = None
    id: str = field(default_factory=lambda: str(uuid4()))
    created_at: Optional[datetime] = None

    def to_task(self) -> Task:
        """Build the new Task this request describes."""
        return Task(
            id=self.id,
            title=self.title,
            description=self.description,
            due_date=self.due_date,
            priority=self.priority,
            status=STATUS_NOT_STARTED,
            tags=list(self.tags),
            background_color=self.background_color,
            image=self.image,
            created_at=self.created_at,
        )


@dataclass
class UpdateTaskRequest:
    """Partial update of an existing task: only `changes` are written."""

    id: str
    changes: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        """Serialize the change set with ISO dates."""
        result = {"id": self.id}
        for key, value in self.changes.items():
            if isinstance(value, (date, datetime)):
                value = value.isoformat()
            result[key] = value
        return result


@dataclass
class TaskFormData:
    """
    Raw input from the "new task" form.

    Attributes:
        title: Task title, at least 3 characters
        due_date: Date, datetime or YYYY-MM-DD string
        priority: High, Medium or Low
        description: At least 10 characters
        image: Optional data URL or asset path
        tags: Optional tags
        background_color: Optional #RRGGBB colour
    """

    title: str
    due_date: Any
    priority: str = "Medium"
    description: str = ""
    image: Optional[str] = None
    tags: Optional[List[str]] = None
    background_color: Optional[str] = None

    def validate(self, max_image_bytes: int = MAX_IMAGE_BYTES) -> CreateTaskRequest:
        """
        Check every field and build a CreateTaskRequest.

        Raises:
            ValidationError: naming every field that failed
        """
        errors: Dict[str, str] = {}

        title = (self.title or "").strip()
        if len(title) < TITLE_MIN_LENGTH:
            errors["title"] = f"must be at least {TITLE_MIN_LENGTH} characters"

        description = (self.description or "").strip()
        if len(description) < DESCRIPTION_MIN_LENGTH:
            errors["description"] = f"must be at least {DESCRIPTION_MIN_LENGTH} characters"

        due_date = None
        if self.due_date in (None, ""):
            errors["due_date"] = "is required"
        else:
            try:
                due_date = parse_date(self.due_date)
            except (TypeError, ValueError):
                errors["due_date"] = f"is not a valid date: {self.due_date!r}"

        if self.priority not in TASK_PRIORITIES:
            errors["priority"] = f"must be one of: {', '.join(TASK_PRIORITIES)}"

        image_error = check_image(self.image, max_image_bytes)
        if image_error:
            errors["image"] = image_error

        color_error = check_color(self.background_color)
        if color_error:
            errors["background_color"] = color_error

        if errors:
            raise ValidationError(errors)

        return CreateTaskRequest(
            title=title,
            description=description,
            due_date=due_date,
            priority=self.priority,
            tags=[t.strip() for t in (self.tags or []) if t and t.strip()],
            background_color=self.background_color,
            image=self.image or None,
        )

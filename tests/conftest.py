"""
Pytest configuration and fixtures for taskboard tests.
"""

import pytest
import sys
from datetime import date, datetime, timedelta
from pathlib import Path

# Add packages to path for testing
packages_dir = Path(__file__).parent.parent / "packages"
sys.path.insert(0, str(packages_dir / "taskboard-core"))
sys.path.insert(0, str(packages_dir / "taskboard-mcp"))


class FakeClock:
    """Deterministic clock that advances one second per reading."""

    def __init__(self, start=datetime(2024, 6, 20, 9, 0, 0), step=timedelta(seconds=1)):
        self.current = start
        self.step = step

    def __call__(self):
        value = self.current
        self.current += self.step
        return value


@pytest.fixture
def temp_config_dir(tmp_path):
    """Create a temporary config directory."""
    config_dir = tmp_path / ".taskboard"
    config_dir.mkdir()
    return config_dir


@pytest.fixture
def clock():
    """A FakeClock starting at 2024-06-20 09:00."""
    return FakeClock()


@pytest.fixture
def store(clock):
    """An empty TaskStore driven by the fake clock."""
    from taskboard.store import TaskStore

    return TaskStore(clock=clock)


@pytest.fixture
def backend():
    """An empty in-memory backend."""
    from taskboard.backends.memory import MemoryTaskBackend

    return MemoryTaskBackend()


@pytest.fixture
def service(store, backend):
    """TaskService over the fake-clock store and memory backend."""
    from taskboard.services.tasks import TaskService

    return TaskService(store=store, backend=backend)


@pytest.fixture
def sample_form():
    """Valid task form input."""
    from taskboard.models import TaskFormData

    return TaskFormData(
        title="Write release notes",
        due_date="2024-06-21",
        priority="High",
        description="Summarize every change since the last release.",
        tags=["docs", "release"],
    )


@pytest.fixture
def sample_task_data():
    """Sample task data for testing."""
    return {
        "title": "Test Task",
        "description": "A test task description",
        "due_date": date(2024, 6, 20),
        "status": "Not Started",
        "priority": "Medium",
        "tags": ["test", "sample"],
    }

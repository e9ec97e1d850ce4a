"""
SQLite task backend using aiosqlite.

Keeps the dashboard's tasks in a single local table. Tags are stored as a
JSON array and dates as ISO strings. Soft delete is an UPDATE of the
is_deleted flag; rows are never removed.
"""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, List, Optional

import aiosqlite

from taskboard.backends.interface import TaskBackend
from taskboard.errors import BackendError
from taskboard.models.requests import CreateTaskRequest, UpdateTaskRequest
from taskboard.models.task import Task

logger = logging.getLogger(__name__)

SCHEMA = """
    CREATE TABLE IF NOT EXISTS tasks (
        id TEXT PRIMARY KEY,
        title TEXT NOT NULL,
        description TEXT DEFAULT '',
        due_date TEXT,
        priority TEXT DEFAULT 'Medium',
        status TEXT DEFAULT 'Not Started',
        tags TEXT DEFAULT '[]',
        background_color TEXT,
        image TEXT,
        is_deleted INTEGER DEFAULT 0,
        completed_at TEXT,
        created_at TEXT,
        updated_at TEXT
    )
"""

# Columns an update may write
UPDATABLE_COLUMNS = (
    "title", "description", "due_date", "priority", "status", "tags",
    "background_color", "image", "is_deleted", "completed_at", "updated_at",
)


def _to_column(key: str, value: Any) -> Any:
    """Convert a Task field value to its SQLite column value."""
    if key == "tags":
        return json.dumps(value or [])
    if key == "is_deleted":
        return 1 if value else 0
    if hasattr(value, "isoformat"):
        return value.isoformat()
    return value


class SQLiteTaskBackend(TaskBackend):
    """
    SQLite backend.

    Automatically creates the database file, parent directories and the
    tasks table on connect.
    """

    name = "sqlite"

    def __init__(self, db_path: str = "~/.taskboard/taskboard.db"):
        """
        Initialize SQLite backend.

        Args:
            db_path: Path to SQLite database file.
                    Supports ~ expansion for home directory.
        """
        self.db_path = Path(db_path).expanduser()
        self._conn: Optional[aiosqlite.Connection] = None

    async def connect(self) -> None:
        """Open the database and create the tasks table if needed."""
        if self._conn is not None:
            return

        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        try:
            self._conn = await aiosqlite.connect(str(self.db_path))
            self._conn.row_factory = aiosqlite.Row
            await self._conn.execute("PRAGMA journal_mode = WAL")
            await self._conn.execute(SCHEMA)
            await self._conn.commit()
        except aiosqlite.Error as e:
            raise BackendError(f"Could not open {self.db_path}: {e}") from e

        logger.info(f"SQLite database connected: {self.db_path}")

    async def close(self) -> None:
        """Close database connection."""
        if self._conn is not None:
            await self._conn.close()
            self._conn = None
            logger.info("SQLite connection closed")

    async def _get_conn(self) -> aiosqlite.Connection:
        if self._conn is None:
            await self.connect()
        return self._conn

    async def _execute(self, query: str, *args) -> int:
        """Run a write query, commit, and return the affected row count."""
        conn = await self._get_conn()
        try:
            cursor = await conn.execute(query, args)
            await conn.commit()
        except aiosqlite.Error as e:
            raise BackendError(f"SQLite write failed: {e}") from e
        return cursor.rowcount

    async def _fetchrow(self, query: str, *args) -> Optional[dict]:
        conn = await self._get_conn()
        try:
            cursor = await conn.execute(query, args)
            row = await cursor.fetchone()
        except aiosqlite.Error as e:
            raise BackendError(f"SQLite read failed: {e}") from e
        return dict(row) if row else None

    async def get_task(self, task_id: str) -> Optional[Task]:
        """Fetch one task by ID, deleted or not."""
        row = await self._fetchrow("SELECT * FROM tasks WHERE id = ?", task_id)
        return Task.from_dict(row) if row else None

    async def list_tasks(self) -> List[Task]:
        conn = await self._get_conn()
        try:
            cursor = await conn.execute("SELECT * FROM tasks ORDER BY created_at")
            rows = await cursor.fetchall()
        except aiosqlite.Error as e:
            raise BackendError(f"SQLite read failed: {e}") from e
        return [Task.from_dict(dict(row)) for row in rows]

    async def create_task(self, request: CreateTaskRequest) -> Task:
        task = request.to_task()
        values = task.to_dict()
        columns = ("id", "title", "description", "due_date", "priority", "status", "tags",
                   "background_color", "image", "is_deleted", "completed_at", "created_at", "updated_at")

        try:
            await self._execute(
                f"""
                INSERT INTO tasks ({', '.join(columns)})
                VALUES ({', '.join('?' for _ in columns)})
                """,
                *[_to_column(col, values[col]) for col in columns],
            )
        except BackendError:
            logger.error(f"Failed to insert task {task.id}")
            raise

        logger.info(f"Stored task: {task.id} - {task.title}")
        return task

    async def update_task(self, request: UpdateTaskRequest) -> Task:
        unknown = set(request.changes) - set(UPDATABLE_COLUMNS)
        if unknown:
            raise BackendError(f"Cannot update columns: {', '.join(sorted(unknown))}")

        if request.changes:
            columns = list(request.changes)
            set_clause = ", ".join(f"{col} = ?" for col in columns)
            params = [_to_column(col, request.changes[col]) for col in columns]
            updated = await self._execute(
                f"UPDATE tasks SET {set_clause} WHERE id = ?",
                *params, request.id,
            )
            if updated == 0:
                raise BackendError(f"Task not found: {request.id}")

        task = await self.get_task(request.id)
        if task is None:
            raise BackendError(f"Task not found: {request.id}")
        return task

    async def delete_task(self, task_id: str, deleted_at: Optional[datetime] = None) -> None:
        task = await self.get_task(task_id)
        if task is None:
            raise BackendError(f"Task not found: {task_id}")
        if task.is_deleted:
            return

        await self._execute(
            "UPDATE tasks SET is_deleted = 1, updated_at = ? WHERE id = ?",
            (deleted_at or datetime.utcnow()).isoformat(), task_id,
        )

    async def ping(self) -> bool:
        row = await self._fetchrow("SELECT 1 AS ok")
        return bool(row and row["ok"] == 1)

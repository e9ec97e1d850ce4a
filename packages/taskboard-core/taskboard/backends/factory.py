"""
Task backend factory.

Creates the appropriate backend based on configuration.
"""

import logging

from taskboard.backends.interface import TaskBackend

logger = logging.getLogger(__name__)


def get_backend(config=None) -> TaskBackend:
    """
    Create a task backend from configuration.

    A new instance is returned on every call; the dashboard session that
    owns it is responsible for closing it.

    Args:
        config: Optional TaskboardConfig. If not provided, loads from default location.

    Returns:
        TaskBackend instance (MemoryTaskBackend or SQLiteTaskBackend)

    Raises:
        ValueError: If backend configuration is invalid
    """
    if config is None:
        from taskboard.config import load_config
        config = load_config()

    backend_type = config.backend.type.lower()

    if backend_type in ("memory", "mock"):
        from taskboard.backends.memory import MemoryTaskBackend

        logger.info("Using in-memory mock backend")
        return MemoryTaskBackend(seed_mock_data=config.backend.seed_mock_data)

    if backend_type == "sqlite":
        from taskboard.backends.sqlite import SQLiteTaskBackend

        path = config.backend.sqlite_path
        logger.info(f"Using SQLite backend: {path}")
        return SQLiteTaskBackend(path)

    raise ValueError(
        f"Unknown backend type: {backend_type}. "
        "Use 'memory' or 'sqlite'."
    )

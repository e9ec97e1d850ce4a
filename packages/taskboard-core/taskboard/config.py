"""
Taskboard Configuration

Loads settings from ~/.taskboard/config.yaml with environment variable overrides.
Selects the task backend (in-memory mock or SQLite) and dashboard limits.
"""

from __future__ import annotations
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import Optional
import os
import logging

import yaml

from taskboard.models.requests import MAX_IMAGE_BYTES

logger = logging.getLogger(__name__)

CONFIG_DIR = Path.home() / ".taskboard"
CONFIG_FILE = CONFIG_DIR / "config.yaml"

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


@dataclass
class BackendConfig:
    """Persistence backend settings."""

    type: str = "memory"  # "memory" or "sqlite"
    seed_mock_data: bool = True
    sqlite_path: str = "~/.taskboard/taskboard.db"


@dataclass
class DashboardConfig:
    """Dashboard behaviour settings."""

    max_image_bytes: int = MAX_IMAGE_BYTES
    notification_limit: int = 20


@dataclass
class LoggingConfig:
    """Logging settings."""

    level: str = "INFO"


@dataclass
class TaskboardConfig:
    """
    Complete Taskboard configuration.

    Loaded from ~/.taskboard/config.yaml with environment variable overrides.
    """

    backend: BackendConfig = field(default_factory=BackendConfig)
    dashboard: DashboardConfig = field(default_factory=DashboardConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def to_dict(self) -> dict:
        """Convert to dictionary for display."""
        return asdict(self)


def _parse_backend_config(data: dict) -> BackendConfig:
    """Parse backend configuration from YAML data."""
    backend_data = data.get("backend") or {}
    sqlite_config = backend_data.get("sqlite") or {}

    return BackendConfig(
        type=backend_data.get("type", "memory"),
        seed_mock_data=bool(backend_data.get("seed_mock_data", True)),
        sqlite_path=sqlite_config.get("path", "~/.taskboard/taskboard.db"),
    )


def _parse_dashboard_config(data: dict) -> DashboardConfig:
    """Parse dashboard configuration from YAML data."""
    dashboard_data = data.get("dashboard") or {}

    return DashboardConfig(
        max_image_bytes=int(dashboard_data.get("max_image_bytes", MAX_IMAGE_BYTES)),
        notification_limit=int(dashboard_data.get("notification_limit", 20)),
    )


def _parse_logging_config(data: dict) -> LoggingConfig:
    logging_data = data.get("logging") or {}
    return LoggingConfig(level=str(logging_data.get("level", "INFO")).upper())


def load_config(config_path: Optional[Path] = None) -> TaskboardConfig:
    """
    Load configuration from file with environment variable overrides.

    Args:
        config_path: Optional path to config file. Defaults to ~/.taskboard/config.yaml

    Returns:
        TaskboardConfig instance
    """
    config_file = config_path or CONFIG_FILE
    config = TaskboardConfig()

    if config_file.exists():
        try:
            with open(config_file, 'r') as f:
                data = yaml.safe_load(f) or {}

            config.backend = _parse_backend_config(data)
            config.dashboard = _parse_dashboard_config(data)
            config.logging = _parse_logging_config(data)

        except yaml.YAMLError as e:
            logger.warning(f"Could not parse config file at {config_file}: {e}")
        except (OSError, TypeError, ValueError, AttributeError) as e:
            logger.warning(f"Unexpected error loading config from {config_file}: {e}")

    # Environment variable overrides
    if os.environ.get("TASKBOARD_BACKEND"):
        config.backend.type = os.environ["TASKBOARD_BACKEND"]

    if os.environ.get("TASKBOARD_SQLITE_PATH"):
        config.backend.type = "sqlite"
        config.backend.sqlite_path = os.environ["TASKBOARD_SQLITE_PATH"]

    if os.environ.get("TASKBOARD_LOG_LEVEL"):
        config.logging.level = os.environ["TASKBOARD_LOG_LEVEL"].upper()

    return config


def save_config(config: TaskboardConfig, config_path: Optional[Path] = None) -> None:
    """
    Save configuration to file.

    Args:
        config: TaskboardConfig instance to save
        config_path: Optional path to config file. Defaults to ~/.taskboard/config.yaml
    """
    config_file = config_path or CONFIG_FILE
    config_file.parent.mkdir(parents=True, exist_ok=True)

    data = {
        "backend": {
            "type": config.backend.type,
            "seed_mock_data": config.backend.seed_mock_data,
        },
        "dashboard": {
            "max_image_bytes": config.dashboard.max_image_bytes,
            "notification_limit": config.dashboard.notification_limit,
        },
        "logging": {
            "level": config.logging.level,
        },
    }

    if config.backend.type == "sqlite":
        data["backend"]["sqlite"] = {"path": config.backend.sqlite_path}

    with open(config_file, 'w') as f:
        yaml.dump(data, f, default_flow_style=False, sort_keys=False)

    logger.info(f"Configuration saved to {config_file}")


def configure_logging(config: Optional[TaskboardConfig] = None) -> None:
    """Apply the configured log level to the root logger (stderr)."""
    config = config or get_config()
    level = getattr(logging, config.logging.level.upper(), logging.INFO)
    logging.basicConfig(level=level, format=LOG_FORMAT)
    logging.getLogger().setLevel(level)


# Cached config instance
_config: Optional[TaskboardConfig] = None


def get_config() -> TaskboardConfig:
    """Get cached config instance, loading if needed."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reload_config() -> TaskboardConfig:
    """Force reload config from file."""
    global _config
    _config = load_config()
    return _config

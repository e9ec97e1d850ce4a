"""
Integration tests for taskboard.

These tests verify the full stack works together:
- Config selects the backend
- Dashboard opens, loads, mutates and reopens against the same database
- MCP server initializes from config
"""

import pytest
from datetime import date


@pytest.fixture
def sqlite_env(tmp_path, monkeypatch):
    """Point the configuration at a temporary SQLite database."""
    from taskboard import config as config_module

    db_path = tmp_path / "board.db"
    monkeypatch.setenv("TASKBOARD_SQLITE_PATH", str(db_path))
    monkeypatch.setattr(config_module, "CONFIG_FILE", tmp_path / "missing.yaml")
    monkeypatch.setattr(config_module, "_config", None)
    return db_path


class TestDashboardOverSQLite:
    """Test a dashboard session end to end on SQLite."""

    @pytest.mark.asyncio
    async def test_session_survives_reopen(self, sqlite_env, sample_form):
        from taskboard.config import load_config
        from taskboard.dashboard import Dashboard

        config = load_config()
        assert config.backend.type == "sqlite"

        async with Dashboard.from_config(config) as board:
            created = (await board.create(sample_form)).unwrap()
            await board.cycle_status(created.id)
            await board.set_color(created.id, "#FFF3E0")

            other = (await board.create(sample_form)).unwrap()
            await board.delete(other.id)

        assert sqlite_env.exists()

        async with Dashboard.from_config(config) as board:
            assert len(board.tasks) == 2
            active = board.active_tasks
            assert [t.id for t in active] == [created.id]
            assert active[0].status == "In Progress"
            assert active[0].background_color == "#FFF3E0"
            assert board.task_status.in_progress.to_dict() == {"count": 1, "percentage": 100}

    @pytest.mark.asyncio
    async def test_today_counter(self, sqlite_env, sample_form):
        from taskboard.config import load_config
        from taskboard.dashboard import Dashboard

        async with Dashboard.from_config(load_config()) as board:
            board._today = lambda: date(2024, 6, 21)
            await board.create(sample_form)

            assert board.todo_stats.total == 1


class TestMCPServerStartup:
    """Test that the MCP server initializes from config."""

    @pytest.mark.asyncio
    async def test_ensure_initialized(self, sqlite_env):
        from taskboard_mcp import server

        try:
            dashboard = await server.ensure_initialized()
            again = await server.ensure_initialized()

            assert dashboard is again
            health = await server.taskboard_health()
            assert health["status"] == "healthy"
            assert health["backend"] == "sqlite"
        finally:
            await server.shutdown()

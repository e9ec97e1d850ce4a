"""
Taskboard MCP Server

Exposes the task dashboard (create, update, soft delete, status cycling,
search and statistics) as MCP tools.
"""

import logging
from typing import List, Optional

from mcp.server.fastmcp import FastMCP

from taskboard.dashboard import Dashboard
from taskboard.errors import NotFoundError, ValidationError
from taskboard.models import TaskFormData
from taskboard.services import SyncResult
from taskboard.views import active_tasks, completed_tasks, task_card

# Initialize FastMCP server
mcp = FastMCP("taskboard")

logger = logging.getLogger(__name__)

# Global state
_dashboard: Optional[Dashboard] = None


async def ensure_initialized() -> Dashboard:
    """Ensure the dashboard session is open and loaded."""
    global _dashboard
    if _dashboard is not None:
        return _dashboard

    from taskboard.config import get_config

    dashboard = Dashboard.from_config(get_config())
    await dashboard.open()

    _dashboard = dashboard
    logger.info("Taskboard initialized")
    return _dashboard


async def shutdown() -> None:
    """Close the dashboard session, if one is open."""
    global _dashboard
    if _dashboard is not None:
        await _dashboard.close()
        _dashboard = None


def _result_dict(result: SyncResult) -> dict:
    if not result.ok:
        return {
            "error": str(result.error),
            "rolled_back": True,
            "task": result.task.to_dict() if result.task else None,
        }
    return result.task.to_dict() if result.task else {"success": True}


def _validation_error(e: ValidationError) -> dict:
    return {"error": str(e), "fields": e.errors}


# =============================================================================
# TASK TOOLS
# =============================================================================

@mcp.tool()
async def taskboard_list(query: Optional[str] = None) -> dict:
    """
    List active and completed tasks, optionally filtered by a search query.

    Args:
        query: Case-insensitive text matched against title, description and tags

    Returns:
        Active and completed tasks with counts
    """
    dashboard = await ensure_initialized()
    active = active_tasks(dashboard.tasks, query)
    completed = completed_tasks(dashboard.tasks, query)
    today = dashboard.today

    return {
        "active": [task_card(t, today) for t in active],
        "completed": [task_card(t, today) for t in completed],
        "count": len(active) + len(completed),
    }


@mcp.tool()
async def taskboard_show(task_id: str) -> dict:
    """
    Get detailed information about a task.

    Args:
        task_id: Task ID

    Returns:
        Full task details
    """
    dashboard = await ensure_initialized()
    try:
        task = dashboard.service.get(task_id)
    except NotFoundError as e:
        return {"error": str(e)}
    return task.to_dict()


@mcp.tool()
async def taskboard_create(
    title: str,
    due_date: str,
    description: str,
    priority: str = "Medium",
    tags: Optional[List[str]] = None,
    background_color: Optional[str] = None,
    image: Optional[str] = None,
) -> dict:
    """
    Create a new task.

    Args:
        title: Task title (at least 3 characters)
        due_date: Due date as YYYY-MM-DD
        description: Task description (at least 10 characters)
        priority: High, Medium or Low
        tags: List of tags
        background_color: Card colour as #RRGGBB
        image: Image data URL or asset path

    Returns:
        Created task details
    """
    dashboard = await ensure_initialized()
    form = TaskFormData(
        title=title,
        due_date=due_date,
        priority=priority,
        description=description,
        image=image,
        tags=tags,
        background_color=background_color,
    )

    try:
        result = await dashboard.create(form)
    except ValidationError as e:
        return _validation_error(e)

    return _result_dict(result)


@mcp.tool()
async def taskboard_update(
    task_id: str,
    title: Optional[str] = None,
    description: Optional[str] = None,
    due_date: Optional[str] = None,
    priority: Optional[str] = None,
    status: Optional[str] = None,
    tags: Optional[List[str]] = None,
    background_color: Optional[str] = None,
) -> dict:
    """
    Update a task.

    Args:
        task_id: Task ID
        title: New title
        description: New description
        due_date: New due date (YYYY-MM-DD)
        priority: New priority (High, Medium, Low)
        status: New status (Not Started, In Progress, Completed)
        tags: New tags
        background_color: New card colour (#RRGGBB)

    Returns:
        Updated task details
    """
    dashboard = await ensure_initialized()
    fields = {
        "title": title,
        "description": description,
        "due_date": due_date,
        "priority": priority,
        "status": status,
        "tags": tags,
        "background_color": background_color,
    }

    try:
        result = await dashboard.update(task_id, **{k: v for k, v in fields.items() if v is not None})
    except NotFoundError as e:
        return {"error": str(e)}
    except ValidationError as e:
        return _validation_error(e)

    return _result_dict(result)


@mcp.tool()
async def taskboard_delete(task_id: str) -> dict:
    """
    Soft delete a task. It disappears from every list but is kept.

    Args:
        task_id: Task ID

    Returns:
        Deletion status
    """
    dashboard = await ensure_initialized()
    try:
        result = await dashboard.delete(task_id)
    except NotFoundError as e:
        return {"error": str(e)}

    if not result.ok:
        return _result_dict(result)
    return {"success": True, "task_id": task_id}


@mcp.tool()
async def taskboard_cycle_status(task_id: str) -> dict:
    """
    Advance a task: Not Started -> In Progress -> Completed -> Not Started.

    Args:
        task_id: Task ID

    Returns:
        Updated task details
    """
    dashboard = await ensure_initialized()
    try:
        result = await dashboard.cycle_status(task_id)
    except NotFoundError as e:
        return {"error": str(e)}
    return _result_dict(result)


@mcp.tool()
async def taskboard_restore(task_id: str) -> dict:
    """
    Move a completed task back to In Progress.

    Args:
        task_id: Task ID

    Returns:
        Updated task details
    """
    dashboard = await ensure_initialized()
    try:
        result = await dashboard.restore(task_id)
    except NotFoundError as e:
        return {"error": str(e)}
    return _result_dict(result)


# =============================================================================
# DASHBOARD TOOLS
# =============================================================================

@mcp.tool()
async def taskboard_stats() -> dict:
    """
    Dashboard statistics: tasks due today and the per-status breakdown.

    Returns:
        Today counter, status counts/percentages and pending notifications
    """
    dashboard = await ensure_initialized()
    return {
        "todo": dashboard.todo_stats.to_dict(),
        "status": dashboard.task_status.to_dict(),
        "notifications": [n.message for n in dashboard.notifications],
    }


@mcp.tool()
async def taskboard_health() -> dict:
    """
    Check backend connectivity.

    Returns:
        Health status including backend type and task count
    """
    dashboard = await ensure_initialized()
    backend = dashboard.service.backend

    try:
        connected = await backend.ping()
    except Exception as e:
        connected = False
        logger.error(f"Health check failed: {e}")

    return {
        "status": "healthy" if connected else "unhealthy",
        "backend": backend.name,
        "task_count": len(dashboard.tasks),
    }


# =============================================================================
# CLI ENTRY POINT
# =============================================================================

def create_server() -> FastMCP:
    """Return the configured MCP server."""
    return mcp


def main():
    """Main entry point for taskboard-mcp command."""
    import argparse

    from taskboard.config import configure_logging, get_config

    parser = argparse.ArgumentParser(description="Taskboard MCP Server")
    parser.add_argument("--log-level", help="Override the configured log level (DEBUG, INFO, ...)")
    args = parser.parse_args()

    config = get_config()
    if args.log_level:
        config.logging.level = args.log_level.upper()
    configure_logging(config)
    mcp.run()


if __name__ == "__main__":
    main()

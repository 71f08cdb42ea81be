"""MCP tool registration for mono-task-note."""

import json
import logging
from typing import List, Optional

from mcp.server.fastmcp import FastMCP

from api.task_handlers import (
    handle_next_occurrence,
    handle_notices,
    handle_set_days_of_month,
    handle_set_days_of_week,
    handle_set_scheduled_times,
    handle_status,
    handle_task_complete,
    handle_task_get,
    handle_task_list,
    handle_task_toggle,
    handle_task_uncomplete,
)

log = logging.getLogger(__name__)


def _split_csv(value: str) -> List[str]:
    return [part.strip() for part in value.split(",") if part.strip()]


def register_tools(mcp: FastMCP, manager) -> None:
    """Register all MCP tools onto the FastMCP instance."""

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @mcp.tool()
    def task_list(
        done: Optional[bool] = None,
        recurring: Optional[bool] = None,
        due_before: Optional[str] = None,
        limit: int = 200,
    ) -> str:
        """
        List task notes (notes whose frontmatter has ``type: task``).

        Args:
            done: True = only completed tasks, False = only open, omit = all
            recurring: True = only recurring tasks, False = exclude them
            due_before: ISO date (YYYY-MM-DD); tasks due on or before this date
            limit: Maximum number of results (default 200)

        Returns:
            JSON array of task objects
        """
        return json.dumps(
            handle_task_list(
                manager, done=done, recurring=recurring, due_before=due_before, limit=limit
            ),
            indent=2,
        )

    @mcp.tool()
    def task_get(task_id: str) -> str:
        """
        Get a task note's state and recurrence rule.

        Args:
            task_id: Vault-relative note path (e.g. "tasks/1712345678.md")
        """
        return json.dumps(handle_task_get(manager, task_id=task_id), indent=2)

    @mcp.tool()
    def task_next_occurrence(task_id: str) -> str:
        """
        Preview the next occurrence of a recurring task without changing it.

        Returns:
            JSON object with due_date (YYYY-MM-DD), scheduled_time (HH:mm) and
            resolved=false when no next occurrence exists
        """
        return json.dumps(handle_next_occurrence(manager, task_id=task_id), indent=2)

    @mcp.tool()
    def notices(limit: int = 20) -> str:
        """Recent user-visible notices (warnings and failures), newest last."""
        return json.dumps(handle_notices(manager, limit=limit), indent=2)

    @mcp.tool()
    def service_status() -> str:
        """Vault root, exclusions, note/task counts and done_at format."""
        return json.dumps(handle_status(manager), indent=2)

    # ------------------------------------------------------------------
    # Completion commands
    # ------------------------------------------------------------------

    @mcp.tool()
    def task_complete(task_id: str) -> str:
        """
        Complete a task.

        Recurring tasks advance due_date/scheduled_time to the next
        occurrence and stay open; other tasks get done=true and a done_at
        timestamp. Notes that are not tasks are left alone.
        """
        return json.dumps(handle_task_complete(manager, task_id=task_id), indent=2)

    @mcp.tool()
    def task_uncomplete(task_id: str) -> str:
        """Reopen a task (done=false, done_at removed)."""
        return json.dumps(handle_task_uncomplete(manager, task_id=task_id), indent=2)

    @mcp.tool()
    def task_toggle(task_id: str) -> str:
        """Complete an open task or reopen a completed one."""
        return json.dumps(handle_task_toggle(manager, task_id=task_id), indent=2)

    # ------------------------------------------------------------------
    # Recurrence rule
    # ------------------------------------------------------------------

    @mcp.tool()
    def task_set_days_of_month(task_id: str, days: str) -> str:
        """
        Set the days of the month a recurring task falls on.

        Args:
            task_id: Vault-relative note path
            days: Comma-separated days 1-31 (e.g. "1,15"); empty clears
        """
        try:
            values = [int(d) for d in _split_csv(days)]
        except ValueError:
            return json.dumps({"error": f"Invalid days of month: {days!r}", "kind": "invalid"})
        return json.dumps(
            handle_set_days_of_month(manager, task_id=task_id, days=values), indent=2
        )

    @mcp.tool()
    def task_set_days_of_week(task_id: str, days: str) -> str:
        """
        Set the weekdays a recurring task falls on.

        Args:
            task_id: Vault-relative note path
            days: Comma-separated weekdays (e.g. "Mon,Wed,Fri"); empty clears
        """
        return json.dumps(
            handle_set_days_of_week(manager, task_id=task_id, days=_split_csv(days)), indent=2
        )

    @mcp.tool()
    def task_set_scheduled_times(task_id: str, times: str) -> str:
        """
        Set the time-of-day slots of a recurring task.

        Args:
            task_id: Vault-relative note path
            times: Comma-separated HH:mm times (e.g. "09:00,14:30"); empty clears
        """
        return json.dumps(
            handle_set_scheduled_times(manager, task_id=task_id, times=_split_csv(times)),
            indent=2,
        )

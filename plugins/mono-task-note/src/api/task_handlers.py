"""
Task handler functions shared by MCP tools and REST API.

Handlers are the command boundary: they return plain dicts and never let a
TaskNoteError escape. Failures of mutating commands are reported to the
notifier as a single line ("Failed to complete task: ...") and returned as
``{"error": ..., "kind": ...}``.
"""

import logging
from typing import List, Optional

from models.errors import NotATaskError, TaskNoteError
from models.task import TaskFrontmatter

log = logging.getLogger(__name__)


def _task_to_dict(task_id: str, fm: TaskFrontmatter) -> dict:
    """Serialize a task's frontmatter to a JSON-serializable dict."""
    return {
        "id": task_id,
        "done": fm.done,
        "done_at": fm.done_at,
        "due_date": fm.due_date,
        "scheduled_time": fm.scheduled_time,
        "priority": fm.priority,
        "attributes": list(fm.attributes),
        "is_recurring": fm.is_recurring,
        "recurrence": {
            "days_of_month": list(fm.recurring_days_of_month),
            "days_of_week": list(fm.recurring_days_of_week),
            "scheduled_times": list(fm.recurring_scheduled_times),
        },
    }


def _error(e: TaskNoteError) -> dict:
    return {"error": str(e), "kind": e.kind}


def _report(manager, verb: str, e: TaskNoteError) -> dict:
    message = f"Failed to {verb} task: {e}"
    manager.notifier.error(message)
    return _error(e)


def _state_result(task_id: str, fm: Optional[TaskFrontmatter]) -> dict:
    if fm is None:
        return {"id": task_id, "changed": False, "reason": "not a task"}
    result = _task_to_dict(task_id, fm)
    result["changed"] = True
    return result


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


def handle_task_get(manager, *, task_id: str) -> dict:
    try:
        fm = manager.read(task_id)
    except TaskNoteError as e:
        return _error(e)
    if not fm.is_task:
        return _error(NotATaskError(task_id))
    return _task_to_dict(task_id, fm)


def handle_task_list(
    manager,
    *,
    done: Optional[bool] = None,
    recurring: Optional[bool] = None,
    due_before: Optional[str] = None,
    limit: int = 200,
) -> List[dict]:
    """
    List task notes.

    Args:
        done: True = only completed, False = only open, omit = all
        recurring: True = only recurring, False = exclude recurring
        due_before: ISO date; only tasks due on or before this date
        limit: Max results
    """
    results = []
    for task_id, fm in manager.list_tasks():
        if done is not None and fm.done != done:
            continue
        if recurring is not None and fm.is_recurring != recurring:
            continue
        if due_before and not (fm.due_date and fm.due_date <= due_before):
            continue
        results.append(_task_to_dict(task_id, fm))
        if len(results) >= limit:
            break
    return results


def handle_next_occurrence(manager, *, task_id: str) -> dict:
    try:
        nxt = manager.preview_next(task_id)
    except TaskNoteError as e:
        return _error(e)
    result = {"id": task_id}
    result.update(nxt.to_dict())
    result["resolved"] = not nxt.is_empty
    return result


def handle_notices(manager, *, limit: int = 20) -> List[dict]:
    return [n.to_dict() for n in manager.notifier.recent(limit)]


def handle_status(manager) -> dict:
    store = manager.store
    notes = list(store.iter_notes())
    return {
        "vault_root": str(store.vault_root),
        "exclude_dirs": sorted(store.exclude_dirs),
        "notes": len(notes),
        "tasks": len(manager.list_tasks()),
        "done_at_format": manager.settings.effective_done_at_format,
    }


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


def handle_task_complete(manager, *, task_id: str) -> dict:
    try:
        return _state_result(task_id, manager.complete_task(task_id))
    except TaskNoteError as e:
        return _report(manager, "complete", e)


def handle_task_uncomplete(manager, *, task_id: str) -> dict:
    try:
        return _state_result(task_id, manager.uncomplete_task(task_id))
    except TaskNoteError as e:
        return _report(manager, "uncomplete", e)


def handle_task_toggle(manager, *, task_id: str) -> dict:
    try:
        return _state_result(task_id, manager.toggle_task(task_id))
    except TaskNoteError as e:
        return _report(manager, "toggle", e)


def handle_set_days_of_month(manager, *, task_id: str, days: List[int]) -> dict:
    try:
        return _task_to_dict(task_id, manager.set_days_of_month(task_id, days))
    except TaskNoteError as e:
        return _report(manager, "update recurrence of", e)


def handle_set_days_of_week(manager, *, task_id: str, days: List[str]) -> dict:
    try:
        return _task_to_dict(task_id, manager.set_days_of_week(task_id, days))
    except TaskNoteError as e:
        return _report(manager, "update recurrence of", e)


def handle_set_scheduled_times(manager, *, task_id: str, times: List[str]) -> dict:
    try:
        return _task_to_dict(task_id, manager.set_scheduled_times(task_id, times))
    except TaskNoteError as e:
        return _report(manager, "update recurrence of", e)

"""REST API routes for mono-task-note."""

from typing import List, Optional

from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel

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

# Error kind → HTTP status
_STATUS_BY_KIND = {
    "not_found": 404,
    "not_a_task": 404,
    "not_recurring": 409,
    "invalid": 422,
    "store": 500,
}


# ---------------------------------------------------------------------------
# Request body models
# ---------------------------------------------------------------------------


class DaysOfMonthBody(BaseModel):
    days: List[int]


class DaysOfWeekBody(BaseModel):
    days: List[str]


class ScheduledTimesBody(BaseModel):
    times: List[str]


def _raise_for_error(result):
    if isinstance(result, dict) and "error" in result:
        status_code = _STATUS_BY_KIND.get(result.get("kind"), 400)
        raise HTTPException(status_code=status_code, detail=result["error"])
    return result


# ---------------------------------------------------------------------------
# Route registration
# ---------------------------------------------------------------------------


def register_routes(app_router: APIRouter, manager) -> None:
    """
    Attach all REST routes that use the shared TaskManager.

    Task ids are vault-relative paths and may contain slashes, so the more
    specific ``/tasks/{id}/...`` routes are registered before ``/tasks/{id}``.
    """

    @app_router.get("/tasks")
    def list_tasks(
        done: Optional[bool] = Query(None),
        recurring: Optional[bool] = Query(None),
        due_before: Optional[str] = Query(None),
        limit: int = Query(200),
    ):
        return handle_task_list(
            manager, done=done, recurring=recurring, due_before=due_before, limit=limit
        )

    @app_router.post("/tasks/{task_id:path}/complete")
    def complete_task(task_id: str):
        return _raise_for_error(handle_task_complete(manager, task_id=task_id))

    @app_router.post("/tasks/{task_id:path}/uncomplete")
    def uncomplete_task(task_id: str):
        return _raise_for_error(handle_task_uncomplete(manager, task_id=task_id))

    @app_router.post("/tasks/{task_id:path}/toggle")
    def toggle_task(task_id: str):
        return _raise_for_error(handle_task_toggle(manager, task_id=task_id))

    @app_router.get("/tasks/{task_id:path}/next")
    def next_occurrence(task_id: str):
        return _raise_for_error(handle_next_occurrence(manager, task_id=task_id))

    @app_router.put("/tasks/{task_id:path}/recurrence/days-of-month")
    def set_days_of_month(task_id: str, body: DaysOfMonthBody):
        return _raise_for_error(
            handle_set_days_of_month(manager, task_id=task_id, days=body.days)
        )

    @app_router.put("/tasks/{task_id:path}/recurrence/days-of-week")
    def set_days_of_week(task_id: str, body: DaysOfWeekBody):
        return _raise_for_error(
            handle_set_days_of_week(manager, task_id=task_id, days=body.days)
        )

    @app_router.put("/tasks/{task_id:path}/recurrence/scheduled-times")
    def set_scheduled_times(task_id: str, body: ScheduledTimesBody):
        return _raise_for_error(
            handle_set_scheduled_times(manager, task_id=task_id, times=body.times)
        )

    @app_router.get("/tasks/{task_id:path}")
    def get_task(task_id: str):
        return _raise_for_error(handle_task_get(manager, task_id=task_id))

    @app_router.get("/notices")
    def list_notices(limit: int = Query(20)):
        return handle_notices(manager, limit=limit)

    @app_router.get("/status")
    def get_status():
        return handle_status(manager)

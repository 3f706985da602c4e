"""HTTP routes for the water task lifecycle."""

import logging
from typing import Any

from fastapi import APIRouter, Query
from pydantic import BaseModel, ConfigDict, Field

from hydration.core import clock
from hydration.core.errors import ValidationError
from hydration.services import water_task_service


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/water-task", tags=["water-task"])


class TaskActionRequest(BaseModel):
    """Body of /complete and /cancel. Fields are validated by the service."""

    model_config = ConfigDict(populate_by_name=True)

    openid: str | None = None
    task_id: str | int | None = Field(default=None, alias="taskId")


def _task_id(value: str | int | None) -> str | None:
    return str(value) if value is not None else None


@router.post("/complete")
async def complete_task(request: TaskActionRequest) -> dict[str, Any]:
    """Complete the given task, or the most recently due pending one."""
    task = await water_task_service.complete_task(openid=request.openid, task_id=_task_id(request.task_id))
    return {"success": True, "message": "Task completed", "task": task.to_response()}


@router.post("/cancel")
async def cancel_completion(request: TaskActionRequest) -> dict[str, Any]:
    """Revert a completed task to pending."""
    task = await water_task_service.cancel_completion(openid=request.openid, task_id=_task_id(request.task_id))
    return {"success": True, "message": "Completion cancelled", "task": task.to_response()}


@router.get("/list/{openid}")
async def list_tasks(openid: str, date: str | None = Query(default=None)) -> dict[str, Any]:
    """List a user's tasks, optionally for one YYYY-MM-DD day."""
    day = None
    if date:
        try:
            day = clock.parse_date(date)
        except ValueError as e:
            raise ValidationError(f"Invalid date {date!r}, expected YYYY-MM-DD") from e

    tasks = await water_task_service.list_tasks(openid=openid, day=day)
    return {"success": True, "count": len(tasks), "tasks": [task.to_response() for task in tasks]}


@router.get("/today-status/{openid}")
async def get_today_status(openid: str) -> dict[str, Any]:
    """Today's tasks with completion statistics."""
    status = await water_task_service.get_today_status(openid=openid)
    return {
        "success": True,
        "todayStats": status.stats.model_dump(by_alias=True),
        "tasks": [task.to_response() for task in status.tasks],
    }


@router.get("/today-water/{openid}")
async def get_today_water(openid: str) -> dict[str, Any]:
    """Water consumed today across completed tasks."""
    water = await water_task_service.get_today_water(openid=openid)
    return {
        "success": True,
        "totalWater": water.total_water,
        "completedCount": water.completed_count,
        "tasks": [task.to_response() for task in water.tasks],
    }


@router.delete("/delete/{openid}")
async def delete_all_tasks(openid: str) -> dict[str, Any]:
    """Reset an account by removing all of its tasks."""
    deleted = await water_task_service.delete_all_tasks(openid=openid)
    return {"success": True, "message": f"Deleted {deleted} tasks", "deletedCount": deleted}

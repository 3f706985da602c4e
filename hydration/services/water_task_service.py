"""Water task service: creation, state transitions, listing and daily stats."""

import logging
from datetime import date, datetime, time, timedelta

from hydration.core import clock
from hydration.core.config import settings
from hydration.core.db_client import ConflictError, RecordNotFoundError
from hydration.core.errors import (
    ErrorCode,
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
    require_field,
)
from hydration.core.logging import span
from hydration.domain.water_task import TaskStatus, WaterTask
from hydration.models.service_models import TodayStats, TodayStatus, TodayWater
from hydration.services import task_state_machine, task_store


logger = logging.getLogger(__name__)


async def create_task(
    *,
    openid: str,
    scheduled_time: datetime,
    water_amount: int | None = None,
) -> WaterTask:
    """Create a pending task at a slot, or return the one already there.

    Creation is idempotent: an existing task is returned unchanged (its
    amount is not updated). If a concurrent creator wins the race, the
    unique index rejects our insert and the winner's record is returned.

    Args:
        openid: Owner's openid
        scheduled_time: Slot the task is due at
        water_amount: Milliliters (defaults to the configured amount)

    Returns:
        The stored task
    """
    with span("water_task_service.create_task"):
        require_field(openid, "openid")
        amount = water_amount if water_amount is not None else settings.default_water_amount_ml
        if amount <= 0:
            raise ValidationError(f"water_amount must be positive, got {amount}")

        existing = await task_store.find_by_key(openid=openid, scheduled_time=scheduled_time)
        if existing:
            return existing

        try:
            task = await task_store.insert_task(
                openid=openid,
                scheduled_time=scheduled_time,
                water_amount=amount,
                created_at=clock.now(),
            )
        except ConflictError:
            existing = await task_store.find_by_key(openid=openid, scheduled_time=scheduled_time)
            if existing is None:
                raise
            logger.info("Task for %s at %s created concurrently, reusing it", openid, scheduled_time)
            return existing

        logger.info(
            "Created water task",
            extra={"openid": openid, "task_id": task.id, "scheduled_time": clock.format_timestamp(scheduled_time)},
        )
        return task


async def create_daily_tasks(
    *,
    openid: str,
    times: list[str] | None = None,
    water_amount: int | None = None,
    day: date | None = None,
) -> list[WaterTask]:
    """Materialize one day's checkpoints for a user.

    Slots strictly before now are skipped, so a user who becomes active
    mid-day gets a partial day starting from the next checkpoint.

    Args:
        openid: Owner's openid
        times: Ordered ``H:MM`` checkpoints (defaults to the configured eight)
        water_amount: Milliliters per task
        day: Civil day to create tasks for (defaults to today)

    Returns:
        Tasks created or already present, in checkpoint order
    """
    with span("water_task_service.create_daily_tasks"):
        require_field(openid, "openid")
        checkpoints = times if times is not None else settings.daily_task_times
        reference_day = day or clock.today()
        now = clock.now()

        tasks = []
        for checkpoint in checkpoints:
            slot = clock.at(reference_day, clock.parse_time_of_day(checkpoint))
            if slot < now:
                continue
            tasks.append(await create_task(openid=openid, scheduled_time=slot, water_amount=water_amount))

        logger.info("Daily tasks ready for %s: %d/%d slots", openid, len(tasks), len(checkpoints))
        return tasks


async def _get_owned_task(*, openid: str, task_id: str) -> WaterTask:
    """Fetch a task and check it belongs to ``openid``."""
    try:
        task = await task_store.get_task(task_id)
    except RecordNotFoundError as e:
        raise NotFoundError(f"Task not found: {task_id}") from e

    if task.openid != openid:
        logger.warning("Ownership mismatch", extra={"openid": openid, "task_id": task_id})
        raise ForbiddenError(f"Task {task_id} does not belong to this user")

    return task


async def _persist_transition(updated: WaterTask, *, previous: TaskStatus) -> WaterTask:
    """Write a transition only if nobody changed the task since it was read."""
    if not await task_store.save_task(updated, expected_status=previous):
        try:
            current = await task_store.get_task(updated.id)
        except RecordNotFoundError as e:
            raise NotFoundError(f"Task not found: {updated.id}") from e
        msg = f"Task {updated.id} changed concurrently and is now {current.status}"
        raise InvalidStateError(msg)
    return updated


async def complete_task(*, openid: str | None, task_id: str | None = None) -> WaterTask:
    """Mark a task completed.

    With ``task_id`` the given task is completed. Without it, the most
    recently due pending task (latest slot ``<= now``) is chosen.

    Raises:
        ValidationError: If openid is missing
        NotFoundError: If the task does not exist or no pending task is due
        ForbiddenError: If the task belongs to someone else
        InvalidStateError: If the task is not pending
    """
    with span("water_task_service.complete_task"):
        openid = require_field(openid, "openid")
        now = clock.now()

        if task_id:
            task = await _get_owned_task(openid=openid, task_id=task_id)
        else:
            candidates = await task_store.find_tasks(
                openid=openid,
                status=TaskStatus.PENDING,
                scheduled_until=now,
                sort="-scheduled_time",
                limit=1,
            )
            if not candidates:
                raise NotFoundError("No pending task found", code=ErrorCode.ERR_NO_PENDING_TASK)
            task = candidates[0]

        completed = task_state_machine.complete(task, completed_at=now)
        await _persist_transition(completed, previous=task.status)

        logger.info("Completed water task", extra={"openid": openid, "task_id": task.id})
        return completed


async def cancel_completion(*, openid: str | None, task_id: str | None) -> WaterTask:
    """Revert a completed task to pending.

    Raises:
        ValidationError: If openid or task_id is missing
        NotFoundError: If the task does not exist
        ForbiddenError: If the task belongs to someone else
        InvalidStateError: If the task is not completed
    """
    with span("water_task_service.cancel_completion"):
        openid = require_field(openid, "openid")
        task_id = require_field(task_id, "taskId")

        task = await _get_owned_task(openid=openid, task_id=task_id)
        reverted = task_state_machine.cancel_completion(task)
        await _persist_transition(reverted, previous=task.status)

        logger.info("Cancelled task completion", extra={"openid": openid, "task_id": task.id})
        return reverted


async def list_tasks(*, openid: str | None, day: date | None = None) -> list[WaterTask]:
    """List a user's tasks, optionally for one civil day, ordered by slot.

    Pending tasks whose slot has already passed are relabelled ``missed`` and
    persisted before being returned. This read-time relabel uses no grace
    period, unlike the expiration sweep.
    """
    with span("water_task_service.list_tasks"):
        openid = require_field(openid, "openid")

        if day is not None:
            start = clock.at(day, time.min)
            tasks = await task_store.find_tasks(
                openid=openid,
                scheduled_from=start,
                scheduled_until=start + timedelta(days=1, seconds=-1),
            )
        else:
            tasks = await task_store.find_tasks(openid=openid)

        now = clock.now()
        result = []
        for task in tasks:
            if task.status == TaskStatus.PENDING and task.scheduled_time < now:
                missed = task_state_machine.mark_missed(task)
                if await task_store.save_task(missed, expected_status=TaskStatus.PENDING):
                    task = missed
                else:
                    task = await task_store.get_task(task.id)
            result.append(task)

        return result


async def _get_today_tasks(openid: str, *, status: TaskStatus | None = None) -> list[WaterTask]:
    start, end = clock.day_bounds(clock.today())
    return await task_store.find_tasks(openid=openid, status=status, scheduled_from=start, scheduled_before=end)


def compute_today_stats(tasks: list[WaterTask]) -> TodayStats:
    """Compute daily statistics from stored statuses."""
    completed = [task for task in tasks if task.status == TaskStatus.COMPLETED]
    total = len(tasks)
    # Round half up
    completion_rate = (len(completed) * 200 + total) // (2 * total) if total else 0

    return TodayStats(
        total_tasks=total,
        completed_tasks=len(completed),
        missed_tasks=sum(1 for task in tasks if task.status == TaskStatus.MISSED),
        pending_tasks=sum(1 for task in tasks if task.status == TaskStatus.PENDING),
        total_water=sum(task.water_amount for task in completed),
        completion_rate=completion_rate,
    )


async def get_today_status(*, openid: str | None) -> TodayStatus:
    """Today's tasks and statistics. Read-only: nothing is relabelled."""
    with span("water_task_service.get_today_status"):
        openid = require_field(openid, "openid")
        tasks = await _get_today_tasks(openid)
        return TodayStatus(stats=compute_today_stats(tasks), tasks=tasks)


async def get_today_water(*, openid: str | None) -> TodayWater:
    """Water consumed today across completed tasks."""
    with span("water_task_service.get_today_water"):
        openid = require_field(openid, "openid")
        tasks = await _get_today_tasks(openid, status=TaskStatus.COMPLETED)
        return TodayWater(
            total_water=sum(task.water_amount for task in tasks),
            completed_count=len(tasks),
            tasks=tasks,
        )


async def delete_all_tasks(*, openid: str | None) -> int:
    """Delete every task a user owns (account reset). Returns the count removed."""
    with span("water_task_service.delete_all_tasks"):
        openid = require_field(openid, "openid")
        deleted = await task_store.delete_tasks(openid=openid)
        logger.info("Deleted %d water tasks for %s", deleted, openid)
        return deleted

"""Persistence contract for water tasks.

Thin layer over ``db_client`` that speaks ``WaterTask`` instead of raw rows.
Each call is independently atomic; there are no multi-task transactions.
The unique ``(openid, scheduled_time)`` index makes ``insert_task`` safe
against concurrent creators.
"""

import logging
from datetime import datetime

from hydration.core import clock, db_client
from hydration.core.db_client import sanitize_param
from hydration.domain.water_task import TaskStatus, WaterTask


logger = logging.getLogger(__name__)

COLLECTION = "water_tasks"


def _build_filter(
    *,
    task_id: str | None = None,
    openid: str | None = None,
    status: TaskStatus | None = None,
    scheduled_time: datetime | None = None,
    scheduled_from: datetime | None = None,
    scheduled_before: datetime | None = None,
    scheduled_until: datetime | None = None,
) -> str:
    filters = []

    if task_id is not None:
        filters.append(f'id = "{sanitize_param(task_id)}"')
    if openid is not None:
        filters.append(f'openid = "{sanitize_param(openid)}"')
    if status is not None:
        filters.append(f'status = "{sanitize_param(status)}"')
    if scheduled_time is not None:
        filters.append(f'scheduled_time = "{clock.format_timestamp(scheduled_time)}"')
    if scheduled_from is not None:
        filters.append(f'scheduled_time >= "{clock.format_timestamp(scheduled_from)}"')
    if scheduled_before is not None:
        filters.append(f'scheduled_time < "{clock.format_timestamp(scheduled_before)}"')
    if scheduled_until is not None:
        filters.append(f'scheduled_time <= "{clock.format_timestamp(scheduled_until)}"')

    return " && ".join(filters)


async def find_by_key(*, openid: str, scheduled_time: datetime) -> WaterTask | None:
    """Return the task at ``(openid, scheduled_time)`` if it exists."""
    record = await db_client.get_first_record(
        collection=COLLECTION,
        filter_query=_build_filter(openid=openid, scheduled_time=scheduled_time),
    )
    return WaterTask.model_validate(record) if record else None


async def get_task(task_id: str) -> WaterTask:
    """Fetch a task by id.

    Raises:
        db_client.RecordNotFoundError: If no task has this id
    """
    record = await db_client.get_record(collection=COLLECTION, record_id=task_id)
    return WaterTask.model_validate(record)


async def insert_task(
    *,
    openid: str,
    scheduled_time: datetime,
    water_amount: int,
    created_at: datetime,
) -> WaterTask:
    """Insert a new pending task.

    Raises:
        db_client.ConflictError: If a task already exists at ``(openid, scheduled_time)``
    """
    record = await db_client.create_record(
        collection=COLLECTION,
        data={
            "openid": openid,
            "scheduled_time": clock.format_timestamp(scheduled_time),
            "status": TaskStatus.PENDING.value,
            "water_amount": water_amount,
            "completed_at": None,
            "created_at": clock.format_timestamp(created_at),
        },
    )
    return WaterTask.model_validate(record)


async def find_tasks(
    *,
    openid: str | None = None,
    status: TaskStatus | None = None,
    scheduled_from: datetime | None = None,
    scheduled_before: datetime | None = None,
    scheduled_until: datetime | None = None,
    sort: str = "+scheduled_time",
    limit: int | None = None,
) -> list[WaterTask]:
    """Find tasks by owner, status and slot range.

    Args:
        openid: Owner equality
        status: Status equality
        scheduled_from: Slot >= this instant
        scheduled_before: Slot < this instant
        scheduled_until: Slot <= this instant
        sort: ``+field`` / ``-field``
        limit: Return at most this many tasks (all when None)
    """
    filter_query = _build_filter(
        openid=openid,
        status=status,
        scheduled_from=scheduled_from,
        scheduled_before=scheduled_before,
        scheduled_until=scheduled_until,
    )

    if limit is None:
        records = await db_client.list_all_records(collection=COLLECTION, filter_query=filter_query, sort=sort)
    else:
        records = await db_client.list_records(
            collection=COLLECTION,
            per_page=limit,
            filter_query=filter_query,
            sort=sort,
        )

    logger.debug("Found %d tasks with filters: %s", len(records), filter_query)
    return [WaterTask.model_validate(record) for record in records]


async def count_tasks(
    *,
    openid: str | None = None,
    status: TaskStatus | None = None,
    scheduled_from: datetime | None = None,
    scheduled_before: datetime | None = None,
) -> int:
    """Count tasks matching the same filters as ``find_tasks``."""
    return await db_client.count_records(
        collection=COLLECTION,
        filter_query=_build_filter(
            openid=openid,
            status=status,
            scheduled_from=scheduled_from,
            scheduled_before=scheduled_before,
        ),
    )


async def save_task(task: WaterTask, *, expected_status: TaskStatus | None = None) -> bool:
    """Write a previously fetched task back in place.

    With ``expected_status`` the write only happens while the stored status
    still equals it, so two writers racing on the same task cannot both win.

    Returns:
        True if the row was written
    """
    record = task.to_record()
    data = {
        "status": record["status"],
        "completed_at": record["completed_at"],
    }
    filter_query = _build_filter(task_id=task.id, status=expected_status)
    updated = await db_client.update_records(collection=COLLECTION, filter_query=filter_query, data=data)
    return updated > 0


async def delete_tasks(*, openid: str) -> int:
    """Delete every task owned by ``openid`` and return how many were removed."""
    return await db_client.delete_records(collection=COLLECTION, filter_query=_build_filter(openid=openid))

"""Expiration sweep: pending tasks past their grace period become missed."""

import logging
from datetime import timedelta

from hydration.core import clock
from hydration.core.config import settings
from hydration.core.logging import log_with_context, span
from hydration.domain.water_task import TaskStatus
from hydration.services import task_state_machine, task_store


logger = logging.getLogger(__name__)


async def sweep_expired_tasks(*, grace_period: timedelta | None = None) -> int:
    """Mark every pending task whose slot is older than ``now - grace_period`` as missed.

    Each task is written with a compare-and-set on ``pending``, so a sweep
    running concurrently with another sweep (or with a user completing the
    task) never overwrites a status that already moved on. A failure on one
    task is logged and the sweep continues with the next.

    Args:
        grace_period: Delay after a slot before it expires (defaults to the configured 15 minutes)

    Returns:
        Number of tasks this pass transitioned to missed
    """
    with span("expiration_service.sweep_expired_tasks"):
        grace = grace_period if grace_period is not None else timedelta(minutes=settings.expiration_grace_minutes)
        cutoff = clock.now() - grace

        expired = await task_store.find_tasks(status=TaskStatus.PENDING, scheduled_before=cutoff)
        logger.info("Found %d expired pending tasks (cutoff %s)", len(expired), clock.format_timestamp(cutoff))

        swept = 0
        for task in expired:
            try:
                missed = task_state_machine.mark_missed(task)
                if await task_store.save_task(missed, expected_status=TaskStatus.PENDING):
                    swept += 1
            except Exception as e:
                log_with_context(
                    logger, "error", "Failed to expire task", task_id=task.id, openid=task.openid, error=str(e)
                )
                continue

        logger.info("Marked %d tasks as missed", swept)
        return swept

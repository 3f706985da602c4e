"""Daily reconciliation: make sure every known user has today's task set."""

import logging

from hydration.core import clock
from hydration.core.logging import log_with_context, span
from hydration.models.service_models import ReconcileSummary
from hydration.services import task_store, user_service, water_task_service


logger = logging.getLogger(__name__)


async def ensure_today_tasks() -> ReconcileSummary:
    """Bootstrap today's tasks for users who have none.

    Every known user is checked, subscribed or not. A user with at least one
    task today is skipped entirely: the reconciler bootstraps an empty day
    but never tops up a partial one. Users are processed sequentially in
    store order; a failure on one user is logged and the run continues.
    """
    with span("reconciliation_service.ensure_today_tasks"):
        users = await user_service.list_users()
        start, end = clock.day_bounds(clock.today())
        summary = ReconcileSummary()

        logger.info("Checking today's water tasks for %d users", len(users))

        for user in users:
            summary.users_checked += 1
            try:
                existing = await task_store.count_tasks(openid=user.openid, scheduled_from=start, scheduled_before=end)
                if existing:
                    logger.debug("User %s already has %d tasks today, skipping", user.openid, existing)
                    continue

                created = await water_task_service.create_daily_tasks(openid=user.openid)
                summary.users_bootstrapped += 1
                summary.tasks_created += len(created)
                logger.info("Created today's water tasks for %s (%d tasks)", user.openid, len(created))
            except Exception as e:
                summary.failures += 1
                log_with_context(
                    logger, "error", "Failed to reconcile tasks for user", openid=user.openid, error=str(e)
                )
                continue

        logger.info(
            "Daily task reconciliation complete",
            extra=summary.model_dump(),
        )
        return summary

"""Scheduler for automated jobs (reminders, expiration, daily reconciliation)."""

import logging
from functools import partial

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from hydration.core import clock
from hydration.core.config import constants, settings
from hydration.core.scheduler_tracker import run_tracked_job
from hydration.domain.user import User
from hydration.interface.wechat_client import send_water_reminder
from hydration.models.service_models import ReconcileSummary, ReminderRunSummary
from hydration.services import expiration_service, reconciliation_service, user_service


logger = logging.getLogger(__name__)

# Global scheduler instance
scheduler = AsyncIOScheduler()

EXPIRE_JOB_ID = "expire_overdue_tasks"
RECONCILE_JOB_ID = "reconcile_daily_tasks"
STARTUP_RECONCILE_JOB_ID = "startup_reconcile"


def reminder_job_id(index: int) -> str:
    return f"water_reminder_{index}"


def job_names() -> list[str]:
    """Names of every job the scheduler registers, for health reporting."""
    reminders = [reminder_job_id(i) for i in range(len(settings.reminder_crons))]
    return [*reminders, EXPIRE_JOB_ID, RECONCILE_JOB_ID, STARTUP_RECONCILE_JOB_ID]


async def _send_reminder_to_user(user: User) -> bool:
    """Send one reminder and record it on success.

    Returns:
        True if reminder was sent successfully, False otherwise
    """
    result = await send_water_reminder(openid=user.openid, nickname=user.nickname)
    if not result.success:
        logger.warning("Failed to send reminder to %s: %s", user.openid, result.error)
        return False

    await user_service.mark_reminded(user_id=user.id)
    logger.info("Sent water reminder to %s", user.openid)
    return True


async def send_water_reminders() -> ReminderRunSummary:
    """Push a water reminder to every subscribed user.

    Users are processed one at a time. A failure for one user is logged and
    counted, and the run moves on to the next.
    """
    users = await user_service.list_users(subscribed=True)
    summary = ReminderRunSummary(users=len(users))
    logger.info("Sending water reminders to %d subscribed users", len(users))

    for user in users:
        try:
            sent = await _send_reminder_to_user(user)
        except Exception as e:
            logger.error("Error sending reminder to user %s: %s", user.openid, e)
            sent = False

        if sent:
            summary.sent += 1
        else:
            summary.failed += 1

    logger.info("Water reminders done: %d sent, %d failed", summary.sent, summary.failed)
    return summary


async def expire_overdue_tasks() -> int:
    """Mark pending tasks past their grace period as missed."""
    return await expiration_service.sweep_expired_tasks()


async def reconcile_daily_tasks() -> ReconcileSummary:
    """Create today's tasks for users who have none."""
    return await reconciliation_service.ensure_today_tasks()


def start_scheduler() -> None:
    """Start the scheduler and register all jobs.

    This should be called during FastAPI app startup.
    """
    logger.info("Starting scheduler")
    timezone = clock.get_timezone()
    scheduler.configure(timezone=timezone)

    for index, expr in enumerate(settings.reminder_crons):
        job_id = reminder_job_id(index)
        scheduler.add_job(
            partial(run_tracked_job, send_water_reminders, job_id),
            trigger=CronTrigger.from_crontab(expr, timezone=timezone),
            id=job_id,
            name=f"Send Water Reminders ({expr})",
            replace_existing=True,
        )
    logger.info("Scheduled %d water reminder jobs", len(settings.reminder_crons))

    # A slow sweep may still be running when the next one fires
    scheduler.add_job(
        partial(run_tracked_job, expire_overdue_tasks, EXPIRE_JOB_ID),
        trigger=IntervalTrigger(minutes=settings.expiration_sweep_minutes, timezone=timezone),
        id=EXPIRE_JOB_ID,
        name="Expire Overdue Water Tasks",
        max_instances=constants.SWEEP_MAX_INSTANCES,
        replace_existing=True,
    )
    logger.info(f"Scheduled expiration sweep: every {settings.expiration_sweep_minutes} minutes")

    scheduler.add_job(
        partial(run_tracked_job, reconcile_daily_tasks, RECONCILE_JOB_ID),
        trigger=CronTrigger(hour=settings.reconcile_hour, minute=settings.reconcile_minute, timezone=timezone),
        id=RECONCILE_JOB_ID,
        name="Reconcile Daily Water Tasks",
        replace_existing=True,
    )
    logger.info(f"Scheduled daily reconciliation: {settings.reconcile_hour}:{settings.reconcile_minute:02d}")

    # No trigger: runs once as soon as the scheduler starts
    scheduler.add_job(
        partial(run_tracked_job, reconcile_daily_tasks, STARTUP_RECONCILE_JOB_ID),
        id=STARTUP_RECONCILE_JOB_ID,
        name="Reconcile Daily Water Tasks On Startup",
        replace_existing=True,
    )

    scheduler.start()
    logger.info("Scheduler started successfully")


def stop_scheduler() -> None:
    """Stop the scheduler.

    This should be called during FastAPI app shutdown.
    """
    logger.info("Stopping scheduler")
    if scheduler.running:
        scheduler.shutdown(wait=True)
    logger.info("Scheduler stopped")

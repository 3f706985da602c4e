"""Job execution tracking and monitoring for scheduled jobs."""

import logging
from collections.abc import Awaitable, Callable
from typing import Any

from hydration.core import clock
from hydration.core.config import constants


logger = logging.getLogger(__name__)


class JobTracker:
    """Track job execution history and health status in process memory."""

    def __init__(self) -> None:
        """Initialize job tracker."""
        self._memory_storage: dict[str, dict[str, Any]] = {}

    def _job_data(self, job_name: str) -> dict[str, Any]:
        return self._memory_storage.setdefault(job_name, {})

    async def record_job_start(self, job_name: str) -> None:
        """Record job execution start.

        Args:
            job_name: Name of the scheduled job
        """
        self._job_data(job_name)["current_run"] = clock.format_timestamp(clock.now())

    async def record_job_success(self, job_name: str) -> None:
        """Record successful job execution.

        Args:
            job_name: Name of the scheduled job
        """
        job_data = self._job_data(job_name)
        job_data["last_success"] = clock.format_timestamp(clock.now())
        job_data["consecutive_failures"] = 0
        job_data["success_count"] = job_data.get("success_count", 0) + 1
        job_data.pop("current_run", None)

    async def record_job_failure(self, job_name: str, error: str) -> int:
        """Record failed job execution.

        Args:
            job_name: Name of the scheduled job
            error: Error message

        Returns:
            Number of consecutive failures including this one
        """
        job_data = self._job_data(job_name)
        job_data["last_failure"] = clock.format_timestamp(clock.now())
        job_data["last_error"] = error[: constants.TRACKER_ERROR_MAX_LENGTH]

        consecutive_failures = job_data.get("consecutive_failures", 0) + 1
        job_data["consecutive_failures"] = consecutive_failures
        job_data["failure_count"] = job_data.get("failure_count", 0) + 1
        job_data.pop("current_run", None)

        return consecutive_failures

    async def get_job_status(self, job_name: str) -> dict[str, Any]:
        """Get job execution status.

        Args:
            job_name: Name of the scheduled job

        Returns:
            Dict with job status information
        """
        job_data = self._memory_storage.get(job_name, {})
        return {
            "job_name": job_name,
            "last_success": job_data.get("last_success"),
            "last_failure": job_data.get("last_failure"),
            "last_error": job_data.get("last_error"),
            "consecutive_failures": job_data.get("consecutive_failures", 0),
            "success_count": job_data.get("success_count", 0),
            "failure_count": job_data.get("failure_count", 0),
            "currently_running": "current_run" in job_data,
            "current_run_started": job_data.get("current_run"),
        }


# Global job tracker instance
job_tracker = JobTracker()


async def run_tracked_job(job_func: Callable[[], Awaitable[Any]], job_name: str) -> None:
    """Execute a job once and record its outcome.

    Jobs are never retried here: the next scheduled firing is the retry.
    Failures are logged and recorded but not re-raised, so one failing run
    does not disturb the scheduler.

    Args:
        job_func: Async function to execute
        job_name: Name of the job for tracking
    """
    await job_tracker.record_job_start(job_name)

    try:
        logger.info("Executing %s", job_name)
        result = await job_func()
    except Exception as e:
        consecutive_failures = await job_tracker.record_job_failure(job_name, str(e))
        logger.exception(
            "%s failed",
            job_name,
            extra={"error": str(e), "consecutive_failures": consecutive_failures},
        )
        return

    await job_tracker.record_job_success(job_name)
    logger.info("%s completed successfully", job_name, extra={"result": repr(result)})

"""Pure state transition functions for the water task lifecycle.

    (none) --create--> pending
    pending --complete--> completed
    completed --cancel--> pending
    pending --sweep--> missed

``missed`` has no outgoing edge.
"""

import logging
from datetime import datetime

from hydration.core.errors import InvalidStateError
from hydration.domain.water_task import TaskStatus, WaterTask


logger = logging.getLogger(__name__)


def _describe_state(status: TaskStatus) -> str:
    if status == TaskStatus.COMPLETED:
        return "already completed"
    if status == TaskStatus.MISSED:
        return "already missed"
    return "still pending"


def complete(task: WaterTask, *, completed_at: datetime) -> WaterTask:
    """Transition a pending task to completed."""
    if task.status != TaskStatus.PENDING:
        msg = f"Cannot complete: task {task.id} is {_describe_state(task.status)}"
        raise InvalidStateError(msg)

    logger.debug("Transitioning task %s to COMPLETED", task.id)
    return task.model_copy(update={"status": TaskStatus.COMPLETED, "completed_at": completed_at})


def cancel_completion(task: WaterTask) -> WaterTask:
    """Transition a completed task back to pending, clearing completed_at."""
    if task.status != TaskStatus.COMPLETED:
        msg = f"Cannot cancel: only completed tasks can be cancelled, task {task.id} is {task.status}"
        raise InvalidStateError(msg)

    logger.debug("Transitioning task %s back to PENDING", task.id)
    return task.model_copy(update={"status": TaskStatus.PENDING, "completed_at": None})


def mark_missed(task: WaterTask) -> WaterTask:
    """Transition a pending task to missed."""
    if task.status != TaskStatus.PENDING:
        msg = f"Cannot mark missed: task {task.id} is {_describe_state(task.status)}"
        raise InvalidStateError(msg)

    return task.model_copy(update={"status": TaskStatus.MISSED})

"""Domain models and DTOs."""

from hydration.domain.user import User
from hydration.domain.water_task import TaskStatus, WaterTask


__all__ = [
    "TaskStatus",
    "User",
    "WaterTask",
]

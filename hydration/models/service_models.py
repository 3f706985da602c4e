"""Pydantic models for service layer return types."""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from hydration.domain.water_task import WaterTask


class TodayStats(BaseModel):
    """Derived statistics over one user's tasks for the current day."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    total_tasks: int = Field(..., ge=0, description="Tasks scheduled today")
    completed_tasks: int = Field(..., ge=0, description="Tasks completed today")
    missed_tasks: int = Field(..., ge=0, description="Tasks stored as missed")
    pending_tasks: int = Field(..., ge=0, description="Tasks still pending")
    total_water: int = Field(..., ge=0, description="Milliliters consumed across completed tasks")
    completion_rate: int = Field(..., ge=0, le=100, description="Rounded completed/total percentage")


class TodayStatus(BaseModel):
    """Today's statistics together with the tasks they were computed from."""

    stats: TodayStats
    tasks: list[WaterTask]


class TodayWater(BaseModel):
    """Water consumed today."""

    total_water: int = Field(..., ge=0, description="Milliliters consumed today")
    completed_count: int = Field(..., ge=0, description="Number of completed tasks today")
    tasks: list[WaterTask]


class ReconcileSummary(BaseModel):
    """Outcome of one daily reconciliation run."""

    users_checked: int = Field(default=0, ge=0)
    users_bootstrapped: int = Field(default=0, ge=0)
    tasks_created: int = Field(default=0, ge=0)
    failures: int = Field(default=0, ge=0)


class ReminderRunSummary(BaseModel):
    """Outcome of one reminder dispatch run."""

    users: int = Field(default=0, ge=0)
    sent: int = Field(default=0, ge=0)
    failed: int = Field(default=0, ge=0)

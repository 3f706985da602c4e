"""Water task domain models and enums."""

from datetime import datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator, model_validator
from pydantic.alias_generators import to_camel

from hydration.core import clock


class TaskStatus(StrEnum):
    """Water task lifecycle state."""

    PENDING = "pending"
    COMPLETED = "completed"
    MISSED = "missed"


class WaterTask(BaseModel):
    """One scheduled hydration checkpoint for one user.

    ``(openid, scheduled_time)`` is unique. Timestamps are aware datetimes in
    the civil timezone and serialize to ``YYYY-MM-DD HH:MM:SS``.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str = Field(..., description="Unique task ID from database")
    openid: str = Field(..., description="Owner's WeChat openid")
    scheduled_time: datetime = Field(..., description="Slot this task is due at")
    status: TaskStatus = Field(default=TaskStatus.PENDING, description="Current lifecycle state")
    water_amount: int = Field(..., gt=0, description="Amount to drink in milliliters")
    completed_at: datetime | None = Field(default=None, description="When the task was completed")
    created_at: datetime = Field(..., description="When the task was created")

    @field_validator("scheduled_time", "completed_at", "created_at", mode="before")
    @classmethod
    def parse_civil_timestamp(cls, v: Any) -> Any:
        """Accept the storage string format."""
        if isinstance(v, str):
            return clock.parse_timestamp(v)
        return v

    @model_validator(mode="after")
    def check_completed_at_matches_status(self) -> "WaterTask":
        """completed_at is set if and only if the task is completed."""
        if (self.status == TaskStatus.COMPLETED) != (self.completed_at is not None):
            msg = f"Task {self.id}: completed_at must be set iff status is completed (status={self.status})"
            raise ValueError(msg)
        return self

    @field_serializer("scheduled_time", "created_at")
    def serialize_timestamp(self, value: datetime) -> str:
        return clock.format_timestamp(value)

    @field_serializer("completed_at")
    def serialize_optional_timestamp(self, value: datetime | None) -> str | None:
        return clock.format_timestamp(value) if value else None

    def to_record(self) -> dict[str, Any]:
        """Column values for persistence (everything but the id)."""
        return self.model_dump(mode="json", exclude={"id"})

    def to_response(self) -> dict[str, Any]:
        """camelCase JSON body for HTTP clients."""
        return self.model_dump(mode="json", by_alias=True)

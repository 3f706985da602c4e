"""User domain models."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator
from pydantic.alias_generators import to_camel

from hydration.core import clock
from hydration.core.config import constants


class User(BaseModel):
    """Mini-program user as far as reminders are concerned."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str = Field(..., description="Unique user ID from database")
    openid: str = Field(..., description="WeChat openid")
    nickname: str = Field(default=constants.DEFAULT_NICKNAME, description="Display name used in reminders")
    subscribed: bool = Field(default=True, description="Whether the user receives reminders")
    created_at: datetime = Field(..., description="Registration timestamp")
    last_reminded: datetime | None = Field(default=None, description="Last successful reminder")

    @field_validator("created_at", "last_reminded", mode="before")
    @classmethod
    def parse_civil_timestamp(cls, v: Any) -> Any:
        """Accept the storage string format."""
        if isinstance(v, str):
            return clock.parse_timestamp(v)
        return v

    @field_validator("nickname")
    @classmethod
    def strip_nickname(cls, v: str) -> str:
        return v.strip() or constants.DEFAULT_NICKNAME

    @field_serializer("created_at")
    def serialize_timestamp(self, value: datetime) -> str:
        return clock.format_timestamp(value)

    @field_serializer("last_reminded")
    def serialize_optional_timestamp(self, value: datetime | None) -> str | None:
        return clock.format_timestamp(value) if value else None

    def to_response(self) -> dict[str, Any]:
        """camelCase JSON body for HTTP clients."""
        return self.model_dump(mode="json", by_alias=True)

"""Configuration management for hydration."""

from croniter import croniter
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_REMINDER_CRONS = [
    "55 6 * * *",  # 6:55
    "25 9 * * *",  # 9:25
    "55 10 * * *",  # 10:55
    "25 13 * * *",  # 13:25
    "25 15 * * *",  # 15:25
    "55 16 * * *",  # 16:55
    "25 19 * * *",  # 19:25
    "55 20 * * *",  # 20:55
]

DEFAULT_DAILY_TASK_TIMES = ["7:00", "9:30", "11:00", "13:30", "15:30", "17:00", "19:30", "21:00"]


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # SQLite Configuration
    sqlite_db_path: str = Field(default="./data/hydration.db", description="Path to the SQLite database file")

    # Civil time
    timezone: str = Field(default="Asia/Shanghai", description="IANA timezone all slots are expressed in")

    # WeChat Mini Program Configuration
    wechat_app_id: str | None = Field(default=None, description="WeChat mini program AppID")
    wechat_app_secret: str | None = Field(default=None, description="WeChat mini program AppSecret")
    wechat_template_id: str | None = Field(default=None, description="Subscribe message template ID")
    wechat_api_base_url: str = Field(default="https://api.weixin.qq.com", description="WeChat API base URL")
    wechat_reminder_page: str = Field(default="pages/index/index", description="Page opened from a reminder")

    # Pydantic Logfire Configuration (optional)
    logfire_token: str | None = Field(default=None, description="Pydantic Logfire token for observability")

    # Reminder & task schedule
    reminder_crons: list[str] = Field(
        default_factory=lambda: list(DEFAULT_REMINDER_CRONS),
        description="Crontab expressions (civil time) at which reminders are pushed",
    )
    daily_task_times: list[str] = Field(
        default_factory=lambda: list(DEFAULT_DAILY_TASK_TIMES),
        description="Ordered H:MM checkpoints materialized as tasks each day",
    )
    default_water_amount_ml: int = Field(default=250, gt=0, description="Water amount per task in milliliters")
    expiration_grace_minutes: int = Field(default=15, ge=0, description="Delay before a pending task is missed")
    expiration_sweep_minutes: int = Field(default=5, gt=0, description="Interval between expiration sweeps")
    reconcile_hour: int = Field(default=0, ge=0, le=23, description="Hour of the daily task reconciliation")
    reconcile_minute: int = Field(default=0, ge=0, le=59, description="Minute of the daily task reconciliation")

    @field_validator("reminder_crons")
    @classmethod
    def validate_reminder_crons(cls, v: list[str]) -> list[str]:
        """Reject crontab expressions APScheduler would not accept."""
        for expr in v:
            if not croniter.is_valid(expr):
                raise ValueError(f"Invalid reminder cron expression: {expr!r}")
        return v

    @field_validator("daily_task_times")
    @classmethod
    def validate_daily_task_times(cls, v: list[str]) -> list[str]:
        """Validate H:MM checkpoints."""
        for value in v:
            hours, sep, minutes = value.partition(":")
            if not sep or not hours.isdigit() or not minutes.isdigit():
                raise ValueError(f"Invalid task time {value!r}, expected H:MM")
            if int(hours) > 23 or int(minutes) > 59:  # noqa: PLR2004
                raise ValueError(f"Task time out of range: {value!r}")
        return v

    def require_credential(self, field_name: str, service_name: str) -> str:
        """Validate that a required credential is set, raising a clear error if missing.

        Args:
            field_name: Name of the field to check
            service_name: Human-readable service name for error message

        Returns:
            The credential value

        Raises:
            ValueError: If the credential is None or empty
        """
        value = getattr(self, field_name)
        if not value:
            raise ValueError(
                f"{service_name} credential not configured. "
                f"Set {field_name.upper()} environment variable or add to .env file."
            )
        return value


# Application Constants
class Constants:
    """Application-wide constants."""

    # API Configuration
    API_TIMEOUT_SECONDS: int = 30

    # WeChat access token
    ACCESS_TOKEN_DEFAULT_TTL_SECONDS: int = 7200
    ACCESS_TOKEN_REFRESH_MARGIN_SECONDS: int = 300  # Treat the token as expired 5 minutes early

    # Storage format for civil timestamps
    TIMESTAMP_FORMAT: str = "%Y-%m-%d %H:%M:%S"
    DATE_FORMAT: str = "%Y-%m-%d"

    # Users
    DEFAULT_NICKNAME: str = "用户"

    # Pagination Defaults
    DEFAULT_PER_PAGE_LIMIT: int = 100

    # Job Tracker Configuration
    TRACKER_ERROR_MAX_LENGTH: int = 500
    SWEEP_MAX_INSTANCES: int = 2  # A slow sweep may still be running when the next one fires


def get_settings() -> Settings:
    """Get application settings (singleton pattern)."""
    return Settings()


# Global settings instance
settings = get_settings()
constants = Constants()

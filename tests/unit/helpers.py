"""Shared test helpers for civil time."""

from datetime import datetime, timedelta
from zoneinfo import ZoneInfo


SHANGHAI = ZoneInfo("Asia/Shanghai")


def civil(year: int, month: int, day: int, hour: int = 0, minute: int = 0, second: int = 0) -> datetime:
    """Aware datetime in the reminder timezone."""
    return datetime(year, month, day, hour, minute, second, tzinfo=SHANGHAI)


class FrozenClock:
    """Callable replacement for ``clock.now`` that tests can move around."""

    def __init__(self, current: datetime) -> None:
        self.current = current

    def __call__(self) -> datetime:
        return self.current

    def set(self, value: datetime) -> None:
        self.current = value

    def advance(self, **kwargs: float) -> None:
        self.current += timedelta(**kwargs)

"""Civil time source for the reminder timezone.

Every slot, deadline and timestamp in the system is a timezone-aware datetime
in ``settings.timezone``. The fixed ``YYYY-MM-DD HH:MM:SS`` string form only
exists at the storage and HTTP boundary and is produced exclusively by
``format_timestamp``/``parse_timestamp``. The zero-padded, single-timezone
format keeps lexicographic order equal to chronological order, which the
SQL range filters rely on.
"""

from datetime import date, datetime, time, timedelta
from zoneinfo import ZoneInfo

from hydration.core.config import constants, settings


def get_timezone() -> ZoneInfo:
    """Return the configured civil timezone."""
    return ZoneInfo(settings.timezone)


def now() -> datetime:
    """Current instant in the civil timezone, truncated to the second."""
    return datetime.now(get_timezone()).replace(microsecond=0)


def today() -> date:
    """Current civil date."""
    return now().date()


def at(day: date, time_of_day: time) -> datetime:
    """Combine a civil date and time-of-day into an aware datetime."""
    return datetime.combine(day, time_of_day, tzinfo=get_timezone())


def day_bounds(day: date) -> tuple[datetime, datetime]:
    """Return ``[day 00:00, next day 00:00)`` as aware datetimes."""
    start = at(day, time.min)
    return start, at(day + timedelta(days=1), time.min)


def parse_time_of_day(value: str) -> time:
    """Parse an ``H:MM`` checkpoint such as ``"7:00"``."""
    hours, _, minutes = value.strip().partition(":")
    return time(hour=int(hours), minute=int(minutes or 0))


def parse_date(value: str) -> date:
    """Parse a ``YYYY-MM-DD`` civil date."""
    return datetime.strptime(value, constants.DATE_FORMAT).date()


def format_timestamp(value: datetime) -> str:
    """Serialize an instant to the fixed storage format in the civil timezone."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=get_timezone())
    return value.astimezone(get_timezone()).strftime(constants.TIMESTAMP_FORMAT)


def parse_timestamp(value: str) -> datetime:
    """Parse a stored timestamp back into an aware datetime."""
    return datetime.strptime(value, constants.TIMESTAMP_FORMAT).replace(tzinfo=get_timezone())

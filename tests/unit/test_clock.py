"""Tests for civil time helpers."""

from datetime import UTC, date, datetime, time

import pytest

from hydration.core import clock
from tests.unit.helpers import FrozenClock, civil


def test_format_converts_to_civil_timezone() -> None:
    instant = datetime(2024, 6, 15, 6, 0, tzinfo=UTC)

    assert clock.format_timestamp(instant) == "2024-06-15 14:00:00"


def test_naive_datetime_is_taken_as_civil() -> None:
    assert clock.format_timestamp(datetime(2024, 6, 15, 7, 5, 9)) == "2024-06-15 07:05:09"


def test_parse_timestamp_is_aware() -> None:
    assert clock.parse_timestamp("2024-06-15 07:00:00") == civil(2024, 6, 15, 7, 0)


def test_day_bounds() -> None:
    assert clock.day_bounds(date(2024, 6, 30)) == (civil(2024, 6, 30), civil(2024, 7, 1))


@pytest.mark.parametrize(("value", "expected"), [("7:00", time(7, 0)), ("13:30", time(13, 30)), ("9", time(9, 0))])
def test_parse_time_of_day(value: str, expected: time) -> None:
    assert clock.parse_time_of_day(value) == expected


def test_parse_date_rejects_other_formats() -> None:
    assert clock.parse_date("2024-06-15") == date(2024, 6, 15)

    with pytest.raises(ValueError):
        clock.parse_date("2024/06/15")


def test_today_follows_frozen_clock(frozen_clock: FrozenClock) -> None:
    frozen_clock.set(civil(2024, 6, 15, 23, 59, 59))
    assert clock.today() == date(2024, 6, 15)

    frozen_clock.advance(seconds=1)
    assert clock.today() == date(2024, 6, 16)

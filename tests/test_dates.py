from __future__ import annotations

from datetime import date, datetime

import pytest

from cradle.utils.dates import (
    child_age,
    date_key,
    format_age,
    format_date,
    format_duration,
    format_time,
    get_date_range,
    parse_datetime,
    start_of_week,
)
from cradle.utils.format import format_ml, format_temperature, pluralize

NOW = datetime(2024, 3, 15, 12, 0)


def test_format_duration() -> None:
    assert format_duration(45) == "45m"
    assert format_duration(60) == "1h"
    assert format_duration(90) == "1h 30m"
    assert format_duration(0) == "0m"


def test_format_time_is_twelve_hour() -> None:
    assert format_time(datetime(2024, 1, 1, 0, 5)) == "12:05 AM"
    assert format_time(datetime(2024, 1, 1, 15, 5)) == "3:05 PM"


def test_format_date_relative_names() -> None:
    assert format_date(NOW, NOW) == "Today"
    assert format_date(datetime(2024, 3, 14, 9), NOW) == "Yesterday"
    assert format_date(date(2024, 2, 3), NOW) == "Feb 3"


def test_week_starts_on_sunday() -> None:
    # 15 марта 2024: пятница
    assert start_of_week(NOW) == datetime(2024, 3, 10)
    start, end = get_date_range("week", NOW)
    assert start == datetime(2024, 3, 10)
    assert end.date() == date(2024, 3, 16)


def test_unknown_period_is_rejected() -> None:
    with pytest.raises(ValueError):
        get_date_range("year", NOW)


def test_date_key_uses_local_components() -> None:
    assert date_key(datetime(2024, 1, 5, 23, 59)) == "2024-01-05"


def test_parse_datetime_drops_timezone() -> None:
    value = parse_datetime("2024-01-15T10:00:00")
    assert value == datetime(2024, 1, 15, 10, 0)
    assert parse_datetime("2024-01-15T10:00:00Z").tzinfo is None
    assert parse_datetime(date(2024, 1, 15)) == datetime(2024, 1, 15)


@pytest.mark.parametrize(
    "birth, expected",
    [
        (date(2024, 3, 12), "3 days old"),
        (date(2024, 3, 14), "1 day old"),
        (date(2024, 2, 23), "3 weeks old"),
        (date(2023, 12, 1), "3 months old"),
        (date(2023, 1, 10), "1 year and 2 months old"),
        (date(2022, 3, 10), "2 years old"),
        # по календарю: ровно месяц, а не "4 weeks"
        (date(2024, 2, 15), "1 month old"),
        (date(2023, 3, 16), "11 months old"),
    ],
)
def test_format_age(birth: date, expected: str) -> None:
    assert format_age(birth, NOW) == expected


def test_child_age_is_calendar_accurate() -> None:
    # 31 января + 1 месяц = 29 февраля (2024 високосный)
    assert child_age(date(2024, 1, 31), datetime(2024, 3, 1)) == "1 months, 1 days"
    assert child_age(date(2024, 3, 1), NOW) == "14 days"
    assert child_age(date(2023, 3, 15), NOW) == "12 months, 0 days"


def test_format_helpers() -> None:
    assert format_ml(120) == "120ml"
    assert format_temperature(38.26) == "38.3°C"
    assert pluralize(1, "nap") == "nap"
    assert pluralize(3, "nap") == "naps"
    assert pluralize(2, "child", "children") == "children"

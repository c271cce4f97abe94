from __future__ import annotations

from datetime import date, datetime, timedelta

import pytest

from cradle.utils.timeline import (
    calculate_timeline_width,
    format_duration_precise,
    format_time_range,
    format_time_since,
    get_timeline_day_boundaries,
    get_timeline_hour_labels,
    normalize_to_timeline_position,
    point_in_window,
    spans_window,
)

BASE = datetime(2024, 1, 15, 0, 0)
SAMPLES = [BASE + timedelta(minutes=37 * i) for i in range(80)]


@pytest.mark.parametrize("value", SAMPLES)
def test_timeline_position_stays_within_a_day(value: datetime) -> None:
    assert 0 <= normalize_to_timeline_position(value) < 24


def test_day_start_hour_is_position_zero() -> None:
    assert normalize_to_timeline_position(datetime(2024, 1, 15, 8, 0)) == 0
    assert normalize_to_timeline_position(datetime(2024, 1, 15, 6, 0), day_start_hour=6) == 0


def test_early_morning_wraps_to_end_of_scale() -> None:
    assert normalize_to_timeline_position(datetime(2024, 1, 15, 3, 0)) == 19
    assert normalize_to_timeline_position(datetime(2024, 1, 15, 20, 30)) == 12.5


@pytest.mark.parametrize("hour", [0, 5, 8, 12, 23])
@pytest.mark.parametrize("value", SAMPLES[::7])
def test_logical_day_is_exactly_24_hours(value: datetime, hour: int) -> None:
    start, end = get_timeline_day_boundaries(value, hour)
    assert end - start == timedelta(hours=24)
    assert start <= value < end


def test_night_hours_belong_to_previous_day() -> None:
    start, end = get_timeline_day_boundaries(datetime(2024, 1, 16, 3, 0))
    assert start == datetime(2024, 1, 15, 8, 0)
    assert end == datetime(2024, 1, 16, 8, 0)


def test_calendar_date_starts_at_day_start_hour() -> None:
    start, end = get_timeline_day_boundaries(date(2024, 1, 15))
    assert start == datetime(2024, 1, 15, 8, 0)
    assert end == datetime(2024, 1, 16, 8, 0)


def test_format_duration_precise() -> None:
    start = datetime(2024, 1, 15, 10, 0)
    assert format_duration_precise(start, start + timedelta(minutes=90)) == "1h 30m"
    assert format_duration_precise(start, start + timedelta(seconds=45)) == "45s"
    assert format_duration_precise(start, start) == "0s"
    assert format_duration_precise(start, start + timedelta(hours=2)) == "2h"
    assert format_duration_precise(start, start + timedelta(minutes=5, seconds=3)) == "5m 3s"
    assert format_duration_precise(start, start + timedelta(hours=1, seconds=9)) == "1h 0m 9s"


def test_sleep_of_an_hour_and_a_half() -> None:
    assert format_duration_precise(datetime(2024, 1, 15, 10, 0), datetime(2024, 1, 15, 11, 30)) == "1h 30m"


def test_format_time_since_is_monotonic() -> None:
    now = datetime(2024, 1, 15, 12, 0)
    instants = sorted(now - timedelta(minutes=m) for m in (0, 1, 59, 60, 61, 600, 1440, 3000, 10000))

    def age_minutes(text: str) -> int:
        if text == "just now":
            return 0
        if "day" in text:
            return int(text.split()[0]) * 1440
        if "h" in text:
            hours, _, rest = text.partition("h")
            mins = rest.strip().split("m")[0].strip()
            return int(hours) * 60 + (int(mins) if mins and mins != "ago" else 0)
        return int(text.split("m")[0])

    ages = [age_minutes(format_time_since(t, now)) for t in instants]
    assert ages == sorted(ages, reverse=True)


def test_future_instant_is_just_now() -> None:
    now = datetime(2024, 1, 15, 12, 0)
    assert format_time_since(now + timedelta(minutes=5), now) == "just now"
    assert format_time_since(now - timedelta(hours=2, minutes=5), now) == "2h 5m ago"
    assert format_time_since(now - timedelta(days=1, hours=1), now) == "1 day ago"
    assert format_time_since(now - timedelta(days=3), now) == "3 days ago"


def test_spans_window_four_ways() -> None:
    ws, we = datetime(2024, 1, 15, 8), datetime(2024, 1, 16, 8)
    # начинается внутри
    assert spans_window(datetime(2024, 1, 15, 23, 30), datetime(2024, 1, 16, 7), ws, we)
    # заканчивается внутри
    assert spans_window(datetime(2024, 1, 15, 6), datetime(2024, 1, 15, 9), ws, we)
    # накрывает окно целиком
    assert spans_window(datetime(2024, 1, 15, 7), datetime(2024, 1, 16, 9), ws, we)
    # идёт до сих пор
    assert spans_window(datetime(2024, 1, 14, 20), None, ws, we)
    assert not spans_window(datetime(2024, 1, 16, 9), None, ws, we)
    assert not spans_window(datetime(2024, 1, 14, 20), datetime(2024, 1, 14, 22), ws, we)


def test_point_window_is_half_open() -> None:
    ws, we = datetime(2024, 1, 15, 8), datetime(2024, 1, 16, 8)
    assert point_in_window(ws, ws, we)
    assert not point_in_window(we, ws, we)


def test_timeline_width_and_labels() -> None:
    start = datetime(2024, 1, 15, 8)
    assert calculate_timeline_width(start, start + timedelta(hours=6)) == 25
    assert calculate_timeline_width(start, start + timedelta(hours=30)) == 100
    assert calculate_timeline_width(start, None, now=start + timedelta(hours=12)) == 50
    assert get_timeline_hour_labels() == ["8am", "12pm", "4pm", "8pm", "12am", "4am", "8am"]
    assert format_time_range(start, None) == "8:00 AM - ongoing"
    assert format_time_range(start, datetime(2024, 1, 15, 13, 5)) == "8:00 AM - 1:05 PM"

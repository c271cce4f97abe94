# cradle/utils/timeline.py
"""
Логический день для таймлайна.

Сутки начинаются не в полночь, а в DAY_START_HOUR (08:00): ночной сон
с 23:00 до 07:00 целиком попадает в один день, а не режется на два.
"""
from __future__ import annotations

from datetime import date, datetime, time, timedelta

from cradle.utils.dates import local_now

DAY_START_HOUR = 8


def normalize_to_timeline_position(value: datetime, day_start_hour: int = DAY_START_HOUR) -> float:
    """Позиция на 24-часовой шкале: 0 = начало дня, 24 = то же время на следующий день."""
    position = value.hour - day_start_hour + value.minute / 60
    # 3:00 при старте в 8:00 даёт 19 часов от начала дня
    if position < 0:
        position += 24
    return position


def get_timeline_day_boundaries(
    value: datetime | date,
    day_start_hour: int = DAY_START_HOUR,
) -> tuple[datetime, datetime]:
    """
    Границы логического дня [start, end), end = start + 24h.

    Для календарной даты start = эта дата в day_start_hour.
    Для момента времени start = последний day_start_hour не позже него,
    т.е. 03:00 относится к окну предыдущих суток.
    """
    if isinstance(value, datetime):
        day = value.date()
        if value.hour < day_start_hour:
            day -= timedelta(days=1)
    else:
        day = value
    start = datetime.combine(day, time(hour=day_start_hour))
    return start, start + timedelta(hours=24)


def spans_window(
    start_time: datetime,
    end_time: datetime | None,
    window_start: datetime,
    window_end: datetime,
) -> bool:
    """Интервальная запись пересекается с окном [window_start, window_end)."""
    if window_start <= start_time < window_end:
        return True
    if end_time is not None and window_start <= end_time < window_end:
        return True
    if end_time is None:
        return start_time < window_end
    return start_time < window_start and end_time >= window_end


def point_in_window(value: datetime, window_start: datetime, window_end: datetime) -> bool:
    return window_start <= value < window_end


def format_duration_precise(start_time: datetime, end_time: datetime) -> str:
    total_seconds = int((end_time - start_time).total_seconds())
    hours, rest = divmod(total_seconds, 3600)
    minutes, seconds = divmod(rest, 60)

    if hours > 0:
        if seconds > 0:
            return f"{hours}h {minutes}m {seconds}s"
        return f"{hours}h {minutes}m" if minutes > 0 else f"{hours}h"
    if minutes > 0:
        return f"{minutes}m {seconds}s" if seconds > 0 else f"{minutes}m"
    return f"{seconds}s"


def format_time_short(value: datetime) -> str:
    hour = value.hour % 12 or 12
    return f"{hour}:{value.minute:02d} {'PM' if value.hour >= 12 else 'AM'}"


def format_time_range(start_time: datetime, end_time: datetime | None) -> str:
    start = format_time_short(start_time)
    if end_time is None:
        return f"{start} - ongoing"
    return f"{start} - {format_time_short(end_time)}"


def calculate_timeline_width(
    start_time: datetime,
    end_time: datetime | None,
    max_hours: int = 24,
    now: datetime | None = None,
) -> float:
    """Ширина полоски в процентах от max_hours (не больше 100)."""
    # незавершённая активность тянется до текущего момента
    end = end_time or now or local_now()
    duration_minutes = int((end - start_time).total_seconds() / 60)
    return min(duration_minutes / 60 / max_hours * 100, 100)


def _hour_label(hour: int) -> str:
    ampm = "pm" if hour >= 12 else "am"
    display = 12 if hour == 0 else hour - 12 if hour > 12 else hour
    return f"{display}{ampm}"


def get_timeline_hour_labels(day_start_hour: int = DAY_START_HOUR) -> list[str]:
    labels = [_hour_label((day_start_hour + i) % 24) for i in range(0, 24, 4)]
    labels.append(_hour_label(day_start_hour))
    return labels


def format_time_since(value: datetime, now: datetime | None = None) -> str:
    diff = (now or local_now()) - value
    # часы на устройствах расходятся: будущее тоже "just now"
    if diff.total_seconds() < 0:
        return "just now"

    total_minutes = int(diff.total_seconds() // 60)
    total_hours = total_minutes // 60
    total_days = total_hours // 24

    if total_days > 0:
        return "1 day ago" if total_days == 1 else f"{total_days} days ago"
    if total_hours > 0:
        mins = total_minutes % 60
        return f"{total_hours}h {mins}m ago" if mins > 0 else f"{total_hours}h ago"
    if total_minutes > 0:
        return f"{total_minutes}m ago"
    return "just now"

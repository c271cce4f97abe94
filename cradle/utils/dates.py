# cradle/utils/dates.py
"""
Работа с датами.

Все отметки времени хранятся как naive datetime в локальном времени сервера
(часовой пояс семьи). Aware-значения из запросов переводятся в локальное
время и теряют tzinfo, поэтому "календарная дата" записи совпадает с тем,
что видит родитель.
"""
from __future__ import annotations

from datetime import date, datetime, time, timedelta

from dateutil import parser as dateutil_parser
from dateutil.relativedelta import relativedelta


def local_now() -> datetime:
    return datetime.now().replace(microsecond=0)


def to_naive(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone().replace(tzinfo=None)


def parse_datetime(value: str | datetime | date) -> datetime:
    """ISO-строка / datetime / date -> naive локальный datetime."""
    if isinstance(value, datetime):
        return to_naive(value)
    if isinstance(value, date):
        return datetime.combine(value, time.min)
    return to_naive(dateutil_parser.isoparse(value))


def start_of_day(value: datetime | date) -> datetime:
    d = value.date() if isinstance(value, datetime) else value
    return datetime.combine(d, time.min)


def end_of_day(value: datetime | date) -> datetime:
    d = value.date() if isinstance(value, datetime) else value
    return datetime.combine(d, time.max)


def start_of_week(value: datetime | date) -> datetime:
    # неделя начинается в воскресенье
    day = start_of_day(value)
    return day - timedelta(days=(day.weekday() + 1) % 7)


def end_of_week(value: datetime | date) -> datetime:
    return end_of_day(start_of_week(value) + timedelta(days=6))


def date_key(value: datetime | date) -> str:
    """yyyy-MM-dd по локальным компонентам даты."""
    return f"{value.year:04d}-{value.month:02d}-{value.day:02d}"


def calculate_duration_minutes(start: datetime, end: datetime) -> int:
    # целые минуты, дробная часть отбрасывается
    return int((end - start).total_seconds() / 60)


def format_duration(minutes: int) -> str:
    if minutes < 60:
        return f"{minutes}m"
    hours, mins = divmod(minutes, 60)
    return f"{hours}h {mins}m" if mins > 0 else f"{hours}h"


def format_time(value: datetime) -> str:
    """12-часовой формат: 3:05 PM"""
    hour = value.hour % 12 or 12
    return f"{hour}:{value.minute:02d} {'PM' if value.hour >= 12 else 'AM'}"


def format_date(value: datetime | date, now: datetime | None = None) -> str:
    today = (now or local_now()).date()
    d = value.date() if isinstance(value, datetime) else value
    if d == today:
        return "Today"
    if d == today - timedelta(days=1):
        return "Yesterday"
    return f"{d.strftime('%b')} {d.day}"


def format_date_time(value: datetime, now: datetime | None = None) -> str:
    return f"{format_date(value, now)} at {format_time(value)}"


def get_date_range(period: str, now: datetime | None = None) -> tuple[datetime, datetime]:
    now = now or local_now()
    if period == "today":
        return start_of_day(now), end_of_day(now)
    if period == "week":
        return start_of_week(now), end_of_week(now)
    if period == "month":
        return now - timedelta(days=30), now
    raise ValueError(f"Unknown period: {period}")


def _plural(count: int, word: str) -> str:
    return f"{count} {word}{'' if count == 1 else 's'}"


def format_age(birth_date: date, now: datetime | None = None) -> str:
    """Возраст для системного промпта чата: "3 weeks old", "1 year and 2 months old"."""
    today = (now or local_now()).date()
    days = (today - birth_date).days
    delta = relativedelta(today, birth_date)
    months = delta.years * 12 + delta.months
    if days < 7:
        return f"{_plural(days, 'day')} old"
    if months == 0:
        return f"{_plural(days // 7, 'week')} old"
    if delta.years == 0:
        return f"{_plural(months, 'month')} old"
    if delta.months > 0:
        return f"{_plural(delta.years, 'year')} and {_plural(delta.months, 'month')} old"
    return f"{_plural(delta.years, 'year')} old"


def child_age(birth_date: date, now: datetime | None = None) -> str:
    """
    Возраст в виде "N months, D days" (или "D days" до месяца).
    Считается по календарю: D это дни после последнего полного месяца.
    """
    today = (now or local_now()).date()
    delta = relativedelta(today, birth_date)
    months = delta.years * 12 + delta.months
    if months > 0:
        return f"{months} months, {delta.days} days"
    return f"{delta.days} days"

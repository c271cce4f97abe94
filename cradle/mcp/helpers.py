# cradle/mcp/helpers.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from cradle.db.models import User
from cradle.errors import BadRequestError
from cradle.utils.dates import calculate_duration_minutes, format_duration


@dataclass
class ToolContext:
    """Сессия БД и пользователь, от имени которого вызван инструмент (None для stdio)."""

    session: AsyncSession
    user: User | None = None


def require_arg(args: dict, name: str) -> Any:
    value = args.get(name)
    if value is None or value == "":
        raise BadRequestError(f"{name} is required")
    return value


def iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def duration_info(start: datetime, end: datetime | None) -> tuple[str, int | None]:
    """("1h 30m", 90) для завершённой записи, ("ongoing", None) для идущей."""
    if end is None:
        return "ongoing", None
    minutes = calculate_duration_minutes(start, end)
    return format_duration(minutes), minutes


def total_minutes(records: list) -> int:
    return sum(calculate_duration_minutes(r.start_time, r.end_time) for r in records if r.end_time)


def completed(records: list) -> list:
    return [r for r in records if r.end_time is not None]


def map_timer_record(record: Any) -> dict:
    duration, _ = duration_info(record.start_time, record.end_time)
    return {
        "id": record.id,
        "startTime": iso(record.start_time),
        "endTime": iso(record.end_time),
        "duration": duration,
    }


def start_response(id_key: str, record_id: str, message: str, start: datetime, **extra: Any) -> dict:
    return {"success": True, id_key: record_id, "message": message, "startTime": iso(start), **extra}


def end_response(id_key: str, record_id: str, start: datetime, end: datetime, **extra: Any) -> dict:
    duration, minutes = duration_info(start, end)
    return {"success": True, id_key: record_id, "duration": duration, "durationMinutes": minutes, **extra}


def log_response(id_key: str, record_id: str, start: datetime, end: datetime | None, **extra: Any) -> dict:
    duration, _ = duration_info(start, end)
    return {"success": True, id_key: record_id, "duration": duration if end else None, **extra}

# cradle/mcp/query.py
"""Общие параметры query-*-records инструментов: даты, лимит, страницы."""
from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from cradle.utils.dates import local_now, parse_datetime

DEFAULT_LIMIT = 100
MAX_LIMIT = 500
DEFAULT_LOOKBACK = timedelta(days=7)


def parse_query_dates(start_date: str | None = None, end_date: str | None = None) -> tuple[datetime, datetime]:
    # по умолчанию: последние 7 дней до текущего момента
    end = parse_datetime(end_date) if end_date else local_now()
    start = parse_datetime(start_date) if start_date else end - DEFAULT_LOOKBACK
    return start, end


def sanitize_limit(limit: Any = None) -> int:
    if limit is None:
        return DEFAULT_LIMIT
    return max(1, min(MAX_LIMIT, int(float(limit))))


def sanitize_offset(offset: Any = None) -> int:
    if offset is None:
        return 0
    return max(0, int(float(offset)))


def build_pagination(total: int, limit: int, offset: int) -> dict:
    has_more = offset + limit < total
    return {
        "total": total,
        "limit": limit,
        "offset": offset,
        "hasMore": has_more,
        "nextOffset": offset + limit if has_more else None,
    }


def build_query_response(
    records: list,
    total: int,
    limit: int,
    offset: int,
    start: datetime,
    end: datetime,
    summary: dict | None = None,
) -> dict:
    response = {
        "pagination": build_pagination(total, limit, offset),
        "dateRange": {"start": start.isoformat(), "end": end.isoformat()},
        "records": records,
    }
    if summary is not None:
        response["summary"] = summary
    return response


# общие свойства JSON-схемы для всех query-инструментов
QUERY_SCHEMA_PROPERTIES = {
    "childId": {"type": "string", "description": "The ID of the child"},
    "startDate": {
        "type": "string",
        "format": "date-time",
        "description": "Start of date range (ISO 8601). Defaults to 7 days ago.",
    },
    "endDate": {
        "type": "string",
        "format": "date-time",
        "description": "End of date range (ISO 8601). Defaults to now.",
    },
    "limit": {
        "type": "number",
        "minimum": 1,
        "maximum": MAX_LIMIT,
        "default": DEFAULT_LIMIT,
        "description": "Maximum number of records to return (1-500, default 100)",
    },
    "offset": {
        "type": "number",
        "minimum": 0,
        "default": 0,
        "description": "Number of records to skip for pagination (default 0)",
    },
    "orderBy": {
        "type": "string",
        "enum": ["asc", "desc"],
        "default": "desc",
        "description": "Sort order by time (default: desc, newest first)",
    },
    "includeSummary": {
        "type": "boolean",
        "default": False,
        "description": "Include aggregated summary statistics in response",
    },
}


async def fetch_page(session: AsyncSession, model, time_column, where: list, args: dict) -> dict:
    """
    Общая выборка query-инструментов: фильтры + окно дат + страница.
    Возвращает записи и всё, что нужно для build_query_response.
    """
    start, end = parse_query_dates(args.get("startDate"), args.get("endDate"))
    limit = sanitize_limit(args.get("limit"))
    offset = sanitize_offset(args.get("offset"))
    conditions = [*where, time_column >= start, time_column <= end]

    total = await session.scalar(select(func.count()).select_from(model).where(*conditions))
    order = time_column.asc() if args.get("orderBy") == "asc" else time_column.desc()
    stmt = select(model).where(*conditions).order_by(order).offset(offset).limit(limit)
    res = await session.execute(stmt)
    return {
        "records": list(res.scalars().all()),
        "total": total or 0,
        "limit": limit,
        "offset": offset,
        "start": start,
        "end": end,
    }

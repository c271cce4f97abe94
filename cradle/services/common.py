# cradle/services/common.py
"""Мелкие помощники, общие для всех сервисов записей."""
from __future__ import annotations

import logging
from datetime import datetime
from enum import Enum
from typing import Any, TypeVar

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from cradle.errors import BadRequestError, ConflictError, NotFoundError

log = logging.getLogger(__name__)

T = TypeVar("T")


def value_of(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


def plain(values: dict[str, Any]) -> dict[str, Any]:
    """Enum -> строковое значение (в БД храним строки)."""
    return {k: value_of(v) for k, v in values.items()}


def apply_changes(record: Any, changes: dict[str, Any]) -> None:
    for key, value in plain(changes).items():
        setattr(record, key, value)


def check_interval(start: datetime, end: datetime | None) -> None:
    if end is not None and end < start:
        raise BadRequestError("End time must not be before start time")


async def get_or_404(session: AsyncSession, model: type[T], record_id: str, message: str | None = None) -> T:
    record = await session.get(model, record_id)
    if record is None:
        raise NotFoundError(message)
    return record


async def first(session: AsyncSession, stmt) -> Any:
    res = await session.execute(stmt.limit(1))
    return res.scalars().first()


async def all_rows(session: AsyncSession, stmt) -> list:
    res = await session.execute(stmt)
    return list(res.scalars().all())


async def insert_open_interval(session: AsyncSession, record: T, conflict_message: str) -> T:
    """
    Создаёт незакрытую запись (end_time IS NULL) одной вставкой.

    Вторую открытую запись того же вида не пускает частичный уникальный
    индекс, поэтому отдельной проверки "а нет ли уже активной" нет.
    """
    session.add(record)
    await commit_or_conflict(session, conflict_message)
    return record


async def commit_or_conflict(session: AsyncSession, conflict_message: str) -> None:
    try:
        await session.commit()
    except IntegrityError:
        await session.rollback()
        log.info("Rejected write: %s", conflict_message)
        raise ConflictError(conflict_message)


async def save(session: AsyncSession, record: T) -> T:
    session.add(record)
    await session.commit()
    return record


async def remove(session: AsyncSession, record: Any) -> dict:
    await session.delete(record)
    await session.commit()
    return {"success": True}


def select_open(model, child_id: str):
    return (
        select(model)
        .where(model.child_id == child_id, model.end_time.is_(None))
        .order_by(model.start_time.desc())
    )

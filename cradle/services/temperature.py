# cradle/services/temperature.py
from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from cradle.db.models import TemperatureRecord
from cradle.schemas.records import TemperatureListInput, TemperatureLogInput, TemperatureUpdateInput
from cradle.services.common import all_rows, apply_changes, first, get_or_404, remove, save

NOT_FOUND = "Temperature record not found"

FEVER_THRESHOLD = 38.0
LOW_THRESHOLD = 36.0


def temperature_status(celsius: float) -> str:
    if celsius >= FEVER_THRESHOLD:
        return "fever"
    if celsius < LOW_THRESHOLD:
        return "low"
    return "normal"


async def list_temperatures(
    session: AsyncSession, data: TemperatureListInput, limit: int | None = None
) -> list[TemperatureRecord]:
    stmt = select(TemperatureRecord).where(TemperatureRecord.child_id == data.child_id)
    if data.date_range is not None:
        stmt = stmt.where(
            TemperatureRecord.time >= data.date_range.start,
            TemperatureRecord.time <= data.date_range.end,
        )
    stmt = stmt.order_by(TemperatureRecord.time.desc())
    if limit:
        stmt = stmt.limit(limit)
    return await all_rows(session, stmt)


async def latest_temperature(session: AsyncSession, child_id: str) -> TemperatureRecord | None:
    stmt = (
        select(TemperatureRecord)
        .where(TemperatureRecord.child_id == child_id)
        .order_by(TemperatureRecord.time.desc())
    )
    return await first(session, stmt)


async def log_temperature(session: AsyncSession, data: TemperatureLogInput) -> TemperatureRecord:
    return await save(session, TemperatureRecord(**data.model_dump()))


async def update_temperature(session: AsyncSession, data: TemperatureUpdateInput) -> TemperatureRecord:
    record = await get_or_404(session, TemperatureRecord, data.id, NOT_FOUND)
    apply_changes(record, data.model_dump(exclude_unset=True, exclude={"id"}))
    return await save(session, record)


async def delete_temperature(session: AsyncSession, record_id: str) -> dict:
    record = await get_or_404(session, TemperatureRecord, record_id, NOT_FOUND)
    return await remove(session, record)

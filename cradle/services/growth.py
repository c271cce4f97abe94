# cradle/services/growth.py
from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from cradle.db.models import GrowthRecord
from cradle.schemas.records import GrowthListInput, GrowthLogInput, GrowthUpdateInput
from cradle.services.common import all_rows, apply_changes, first, get_or_404, remove, save

NOT_FOUND = "Growth record not found"


async def list_growth(session: AsyncSession, data: GrowthListInput, limit: int | None = None) -> list[GrowthRecord]:
    stmt = select(GrowthRecord).where(GrowthRecord.child_id == data.child_id)
    if data.date_range is not None:
        stmt = stmt.where(GrowthRecord.date >= data.date_range.start, GrowthRecord.date <= data.date_range.end)
    stmt = stmt.order_by(GrowthRecord.date.desc())
    if limit:
        stmt = stmt.limit(limit)
    return await all_rows(session, stmt)


async def latest_growth(session: AsyncSession, child_id: str) -> GrowthRecord | None:
    stmt = select(GrowthRecord).where(GrowthRecord.child_id == child_id).order_by(GrowthRecord.date.desc())
    return await first(session, stmt)


async def log_growth(session: AsyncSession, data: GrowthLogInput) -> GrowthRecord:
    return await save(session, GrowthRecord(**data.model_dump()))


async def update_growth(session: AsyncSession, data: GrowthUpdateInput) -> GrowthRecord:
    record = await get_or_404(session, GrowthRecord, data.id, NOT_FOUND)
    apply_changes(record, data.model_dump(exclude_unset=True, exclude={"id"}))
    return await save(session, record)


async def delete_growth(session: AsyncSession, record_id: str) -> dict:
    record = await get_or_404(session, GrowthRecord, record_id, NOT_FOUND)
    return await remove(session, record)

# cradle/services/diaper.py
from __future__ import annotations

from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from cradle.db.models import DiaperRecord
from cradle.schemas.outputs import DiaperSummaryOut
from cradle.schemas.records import DiaperListInput, DiaperLogInput, DiaperUpdateInput
from cradle.services.common import all_rows, apply_changes, get_or_404, plain, remove, save
from cradle.utils.dates import get_date_range, local_now

NOT_FOUND = "Diaper record not found"


async def list_diapers(session: AsyncSession, data: DiaperListInput) -> list[DiaperRecord]:
    stmt = select(DiaperRecord).where(DiaperRecord.child_id == data.child_id)
    if data.diaper_type is not None:
        stmt = stmt.where(DiaperRecord.diaper_type == data.diaper_type.value)
    window = data.window()
    if window:
        stmt = stmt.where(DiaperRecord.time >= window[0], DiaperRecord.time <= window[1])
    return await all_rows(session, stmt.order_by(DiaperRecord.time.desc()))


async def log_diaper(session: AsyncSession, data: DiaperLogInput) -> DiaperRecord:
    values = plain(data.model_dump())
    values["time"] = values["time"] or local_now()
    return await save(session, DiaperRecord(**values))


async def update_diaper(session: AsyncSession, data: DiaperUpdateInput) -> DiaperRecord:
    record = await get_or_404(session, DiaperRecord, data.id, NOT_FOUND)
    apply_changes(record, data.model_dump(exclude_unset=True, exclude={"id"}))
    return await save(session, record)


async def delete_diaper(session: AsyncSession, record_id: str) -> dict:
    record = await get_or_404(session, DiaperRecord, record_id, NOT_FOUND)
    return await remove(session, record)


async def diapers_between(
    session: AsyncSession, child_id: str, start: datetime, end: datetime
) -> list[DiaperRecord]:
    stmt = (
        select(DiaperRecord)
        .where(DiaperRecord.child_id == child_id, DiaperRecord.time >= start, DiaperRecord.time <= end)
        .order_by(DiaperRecord.time.desc())
    )
    return await all_rows(session, stmt)


def summarize_diapers(records: list[DiaperRecord]) -> DiaperSummaryOut:
    """BOTH считается и мокрым, и грязным."""
    last = max(records, key=lambda r: r.time, default=None)
    return DiaperSummaryOut(
        total_changes=len(records),
        wet_count=sum(1 for r in records if r.diaper_type in ("WET", "BOTH")),
        dirty_count=sum(1 for r in records if r.diaper_type in ("DIRTY", "BOTH")),
        dry_count=sum(1 for r in records if r.diaper_type == "DRY"),
        last_change=last.time if last else None,
        last_type=last.diaper_type if last else None,
    )


async def diaper_summary(session: AsyncSession, child_id: str, period: str = "today") -> DiaperSummaryOut:
    start, end = get_date_range(period)
    return summarize_diapers(await diapers_between(session, child_id, start, end))

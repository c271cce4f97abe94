# cradle/services/pumping.py
from __future__ import annotations

from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from cradle.db.models import PumpingRecord
from cradle.schemas.outputs import PumpingSummaryOut
from cradle.schemas.records import PumpingListInput, PumpingLogInput, PumpingUpdateInput
from cradle.services.common import (
    all_rows,
    apply_changes,
    check_interval,
    commit_or_conflict,
    first,
    get_or_404,
    insert_open_interval,
    plain,
    remove,
    save,
    select_open,
    value_of,
)
from cradle.utils.dates import calculate_duration_minutes, get_date_range, local_now

ACTIVE_PUMPING_CONFLICT = "There is already an active pumping session"
NOT_FOUND = "Pumping record not found"


async def list_pumping(session: AsyncSession, data: PumpingListInput) -> list[PumpingRecord]:
    stmt = select(PumpingRecord).where(PumpingRecord.child_id == data.child_id)
    window = data.window()
    if window:
        stmt = stmt.where(PumpingRecord.start_time >= window[0], PumpingRecord.start_time <= window[1])
    return await all_rows(session, stmt.order_by(PumpingRecord.start_time.desc()))


async def get_active_pumping(session: AsyncSession, child_id: str) -> PumpingRecord | None:
    return await first(session, select_open(PumpingRecord, child_id))


async def start_pumping(
    session: AsyncSession,
    child_id: str,
    side: str | None = None,
    start_time: datetime | None = None,
    conflict_message: str = ACTIVE_PUMPING_CONFLICT,
) -> PumpingRecord:
    record = PumpingRecord(child_id=child_id, start_time=start_time or local_now(), side=value_of(side))
    return await insert_open_interval(session, record, conflict_message)


async def end_pumping(
    session: AsyncSession,
    record_id: str,
    *,
    end_time: datetime | None = None,
    amount_ml: float | None = None,
    notes: str | None = None,
) -> PumpingRecord:
    record = await get_or_404(session, PumpingRecord, record_id, NOT_FOUND)
    end_time = end_time or local_now()
    check_interval(record.start_time, end_time)
    record.end_time = end_time
    if amount_ml is not None:
        record.amount_ml = amount_ml
    if notes is not None:
        record.notes = notes
    return await save(session, record)


async def log_pumping(session: AsyncSession, data: PumpingLogInput) -> PumpingRecord:
    record = PumpingRecord(**plain(data.model_dump()))
    if record.end_time is None:
        return await insert_open_interval(session, record, ACTIVE_PUMPING_CONFLICT)
    return await save(session, record)


async def update_pumping(session: AsyncSession, data: PumpingUpdateInput) -> PumpingRecord:
    record = await get_or_404(session, PumpingRecord, data.id, NOT_FOUND)
    apply_changes(record, data.model_dump(exclude_unset=True, exclude={"id"}))
    check_interval(record.start_time, record.end_time)
    await commit_or_conflict(session, ACTIVE_PUMPING_CONFLICT)
    return record


async def delete_pumping(session: AsyncSession, record_id: str) -> dict:
    record = await get_or_404(session, PumpingRecord, record_id, NOT_FOUND)
    return await remove(session, record)


async def pumping_between(
    session: AsyncSession, child_id: str, start: datetime, end: datetime
) -> list[PumpingRecord]:
    stmt = (
        select(PumpingRecord)
        .where(
            PumpingRecord.child_id == child_id,
            PumpingRecord.start_time >= start,
            PumpingRecord.start_time <= end,
        )
        .order_by(PumpingRecord.start_time.desc())
    )
    return await all_rows(session, stmt)


def summarize_pumping(records: list[PumpingRecord]) -> PumpingSummaryOut:
    total_ml = sum(r.amount_ml or 0 for r in records)
    return PumpingSummaryOut(
        total_sessions=len(records),
        total_minutes=sum(calculate_duration_minutes(r.start_time, r.end_time) for r in records if r.end_time),
        total_ml=total_ml,
        average_ml=total_ml / len(records) if records else 0,
    )


async def pumping_summary(session: AsyncSession, child_id: str, period: str = "today") -> PumpingSummaryOut:
    start, end = get_date_range(period)
    return summarize_pumping(await pumping_between(session, child_id, start, end))

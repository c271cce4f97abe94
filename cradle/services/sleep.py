# cradle/services/sleep.py
from __future__ import annotations

from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from cradle.db.models import SleepRecord
from cradle.schemas.outputs import SleepSummaryOut
from cradle.schemas.records import SleepListInput, SleepLogInput, SleepUpdateInput
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

ACTIVE_SLEEP_CONFLICT = "There is already an active sleep session"


async def list_sleep(session: AsyncSession, data: SleepListInput) -> list[SleepRecord]:
    stmt = select(SleepRecord).where(SleepRecord.child_id == data.child_id)
    window = data.window()
    if window:
        stmt = stmt.where(SleepRecord.start_time >= window[0], SleepRecord.start_time <= window[1])
    return await all_rows(session, stmt.order_by(SleepRecord.start_time.desc()))


async def get_active_sleep(session: AsyncSession, child_id: str) -> SleepRecord | None:
    return await first(session, select_open(SleepRecord, child_id))


async def start_sleep(
    session: AsyncSession,
    child_id: str,
    sleep_type: str = "NAP",
    start_time: datetime | None = None,
    conflict_message: str = ACTIVE_SLEEP_CONFLICT,
) -> SleepRecord:
    record = SleepRecord(
        child_id=child_id,
        start_time=start_time or local_now(),
        sleep_type=value_of(sleep_type),
    )
    return await insert_open_interval(session, record, conflict_message)


async def end_sleep(
    session: AsyncSession,
    record_id: str,
    *,
    end_time: datetime | None = None,
    quality: int | None = None,
    notes: str | None = None,
) -> SleepRecord:
    record = await get_or_404(session, SleepRecord, record_id, "Sleep record not found")
    end_time = end_time or local_now()
    check_interval(record.start_time, end_time)
    record.end_time = end_time
    if quality is not None:
        record.quality = quality
    if notes is not None:
        record.notes = notes
    return await save(session, record)


async def log_sleep(session: AsyncSession, data: SleepLogInput) -> SleepRecord:
    record = SleepRecord(**plain(data.model_dump()))
    if record.end_time is None:
        # незакрытый сон через log: тот же запрет на вторую активную запись
        return await insert_open_interval(session, record, ACTIVE_SLEEP_CONFLICT)
    return await save(session, record)


async def update_sleep(session: AsyncSession, data: SleepUpdateInput) -> SleepRecord:
    record = await get_or_404(session, SleepRecord, data.id, "Sleep record not found")
    apply_changes(record, data.model_dump(exclude_unset=True, exclude={"id"}))
    check_interval(record.start_time, record.end_time)
    await commit_or_conflict(session, ACTIVE_SLEEP_CONFLICT)
    return record


async def delete_sleep(session: AsyncSession, record_id: str) -> dict:
    record = await get_or_404(session, SleepRecord, record_id, "Sleep record not found")
    return await remove(session, record)


async def completed_sleep(
    session: AsyncSession, child_id: str, start: datetime, end: datetime
) -> list[SleepRecord]:
    stmt = (
        select(SleepRecord)
        .where(
            SleepRecord.child_id == child_id,
            SleepRecord.start_time >= start,
            SleepRecord.start_time <= end,
            SleepRecord.end_time.is_not(None),
        )
        .order_by(SleepRecord.start_time.desc())
    )
    return await all_rows(session, stmt)


def minutes_of(records: list[SleepRecord]) -> int:
    return sum(calculate_duration_minutes(r.start_time, r.end_time) for r in records if r.end_time)


def summarize_sleep(records: list[SleepRecord]) -> SleepSummaryOut:
    """Итоги только по завершённым сессиям: активный сон не считается."""
    done = [r for r in records if r.end_time is not None]
    naps = [r for r in done if r.sleep_type == "NAP"]
    nights = [r for r in done if r.sleep_type == "NIGHT"]
    rated = [r.quality for r in done if r.quality]
    return SleepSummaryOut(
        total_sessions=len(done),
        total_minutes=minutes_of(done),
        nap_count=len(naps),
        nap_minutes=minutes_of(naps),
        night_count=len(nights),
        night_minutes=minutes_of(nights),
        average_quality=(sum(rated) / len(rated)) if rated else None,
    )


async def sleep_summary(session: AsyncSession, child_id: str, period: str = "today") -> SleepSummaryOut:
    start, end = get_date_range(period)
    return summarize_sleep(await completed_sleep(session, child_id, start, end))

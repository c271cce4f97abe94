# cradle/services/activity.py
from __future__ import annotations

from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from cradle.db.enums import ACTIVITY_LABELS
from cradle.db.models import ActivityRecord
from cradle.schemas.outputs import ActivitySummaryOut, ActivityTypeStats
from cradle.schemas.records import ActivityListInput, ActivityLogInput, ActivityUpdateInput
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
    value_of,
)
from cradle.utils.dates import calculate_duration_minutes, get_date_range, local_now

NOT_FOUND = "Activity record not found"


def activity_label(activity_type: str) -> str:
    return ACTIVITY_LABELS.get(value_of(activity_type), str(value_of(activity_type)))


def conflict_message(activity_type: str) -> str:
    return f"There is already an active {activity_label(activity_type).lower()} session"


async def list_activities(session: AsyncSession, data: ActivityListInput) -> list[ActivityRecord]:
    stmt = select(ActivityRecord).where(ActivityRecord.child_id == data.child_id)
    if data.activity_type is not None:
        stmt = stmt.where(ActivityRecord.activity_type == data.activity_type.value)
    window = data.window()
    if window:
        stmt = stmt.where(ActivityRecord.start_time >= window[0], ActivityRecord.start_time <= window[1])
    return await all_rows(session, stmt.order_by(ActivityRecord.start_time.desc()))


async def get_active_activity(
    session: AsyncSession, child_id: str, activity_type: str | None = None
) -> ActivityRecord | None:
    stmt = select(ActivityRecord).where(ActivityRecord.child_id == child_id, ActivityRecord.end_time.is_(None))
    if activity_type is not None:
        stmt = stmt.where(ActivityRecord.activity_type == value_of(activity_type))
    return await first(session, stmt.order_by(ActivityRecord.start_time.desc()))


async def start_activity(
    session: AsyncSession,
    child_id: str,
    activity_type: str,
    start_time: datetime | None = None,
    conflict: str | None = None,
) -> ActivityRecord:
    record = ActivityRecord(
        child_id=child_id,
        activity_type=value_of(activity_type),
        start_time=start_time or local_now(),
    )
    # одна активная запись на каждый тип активности
    return await insert_open_interval(session, record, conflict or conflict_message(activity_type))


async def end_activity(
    session: AsyncSession,
    record_id: str,
    *,
    end_time: datetime | None = None,
    notes: str | None = None,
) -> ActivityRecord:
    record = await get_or_404(session, ActivityRecord, record_id, NOT_FOUND)
    end_time = end_time or local_now()
    check_interval(record.start_time, end_time)
    record.end_time = end_time
    if notes is not None:
        record.notes = notes
    return await save(session, record)


async def log_activity(session: AsyncSession, data: ActivityLogInput) -> ActivityRecord:
    record = ActivityRecord(**plain(data.model_dump()))
    if record.end_time is None:
        return await insert_open_interval(session, record, conflict_message(record.activity_type))
    return await save(session, record)


async def update_activity(session: AsyncSession, data: ActivityUpdateInput) -> ActivityRecord:
    record = await get_or_404(session, ActivityRecord, data.id, NOT_FOUND)
    apply_changes(record, data.model_dump(exclude_unset=True, exclude={"id"}))
    check_interval(record.start_time, record.end_time)
    await commit_or_conflict(session, conflict_message(record.activity_type))
    return record


async def delete_activity(session: AsyncSession, record_id: str) -> dict:
    record = await get_or_404(session, ActivityRecord, record_id, NOT_FOUND)
    return await remove(session, record)


async def activities_between(
    session: AsyncSession, child_id: str, start: datetime, end: datetime
) -> list[ActivityRecord]:
    stmt = (
        select(ActivityRecord)
        .where(
            ActivityRecord.child_id == child_id,
            ActivityRecord.start_time >= start,
            ActivityRecord.start_time <= end,
        )
        .order_by(ActivityRecord.start_time.desc())
    )
    return await all_rows(session, stmt)


def summarize_activities(records: list[ActivityRecord]) -> ActivitySummaryOut:
    by_type: dict[str, ActivityTypeStats] = {}
    for r in records:
        stats = by_type.setdefault(r.activity_type, ActivityTypeStats())
        stats.count += 1
        if r.end_time:
            stats.total_minutes += calculate_duration_minutes(r.start_time, r.end_time)
    return ActivitySummaryOut(total_activities=len(records), by_type=by_type)


async def activity_summary(session: AsyncSession, child_id: str, period: str = "today") -> ActivitySummaryOut:
    start, end = get_date_range(period)
    return summarize_activities(await activities_between(session, child_id, start, end))

# cradle/services/feeding.py
from __future__ import annotations

from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from cradle.db.models import FeedingRecord
from cradle.schemas.outputs import FeedingSummaryOut
from cradle.schemas.records import (
    BottleLogInput,
    BreastfeedingLogInput,
    FeedingListInput,
    FeedingUpdateInput,
    SolidsLogInput,
)
from cradle.services.breastfeeding import normalize_breastfeeding_sides
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

ACTIVE_FEEDING_CONFLICT = "There is already an active feeding session"
NOT_FOUND = "Feeding record not found"


async def list_feedings(session: AsyncSession, data: FeedingListInput) -> list[FeedingRecord]:
    stmt = select(FeedingRecord).where(FeedingRecord.child_id == data.child_id)
    if data.feeding_type is not None:
        stmt = stmt.where(FeedingRecord.feeding_type == data.feeding_type.value)
    window = data.window()
    if window:
        stmt = stmt.where(FeedingRecord.start_time >= window[0], FeedingRecord.start_time <= window[1])
    return await all_rows(session, stmt.order_by(FeedingRecord.start_time.desc()))


async def get_active_breastfeeding(session: AsyncSession, child_id: str) -> FeedingRecord | None:
    stmt = (
        select(FeedingRecord)
        .where(
            FeedingRecord.child_id == child_id,
            FeedingRecord.feeding_type == "BREAST",
            FeedingRecord.end_time.is_(None),
        )
        .order_by(FeedingRecord.start_time.desc())
    )
    return await first(session, stmt)


async def start_breastfeeding(
    session: AsyncSession,
    child_id: str,
    side: str,
    start_time: datetime | None = None,
) -> FeedingRecord:
    record = FeedingRecord(
        child_id=child_id,
        feeding_type="BREAST",
        start_time=start_time or local_now(),
        side=value_of(side),
    )
    return await insert_open_interval(session, record, ACTIVE_FEEDING_CONFLICT)


async def end_breastfeeding(
    session: AsyncSession,
    record_id: str,
    *,
    end_time: datetime | None = None,
    side: str | None = None,
    left_duration_seconds: int | None = None,
    right_duration_seconds: int | None = None,
    notes: str | None = None,
) -> FeedingRecord:
    record = await get_or_404(session, FeedingRecord, record_id, NOT_FOUND)
    end_time = end_time or local_now()
    check_interval(record.start_time, end_time)
    record.end_time = end_time
    changes = {
        "side": side,
        "left_duration_seconds": left_duration_seconds,
        "right_duration_seconds": right_duration_seconds,
        "notes": notes,
    }
    apply_changes(record, {k: v for k, v in changes.items() if v is not None})
    return await save(session, record)


async def switch_side(
    session: AsyncSession,
    record_id: str,
    new_side: str,
    left_duration_seconds: int | None = None,
    right_duration_seconds: int | None = None,
) -> FeedingRecord:
    """Смена стороны посреди кормления: клиент присылает накопленные секунды."""
    record = await get_or_404(session, FeedingRecord, record_id, NOT_FOUND)
    record.side = value_of(new_side)
    if left_duration_seconds is not None:
        record.left_duration_seconds = left_duration_seconds
    if right_duration_seconds is not None:
        record.right_duration_seconds = right_duration_seconds
    return await save(session, record)


async def log_breastfeeding(session: AsyncSession, data: BreastfeedingLogInput) -> FeedingRecord:
    record = FeedingRecord(feeding_type="BREAST", **plain(data.model_dump()))
    if record.end_time is None:
        return await insert_open_interval(session, record, ACTIVE_FEEDING_CONFLICT)
    return await save(session, record)


async def log_bottle(session: AsyncSession, data: BottleLogInput) -> FeedingRecord:
    return await save(session, FeedingRecord(feeding_type="BOTTLE", **plain(data.model_dump())))


async def log_solids(session: AsyncSession, data: SolidsLogInput) -> FeedingRecord:
    return await save(session, FeedingRecord(feeding_type="SOLIDS", **plain(data.model_dump())))


async def update_feeding(session: AsyncSession, data: FeedingUpdateInput) -> FeedingRecord:
    record = await get_or_404(session, FeedingRecord, data.id, NOT_FOUND)
    changes = data.model_dump(exclude_unset=True, exclude={"id"})
    if "food_items" in changes and changes["food_items"] is None:
        changes["food_items"] = []
    apply_changes(record, changes)
    check_interval(record.start_time, record.end_time)
    await commit_or_conflict(session, ACTIVE_FEEDING_CONFLICT)
    return record


async def delete_feeding(session: AsyncSession, record_id: str) -> dict:
    record = await get_or_404(session, FeedingRecord, record_id, NOT_FOUND)
    return await remove(session, record)


async def feedings_between(
    session: AsyncSession, child_id: str, start: datetime, end: datetime
) -> list[FeedingRecord]:
    stmt = (
        select(FeedingRecord)
        .where(
            FeedingRecord.child_id == child_id,
            FeedingRecord.start_time >= start,
            FeedingRecord.start_time <= end,
        )
        .order_by(FeedingRecord.start_time.desc())
    )
    return await all_rows(session, stmt)


def _latest_start(records: list[FeedingRecord]) -> datetime | None:
    return max((r.start_time for r in records), default=None)


def summarize_feedings(records: list[FeedingRecord]) -> FeedingSummaryOut:
    breast = [r for r in records if r.feeding_type == "BREAST"]
    bottle = [r for r in records if r.feeding_type == "BOTTLE"]
    solids = [r for r in records if r.feeding_type == "SOLIDS"]
    sides = [normalize_breastfeeding_sides(r) for r in breast]
    return FeedingSummaryOut(
        total_feedings=len(records),
        breastfeeding_count=len(breast),
        breastfeeding_minutes=sum(
            calculate_duration_minutes(r.start_time, r.end_time) for r in breast if r.end_time
        ),
        left_seconds=sum(s.left_seconds for s in sides),
        right_seconds=sum(s.right_seconds for s in sides),
        bottle_count=len(bottle),
        total_bottle_ml=sum(r.amount_ml or 0 for r in bottle),
        solids_count=len(solids),
        last_left_side=_latest_start([r for r in breast if r.side in ("LEFT", "BOTH")]),
        last_right_side=_latest_start([r for r in breast if r.side in ("RIGHT", "BOTH")]),
    )


async def feeding_summary(session: AsyncSession, child_id: str, period: str = "today") -> FeedingSummaryOut:
    start, end = get_date_range(period)
    return summarize_feedings(await feedings_between(session, child_id, start, end))

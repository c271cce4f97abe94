# cradle/mcp/resources.py
"""
Ресурсы только для чтения:

    app://children
    app://children/{id}
    app://children/{id}/today
    app://children/{id}/sleep?period=week
    app://children/{id}/feeding?period=week
"""
from __future__ import annotations

import json
from datetime import datetime, timedelta
from urllib.parse import parse_qs, urlsplit

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import selectinload

from cradle.db.models import Child, DiaperRecord, FeedingRecord, SleepRecord, User
from cradle.errors import NotFoundError
from cradle.mcp.helpers import ToolContext, duration_info, iso
from cradle.mcp.summary import accessible_children, list_children
from cradle.services.access import check_access
from cradle.services.breastfeeding import normalize_breastfeeding_sides
from cradle.services.common import all_rows
from cradle.utils.dates import child_age, end_of_day, format_duration, local_now, start_of_day

SCHEME = "app"
MIME = "application/json"


def _resource(uri: str, name: str, description: str) -> dict:
    return {"uri": uri, "name": name, "description": description, "mimeType": MIME}


async def list_resources(session_factory: async_sessionmaker[AsyncSession], user: User | None = None) -> list[dict]:
    async with session_factory() as session:
        children = await accessible_children(session, user)

    resources = [_resource(f"{SCHEME}://children", "All Children", "List of all children you have access to")]
    for child in children:
        base = f"{SCHEME}://children/{child.id}"
        resources += [
            _resource(base, f"{child.name} - Profile", f"Profile details for {child.name}"),
            _resource(
                f"{base}/today",
                f"{child.name} - Today's Activity",
                f"Today's sleep, feeding, and diaper records for {child.name}",
            ),
            _resource(
                f"{base}/sleep?period=week",
                f"{child.name} - Sleep (Week)",
                f"Sleep records for the past week for {child.name}",
            ),
            _resource(
                f"{base}/feeding?period=week",
                f"{child.name} - Feeding (Week)",
                f"Feeding records for the past week for {child.name}",
            ),
        ]
    return resources


def _period_start(period: str, now: datetime) -> datetime:
    if period == "week":
        return now - timedelta(days=7)
    if period == "month":
        return now - timedelta(days=30)
    return start_of_day(now)


async def _child(ctx: ToolContext, child_id: str) -> Child:
    if ctx.user is not None:
        access = await check_access(ctx.session, ctx.user, {"childId": child_id})
        access.require_member()
    stmt = select(Child).options(selectinload(Child.household)).where(Child.id == child_id)
    child = (await ctx.session.execute(stmt)).scalars().first()
    if child is None:
        raise NotFoundError("Child not found")
    return child


async def _profile(ctx: ToolContext, child_id: str) -> dict:
    child = await _child(ctx, child_id)
    return {
        "id": child.id,
        "name": child.name,
        "birthDate": child.birth_date.isoformat(),
        "age": child_age(child.birth_date),
        "gender": child.gender,
        "household": child.household.name,
    }


async def _today(ctx: ToolContext, child_id: str) -> dict:
    child = await _child(ctx, child_id)
    now = local_now()
    start, end = start_of_day(now), end_of_day(now)
    sleep = await all_rows(
        ctx.session,
        select(SleepRecord)
        .where(SleepRecord.child_id == child.id, SleepRecord.start_time >= start, SleepRecord.start_time <= end)
        .order_by(SleepRecord.start_time.desc()),
    )
    feedings = await all_rows(
        ctx.session,
        select(FeedingRecord)
        .where(FeedingRecord.child_id == child.id, FeedingRecord.start_time >= start, FeedingRecord.start_time <= end)
        .order_by(FeedingRecord.start_time.desc()),
    )
    diapers = await all_rows(
        ctx.session,
        select(DiaperRecord)
        .where(DiaperRecord.child_id == child.id, DiaperRecord.time >= start, DiaperRecord.time <= end)
        .order_by(DiaperRecord.time.desc()),
    )
    sleep_minutes = sum(duration_info(r.start_time, r.end_time)[1] or 0 for r in sleep)
    return {
        "childName": child.name,
        "date": now.date().isoformat(),
        "summary": {
            "totalSleep": format_duration(sleep_minutes),
            "sleepSessions": len(sleep),
            "feedings": len(feedings),
            "diaperChanges": len(diapers),
        },
        "sleep": [
            {"id": r.id, "type": r.sleep_type, "start": iso(r.start_time), "end": iso(r.end_time), "quality": r.quality}
            for r in sleep
        ],
        "feeding": [_feeding_item(r) for r in feedings],
        "diapers": [{"id": r.id, "type": r.diaper_type, "time": iso(r.time), "color": r.color} for r in diapers],
    }


def _feeding_item(record: FeedingRecord) -> dict:
    sides = normalize_breastfeeding_sides(record)
    return {
        "id": record.id,
        "type": record.feeding_type,
        "time": iso(record.start_time),
        "side": record.side,
        "leftSeconds": sides.left_seconds,
        "rightSeconds": sides.right_seconds,
        "amountMl": record.amount_ml,
        "foodItems": list(record.food_items or []),
    }


async def _sleep(ctx: ToolContext, child_id: str, period: str) -> dict:
    child = await _child(ctx, child_id)
    start = _period_start(period, local_now())
    records = await all_rows(
        ctx.session,
        select(SleepRecord)
        .where(SleepRecord.child_id == child.id, SleepRecord.start_time >= start)
        .order_by(SleepRecord.start_time.desc()),
    )
    return {
        "period": period,
        "records": [
            {
                "id": r.id,
                "type": r.sleep_type,
                "start": iso(r.start_time),
                "end": iso(r.end_time),
                "duration": duration_info(r.start_time, r.end_time)[0],
                "quality": r.quality,
            }
            for r in records
        ],
    }


async def _feeding(ctx: ToolContext, child_id: str, period: str) -> dict:
    child = await _child(ctx, child_id)
    start = _period_start(period, local_now())
    records = await all_rows(
        ctx.session,
        select(FeedingRecord)
        .where(FeedingRecord.child_id == child.id, FeedingRecord.start_time >= start)
        .order_by(FeedingRecord.start_time.desc()),
    )
    return {
        "period": period,
        "records": [
            {**_feeding_item(r), "duration": duration_info(r.start_time, r.end_time)[0] if r.end_time else None}
            for r in records
        ],
    }


async def read_resource(
    uri: str,
    session_factory: async_sessionmaker[AsyncSession],
    user: User | None = None,
) -> dict:
    parts = urlsplit(uri)
    # app://children/abc -> netloc "children", path "/abc"
    segments = [parts.netloc, *[p for p in parts.path.split("/") if p]]
    period = parse_qs(parts.query).get("period", ["week"])[0]

    if parts.scheme != SCHEME or not segments or segments[0] != "children":
        raise NotFoundError(f"Unknown resource: {uri}")

    async with session_factory() as session:
        ctx = ToolContext(session=session, user=user)
        if len(segments) == 1:
            data = {"children": (await list_children(ctx, {}))["children"]}
        elif len(segments) == 2:
            data = await _profile(ctx, segments[1])
        elif len(segments) == 3 and segments[2] == "today":
            data = await _today(ctx, segments[1])
        elif len(segments) == 3 and segments[2] == "sleep":
            data = await _sleep(ctx, segments[1], period)
        elif len(segments) == 3 and segments[2] == "feeding":
            data = await _feeding(ctx, segments[1], period)
        else:
            raise NotFoundError(f"Unknown resource: {uri}")

    return {"contents": [{"uri": uri, "mimeType": MIME, "text": json.dumps(data, indent=2, ensure_ascii=False)}]}

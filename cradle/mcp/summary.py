# cradle/mcp/summary.py
"""Список детей и сводка за день."""
from __future__ import annotations

from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from cradle.db.models import Child, DiaperRecord, FeedingRecord, HouseholdMember, SleepRecord, User
from cradle.mcp.helpers import ToolContext, duration_info, iso, require_arg, total_minutes
from cradle.services.common import all_rows, get_or_404
from cradle.services.timeline import TimelineEntry, TimelineRecords, merge_chronological
from cradle.utils.dates import child_age, end_of_day, format_duration, format_time, local_now, parse_datetime, start_of_day
from cradle.utils.format import format_ml

TIMELINE_LIMIT = 20


async def accessible_children(session: AsyncSession, user: User | None) -> list[Child]:
    stmt = select(Child).options(selectinload(Child.household)).order_by(Child.name.asc())
    if user is not None:
        # через HTTP видны только дети своих семей
        households = select(HouseholdMember.household_id).where(HouseholdMember.user_id == user.id)
        stmt = stmt.where(Child.household_id.in_(households))
    return await all_rows(session, stmt)


async def list_children(ctx: ToolContext, args: dict) -> dict:
    children = await accessible_children(ctx.session, ctx.user)
    return {
        "count": len(children),
        "children": [
            {
                "id": c.id,
                "name": c.name,
                "birthDate": c.birth_date.isoformat(),
                "age": child_age(c.birth_date),
                "gender": c.gender,
                "household": {"id": c.household.id, "name": c.household.name},
            }
            for c in children
        ],
    }


def _describe(entry: TimelineEntry) -> str:
    r = entry.record
    if entry.type == "SLEEP":
        duration, _ = duration_info(r.start_time, r.end_time)
        return f"{r.sleep_type.capitalize()} sleep ({duration})"
    if entry.type == "FEEDING":
        if r.feeding_type == "BOTTLE":
            return f"Bottle feeding ({format_ml(r.amount_ml or 0)})"
        if r.feeding_type == "SOLIDS":
            return f"Solids: {', '.join(r.food_items or [])}"
        duration, _ = duration_info(r.start_time, r.end_time)
        return f"Breastfeeding ({duration})"
    return f"{r.diaper_type.capitalize()} diaper"


def _timeline_item(entry: TimelineEntry) -> dict[str, Any]:
    return {
        "type": entry.type.lower(),
        "time": format_time(entry.time),
        "timestamp": iso(entry.time),
        "description": _describe(entry),
    }


async def daily_summary(ctx: ToolContext, args: dict) -> dict:
    child = await get_or_404(ctx.session, Child, require_arg(args, "childId"), "Child not found")
    day = parse_datetime(args["date"]) if args.get("date") else local_now()
    start, end = start_of_day(day), end_of_day(day)

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

    sleep_minutes = total_minutes(sleep)
    bottle = [f for f in feedings if f.feeding_type == "BOTTLE"]
    entries, _ = merge_chronological(
        TimelineRecords(sleep_records=sleep, feeding_records=feedings, diaper_records=diapers)
    )
    return {
        "child": {"id": child.id, "name": child.name, "age": child_age(child.birth_date)},
        "date": start.date().isoformat(),
        "summary": {
            "sleep": {
                "totalTime": format_duration(sleep_minutes),
                "totalMinutes": sleep_minutes,
                "sessions": len(sleep),
                "completedSessions": sum(1 for s in sleep if s.end_time is not None),
            },
            "feeding": {
                "total": len(feedings),
                "breastfeeding": sum(1 for f in feedings if f.feeding_type == "BREAST"),
                "bottle": len(bottle),
                "solids": sum(1 for f in feedings if f.feeding_type == "SOLIDS"),
                "totalBottleMl": sum(f.amount_ml or 0 for f in bottle),
            },
            "diapers": {
                "total": len(diapers),
                "wet": sum(1 for d in diapers if d.diaper_type in ("WET", "BOTH")),
                "dirty": sum(1 for d in diapers if d.diaper_type in ("DIRTY", "BOTH")),
            },
        },
        "timeline": [_timeline_item(e) for e in entries[:TIMELINE_LIMIT]],
    }


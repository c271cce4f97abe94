# cradle/mcp/timers.py
"""
Инструменты для интервальных записей: сон, сцеживание, активности.
У всех одна схема start -> end, плюс log задним числом, сводка и выборка.
"""
from __future__ import annotations

from cradle.db.enums import ActivityType, SleepType
from cradle.db.models import ActivityRecord, PumpingRecord, SleepRecord
from cradle.mcp.helpers import (
    ToolContext,
    completed,
    duration_info,
    end_response,
    iso,
    log_response,
    map_timer_record,
    require_arg,
    start_response,
    total_minutes,
)
from cradle.mcp.query import build_query_response, fetch_page
from cradle.schemas.records import ActivityLogInput, PumpingLogInput, SleepLogInput
from cradle.services import activity as activity_svc
from cradle.services import pumping as pumping_svc
from cradle.services import sleep as sleep_svc
from cradle.utils.dates import format_duration, get_date_range

SLEEP_CONFLICT = "There is already an active sleep session for this child"
PUMPING_CONFLICT = "There is already an active pumping session for this child"


# --------- Сон ---------
async def start_sleep(ctx: ToolContext, args: dict) -> dict:
    child_id = require_arg(args, "childId")
    sleep_type = SleepType(args.get("sleepType") or "NAP")
    record = await sleep_svc.start_sleep(
        ctx.session, child_id, sleep_type, conflict_message=SLEEP_CONFLICT
    )
    return start_response(
        "sleepId",
        record.id,
        f"Started {sleep_type.value.lower()} tracking",
        record.start_time,
        sleepType=record.sleep_type,
    )


async def end_sleep(ctx: ToolContext, args: dict) -> dict:
    record = await sleep_svc.end_sleep(
        ctx.session,
        require_arg(args, "sleepId"),
        quality=args.get("quality"),
        notes=args.get("notes"),
    )
    return end_response(
        "sleepId",
        record.id,
        record.start_time,
        record.end_time,
        sleepType=record.sleep_type,
        quality=record.quality,
    )


async def log_sleep(ctx: ToolContext, args: dict) -> dict:
    record = await sleep_svc.log_sleep(ctx.session, SleepLogInput.model_validate(args))
    return log_response("sleepId", record.id, record.start_time, record.end_time, sleepType=record.sleep_type)


def _sleep_totals(records: list[SleepRecord]) -> dict:
    naps = [r for r in records if r.sleep_type == "NAP"]
    nights = [r for r in records if r.sleep_type == "NIGHT"]
    nap_minutes = total_minutes(naps)
    night_minutes = total_minutes(nights)
    return {
        "naps": {"count": len(naps), "totalTime": format_duration(nap_minutes), "totalMinutes": nap_minutes},
        "nightSleep": {
            "count": len(nights),
            "totalTime": format_duration(night_minutes),
            "totalMinutes": night_minutes,
        },
    }


def _map_sleep(record: SleepRecord) -> dict:
    _, minutes = duration_info(record.start_time, record.end_time)
    return {
        "id": record.id,
        "childId": record.child_id,
        "sleepType": record.sleep_type,
        "startTime": iso(record.start_time),
        "endTime": iso(record.end_time),
        "durationMinutes": minutes,
        "quality": record.quality,
        "notes": record.notes,
        "createdAt": iso(record.created_at),
        "updatedAt": iso(record.updated_at),
    }


async def sleep_summary(ctx: ToolContext, args: dict) -> dict:
    child_id = require_arg(args, "childId")
    period = args.get("period") or "today"
    start, end = get_date_range(period)
    records = await sleep_svc.completed_sleep(ctx.session, child_id, start, end)
    minutes = total_minutes(records)
    return {
        "period": period,
        "totalSleep": format_duration(minutes),
        "totalMinutes": minutes,
        "totalSessions": len(records),
        **_sleep_totals(records),
        "recentSessions": [
            {**map_timer_record(r), "type": r.sleep_type, "quality": r.quality} for r in records[:5]
        ],
    }


async def query_sleep(ctx: ToolContext, args: dict) -> dict:
    child_id = require_arg(args, "childId")
    where = [SleepRecord.child_id == child_id]
    if args.get("completedOnly"):
        where.append(SleepRecord.end_time.is_not(None))
    if args.get("sleepType"):
        where.append(SleepRecord.sleep_type == SleepType(args["sleepType"]).value)
    page = await fetch_page(ctx.session, SleepRecord, SleepRecord.start_time, where, args)
    records = page["records"]

    summary = None
    if args.get("includeSummary"):
        # активный сон в итоги не попадает никогда
        done = completed(records)
        minutes = total_minutes(done)
        summary = {
            "totalSessions": len(done),
            "totalSleep": format_duration(minutes),
            "totalMinutes": minutes,
            **_sleep_totals(done),
        }
    return build_query_response(
        [_map_sleep(r) for r in records],
        page["total"],
        page["limit"],
        page["offset"],
        page["start"],
        page["end"],
        summary,
    )


# --------- Сцеживание ---------
async def start_pumping(ctx: ToolContext, args: dict) -> dict:
    child_id = require_arg(args, "childId")
    record = await pumping_svc.start_pumping(
        ctx.session, child_id, args.get("side"), conflict_message=PUMPING_CONFLICT
    )
    return start_response("pumpingId", record.id, "Started pumping session", record.start_time, side=record.side)


async def end_pumping(ctx: ToolContext, args: dict) -> dict:
    record = await pumping_svc.end_pumping(
        ctx.session,
        require_arg(args, "pumpingId"),
        amount_ml=args.get("amountMl"),
        notes=args.get("notes"),
    )
    return end_response("pumpingId", record.id, record.start_time, record.end_time, amountMl=record.amount_ml)


async def log_pumping(ctx: ToolContext, args: dict) -> dict:
    record = await pumping_svc.log_pumping(ctx.session, PumpingLogInput.model_validate(args))
    return log_response("pumpingId", record.id, record.start_time, record.end_time, amountMl=record.amount_ml)


def _pumping_totals(records: list[PumpingRecord]) -> dict:
    done = completed(records)
    amount = sum(r.amount_ml or 0 for r in done)
    minutes = total_minutes(done)
    return {
        "totalSessions": len(records),
        "completedSessions": len(done),
        "totalAmountMl": amount,
        "averageAmountMl": round(amount / len(done)) if done else 0,
        "totalTime": format_duration(minutes),
        "totalMinutes": minutes,
    }


def _map_pumping(record: PumpingRecord) -> dict:
    _, minutes = duration_info(record.start_time, record.end_time)
    return {
        "id": record.id,
        "childId": record.child_id,
        "startTime": iso(record.start_time),
        "endTime": iso(record.end_time),
        "durationMinutes": minutes,
        "amountMl": record.amount_ml,
        "side": record.side,
        "notes": record.notes,
        "createdAt": iso(record.created_at),
    }


async def pumping_summary(ctx: ToolContext, args: dict) -> dict:
    child_id = require_arg(args, "childId")
    period = args.get("period") or "today"
    start, end = get_date_range(period)
    records = await pumping_svc.pumping_between(ctx.session, child_id, start, end)
    return {
        "period": period,
        **_pumping_totals(records),
        "recentSessions": [{**map_timer_record(r), "amountMl": r.amount_ml} for r in records[:5]],
    }


async def query_pumping(ctx: ToolContext, args: dict) -> dict:
    child_id = require_arg(args, "childId")
    where = [PumpingRecord.child_id == child_id]
    if args.get("completedOnly"):
        where.append(PumpingRecord.end_time.is_not(None))
    page = await fetch_page(ctx.session, PumpingRecord, PumpingRecord.start_time, where, args)
    records = page["records"]
    summary = _pumping_totals(records) if args.get("includeSummary") else None
    return build_query_response(
        [_map_pumping(r) for r in records],
        page["total"],
        page["limit"],
        page["offset"],
        page["start"],
        page["end"],
        summary,
    )


# --------- Активности ---------
def _label(activity_type: str) -> str:
    return activity_svc.activity_label(activity_type)


async def start_activity(ctx: ToolContext, args: dict) -> dict:
    child_id = require_arg(args, "childId")
    activity_type = ActivityType(require_arg(args, "activityType"))
    label = _label(activity_type)
    record = await activity_svc.start_activity(
        ctx.session,
        child_id,
        activity_type,
        conflict=f"There is already an active {label} session for this child",
    )
    return start_response(
        "activityId", record.id, f"Started {label}", record.start_time, activityType=record.activity_type
    )


async def end_activity(ctx: ToolContext, args: dict) -> dict:
    record = await activity_svc.end_activity(
        ctx.session, require_arg(args, "activityId"), notes=args.get("notes")
    )
    return end_response(
        "activityId",
        record.id,
        record.start_time,
        record.end_time,
        activityType=record.activity_type,
        label=_label(record.activity_type),
    )


async def log_activity(ctx: ToolContext, args: dict) -> dict:
    record = await activity_svc.log_activity(ctx.session, ActivityLogInput.model_validate(args))
    return log_response(
        "activityId",
        record.id,
        record.start_time,
        record.end_time,
        activityType=record.activity_type,
        label=_label(record.activity_type),
    )


def _activity_totals(records: list[ActivityRecord]) -> dict:
    by_type: dict[str, dict] = {}
    for r in records:
        stats = by_type.setdefault(r.activity_type, {"label": _label(r.activity_type), "count": 0, "totalMinutes": 0})
        stats["count"] += 1
        if r.end_time:
            stats["totalMinutes"] += total_minutes([r])
    minutes = total_minutes(records)
    return {
        "totalActivities": len(records),
        "totalTime": format_duration(minutes),
        "totalMinutes": minutes,
        "byType": by_type,
    }


def _map_activity(record: ActivityRecord) -> dict:
    _, minutes = duration_info(record.start_time, record.end_time)
    return {
        "id": record.id,
        "childId": record.child_id,
        "activityType": record.activity_type,
        "label": _label(record.activity_type),
        "startTime": iso(record.start_time),
        "endTime": iso(record.end_time),
        "durationMinutes": minutes,
        "notes": record.notes,
        "createdAt": iso(record.created_at),
    }


async def activity_summary(ctx: ToolContext, args: dict) -> dict:
    child_id = require_arg(args, "childId")
    period = args.get("period") or "today"
    start, end = get_date_range(period)
    records = await activity_svc.activities_between(ctx.session, child_id, start, end)
    return {
        "period": period,
        **_activity_totals(records),
        "recentActivities": [
            {**map_timer_record(r), "activityType": r.activity_type, "label": _label(r.activity_type)}
            for r in records[:5]
        ],
    }


async def query_activities(ctx: ToolContext, args: dict) -> dict:
    child_id = require_arg(args, "childId")
    where = [ActivityRecord.child_id == child_id]
    if args.get("activityType"):
        where.append(ActivityRecord.activity_type == ActivityType(args["activityType"]).value)
    if args.get("completedOnly"):
        where.append(ActivityRecord.end_time.is_not(None))
    page = await fetch_page(ctx.session, ActivityRecord, ActivityRecord.start_time, where, args)
    records = page["records"]
    summary = _activity_totals(records) if args.get("includeSummary") else None
    return build_query_response(
        [_map_activity(r) for r in records],
        page["total"],
        page["limit"],
        page["offset"],
        page["start"],
        page["end"],
        summary,
    )


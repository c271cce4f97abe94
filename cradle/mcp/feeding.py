# cradle/mcp/feeding.py
"""Инструменты кормления и подгузников."""
from __future__ import annotations

from cradle.db.enums import BreastSide, DiaperType, FeedingType
from cradle.db.models import DiaperRecord, FeedingRecord
from cradle.mcp.helpers import ToolContext, duration_info, iso, log_response, require_arg
from cradle.mcp.query import build_query_response, fetch_page
from cradle.schemas.records import BottleLogInput, BreastfeedingLogInput, DiaperLogInput, SolidsLogInput
from cradle.services import diaper as diaper_svc
from cradle.services import feeding as feeding_svc
from cradle.services.breastfeeding import normalize_breastfeeding_sides
from cradle.utils.dates import format_duration, format_time, get_date_range, local_now
from cradle.utils.format import format_ml


def _with_time(args: dict, field: str = "startTime") -> dict:
    """В инструментах время точечных записей приходит как time, по умолчанию сейчас."""
    data = dict(args)
    data.setdefault(field, data.pop("time", None) or local_now())
    return data


# --------- Кормление ---------
async def log_breastfeeding(ctx: ToolContext, args: dict) -> dict:
    record = await feeding_svc.log_breastfeeding(ctx.session, BreastfeedingLogInput.model_validate(args))
    sides = normalize_breastfeeding_sides(record)
    return log_response(
        "feedingId",
        record.id,
        record.start_time,
        record.end_time,
        type="breastfeeding",
        side=record.side,
        leftSeconds=sides.left_seconds,
        rightSeconds=sides.right_seconds,
    )


async def log_bottle(ctx: ToolContext, args: dict) -> dict:
    record = await feeding_svc.log_bottle(ctx.session, BottleLogInput.model_validate(_with_time(args)))
    return {
        "success": True,
        "feedingId": record.id,
        "type": "bottle",
        "amount": format_ml(record.amount_ml or 0),
        "amountMl": record.amount_ml,
        "bottleContentType": record.bottle_content_type,
        "time": format_time(record.start_time),
    }


async def log_solids(ctx: ToolContext, args: dict) -> dict:
    record = await feeding_svc.log_solids(ctx.session, SolidsLogInput.model_validate(_with_time(args)))
    return {
        "success": True,
        "feedingId": record.id,
        "type": "solids",
        "foodItems": list(record.food_items or []),
        "time": format_time(record.start_time),
    }


def _feeding_totals(records: list[FeedingRecord]) -> dict:
    breast = [r for r in records if r.feeding_type == "BREAST"]
    bottle = [r for r in records if r.feeding_type == "BOTTLE"]
    solids = [r for r in records if r.feeding_type == "SOLIDS"]
    sides = [normalize_breastfeeding_sides(r) for r in breast]
    breast_minutes = sum(duration_info(r.start_time, r.end_time)[1] or 0 for r in breast)
    bottle_ml = sum(r.amount_ml or 0 for r in bottle)
    return {
        "totalFeedings": len(records),
        "breastfeeding": {
            "count": len(breast),
            "totalTime": format_duration(breast_minutes),
            "totalMinutes": breast_minutes,
            "leftSeconds": sum(s.left_seconds for s in sides),
            "rightSeconds": sum(s.right_seconds for s in sides),
        },
        "bottle": {
            "count": len(bottle),
            "totalAmount": format_ml(bottle_ml),
            "totalMl": bottle_ml,
        },
        "solids": {"count": len(solids)},
    }


def _map_feeding(record: FeedingRecord) -> dict:
    _, minutes = duration_info(record.start_time, record.end_time)
    sides = normalize_breastfeeding_sides(record)
    return {
        "id": record.id,
        "childId": record.child_id,
        "feedingType": record.feeding_type,
        "startTime": iso(record.start_time),
        "endTime": iso(record.end_time),
        "durationMinutes": minutes,
        "side": record.side,
        "leftDurationSeconds": sides.left_seconds,
        "rightDurationSeconds": sides.right_seconds,
        "amountMl": record.amount_ml,
        "bottleContentType": record.bottle_content_type,
        "foodItems": list(record.food_items or []),
        "notes": record.notes,
        "createdAt": iso(record.created_at),
    }


async def feeding_summary(ctx: ToolContext, args: dict) -> dict:
    child_id = require_arg(args, "childId")
    period = args.get("period") or "today"
    start, end = get_date_range(period)
    records = await feeding_svc.feedings_between(ctx.session, child_id, start, end)
    return {
        "period": period,
        **_feeding_totals(records),
        "recentFeedings": [
            {
                "id": r.id,
                "type": r.feeding_type,
                "time": format_time(r.start_time),
                "startTime": iso(r.start_time),
                "side": r.side,
                "amountMl": r.amount_ml,
            }
            for r in records[:5]
        ],
    }


async def query_feedings(ctx: ToolContext, args: dict) -> dict:
    child_id = require_arg(args, "childId")
    where = [FeedingRecord.child_id == child_id]
    if args.get("feedingType"):
        where.append(FeedingRecord.feeding_type == FeedingType(args["feedingType"]).value)
    if args.get("side"):
        where.append(FeedingRecord.side == BreastSide(args["side"]).value)
    page = await fetch_page(ctx.session, FeedingRecord, FeedingRecord.start_time, where, args)
    records = page["records"]
    summary = _feeding_totals(records) if args.get("includeSummary") else None
    return build_query_response(
        [_map_feeding(r) for r in records],
        page["total"],
        page["limit"],
        page["offset"],
        page["start"],
        page["end"],
        summary,
    )


# --------- Подгузники ---------
async def log_diaper(ctx: ToolContext, args: dict) -> dict:
    data = dict(args)
    # в инструменте тип называется просто type
    if "type" in data and "diaperType" not in data:
        data["diaperType"] = data.pop("type")
    record = await diaper_svc.log_diaper(ctx.session, DiaperLogInput.model_validate(data))
    return {
        "success": True,
        "diaperId": record.id,
        "type": record.diaper_type,
        "time": format_time(record.time),
        "color": record.color,
        "consistency": record.consistency,
    }


def _diaper_totals(records: list[DiaperRecord]) -> dict:
    summary = diaper_svc.summarize_diapers(records)
    return {
        "totalChanges": summary.total_changes,
        "wetCount": summary.wet_count,
        "dirtyCount": summary.dirty_count,
        "dryCount": summary.dry_count,
        "lastChange": iso(summary.last_change),
        "lastType": summary.last_type,
    }


def _map_diaper(record: DiaperRecord) -> dict:
    return {
        "id": record.id,
        "childId": record.child_id,
        "type": record.diaper_type,
        "time": iso(record.time),
        "color": record.color,
        "consistency": record.consistency,
        "size": record.size,
        "amount": record.amount,
        "notes": record.notes,
        "createdAt": iso(record.created_at),
    }


async def diaper_summary(ctx: ToolContext, args: dict) -> dict:
    child_id = require_arg(args, "childId")
    period = args.get("period") or "today"
    start, end = get_date_range(period)
    records = await diaper_svc.diapers_between(ctx.session, child_id, start, end)
    return {
        "period": period,
        **_diaper_totals(records),
        "recentChanges": [
            {"id": r.id, "type": r.diaper_type, "time": format_time(r.time), "color": r.color}
            for r in records[:5]
        ],
    }


async def query_diapers(ctx: ToolContext, args: dict) -> dict:
    child_id = require_arg(args, "childId")
    where = [DiaperRecord.child_id == child_id]
    if args.get("diaperType"):
        where.append(DiaperRecord.diaper_type == DiaperType(args["diaperType"]).value)
    page = await fetch_page(ctx.session, DiaperRecord, DiaperRecord.time, where, args)
    records = page["records"]
    summary = _diaper_totals(records) if args.get("includeSummary") else None
    return build_query_response(
        [_map_diaper(r) for r in records],
        page["total"],
        page["limit"],
        page["offset"],
        page["start"],
        page["end"],
        summary,
    )

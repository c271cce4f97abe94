# cradle/mcp/prompts.py
"""Шаблоны запросов к LLM, собранные из данных ребёнка."""
from __future__ import annotations

import json
from datetime import timedelta

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from cradle.db.models import Child, DiaperRecord, FeedingRecord, SleepRecord, User
from cradle.errors import BadRequestError, NotFoundError
from cradle.mcp.helpers import ToolContext, total_minutes
from cradle.services.access import check_access
from cradle.services.common import all_rows, get_or_404
from cradle.services.diaper import summarize_diapers
from cradle.utils.dates import date_key, end_of_day, format_duration, format_time, local_now, parse_datetime, start_of_day

PROMPTS = [
    {
        "name": "analyze-sleep-patterns",
        "description": "Get AI insights on a child's sleep patterns over the past week",
        "arguments": [
            {"name": "childId", "description": "The ID of the child to analyze", "required": True},
        ],
    },
    {
        "name": "daily-summary",
        "description": "Generate a parent-friendly daily summary",
        "arguments": [
            {"name": "childId", "description": "The ID of the child", "required": True},
            {
                "name": "date",
                "description": "The date to summarize (YYYY-MM-DD), defaults to today",
                "required": False,
            },
        ],
    },
]

SLEEP_ANALYSIS = """Please analyze the sleep patterns for {name} (born {born}) over the past week and provide insights.

Here is the sleep data organized by day:

{data}

Please provide:
1. A summary of overall sleep patterns
2. Average total sleep per day (naps + night sleep)
3. Any concerning patterns or areas for improvement
4. Recommendations based on age-appropriate sleep guidelines
5. Positive observations

Keep your response parent-friendly and actionable."""

DAILY_SUMMARY = """Please create a friendly, conversational daily summary for {name}'s day on {day}.

Here are the stats:

**Sleep:**
- Total sleep: {total_sleep}
- Number of naps: {naps}
- Night sleep sessions: {nights}

**Feeding:**
- Breastfeeding sessions: {breast}
- Bottle feedings: {bottle} ({bottle_ml:g}ml total)
- Solid food meals: {solids}

**Diapers:**
- Wet: {wet}
- Dirty: {dirty}
- Total changes: {diapers}

Please create a warm, parent-friendly summary that:
1. Highlights the day's activities in a positive tone
2. Notes anything that seems particularly good or might need attention
3. Keeps it brief but informative (2-3 short paragraphs)"""


def list_prompts() -> list[dict]:
    return PROMPTS


def _user_message(text: str) -> dict:
    return {"messages": [{"role": "user", "content": {"type": "text", "text": text}}]}


async def _child(ctx: ToolContext, child_id: str | None) -> Child:
    if not child_id:
        raise BadRequestError("childId is required")
    if ctx.user is not None:
        access = await check_access(ctx.session, ctx.user, {"childId": child_id})
        access.require_member()
    return await get_or_404(ctx.session, Child, child_id, "Child not found")


async def _sleep_patterns(ctx: ToolContext, args: dict) -> dict:
    child = await _child(ctx, args.get("childId"))
    week_ago = local_now() - timedelta(days=7)
    records = await all_rows(
        ctx.session,
        select(SleepRecord)
        .where(
            SleepRecord.child_id == child.id,
            SleepRecord.start_time >= week_ago,
            SleepRecord.end_time.is_not(None),
        )
        .order_by(SleepRecord.start_time.asc()),
    )

    daily: dict[str, dict[str, list]] = {}
    for r in records:
        bucket = daily.setdefault(date_key(r.start_time), {"naps": [], "nightSleep": []})
        minutes = total_minutes([r])
        entry = {
            "start": format_time(r.start_time),
            "duration": format_duration(minutes),
            "durationMinutes": minutes,
            "quality": r.quality,
        }
        bucket["naps" if r.sleep_type == "NAP" else "nightSleep"].append(entry)

    text = SLEEP_ANALYSIS.format(
        name=child.name,
        born=child.birth_date.isoformat(),
        data=json.dumps(daily, indent=2),
    )
    return _user_message(text)


async def _daily_summary(ctx: ToolContext, args: dict) -> dict:
    child = await _child(ctx, args.get("childId"))
    day = parse_datetime(args["date"]) if args.get("date") else local_now()
    start, end = start_of_day(day), end_of_day(day)

    sleep = await all_rows(
        ctx.session,
        select(SleepRecord).where(
            SleepRecord.child_id == child.id, SleepRecord.start_time >= start, SleepRecord.start_time <= end
        ),
    )
    feedings = await all_rows(
        ctx.session,
        select(FeedingRecord).where(
            FeedingRecord.child_id == child.id, FeedingRecord.start_time >= start, FeedingRecord.start_time <= end
        ),
    )
    diapers = await all_rows(
        ctx.session,
        select(DiaperRecord).where(DiaperRecord.child_id == child.id, DiaperRecord.time >= start, DiaperRecord.time <= end),
    )

    bottle = [f for f in feedings if f.feeding_type == "BOTTLE"]
    diaper_stats = summarize_diapers(diapers)
    text = DAILY_SUMMARY.format(
        name=child.name,
        day=start.date().isoformat(),
        total_sleep=format_duration(total_minutes(sleep)),
        naps=sum(1 for r in sleep if r.sleep_type == "NAP"),
        nights=sum(1 for r in sleep if r.sleep_type == "NIGHT"),
        breast=sum(1 for f in feedings if f.feeding_type == "BREAST"),
        bottle=len(bottle),
        bottle_ml=sum(f.amount_ml or 0 for f in bottle),
        solids=sum(1 for f in feedings if f.feeding_type == "SOLIDS"),
        wet=diaper_stats.wet_count,
        dirty=diaper_stats.dirty_count,
        diapers=diaper_stats.total_changes,
    )
    return _user_message(text)


PROMPT_HANDLERS = {
    "analyze-sleep-patterns": _sleep_patterns,
    "daily-summary": _daily_summary,
}


async def get_prompt(
    name: str,
    args: dict | None,
    session_factory: async_sessionmaker[AsyncSession],
    user: User | None = None,
) -> dict:
    handler = PROMPT_HANDLERS.get(name)
    if handler is None:
        raise NotFoundError(f"Unknown prompt: {name}")
    async with session_factory() as session:
        return await handler(ToolContext(session=session, user=user), dict(args or {}))

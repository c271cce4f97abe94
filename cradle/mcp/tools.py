# cradle/mcp/tools.py
"""
Каталог инструментов для LLM-клиентов.

Имя инструмента -> обработчик ищется только точным совпадением в
TOOL_HANDLERS. Любая ошибка обработчика превращается в текст
"Error: ..." внутри ответа: результат инструмента всегда должен быть
читаемым текстом для модели.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Awaitable, Callable

from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from cradle.db.models import ActivityRecord, PumpingRecord, SleepRecord, User
from cradle.errors import AppError
from cradle.mcp import feeding, health, summary, timers
from cradle.mcp.helpers import ToolContext
from cradle.mcp.query import QUERY_SCHEMA_PROPERTIES
from cradle.services.access import VIEWER_LOG, check_access

log = logging.getLogger(__name__)

Handler = Callable[[ToolContext, dict], Awaitable[dict]]


@dataclass(frozen=True)
class Tool:
    name: str
    description: str
    input_schema: dict
    handler: Handler
    # запись, по id которой ищется семья (end-* инструменты)
    record_model: type | None = None
    id_key: str | None = None
    writes: bool = False
    scoped: bool = True

    def to_dict(self) -> dict:
        return {"name": self.name, "description": self.description, "inputSchema": self.input_schema}


# --------- JSON-схемы ---------
CHILD_ID = {"type": "string", "description": "The ID of the child"}
NOTES = {"type": "string", "description": "Optional notes"}
TIME = {"type": "string", "format": "date-time", "description": "Time of the event (ISO 8601, defaults to now)"}
PERIOD = {"type": "string", "enum": ["today", "week", "month"], "description": "Time period", "default": "today"}
SIDE = {"type": "string", "enum": ["LEFT", "RIGHT", "BOTH"], "description": "Which breast was used"}
ACTIVITY_TYPE = {
    "type": "string",
    "enum": [
        "TUMMY_TIME",
        "BATH",
        "OUTDOOR_PLAY",
        "INDOOR_PLAY",
        "SCREEN_TIME",
        "SKIN_TO_SKIN",
        "STORYTIME",
        "TEETH_BRUSHING",
        "OTHER",
    ],
    "description": "Type of activity",
}


def _schema(properties: dict, required: list[str] | None = None) -> dict:
    return {"type": "object", "properties": properties, "required": required or []}


def _query_schema(extra: dict) -> dict:
    return _schema({**QUERY_SCHEMA_PROPERTIES, **extra}, ["childId"])


def _summary_schema(default_period: str = "today") -> dict:
    return _schema({"childId": CHILD_ID, "period": {**PERIOD, "default": default_period}}, ["childId"])


TOOLS: list[Tool] = [
    # --- сон ---
    Tool(
        "start-sleep",
        "Start a sleep timer for a child. Returns the sleep record ID.",
        _schema(
            {"childId": CHILD_ID, "sleepType": {"type": "string", "enum": ["NAP", "NIGHT"], "default": "NAP"}},
            ["childId"],
        ),
        timers.start_sleep,
        writes=True,
    ),
    Tool(
        "end-sleep",
        "End an active sleep session",
        _schema(
            {
                "sleepId": {"type": "string", "description": "The ID of the sleep record to end"},
                "quality": {"type": "number", "minimum": 1, "maximum": 5, "description": "Sleep quality rating (1-5)"},
                "notes": NOTES,
            },
            ["sleepId"],
        ),
        timers.end_sleep,
        record_model=SleepRecord,
        id_key="sleepId",
        writes=True,
    ),
    Tool(
        "log-sleep",
        "Log a completed sleep with start and end times",
        _schema(
            {
                "childId": CHILD_ID,
                "startTime": {"type": "string", "format": "date-time", "description": "Sleep start time (ISO 8601)"},
                "endTime": {"type": "string", "format": "date-time", "description": "Sleep end time (ISO 8601)"},
                "sleepType": {"type": "string", "enum": ["NAP", "NIGHT"], "default": "NAP"},
                "quality": {"type": "number", "minimum": 1, "maximum": 5},
                "notes": NOTES,
            },
            ["childId", "startTime", "endTime"],
        ),
        timers.log_sleep,
        writes=True,
    ),
    Tool("get-sleep-summary", "Get sleep statistics for a time period", _summary_schema(), timers.sleep_summary),
    Tool(
        "query-sleep-records",
        "Query sleep records with date range, pagination and optional summary",
        _query_schema(
            {
                "sleepType": {"type": "string", "enum": ["NAP", "NIGHT"], "description": "Filter by sleep type"},
                "completedOnly": {
                    "type": "boolean",
                    "default": False,
                    "description": "Only return sleep sessions that have ended",
                },
            }
        ),
        timers.query_sleep,
    ),
    # --- кормление ---
    Tool(
        "log-breastfeeding",
        "Log a breastfeeding session",
        _schema(
            {
                "childId": CHILD_ID,
                "side": SIDE,
                "startTime": {"type": "string", "format": "date-time", "description": "Start time (ISO 8601)"},
                "endTime": {"type": "string", "format": "date-time", "description": "End time (ISO 8601)"},
                "leftDurationSeconds": {"type": "number", "minimum": 0},
                "rightDurationSeconds": {"type": "number", "minimum": 0},
                "notes": NOTES,
            },
            ["childId", "side", "startTime"],
        ),
        feeding.log_breastfeeding,
        writes=True,
    ),
    Tool(
        "log-bottle",
        "Log a bottle feeding",
        _schema(
            {
                "childId": CHILD_ID,
                "amountMl": {"type": "number", "description": "Amount in milliliters"},
                "bottleContentType": {"type": "string", "enum": ["FORMULA", "BREAST_MILK"]},
                "time": {**TIME, "description": "Time of feeding (defaults to now)"},
                "notes": NOTES,
            },
            ["childId", "amountMl"],
        ),
        feeding.log_bottle,
        writes=True,
    ),
    Tool(
        "log-solids",
        "Log solid food feeding",
        _schema(
            {
                "childId": CHILD_ID,
                "foodItems": {"type": "array", "items": {"type": "string"}, "description": "List of foods eaten"},
                "time": TIME,
                "notes": NOTES,
            },
            ["childId", "foodItems"],
        ),
        feeding.log_solids,
        writes=True,
    ),
    Tool("get-feeding-summary", "Get feeding statistics for a time period", _summary_schema(), feeding.feeding_summary),
    Tool(
        "query-feeding-records",
        "Query feeding records with date range, pagination and optional summary",
        _query_schema(
            {
                "feedingType": {"type": "string", "enum": ["BREAST", "BOTTLE", "SOLIDS"]},
                "side": SIDE,
            }
        ),
        feeding.query_feedings,
    ),
    # --- подгузники ---
    Tool(
        "log-diaper",
        "Log a diaper change",
        _schema(
            {
                "childId": CHILD_ID,
                "type": {"type": "string", "enum": ["WET", "DIRTY", "BOTH", "DRY"], "description": "Type of diaper"},
                "color": {"type": "string", "enum": ["YELLOW", "GREEN", "BROWN", "BLACK", "RED", "WHITE", "OTHER"]},
                "consistency": {"type": "string", "enum": ["WATERY", "LOOSE", "SOFT", "FORMED", "HARD"]},
                "time": TIME,
                "notes": NOTES,
            },
            ["childId", "type"],
        ),
        feeding.log_diaper,
        writes=True,
    ),
    Tool("get-diaper-summary", "Get diaper statistics for a time period", _summary_schema(), feeding.diaper_summary),
    Tool(
        "query-diaper-records",
        "Query diaper records with date range, pagination and optional summary",
        _query_schema({"diaperType": {"type": "string", "enum": ["WET", "DIRTY", "BOTH", "DRY"]}}),
        feeding.query_diapers,
    ),
    # --- сцеживание ---
    Tool(
        "start-pumping",
        "Start a pumping session timer",
        _schema({"childId": CHILD_ID, "side": SIDE}, ["childId"]),
        timers.start_pumping,
        writes=True,
    ),
    Tool(
        "end-pumping",
        "End an active pumping session",
        _schema(
            {
                "pumpingId": {"type": "string", "description": "The ID of the pumping record to end"},
                "amountMl": {"type": "number", "description": "Amount pumped in milliliters"},
                "notes": NOTES,
            },
            ["pumpingId"],
        ),
        timers.end_pumping,
        record_model=PumpingRecord,
        id_key="pumpingId",
        writes=True,
    ),
    Tool(
        "log-pumping",
        "Log a completed pumping session",
        _schema(
            {
                "childId": CHILD_ID,
                "startTime": {"type": "string", "format": "date-time"},
                "endTime": {"type": "string", "format": "date-time"},
                "amountMl": {"type": "number"},
                "side": SIDE,
                "notes": NOTES,
            },
            ["childId", "startTime"],
        ),
        timers.log_pumping,
        writes=True,
    ),
    Tool("get-pumping-summary", "Get pumping statistics for a time period", _summary_schema(), timers.pumping_summary),
    Tool(
        "query-pumping-records",
        "Query pumping records with date range, pagination and optional summary",
        _query_schema({"completedOnly": {"type": "boolean", "default": False}}),
        timers.query_pumping,
    ),
    # --- лекарства ---
    Tool(
        "create-medicine",
        "Add a medicine to a child's list",
        _schema(
            {
                "childId": CHILD_ID,
                "medicineName": {"type": "string", "description": "Name of the medicine"},
                "dosage": {"type": "string", "description": "Dosage, e.g. '2.5ml'"},
                "frequency": {"type": "string", "description": "How often, e.g. 'every 6 hours'"},
                "notes": NOTES,
            },
            ["childId", "medicineName", "dosage"],
        ),
        health.create_medicine,
        writes=True,
    ),
    Tool(
        "list-medicines",
        "List medicines for a child",
        _schema(
            {"childId": CHILD_ID, "activeOnly": {"type": "boolean", "default": True}},
            ["childId"],
        ),
        health.list_medicines,
    ),
    Tool(
        "log-medicine",
        "Log a dose of a medicine (or a skipped dose)",
        _schema(
            {
                "medicineId": {"type": "string", "description": "The ID of the medicine"},
                "dosageGiven": {"type": "string", "description": "Dosage given (defaults to the medicine dosage)"},
                "skipped": {"type": "boolean", "default": False},
                "time": TIME,
                "notes": NOTES,
            },
            ["medicineId"],
        ),
        health.log_medicine,
        writes=True,
    ),
    Tool(
        "get-medicine-records",
        "Get dose history for a medicine",
        _schema(
            {"medicineId": {"type": "string", "description": "The ID of the medicine"}, "period": {**PERIOD, "default": "week"}},
            ["medicineId"],
        ),
        health.get_medicine_records,
    ),
    # --- рост ---
    Tool(
        "log-growth",
        "Log a growth measurement (weight, height, head circumference)",
        _schema(
            {
                "childId": CHILD_ID,
                "weightKg": {"type": "number"},
                "heightCm": {"type": "number"},
                "headCircumferenceCm": {"type": "number"},
                "date": {"type": "string", "format": "date-time", "description": "Measurement date (defaults to now)"},
                "notes": NOTES,
            },
            ["childId"],
        ),
        health.log_growth,
        writes=True,
    ),
    Tool(
        "get-growth-records",
        "Get recent growth measurements with changes since the previous one",
        _schema({"childId": CHILD_ID, "limit": {"type": "number", "default": 10}}, ["childId"]),
        health.get_growth_records,
    ),
    Tool(
        "get-latest-growth",
        "Get the most recent growth measurement",
        _schema({"childId": CHILD_ID}, ["childId"]),
        health.get_latest_growth,
    ),
    # --- температура ---
    Tool(
        "log-temperature",
        "Log a temperature reading in Celsius",
        _schema(
            {
                "childId": CHILD_ID,
                "temperatureCelsius": {"type": "number", "minimum": 30, "maximum": 45},
                "time": TIME,
                "notes": NOTES,
            },
            ["childId", "temperatureCelsius"],
        ),
        health.log_temperature,
        writes=True,
    ),
    Tool(
        "get-temperature-records",
        "Get temperature readings for a time period",
        _summary_schema("week"),
        health.get_temperature_records,
    ),
    Tool(
        "get-latest-temperature",
        "Get the most recent temperature reading",
        _schema({"childId": CHILD_ID}, ["childId"]),
        health.get_latest_temperature,
    ),
    # --- активности ---
    Tool(
        "start-activity",
        "Start an activity timer (tummy time, bath, play, ...)",
        _schema({"childId": CHILD_ID, "activityType": ACTIVITY_TYPE}, ["childId", "activityType"]),
        timers.start_activity,
        writes=True,
    ),
    Tool(
        "end-activity",
        "End an active activity session",
        _schema(
            {"activityId": {"type": "string", "description": "The ID of the activity record to end"}, "notes": NOTES},
            ["activityId"],
        ),
        timers.end_activity,
        record_model=ActivityRecord,
        id_key="activityId",
        writes=True,
    ),
    Tool(
        "log-activity",
        "Log a completed activity",
        _schema(
            {
                "childId": CHILD_ID,
                "activityType": ACTIVITY_TYPE,
                "startTime": {"type": "string", "format": "date-time"},
                "endTime": {"type": "string", "format": "date-time"},
                "notes": NOTES,
            },
            ["childId", "activityType", "startTime"],
        ),
        timers.log_activity,
        writes=True,
    ),
    Tool("get-activity-summary", "Get activity statistics for a time period", _summary_schema(), timers.activity_summary),
    Tool(
        "query-activity-records",
        "Query activity records with date range, pagination and optional summary",
        _query_schema({"activityType": ACTIVITY_TYPE, "completedOnly": {"type": "boolean", "default": False}}),
        timers.query_activities,
    ),
    # --- общее ---
    Tool(
        "list-children",
        "List all children the user has access to",
        _schema({}),
        summary.list_children,
        scoped=False,
    ),
    Tool(
        "get-daily-summary",
        "Get a complete summary of all activity for a day",
        _schema(
            {
                "childId": CHILD_ID,
                "date": {"type": "string", "format": "date", "description": "Date to get summary for (defaults to today)"},
            },
            ["childId"],
        ),
        summary.daily_summary,
    ),
]

TOOL_HANDLERS: dict[str, Tool] = {tool.name: tool for tool in TOOLS}


def list_tools() -> list[dict]:
    return [tool.to_dict() for tool in TOOLS]


def takes_child_id(name: str) -> bool:
    tool = TOOL_HANDLERS.get(name)
    return tool is not None and "childId" in tool.input_schema["properties"]


def _json_default(value: Any) -> str:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def text_content(text: str, is_error: bool = False) -> dict:
    result: dict = {"content": [{"type": "text", "text": text}]}
    if is_error:
        result["isError"] = True
    return result


def _validation_message(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors():
        path = ".".join(str(p) for p in err["loc"])
        parts.append(f"{path}: {err['msg']}" if path else err["msg"])
    return "; ".join(parts)


async def _authorize(tool: Tool, ctx: ToolContext, args: dict) -> None:
    if ctx.user is None or not tool.scoped:
        return
    scope = {
        "childId": args.get("childId"),
        "medicineId": args.get("medicineId"),
        "id": args.get(tool.id_key) if tool.id_key else None,
    }
    access = await check_access(ctx.session, ctx.user, scope, tool.record_model)
    if tool.writes:
        access.require_writer(VIEWER_LOG)
    else:
        access.require_member()


async def call_tool(ctx: ToolContext, name: str, args: dict | None) -> dict:
    """Выполняет инструмент в уже открытой сессии; ошибки пробрасывает."""
    tool = TOOL_HANDLERS.get(name)
    if tool is None:
        raise AppError(f"Unknown tool: {name}")
    args = dict(args or {})
    await _authorize(tool, ctx, args)
    return await tool.handler(ctx, args)


async def handle_tool_call(
    name: str,
    args: dict | None,
    session_factory: async_sessionmaker[AsyncSession],
    user: User | None = None,
) -> dict:
    """
    Точка входа для MCP и чата: результат всегда в виде
    {"content": [{"type": "text", "text": ...}]}.
    """
    try:
        async with session_factory() as session:
            result = await call_tool(ToolContext(session=session, user=user), name, args)
        return text_content(json.dumps(result, indent=2, default=_json_default, ensure_ascii=False))
    except AppError as e:
        log.info("Tool %s failed: %s", name, e.message)
        return text_content(f"Error: {e.message}", is_error=True)
    except ValidationError as e:
        return text_content(f"Error: {_validation_message(e)}", is_error=True)
    except ValueError as e:
        # неизвестное значение перечисления и т.п.
        return text_content(f"Error: {e}", is_error=True)
    except Exception as e:
        log.exception("Tool %s crashed", name)
        return text_content(f"Error: {e}", is_error=True)

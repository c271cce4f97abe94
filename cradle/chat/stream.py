# cradle/chat/stream.py
"""
SSE-поток ответа чата.

Каждое событие это строка "data: {json}\\n\\n"; поток заканчивается
"data: [DONE]". Пока модель просит инструменты, выполняем их и
отправляем результаты обратно, но не больше max_tool_rounds раз.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import date
from typing import AsyncIterator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from cradle.chat.provider import ChatProvider, MessageStart, TextDelta, ToolUseStart, TurnComplete
from cradle.config import ChatConfig
from cradle.db.models import User
from cradle.mcp.tools import handle_tool_call, list_tools, takes_child_id
from cradle.utils.dates import format_age, local_now

log = logging.getLogger(__name__)

DONE = "data: [DONE]\n\n"
ERROR_PREFIX = "Error: "

SYSTEM_PROMPT = """You are Cradle, a helpful assistant for tracking baby activities.
You are helping track activities for {name}, who is {age}.

IMPORTANT: The current child's ID is: {child_id}
Always use this childId when calling tools. Do NOT call list-children to look up the ID.

Available tools allow you to:
- Log and query sleep (start-sleep, end-sleep, log-sleep, get-sleep-summary, query-sleep-records)
- Log and query feedings (log-breastfeeding, log-bottle, log-solids, get-feeding-summary, query-feeding-records)
- Log and query diapers (log-diaper, get-diaper-summary, query-diaper-records)
- Log and query pumping (start-pumping, end-pumping, log-pumping, get-pumping-summary, query-pumping-records)
- Manage medicines (create-medicine, list-medicines, log-medicine, get-medicine-records)
- Log growth measurements (log-growth, get-growth-records, get-latest-growth)
- Log temperature (log-temperature, get-temperature-records, get-latest-temperature)
- Log activities like tummy time, bath, play (start-activity, end-activity, log-activity, get-activity-summary)
- Get daily summaries (get-daily-summary)

When logging activities:
- For times, assume "now" if not specified
- For durations, help the user estimate if they say things like "for about 30 minutes"
- Be concise but friendly in responses
- Confirm what was logged after each action

Current time: {now}"""


@dataclass
class ChatChild:
    id: str
    name: str
    birth_date: date | None = None


def system_prompt(child: ChatChild) -> str:
    age = format_age(child.birth_date) if child.birth_date else "unknown age"
    return SYSTEM_PROMPT.format(name=child.name, age=age, child_id=child.id, now=local_now().isoformat())


def sse(event: dict) -> str:
    return f"data: {json.dumps(event, ensure_ascii=False)}\n\n"


def build_messages(history: list[dict], message: str) -> list[dict]:
    messages = [
        {"role": m["role"], "content": m.get("content") or ""}
        for m in history
        if m.get("role") in ("user", "assistant")
    ]
    messages.append({"role": "user", "content": message})
    return messages


def _assistant_message(turn: TurnComplete) -> dict:
    return {
        "role": "assistant",
        "content": turn.text or None,
        "tool_calls": [
            {
                "id": call.id,
                "type": "function",
                "function": {"name": call.name, "arguments": json.dumps(call.input)},
            }
            for call in turn.tool_calls
        ],
    }


async def chat_stream(
    *,
    provider: ChatProvider,
    session_factory: async_sessionmaker[AsyncSession],
    user: User,
    child: ChatChild,
    message: str,
    model: str,
    history: list[dict],
    cfg: ChatConfig,
) -> AsyncIterator[str]:
    messages = build_messages(history, message)
    system = system_prompt(child)
    tools = list_tools()

    try:
        for _ in range(cfg.max_tool_rounds):
            turn: TurnComplete | None = None
            async for event in provider.stream_turn(
                model=model, system=system, messages=messages, tools=tools, max_tokens=cfg.max_tokens
            ):
                if isinstance(event, MessageStart):
                    yield sse({"type": "message_start", "id": event.id})
                elif isinstance(event, TextDelta):
                    yield sse({"type": "text_delta", "text": event.text})
                elif isinstance(event, ToolUseStart):
                    yield sse({"type": "tool_use_start", "id": event.id, "name": event.name})
                elif isinstance(event, TurnComplete):
                    turn = event

            if turn is None or turn.stop_reason != "tool_use" or not turn.tool_calls:
                break

            messages.append(_assistant_message(turn))
            for call in turn.tool_calls:
                tool_input = dict(call.input)
                if takes_child_id(call.name) and not tool_input.get("childId"):
                    tool_input["childId"] = child.id

                yield sse({"type": "tool_executing", "id": call.id, "name": call.name, "input": tool_input})
                result = await handle_tool_call(call.name, tool_input, session_factory, user)
                text = result["content"][0]["text"] if result.get("content") else "No result"

                if result.get("isError"):
                    error = text[len(ERROR_PREFIX):] if text.startswith(ERROR_PREFIX) else text
                    yield sse({"type": "tool_error", "id": call.id, "name": call.name, "error": error})
                else:
                    yield sse({"type": "tool_result", "id": call.id, "name": call.name, "result": text})
                messages.append({"role": "tool", "tool_call_id": call.id, "content": text})
        else:
            log.warning("Chat for child %s stopped after %s tool rounds", child.id, cfg.max_tool_rounds)
    except Exception as e:
        log.exception("Chat stream error")
        yield sse({"type": "error", "error": str(e) or "Unknown error"})
        return

    yield DONE

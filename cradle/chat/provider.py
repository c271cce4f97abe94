# cradle/chat/provider.py
"""
Модель для чата: один "ход" ассистента в виде потока событий.

Поток хода: MessageStart, затем TextDelta / ToolUseStart вперемешку,
в конце ровно один TurnComplete с собранным текстом и вызовами
инструментов. Сообщения диалога храним в формате chat completions
(role user/assistant/tool).
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Protocol, Union

from openai import AsyncOpenAI

from cradle.config import ChatConfig

log = logging.getLogger(__name__)


@dataclass
class MessageStart:
    id: str


@dataclass
class TextDelta:
    text: str


@dataclass
class ToolUseStart:
    id: str
    name: str


@dataclass
class ToolUse:
    id: str
    name: str
    input: dict[str, Any]


@dataclass
class TurnComplete:
    text: str = ""
    tool_calls: list[ToolUse] = field(default_factory=list)
    # "tool_use": модель ждёт результаты инструментов, иначе "end_turn"
    stop_reason: str = "end_turn"


ChatEvent = Union[MessageStart, TextDelta, ToolUseStart, TurnComplete]


class ChatProvider(Protocol):
    def stream_turn(
        self,
        *,
        model: str,
        system: str,
        messages: list[dict],
        tools: list[dict],
        max_tokens: int,
    ) -> AsyncIterator[ChatEvent]: ...


def to_function_tool(tool: dict) -> dict:
    """Описание инструмента MCP -> function tool."""
    return {
        "type": "function",
        "function": {
            "name": tool["name"],
            "description": tool.get("description", ""),
            "parameters": tool["inputSchema"],
        },
    }


def _parse_arguments(raw: str, name: str) -> dict:
    if not raw:
        return {}
    try:
        value = json.loads(raw)
    except json.JSONDecodeError:
        log.warning("Tool %s: arguments are not valid JSON: %r", name, raw)
        return {}
    return value if isinstance(value, dict) else {}


class OpenAIChatProvider:
    def __init__(self, api_key: str, base_url: str | None = None, client: AsyncOpenAI | None = None):
        self.client = client or AsyncOpenAI(api_key=api_key, base_url=base_url)

    async def stream_turn(
        self,
        *,
        model: str,
        system: str,
        messages: list[dict],
        tools: list[dict],
        max_tokens: int,
    ) -> AsyncIterator[ChatEvent]:
        stream = await self.client.chat.completions.create(
            model=model,
            max_tokens=max_tokens,
            messages=[{"role": "system", "content": system}, *messages],
            tools=[to_function_tool(t) for t in tools],
            stream=True,
        )

        started = False
        text_parts: list[str] = []
        # вызовы инструментов приходят кусками, собираем по index
        calls: dict[int, dict] = {}
        announced: set[int] = set()
        finish_reason = None

        async for chunk in stream:
            if not started:
                started = True
                yield MessageStart(id=chunk.id)
            if not chunk.choices:
                continue
            choice = chunk.choices[0]
            delta = choice.delta

            if delta.content:
                text_parts.append(delta.content)
                yield TextDelta(text=delta.content)

            for tc in delta.tool_calls or []:
                call = calls.setdefault(tc.index, {"id": "", "name": "", "arguments": ""})
                if tc.id:
                    call["id"] = tc.id
                if tc.function is not None:
                    call["name"] += tc.function.name or ""
                    call["arguments"] += tc.function.arguments or ""
                if tc.index not in announced and call["id"] and call["name"]:
                    announced.add(tc.index)
                    yield ToolUseStart(id=call["id"], name=call["name"])

            if choice.finish_reason:
                finish_reason = choice.finish_reason

        tool_calls = [
            ToolUse(id=c["id"], name=c["name"], input=_parse_arguments(c["arguments"], c["name"]))
            for _, c in sorted(calls.items())
        ]
        if finish_reason == "length":
            log.warning("Chat turn was cut by max_tokens")
        stop_reason = "tool_use" if tool_calls else "end_turn"
        yield TurnComplete(text="".join(text_parts), tool_calls=tool_calls, stop_reason=stop_reason)


def build_provider(cfg: ChatConfig) -> OpenAIChatProvider | None:
    """Без ключа чат выключен: эндпоинт ответит 500."""
    if not cfg.api_key:
        log.warning("OPENAI_API_KEY is not set; chat is disabled")
        return None
    return OpenAIChatProvider(cfg.api_key, cfg.base_url)

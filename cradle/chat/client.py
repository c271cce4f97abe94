# cradle/chat/client.py
"""
Клиент чата: читает SSE-поток POST /api/chat и собирает из него
сообщение ассистента из чередующихся блоков текста и инструментов.

    async with httpx.AsyncClient(base_url=...) as http:
        chat = ChatSession(http, child_id, token=token)
        await chat.send("Уснул в 14:00")

chat.stop() из другой задачи прерывает чтение потока. Это не ошибка:
частичный ответ остаётся в истории.
"""
from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Literal
from uuid import uuid4

import httpx

log = logging.getLogger(__name__)

HISTORY_LIMIT = 10
DATA_PREFIX = "data: "


class ChatStreamError(Exception):
    pass


@dataclass
class ToolCall:
    id: str
    name: str
    input: dict[str, Any] = field(default_factory=dict)
    # pending -> running -> success | error
    status: Literal["pending", "running", "success", "error"] = "pending"
    output: str | None = None


@dataclass
class TextBlock:
    text: str = ""
    type: Literal["text"] = "text"


@dataclass
class ToolBlock:
    tool: ToolCall
    type: Literal["tool"] = "tool"


@dataclass
class ChatMessage:
    role: Literal["user", "assistant"]
    content: str = ""
    blocks: list[TextBlock | ToolBlock] = field(default_factory=list)
    is_streaming: bool = False
    id: str = field(default_factory=lambda: uuid4().hex)

    @property
    def tool_calls(self) -> list[ToolCall]:
        return [b.tool for b in self.blocks if isinstance(b, ToolBlock)]


class ChatStreamParser:
    """Разбирает строки SSE и дописывает события в сообщение ассистента."""

    def __init__(self, message: ChatMessage):
        self.message = message
        self._text_index: int | None = None
        self._tools: dict[str, ToolCall] = {}

    def feed_line(self, line: str) -> None:
        if not line.startswith(DATA_PREFIX):
            return
        data = line[len(DATA_PREFIX):].strip()
        if not data or data == "[DONE]":
            return
        try:
            event = json.loads(data)
        except json.JSONDecodeError:
            log.debug("Skipping malformed SSE data: %r", data)
            return
        if isinstance(event, dict):
            self.apply(event)

    def apply(self, event: dict) -> None:
        kind = event.get("type")
        msg = self.message

        if kind == "text_delta":
            text = event.get("text") or ""
            msg.content += text
            if self._text_index is None:
                msg.blocks.append(TextBlock(text=text))
                self._text_index = len(msg.blocks) - 1
            else:
                msg.blocks[self._text_index].text += text

        elif kind == "tool_use_start":
            # текст после инструмента идёт уже в новый блок
            self._text_index = None
            tool = ToolCall(id=event["id"], name=event["name"])
            self._tools[tool.id] = tool
            msg.blocks.append(ToolBlock(tool=tool))

        elif kind == "tool_executing":
            tool = self._tools.get(event.get("id"))
            if tool is not None:
                tool.status = "running"
                tool.input = event.get("input") or {}

        elif kind == "tool_result":
            tool = self._tools.get(event.get("id"))
            if tool is not None:
                tool.status = "success"
                tool.output = event.get("result")

        elif kind == "tool_error":
            tool = self._tools.get(event.get("id"))
            if tool is not None:
                tool.status = "error"
                tool.output = event.get("error")

        elif kind == "error":
            raise ChatStreamError(event.get("error") or "Unknown error")


class ChatSession:
    def __init__(
        self,
        client: httpx.AsyncClient,
        child_id: str,
        *,
        token: str | None = None,
        model: str = "standard",
        path: str = "/api/chat",
    ):
        self.client = client
        self.child_id = child_id
        self.token = token
        self.model = model
        self.path = path
        self.messages: list[ChatMessage] = []
        self.is_loading = False
        self.error: str | None = None
        self._abort: asyncio.Event | None = None

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "text/event-stream"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def _history(self) -> list[dict]:
        return [{"role": m.role, "content": m.content} for m in self.messages[-HISTORY_LIMIT:]]

    async def send(self, content: str) -> ChatMessage | None:
        content = content.strip()
        if not content or self.is_loading:
            return None

        payload = {
            "childId": self.child_id,
            "message": content,
            "model": self.model,
            "conversationHistory": self._history(),
        }
        self.messages.append(ChatMessage(role="user", content=content))
        assistant = ChatMessage(role="assistant", is_streaming=True)
        self.messages.append(assistant)

        self.is_loading = True
        self.error = None
        self._abort = asyncio.Event()
        parser = ChatStreamParser(assistant)
        try:
            async with self.client.stream("POST", self.path, json=payload, headers=self._headers()) as resp:
                if resp.status_code >= 400:
                    await resp.aread()
                    raise ChatStreamError(_error_message(resp))
                await self._read_until_stopped(resp, parser, self._abort)
        except (ChatStreamError, httpx.HTTPError) as e:
            self.error = str(e) or "Failed to send message"
            self.messages.remove(assistant)
            raise ChatStreamError(self.error) from e
        finally:
            assistant.is_streaming = False
            self.is_loading = False
            self._abort = None
        return assistant

    async def _read_until_stopped(self, resp: httpx.Response, parser: ChatStreamParser, abort: asyncio.Event) -> None:
        async def read() -> None:
            async for line in resp.aiter_lines():
                parser.feed_line(line)

        reader = asyncio.create_task(read())
        stopper = asyncio.create_task(abort.wait())
        try:
            await asyncio.wait({reader, stopper}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            reader.cancel()
            raise
        finally:
            stopper.cancel()
        if not reader.done():
            log.info("Chat stream for child %s stopped by user", self.child_id)
            reader.cancel()
            # отмена чтения: ответ остаётся таким, каким успел прийти
            await asyncio.gather(reader, return_exceptions=True)
            return
        reader.result()

    def stop(self) -> None:
        if self._abort is not None:
            self._abort.set()

    def clear(self) -> None:
        self.messages.clear()
        self.error = None


def _error_message(resp: httpx.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        return f"Chat request failed with status {resp.status_code}"
    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict):
        return error.get("message") or "Failed to send message"
    return error or "Failed to send message"

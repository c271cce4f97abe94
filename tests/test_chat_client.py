from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from cradle.chat.client import ChatMessage, ChatSession, ChatStreamError, ChatStreamParser, TextBlock, ToolBlock
from cradle.chat.provider import MessageStart, TextDelta, ToolUse, ToolUseStart, TurnComplete


def sse(event: dict) -> bytes:
    return f"data: {json.dumps(event)}\n\n".encode()


# --------- Разбор потока ---------
def test_parser_interleaves_text_and_tools() -> None:
    message = ChatMessage(role="assistant")
    parser = ChatStreamParser(message)
    lines = [
        'data: {"type": "message_start", "id": "m1"}',
        'data: {"type": "text_delta", "text": "Let me "}',
        'data: {"type": "text_delta", "text": "check."}',
        'data: {"type": "tool_use_start", "id": "t1", "name": "get-sleep-summary"}',
        'data: {"type": "tool_executing", "id": "t1", "name": "get-sleep-summary", "input": {"childId": "c1"}}',
        'data: {"type": "tool_result", "id": "t1", "name": "get-sleep-summary", "result": "{}"}',
        'data: {"type": "tool_use_start", "id": "t2", "name": "end-sleep"}',
        'data: {"type": "tool_error", "id": "t2", "name": "end-sleep", "error": "Sleep record not found"}',
        'data: {"type": "text_delta", "text": "Done."}',
        "data: [DONE]",
    ]
    for line in lines:
        parser.feed_line(line)

    assert message.content == "Let me check.Done."
    assert [b.type for b in message.blocks] == ["text", "tool", "tool", "text"]
    assert message.blocks[0] == TextBlock(text="Let me check.")
    assert message.blocks[3].text == "Done."

    first, second = message.tool_calls
    assert (first.status, first.input, first.output) == ("success", {"childId": "c1"}, "{}")
    assert (second.status, second.output) == ("error", "Sleep record not found")


def test_parser_skips_noise() -> None:
    message = ChatMessage(role="assistant")
    parser = ChatStreamParser(message)
    for line in ("", ": keep-alive", "event: ping", "data: ", "data: {broken", 'data: ["not", "an", "event"]'):
        parser.feed_line(line)
    # результат для неизвестного инструмента просто игнорируем
    parser.feed_line('data: {"type": "tool_result", "id": "ghost", "result": "x"}')
    assert message.blocks == []
    assert message.content == ""


def test_parser_raises_on_error_event() -> None:
    parser = ChatStreamParser(ChatMessage(role="assistant"))
    with pytest.raises(ChatStreamError, match="upstream exploded"):
        parser.feed_line('data: {"type": "error", "error": "upstream exploded"}')


# --------- Сессия ---------
def mock_client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="http://test")


async def test_send_collects_reply_and_history() -> None:
    seen: list[dict] = []

    async def handler(request: httpx.Request) -> httpx.Response:
        seen.append(json.loads(request.content))
        assert request.headers["Authorization"] == "Bearer tok"
        body = sse({"type": "text_delta", "text": f"reply {len(seen)}"}) + b"data: [DONE]\n\n"
        return httpx.Response(200, content=body, headers={"Content-Type": "text/event-stream"})

    async with mock_client(handler) as http:
        chat = ChatSession(http, "c1", token="tok", model="fast")
        first = await chat.send("  hello  ")
        assert first.content == "reply 1"
        assert first.is_streaming is False
        await chat.send("again")

    assert seen[0] == {"childId": "c1", "message": "hello", "model": "fast", "conversationHistory": []}
    assert seen[1]["conversationHistory"] == [
        {"role": "user", "content": "hello"},
        {"role": "assistant", "content": "reply 1"},
    ]
    assert [m.role for m in chat.messages] == ["user", "assistant", "user", "assistant"]
    assert chat.is_loading is False


async def test_history_is_capped() -> None:
    seen: list[dict] = []

    async def handler(request: httpx.Request) -> httpx.Response:
        seen.append(json.loads(request.content))
        return httpx.Response(200, content=sse({"type": "text_delta", "text": "ok"}))

    async with mock_client(handler) as http:
        chat = ChatSession(http, "c1")
        for i in range(7):
            await chat.send(f"message {i}")

    assert len(seen[-1]["conversationHistory"]) == 10
    assert seen[-1]["conversationHistory"][-1] == {"role": "assistant", "content": "ok"}


async def test_blank_input_is_ignored() -> None:
    async def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("no request expected")

    async with mock_client(handler) as http:
        chat = ChatSession(http, "c1")
        assert await chat.send("   ") is None
    assert chat.messages == []


async def test_http_error_drops_assistant_message() -> None:
    async def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(403, json={"error": {"code": "FORBIDDEN", "message": "Access denied to this child"}})

    async with mock_client(handler) as http:
        chat = ChatSession(http, "c1")
        with pytest.raises(ChatStreamError, match="Access denied to this child"):
            await chat.send("hi")

    assert [m.role for m in chat.messages] == ["user"]
    assert chat.error == "Access denied to this child"
    assert chat.is_loading is False


async def test_stream_error_event_drops_assistant_message() -> None:
    async def handler(request: httpx.Request) -> httpx.Response:
        body = sse({"type": "text_delta", "text": "Par"}) + sse({"type": "error", "error": "boom"})
        return httpx.Response(200, content=body)

    async with mock_client(handler) as http:
        chat = ChatSession(http, "c1")
        with pytest.raises(ChatStreamError, match="boom"):
            await chat.send("hi")
    assert [m.role for m in chat.messages] == ["user"]


async def test_stop_keeps_partial_reply() -> None:
    first_sent = asyncio.Event()
    never = asyncio.Event()

    async def body():
        yield sse({"type": "text_delta", "text": "Half a "})
        first_sent.set()
        await never.wait()
        yield sse({"type": "text_delta", "text": "never arrives"})

    async def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=body())

    async with mock_client(handler) as http:
        chat = ChatSession(http, "c1")
        task = asyncio.create_task(chat.send("tell me a story"))
        await asyncio.wait_for(first_sent.wait(), timeout=5)
        assert chat.is_loading is True
        chat.stop()
        reply = await asyncio.wait_for(task, timeout=5)

    assert reply.content == "Half a "
    assert reply.is_streaming is False
    assert chat.messages[-1] is reply
    assert chat.error is None
    assert chat.is_loading is False


# --------- Против настоящего эндпоинта ---------
class OneToolProvider:
    async def stream_turn(self, *, model, system, messages, tools, max_tokens):
        if messages[-1]["role"] == "tool":
            yield MessageStart(id="m2")
            yield TextDelta(text="Logged.")
            yield TurnComplete(text="Logged.")
            return
        call = ToolUse(id="call_1", name="log-bottle", input={"amountMl": 90})
        yield MessageStart(id="m1")
        yield ToolUseStart(id=call.id, name=call.name)
        yield TurnComplete(tool_calls=[call], stop_reason="tool_use")


async def test_session_against_app(app, client, seeded) -> None:
    app.state.chat_provider = OneToolProvider()
    chat = ChatSession(client, seeded.child.id, token=seeded.token)
    reply = await chat.send("90 ml bottle")

    assert isinstance(reply.blocks[0], ToolBlock)
    tool = reply.tool_calls[0]
    assert tool.name == "log-bottle"
    assert tool.status == "success"
    assert tool.input["childId"] == seeded.child.id
    assert json.loads(tool.output)["amountMl"] == 90
    assert reply.blocks[-1].text == "Logged."

from __future__ import annotations

import json

import pytest

from cradle.chat.provider import MessageStart, TextDelta, ToolUse, ToolUseStart, TurnComplete
from cradle.chat.stream import DONE, build_messages
from cradle.services.seed import seed_test_data


class ScriptedProvider:
    """Отдаёт заранее заданные ходы и запоминает, что ему прислали."""

    def __init__(self, *turns):
        self.turns = list(turns)
        self.calls: list[dict] = []

    async def stream_turn(self, *, model, system, messages, tools, max_tokens):
        self.calls.append({"model": model, "system": system, "messages": list(messages), "tools": tools})
        for event in self.turns.pop(0):
            if isinstance(event, Exception):
                raise event
            yield event


def tool_turn(*uses: ToolUse) -> list:
    return [
        MessageStart(id="msg_1"),
        *[ToolUseStart(id=u.id, name=u.name) for u in uses],
        TurnComplete(tool_calls=list(uses), stop_reason="tool_use"),
    ]


def text_turn(text: str) -> list:
    return [MessageStart(id="msg_2"), TextDelta(text=text), TurnComplete(text=text)]


def parse_sse(body: str) -> tuple[list[dict], bool]:
    events, done = [], False
    for chunk in body.split("\n\n"):
        if not chunk.startswith("data: "):
            continue
        data = chunk[len("data: "):]
        if data == "[DONE]":
            done = True
        else:
            events.append(json.loads(data))
    return events, done


def test_history_keeps_only_dialogue_roles() -> None:
    history = [
        {"role": "user", "content": "hi"},
        {"role": "system", "content": "ignore me"},
        {"role": "assistant", "content": None},
    ]
    assert build_messages(history, "how long did she nap?") == [
        {"role": "user", "content": "hi"},
        {"role": "assistant", "content": ""},
        {"role": "user", "content": "how long did she nap?"},
    ]


async def test_chat_runs_tools_and_streams_events(app, client, auth, seeded) -> None:
    provider = ScriptedProvider(
        tool_turn(ToolUse(id="call_1", name="log-diaper", input={"type": "WET"})),
        text_turn("Logged a wet diaper."),
    )
    app.state.chat_provider = provider

    resp = await client.post(
        "/api/chat",
        json={
            "childId": seeded.child.id,
            "message": "wet diaper just now",
            "model": "fast",
            "conversationHistory": [{"role": "user", "content": "hello"}],
        },
        headers=auth,
    )
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/event-stream")
    assert resp.text.endswith(DONE)

    events, done = parse_sse(resp.text)
    assert done
    types = [e["type"] for e in events]
    assert types == [
        "message_start",
        "tool_use_start",
        "tool_executing",
        "tool_result",
        "message_start",
        "text_delta",
    ]
    executing = events[2]
    # childId подставлен из запроса
    assert executing["input"] == {"type": "WET", "childId": seeded.child.id}
    assert json.loads(events[3]["result"])["type"] == "WET"
    assert events[5]["text"] == "Logged a wet diaper."

    first, second = provider.calls
    assert first["model"] == "gpt-4o-mini"
    assert seeded.child.id in first["system"]
    assert [m["role"] for m in first["messages"]] == ["user", "user"]
    # второй ход видит вызов инструмента и его результат
    assert [m["role"] for m in second["messages"]] == ["user", "user", "assistant", "tool"]
    assert second["messages"][3]["tool_call_id"] == "call_1"


async def test_tool_errors_are_streamed_not_raised(app, client, auth, seeded) -> None:
    app.state.chat_provider = ScriptedProvider(
        tool_turn(ToolUse(id="call_1", name="end-sleep", input={"sleepId": "missing"})),
        text_turn("I could not find that sleep."),
    )
    resp = await client.post("/api/chat", json={"childId": seeded.child.id, "message": "she woke up"}, headers=auth)
    events, done = parse_sse(resp.text)
    assert done
    error = next(e for e in events if e["type"] == "tool_error")
    # чужая или несуществующая запись выглядят одинаково
    assert error["error"] == "You do not have access to this household"
    assert events[-1]["type"] == "text_delta"


async def test_provider_failure_ends_without_done(app, client, auth, seeded) -> None:
    app.state.chat_provider = ScriptedProvider([MessageStart(id="msg_1"), RuntimeError("upstream exploded")])
    resp = await client.post("/api/chat", json={"childId": seeded.child.id, "message": "hi"}, headers=auth)
    events, done = parse_sse(resp.text)
    assert not done
    assert events[-1] == {"type": "error", "error": "upstream exploded"}


async def test_tool_round_limit(app, client, auth, seeded, config) -> None:
    rounds = config.chat.max_tool_rounds
    app.state.chat_provider = ScriptedProvider(
        *[tool_turn(ToolUse(id=f"call_{i}", name="get-diaper-summary", input={})) for i in range(rounds)]
    )
    resp = await client.post("/api/chat", json={"childId": seeded.child.id, "message": "loop"}, headers=auth)
    events, done = parse_sse(resp.text)
    assert done
    assert sum(1 for e in events if e["type"] == "tool_result") == rounds


# --------- Ошибки запроса ---------
async def test_chat_requires_token(client, seeded) -> None:
    resp = await client.post("/api/chat", json={"childId": seeded.child.id, "message": "hi"})
    assert resp.status_code == 401


@pytest.mark.parametrize("payload", [{"message": "hi"}, {"childId": "x"}, {"childId": "x", "message": ""}])
async def test_chat_missing_fields(app, client, auth, payload) -> None:
    app.state.chat_provider = ScriptedProvider()
    resp = await client.post("/api/chat", json=payload, headers=auth)
    assert resp.status_code == 400
    assert resp.json()["error"]["message"] == "Missing childId or message"


async def test_chat_other_household(app, client, session_factory, seeded) -> None:
    app.state.chat_provider = ScriptedProvider()
    async with session_factory() as s:
        other = await seed_test_data(s, prefix="e2e-test-other")
    resp = await client.post(
        "/api/chat",
        json={"childId": seeded.child.id, "message": "hi"},
        headers={"Authorization": f"Bearer {other.token}"},
    )
    assert resp.status_code == 403
    assert resp.json()["error"]["message"] == "Access denied to this child"


async def test_chat_not_configured(app, client, auth, seeded) -> None:
    app.state.chat_provider = None
    resp = await client.post("/api/chat", json={"childId": seeded.child.id, "message": "hi"}, headers=auth)
    assert resp.status_code == 500
    assert resp.json()["error"]["message"] == "Chat feature not configured"

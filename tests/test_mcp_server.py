from __future__ import annotations

import json

import pytest

from cradle.mcp.server import (
    INTERNAL_ERROR,
    INVALID_PARAMS,
    INVALID_REQUEST,
    METHOD_NOT_FOUND,
    PARSE_ERROR,
    SERVER_ERROR,
    McpServer,
)
from cradle.services.seed import seed_test_data


def request(method: str, params: dict | None = None, id_: int = 1) -> dict:
    message = {"jsonrpc": "2.0", "id": id_, "method": method}
    if params is not None:
        message["params"] = params
    return message


@pytest.fixture
def server(session_factory) -> McpServer:
    return McpServer(session_factory)


# --------- Протокол ---------
async def test_initialize(server) -> None:
    resp = await server.handle(request("initialize", {"protocolVersion": "2024-11-05"}))
    assert resp["id"] == 1
    assert resp["result"]["serverInfo"]["name"] == "cradle"
    assert {"tools", "resources", "prompts"} <= set(resp["result"]["capabilities"])


async def test_unknown_method_and_notifications(server) -> None:
    resp = await server.handle(request("tools/destroy"))
    assert resp["error"]["code"] == METHOD_NOT_FOUND

    assert await server.handle({"jsonrpc": "2.0", "method": "notifications/initialized"}) is None
    # уведомление с известным методом тоже без ответа
    assert await server.handle({"jsonrpc": "2.0", "method": "ping"}) is None


async def test_malformed_messages(server) -> None:
    assert (await server.handle({"id": 1, "method": "ping"}))["error"]["code"] == INVALID_REQUEST
    assert (await server.handle([1, 2]))["error"]["code"] == INVALID_REQUEST
    resp = await server.handle_raw("{not json")
    assert resp == {"jsonrpc": "2.0", "id": None, "error": {"code": PARSE_ERROR, "message": "Parse error"}}


@pytest.mark.parametrize(
    "params",
    [["x"], "start-sleep", {"arguments": {}}, {"name": 42}],
)
async def test_bad_params_are_rejected(server, params) -> None:
    resp = await server.handle({"jsonrpc": "2.0", "id": 7, "method": "tools/call", "params": params})
    assert resp == {"jsonrpc": "2.0", "id": 7, "error": {"code": INVALID_PARAMS, "message": "Invalid params"}}

    # сервер продолжает отвечать
    assert (await server.handle(request("ping")))["result"] == {}


async def test_handler_crash_becomes_internal_error(server, monkeypatch) -> None:
    def broken():
        raise RuntimeError("prompt table is gone")

    monkeypatch.setattr("cradle.mcp.server.list_prompts", broken)
    resp = await server.handle(request("prompts/list", id_=3))
    assert resp == {"jsonrpc": "2.0", "id": 3, "error": {"code": INTERNAL_ERROR, "message": "Internal error"}}


# --------- Инструменты ---------
async def test_tools_list_and_call(server, seeded) -> None:
    listed = await server.handle(request("tools/list"))
    assert "start-sleep" in {t["name"] for t in listed["result"]["tools"]}

    resp = await server.handle(
        request("tools/call", {"name": "log-diaper", "arguments": {"childId": seeded.child.id, "type": "DIRTY"}})
    )
    body = json.loads(resp["result"]["content"][0]["text"])
    assert body["type"] == "DIRTY"

    resp = await server.handle(request("tools/call", {"name": "nope", "arguments": {}}))
    assert resp["result"]["isError"] is True
    assert "error" not in resp


# --------- Ресурсы ---------
async def test_resources(server, seeded) -> None:
    listed = await server.handle(request("resources/list"))
    uris = {r["uri"] for r in listed["result"]["resources"]}
    base = f"app://children/{seeded.child.id}"
    assert {"app://children", base, f"{base}/today", f"{base}/sleep?period=week"} <= uris

    resp = await server.handle(request("resources/read", {"uri": base}))
    content = resp["result"]["contents"][0]
    assert content["mimeType"] == "application/json"
    assert json.loads(content["text"])["name"] == seeded.child.name

    resp = await server.handle(request("resources/read", {"uri": f"{base}/today"}))
    today = json.loads(resp["result"]["contents"][0]["text"])
    assert today["summary"]["diaperChanges"] == 0

    resp = await server.handle(request("resources/read", {"uri": "app://photos"}))
    assert resp["error"]["code"] == SERVER_ERROR
    assert resp["error"]["data"] == {"code": "NOT_FOUND"}


async def test_resource_of_missing_child(server) -> None:
    resp = await server.handle(request("resources/read", {"uri": "app://children/missing"}))
    assert resp["error"]["message"] == "Child not found"


# --------- Промпты ---------
async def test_prompts(server, seeded) -> None:
    listed = await server.handle(request("prompts/list"))
    assert {p["name"] for p in listed["result"]["prompts"]} == {"analyze-sleep-patterns", "daily-summary"}

    await server.handle(
        request("tools/call", {"name": "log-diaper", "arguments": {"childId": seeded.child.id, "type": "BOTH"}})
    )
    resp = await server.handle(request("prompts/get", {"name": "daily-summary", "arguments": {"childId": seeded.child.id}}))
    text = resp["result"]["messages"][0]["content"]["text"]
    assert seeded.child.name in text
    assert "- Wet: 1" in text
    assert "- Dirty: 1" in text

    resp = await server.handle(
        request("prompts/get", {"name": "analyze-sleep-patterns", "arguments": {"childId": seeded.child.id}})
    )
    assert resp["result"]["messages"][0]["role"] == "user"

    resp = await server.handle(request("prompts/get", {"name": "weekly-report", "arguments": {}}))
    assert resp["error"]["message"] == "Unknown prompt: weekly-report"


# --------- HTTP ---------
async def test_http_endpoint(client, auth, seeded) -> None:
    resp = await client.post("/mcp", json=request("tools/list"), headers=auth)
    assert resp.status_code == 200
    assert resp.json()["result"]["tools"]

    batch = [request("ping", id_=1), {"jsonrpc": "2.0", "method": "notifications/initialized"}, request("nope", id_=2)]
    resp = await client.post("/mcp", json=batch, headers=auth)
    assert [r["id"] for r in resp.json()] == [1, 2]
    assert resp.json()[1]["error"]["code"] == METHOD_NOT_FOUND

    resp = await client.post("/mcp", json={"jsonrpc": "2.0", "method": "notifications/initialized"}, headers=auth)
    assert resp.status_code == 202

    resp = await client.post("/mcp", content=b"{oops", headers={**auth, "Content-Type": "application/json"})
    assert resp.json()["error"]["code"] == PARSE_ERROR

    resp = await client.post(
        "/mcp", json={"jsonrpc": "2.0", "id": 9, "method": "tools/call", "params": []}, headers=auth
    )
    assert resp.status_code == 200
    assert resp.json()["error"]["code"] == INVALID_PARAMS


async def test_http_endpoint_is_scoped_to_user(client, session_factory, seeded) -> None:
    async with session_factory() as s:
        other = await seed_test_data(s, prefix="e2e-test-other")
    headers = {"Authorization": f"Bearer {other.token}"}

    resp = await client.post(
        "/mcp",
        json=request("tools/call", {"name": "get-diaper-summary", "arguments": {"childId": seeded.child.id}}),
        headers=headers,
    )
    result = resp.json()["result"]
    assert result["isError"] is True
    assert result["content"][0]["text"] == "Error: You do not have access to this household"

    resp = await client.post("/mcp", json=request("resources/list"), headers=headers)
    uris = {r["uri"] for r in resp.json()["result"]["resources"]}
    assert f"app://children/{seeded.child.id}" not in uris
    assert f"app://children/{other.child.id}" in uris


async def test_http_endpoint_requires_token(client) -> None:
    resp = await client.post("/mcp", json=request("ping"))
    assert resp.status_code == 401

# cradle/mcp/server.py
"""
MCP-сервер на официальном SDK (пакет mcp).

build_server() регистрирует инструменты, ресурсы и промпты на mcp Server.
По stdio (python -m cradle.mcp.server) его обслуживает транспорт SDK,
пользователь не известен и доступ не ограничен семьёй.

McpServer: тонкий JSON-RPC адаптер для POST /mcp. Он разбирает сообщение,
проверяет параметры моделями SDK и вызывает те же обработчики, что и stdio,
от имени пользователя из токена.
"""
from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

from mcp import types
from mcp.server.lowlevel import Server
from mcp.server.lowlevel.helper_types import ReadResourceContents
from mcp.server.stdio import stdio_server
from mcp.shared.exceptions import McpError
from pydantic import AnyUrl, ValidationError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from cradle.db.models import User
from cradle.errors import AppError
from cradle.mcp.prompts import get_prompt, list_prompts
from cradle.mcp.resources import list_resources, read_resource
from cradle.mcp.tools import handle_tool_call, list_tools

log = logging.getLogger(__name__)

SERVER_NAME = "cradle"
SERVER_VERSION = "1.0.0"

# коды ошибок JSON-RPC
PARSE_ERROR = types.PARSE_ERROR
INVALID_REQUEST = types.INVALID_REQUEST
METHOD_NOT_FOUND = types.METHOD_NOT_FOUND
INVALID_PARAMS = types.INVALID_PARAMS
INTERNAL_ERROR = types.INTERNAL_ERROR
SERVER_ERROR = -32000

REQUEST_TYPES: dict[str, type] = {
    "ping": types.PingRequest,
    "tools/list": types.ListToolsRequest,
    "tools/call": types.CallToolRequest,
    "resources/list": types.ListResourcesRequest,
    "resources/read": types.ReadResourceRequest,
    "prompts/list": types.ListPromptsRequest,
    "prompts/get": types.GetPromptRequest,
}


class ToolCallError(Exception):
    """Текст ошибки инструмента; SDK отдаёт его как результат с isError."""


def _mcp_error(exc: Exception) -> McpError:
    code = exc.code if isinstance(exc, AppError) else "BAD_REQUEST"
    message = exc.message if isinstance(exc, AppError) else str(exc)
    return McpError(types.ErrorData(code=SERVER_ERROR, message=message, data={"code": code}))


# ---------------------- Сервер SDK ----------------------
def build_server(session_factory: async_sessionmaker[AsyncSession], user: User | None = None) -> Server:
    server: Server = Server(SERVER_NAME, version=SERVER_VERSION)

    @server.list_tools()
    async def _list_tools() -> list[types.Tool]:
        return [types.Tool.model_validate(tool) for tool in list_tools()]

    # аргументы проверяют сами инструменты, с понятными сообщениями
    @server.call_tool(validate_input=False)
    async def _call_tool(name: str, arguments: dict[str, Any]) -> list[types.TextContent]:
        result = await handle_tool_call(name, arguments, session_factory, user)
        texts = [item["text"] for item in result["content"]]
        if result.get("isError"):
            raise ToolCallError("\n".join(texts))
        return [types.TextContent(type="text", text=text) for text in texts]

    @server.list_resources()
    async def _list_resources() -> list[types.Resource]:
        return [types.Resource.model_validate(r) for r in await list_resources(session_factory, user)]

    @server.read_resource()
    async def _read_resource(uri: AnyUrl) -> list[ReadResourceContents]:
        try:
            result = await read_resource(str(uri), session_factory, user)
        except (AppError, ValueError) as e:
            log.info("MCP resource %s failed: %s", uri, e)
            raise _mcp_error(e) from e
        return [ReadResourceContents(content=c["text"], mime_type=c.get("mimeType")) for c in result["contents"]]

    @server.list_prompts()
    async def _list_prompts() -> list[types.Prompt]:
        return [types.Prompt.model_validate(p) for p in list_prompts()]

    @server.get_prompt()
    async def _get_prompt(name: str, arguments: dict[str, str] | None) -> types.GetPromptResult:
        try:
            result = await get_prompt(name, arguments, session_factory, user)
        except (AppError, ValueError) as e:
            log.info("MCP prompt %s failed: %s", name, e)
            raise _mcp_error(e) from e
        return types.GetPromptResult.model_validate(result)

    return server


# ---------------------- HTTP-адаптер ----------------------
class McpServer:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession], user: User | None = None):
        self.server = build_server(session_factory, user)

    def _initialize(self, params: Any) -> dict:
        options = self.server.create_initialization_options()
        requested = (params or {}).get("protocolVersion")
        result = types.InitializeResult(
            protocolVersion=requested if isinstance(requested, str) else types.LATEST_PROTOCOL_VERSION,
            capabilities=options.capabilities,
            serverInfo=types.Implementation(name=options.server_name, version=options.server_version),
        )
        return result.model_dump(by_alias=True, mode="json", exclude_none=True)

    async def handle(self, message: Any) -> dict | None:
        """Ответ на одно сообщение; для уведомлений (без id) None."""
        if (
            not isinstance(message, dict)
            or message.get("jsonrpc") != "2.0"
            or not isinstance(message.get("method"), str)
        ):
            return _error(None, INVALID_REQUEST, "Invalid Request")
        if "id" not in message:
            # notifications/initialized и прочие просто принимаем
            return None

        msg_id = message["id"]
        method = message["method"]
        params = message.get("params")
        if params is not None and not isinstance(params, dict):
            return _error(msg_id, INVALID_PARAMS, "Invalid params")

        if method == "initialize":
            return {"jsonrpc": "2.0", "id": msg_id, "result": self._initialize(params)}

        request_type = REQUEST_TYPES.get(method)
        handler = self.server.request_handlers.get(request_type) if request_type else None
        if handler is None:
            return _error(msg_id, METHOD_NOT_FOUND, f"Method not found: {method}")

        try:
            request = request_type.model_validate({"method": method, "params": params})
        except ValidationError as e:
            log.info("MCP %s rejected: %s", method, e.errors(include_url=False))
            return _error(msg_id, INVALID_PARAMS, "Invalid params")

        try:
            result = await handler(request)
        except McpError as e:
            return {"jsonrpc": "2.0", "id": msg_id, "error": e.error.model_dump(mode="json", exclude_none=True)}
        except Exception:
            log.exception("MCP %s crashed", method)
            return _error(msg_id, INTERNAL_ERROR, "Internal error")

        return {"jsonrpc": "2.0", "id": msg_id, "result": result.model_dump(by_alias=True, mode="json", exclude_none=True)}

    async def handle_raw(self, line: str) -> dict | None:
        try:
            message = json.loads(line)
        except json.JSONDecodeError:
            return _error(None, PARSE_ERROR, "Parse error")
        return await self.handle(message)


def _error(msg_id: Any, code: int, message: str) -> dict:
    return {"jsonrpc": "2.0", "id": msg_id, "error": {"code": code, "message": message}}


# ---------------------- stdio ----------------------
async def serve_stdio(server: Server) -> None:
    """Запросы в stdin, ответы в stdout; логи идут в stderr."""
    async with stdio_server() as (read_stream, write_stream):
        await server.run(read_stream, write_stream, server.create_initialization_options())


async def main() -> None:
    from cradle.config import get_config
    from cradle.db.database import AsyncSessionLocal, init_db
    from cradle.utils.logging import setup_logging

    cfg = get_config()
    setup_logging(cfg.log.level, cfg.log.log_dir, "cradle-mcp.log")
    await init_db()
    log.info("MCP server is listening on stdio")
    await serve_stdio(build_server(AsyncSessionLocal))


def run() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    run()

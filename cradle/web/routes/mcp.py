# cradle/web/routes/mcp.py
from __future__ import annotations

import json

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse

from cradle.db.models import User
from cradle.mcp.server import PARSE_ERROR, McpServer
from cradle.web.deps import current_user, get_session_factory

router = APIRouter(tags=["mcp"])


@router.post("/mcp")
async def mcp_endpoint(request: Request, user: User = Depends(current_user)) -> Response:
    """JSON-RPC поверх HTTP: одиночный запрос или пакет (массив)."""
    server = McpServer(get_session_factory(request), user)
    try:
        payload = json.loads(await request.body())
    except (json.JSONDecodeError, UnicodeDecodeError):
        return JSONResponse({"jsonrpc": "2.0", "id": None, "error": {"code": PARSE_ERROR, "message": "Parse error"}})

    if isinstance(payload, list):
        responses = [r for r in [await server.handle(m) for m in payload] if r is not None]
        return JSONResponse(responses) if responses else Response(status_code=202)

    response = await server.handle(payload)
    if response is None:
        return Response(status_code=202)
    return JSONResponse(response)

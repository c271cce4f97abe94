# cradle/web/routes/chat.py
from __future__ import annotations

from typing import Literal

from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession

from cradle.chat.stream import ChatChild, chat_stream
from cradle.db.models import Child, User
from cradle.errors import AppError, BadRequestError, ForbiddenError
from cradle.schemas.base import CamelModel
from cradle.services.access import get_membership, household_of_child
from cradle.web.deps import current_user, get_db, get_session_factory

router = APIRouter(prefix="/api", tags=["chat"])

ACCESS_DENIED = "Access denied to this child"


class HistoryMessage(CamelModel):
    role: Literal["user", "assistant"]
    content: str = ""


class ChatRequest(CamelModel):
    # всё необязательное: пустые поля дают 400 с понятным текстом, а не 422
    child_id: str | None = None
    message: str | None = None
    model: str | None = None
    conversation_history: list[HistoryMessage] = []


@router.post("/chat")
async def chat(
    data: ChatRequest,
    request: Request,
    session: AsyncSession = Depends(get_db),
    user: User = Depends(current_user),
) -> StreamingResponse:
    if not data.child_id or not data.message:
        raise BadRequestError("Missing childId or message")

    household_id = await household_of_child(session, data.child_id)
    if household_id is None or await get_membership(session, household_id, user.id) is None:
        raise ForbiddenError(ACCESS_DENIED)

    provider = request.app.state.chat_provider
    if provider is None:
        raise AppError("Chat feature not configured")

    child = await session.get(Child, data.child_id)
    cfg = request.app.state.config.chat
    stream = chat_stream(
        provider=provider,
        session_factory=get_session_factory(request),
        user=user,
        child=ChatChild(id=child.id, name=child.name, birth_date=child.birth_date),
        message=data.message,
        model=cfg.resolve_model(data.model),
        history=[m.model_dump() for m in data.conversation_history],
        cfg=cfg,
    )
    return StreamingResponse(
        stream,
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "Connection": "keep-alive"},
    )

# cradle/web/deps.py
"""
Зависимости FastAPI: сессия БД, текущий пользователь и доступ к семье.
"""
from __future__ import annotations

import json
import logging
from typing import AsyncIterator

from fastapi import Depends, Header, Request
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from cradle.db.database import get_session
from cradle.db.models import AuthSession, User
from cradle.errors import UnauthorizedError
from cradle.services.access import AccessContext, check_access
from cradle.utils.dates import local_now

log = logging.getLogger(__name__)


def get_session_factory(request: Request) -> async_sessionmaker[AsyncSession]:
    return request.app.state.session_factory


async def get_db(request: Request) -> AsyncIterator[AsyncSession]:
    async with get_session(get_session_factory(request)) as session:
        yield session


def _bearer_token(authorization: str | None) -> str | None:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


async def user_by_token(session: AsyncSession, token: str | None) -> User | None:
    if not token:
        return None
    stmt = select(AuthSession).where(AuthSession.token == token)
    res = await session.execute(stmt)
    auth = res.scalars().first()
    if auth is None or auth.expires_at < local_now():
        return None
    return auth.user


async def current_user(
    session: AsyncSession = Depends(get_db),
    authorization: str | None = Header(default=None),
) -> User:
    user = await user_by_token(session, _bearer_token(authorization))
    if user is None:
        raise UnauthorizedError()
    return user


async def _body_dict(request: Request) -> dict:
    # тело уже прочитано FastAPI и закешировано в request
    try:
        data = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return {}
    return data if isinstance(data, dict) else {}


def household_access(record_model: type | None = None):
    """
    Зависимость для процедур роутера: находит семью по телу запроса
    и проверяет членство пользователя. record_model: модель, по которой
    ищется запись, если в теле передан только id.
    """

    async def dependency(
        request: Request,
        session: AsyncSession = Depends(get_db),
        user: User = Depends(current_user),
    ) -> AccessContext:
        return await check_access(session, user, await _body_dict(request), record_model)

    return dependency

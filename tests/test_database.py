from __future__ import annotations

import pytest
from sqlalchemy import func, select

from cradle.db.database import SQLITE_FALLBACK_URL, get_session, normalize_database_url, resolve_database_url
from cradle.db.models import User


def test_database_url_normalisation() -> None:
    assert normalize_database_url("postgres://u:p@db/cradle") == "postgresql+asyncpg://u:p@db/cradle"
    assert normalize_database_url(" postgresql://u:p@db/cradle ") == "postgresql+asyncpg://u:p@db/cradle"
    assert resolve_database_url("") == SQLITE_FALLBACK_URL
    assert resolve_database_url("sqlite+aiosqlite:///./other.db") == "sqlite+aiosqlite:///./other.db"


async def test_get_session_rolls_back_on_error(session_factory) -> None:
    with pytest.raises(RuntimeError):
        async with get_session(session_factory) as session:
            session.add(User(email="rollback@example.com"))
            await session.flush()
            raise RuntimeError("boom")

    async with get_session(session_factory) as session:
        assert await session.scalar(select(func.count()).select_from(User)) == 0

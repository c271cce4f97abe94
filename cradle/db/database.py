# cradle/db/database.py
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from cradle.config import get_config

log = logging.getLogger(__name__)

SQLITE_FALLBACK_URL = "sqlite+aiosqlite:///./cradle.db"

# --- URL БД ---------------------------------------------------------------


def normalize_database_url(url: str) -> str:
    url = (url or "").strip()
    # Хостинги отдают postgres URL как postgresql://...
    # Для async-движка нужно postgresql+asyncpg://
    if url.startswith("postgresql://"):
        url = url.replace("postgresql://", "postgresql+asyncpg://", 1)
    elif url.startswith("postgres://"):
        url = url.replace("postgres://", "postgresql+asyncpg://", 1)
    return url


def resolve_database_url(raw: str) -> str:
    url = normalize_database_url(raw)
    # Локальный fallback (если нет переменной окружения)
    if not url:
        log.warning("DATABASE_URL is not set; using local SQLite fallback: %s", SQLITE_FALLBACK_URL)
        return SQLITE_FALLBACK_URL
    return url


DATABASE_URL = resolve_database_url(get_config().database_url)

# --- Engine & sessionmaker -----------------------------------------------


def make_engine(url: str, *, echo: bool = False) -> AsyncEngine:
    url = normalize_database_url(url)
    if url.startswith("sqlite"):
        kwargs: dict = {"echo": echo}
        if url in ("sqlite+aiosqlite://", "sqlite+aiosqlite:///:memory:"):
            # in-memory база живёт ровно в одном соединении
            kwargs.update(poolclass=StaticPool, connect_args={"check_same_thread": False})
        engine = create_async_engine(url, **kwargs)

        # SQLite по умолчанию не соблюдает ON DELETE CASCADE
        @event.listens_for(engine.sync_engine, "connect")
        def _enable_foreign_keys(dbapi_conn, _record):
            cursor = dbapi_conn.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        return engine
    return create_async_engine(url, echo=echo, pool_pre_ping=True)


def make_sessionmaker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=engine,
        expire_on_commit=False,
        class_=AsyncSession,
    )


async_engine: AsyncEngine = make_engine(DATABASE_URL)

AsyncSessionLocal: async_sessionmaker[AsyncSession] = make_sessionmaker(async_engine)


# --- Сессия как ASYNC CONTEXT MANAGER ------------------------------------

@asynccontextmanager
async def get_session(
    factory: async_sessionmaker[AsyncSession] | None = None,
) -> AsyncIterator[AsyncSession]:
    """
        async with get_session() as session:
            ...

    Коммит на совести вызывающего кода; при ошибке транзакция откатывается.
    """
    session: AsyncSession = (factory or AsyncSessionLocal)()
    try:
        yield session
    except Exception:
        await session.rollback()
        raise
    finally:
        await session.close()


# --- Инициализация схемы --------------------------------------------------

async def init_db(engine: AsyncEngine | None = None) -> None:
    """
    Создаёт таблицы по Base.metadata (idempotent).
    """
    # Локальный импорт, чтобы избежать циклических зависимостей
    from cradle.db.models import Base

    async with (engine or async_engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    log.info("DB schema is ready.")

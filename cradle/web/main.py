# cradle/web/main.py
from __future__ import annotations

import logging
import time

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from cradle.chat.provider import ChatProvider, build_provider
from cradle.config import Config, get_config
from cradle.db.database import AsyncSessionLocal, init_db
from cradle.errors import AppError
from cradle.utils.logging import setup_logging
from cradle.web.routes import (
    activity,
    chat,
    child,
    diaper,
    feeding,
    growth,
    household,
    mcp,
    medicine,
    pumping,
    seed,
    sleep,
    temperature,
    timeline,
    user,
)

logger = logging.getLogger(__name__)

RPC_ROUTERS = (
    household.router,
    child.router,
    sleep.router,
    feeding.router,
    diaper.router,
    pumping.router,
    medicine.router,
    growth.router,
    temperature.router,
    activity.router,
    user.router,
    timeline.router,
)


def _issues(exc: RequestValidationError) -> list[dict]:
    # ("body", "childId") -> "childId"
    return [
        {"path": ".".join(str(p) for p in err["loc"] if p != "body"), "message": err["msg"]}
        for err in exc.errors()
    ]


def create_app(
    session_factory: async_sessionmaker[AsyncSession] | None = None,
    chat_provider: ChatProvider | None = None,
    config: Config | None = None,
) -> FastAPI:
    cfg = config or get_config()
    factory = session_factory or AsyncSessionLocal

    app = FastAPI(title="Cradle")
    app.state.config = cfg
    app.state.session_factory = factory
    app.state.chat_provider = chat_provider if chat_provider is not None else build_provider(cfg.chat)

    # ---------------------- Хуки жизненного цикла ----------------------
    @app.on_event("startup")
    async def on_startup() -> None:
        setup_logging(cfg.log.level, cfg.log.log_dir, cfg.log.log_name)
        try:
            await init_db(factory.kw["bind"])
        except SQLAlchemyError:
            logger.exception("DB init failed")
            raise

    # ---------------------- Ошибки ----------------------
    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("%s failed: %s", request.url.path, exc.message)
        return JSONResponse({"error": exc.to_dict()}, status_code=exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(
            {"error": {"code": "BAD_REQUEST", "message": "Invalid input", "issues": _issues(exc)}},
            status_code=400,
        )

    # ---------------------- Тайминг RPC ----------------------
    @app.middleware("http")
    async def timing(request: Request, call_next):
        started = time.perf_counter()
        response = await call_next(request)
        took = int((time.perf_counter() - started) * 1000)
        if took > cfg.timeline.slow_call_ms:
            logger.warning("[RPC] %s took %sms", request.url.path, took)
        return response

    # ---------------------- Маршруты ----------------------
    @app.get("/health")
    async def health():
        return {"ok": True}

    for router in RPC_ROUTERS:
        app.include_router(router)
    app.include_router(chat.router)
    app.include_router(mcp.router)
    if cfg.seed_enabled:
        app.include_router(seed.router)

    return app


app = create_app()

# cradle/config.py
from __future__ import annotations

import os
from dataclasses import dataclass, field
from functools import lru_cache

from dotenv import load_dotenv

load_dotenv()


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise RuntimeError(f"{name} must be an integer, got {raw!r}")


@dataclass(frozen=True)
class LogConfig:
    level: str = os.getenv("LOG_LEVEL", "INFO")
    log_dir: str = os.getenv("LOG_DIR", "logs")
    log_name: str = os.getenv("LOG_NAME", "cradle.log")


@dataclass(frozen=True)
class TimelineConfig:
    # Логический день начинается не в полночь, а в 08:00
    day_start_hour: int = field(default_factory=lambda: _int_env("DAY_START_HOUR", 8))
    # RPC-вызовы дольше этого порога попадают в лог
    slow_call_ms: int = field(default_factory=lambda: _int_env("SLOW_CALL_MS", 1000))


@dataclass(frozen=True)
class ChatConfig:
    api_key: str = os.getenv("OPENAI_API_KEY", "")
    base_url: str | None = os.getenv("OPENAI_BASE_URL") or None
    models: dict[str, str] = field(default_factory=lambda: {
        "fast": os.getenv("CHAT_MODEL_FAST", "gpt-4o-mini"),
        "standard": os.getenv("CHAT_MODEL_STANDARD", "gpt-4o"),
        "advanced": os.getenv("CHAT_MODEL_ADVANCED", "gpt-4.1"),
    })
    default_model: str = "standard"
    max_tokens: int = field(default_factory=lambda: _int_env("CHAT_MAX_TOKENS", 4096))
    max_tool_rounds: int = field(default_factory=lambda: _int_env("CHAT_MAX_TOOL_ROUNDS", 8))

    def resolve_model(self, alias: str | None) -> str:
        return self.models.get(alias or self.default_model, self.models[self.default_model])


@dataclass(frozen=True)
class Config:
    app_env: str = os.getenv("APP_ENV", "development").strip().lower()
    # postgres://, postgresql:// или sqlite+aiosqlite://; пусто -> локальный SQLite
    database_url: str = os.getenv("DATABASE_URL", "")
    log: LogConfig = field(default_factory=LogConfig)
    timeline: TimelineConfig = field(default_factory=TimelineConfig)
    chat: ChatConfig = field(default_factory=ChatConfig)

    @property
    def seed_enabled(self) -> bool:
        # Тестовые данные можно создавать только вне продакшена
        return self.app_env in ("development", "test")


@lru_cache(maxsize=1)
def get_config() -> Config:
    cfg = Config()
    if not 0 <= cfg.timeline.day_start_hour <= 23:
        raise RuntimeError("DAY_START_HOUR must be between 0 and 23")
    return cfg

from __future__ import annotations

import pytest
from httpx import ASGITransport, AsyncClient

from cradle.config import ChatConfig, Config
from cradle.db.database import init_db, make_engine, make_sessionmaker
from cradle.services.seed import SeedData, seed_test_data
from cradle.web.main import create_app


@pytest.fixture
async def engine(tmp_path):
    # файл, а не :memory:: таймлайн читает категории параллельно из разных сессий
    engine = make_engine(f"sqlite+aiosqlite:///{tmp_path / 'cradle-test.db'}")
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return make_sessionmaker(engine)


@pytest.fixture
async def session(session_factory):
    async with session_factory() as s:
        yield s


@pytest.fixture
async def seeded(session_factory) -> SeedData:
    async with session_factory() as s:
        return await seed_test_data(s)


@pytest.fixture
def config() -> Config:
    return Config(app_env="test", chat=ChatConfig(api_key=""))


@pytest.fixture
def app(session_factory, config):
    return create_app(session_factory=session_factory, config=config)


@pytest.fixture
async def client(app):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c


@pytest.fixture
def auth(seeded) -> dict[str, str]:
    return {"Authorization": f"Bearer {seeded.token}"}

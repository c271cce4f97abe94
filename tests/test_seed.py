from __future__ import annotations

from httpx import ASGITransport, AsyncClient
from sqlalchemy import func, select

from cradle.config import ChatConfig, Config
from cradle.db.models import AuthSession, Child, SleepRecord, User
from cradle.services.seed import cleanup, seed_test_data
from cradle.utils.dates import local_now
from cradle.web.main import create_app

SEED = "/api/test/seed"


async def test_seed_actions_build_a_usable_account(client) -> None:
    resp = await client.post(SEED, json={"action": "createTestUser", "email": "e2e-test-anna@example.com", "name": "Anna"})
    user = resp.json()["user"]
    assert user["email"] == "e2e-test-anna@example.com"

    # повторный вызов не создаёт дубль
    again = await client.post(SEED, json={"action": "createTestUser", "email": "e2e-test-anna@example.com"})
    assert again.json()["user"]["id"] == user["id"]

    token = (await client.post(SEED, json={"action": "createTestSession", "userId": user["id"]})).json()["sessionToken"]
    resp = await client.post(
        SEED, json={"action": "createTestHousehold", "userId": user["id"], "name": "e2e-test Anna's family"}
    )
    household = resp.json()["household"]
    assert resp.json()["ownerId"] == user["id"]

    resp = await client.post(
        SEED,
        json={
            "action": "createTestChild",
            "householdId": household["id"],
            "name": "e2e-test Mila",
            "birthDate": "2024-01-01",
            "gender": "FEMALE",
        },
    )
    child = resp.json()["child"]
    assert child["birthDate"] == "2024-01-01"

    # созданным токеном можно работать с RPC
    listed = await client.post(
        "/api/sleep/list", json={"childId": child["id"]}, headers={"Authorization": f"Bearer {token}"}
    )
    assert listed.status_code == 200
    assert listed.json() == []


async def test_seed_requires_fields(client) -> None:
    resp = await client.post(SEED, json={"action": "createTestChild", "name": "e2e-test Nobody"})
    assert resp.status_code == 400
    assert resp.json()["error"]["message"] == "householdId is required"

    resp = await client.post(SEED, json={"action": "dropDatabase"})
    assert resp.status_code == 400


async def test_cleanup_cascades(client, session, session_factory, seeded) -> None:
    async with session_factory() as s:
        await seed_test_data(s, prefix="e2e-test-other")
    session.add(SleepRecord(child_id=seeded.child.id, start_time=local_now(), end_time=None))
    await session.commit()

    resp = await client.post(SEED, json={"action": "cleanup"})
    assert resp.json()["deleted"] == {"users": 2, "households": 2, "children": 2}

    async with session_factory() as s:
        for model in (User, Child, SleepRecord, AuthSession):
            assert await s.scalar(select(func.count()).select_from(model)) == 0


async def test_cleanup_leaves_other_prefixes(session, seeded) -> None:
    result = await cleanup(session, "someone-else")
    assert result == {"users": 0, "households": 0, "children": 0}
    assert await session.get(Child, seeded.child.id) is not None


async def test_seed_router_is_off_in_production(session_factory) -> None:
    app = create_app(session_factory=session_factory, config=Config(app_env="production", chat=ChatConfig(api_key="")))
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        resp = await c.post(SEED, json={"action": "cleanup"})
    assert resp.status_code == 404

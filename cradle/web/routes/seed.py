# cradle/web/routes/seed.py
"""Сид для e2e-прогонов. Роутер подключается только вне продакшена."""
from __future__ import annotations

from datetime import date
from typing import Literal

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from cradle.db.enums import Gender
from cradle.errors import BadRequestError
from cradle.schemas.base import CamelModel
from cradle.schemas.outputs import ChildOut, HouseholdOut, UserOut
from cradle.services import seed as svc
from cradle.web.deps import get_db

router = APIRouter(prefix="/api/test", tags=["test"])


class SeedRequest(CamelModel):
    action: Literal["createTestUser", "createTestSession", "createTestHousehold", "createTestChild", "cleanup"]
    email: str | None = None
    name: str | None = None
    user_id: str | None = None
    household_id: str | None = None
    birth_date: date | None = None
    gender: Gender | None = None
    prefix: str = svc.DEFAULT_PREFIX


def _need(value, field: str):
    if not value:
        raise BadRequestError(f"{field} is required")
    return value


@router.post("/seed")
async def seed(data: SeedRequest, session: AsyncSession = Depends(get_db)) -> dict:
    if data.action == "createTestUser":
        user = await svc.create_test_user(session, _need(data.email, "email"), data.name)
        return {"user": UserOut.model_validate(user).model_dump(by_alias=True, mode="json")}

    if data.action == "createTestSession":
        auth = await svc.create_test_session(session, _need(data.user_id, "userId"))
        return {"sessionToken": auth.token, "expires": auth.expires_at.isoformat()}

    if data.action == "createTestHousehold":
        user_id = _need(data.user_id, "userId")
        household = await svc.create_test_household(session, _need(data.name, "name"), user_id)
        return {
            "household": HouseholdOut.model_validate(household).model_dump(by_alias=True, mode="json"),
            "ownerId": user_id,
        }

    if data.action == "createTestChild":
        child = await svc.create_test_child(
            session,
            _need(data.household_id, "householdId"),
            _need(data.name, "name"),
            _need(data.birth_date, "birthDate"),
            data.gender.value if data.gender else None,
        )
        return {"child": ChildOut.model_validate(child).model_dump(by_alias=True, mode="json")}

    return {"deleted": await svc.cleanup(session, data.prefix)}

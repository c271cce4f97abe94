# cradle/web/routes/user.py
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from cradle.db.models import User
from cradle.schemas.base import SuccessOut
from cradle.schemas.household import UserDeleteInput, UserUpdateInput
from cradle.schemas.outputs import UserOut, UserProfileOut
from cradle.services import household as svc
from cradle.web.deps import current_user, get_db

router = APIRouter(prefix="/api/user", tags=["user"])


@router.post("/get")
async def get(user: User = Depends(current_user)) -> UserProfileOut:
    return UserProfileOut.model_validate(user)


@router.post("/update")
async def update(
    data: UserUpdateInput,
    session: AsyncSession = Depends(get_db),
    user: User = Depends(current_user),
) -> UserOut:
    return UserOut.model_validate(await svc.update_user(session, user, data))


@router.post("/delete")
async def delete(
    data: UserDeleteInput,
    session: AsyncSession = Depends(get_db),
    user: User = Depends(current_user),
) -> SuccessOut:
    return SuccessOut(**await svc.delete_user(session, user, data))

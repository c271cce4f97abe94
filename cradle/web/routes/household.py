# cradle/web/routes/household.py
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from cradle.db.models import Household, User
from cradle.schemas.base import IdInput, SuccessOut
from cradle.schemas.household import (
    AcceptInviteInput,
    HouseholdCreateInput,
    HouseholdUpdateInput,
    InviteInput,
    MemberRoleInput,
    RemoveMemberInput,
)
from cradle.schemas.outputs import (
    AcceptInviteOut,
    HouseholdDetailOut,
    HouseholdMembershipOut,
    HouseholdOut,
    InviteOut,
    MemberOut,
)
from cradle.services import household as svc
from cradle.services.access import AccessContext
from cradle.web.deps import current_user, get_db, household_access

router = APIRouter(prefix="/api/household", tags=["household"])

access = household_access(Household)


@router.post("/list")
async def list_households(
    session: AsyncSession = Depends(get_db), user: User = Depends(current_user)
) -> list[HouseholdMembershipOut]:
    return await svc.list_households(session, user)


@router.post("/get")
async def get(data: IdInput, ctx: AccessContext = Depends(access)) -> HouseholdDetailOut:
    ctx.require_member()
    return await svc.get_household(ctx.session, data.id)


@router.post("/create")
async def create(
    data: HouseholdCreateInput,
    session: AsyncSession = Depends(get_db),
    user: User = Depends(current_user),
) -> HouseholdDetailOut:
    return await svc.create_household(session, user, data.name)


@router.post("/update")
async def update(data: HouseholdUpdateInput, ctx: AccessContext = Depends(access)) -> HouseholdOut:
    ctx.require_admin("Only owners and admins can update household settings")
    return HouseholdOut.model_validate(await svc.update_household(ctx.session, data))


@router.post("/delete")
async def delete(data: IdInput, ctx: AccessContext = Depends(access)) -> SuccessOut:
    ctx.require_owner("Only owners can delete households")
    return SuccessOut(**await svc.delete_household(ctx.session, data.id))


@router.post("/invite")
async def invite(data: InviteInput, ctx: AccessContext = Depends(access)) -> InviteOut:
    ctx.require_admin("Only owners and admins can invite members")
    return InviteOut.model_validate(await svc.invite_member(ctx.session, data))


@router.post("/acceptInvite")
async def accept_invite(
    data: AcceptInviteInput,
    session: AsyncSession = Depends(get_db),
    user: User = Depends(current_user),
) -> AcceptInviteOut:
    return AcceptInviteOut(**await svc.accept_invite(session, user, data.token))


@router.post("/updateMemberRole")
async def update_member_role(data: MemberRoleInput, ctx: AccessContext = Depends(access)) -> MemberOut:
    ctx.require_owner("Only owners can change member roles")
    member = await svc.update_member_role(ctx.session, ctx.user, data)
    return MemberOut.model_validate(member)


@router.post("/removeMember")
async def remove_member(data: RemoveMemberInput, ctx: AccessContext = Depends(access)) -> SuccessOut:
    role = ctx.require_member()
    return SuccessOut(**await svc.remove_member(ctx.session, ctx.user, role, data))

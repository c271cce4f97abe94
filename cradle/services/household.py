# cradle/services/household.py
from __future__ import annotations

import logging
from datetime import timedelta

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from cradle.db.enums import HouseholdRole
from cradle.db.models import Child, Household, HouseholdInvite, HouseholdMember, User
from cradle.errors import BadRequestError, ConflictError, ForbiddenError, NotFoundError
from cradle.schemas.household import (
    ChildCreateInput,
    ChildUpdateInput,
    HouseholdUpdateInput,
    InviteInput,
    MemberRoleInput,
    RemoveMemberInput,
    UserDeleteInput,
    UserUpdateInput,
)
from cradle.schemas.outputs import HouseholdDetailOut, HouseholdMembershipOut
from cradle.services.access import get_membership
from cradle.services.common import (
    all_rows,
    apply_changes,
    commit_or_conflict,
    first,
    get_or_404,
    remove,
    save,
    value_of,
)
from cradle.utils.dates import local_now

log = logging.getLogger(__name__)

INVITE_TTL = timedelta(days=7)


def _with_members_and_children():
    return (
        selectinload(Household.members).selectinload(HouseholdMember.user),
        selectinload(Household.children),
    )


# --------- Семья ---------
async def list_households(session: AsyncSession, user: User) -> list[HouseholdMembershipOut]:
    stmt = (
        select(HouseholdMember)
        .where(HouseholdMember.user_id == user.id)
        .options(selectinload(HouseholdMember.household).options(*_with_members_and_children()))
        .order_by(HouseholdMember.created_at.asc())
    )
    memberships = await all_rows(session, stmt)
    return [
        HouseholdMembershipOut(
            **HouseholdDetailOut.model_validate(m.household).model_dump(),
            role=m.role,
        )
        for m in memberships
    ]


async def get_household(session: AsyncSession, household_id: str) -> HouseholdDetailOut:
    stmt = (
        select(Household)
        .where(Household.id == household_id)
        .options(*_with_members_and_children())
        .execution_options(populate_existing=True)
    )
    household = await first(session, stmt)
    if household is None:
        raise NotFoundError("Household not found")
    return HouseholdDetailOut.model_validate(household)


async def create_household(session: AsyncSession, user: User, name: str) -> HouseholdDetailOut:
    household = Household(name=name)
    session.add(household)
    await session.flush()
    # создатель сразу владелец
    session.add(HouseholdMember(household_id=household.id, user_id=user.id, role=HouseholdRole.OWNER.value))
    await session.commit()
    log.info("Household %s created by %s", household.id, user.id)
    return await get_household(session, household.id)


async def update_household(session: AsyncSession, data: HouseholdUpdateInput) -> Household:
    household = await get_or_404(session, Household, data.id, "Household not found")
    apply_changes(household, data.model_dump(exclude_unset=True, exclude={"id"}))
    return await save(session, household)


async def delete_household(session: AsyncSession, household_id: str) -> dict:
    household = await get_or_404(session, Household, household_id, "Household not found")
    return await remove(session, household)


async def invite_member(session: AsyncSession, data: InviteInput) -> HouseholdInvite:
    existing_user = await first(session, select(User).where(User.email == data.email))
    if existing_user is not None:
        if await get_membership(session, data.household_id, existing_user.id) is not None:
            raise ConflictError("User is already a member of this household")

    invite = HouseholdInvite(
        household_id=data.household_id,
        email=data.email,
        role=value_of(data.role),
        expires_at=local_now() + INVITE_TTL,
    )
    return await save(session, invite)


async def accept_invite(session: AsyncSession, user: User, token: str) -> dict:
    invite = await first(session, select(HouseholdInvite).where(HouseholdInvite.token == token))
    if invite is None:
        raise NotFoundError("Invite not found")
    if invite.expires_at < local_now():
        raise BadRequestError("Invite has expired")
    if invite.email.lower() != (user.email or "").lower():
        raise ForbiddenError("This invite is for a different email address")

    household_id = invite.household_id
    # участник и удаление инвайта одной транзакцией
    session.add(HouseholdMember(household_id=household_id, user_id=user.id, role=invite.role))
    await session.delete(invite)
    await commit_or_conflict(session, "User is already a member of this household")
    return {"success": True, "household_id": household_id}


async def update_member_role(session: AsyncSession, acting_user: User, data: MemberRoleInput) -> HouseholdMember:
    if data.user_id == acting_user.id:
        raise BadRequestError("You cannot change your own role")
    stmt = (
        select(HouseholdMember)
        .where(HouseholdMember.household_id == data.household_id, HouseholdMember.user_id == data.user_id)
        .options(selectinload(HouseholdMember.user))
    )
    member = await first(session, stmt)
    if member is None:
        raise NotFoundError("Member not found")
    member.role = value_of(data.role)
    return await save(session, member)


async def remove_member(session: AsyncSession, acting_user: User, role: str | None, data: RemoveMemberInput) -> dict:
    removing_self = data.user_id == acting_user.id
    if not removing_self and role not in (HouseholdRole.OWNER.value, HouseholdRole.ADMIN.value):
        raise ForbiddenError("Only owners and admins can remove members")

    member = await get_membership(session, data.household_id, data.user_id)
    if member is None:
        raise NotFoundError("Member not found")
    if member.role == HouseholdRole.OWNER.value and not removing_self:
        raise ForbiddenError("Cannot remove the owner")
    return await remove(session, member)


# --------- Дети ---------
async def list_children(session: AsyncSession, household_id: str) -> list[Child]:
    stmt = select(Child).where(Child.household_id == household_id).order_by(Child.birth_date.desc())
    return await all_rows(session, stmt)


async def get_child(session: AsyncSession, child_id: str) -> Child:
    stmt = select(Child).where(Child.id == child_id).options(selectinload(Child.household))
    child = await first(session, stmt)
    if child is None:
        raise NotFoundError("Child not found")
    return child


async def create_child(session: AsyncSession, data: ChildCreateInput) -> Child:
    child = Child(
        household_id=data.household_id,
        name=data.name,
        birth_date=data.birth_date.date(),
        gender=value_of(data.gender),
        photo=str(data.photo) if data.photo else None,
    )
    return await save(session, child)


async def update_child(session: AsyncSession, data: ChildUpdateInput) -> Child:
    child = await get_or_404(session, Child, data.id, "Child not found")
    changes = data.model_dump(exclude_unset=True, exclude={"id"})
    if changes.get("birth_date") is not None:
        changes["birth_date"] = changes["birth_date"].date()
    if changes.get("photo") is not None:
        changes["photo"] = str(changes["photo"])
    apply_changes(child, changes)
    return await save(session, child)


async def delete_child(session: AsyncSession, child_id: str) -> dict:
    child = await get_or_404(session, Child, child_id, "Child not found")
    return await remove(session, child)


# --------- Пользователь ---------
async def update_user(session: AsyncSession, user: User, data: UserUpdateInput) -> User:
    apply_changes(user, data.model_dump(exclude_unset=True))
    return await save(session, user)


async def delete_user(session: AsyncSession, user: User, data: UserDeleteInput) -> dict:
    if data.confirm_email.lower() != (user.email or "").lower():
        raise BadRequestError("Email confirmation does not match your account email")

    stmt = (
        select(HouseholdMember)
        .where(HouseholdMember.user_id == user.id, HouseholdMember.role == HouseholdRole.OWNER.value)
        .options(selectinload(HouseholdMember.household).selectinload(Household.members))
    )
    for membership in await all_rows(session, stmt):
        others = [m for m in membership.household.members if m.user_id != user.id]
        if not others:
            # больше никого нет: семья уходит вместе с детьми и записями
            await session.execute(delete(Household).where(Household.id == membership.household_id))
            log.info("Household %s deleted with its last owner %s", membership.household_id, user.id)
            continue
        # владение переходит первому админу, иначе первому участнику
        heir = next((m for m in others if m.role == HouseholdRole.ADMIN.value), others[0])
        heir.role = HouseholdRole.OWNER.value

    await session.execute(delete(User).where(User.id == user.id))
    await session.commit()
    return {"success": True}

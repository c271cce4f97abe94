# cradle/services/access.py
"""
Доступ к данным семьи.

Из входа процедуры находим семью (householdId, childId, medicineId или id;
если указано несколько, все должны вести в одну семью),
проверяем, что пользователь в ней состоит, и запоминаем его роль.
Дальше процедура сама решает, хватает ли роли для действия.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from cradle.db.enums import HouseholdRole
from cradle.db.models import Child, Household, HouseholdMember, Medicine, MedicineRecord, User
from cradle.errors import ForbiddenError

log = logging.getLogger(__name__)

NO_ACCESS = "You do not have access to this household"
VIEWER_LOG = "Viewers cannot log activities"
VIEWER_UPDATE = "Viewers cannot update activities"
VIEWER_DELETE = "Viewers cannot delete activities"


@dataclass
class AccessContext:
    session: AsyncSession
    user: User
    household_id: str | None = None
    role: str | None = None

    def require_member(self) -> str:
        if self.role is None:
            raise ForbiddenError(NO_ACCESS)
        return self.role

    def require_writer(self, message: str) -> None:
        if self.require_member() == HouseholdRole.VIEWER.value:
            raise ForbiddenError(message)

    def require_admin(self, message: str) -> None:
        if self.require_member() not in (HouseholdRole.OWNER.value, HouseholdRole.ADMIN.value):
            raise ForbiddenError(message)

    def require_owner(self, message: str) -> None:
        if self.require_member() != HouseholdRole.OWNER.value:
            raise ForbiddenError(message)


async def _scalar(session: AsyncSession, stmt) -> Any:
    res = await session.execute(stmt)
    return res.scalar_one_or_none()


async def household_of_child(session: AsyncSession, child_id: str) -> str | None:
    return await _scalar(session, select(Child.household_id).where(Child.id == child_id))


async def household_of_medicine(session: AsyncSession, medicine_id: str) -> str | None:
    stmt = (
        select(Child.household_id)
        .join(Medicine, Medicine.child_id == Child.id)
        .where(Medicine.id == medicine_id)
    )
    return await _scalar(session, stmt)


async def household_of_record(session: AsyncSession, model: type, record_id: str) -> str | None:
    """Семья, которой принадлежит запись model с данным id."""
    if model is Household:
        return await _scalar(session, select(Household.id).where(Household.id == record_id))
    if model is Child:
        return await household_of_child(session, record_id)
    if model is MedicineRecord:
        stmt = (
            select(Child.household_id)
            .join(Medicine, Medicine.child_id == Child.id)
            .join(MedicineRecord, MedicineRecord.medicine_id == Medicine.id)
            .where(MedicineRecord.id == record_id)
        )
        return await _scalar(session, stmt)
    stmt = (
        select(Child.household_id)
        .join(model, model.child_id == Child.id)
        .where(model.id == record_id)
    )
    return await _scalar(session, stmt)


async def resolve_household_id(
    session: AsyncSession,
    data: dict[str, Any],
    record_model: type | None = None,
) -> str | None:
    # householdId, childId и medicineId должны вести в одну и ту же семью
    found: set[str] = set()
    if data.get("householdId"):
        found.add(str(data["householdId"]))
    if data.get("childId"):
        household_id = await household_of_child(session, str(data["childId"]))
        if household_id:
            found.add(household_id)
    if data.get("medicineId"):
        household_id = await household_of_medicine(session, str(data["medicineId"]))
        if household_id:
            found.add(household_id)

    if len(found) > 1:
        log.info("Request references several households: %s", sorted(found))
        raise ForbiddenError(NO_ACCESS)
    if found:
        return found.pop()

    record_id = data.get("id")
    if record_id:
        record_id = str(record_id)
        if record_model is not None:
            household_id = await household_of_record(session, record_model, record_id)
            if household_id:
                return household_id
        household_id = await household_of_child(session, record_id)
        if household_id:
            return household_id
        return await _scalar(session, select(Household.id).where(Household.id == record_id))

    return None


async def get_membership(session: AsyncSession, household_id: str, user_id: str) -> HouseholdMember | None:
    stmt = select(HouseholdMember).where(
        HouseholdMember.household_id == household_id,
        HouseholdMember.user_id == user_id,
    )
    return await _scalar(session, stmt)


async def check_access(
    session: AsyncSession,
    user: User,
    data: dict[str, Any],
    record_model: type | None = None,
) -> AccessContext:
    household_id = await resolve_household_id(session, data, record_model)
    if household_id is None:
        # нечего проверять: процедура сама упадёт на require_*
        return AccessContext(session=session, user=user)

    membership = await get_membership(session, household_id, user.id)
    if membership is None:
        log.info("User %s denied access to household %s", user.id, household_id)
        raise ForbiddenError(NO_ACCESS)

    # id записи из другой семьи при "своём" childId тоже даёт отказ
    record_id = data.get("id")
    if record_model is not None and record_id:
        owner = await household_of_record(session, record_model, str(record_id))
        if owner is not None and owner != household_id:
            raise ForbiddenError(NO_ACCESS)

    return AccessContext(session=session, user=user, household_id=household_id, role=membership.role)

# cradle/schemas/household.py
from __future__ import annotations

from typing import Annotated

from pydantic import EmailStr, Field, HttpUrl

from cradle.db.enums import Gender, HouseholdRole
from cradle.schemas.base import CamelModel, Id, IdInput, LocalDateTime

Name = Annotated[str, Field(min_length=1, max_length=100)]


# --------- Семья ---------
class HouseholdCreateInput(CamelModel):
    name: Name


class HouseholdUpdateInput(IdInput):
    name: Name | None = None


class InviteInput(CamelModel):
    household_id: Id
    email: EmailStr
    role: HouseholdRole = HouseholdRole.CAREGIVER


class AcceptInviteInput(CamelModel):
    token: Annotated[str, Field(min_length=1)]


class MemberRoleInput(CamelModel):
    household_id: Id
    user_id: Id
    role: HouseholdRole


class RemoveMemberInput(CamelModel):
    household_id: Id
    user_id: Id


# --------- Ребёнок ---------
class ChildListInput(CamelModel):
    household_id: Id


class ChildCreateInput(CamelModel):
    household_id: Id
    name: Name
    birth_date: LocalDateTime
    gender: Gender | None = None
    photo: HttpUrl | None = None


class ChildUpdateInput(IdInput):
    name: Name | None = None
    birth_date: LocalDateTime | None = None
    gender: Gender | None = None
    photo: HttpUrl | None = None


# --------- Пользователь ---------
class UserUpdateInput(CamelModel):
    name: Name | None = None


class UserDeleteInput(CamelModel):
    confirm_email: EmailStr

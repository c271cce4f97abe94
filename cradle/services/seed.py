# cradle/services/seed.py
"""
Тестовые данные: пользователь, сессия, семья и ребёнок.

seed_test_data() возвращает SeedData, и тесты получают его явным
аргументом (фикстурой), а не через глобальную переменную.
Всё, что создано с префиксом DEFAULT_PREFIX в email или имени,
удаляет cleanup().
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, timedelta

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from cradle.db.enums import HouseholdRole
from cradle.db.models import AuthSession, Child, Household, HouseholdMember, User
from cradle.utils.dates import local_now

log = logging.getLogger(__name__)

DEFAULT_PREFIX = "e2e-test"
SESSION_TTL = timedelta(hours=24)


@dataclass
class SeedData:
    user: User
    token: str
    household: Household
    child: Child


async def create_test_user(session: AsyncSession, email: str, name: str | None = None) -> User:
    # upsert по email: повторный сид не падает на уникальности
    user = (await session.execute(select(User).where(User.email == email))).scalars().first()
    if user is None:
        user = User(email=email, name=name)
        session.add(user)
    else:
        user.name = name
    await session.commit()
    return user


async def create_test_session(session: AsyncSession, user_id: str) -> AuthSession:
    auth = AuthSession(user_id=user_id, expires_at=local_now() + SESSION_TTL)
    session.add(auth)
    await session.commit()
    return auth


async def create_test_household(
    session: AsyncSession, name: str, user_id: str, role: str = HouseholdRole.OWNER.value
) -> Household:
    household = Household(name=name)
    session.add(household)
    await session.flush()
    session.add(HouseholdMember(household_id=household.id, user_id=user_id, role=role))
    await session.commit()
    return household


async def create_test_child(
    session: AsyncSession,
    household_id: str,
    name: str,
    birth_date: date,
    gender: str | None = None,
) -> Child:
    child = Child(household_id=household_id, name=name, birth_date=birth_date, gender=gender)
    session.add(child)
    await session.commit()
    return child


async def seed_test_data(
    session: AsyncSession,
    *,
    prefix: str = DEFAULT_PREFIX,
    role: str = HouseholdRole.OWNER.value,
    birth_date: date | None = None,
) -> SeedData:
    user = await create_test_user(session, f"{prefix}-user@example.com", f"{prefix} User")
    auth = await create_test_session(session, user.id)
    household = await create_test_household(session, f"{prefix} Household", user.id, role)
    child = await create_test_child(
        session,
        household.id,
        f"{prefix} Baby",
        birth_date or (local_now() - timedelta(days=90)).date(),
    )
    log.info("Seeded test data: user=%s household=%s child=%s", user.id, household.id, child.id)
    return SeedData(user=user, token=auth.token, household=household, child=child)


async def cleanup(session: AsyncSession, prefix: str = DEFAULT_PREFIX) -> dict[str, int]:
    """Записи детей, участники и сессии удаляются каскадом по внешним ключам."""
    like = f"{prefix}%"
    children = (await session.execute(delete(Child).where(Child.name.like(like)))).rowcount
    households = (await session.execute(delete(Household).where(Household.name.like(like)))).rowcount
    users = (await session.execute(delete(User).where(User.email.like(like)))).rowcount
    await session.commit()
    log.info("Test data removed: %s users, %s households, %s children", users, households, children)
    return {"users": users, "households": households, "children": children}

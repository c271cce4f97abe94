# cradle/db/models.py
from __future__ import annotations

import secrets
from datetime import datetime, date
from uuid import uuid4

from sqlalchemy import (
    JSON,
    Boolean,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from cradle.utils.dates import local_now


def new_id() -> str:
    return uuid4().hex


def new_token() -> str:
    return secrets.token_urlsafe(32)


# Базовый класс для всех моделей
class Base(DeclarativeBase):
    pass


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(DateTime, default=local_now, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=local_now, onupdate=local_now, nullable=False)


def _open_interval_index(name: str, *columns: str, extra: str = "") -> Index:
    # не больше одной незакрытой записи (end_time IS NULL) на ребёнка
    where = "end_time IS NULL" + (f" AND {extra}" if extra else "")
    return Index(
        name,
        *columns,
        unique=True,
        sqlite_where=text(where),
        postgresql_where=text(where),
    )


# --------- Пользователи и сессии ---------
class User(Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    image: Mapped[str | None] = mapped_column(String(500), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=local_now, nullable=False)


class AuthSession(Base):
    __tablename__ = "auth_sessions"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    token: Mapped[str] = mapped_column(String(128), unique=True, index=True, default=new_token)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    expires_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=local_now, nullable=False)

    user: Mapped["User"] = relationship(lazy="joined")


# --------- Семья (household), участники, инвайты ---------
class Household(TimestampMixin, Base):
    __tablename__ = "households"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(100))

    members: Mapped[list["HouseholdMember"]] = relationship(
        back_populates="household",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="HouseholdMember.created_at",
    )
    children: Mapped[list["Child"]] = relationship(
        back_populates="household",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Child.birth_date.desc()",
    )


class HouseholdMember(Base):
    __tablename__ = "household_members"
    __table_args__ = (
        UniqueConstraint("household_id", "user_id", name="uq_household_user"),
    )

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    household_id: Mapped[str] = mapped_column(ForeignKey("households.id", ondelete="CASCADE"), index=True)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    # role: 'OWNER' | 'ADMIN' | 'CAREGIVER' | 'VIEWER'
    role: Mapped[str] = mapped_column(String(20), default="CAREGIVER")
    created_at: Mapped[datetime] = mapped_column(DateTime, default=local_now, nullable=False)

    household: Mapped["Household"] = relationship(back_populates="members")
    user: Mapped["User"] = relationship()


class HouseholdInvite(Base):
    __tablename__ = "household_invites"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    household_id: Mapped[str] = mapped_column(ForeignKey("households.id", ondelete="CASCADE"), index=True)
    email: Mapped[str] = mapped_column(String(255), index=True)
    role: Mapped[str] = mapped_column(String(20), default="CAREGIVER")
    token: Mapped[str] = mapped_column(String(128), unique=True, index=True, default=new_token)
    expires_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=local_now, nullable=False)


# --------- Ребёнок ---------
class Child(TimestampMixin, Base):
    __tablename__ = "children"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    household_id: Mapped[str] = mapped_column(ForeignKey("households.id", ondelete="CASCADE"), index=True)
    name: Mapped[str] = mapped_column(String(100))
    birth_date: Mapped[date] = mapped_column(Date)
    # 'MALE' | 'FEMALE' | 'OTHER' | None
    gender: Mapped[str | None] = mapped_column(String(10), nullable=True)
    photo: Mapped[str | None] = mapped_column(String(500), nullable=True)

    household: Mapped["Household"] = relationship(back_populates="children")


# --------- Сон ---------
class SleepRecord(TimestampMixin, Base):
    __tablename__ = "sleep_records"
    __table_args__ = (
        _open_interval_index("uq_sleep_open_per_child", "child_id"),
    )

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    child_id: Mapped[str] = mapped_column(ForeignKey("children.id", ondelete="CASCADE"), index=True)
    start_time: Mapped[datetime] = mapped_column(DateTime, default=local_now, nullable=False, index=True)
    end_time: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    # 'NAP' | 'NIGHT'
    sleep_type: Mapped[str] = mapped_column(String(10), default="NAP")
    # 1..5
    quality: Mapped[int | None] = mapped_column(Integer, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)


# --------- Кормление ---------
class FeedingRecord(TimestampMixin, Base):
    __tablename__ = "feeding_records"
    __table_args__ = (
        _open_interval_index("uq_breastfeeding_open_per_child", "child_id", extra="feeding_type = 'BREAST'"),
    )

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    child_id: Mapped[str] = mapped_column(ForeignKey("children.id", ondelete="CASCADE"), index=True)
    # 'BREAST' | 'BOTTLE' | 'SOLIDS'
    feeding_type: Mapped[str] = mapped_column(String(10))
    start_time: Mapped[datetime] = mapped_column(DateTime, default=local_now, nullable=False, index=True)
    end_time: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    # Грудь: текущая сторона и накопленное время по сторонам
    side: Mapped[str | None] = mapped_column(String(10), nullable=True)
    left_duration_seconds: Mapped[int | None] = mapped_column(Integer, nullable=True)
    right_duration_seconds: Mapped[int | None] = mapped_column(Integer, nullable=True)

    # Бутылочка
    amount_ml: Mapped[float | None] = mapped_column(Float, nullable=True)
    bottle_content_type: Mapped[str | None] = mapped_column(String(20), nullable=True)

    # Прикорм
    food_items: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)

    notes: Mapped[str | None] = mapped_column(Text, nullable=True)


# --------- Подгузники ---------
class DiaperRecord(TimestampMixin, Base):
    __tablename__ = "diaper_records"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    child_id: Mapped[str] = mapped_column(ForeignKey("children.id", ondelete="CASCADE"), index=True)
    time: Mapped[datetime] = mapped_column(DateTime, default=local_now, nullable=False, index=True)
    # 'WET' | 'DIRTY' | 'BOTH' | 'DRY'
    diaper_type: Mapped[str] = mapped_column(String(10))
    color: Mapped[str | None] = mapped_column(String(10), nullable=True)
    consistency: Mapped[str | None] = mapped_column(String(10), nullable=True)
    size: Mapped[str | None] = mapped_column(String(10), nullable=True)
    amount: Mapped[str | None] = mapped_column(String(10), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)


# --------- Сцеживание ---------
class PumpingRecord(TimestampMixin, Base):
    __tablename__ = "pumping_records"
    __table_args__ = (
        _open_interval_index("uq_pumping_open_per_child", "child_id"),
    )

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    child_id: Mapped[str] = mapped_column(ForeignKey("children.id", ondelete="CASCADE"), index=True)
    start_time: Mapped[datetime] = mapped_column(DateTime, default=local_now, nullable=False, index=True)
    end_time: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    amount_ml: Mapped[float | None] = mapped_column(Float, nullable=True)
    side: Mapped[str | None] = mapped_column(String(10), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)


# --------- Лекарства ---------
class Medicine(TimestampMixin, Base):
    __tablename__ = "medicines"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    child_id: Mapped[str] = mapped_column(ForeignKey("children.id", ondelete="CASCADE"), index=True)
    name: Mapped[str] = mapped_column(String(100))
    dosage: Mapped[str] = mapped_column(String(100))
    frequency: Mapped[str | None] = mapped_column(String(100), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)


class MedicineRecord(TimestampMixin, Base):
    __tablename__ = "medicine_records"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    medicine_id: Mapped[str] = mapped_column(ForeignKey("medicines.id", ondelete="CASCADE"), index=True)
    time: Mapped[datetime] = mapped_column(DateTime, default=local_now, nullable=False, index=True)
    dosage_given: Mapped[str | None] = mapped_column(String(100), nullable=True)
    skipped: Mapped[bool] = mapped_column(Boolean, default=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    # лекарство нужно почти всегда (таймлайн, MCP), грузим сразу
    medicine: Mapped["Medicine"] = relationship(lazy="joined")


# --------- Рост / вес ---------
class GrowthRecord(TimestampMixin, Base):
    __tablename__ = "growth_records"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    child_id: Mapped[str] = mapped_column(ForeignKey("children.id", ondelete="CASCADE"), index=True)
    date: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)
    weight_kg: Mapped[float | None] = mapped_column(Float, nullable=True)
    height_cm: Mapped[float | None] = mapped_column(Float, nullable=True)
    head_circumference_cm: Mapped[float | None] = mapped_column(Float, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)


# --------- Температура ---------
class TemperatureRecord(TimestampMixin, Base):
    __tablename__ = "temperature_records"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    child_id: Mapped[str] = mapped_column(ForeignKey("children.id", ondelete="CASCADE"), index=True)
    time: Mapped[datetime] = mapped_column(DateTime, default=local_now, nullable=False, index=True)
    temperature_celsius: Mapped[float] = mapped_column(Float)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)


# --------- Активности (tummy time, купание, ...) ---------
class ActivityRecord(TimestampMixin, Base):
    __tablename__ = "activity_records"
    __table_args__ = (
        _open_interval_index("uq_activity_open_per_child_type", "child_id", "activity_type"),
    )

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    child_id: Mapped[str] = mapped_column(ForeignKey("children.id", ondelete="CASCADE"), index=True)
    activity_type: Mapped[str] = mapped_column(String(20))
    start_time: Mapped[datetime] = mapped_column(DateTime, default=local_now, nullable=False, index=True)
    end_time: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

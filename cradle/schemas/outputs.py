# cradle/schemas/outputs.py
"""Ответы RPC. Строятся из ORM-объектов через model_validate()."""
from __future__ import annotations

from datetime import date, datetime
from typing import Any, Union

from pydantic import model_validator

from cradle.schemas.base import CamelModel
from cradle.services.breastfeeding import normalize_breastfeeding_sides


class RecordOut(CamelModel):
    id: str
    created_at: datetime
    updated_at: datetime


class SleepRecordOut(RecordOut):
    child_id: str
    start_time: datetime
    end_time: datetime | None = None
    sleep_type: str
    quality: int | None = None
    notes: str | None = None


class FeedingRecordOut(RecordOut):
    child_id: str
    feeding_type: str
    start_time: datetime
    end_time: datetime | None = None
    side: str | None = None
    left_duration_seconds: int = 0
    right_duration_seconds: int = 0
    amount_ml: float | None = None
    bottle_content_type: str | None = None
    food_items: list[str] = []
    notes: str | None = None

    @model_validator(mode="before")
    @classmethod
    def _normalize_sides(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return data
        sides = normalize_breastfeeding_sides(data)
        return {
            "id": data.id,
            "created_at": data.created_at,
            "updated_at": data.updated_at,
            "child_id": data.child_id,
            "feeding_type": data.feeding_type,
            "start_time": data.start_time,
            "end_time": data.end_time,
            "side": data.side,
            "left_duration_seconds": sides.left_seconds,
            "right_duration_seconds": sides.right_seconds,
            "amount_ml": data.amount_ml,
            "bottle_content_type": data.bottle_content_type,
            "food_items": list(data.food_items or []),
            "notes": data.notes,
        }


class DiaperRecordOut(RecordOut):
    child_id: str
    time: datetime
    diaper_type: str
    color: str | None = None
    consistency: str | None = None
    size: str | None = None
    amount: str | None = None
    notes: str | None = None


class PumpingRecordOut(RecordOut):
    child_id: str
    start_time: datetime
    end_time: datetime | None = None
    amount_ml: float | None = None
    side: str | None = None
    notes: str | None = None


class MedicineOut(RecordOut):
    child_id: str
    name: str
    dosage: str
    frequency: str | None = None
    notes: str | None = None
    is_active: bool


class MedicineRecordOut(RecordOut):
    medicine_id: str
    time: datetime
    dosage_given: str | None = None
    skipped: bool
    notes: str | None = None
    medicine: MedicineOut | None = None


class MedicineDetailOut(MedicineOut):
    records: list[MedicineRecordOut] = []


class GrowthRecordOut(RecordOut):
    child_id: str
    date: datetime
    weight_kg: float | None = None
    height_cm: float | None = None
    head_circumference_cm: float | None = None
    notes: str | None = None


class TemperatureRecordOut(RecordOut):
    child_id: str
    time: datetime
    temperature_celsius: float
    notes: str | None = None


class ActivityRecordOut(RecordOut):
    child_id: str
    activity_type: str
    start_time: datetime
    end_time: datetime | None = None
    notes: str | None = None


# --------- Семья, дети, пользователи ---------
class UserOut(CamelModel):
    id: str
    name: str | None = None
    email: str
    image: str | None = None


class UserProfileOut(UserOut):
    created_at: datetime


class MemberOut(CamelModel):
    id: str
    household_id: str
    user_id: str
    role: str
    created_at: datetime
    user: UserOut | None = None


class HouseholdRefOut(CamelModel):
    id: str
    name: str


class ChildOut(RecordOut):
    household_id: str
    name: str
    birth_date: date
    gender: str | None = None
    photo: str | None = None


class ChildDetailOut(ChildOut):
    household: HouseholdRefOut


class HouseholdOut(RecordOut):
    name: str


class HouseholdDetailOut(HouseholdOut):
    members: list[MemberOut] = []
    children: list[ChildOut] = []


class HouseholdMembershipOut(HouseholdDetailOut):
    role: str


class InviteOut(CamelModel):
    id: str
    household_id: str
    email: str
    role: str
    token: str
    expires_at: datetime
    created_at: datetime


class AcceptInviteOut(CamelModel):
    success: bool = True
    household_id: str


# --------- Сводки ---------
class SleepSummaryOut(CamelModel):
    total_sessions: int
    total_minutes: int
    nap_count: int
    nap_minutes: int
    night_count: int
    night_minutes: int
    average_quality: float | None = None


class FeedingSummaryOut(CamelModel):
    total_feedings: int
    breastfeeding_count: int
    breastfeeding_minutes: int
    left_seconds: int
    right_seconds: int
    bottle_count: int
    total_bottle_ml: float
    solids_count: int
    last_left_side: datetime | None = None
    last_right_side: datetime | None = None


class DiaperSummaryOut(CamelModel):
    total_changes: int
    wet_count: int
    dirty_count: int
    dry_count: int
    last_change: datetime | None = None
    last_type: str | None = None


class PumpingSummaryOut(CamelModel):
    total_sessions: int
    total_minutes: int
    total_ml: float
    average_ml: float


class ActivityTypeStats(CamelModel):
    count: int = 0
    total_minutes: int = 0


class ActivitySummaryOut(CamelModel):
    total_activities: int
    by_type: dict[str, ActivityTypeStats]


# --------- Таймлайн ---------
AnyRecordOut = Union[
    SleepRecordOut,
    FeedingRecordOut,
    DiaperRecordOut,
    PumpingRecordOut,
    MedicineRecordOut,
    GrowthRecordOut,
    TemperatureRecordOut,
    ActivityRecordOut,
]


class TimelineRecordsOut(CamelModel):
    sleep_records: list[SleepRecordOut] = []
    feeding_records: list[FeedingRecordOut] = []
    diaper_records: list[DiaperRecordOut] = []
    pumping_records: list[PumpingRecordOut] = []
    medicine_records: list[MedicineRecordOut] = []
    growth_records: list[GrowthRecordOut] = []
    temperature_records: list[TemperatureRecordOut] = []
    activity_records: list[ActivityRecordOut] = []


class DayTimelineOut(TimelineRecordsOut):
    date: datetime
    day_start: datetime
    day_end: datetime


class WeekDayOut(TimelineRecordsOut):
    date: str
    day_start: datetime


class WeekTimelineOut(CamelModel):
    week_start: datetime
    week_end: datetime
    days: list[WeekDayOut]


class TimelineEntryOut(CamelModel):
    type: str
    time: datetime
    record: AnyRecordOut


class ListTimelineOut(CamelModel):
    week_start: datetime
    week_end: datetime
    activities: list[TimelineEntryOut]
    grouped_by_date: dict[str, list[TimelineEntryOut]]


class LastActivitiesOut(CamelModel):
    last_sleep: SleepRecordOut | None = None
    active_sleep: SleepRecordOut | None = None
    last_breastfeeding: FeedingRecordOut | None = None
    active_feeding: FeedingRecordOut | None = None
    last_bottle: FeedingRecordOut | None = None
    last_solids: FeedingRecordOut | None = None
    last_diaper: DiaperRecordOut | None = None
    last_pumping: PumpingRecordOut | None = None
    active_pumping: PumpingRecordOut | None = None
    last_medicine: MedicineRecordOut | None = None
    last_growth: GrowthRecordOut | None = None
    last_temperature: TemperatureRecordOut | None = None
    last_activity: ActivityRecordOut | None = None

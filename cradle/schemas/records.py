# cradle/schemas/records.py
"""Входные данные RPC для записей ухода (сон, кормление, подгузники, ...)."""
from __future__ import annotations

from typing import Annotated

from pydantic import Field

from cradle.db.enums import (
    ActivityType,
    BottleContentType,
    BreastSide,
    DiaperAmount,
    DiaperColor,
    DiaperConsistency,
    DiaperSize,
    DiaperType,
    FeedingType,
    SleepType,
)
from cradle.schemas.base import (
    CamelModel,
    ChildInput,
    DateRange,
    Id,
    IdInput,
    IntervalUpdate,
    LocalDateTime,
    Notes,
    PeriodFilter,
)

Quality = Annotated[int, Field(ge=1, le=5)]
AmountMl = Annotated[float, Field(ge=0, le=500)]
FoodItem = Annotated[str, Field(min_length=1, max_length=100)]


# --------- Сон ---------
class SleepListInput(PeriodFilter):
    pass


class SleepStartInput(ChildInput):
    sleep_type: SleepType = SleepType.NAP
    start_time: LocalDateTime | None = None


class SleepEndInput(IdInput):
    end_time: LocalDateTime | None = None
    quality: Quality | None = None
    notes: Notes | None = None


class SleepLogInput(ChildInput, IntervalUpdate):
    start_time: LocalDateTime
    end_time: LocalDateTime | None = None
    sleep_type: SleepType = SleepType.NAP
    quality: Quality | None = None
    notes: Notes | None = None


class SleepUpdateInput(IdInput, IntervalUpdate):
    start_time: LocalDateTime | None = None
    end_time: LocalDateTime | None = None
    sleep_type: SleepType | None = None
    quality: Quality | None = None
    notes: Notes | None = None


# --------- Кормление ---------
class FeedingListInput(PeriodFilter):
    feeding_type: FeedingType | None = None


class BreastfeedingStartInput(ChildInput):
    side: BreastSide
    start_time: LocalDateTime | None = None


class BreastfeedingEndInput(IdInput):
    end_time: LocalDateTime | None = None
    side: BreastSide | None = None
    left_duration_seconds: Annotated[int, Field(ge=0)] | None = None
    right_duration_seconds: Annotated[int, Field(ge=0)] | None = None
    notes: Notes | None = None


class SwitchSideInput(IdInput):
    new_side: BreastSide
    left_duration_seconds: Annotated[int, Field(ge=0)] | None = None
    right_duration_seconds: Annotated[int, Field(ge=0)] | None = None


class BreastfeedingLogInput(ChildInput, IntervalUpdate):
    start_time: LocalDateTime
    end_time: LocalDateTime | None = None
    side: BreastSide
    left_duration_seconds: Annotated[int, Field(ge=0)] | None = None
    right_duration_seconds: Annotated[int, Field(ge=0)] | None = None
    notes: Notes | None = None


class BottleLogInput(ChildInput, IntervalUpdate):
    start_time: LocalDateTime
    end_time: LocalDateTime | None = None
    amount_ml: AmountMl
    bottle_content_type: BottleContentType | None = None
    notes: Notes | None = None


class SolidsLogInput(ChildInput, IntervalUpdate):
    start_time: LocalDateTime
    end_time: LocalDateTime | None = None
    food_items: Annotated[list[FoodItem], Field(min_length=1, max_length=20)]
    notes: Notes | None = None


class FeedingUpdateInput(IdInput, IntervalUpdate):
    start_time: LocalDateTime | None = None
    end_time: LocalDateTime | None = None
    side: BreastSide | None = None
    left_duration_seconds: Annotated[int, Field(ge=0)] | None = None
    right_duration_seconds: Annotated[int, Field(ge=0)] | None = None
    amount_ml: AmountMl | None = None
    bottle_content_type: BottleContentType | None = None
    food_items: list[str] | None = None
    notes: Notes | None = None


# --------- Подгузники ---------
class DiaperListInput(PeriodFilter):
    diaper_type: DiaperType | None = None


class DiaperLogInput(ChildInput):
    time: LocalDateTime | None = None
    diaper_type: DiaperType
    color: DiaperColor | None = None
    consistency: DiaperConsistency | None = None
    size: DiaperSize | None = None
    amount: DiaperAmount | None = None
    notes: Notes | None = None


class DiaperUpdateInput(IdInput):
    time: LocalDateTime | None = None
    diaper_type: DiaperType | None = None
    color: DiaperColor | None = None
    consistency: DiaperConsistency | None = None
    size: DiaperSize | None = None
    amount: DiaperAmount | None = None
    notes: Notes | None = None


# --------- Сцеживание ---------
class PumpingListInput(PeriodFilter):
    pass


class PumpingStartInput(ChildInput):
    side: BreastSide | None = None
    start_time: LocalDateTime | None = None


class PumpingEndInput(IdInput):
    end_time: LocalDateTime | None = None
    amount_ml: AmountMl | None = None
    notes: Notes | None = None


class PumpingLogInput(ChildInput, IntervalUpdate):
    start_time: LocalDateTime
    end_time: LocalDateTime | None = None
    amount_ml: AmountMl | None = None
    side: BreastSide | None = None
    notes: Notes | None = None


class PumpingUpdateInput(IdInput, IntervalUpdate):
    start_time: LocalDateTime | None = None
    end_time: LocalDateTime | None = None
    amount_ml: AmountMl | None = None
    side: BreastSide | None = None
    notes: Notes | None = None


# --------- Лекарства ---------
class MedicineListInput(ChildInput):
    active_only: bool = True


class MedicineCreateInput(ChildInput):
    name: Annotated[str, Field(min_length=1, max_length=100)]
    dosage: Annotated[str, Field(min_length=1, max_length=100)]
    frequency: Annotated[str, Field(max_length=100)] | None = None
    notes: Notes | None = None


class MedicineUpdateInput(IdInput):
    name: Annotated[str, Field(min_length=1, max_length=100)] | None = None
    dosage: Annotated[str, Field(min_length=1, max_length=100)] | None = None
    frequency: Annotated[str, Field(max_length=100)] | None = None
    notes: Notes | None = None
    is_active: bool | None = None


class MedicineRecordLogInput(CamelModel):
    medicine_id: Id
    time: LocalDateTime | None = None
    dosage_given: Annotated[str, Field(max_length=100)] | None = None
    skipped: bool = False
    notes: Notes | None = None


class MedicineRecordUpdateInput(IdInput):
    time: LocalDateTime | None = None
    dosage_given: Annotated[str, Field(max_length=100)] | None = None
    skipped: bool | None = None
    notes: Notes | None = None


class MedicineRecordsInput(CamelModel):
    medicine_id: Id
    date_range: DateRange | None = None


# --------- Рост / вес ---------
WeightKg = Annotated[float, Field(ge=0, le=50)]
HeightCm = Annotated[float, Field(ge=0, le=200)]
HeadCm = Annotated[float, Field(ge=0, le=100)]


class GrowthListInput(ChildInput):
    date_range: DateRange | None = None


class GrowthLogInput(ChildInput):
    date: LocalDateTime
    weight_kg: WeightKg | None = None
    height_cm: HeightCm | None = None
    head_circumference_cm: HeadCm | None = None
    notes: Notes | None = None


class GrowthUpdateInput(IdInput):
    date: LocalDateTime | None = None
    weight_kg: WeightKg | None = None
    height_cm: HeightCm | None = None
    head_circumference_cm: HeadCm | None = None
    notes: Notes | None = None


# --------- Температура ---------
Celsius = Annotated[float, Field(ge=30, le=45)]


class TemperatureListInput(ChildInput):
    date_range: DateRange | None = None


class TemperatureLogInput(ChildInput):
    time: LocalDateTime
    temperature_celsius: Celsius
    notes: Notes | None = None


class TemperatureUpdateInput(IdInput):
    time: LocalDateTime | None = None
    temperature_celsius: Celsius | None = None
    notes: Notes | None = None


# --------- Активности ---------
class ActivityListInput(PeriodFilter):
    activity_type: ActivityType | None = None


class ActivityActiveInput(ChildInput):
    activity_type: ActivityType | None = None


class ActivityStartInput(ChildInput):
    activity_type: ActivityType
    start_time: LocalDateTime | None = None


class ActivityEndInput(IdInput):
    end_time: LocalDateTime | None = None
    notes: Notes | None = None


class ActivityLogInput(ChildInput, IntervalUpdate):
    activity_type: ActivityType
    start_time: LocalDateTime
    end_time: LocalDateTime | None = None
    notes: Notes | None = None


class ActivityUpdateInput(IdInput, IntervalUpdate):
    activity_type: ActivityType | None = None
    start_time: LocalDateTime | None = None
    end_time: LocalDateTime | None = None
    notes: Notes | None = None


# --------- Таймлайн ---------
class DayTimelineInput(ChildInput):
    date: LocalDateTime


class WeekTimelineInput(ChildInput):
    week_start: LocalDateTime

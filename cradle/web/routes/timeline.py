# cradle/web/routes/timeline.py
from __future__ import annotations

from dataclasses import fields

from fastapi import APIRouter, Depends, Request

from cradle.schemas.base import ChildInput
from cradle.schemas.outputs import (
    ActivityRecordOut,
    DayTimelineOut,
    DiaperRecordOut,
    FeedingRecordOut,
    GrowthRecordOut,
    LastActivitiesOut,
    ListTimelineOut,
    MedicineRecordOut,
    PumpingRecordOut,
    SleepRecordOut,
    TemperatureRecordOut,
    TimelineEntryOut,
    WeekDayOut,
    WeekTimelineOut,
)
from cradle.schemas.records import DayTimelineInput, WeekTimelineInput
from cradle.services import timeline as svc
from cradle.services.access import AccessContext
from cradle.web.deps import get_session_factory, household_access

router = APIRouter(prefix="/api/timeline", tags=["timeline"])

access = household_access()

OUT_BY_CATEGORY = {
    "SLEEP": SleepRecordOut,
    "FEEDING": FeedingRecordOut,
    "DIAPER": DiaperRecordOut,
    "PUMPING": PumpingRecordOut,
    "MEDICINE": MedicineRecordOut,
    "GROWTH": GrowthRecordOut,
    "TEMPERATURE": TemperatureRecordOut,
    "ACTIVITY": ActivityRecordOut,
}

OUT_BY_LIST = {
    "sleep_records": SleepRecordOut,
    "feeding_records": FeedingRecordOut,
    "diaper_records": DiaperRecordOut,
    "pumping_records": PumpingRecordOut,
    "medicine_records": MedicineRecordOut,
    "growth_records": GrowthRecordOut,
    "temperature_records": TemperatureRecordOut,
    "activity_records": ActivityRecordOut,
}

LAST_OUT = {
    "last_sleep": SleepRecordOut,
    "active_sleep": SleepRecordOut,
    "last_breastfeeding": FeedingRecordOut,
    "active_feeding": FeedingRecordOut,
    "last_bottle": FeedingRecordOut,
    "last_solids": FeedingRecordOut,
    "last_diaper": DiaperRecordOut,
    "last_pumping": PumpingRecordOut,
    "active_pumping": PumpingRecordOut,
    "last_medicine": MedicineRecordOut,
    "last_growth": GrowthRecordOut,
    "last_temperature": TemperatureRecordOut,
    "last_activity": ActivityRecordOut,
}


def _records_out(records: svc.TimelineRecords) -> dict:
    return {
        name: [out.model_validate(r) for r in getattr(records, name)]
        for name, out in OUT_BY_LIST.items()
    }


def _entry_out(entry: svc.TimelineEntry) -> TimelineEntryOut:
    record = OUT_BY_CATEGORY[entry.type].model_validate(entry.record)
    return TimelineEntryOut(type=entry.type, time=entry.time, record=record)


def _hour(request: Request) -> int:
    return request.app.state.config.timeline.day_start_hour


@router.post("/getLastActivities")
async def get_last_activities(
    data: ChildInput, request: Request, ctx: AccessContext = Depends(access)
) -> LastActivitiesOut:
    ctx.require_member()
    last = await svc.get_last_activities(get_session_factory(request), data.child_id)
    values = {}
    for f in fields(last):
        record = getattr(last, f.name)
        values[f.name] = LAST_OUT[f.name].model_validate(record) if record is not None else None
    return LastActivitiesOut(**values)


@router.post("/getDay")
async def get_day(data: DayTimelineInput, request: Request, ctx: AccessContext = Depends(access)) -> DayTimelineOut:
    ctx.require_member()
    day = await svc.get_day(get_session_factory(request), data.child_id, data.date, _hour(request))
    return DayTimelineOut(
        date=day.date,
        day_start=day.day_start,
        day_end=day.day_end,
        **_records_out(day.records),
    )


@router.post("/getWeek")
async def get_week(data: WeekTimelineInput, request: Request, ctx: AccessContext = Depends(access)) -> WeekTimelineOut:
    ctx.require_member()
    week = await svc.get_week(get_session_factory(request), data.child_id, data.week_start, _hour(request))
    return WeekTimelineOut(
        week_start=week.week_start,
        week_end=week.week_end,
        days=[
            WeekDayOut(date=d.date, day_start=d.day_start, **_records_out(d.records))
            for d in week.days
        ],
    )


# record бывает восьми типов, ответ отдаём без повторной валидации
@router.post("/getList", response_model=None)
async def get_list(data: WeekTimelineInput, request: Request, ctx: AccessContext = Depends(access)) -> ListTimelineOut:
    ctx.require_member()
    timeline = await svc.get_list(get_session_factory(request), data.child_id, data.week_start)
    return ListTimelineOut(
        week_start=timeline.week_start,
        week_end=timeline.week_end,
        activities=[_entry_out(e) for e in timeline.activities],
        grouped_by_date={
            key: [_entry_out(e) for e in entries]
            for key, entries in timeline.grouped_by_date.items()
        },
    )

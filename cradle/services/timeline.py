# cradle/services/timeline.py
"""
Таймлайн ребёнка: день, неделя, список и "последнее по категориям".

Каждая категория читается отдельным запросом в своей сессии, запросы
идут параллельно (asyncio.gather). Интервальные записи (сон, грудное
кормление, сцеживание, активности) попадают в окно по правилу
spans_window, точечные по point_in_window.
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Any

from sqlalchemy import and_, or_, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from cradle.db.enums import TimelineCategory
from cradle.db.models import (
    ActivityRecord,
    DiaperRecord,
    FeedingRecord,
    GrowthRecord,
    Medicine,
    MedicineRecord,
    PumpingRecord,
    SleepRecord,
    TemperatureRecord,
)
from cradle.utils.dates import date_key, end_of_day, start_of_day
from cradle.utils.timeline import DAY_START_HOUR, get_timeline_day_boundaries, point_in_window, spans_window


SessionFactory = async_sessionmaker[AsyncSession]


@dataclass
class TimelineRecords:
    sleep_records: list[SleepRecord] = field(default_factory=list)
    feeding_records: list[FeedingRecord] = field(default_factory=list)
    diaper_records: list[DiaperRecord] = field(default_factory=list)
    pumping_records: list[PumpingRecord] = field(default_factory=list)
    medicine_records: list[MedicineRecord] = field(default_factory=list)
    growth_records: list[GrowthRecord] = field(default_factory=list)
    temperature_records: list[TemperatureRecord] = field(default_factory=list)
    activity_records: list[ActivityRecord] = field(default_factory=list)


@dataclass
class DayTimeline:
    date: datetime
    day_start: datetime
    day_end: datetime
    records: TimelineRecords


@dataclass
class WeekDay:
    date: str
    day_start: datetime
    records: TimelineRecords


@dataclass
class WeekTimeline:
    week_start: datetime
    week_end: datetime
    days: list[WeekDay]


@dataclass
class TimelineEntry:
    type: str
    time: datetime
    record: Any


@dataclass
class ListTimeline:
    week_start: datetime
    week_end: datetime
    activities: list[TimelineEntry]
    grouped_by_date: dict[str, list[TimelineEntry]]


@dataclass
class LastActivities:
    last_sleep: SleepRecord | None = None
    active_sleep: SleepRecord | None = None
    last_breastfeeding: FeedingRecord | None = None
    active_feeding: FeedingRecord | None = None
    last_bottle: FeedingRecord | None = None
    last_solids: FeedingRecord | None = None
    last_diaper: DiaperRecord | None = None
    last_pumping: PumpingRecord | None = None
    active_pumping: PumpingRecord | None = None
    last_medicine: MedicineRecord | None = None
    last_growth: GrowthRecord | None = None
    last_temperature: TemperatureRecord | None = None
    last_activity: ActivityRecord | None = None


# --------- Правила попадания в окно ---------
def _spanning_clause(model, start: datetime, end: datetime):
    return or_(
        and_(model.start_time >= start, model.start_time < end),
        and_(model.end_time >= start, model.end_time < end),
        and_(model.start_time < start, model.end_time >= end),
        and_(model.start_time < end, model.end_time.is_(None)),
    )


def _feeding_clause(start: datetime, end: datetime):
    # грудь это интервал; бутылочка и прикорм точки по start_time
    return or_(
        and_(FeedingRecord.feeding_type == "BREAST", _spanning_clause(FeedingRecord, start, end)),
        and_(
            FeedingRecord.feeding_type != "BREAST",
            FeedingRecord.start_time >= start,
            FeedingRecord.start_time < end,
        ),
    )


def feeding_in_window(record: FeedingRecord, start: datetime, end: datetime) -> bool:
    if record.feeding_type == "BREAST":
        return spans_window(record.start_time, record.end_time, start, end)
    return point_in_window(record.start_time, start, end)


def event_time(category: str, record: Any) -> datetime:
    """Время события для сортировки: начало интервала или момент точки."""
    if category in ("DIAPER", "MEDICINE", "TEMPERATURE"):
        return record.time
    if category == "GROWTH":
        return record.date
    return record.start_time


# --------- Запросы ---------
async def _rows(factory: SessionFactory, stmt) -> list:
    async with factory() as session:
        res = await session.execute(stmt)
        return list(res.scalars().all())


async def _one(factory: SessionFactory, stmt) -> Any:
    rows = await _rows(factory, stmt.limit(1))
    return rows[0] if rows else None


def _medicine_select(child_id: str):
    return (
        select(MedicineRecord)
        .join(Medicine, MedicineRecord.medicine_id == Medicine.id)
        .where(Medicine.child_id == child_id)
    )


async def fetch_window(
    factory: SessionFactory, child_id: str, start: datetime, end: datetime
) -> TimelineRecords:
    """Все записи ребёнка, пересекающие [start, end), по возрастанию времени."""

    def spanning(model):
        stmt = select(model).where(model.child_id == child_id, _spanning_clause(model, start, end))
        return _rows(factory, stmt.order_by(model.start_time.asc()))

    def points(model, column):
        stmt = select(model).where(model.child_id == child_id, column >= start, column < end)
        return _rows(factory, stmt.order_by(column.asc()))

    results = await asyncio.gather(
        spanning(SleepRecord),
        _rows(
            factory,
            select(FeedingRecord)
            .where(FeedingRecord.child_id == child_id, _feeding_clause(start, end))
            .order_by(FeedingRecord.start_time.asc()),
        ),
        points(DiaperRecord, DiaperRecord.time),
        spanning(PumpingRecord),
        _rows(
            factory,
            _medicine_select(child_id)
            .where(MedicineRecord.time >= start, MedicineRecord.time < end)
            .order_by(MedicineRecord.time.asc()),
        ),
        points(GrowthRecord, GrowthRecord.date),
        points(TemperatureRecord, TemperatureRecord.time),
        spanning(ActivityRecord),
    )
    return TimelineRecords(*results)


async def get_day(
    factory: SessionFactory,
    child_id: str,
    day: datetime,
    day_start_hour: int = DAY_START_HOUR,
) -> DayTimeline:
    # выбранная дата: окно [дата H:00, дата+1 H:00)
    start, end = get_timeline_day_boundaries(day.date(), day_start_hour)
    records = await fetch_window(factory, child_id, start, end)
    return DayTimeline(date=day, day_start=start, day_end=end, records=records)


def organize_week(
    records: TimelineRecords,
    week_start: date,
    day_start_hour: int = DAY_START_HOUR,
) -> list[WeekDay]:
    """Раскладывает недельную выборку по 7 логическим дням без новых запросов."""
    days: list[WeekDay] = []
    for i in range(7):
        day = week_start + timedelta(days=i)
        ds, de = get_timeline_day_boundaries(day, day_start_hour)

        def spanning(rows):
            return [r for r in rows if spans_window(r.start_time, r.end_time, ds, de)]

        def points(rows, attr):
            return [r for r in rows if point_in_window(getattr(r, attr), ds, de)]

        days.append(
            WeekDay(
                date=date_key(day),
                day_start=ds,
                records=TimelineRecords(
                    sleep_records=spanning(records.sleep_records),
                    feeding_records=[r for r in records.feeding_records if feeding_in_window(r, ds, de)],
                    diaper_records=points(records.diaper_records, "time"),
                    pumping_records=spanning(records.pumping_records),
                    medicine_records=points(records.medicine_records, "time"),
                    growth_records=points(records.growth_records, "date"),
                    temperature_records=points(records.temperature_records, "time"),
                    activity_records=spanning(records.activity_records),
                ),
            )
        )
    return days


async def get_week(
    factory: SessionFactory,
    child_id: str,
    week_start: datetime,
    day_start_hour: int = DAY_START_HOUR,
) -> WeekTimeline:
    first_day = week_start.date()
    # одна выборка на всю неделю: от начала первого до конца седьмого логического дня
    window_start, _ = get_timeline_day_boundaries(first_day, day_start_hour)
    _, window_end = get_timeline_day_boundaries(first_day + timedelta(days=6), day_start_hour)
    records = await fetch_window(factory, child_id, window_start, window_end)
    return WeekTimeline(
        week_start=start_of_day(first_day),
        week_end=start_of_day(first_day + timedelta(days=7)),
        days=organize_week(records, first_day, day_start_hour),
    )


# --------- Список ---------
_CATEGORY_ORDER = (
    (TimelineCategory.SLEEP, "sleep_records"),
    (TimelineCategory.FEEDING, "feeding_records"),
    (TimelineCategory.DIAPER, "diaper_records"),
    (TimelineCategory.PUMPING, "pumping_records"),
    (TimelineCategory.MEDICINE, "medicine_records"),
    (TimelineCategory.GROWTH, "growth_records"),
    (TimelineCategory.TEMPERATURE, "temperature_records"),
    (TimelineCategory.ACTIVITY, "activity_records"),
)


def merge_chronological(
    records: TimelineRecords,
) -> tuple[list[TimelineEntry], dict[str, list[TimelineEntry]]]:
    """
    Сливает категории в одну ленту (новые сверху) и группирует по дате.

    Сортировка устойчивая: при равном времени порядок категорий и
    порядок внутри выборки сохраняются.
    """
    entries = [
        TimelineEntry(type=category.value, time=event_time(category.value, r), record=r)
        for category, attr in _CATEGORY_ORDER
        for r in getattr(records, attr)
    ]
    entries.sort(key=lambda e: e.time, reverse=True)

    grouped: dict[str, list[TimelineEntry]] = {}
    for entry in entries:
        grouped.setdefault(date_key(entry.time), []).append(entry)
    return entries, grouped


async def fetch_started_between(
    factory: SessionFactory, child_id: str, start: datetime, end: datetime
) -> TimelineRecords:
    """Записи, начавшиеся в [start, end], для списка, по убыванию времени."""

    def started(model, column):
        stmt = select(model).where(model.child_id == child_id, column >= start, column <= end)
        return _rows(factory, stmt.order_by(column.desc()))

    results = await asyncio.gather(
        started(SleepRecord, SleepRecord.start_time),
        started(FeedingRecord, FeedingRecord.start_time),
        started(DiaperRecord, DiaperRecord.time),
        started(PumpingRecord, PumpingRecord.start_time),
        _rows(
            factory,
            _medicine_select(child_id)
            .where(MedicineRecord.time >= start, MedicineRecord.time <= end)
            .order_by(MedicineRecord.time.desc()),
        ),
        started(GrowthRecord, GrowthRecord.date),
        started(TemperatureRecord, TemperatureRecord.time),
        started(ActivityRecord, ActivityRecord.start_time),
    )
    return TimelineRecords(*results)


async def get_list(factory: SessionFactory, child_id: str, week_start: datetime) -> ListTimeline:
    start = start_of_day(week_start)
    end = end_of_day(start + timedelta(days=6))
    records = await fetch_started_between(factory, child_id, start, end)
    activities, grouped = merge_chronological(records)
    return ListTimeline(week_start=start, week_end=end, activities=activities, grouped_by_date=grouped)


# --------- Последнее по категориям ---------
async def get_last_activities(factory: SessionFactory, child_id: str) -> LastActivities:
    def completed(model, *extra):
        stmt = select(model).where(model.child_id == child_id, model.end_time.is_not(None), *extra)
        return _one(factory, stmt.order_by(model.end_time.desc()))

    def active(model, *extra):
        stmt = select(model).where(model.child_id == child_id, model.end_time.is_(None), *extra)
        return _one(factory, stmt.order_by(model.start_time.desc()))

    def latest(model, column, *extra):
        stmt = select(model).where(model.child_id == child_id, *extra)
        return _one(factory, stmt.order_by(column.desc()))

    breast = FeedingRecord.feeding_type == "BREAST"
    results = await asyncio.gather(
        completed(SleepRecord),
        active(SleepRecord),
        completed(FeedingRecord, breast),
        active(FeedingRecord, breast),
        latest(FeedingRecord, FeedingRecord.start_time, FeedingRecord.feeding_type == "BOTTLE"),
        latest(FeedingRecord, FeedingRecord.start_time, FeedingRecord.feeding_type == "SOLIDS"),
        latest(DiaperRecord, DiaperRecord.time),
        completed(PumpingRecord),
        active(PumpingRecord),
        _one(factory, _medicine_select(child_id).order_by(MedicineRecord.time.desc())),
        latest(GrowthRecord, GrowthRecord.date),
        latest(TemperatureRecord, TemperatureRecord.time),
        completed(ActivityRecord),
    )
    return LastActivities(*results)

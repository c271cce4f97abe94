# cradle/services/medicine.py
from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from cradle.db.models import Medicine, MedicineRecord
from cradle.schemas.outputs import MedicineDetailOut, MedicineOut, MedicineRecordOut
from cradle.schemas.records import (
    MedicineCreateInput,
    MedicineRecordLogInput,
    MedicineRecordsInput,
    MedicineRecordUpdateInput,
    MedicineUpdateInput,
)
from cradle.services.common import all_rows, apply_changes, get_or_404, remove, save
from cradle.utils.dates import local_now

MEDICINE_NOT_FOUND = "Medicine not found"
RECORD_NOT_FOUND = "Medicine record not found"


async def list_medicines(session: AsyncSession, child_id: str, active_only: bool = True) -> list[Medicine]:
    stmt = select(Medicine).where(Medicine.child_id == child_id)
    if active_only:
        stmt = stmt.where(Medicine.is_active.is_(True))
    return await all_rows(session, stmt.order_by(Medicine.name.asc()))


async def latest_records(session: AsyncSession, medicine_id: str, limit: int = 10) -> list[MedicineRecord]:
    stmt = (
        select(MedicineRecord)
        .where(MedicineRecord.medicine_id == medicine_id)
        .order_by(MedicineRecord.time.desc())
        .limit(limit)
    )
    return await all_rows(session, stmt)


async def get_medicine(session: AsyncSession, medicine_id: str) -> MedicineDetailOut:
    medicine = await get_or_404(session, Medicine, medicine_id, MEDICINE_NOT_FOUND)
    records = await latest_records(session, medicine_id)
    return MedicineDetailOut(
        **MedicineOut.model_validate(medicine).model_dump(),
        records=[MedicineRecordOut.model_validate(r) for r in records],
    )


async def create_medicine(session: AsyncSession, data: MedicineCreateInput) -> Medicine:
    return await save(session, Medicine(**data.model_dump(), is_active=True))


async def update_medicine(session: AsyncSession, data: MedicineUpdateInput) -> Medicine:
    medicine = await get_or_404(session, Medicine, data.id, MEDICINE_NOT_FOUND)
    apply_changes(medicine, data.model_dump(exclude_unset=True, exclude={"id"}))
    return await save(session, medicine)


async def delete_medicine(session: AsyncSession, medicine_id: str) -> dict:
    medicine = await get_or_404(session, Medicine, medicine_id, MEDICINE_NOT_FOUND)
    return await remove(session, medicine)


async def log_record(session: AsyncSession, data: MedicineRecordLogInput) -> MedicineRecord:
    medicine = await get_or_404(session, Medicine, data.medicine_id, MEDICINE_NOT_FOUND)
    record = MedicineRecord(
        medicine=medicine,
        time=data.time or local_now(),
        dosage_given=data.dosage_given,
        skipped=data.skipped,
        notes=data.notes,
    )
    return await save(session, record)


async def update_record(session: AsyncSession, data: MedicineRecordUpdateInput) -> MedicineRecord:
    record = await get_or_404(session, MedicineRecord, data.id, RECORD_NOT_FOUND)
    apply_changes(record, data.model_dump(exclude_unset=True, exclude={"id"}))
    return await save(session, record)


async def delete_record(session: AsyncSession, record_id: str) -> dict:
    record = await get_or_404(session, MedicineRecord, record_id, RECORD_NOT_FOUND)
    return await remove(session, record)


async def get_records(session: AsyncSession, data: MedicineRecordsInput) -> list[MedicineRecord]:
    stmt = select(MedicineRecord).where(MedicineRecord.medicine_id == data.medicine_id)
    if data.date_range is not None:
        stmt = stmt.where(
            MedicineRecord.time >= data.date_range.start,
            MedicineRecord.time <= data.date_range.end,
        )
    return await all_rows(session, stmt.order_by(MedicineRecord.time.desc()))

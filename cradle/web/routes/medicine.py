# cradle/web/routes/medicine.py
from __future__ import annotations

from fastapi import APIRouter, Depends

from cradle.db.models import Medicine, MedicineRecord
from cradle.schemas.base import IdInput, SuccessOut
from cradle.schemas.outputs import MedicineDetailOut, MedicineOut, MedicineRecordOut
from cradle.schemas.records import (
    MedicineCreateInput,
    MedicineListInput,
    MedicineRecordLogInput,
    MedicineRecordsInput,
    MedicineRecordUpdateInput,
    MedicineUpdateInput,
)
from cradle.services import medicine as svc
from cradle.services.access import AccessContext
from cradle.web.deps import household_access

router = APIRouter(prefix="/api/medicine", tags=["medicine"])

medicine_access = household_access(Medicine)
record_access = household_access(MedicineRecord)


@router.post("/list")
async def list_medicines(data: MedicineListInput, ctx: AccessContext = Depends(medicine_access)) -> list[MedicineOut]:
    ctx.require_member()
    medicines = await svc.list_medicines(ctx.session, data.child_id, data.active_only)
    return [MedicineOut.model_validate(m) for m in medicines]


@router.post("/get")
async def get(data: IdInput, ctx: AccessContext = Depends(medicine_access)) -> MedicineDetailOut:
    ctx.require_member()
    return await svc.get_medicine(ctx.session, data.id)


@router.post("/create")
async def create(data: MedicineCreateInput, ctx: AccessContext = Depends(medicine_access)) -> MedicineOut:
    ctx.require_writer("Viewers cannot add medicines")
    return MedicineOut.model_validate(await svc.create_medicine(ctx.session, data))


@router.post("/update")
async def update(data: MedicineUpdateInput, ctx: AccessContext = Depends(medicine_access)) -> MedicineOut:
    ctx.require_writer("Viewers cannot update medicines")
    return MedicineOut.model_validate(await svc.update_medicine(ctx.session, data))


@router.post("/delete")
async def delete(data: IdInput, ctx: AccessContext = Depends(medicine_access)) -> SuccessOut:
    ctx.require_admin("Only owners and admins can delete medicines")
    return SuccessOut(**await svc.delete_medicine(ctx.session, data.id))


@router.post("/logRecord")
async def log_record(data: MedicineRecordLogInput, ctx: AccessContext = Depends(record_access)) -> MedicineRecordOut:
    ctx.require_writer("Viewers cannot log medicine records")
    return MedicineRecordOut.model_validate(await svc.log_record(ctx.session, data))


@router.post("/updateRecord")
async def update_record(
    data: MedicineRecordUpdateInput, ctx: AccessContext = Depends(record_access)
) -> MedicineRecordOut:
    ctx.require_writer("Viewers cannot update medicine records")
    return MedicineRecordOut.model_validate(await svc.update_record(ctx.session, data))


@router.post("/deleteRecord")
async def delete_record(data: IdInput, ctx: AccessContext = Depends(record_access)) -> SuccessOut:
    ctx.require_writer("Viewers cannot delete medicine records")
    return SuccessOut(**await svc.delete_record(ctx.session, data.id))


@router.post("/getRecords")
async def get_records(data: MedicineRecordsInput, ctx: AccessContext = Depends(record_access)) -> list[MedicineRecordOut]:
    ctx.require_member()
    return [MedicineRecordOut.model_validate(r) for r in await svc.get_records(ctx.session, data)]

# cradle/web/routes/pumping.py
from __future__ import annotations

from fastapi import APIRouter, Depends

from cradle.db.models import PumpingRecord
from cradle.schemas.base import ChildInput, IdInput, SuccessOut, SummaryInput
from cradle.schemas.outputs import PumpingRecordOut, PumpingSummaryOut
from cradle.schemas.records import (
    PumpingEndInput,
    PumpingListInput,
    PumpingLogInput,
    PumpingStartInput,
    PumpingUpdateInput,
)
from cradle.services import pumping as svc
from cradle.services.access import VIEWER_DELETE, VIEWER_LOG, VIEWER_UPDATE, AccessContext
from cradle.web.deps import household_access

router = APIRouter(prefix="/api/pumping", tags=["pumping"])

access = household_access(PumpingRecord)


@router.post("/list")
async def list_pumping(data: PumpingListInput, ctx: AccessContext = Depends(access)) -> list[PumpingRecordOut]:
    ctx.require_member()
    return [PumpingRecordOut.model_validate(r) for r in await svc.list_pumping(ctx.session, data)]


@router.post("/getActive")
async def get_active(data: ChildInput, ctx: AccessContext = Depends(access)) -> PumpingRecordOut | None:
    ctx.require_member()
    record = await svc.get_active_pumping(ctx.session, data.child_id)
    return PumpingRecordOut.model_validate(record) if record else None


@router.post("/start")
async def start(data: PumpingStartInput, ctx: AccessContext = Depends(access)) -> PumpingRecordOut:
    ctx.require_writer(VIEWER_LOG)
    record = await svc.start_pumping(ctx.session, data.child_id, data.side, data.start_time)
    return PumpingRecordOut.model_validate(record)


@router.post("/end")
async def end(data: PumpingEndInput, ctx: AccessContext = Depends(access)) -> PumpingRecordOut:
    ctx.require_writer(VIEWER_UPDATE)
    record = await svc.end_pumping(
        ctx.session, data.id, end_time=data.end_time, amount_ml=data.amount_ml, notes=data.notes
    )
    return PumpingRecordOut.model_validate(record)


@router.post("/log")
async def log(data: PumpingLogInput, ctx: AccessContext = Depends(access)) -> PumpingRecordOut:
    ctx.require_writer(VIEWER_LOG)
    return PumpingRecordOut.model_validate(await svc.log_pumping(ctx.session, data))


@router.post("/update")
async def update(data: PumpingUpdateInput, ctx: AccessContext = Depends(access)) -> PumpingRecordOut:
    ctx.require_writer(VIEWER_UPDATE)
    return PumpingRecordOut.model_validate(await svc.update_pumping(ctx.session, data))


@router.post("/delete")
async def delete(data: IdInput, ctx: AccessContext = Depends(access)) -> SuccessOut:
    ctx.require_writer(VIEWER_DELETE)
    return SuccessOut(**await svc.delete_pumping(ctx.session, data.id))


@router.post("/summary")
async def summary(data: SummaryInput, ctx: AccessContext = Depends(access)) -> PumpingSummaryOut:
    ctx.require_member()
    return await svc.pumping_summary(ctx.session, data.child_id, data.period.value)

# cradle/web/routes/sleep.py
from __future__ import annotations

from fastapi import APIRouter, Depends

from cradle.db.models import SleepRecord
from cradle.schemas.base import ChildInput, IdInput, SuccessOut, SummaryInput
from cradle.schemas.outputs import SleepRecordOut, SleepSummaryOut
from cradle.schemas.records import (
    SleepEndInput,
    SleepListInput,
    SleepLogInput,
    SleepStartInput,
    SleepUpdateInput,
)
from cradle.services import sleep as svc
from cradle.services.access import VIEWER_DELETE, VIEWER_LOG, VIEWER_UPDATE, AccessContext
from cradle.web.deps import household_access

router = APIRouter(prefix="/api/sleep", tags=["sleep"])

access = household_access(SleepRecord)


@router.post("/list")
async def list_sleep(data: SleepListInput, ctx: AccessContext = Depends(access)) -> list[SleepRecordOut]:
    ctx.require_member()
    return [SleepRecordOut.model_validate(r) for r in await svc.list_sleep(ctx.session, data)]


@router.post("/getActive")
async def get_active(data: ChildInput, ctx: AccessContext = Depends(access)) -> SleepRecordOut | None:
    ctx.require_member()
    record = await svc.get_active_sleep(ctx.session, data.child_id)
    return SleepRecordOut.model_validate(record) if record else None


@router.post("/start")
async def start(data: SleepStartInput, ctx: AccessContext = Depends(access)) -> SleepRecordOut:
    ctx.require_writer(VIEWER_LOG)
    record = await svc.start_sleep(ctx.session, data.child_id, data.sleep_type, data.start_time)
    return SleepRecordOut.model_validate(record)


@router.post("/end")
async def end(data: SleepEndInput, ctx: AccessContext = Depends(access)) -> SleepRecordOut:
    ctx.require_writer(VIEWER_UPDATE)
    record = await svc.end_sleep(
        ctx.session, data.id, end_time=data.end_time, quality=data.quality, notes=data.notes
    )
    return SleepRecordOut.model_validate(record)


@router.post("/log")
async def log(data: SleepLogInput, ctx: AccessContext = Depends(access)) -> SleepRecordOut:
    ctx.require_writer(VIEWER_LOG)
    return SleepRecordOut.model_validate(await svc.log_sleep(ctx.session, data))


@router.post("/update")
async def update(data: SleepUpdateInput, ctx: AccessContext = Depends(access)) -> SleepRecordOut:
    ctx.require_writer(VIEWER_UPDATE)
    return SleepRecordOut.model_validate(await svc.update_sleep(ctx.session, data))


@router.post("/delete")
async def delete(data: IdInput, ctx: AccessContext = Depends(access)) -> SuccessOut:
    ctx.require_writer(VIEWER_DELETE)
    return SuccessOut(**await svc.delete_sleep(ctx.session, data.id))


@router.post("/summary")
async def summary(data: SummaryInput, ctx: AccessContext = Depends(access)) -> SleepSummaryOut:
    ctx.require_member()
    return await svc.sleep_summary(ctx.session, data.child_id, data.period.value)

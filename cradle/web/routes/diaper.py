# cradle/web/routes/diaper.py
from __future__ import annotations

from fastapi import APIRouter, Depends

from cradle.db.models import DiaperRecord
from cradle.schemas.base import IdInput, SuccessOut, SummaryInput
from cradle.schemas.outputs import DiaperRecordOut, DiaperSummaryOut
from cradle.schemas.records import DiaperListInput, DiaperLogInput, DiaperUpdateInput
from cradle.services import diaper as svc
from cradle.services.access import VIEWER_DELETE, VIEWER_LOG, VIEWER_UPDATE, AccessContext
from cradle.web.deps import household_access

router = APIRouter(prefix="/api/diaper", tags=["diaper"])

access = household_access(DiaperRecord)


@router.post("/list")
async def list_diapers(data: DiaperListInput, ctx: AccessContext = Depends(access)) -> list[DiaperRecordOut]:
    ctx.require_member()
    return [DiaperRecordOut.model_validate(r) for r in await svc.list_diapers(ctx.session, data)]


@router.post("/log")
async def log(data: DiaperLogInput, ctx: AccessContext = Depends(access)) -> DiaperRecordOut:
    ctx.require_writer(VIEWER_LOG)
    return DiaperRecordOut.model_validate(await svc.log_diaper(ctx.session, data))


@router.post("/update")
async def update(data: DiaperUpdateInput, ctx: AccessContext = Depends(access)) -> DiaperRecordOut:
    ctx.require_writer(VIEWER_UPDATE)
    return DiaperRecordOut.model_validate(await svc.update_diaper(ctx.session, data))


@router.post("/delete")
async def delete(data: IdInput, ctx: AccessContext = Depends(access)) -> SuccessOut:
    ctx.require_writer(VIEWER_DELETE)
    return SuccessOut(**await svc.delete_diaper(ctx.session, data.id))


@router.post("/summary")
async def summary(data: SummaryInput, ctx: AccessContext = Depends(access)) -> DiaperSummaryOut:
    ctx.require_member()
    return await svc.diaper_summary(ctx.session, data.child_id, data.period.value)

# cradle/web/routes/growth.py
from __future__ import annotations

from fastapi import APIRouter, Depends

from cradle.db.models import GrowthRecord
from cradle.schemas.base import ChildInput, IdInput, SuccessOut
from cradle.schemas.outputs import GrowthRecordOut
from cradle.schemas.records import GrowthListInput, GrowthLogInput, GrowthUpdateInput
from cradle.services import growth as svc
from cradle.services.access import VIEWER_DELETE, VIEWER_LOG, VIEWER_UPDATE, AccessContext
from cradle.web.deps import household_access

router = APIRouter(prefix="/api/growth", tags=["growth"])

access = household_access(GrowthRecord)


@router.post("/list")
async def list_growth(data: GrowthListInput, ctx: AccessContext = Depends(access)) -> list[GrowthRecordOut]:
    ctx.require_member()
    return [GrowthRecordOut.model_validate(r) for r in await svc.list_growth(ctx.session, data)]


@router.post("/getLatest")
async def get_latest(data: ChildInput, ctx: AccessContext = Depends(access)) -> GrowthRecordOut | None:
    ctx.require_member()
    record = await svc.latest_growth(ctx.session, data.child_id)
    return GrowthRecordOut.model_validate(record) if record else None


@router.post("/log")
async def log(data: GrowthLogInput, ctx: AccessContext = Depends(access)) -> GrowthRecordOut:
    ctx.require_writer(VIEWER_LOG)
    return GrowthRecordOut.model_validate(await svc.log_growth(ctx.session, data))


@router.post("/update")
async def update(data: GrowthUpdateInput, ctx: AccessContext = Depends(access)) -> GrowthRecordOut:
    ctx.require_writer(VIEWER_UPDATE)
    return GrowthRecordOut.model_validate(await svc.update_growth(ctx.session, data))


@router.post("/delete")
async def delete(data: IdInput, ctx: AccessContext = Depends(access)) -> SuccessOut:
    ctx.require_writer(VIEWER_DELETE)
    return SuccessOut(**await svc.delete_growth(ctx.session, data.id))

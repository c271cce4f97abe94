# cradle/web/routes/temperature.py
from __future__ import annotations

from fastapi import APIRouter, Depends

from cradle.db.models import TemperatureRecord
from cradle.schemas.base import ChildInput, IdInput, SuccessOut
from cradle.schemas.outputs import TemperatureRecordOut
from cradle.schemas.records import TemperatureListInput, TemperatureLogInput, TemperatureUpdateInput
from cradle.services import temperature as svc
from cradle.services.access import VIEWER_DELETE, VIEWER_LOG, VIEWER_UPDATE, AccessContext
from cradle.web.deps import household_access

router = APIRouter(prefix="/api/temperature", tags=["temperature"])

access = household_access(TemperatureRecord)


@router.post("/list")
async def list_temperatures(data: TemperatureListInput, ctx: AccessContext = Depends(access)) -> list[TemperatureRecordOut]:
    ctx.require_member()
    return [TemperatureRecordOut.model_validate(r) for r in await svc.list_temperatures(ctx.session, data)]


@router.post("/getLatest")
async def get_latest(data: ChildInput, ctx: AccessContext = Depends(access)) -> TemperatureRecordOut | None:
    ctx.require_member()
    record = await svc.latest_temperature(ctx.session, data.child_id)
    return TemperatureRecordOut.model_validate(record) if record else None


@router.post("/log")
async def log(data: TemperatureLogInput, ctx: AccessContext = Depends(access)) -> TemperatureRecordOut:
    ctx.require_writer(VIEWER_LOG)
    return TemperatureRecordOut.model_validate(await svc.log_temperature(ctx.session, data))


@router.post("/update")
async def update(data: TemperatureUpdateInput, ctx: AccessContext = Depends(access)) -> TemperatureRecordOut:
    ctx.require_writer(VIEWER_UPDATE)
    return TemperatureRecordOut.model_validate(await svc.update_temperature(ctx.session, data))


@router.post("/delete")
async def delete(data: IdInput, ctx: AccessContext = Depends(access)) -> SuccessOut:
    ctx.require_writer(VIEWER_DELETE)
    return SuccessOut(**await svc.delete_temperature(ctx.session, data.id))

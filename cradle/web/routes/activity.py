# cradle/web/routes/activity.py
from __future__ import annotations

from fastapi import APIRouter, Depends

from cradle.db.models import ActivityRecord
from cradle.schemas.base import IdInput, SuccessOut, SummaryInput
from cradle.schemas.outputs import ActivityRecordOut, ActivitySummaryOut
from cradle.schemas.records import (
    ActivityActiveInput,
    ActivityEndInput,
    ActivityListInput,
    ActivityLogInput,
    ActivityStartInput,
    ActivityUpdateInput,
)
from cradle.services import activity as svc
from cradle.services.access import VIEWER_DELETE, VIEWER_LOG, VIEWER_UPDATE, AccessContext
from cradle.web.deps import household_access

router = APIRouter(prefix="/api/activity", tags=["activity"])

access = household_access(ActivityRecord)


@router.post("/list")
async def list_activities(data: ActivityListInput, ctx: AccessContext = Depends(access)) -> list[ActivityRecordOut]:
    ctx.require_member()
    return [ActivityRecordOut.model_validate(r) for r in await svc.list_activities(ctx.session, data)]


@router.post("/getActive")
async def get_active(data: ActivityActiveInput, ctx: AccessContext = Depends(access)) -> ActivityRecordOut | None:
    ctx.require_member()
    record = await svc.get_active_activity(ctx.session, data.child_id, data.activity_type)
    return ActivityRecordOut.model_validate(record) if record else None


@router.post("/start")
async def start(data: ActivityStartInput, ctx: AccessContext = Depends(access)) -> ActivityRecordOut:
    ctx.require_writer(VIEWER_LOG)
    record = await svc.start_activity(ctx.session, data.child_id, data.activity_type, data.start_time)
    return ActivityRecordOut.model_validate(record)


@router.post("/end")
async def end(data: ActivityEndInput, ctx: AccessContext = Depends(access)) -> ActivityRecordOut:
    ctx.require_writer(VIEWER_UPDATE)
    record = await svc.end_activity(ctx.session, data.id, end_time=data.end_time, notes=data.notes)
    return ActivityRecordOut.model_validate(record)


@router.post("/log")
async def log(data: ActivityLogInput, ctx: AccessContext = Depends(access)) -> ActivityRecordOut:
    ctx.require_writer(VIEWER_LOG)
    return ActivityRecordOut.model_validate(await svc.log_activity(ctx.session, data))


@router.post("/update")
async def update(data: ActivityUpdateInput, ctx: AccessContext = Depends(access)) -> ActivityRecordOut:
    ctx.require_writer(VIEWER_UPDATE)
    return ActivityRecordOut.model_validate(await svc.update_activity(ctx.session, data))


@router.post("/delete")
async def delete(data: IdInput, ctx: AccessContext = Depends(access)) -> SuccessOut:
    ctx.require_writer(VIEWER_DELETE)
    return SuccessOut(**await svc.delete_activity(ctx.session, data.id))


@router.post("/summary")
async def summary(data: SummaryInput, ctx: AccessContext = Depends(access)) -> ActivitySummaryOut:
    ctx.require_member()
    return await svc.activity_summary(ctx.session, data.child_id, data.period.value)

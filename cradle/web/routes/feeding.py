# cradle/web/routes/feeding.py
from __future__ import annotations

from fastapi import APIRouter, Depends

from cradle.db.models import FeedingRecord
from cradle.schemas.base import ChildInput, IdInput, SuccessOut, SummaryInput
from cradle.schemas.outputs import FeedingRecordOut, FeedingSummaryOut
from cradle.schemas.records import (
    BottleLogInput,
    BreastfeedingEndInput,
    BreastfeedingLogInput,
    BreastfeedingStartInput,
    FeedingListInput,
    FeedingUpdateInput,
    SolidsLogInput,
    SwitchSideInput,
)
from cradle.services import feeding as svc
from cradle.services.access import VIEWER_DELETE, VIEWER_LOG, VIEWER_UPDATE, AccessContext
from cradle.web.deps import household_access

router = APIRouter(prefix="/api/feeding", tags=["feeding"])

access = household_access(FeedingRecord)


@router.post("/list")
async def list_feedings(data: FeedingListInput, ctx: AccessContext = Depends(access)) -> list[FeedingRecordOut]:
    ctx.require_member()
    return [FeedingRecordOut.model_validate(r) for r in await svc.list_feedings(ctx.session, data)]


@router.post("/getActive")
async def get_active(data: ChildInput, ctx: AccessContext = Depends(access)) -> FeedingRecordOut | None:
    ctx.require_member()
    record = await svc.get_active_breastfeeding(ctx.session, data.child_id)
    return FeedingRecordOut.model_validate(record) if record else None


@router.post("/startBreastfeeding")
async def start_breastfeeding(
    data: BreastfeedingStartInput, ctx: AccessContext = Depends(access)
) -> FeedingRecordOut:
    ctx.require_writer(VIEWER_LOG)
    record = await svc.start_breastfeeding(ctx.session, data.child_id, data.side, data.start_time)
    return FeedingRecordOut.model_validate(record)


@router.post("/endBreastfeeding")
async def end_breastfeeding(data: BreastfeedingEndInput, ctx: AccessContext = Depends(access)) -> FeedingRecordOut:
    ctx.require_writer(VIEWER_UPDATE)
    record = await svc.end_breastfeeding(
        ctx.session,
        data.id,
        end_time=data.end_time,
        side=data.side,
        left_duration_seconds=data.left_duration_seconds,
        right_duration_seconds=data.right_duration_seconds,
        notes=data.notes,
    )
    return FeedingRecordOut.model_validate(record)


@router.post("/switchBreastfeedingSide")
async def switch_side(data: SwitchSideInput, ctx: AccessContext = Depends(access)) -> FeedingRecordOut:
    ctx.require_writer(VIEWER_UPDATE)
    record = await svc.switch_side(
        ctx.session, data.id, data.new_side, data.left_duration_seconds, data.right_duration_seconds
    )
    return FeedingRecordOut.model_validate(record)


@router.post("/logBreastfeeding")
async def log_breastfeeding(data: BreastfeedingLogInput, ctx: AccessContext = Depends(access)) -> FeedingRecordOut:
    ctx.require_writer(VIEWER_LOG)
    return FeedingRecordOut.model_validate(await svc.log_breastfeeding(ctx.session, data))


@router.post("/logBottle")
async def log_bottle(data: BottleLogInput, ctx: AccessContext = Depends(access)) -> FeedingRecordOut:
    ctx.require_writer(VIEWER_LOG)
    return FeedingRecordOut.model_validate(await svc.log_bottle(ctx.session, data))


@router.post("/logSolids")
async def log_solids(data: SolidsLogInput, ctx: AccessContext = Depends(access)) -> FeedingRecordOut:
    ctx.require_writer(VIEWER_LOG)
    return FeedingRecordOut.model_validate(await svc.log_solids(ctx.session, data))


@router.post("/update")
async def update(data: FeedingUpdateInput, ctx: AccessContext = Depends(access)) -> FeedingRecordOut:
    ctx.require_writer(VIEWER_UPDATE)
    return FeedingRecordOut.model_validate(await svc.update_feeding(ctx.session, data))


@router.post("/delete")
async def delete(data: IdInput, ctx: AccessContext = Depends(access)) -> SuccessOut:
    ctx.require_writer(VIEWER_DELETE)
    return SuccessOut(**await svc.delete_feeding(ctx.session, data.id))


@router.post("/summary")
async def summary(data: SummaryInput, ctx: AccessContext = Depends(access)) -> FeedingSummaryOut:
    ctx.require_member()
    return await svc.feeding_summary(ctx.session, data.child_id, data.period.value)

# cradle/web/routes/child.py
from __future__ import annotations

from fastapi import APIRouter, Depends

from cradle.db.models import Child
from cradle.schemas.base import IdInput, SuccessOut
from cradle.schemas.household import ChildCreateInput, ChildListInput, ChildUpdateInput
from cradle.schemas.outputs import ChildDetailOut, ChildOut
from cradle.services import household as svc
from cradle.services.access import AccessContext
from cradle.web.deps import household_access

router = APIRouter(prefix="/api/child", tags=["child"])

access = household_access(Child)


@router.post("/list")
async def list_children(data: ChildListInput, ctx: AccessContext = Depends(access)) -> list[ChildOut]:
    ctx.require_member()
    return [ChildOut.model_validate(c) for c in await svc.list_children(ctx.session, data.household_id)]


@router.post("/get")
async def get(data: IdInput, ctx: AccessContext = Depends(access)) -> ChildDetailOut:
    ctx.require_member()
    return ChildDetailOut.model_validate(await svc.get_child(ctx.session, data.id))


@router.post("/create")
async def create(data: ChildCreateInput, ctx: AccessContext = Depends(access)) -> ChildOut:
    ctx.require_writer("Viewers cannot add children")
    return ChildOut.model_validate(await svc.create_child(ctx.session, data))


@router.post("/update")
async def update(data: ChildUpdateInput, ctx: AccessContext = Depends(access)) -> ChildOut:
    ctx.require_writer("Viewers cannot update children")
    return ChildOut.model_validate(await svc.update_child(ctx.session, data))


@router.post("/delete")
async def delete(data: IdInput, ctx: AccessContext = Depends(access)) -> SuccessOut:
    ctx.require_admin("Only owners and admins can delete children")
    return SuccessOut(**await svc.delete_child(ctx.session, data.id))

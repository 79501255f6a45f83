# 📄 File: app/modules/farm_management/presentation/api/v1/farms.py
# 🧭 Purpose (Layman Explanation):
# Web endpoints for a farmer's farms. Anyone may look at a farm, but only its owner
# can change or remove it.
#
# 🧪 Purpose (Technical Summary):
# Farm CRUD routes. Listing requires authentication and returns the caller's farms;
# single-farm reads use optional authentication to flag ownership; update and delete
# run the ownership check of the admission pipeline (owns="farm").
#
# 🔗 Dependencies:
# - FastAPI router
# - app.shared.core.dependencies (admission pipeline)
# - app.shared.schemas (pagination)
#
# 🔄 Connected Modules / Calls From:
# - app.api.v1.router (router inclusion)
# - app.modules.crop_management (crops reference farms by farmId)

from typing import Any, Dict

from fastapi import APIRouter, Depends, Request, status

from app.modules.farm_management.presentation.api.schemas.farm_schemas import FarmCreate, FarmUpdate
from app.shared.core.dependencies import AUTH_OPTIONAL, RequestContext, admit, get_document_store
from app.shared.core.exceptions import NotFoundError
from app.shared.schemas import PaginationQuery, paginated
from app.shared.utils.logging import get_logger

logger = get_logger(__name__)

FARMS = "farms"

farms_router = APIRouter()


def _farm_not_found(farm_id: str) -> NotFoundError:
    return NotFoundError("Farm not found", resource_type="farm", resource_id=farm_id)


@farms_router.get("", summary="List the current user's farms")
async def list_farms(
    request: Request,
    ctx: RequestContext = Depends(admit(query=PaginationQuery)),
) -> Dict[str, Any]:
    store = get_document_store(request)
    query: PaginationQuery = ctx.query
    criteria = {"owner": ctx.principal.id}

    farms = await store.find(FARMS, criteria, sort=query.sort, skip=query.skip, limit=query.limit)
    total = await store.count(FARMS, criteria)
    return paginated(farms, total, query)


@farms_router.get("/{id}", summary="Get a farm")
async def get_farm(
    id: str,
    request: Request,
    ctx: RequestContext = Depends(admit(auth=AUTH_OPTIONAL)),
) -> Dict[str, Any]:
    farm = await get_document_store(request).find_by_id(FARMS, id)
    if farm is None:
        raise _farm_not_found(id)
    farm["isOwner"] = ctx.user_id is not None and farm.get("owner") == ctx.user_id
    return {"success": True, "data": farm}


@farms_router.post("", status_code=status.HTTP_201_CREATED, summary="Create a farm")
async def create_farm(
    request: Request,
    ctx: RequestContext = Depends(admit(body=FarmCreate)),
) -> Dict[str, Any]:
    farm = await get_document_store(request).insert(FARMS, {
        **ctx.body.model_dump(),
        "owner": ctx.principal.id,
    })
    logger.info("Farm created", farm_id=farm["_id"])
    return {"success": True, "message": "Farm created successfully", "data": farm}


@farms_router.put("/{id}", summary="Update a farm")
async def update_farm(
    id: str,
    request: Request,
    ctx: RequestContext = Depends(admit(body=FarmUpdate, owns="farm")),
) -> Dict[str, Any]:
    farm = await get_document_store(request).update(FARMS, id, ctx.body.model_dump(exclude_unset=True))
    if farm is None:
        raise _farm_not_found(id)
    return {"success": True, "message": "Farm updated successfully", "data": farm}


@farms_router.delete("/{id}", summary="Delete a farm")
async def delete_farm(
    id: str,
    request: Request,
    ctx: RequestContext = Depends(admit(owns="farm")),
) -> Dict[str, Any]:
    if not await get_document_store(request).delete(FARMS, id):
        raise _farm_not_found(id)
    logger.info("Farm deleted", farm_id=id)
    return {"success": True, "message": "Farm deleted successfully"}

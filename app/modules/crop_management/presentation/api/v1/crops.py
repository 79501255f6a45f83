# 📄 File: app/modules/crop_management/presentation/api/v1/crops.py
# 🧭 Purpose (Layman Explanation):
# Web endpoints for the crops a farmer plants, including uploading photos of them.
# Only the farmer who owns a farm can add crops to it, and only a crop's owner can change it.
#
# 🧪 Purpose (Technical Summary):
# Crop CRUD routes plus multipart image upload. Creation authorizes ownership of the target farm;
# update, delete and upload use owns="crop". Uploads run on the "upload" rate limit tier, are
# validated for count, size and type, and each file is stored through the retry orchestrator
# with the "file_upload" policy.
#
# 🔗 Dependencies:
# - FastAPI router, UploadFile (python-multipart)
# - app.shared.core.dependencies (admission pipeline)
# - app.shared.core.retry (via the pipeline's orchestrator)
#
# 🔄 Connected Modules / Calls From:
# - app.api.v1.router (router inclusion)
# - Mobile app crop tracker screens

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, File, Request, UploadFile, status

from app.modules.crop_management.presentation.api.schemas.crop_schemas import CropCreate, CropUpdate
from app.shared.core.authorization import ResourceReference
from app.shared.core.dependencies import (
    AUTH_OPTIONAL,
    RequestContext,
    admit,
    get_document_store,
    get_image_storage,
    get_pipeline,
)
from app.shared.core.exceptions import NotFoundError
from app.shared.core.validation import read_upload, validate_uploads
from app.shared.schemas import PaginationQuery, paginated
from app.shared.utils.logging import get_logger

logger = get_logger(__name__)

CROPS = "crops"
IMAGE_FOLDER = "crops"

crops_router = APIRouter()


def _crop_not_found(crop_id: str) -> NotFoundError:
    return NotFoundError("Crop not found", resource_type="crop", resource_id=crop_id)


@crops_router.get("", summary="List the current user's crops")
async def list_crops(
    request: Request,
    ctx: RequestContext = Depends(admit(query=PaginationQuery)),
) -> Dict[str, Any]:
    store = get_document_store(request)
    query: PaginationQuery = ctx.query
    criteria = {"owner": ctx.principal.id}

    crops = await store.find(CROPS, criteria, sort=query.sort, skip=query.skip, limit=query.limit)
    return paginated(crops, await store.count(CROPS, criteria), query)


@crops_router.get("/{id}", summary="Get a crop")
async def get_crop(
    id: str,
    request: Request,
    ctx: RequestContext = Depends(admit(auth=AUTH_OPTIONAL)),
) -> Dict[str, Any]:
    crop = await get_document_store(request).find_by_id(CROPS, id)
    if crop is None:
        raise _crop_not_found(id)
    crop["isOwner"] = ctx.user_id is not None and crop.get("owner") == ctx.user_id
    return {"success": True, "data": crop}


@crops_router.post("", status_code=status.HTTP_201_CREATED, summary="Record a crop on one of your farms")
async def create_crop(
    request: Request,
    ctx: RequestContext = Depends(admit(body=CropCreate)),
) -> Dict[str, Any]:
    """
    Record a planting.

    The caller must own the farm named by ``farmId``; an unknown farm is a 404.
    """
    data: CropCreate = ctx.body
    await get_pipeline(request).authorizer.authorize(
        ctx.principal, ResourceReference(type="farm", id=data.farmId)
    )

    crop = await get_document_store(request).insert(CROPS, {
        **data.model_dump(mode="json"),
        "owner": ctx.principal.id,
        "status": "planted",
        "images": [],
    })
    logger.info("Crop created", crop_id=crop["_id"], farm_id=data.farmId)
    return {"success": True, "message": "Crop created successfully", "data": crop}


@crops_router.put("/{id}", summary="Update a crop")
async def update_crop(
    id: str,
    request: Request,
    ctx: RequestContext = Depends(admit(body=CropUpdate, owns="crop")),
) -> Dict[str, Any]:
    changes = ctx.body.model_dump(mode="json", exclude_unset=True)
    crop = await get_document_store(request).update(CROPS, id, changes)
    if crop is None:
        raise _crop_not_found(id)
    return {"success": True, "message": "Crop updated successfully", "data": crop}


@crops_router.delete("/{id}", summary="Delete a crop")
async def delete_crop(
    id: str,
    request: Request,
    ctx: RequestContext = Depends(admit(owns="crop")),
) -> Dict[str, Any]:
    if not await get_document_store(request).delete(CROPS, id):
        raise _crop_not_found(id)
    logger.info("Crop deleted", crop_id=id)
    return {"success": True, "message": "Crop deleted successfully"}


@crops_router.post(
    "/{id}/images",
    status_code=status.HTTP_201_CREATED,
    summary="Upload crop photos",
)
async def upload_crop_images(
    id: str,
    request: Request,
    files: Optional[List[UploadFile]] = File(None),
    ctx: RequestContext = Depends(admit("upload", owns="crop")),
) -> Dict[str, Any]:
    """
    Attach photos to a crop.

    At most five files of up to 10MB each; JPEG, PNG, GIF or WebP only.
    Each file is stored with the "file_upload" retry policy.
    """
    files = files or []
    described = [await read_upload(upload) for upload in files]
    validate_uploads([description for description, _ in described])
    contents = [content for _, content in described]

    pipeline = get_pipeline(request)
    storage = get_image_storage(request)
    store = get_document_store(request)

    uploaded = []
    for upload, content in zip(files, contents):
        async def store_image(upload: UploadFile = upload, content: bytes = content):
            return await storage.save(IMAGE_FOLDER, upload.filename or "image", upload.content_type, content)

        image = await pipeline.orchestrator.execute(
            store_image, "file_upload", operation_name="upload_image"
        )
        if await store.push(CROPS, id, "images", image.to_dict()) is None:
            raise _crop_not_found(id)
        uploaded.append(image.to_dict())

    logger.info("Crop images uploaded", crop_id=id, count=len(uploaded))
    return {"success": True, "message": "Images uploaded successfully", "data": uploaded}

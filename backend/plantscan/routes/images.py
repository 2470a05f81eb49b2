"""
PlantScan Backend - Image Route Handlers
==========================================

What:  POST /upload, DELETE /delete-image and GET /uploads/<name>.
How:   Multipart/JSON decoding happens here; the workflows live in
       InventoryService.

Request shapes:
    POST /upload          multipart: plantImage=<file>, groupId=7, plantId=99
                          (any configured id field pair is accepted)
    DELETE /delete-image  JSON: {"imageUrl": "/uploads/a.png", "groupId": 7, "plantId": 99}
"""

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import FileResponse
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.datastructures import UploadFile

from plantscan.config import Settings
from plantscan.database import get_db_session
from plantscan.dependencies import (
    get_file_service,
    get_inventory_service,
    get_settings,
    read_json_object,
)
from plantscan.exceptions import InvalidPayload, NotFoundError
from plantscan.middleware.logging import tag_record_key
from plantscan.schemas.plant import DeleteImageResponse, ErrorResponse, UploadResponse
from plantscan.services.file_service import FileService
from plantscan.services.inventory_service import InventoryService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Images"])

# Mounted under settings.upload_url_prefix by create_app
files_router = APIRouter(tags=["Images"])

NOT_LINKED_MESSAGE = "Image is not linked to this plant; nothing was deleted"


@router.post(
    "/upload",
    status_code=201,
    response_model=UploadResponse,
    responses={
        201: {"description": "Photo stored and linked to the record", "model": UploadResponse},
        400: {"description": "No file, bad file, or missing ids", "model": ErrorResponse},
        404: {"description": "No record for the ids", "model": ErrorResponse},
        500: {"description": "Storage failure", "model": ErrorResponse},
    },
    summary="Attach a photo to a plant record",
)
async def upload_image(
    request: Request,
    db: AsyncSession = Depends(get_db_session),
    service: InventoryService = Depends(get_inventory_service),
    app_settings: Settings = Depends(get_settings),
) -> UploadResponse:
    form = await request.form()
    try:
        upload = form.get(app_settings.upload_file_field)
        if not isinstance(upload, UploadFile):
            raise InvalidPayload(message="No file uploaded", field=app_settings.upload_file_field)

        ids = service.identify(form, allow_raw=False)
        tag_record_key(request, ids)

        content = await upload.read()
        logger.info(
            "Received upload: filename=%s, size=%d bytes",
            upload.filename or "unknown",
            len(content),
        )
        image_url = await service.attach_image(
            db,
            ids,
            filename=upload.filename or "",
            content=content,
            content_length=upload.size,
        )
        return UploadResponse(imageUrl=image_url)
    finally:
        await form.close()


@router.delete(
    "/delete-image",
    response_model=DeleteImageResponse,
    responses={
        200: {"description": "Photo deleted and unlinked, or not listed on the record (nothing deleted)", "model": DeleteImageResponse},
        400: {"description": "Missing imageUrl or ids", "model": ErrorResponse},
        404: {"description": "No record for the ids", "model": ErrorResponse},
        500: {"description": "File deletion or storage failure", "model": ErrorResponse},
    },
    summary="Delete a photo and remove it from the plant record",
)
async def delete_image(
    request: Request,
    db: AsyncSession = Depends(get_db_session),
    service: InventoryService = Depends(get_inventory_service),
) -> DeleteImageResponse:
    payload = await read_json_object(request)
    ids = service.identify(payload, allow_raw=False)
    tag_record_key(request, ids)
    image_url = service.require_image_url(payload)

    if not await service.detach_image(db, ids, image_url):
        return DeleteImageResponse(message=NOT_LINKED_MESSAGE)
    return DeleteImageResponse()


@files_router.get(
    "/{file_name}",
    responses={
        200: {"description": "Photo bytes"},
        404: {"description": "No such file", "model": ErrorResponse},
    },
    summary="Serve an uploaded photo",
)
async def serve_upload(
    file_name: str,
    files: FileService = Depends(get_file_service),
) -> FileResponse:
    path = files.resolve_public_file(file_name)
    if path is None:
        raise NotFoundError(resource="file", resource_id=file_name)

    return FileResponse(
        path=str(path),
        headers={"Cache-Control": "public, max-age=86400"},
    )

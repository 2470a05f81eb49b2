"""
PlantScan Backend - Scan Route Handler
========================================

What:  POST /scan: QR payload in, full PlantList record out.
Who:   Called by the scanner page after the camera decodes a tag.

Accepted bodies:
    {"qrCodeData": "*A7*randomjunk*V99*"}
    {"groupID": "7", "plant": "99"}   (or groupID/plantID, groupId/plantId)
"""

import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from plantscan.database import get_db_session
from plantscan.dependencies import get_inventory_service, read_json_object
from plantscan.middleware.logging import tag_record_key
from plantscan.schemas.plant import ErrorResponse
from plantscan.services.inventory_service import InventoryService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Scan"])


@router.post(
    "/scan",
    responses={
        200: {"description": "Record for the scanned tag (all PlantList columns)"},
        400: {"description": "Missing or malformed scan data", "model": ErrorResponse},
        404: {"description": "No record for the scanned identifiers", "model": ErrorResponse},
        500: {"description": "Storage failure", "model": ErrorResponse},
    },
    summary="Look up a plant record from a QR scan",
)
async def scan(
    request: Request,
    db: AsyncSession = Depends(get_db_session),
    service: InventoryService = Depends(get_inventory_service),
) -> Dict[str, Any]:
    payload = await read_json_object(request)
    ids = service.identify(payload)
    tag_record_key(request, ids)
    return await service.scan(db, ids)

"""
PlantScan Backend - Request Dependencies
==========================================

What:  FastAPI dependencies that hand the per-process objects built in the
       lifespan (settings, services) to route handlers.
How:   Everything lives on app.state; see plantscan.main.attach_runtime.
"""

from typing import Any, Dict

from fastapi import Request

from plantscan.config import Settings
from plantscan.exceptions import InvalidPayload
from plantscan.services.file_service import FileService
from plantscan.services.inventory_service import InventoryService


async def read_json_object(request: Request) -> Dict[str, Any]:
    """
    Decode the request body as a JSON object.

    An empty body decodes to {} so the scan parser reports the missing
    fields itself. Anything that is not a JSON object is InvalidPayload.
    """
    if not (await request.body()).strip():
        return {}
    try:
        payload = await request.json()
    except (UnicodeDecodeError, ValueError):
        raise InvalidPayload(message="Request body is not valid JSON")
    if not isinstance(payload, dict):
        raise InvalidPayload(message="Request body must be a JSON object")
    return payload


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_inventory_service(request: Request) -> InventoryService:
    return request.app.state.inventory_service


def get_file_service(request: Request) -> FileService:
    return request.app.state.file_service

"""
PlantScan Backend - Custom Exception Hierarchy
================================================

What:  Application-specific exceptions for the scan / upload / delete flows.
How:   Each exception carries a client-safe message and an optional context
       dict. Global exception handlers (registered in main.py) map them to
       HTTP status codes and a stable machine-readable error kind.
Who:   Raised by services; caught by the handlers in main.py.

Exception Hierarchy:
    PlantScanError (base)
    ├── InvalidPayload          → 400 Bad Request
    ├── NotFoundError           → 404 Not Found
    │   └── RecordNotFound      → 404 Not Found (composite key miss)
    ├── StorageError            → 500 Internal Server Error
    └── FileOperationError      → 500 Internal Server Error (blob deletion)

The context dict is logged server-side only. Storage failures never put
driver or OS error text into the response body.
"""

from typing import Any, Dict, Optional


class PlantScanError(Exception):
    """
    Base exception for all PlantScan application errors.

    Attributes:
        message:     User-facing error description (safe to return in API response)
        context:     Additional debug info (logged, not returned for 5xx errors)
        status_code: HTTP status the global handler responds with
        error_code:  Stable error kind returned as the "error" field
    """

    status_code = 500
    error_code = "server_error"

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class InvalidPayload(PlantScanError):
    """
    Raised when scan data or required identifiers are missing or malformed.

    When:    Missing/unparseable QR string, incomplete identifier pair,
             upload without a file, unsupported file type, malformed JSON.
    HTTP:    400 Bad Request

    Example response:
        {
            "error": "invalid_payload",
            "message": "Invalid QR code format",
            "details": {"field": "qrCodeData"}
        }
    """

    status_code = 400
    error_code = "invalid_payload"

    def __init__(
        self,
        message: str = "Invalid request payload",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class NotFoundError(PlantScanError):
    """
    Raised when a requested resource does not exist.

    HTTP:    404 Not Found
    """

    status_code = 404
    error_code = "not_found"

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        message: Optional[str] = None,
    ):
        if message is None:
            message = f"The requested {resource} was not found"
            if resource_id:
                message = f"{resource} '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class RecordNotFound(NotFoundError):
    """
    No PlantList record matches the composite key (GroupID, Plant).

    Also raised by the link editor when asked to remove a URL from a record
    that was never looked up (absent ImageLinks value).
    """

    error_code = "record_not_found"

    def __init__(
        self,
        group_id: Optional[str] = None,
        plant_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if group_id is not None:
            ctx["group_id"] = group_id
        if plant_id is not None:
            ctx["plant_id"] = plant_id
        super().__init__(resource="plant", context=ctx, message="Plant not found")
        self.group_id = group_id
        self.plant_id = plant_id


class StorageError(PlantScanError):
    """
    The record store or the blob store failed unexpectedly.

    When:    Connection lost, locked database, disk full, permission denied.
    HTTP:    500 Internal Server Error

    The message returned to the client is always generic; the context carries
    the attempted key and the original exception type for the server log.
    """

    status_code = 500
    error_code = "storage_error"

    def __init__(
        self,
        message: str = "A storage error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class FileOperationError(PlantScanError):
    """
    The blob store could not delete an image file.

    When:    The file is missing, or the OS refused the unlink.
    HTTP:    500 Internal Server Error

    The record is left untouched when this is raised, so ImageLinks never
    drops a URL whose file could not be removed.
    """

    status_code = 500
    error_code = "file_operation_error"

    def __init__(
        self,
        message: str = "Failed to delete image file",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)

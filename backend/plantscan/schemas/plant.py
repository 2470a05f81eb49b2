"""
PlantScan Backend - Pydantic Response Schemas
===============================================

What:  Response models for the upload, delete-image and health endpoints,
       plus the shared error body.
How:   FastAPI serializes route return values through these and documents
       them in the OpenAPI schema.

The scan endpoint returns the record as a plain dict: its columns are
whatever the seeded PlantList table holds, so there is no fixed model.
Field names in the JSON bodies (imageUrl) follow the scanner client.
"""

from typing import Optional

from pydantic import BaseModel, Field


class UploadResponse(BaseModel):
    """Returned by POST /upload with HTTP 201."""
    imageUrl: str = Field(description="Public URL of the stored photo, e.g. /uploads/1718029384123-9f2c1a7b.jpg")


class DeleteImageResponse(BaseModel):
    """Returned by DELETE /delete-image."""
    success: bool = Field(default=True)
    message: str = Field(default="Image deleted successfully")


class ErrorResponse(BaseModel):
    """
    Standardized error body for all API errors.

    Example:
        {
            "error": "record_not_found",
            "message": "Plant not found",
            "request_id": "1f0e2d3c"
        }
    """
    error: str = Field(description="Machine-readable error kind")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    """Returned by GET /health."""
    status: str = Field(description="Overall service status: healthy, degraded, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    storage: str = Field(description="Upload directory: writable, unavailable")
    uptime_seconds: float = Field(description="Seconds since service started")

"""
Dear Diary Backend — Shared Response Schemas
==============================================

What:  Small response bodies used by more than one router, plus the error
       envelope documented in OpenAPI.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class MessageResponse(BaseModel):
    """Plain acknowledgement, e.g. {"message": "Diary entry deleted"}."""

    message: str


class ErrorResponse(BaseModel):
    """
    Body of every error response.

    `errors` is present for field-scoped failures (validation, conflicts);
    `details` carries non-sensitive extras such as retry_after.
    """

    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable summary")
    errors: Optional[Dict[str, str]] = Field(default=None, description="Field name → message")
    details: Optional[Dict[str, Any]] = None
    request_id: Optional[str] = None


class HealthResponse(BaseModel):
    """GET /health body. `status` is "healthy" or "unhealthy"."""

    status: str
    version: str
    database: str = Field(description="connected | disconnected")
    uptime_seconds: float

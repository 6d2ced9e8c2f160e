"""
MemoTap Backend — Shared Response Schemas
===========================================

What:  Response models shared by every router: errors, health, plain messages.
Who:   Route handlers (response_model / responses=) and the global
       exception handlers in main.py.
"""

from typing import Optional

from pydantic import BaseModel, Field

from app.services.key_pool import PoolStatus


class ErrorResponse(BaseModel):
    """
    Standardized error response format for all API errors.

    Example:
        {
            "error": "validation_error",
            "message": "Invalid file type: video/mp4. Only audio files are allowed.",
            "details": {"field": "audio"},
            "request_id": "550e8400-e29b-41d4-a716-446655440000"
        }
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class MessageResponse(BaseModel):
    """Plain acknowledgement, e.g. after a delete."""
    message: str


class HealthResponse(BaseModel):
    """
    Service and dependency status for monitoring.

    Overall status:
        healthy:   database connected and at least one Gemini key available
        degraded:  database connected but no key available, or Gemini unreachable
                   on a deep check (process requests will 503)
        unhealthy: database unreachable
    """
    status: str = Field(description="Overall service status: healthy, degraded, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    gemini: str = Field(
        default="not_checked",
        description="Gemini reachability with the current key: available, unavailable, not_checked",
    )
    key_pool: PoolStatus = Field(description="Gemini API key pool snapshot")
    uptime_seconds: float = Field(description="Seconds since service started")

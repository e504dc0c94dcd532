"""
Common Pydantic schemas shared across the application.

Provides:
- Error response schemas
- Health check schemas
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

__all__ = [
    "ErrorResponse",
    "HealthResponse",
    "RootResponse",
]


class ErrorResponse(BaseModel):
    """Standard error response format."""

    detail: str = Field(description="Error details")

    model_config = ConfigDict(json_schema_extra={"example": {"detail": "Import job not found"}})


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(description="Health status")
    app: str = Field(description="Application name")
    version: str | None = Field(default=None, description="Application version")


class RootResponse(BaseModel):
    """Root endpoint response with API information."""

    app: str
    version: str
    docs: str
    api: str

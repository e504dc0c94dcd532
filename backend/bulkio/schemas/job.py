"""
Import/export job request and response schemas.

Patterns:
- ImportUrlRequest: JSON body of POST /imports for remote sources
  (multipart uploads are read as form fields)
- ExportCreate: POST /exports request body
- JobAccepted: 202/200 body returned by job creation
- ImportJobRead / ExportJobRead: status polling responses
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

from bulkio.core.config import get_settings
from bulkio.schemas.enums import FileFormat, JobStatus, ResourceType
from bulkio.schemas.validation import ValidationOutcome

__all__ = [
    "ExportCreate",
    "ExportJobRead",
    "ImportJobRead",
    "ImportUrlRequest",
    "JobAccepted",
]


class ImportUrlRequest(BaseModel):
    """Schema for creating an import from a remote file."""

    resource_type: ResourceType = Field(description="Kind of records in the file")
    format: FileFormat = Field(description="File format")
    file_url: str = Field(
        min_length=1,
        description="http(s) URL fetched by the background job",
        examples=["https://example.com/users.csv"],
    )

    @field_validator("file_url")
    @classmethod
    def validate_file_url(cls, v: str) -> str:
        """Only http and https sources can be fetched."""
        v = v.strip()
        if not v.startswith(("http://", "https://")):
            raise ValueError("file_url must be an http or https URL")
        return v


class ExportCreate(BaseModel):
    """Schema for creating a filtered export job."""

    idempotency_key: str = Field(min_length=1, max_length=255)
    resource_type: ResourceType
    format: FileFormat
    filters: dict[str, Any] = Field(
        default_factory=dict,
        description="Equality filters, e.g. {\"role\": \"admin\"}",
    )
    fields: list[str] | None = Field(
        default=None,
        description="Output columns in order; all columns when omitted",
    )


class JobAccepted(BaseModel):
    """Response for a created (or replayed) job."""

    model_config = ConfigDict(from_attributes=True)

    job_id: str = Field(validation_alias="id")
    status: JobStatus
    created_at: datetime


class ImportJobRead(BaseModel):
    """Schema for import job status responses."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    idempotency_key: str
    resource_type: ResourceType
    format: FileFormat
    status: JobStatus
    total_records: int
    processed_count: int
    success_count: int
    fail_count: int
    errors: list[ValidationOutcome] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime
    completed_at: datetime | None = None


class ExportJobRead(BaseModel):
    """Schema for export job status responses."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    idempotency_key: str
    resource_type: ResourceType
    format: FileFormat
    status: JobStatus
    filters: dict[str, Any] = Field(default_factory=dict)
    fields: list[str] | None = None
    total_records: int
    errors: list[ValidationOutcome] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime
    completed_at: datetime | None = None

    @computed_field
    @property
    def download_url(self) -> str | None:
        """Where the finished file can be fetched."""
        if self.status is JobStatus.COMPLETED:
            prefix = get_settings().api_v1_prefix.rstrip("/")
            return f"{prefix}/exports/{self.id}/download"
        return None

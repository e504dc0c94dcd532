"""
Pydantic schemas for request/response validation.

Re-exports all schemas for convenient importing:
    from bulkio.schemas import ExportCreate, JobStatus, ValidationOutcome
"""

# Common schemas
from bulkio.schemas.common import ErrorResponse, HealthResponse, RootResponse

# Enums
from bulkio.schemas.enums import ArticleStatus, FileFormat, JobStatus, ResourceType

# Job schemas
from bulkio.schemas.job import (
    ExportCreate,
    ExportJobRead,
    ImportJobRead,
    ImportUrlRequest,
    JobAccepted,
)

# Validation results
from bulkio.schemas.validation import FieldError, ValidationOutcome

__all__ = [
    # Common
    "ErrorResponse",
    "HealthResponse",
    "RootResponse",
    # Enums
    "ArticleStatus",
    "FileFormat",
    "JobStatus",
    "ResourceType",
    # Jobs
    "ExportCreate",
    "ExportJobRead",
    "ImportJobRead",
    "ImportUrlRequest",
    "JobAccepted",
    # Validation
    "FieldError",
    "ValidationOutcome",
]

"""
Enum definitions for the bulk import/export service.

All enums are defined as StrEnum for JSON serialization compatibility.
Database stores these as VARCHAR - validation happens at Pydantic/FastAPI layer.
"""

from enum import StrEnum

__all__ = [
    "ResourceType",
    "FileFormat",
    "JobStatus",
    "ArticleStatus",
]


class ResourceType(StrEnum):
    """Record kinds that can be imported and exported."""

    USERS = "users"
    ARTICLES = "articles"
    COMMENTS = "comments"


class FileFormat(StrEnum):
    """Flat file formats understood by the parsers and serializers."""

    CSV = "csv"
    NDJSON = "ndjson"

    @property
    def media_type(self) -> str:
        if self is FileFormat.CSV:
            return "text/csv"
        return "application/x-ndjson"


class JobStatus(StrEnum):
    """
    Import/export job lifecycle states.

    State machine:
    pending -> processing -> completed
                          -> failed
    completed and failed are terminal.
    """

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED)


class ArticleStatus(StrEnum):
    """Article publication states."""

    DRAFT = "draft"
    PUBLISHED = "published"

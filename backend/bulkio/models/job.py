"""
Import and export job models - the durable record of every bulk transfer.

Design notes:
- idempotency_key is unique per table; a replayed creation request returns
  the stored job instead of inserting a new one
- counters are written at batch boundaries, errors once at finalization
- errors holds serialized ValidationOutcome dicts; always assign a new list,
  in-place mutation of JSON columns is not tracked
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

import sqlalchemy as sa
from sqlalchemy import JSON, Column, Index, String, Text, UniqueConstraint
from sqlmodel import Field

from bulkio.models.base import BaseTableModel, utc_now
from bulkio.schemas.enums import JobStatus

__all__ = ["ImportJob", "ExportJob"]


class ImportJob(BaseTableModel, table=True):
    """One file import of a single resource kind."""

    __tablename__ = "import_jobs"
    __table_args__ = (
        UniqueConstraint("idempotency_key", name="uq_import_jobs_idempotency_key"),
        Index("idx_import_jobs_status", "status"),
    )

    idempotency_key: str = Field(
        sa_column=Column(String(255), nullable=False),
    )
    resource_type: str = Field(
        sa_column=Column(String(50), nullable=False),
    )
    format: str = Field(
        sa_column=Column(String(20), nullable=False),
    )
    # Local upload path or remote URL
    source_location: str = Field(
        sa_column=Column(Text, nullable=False),
    )
    status: JobStatus = Field(
        default=JobStatus.PENDING,
        sa_column=Column(String(20), nullable=False),
    )

    total_records: int = Field(default=0)
    processed_count: int = Field(default=0)
    success_count: int = Field(default=0)
    fail_count: int = Field(default=0)

    errors: list[dict[str, Any]] = Field(
        default_factory=list,
        sa_column=Column(JSON, nullable=False),
    )

    updated_at: datetime = Field(
        default_factory=utc_now,
        sa_type=sa.DateTime(timezone=True),
    )
    completed_at: datetime | None = Field(
        default=None,
        sa_type=sa.DateTime(timezone=True),
    )


class ExportJob(BaseTableModel, table=True):
    """One filtered export of a single resource kind to a managed file."""

    __tablename__ = "export_jobs"
    __table_args__ = (
        UniqueConstraint("idempotency_key", name="uq_export_jobs_idempotency_key"),
        Index("idx_export_jobs_status", "status"),
    )

    idempotency_key: str = Field(
        sa_column=Column(String(255), nullable=False),
    )
    resource_type: str = Field(
        sa_column=Column(String(50), nullable=False),
    )
    format: str = Field(
        sa_column=Column(String(20), nullable=False),
    )
    filters: dict[str, Any] = Field(
        default_factory=dict,
        sa_column=Column(JSON, nullable=False),
    )
    # Column selection; null means every column in canonical order
    fields: list[str] | None = Field(
        default=None,
        sa_column=Column(JSON, nullable=True),
    )
    status: JobStatus = Field(
        default=JobStatus.PENDING,
        sa_column=Column(String(20), nullable=False),
    )

    total_records: int = Field(default=0)
    file_path: str | None = Field(
        default=None,
        sa_column=Column(Text, nullable=True),
    )

    errors: list[dict[str, Any]] = Field(
        default_factory=list,
        sa_column=Column(JSON, nullable=False),
    )

    updated_at: datetime = Field(
        default_factory=utc_now,
        sa_type=sa.DateTime(timezone=True),
    )
    completed_at: datetime | None = Field(
        default=None,
        sa_type=sa.DateTime(timezone=True),
    )

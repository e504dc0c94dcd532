"""
Base SQLModel classes with common fields.

Design decisions:
- Use SQLModel for combined Pydantic + SQLAlchemy functionality
- String primary keys: imported records carry their own identifiers, which are
  kept verbatim; uuid4 strings are generated when a record has none
- No soft delete: the orphan reconciler removes rows outright

Note on Column reuse: SQLAlchemy Column objects cannot be shared between
tables. When using inheritance, we must define columns without sa_column
or use sa_column_kwargs to avoid sharing Column objects.
"""

from __future__ import annotations

import uuid as uuid_lib
from datetime import UTC, datetime

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

__all__ = [
    "SQLModel",
    "BaseTableModel",
    "new_id",
    "utc_now",
]


def utc_now() -> datetime:
    """Get current UTC time."""
    return datetime.now(UTC)


def new_id() -> str:
    """Generate a fresh record identifier."""
    return str(uuid_lib.uuid4())


class BaseTableModel(SQLModel):
    """
    Base class for all record and job tables.

    Provides:
    - id: String primary key (caller-supplied or generated uuid4)
    - created_at: Creation timestamp

    Usage:
        class User(BaseTableModel, table=True):
            __tablename__ = "users"
            email: str = Field(max_length=255)

    Note: Subclasses must set table=True to create actual tables.
    """

    id: str = Field(
        default_factory=new_id,
        primary_key=True,
        max_length=255,
    )

    created_at: datetime = Field(
        default_factory=utc_now,
        sa_type=sa.DateTime(timezone=True),
    )

"""
User model - principal entities referenced by articles and comments.

Design notes:
- email is the natural key; it is stored lower-cased so the unique
  constraint gives case-insensitive uniqueness and serves as the upsert
  conflict target
- role is free-form text, not an enum
- users are never deleted by the import/export engine
"""

from __future__ import annotations

from datetime import datetime

import sqlalchemy as sa
from sqlalchemy import Boolean, Column, Index, String, UniqueConstraint
from sqlmodel import Field

from bulkio.models.base import BaseTableModel, utc_now

__all__ = ["User"]


class User(BaseTableModel, table=True):
    """A principal entity: an author of articles and comments."""

    __tablename__ = "users"
    __table_args__ = (
        UniqueConstraint("email", name="uq_users_email"),
        Index("idx_users_role", "role"),
        Index("idx_users_active", "active"),
    )

    email: str = Field(
        sa_column=Column(String(255), nullable=False),
        max_length=255,
    )
    name: str = Field(
        default="",
        sa_column=Column(String(255), nullable=False, server_default=""),
    )
    role: str = Field(
        sa_column=Column(String(100), nullable=False),
    )
    active: bool = Field(
        sa_column=Column(Boolean, nullable=False),
    )

    updated_at: datetime = Field(
        default_factory=utc_now,
        sa_type=sa.DateTime(timezone=True),
    )

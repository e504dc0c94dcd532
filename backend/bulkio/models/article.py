"""
Article model plus the normalized tag tables.

Design notes:
- slug is the natural key and upsert conflict target
- author_id has no database-level foreign key: imports may arrive in any
  order, so referential integrity is restored by the orphan reconciler
- tags live in their own table; article_tags.position keeps the imported
  order so an export reproduces the same tag array
"""

from __future__ import annotations

from datetime import datetime

import sqlalchemy as sa
from sqlalchemy import Column, Index, Integer, String, Text, UniqueConstraint
from sqlmodel import Field, SQLModel

from bulkio.models.base import BaseTableModel
from bulkio.schemas.enums import ArticleStatus

__all__ = ["Article", "Tag", "ArticleTag"]


class Article(BaseTableModel, table=True):
    """A content entity written by a user."""

    __tablename__ = "articles"
    __table_args__ = (
        UniqueConstraint("slug", name="uq_articles_slug"),
        Index("idx_articles_author_id", "author_id"),
        Index("idx_articles_status", "status"),
    )

    slug: str = Field(
        sa_column=Column(String(255), nullable=False),
        max_length=255,
    )
    title: str = Field(
        default="",
        sa_column=Column(Text, nullable=False, server_default=""),
    )
    body: str = Field(
        default="",
        sa_column=Column(Text, nullable=False, server_default=""),
    )
    author_id: str = Field(
        sa_column=Column(String(255), nullable=False),
    )
    status: str = Field(
        default=ArticleStatus.DRAFT,
        sa_column=Column(String(20), nullable=False),
    )
    # Always null for drafts
    published_at: datetime | None = Field(
        default=None,
        sa_type=sa.DateTime(timezone=True),
    )


class Tag(SQLModel, table=True):
    """A distinct tag name shared between articles."""

    __tablename__ = "tags"
    __table_args__ = (UniqueConstraint("name", name="uq_tags_name"),)

    id: int | None = Field(default=None, primary_key=True)
    name: str = Field(
        sa_column=Column(String(255), nullable=False),
    )


class ArticleTag(SQLModel, table=True):
    """Join row between an article and one of its tags."""

    __tablename__ = "article_tags"
    __table_args__ = (Index("idx_article_tags_tag_id", "tag_id"),)

    article_id: str = Field(
        sa_column=Column(String(255), primary_key=True),
    )
    tag_id: int = Field(
        sa_column=Column(Integer, primary_key=True),
    )
    position: int = Field(default=0)

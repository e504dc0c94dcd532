"""
Comment model - sub-entities attached to an article.

Comments have no natural key, so the caller-supplied id is both the primary
key and the upsert conflict target. Both references are checked after the
import by the orphan reconciler rather than by foreign key constraints.
"""

from __future__ import annotations

from sqlalchemy import Column, Index, String, Text
from sqlmodel import Field

from bulkio.models.base import BaseTableModel

__all__ = ["Comment"]


class Comment(BaseTableModel, table=True):
    """A user's comment on an article."""

    __tablename__ = "comments"
    __table_args__ = (
        Index("idx_comments_article_id", "article_id"),
        Index("idx_comments_user_id", "user_id"),
    )

    article_id: str = Field(
        sa_column=Column(String(255), nullable=False),
    )
    user_id: str = Field(
        sa_column=Column(String(255), nullable=False),
    )
    body: str = Field(
        default="",
        sa_column=Column(Text, nullable=False, server_default=""),
    )

"""
Resource registry - one descriptor per importable/exportable record kind.

Everything that differs between users, articles and comments is declared
here, so the pipelines, upsert engine and exporters stay kind-agnostic.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from sqlmodel import SQLModel

from bulkio.models.article import Article
from bulkio.models.comment import Comment
from bulkio.models.user import User
from bulkio.normalization import (
    CanonicalRecord,
    normalize_article,
    normalize_comment,
    normalize_user,
)
from bulkio.schemas.enums import ResourceType
from bulkio.schemas.validation import ValidationOutcome
from bulkio.services.exceptions import UnknownResourceError
from bulkio.validation import validate_article, validate_comment, validate_user

__all__ = [
    "RESOURCES",
    "ResourceSpec",
    "get_resource",
]


@dataclass(frozen=True)
class ResourceSpec:
    """Static description of one record kind."""

    resource_type: ResourceType
    model: type[SQLModel]
    # Export column order; also the accepted `fields` names
    columns: tuple[str, ...]
    conflict_key: str
    # Columns overwritten when the conflict key already exists
    mutable_columns: tuple[str, ...]
    # Equality filters accepted by filtered exports, with their value types
    filters: dict[str, type]
    validate: Callable[[dict[str, Any], int], ValidationOutcome]
    normalize: Callable[[dict[str, Any]], CanonicalRecord]
    has_tags: bool = False

    @property
    def table(self):
        return self.model.__table__


RESOURCES: dict[ResourceType, ResourceSpec] = {
    ResourceType.USERS: ResourceSpec(
        resource_type=ResourceType.USERS,
        model=User,
        columns=("id", "email", "name", "role", "active", "created_at", "updated_at"),
        conflict_key="email",
        mutable_columns=("name", "role", "active", "updated_at"),
        filters={"role": str, "active": bool},
        validate=validate_user,
        normalize=normalize_user,
    ),
    ResourceType.ARTICLES: ResourceSpec(
        resource_type=ResourceType.ARTICLES,
        model=Article,
        columns=(
            "id",
            "slug",
            "title",
            "body",
            "author_id",
            "tags",
            "status",
            "published_at",
            "created_at",
        ),
        conflict_key="slug",
        mutable_columns=("title", "body", "author_id", "status", "published_at"),
        filters={"status": str, "author_id": str},
        validate=validate_article,
        normalize=normalize_article,
        has_tags=True,
    ),
    ResourceType.COMMENTS: ResourceSpec(
        resource_type=ResourceType.COMMENTS,
        model=Comment,
        columns=("id", "article_id", "user_id", "body", "created_at"),
        conflict_key="id",
        mutable_columns=("article_id", "user_id", "body"),
        filters={"article_id": str, "user_id": str},
        validate=validate_comment,
        normalize=normalize_comment,
    ),
}


def get_resource(resource_type: ResourceType | str) -> ResourceSpec:
    """
    Look up the descriptor for a kind.

    Raises:
        UnknownResourceError: If the kind is not registered
    """
    try:
        return RESOURCES[ResourceType(resource_type)]
    except ValueError:
        raise UnknownResourceError(str(resource_type)) from None

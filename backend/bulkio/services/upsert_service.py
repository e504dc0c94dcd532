"""
Batch upsert engine.

Writes one batch of canonical rows with INSERT .. ON CONFLICT DO UPDATE and
commits it as one transaction.

Design notes:
- the insert construct comes from the session's dialect (SQLite or
  PostgreSQL); both support on_conflict_do_update with `excluded`
- the identifier, the natural key and created_at are never in the update
  set, so re-importing a row keeps its original id
- a repeated conflict key inside one batch keeps the last occurrence;
  PostgreSQL refuses to update the same row twice in one statement
- article tags: tag names are inserted with DO NOTHING, then the batch's
  join rows are replaced wholesale, keeping the imported order in position
- every statement is split so it stays under the driver's bind parameter
  limit (asyncpg allows 32767); the chunks share the batch transaction
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Sequence
from typing import Any

from sqlalchemy import Table, delete, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from bulkio.models.article import Article, ArticleTag, Tag
from bulkio.normalization import CanonicalRecord
from bulkio.resources import ResourceSpec
from bulkio.services.exceptions import BatchWriteError, ServiceError

logger = logging.getLogger(__name__)

__all__ = ["UpsertService"]

# Bind parameters allowed in one statement
MAX_BIND_PARAMS = 30000


def _chunked(items: Sequence[Any], params_per_item: int = 1) -> Iterator[Sequence[Any]]:
    """Split `items` so one statement binds at most MAX_BIND_PARAMS values."""
    size = max(1, MAX_BIND_PARAMS // max(1, params_per_item))
    for start in range(0, len(items), size):
        yield items[start:start + size]


class UpsertService:
    """Set-oriented writes of canonical rows for any registered resource."""

    def __init__(self, db: AsyncSession):
        self.db = db

    def _insert(self, table: Table):
        dialect = self.db.get_bind().dialect.name
        if dialect == "postgresql":
            return postgresql.insert(table)
        if dialect == "sqlite":
            return sqlite.insert(table)
        raise ServiceError(f"Upsert is not supported on the '{dialect}' dialect")

    async def upsert_batch(
        self,
        resource: ResourceSpec,
        rows: Sequence[CanonicalRecord],
        first_row: int = 0,
        last_row: int = 0,
    ) -> int:
        """
        Insert or update a batch and commit it.

        Args:
            resource: Descriptor of the kind being written
            rows: Canonical rows from the normalizer
            first_row: Source row of the first record, for error reporting
            last_row: Source row of the last record, for error reporting

        Returns:
            Number of input rows written (duplicates included)

        Raises:
            BatchWriteError: If the storage layer rejected the batch
        """
        if not rows:
            return 0

        key = resource.conflict_key
        deduped: dict[Any, dict[str, Any]] = {}
        tags_by_slug: dict[str, list[str]] = {}
        for row in rows:
            values = {k: v for k, v in row.items() if k != "tags"}
            deduped[values[key]] = values
            if resource.has_tags:
                tags_by_slug[values["slug"]] = list(row.get("tags") or [])

        distinct = list(deduped.values())
        try:
            for chunk in _chunked(distinct, len(distinct[0])):
                stmt = self._insert(resource.table).values(list(chunk))
                stmt = stmt.on_conflict_do_update(
                    index_elements=[key],
                    set_={col: stmt.excluded[col] for col in resource.mutable_columns},
                )
                await self.db.execute(stmt)

            if resource.has_tags:
                await self._replace_tags(tags_by_slug)

            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(
                f"Upsert of {len(rows)} {resource.resource_type} rows "
                f"({first_row}-{last_row}) failed: {e}"
            )
            raise BatchWriteError(first_row, last_row) from e

        logger.debug(
            f"Upserted {len(deduped)} distinct {resource.resource_type} rows "
            f"({first_row}-{last_row})"
        )
        return len(rows)

    async def _replace_tags(self, tags_by_slug: dict[str, list[str]]) -> None:
        """Rebuild the tag links of every article in the batch."""
        id_by_slug: dict[str, str] = {}
        for slugs in _chunked(list(tags_by_slug)):
            result = await self.db.execute(
                select(Article.id, Article.slug).where(Article.slug.in_(slugs))
            )
            id_by_slug.update({slug: article_id for article_id, slug in result.all()})

        for article_ids in _chunked(list(id_by_slug.values())):
            await self.db.execute(
                delete(ArticleTag).where(ArticleTag.article_id.in_(article_ids))
            )

        names = sorted({name for tags in tags_by_slug.values() for name in tags})
        if not names:
            return

        tag_ids: dict[str, int] = {}
        for chunk in _chunked(names):
            tag_insert = self._insert(Tag.__table__).values([{"name": n} for n in chunk])
            await self.db.execute(tag_insert.on_conflict_do_nothing(index_elements=["name"]))
            result = await self.db.execute(select(Tag.id, Tag.name).where(Tag.name.in_(chunk)))
            tag_ids.update({name: tag_id for tag_id, name in result.all()})

        links = [
            {"article_id": id_by_slug[slug], "tag_id": tag_ids[name], "position": position}
            for slug, tags in tags_by_slug.items()
            if slug in id_by_slug
            for position, name in enumerate(tags)
        ]
        for chunk in _chunked(links, 3):
            await self.db.execute(ArticleTag.__table__.insert().values(list(chunk)))

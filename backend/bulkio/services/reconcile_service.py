"""
Orphan reconciler - post-import referential integrity sweep.

Articles and comments are imported without foreign key checks, so a row may
reference a user or article that does not exist. After an import the
reconciler deletes such rows and reports one outcome per deleted row.

Sweeps per imported kind:
- users: none
- articles: orphan articles (and their tag links), then orphan comments
- comments: orphan comments

Design notes:
- rows written by the running job are matched through the job's row index
  (slug -> rows for articles, id -> rows for comments); every source row
  behind a deleted row gets its own outcome and is counted as reclassified,
  so the pipeline moves each of them from succeeded to failed
- rows left by earlier jobs are reported with row_number 0 and do not
  affect this job's counters
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field

from sqlalchemy import delete, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from bulkio.models.article import Article, ArticleTag
from bulkio.models.comment import Comment
from bulkio.models.user import User
from bulkio.schemas.enums import ResourceType
from bulkio.schemas.validation import ValidationOutcome

logger = logging.getLogger(__name__)

__all__ = ["ReconcileReport", "ReconcileService"]

# Keeps IN lists well below driver parameter limits
DELETE_CHUNK_SIZE = 500


@dataclass
class ReconcileReport:
    """Result of one reconciliation pass."""

    outcomes: list[ValidationOutcome] = field(default_factory=list)
    # Source records of the running job whose rows were deleted
    reclassified: int = 0

    def add(
        self,
        source_rows: list[int],
        errors: list[tuple[str, str]],
        record_id: str,
    ) -> None:
        """Report one deleted row, once per source row that wrote it (row 0 if none)."""
        for row_number in source_rows or [0]:
            self.outcomes.append(
                ValidationOutcome.from_errors(row_number, errors, record_id=record_id)
            )
        self.reclassified += len(source_rows)


def _chunks(ids: list[str], size: int = DELETE_CHUNK_SIZE) -> Iterable[list[str]]:
    for start in range(0, len(ids), size):
        yield ids[start:start + size]


class ReconcileService:
    """Deletes dangling article and comment rows after an import."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def reconcile(
        self,
        resource_type: ResourceType,
        written_rows: dict[str, list[int]] | None = None,
    ) -> ReconcileReport:
        """
        Run the sweeps required after importing `resource_type`.

        Args:
            resource_type: Kind that was just imported
            written_rows: Natural key of every row this job wrote, mapped to
                the source rows written under it (slug for articles, id for comments)
        """
        report = ReconcileReport()
        written_rows = written_rows or {}

        if resource_type is ResourceType.ARTICLES:
            await self._sweep_articles(report, written_rows)
            await self._sweep_comments(report, {})
        elif resource_type is ResourceType.COMMENTS:
            await self._sweep_comments(report, written_rows)

        if report.outcomes:
            await self.db.commit()
            logger.info(
                f"Reconciliation after {resource_type} import reported "
                f"{len(report.outcomes)} orphans ({report.reclassified} records from this job)"
            )
        return report

    async def _sweep_articles(
        self, report: ReconcileReport, written_rows: dict[str, list[int]]
    ) -> None:
        stmt = (
            select(Article.id, Article.slug, Article.author_id)
            .where(Article.author_id.not_in(select(User.id)))
            .order_by(Article.id)
        )
        orphans = (await self.db.execute(stmt)).all()
        if not orphans:
            return

        for article_id, slug, author_id in orphans:
            report.add(
                written_rows.get(slug, []),
                [("author_id", f"Author ID '{author_id}' does not exist in users table")],
                article_id,
            )

        ids = [article_id for article_id, _, _ in orphans]
        for chunk in _chunks(ids):
            await self.db.execute(delete(ArticleTag).where(ArticleTag.article_id.in_(chunk)))
            await self.db.execute(delete(Article).where(Article.id.in_(chunk)))

    async def _sweep_comments(
        self, report: ReconcileReport, written_rows: dict[str, list[int]]
    ) -> None:
        stmt = (
            select(
                Comment.id,
                Comment.article_id,
                Comment.user_id,
                Article.id.label("found_article"),
                User.id.label("found_user"),
            )
            .select_from(Comment)
            .outerjoin(Article, Article.id == Comment.article_id)
            .outerjoin(User, User.id == Comment.user_id)
            .where(or_(Article.id.is_(None), User.id.is_(None)))
            .order_by(Comment.id)
        )
        orphans = (await self.db.execute(stmt)).all()
        if not orphans:
            return

        for comment_id, article_id, user_id, found_article, found_user in orphans:
            errors: list[tuple[str, str]] = []
            if found_article is None:
                errors.append(
                    ("article_id", f"Article ID '{article_id}' does not exist in articles table")
                )
            if found_user is None:
                errors.append(
                    ("user_id", f"User ID '{user_id}' does not exist in users table")
                )

            report.add(written_rows.get(comment_id, []), errors, comment_id)

        ids = [row[0] for row in orphans]
        for chunk in _chunks(ids):
            await self.db.execute(delete(Comment).where(Comment.id.in_(chunk)))

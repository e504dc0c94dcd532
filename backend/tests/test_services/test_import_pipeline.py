"""
Tests for the import pipeline.

Uses a batch size of 2 so multi-row files cross batch boundaries.
"""

import asyncio
import json
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from bulkio.core.config import ImportSettings
from bulkio.models.article import Article, ArticleTag
from bulkio.models.comment import Comment
from bulkio.models.job import ImportJob
from bulkio.models.user import User
from bulkio.schemas.enums import JobStatus
from bulkio.services.exceptions import BatchWriteError, SourceUnreadableError
from bulkio.services.import_service import ImportPipeline
from bulkio.services.job_service import ImportJobService
from bulkio.services.source_service import SourceService

USERS_CSV = (
    "id,email,name,role,active,created_at,updated_at\n"
    "u1,alice@example.com,Alice,admin,true,2024-01-01T00:00:00Z,2024-01-01T00:00:00Z\n"
    "u2,,Bob,reader,true,,\n"
    "u3,carol@example.com,Carol,reader,false,,\n"
)


async def create_job(db: AsyncSession, source, resource_type: str, file_format: str) -> ImportJob:
    job, _ = await ImportJobService(db).create_job(
        ImportJob(
            idempotency_key=f"{resource_type}-{source}",
            resource_type=resource_type,
            format=file_format,
            source_location=str(source),
        )
    )
    return job


async def seed_users(db: AsyncSession, *ids: str) -> None:
    db.add_all(
        [User(id=i, email=f"{i}@example.com", role="author", active=True) for i in ids]
    )
    await db.commit()


class TestImportUsers:
    """Test user imports end to end."""

    @pytest.mark.asyncio
    async def test_blank_email_row_is_reported(
        self, db_session: AsyncSession, write_source, import_settings: ImportSettings
    ):
        """Test 3 rows with one blank email give total 3, succeeded 2, failed 1."""
        source = write_source("users.csv", USERS_CSV)
        job = await create_job(db_session, source, "users", "csv")

        job = await ImportPipeline(db_session, import_settings).run(job.id)

        assert job.status == JobStatus.COMPLETED
        assert job.total_records == 3
        assert job.success_count == 2
        assert job.fail_count == 1
        assert job.processed_count == 3
        assert len(job.errors) == 1
        assert job.errors[0]["row_number"] == 3
        assert job.errors[0]["record_id"] == "u2"
        assert job.errors[0]["errors"] == [{"field": "email", "message": "Email is required"}]

        emails = (await db_session.execute(select(User.email).order_by(User.email))).scalars().all()
        assert emails == ["alice@example.com", "carol@example.com"]

    @pytest.mark.asyncio
    async def test_reimport_is_idempotent(
        self, db_session: AsyncSession, write_source, import_settings: ImportSettings
    ):
        """Test importing the same file twice leaves the same rows."""
        source = write_source("users.csv", USERS_CSV)
        first = await create_job(db_session, source, "users", "csv")
        await ImportPipeline(db_session, import_settings).run(first.id)

        second, _ = await ImportJobService(db_session).create_job(
            ImportJob(
                idempotency_key="second-run",
                resource_type="users",
                format="csv",
                source_location=str(source),
            )
        )
        second = await ImportPipeline(db_session, import_settings).run(second.id)

        assert second.success_count == 2
        users = (await db_session.execute(select(User).order_by(User.email))).scalars().all()
        assert [u.id for u in users] == ["u1", "u3"]

    @pytest.mark.asyncio
    async def test_parse_errors_are_not_counted(
        self, db_session: AsyncSession, write_source, import_settings: ImportSettings
    ):
        """Test malformed lines are skipped without affecting the counters."""
        source = write_source(
            "users.ndjson",
            '{"email": "a@example.com", "role": "r", "active": true}\n'
            "not json\n"
            '{"email": "b@example.com", "role": "r", "active": "false"}\n',
        )
        job = await create_job(db_session, source, "users", "ndjson")

        job = await ImportPipeline(db_session, import_settings).run(job.id)

        assert job.status == JobStatus.COMPLETED
        assert job.total_records == 2
        assert job.success_count == 2
        assert job.fail_count == 0

    @pytest.mark.asyncio
    async def test_empty_file_completes(
        self, db_session: AsyncSession, write_source, import_settings: ImportSettings
    ):
        """Test an empty file completes with zero counters."""
        source = write_source("empty.csv", "")
        job = await create_job(db_session, source, "users", "csv")

        job = await ImportPipeline(db_session, import_settings).run(job.id)

        assert job.status == JobStatus.COMPLETED
        assert job.total_records == 0
        assert job.errors == []


class TestImportArticlesAndComments:
    """Test content imports and reconciliation."""

    @pytest.mark.asyncio
    async def test_orphan_articles_are_reclassified(
        self, db_session: AsyncSession, write_source, import_settings: ImportSettings
    ):
        """Test an article whose author does not exist ends up failed and deleted."""
        await seed_users(db_session, "u1")
        source = write_source(
            "articles.ndjson",
            '{"id": "a1", "slug": "good-post", "author_id": "u1", "status": "published",'
            ' "published_at": "2024-02-03T04:05:06Z", "tags": ["x", "y"]}\n'
            '{"id": "a2", "slug": "orphan-post", "author_id": "ghost"}\n'
            '{"id": "a3", "slug": "Bad Slug", "author_id": "u1"}\n',
        )
        job = await create_job(db_session, source, "articles", "ndjson")

        job = await ImportPipeline(db_session, import_settings).run(job.id)

        assert job.status == JobStatus.COMPLETED
        assert job.total_records == 3
        assert job.success_count == 1
        assert job.fail_count == 2
        assert job.success_count + job.fail_count == job.total_records
        rows = {e["row_number"]: e for e in job.errors}
        assert rows[2]["errors"][0]["field"] == "author_id"
        assert rows[3]["errors"][0]["field"] == "slug"

        slugs = (await db_session.execute(select(Article.slug))).scalars().all()
        assert slugs == ["good-post"]

    @pytest.mark.asyncio
    async def test_comments_require_id_and_valid_references(
        self, db_session: AsyncSession, write_source, import_settings: ImportSettings
    ):
        """Test the identifier gate and the comment sweep."""
        await seed_users(db_session, "u1")
        db_session.add(Article(id="a1", slug="post", author_id="u1"))
        await db_session.commit()

        source = write_source(
            "comments.csv",
            "id,article_id,user_id,body\n"
            "c1,a1,u1,First\n"
            ",a1,u1,No id\n"
            "c3,missing,u1,Dangling\n",
        )
        job = await create_job(db_session, source, "comments", "csv")

        job = await ImportPipeline(db_session, import_settings).run(job.id)

        assert job.total_records == 3
        assert job.success_count == 1
        assert job.fail_count == 2
        by_row = {e["row_number"]: e["errors"] for e in job.errors}
        assert by_row[3] == [{"field": "id", "message": "id is required for comments"}]
        assert by_row[4][0]["field"] == "article_id"

        ids = (await db_session.execute(select(Comment.id))).scalars().all()
        assert ids == ["c1"]

    @pytest.mark.asyncio
    async def test_repeated_orphan_slug_fails_every_row(
        self, db_session: AsyncSession, write_source, import_settings: ImportSettings
    ):
        """Test each source row of a repeated orphan slug is counted as failed."""
        await seed_users(db_session, "u1")
        source = write_source(
            "articles.ndjson",
            '{"slug": "orphan-post", "author_id": "ghost"}\n'
            '{"slug": "good-post", "author_id": "u1"}\n'
            '{"slug": "orphan-post", "author_id": "ghost"}\n',
        )
        job = await create_job(db_session, source, "articles", "ndjson")

        job = await ImportPipeline(db_session, import_settings).run(job.id)

        assert job.status == JobStatus.COMPLETED
        assert job.total_records == 3
        assert job.success_count == 1
        assert job.fail_count == 2
        assert sorted(e["row_number"] for e in job.errors) == [1, 3]

    @pytest.mark.asyncio
    async def test_full_batch_of_heavily_tagged_articles(
        self, db_session: AsyncSession, write_source, tmp_path
    ):
        """Test a default-size batch with many tags per article is written in full."""
        await seed_users(db_session, "u1")
        tags = [f"tag-{i}" for i in range(45)]
        lines = [
            json.dumps({"slug": f"post-{n}", "author_id": "u1", "tags": tags})
            for n in range(2000)
        ]
        source = write_source("articles.ndjson", "\n".join(lines) + "\n")
        job = await create_job(db_session, source, "articles", "ndjson")

        settings = ImportSettings(upload_dir=str(tmp_path / "uploads"))
        job = await ImportPipeline(db_session, settings).run(job.id)

        assert job.status == JobStatus.COMPLETED
        assert job.success_count == 2000
        assert job.fail_count == 0
        links = (await db_session.execute(select(func.count()).select_from(ArticleTag))).scalar_one()
        assert links == 2000 * 45

    @pytest.mark.asyncio
    async def test_parsing_runs_in_worker_thread(
        self, db_session: AsyncSession, write_source, import_settings: ImportSettings
    ):
        """Test the source is parsed off the event loop."""
        source = write_source("users.csv", USERS_CSV)
        job = await create_job(db_session, source, "users", "csv")

        with patch("asyncio.to_thread", wraps=asyncio.to_thread) as to_thread:
            job = await ImportPipeline(db_session, import_settings).run(job.id)

        assert job.success_count == 2
        assert to_thread.await_count >= 1


class TestImportFailures:
    """Test fatal job errors."""

    @pytest.mark.asyncio
    async def test_missing_source_fails_job(
        self, db_session: AsyncSession, tmp_path, import_settings: ImportSettings
    ):
        """Test an unreadable source marks the job failed with a synthetic error."""
        job = await create_job(db_session, tmp_path / "nope.csv", "users", "csv")

        job = await ImportPipeline(db_session, import_settings).run(job.id)

        assert job.status == JobStatus.FAILED
        assert job.errors[-1]["row_number"] == 0
        assert job.errors[-1]["errors"][0]["field"] == "job"
        assert job.errors[-1]["errors"][0]["message"].startswith("source unreadable")

    @pytest.mark.asyncio
    async def test_unknown_resource_fails_job(
        self, db_session: AsyncSession, write_source, import_settings: ImportSettings
    ):
        """Test an unregistered kind fails the job."""
        source = write_source("x.csv", "a\n1\n")
        job = await create_job(db_session, source, "widgets", "csv")

        job = await ImportPipeline(db_session, import_settings).run(job.id)

        assert job.status == JobStatus.FAILED
        assert "unknown resource type" in job.errors[-1]["errors"][0]["message"]

    @pytest.mark.asyncio
    async def test_batch_failure_keeps_earlier_batches(
        self, db_session: AsyncSession, write_source, import_settings: ImportSettings
    ):
        """Test a failed batch stops the job but earlier commits remain."""
        source = write_source("users.csv", USERS_CSV + "u4,dave@example.com,Dave,reader,true,,\n")
        job = await create_job(db_session, source, "users", "csv")
        pipeline = ImportPipeline(db_session, import_settings)

        real_upsert = pipeline.upserts.upsert_batch
        calls = []

        async def fail_second(resource, rows, first_row=0, last_row=0):
            calls.append(first_row)
            if len(calls) == 2:
                raise BatchWriteError(first_row, last_row)
            return await real_upsert(resource, rows, first_row, last_row)

        with patch.object(pipeline.upserts, "upsert_batch", side_effect=fail_second):
            job = await pipeline.run(job.id)

        assert job.status == JobStatus.FAILED
        assert job.success_count == 2
        assert job.errors[-1]["errors"][0]["message"] == "batch write failed for rows 5-5"
        # The blank-email row is still reported
        assert job.errors[0]["row_number"] == 3
        emails = (await db_session.execute(select(User.email))).scalars().all()
        assert sorted(emails) == ["alice@example.com", "carol@example.com"]

    @pytest.mark.asyncio
    async def test_job_is_not_run_twice(
        self, db_session: AsyncSession, write_source, import_settings: ImportSettings
    ):
        """Test running a finished job returns it unchanged."""
        source = write_source("users.csv", USERS_CSV)
        job = await create_job(db_session, source, "users", "csv")
        pipeline = ImportPipeline(db_session, import_settings)
        await pipeline.run(job.id)

        again = await pipeline.run(job.id)

        assert again.status == JobStatus.COMPLETED
        assert again.success_count == 2


class TestRemoteSource:
    """Test file_url imports with a mocked download."""

    @pytest.mark.asyncio
    async def test_downloads_then_imports(
        self, db_session: AsyncSession, write_source, import_settings: ImportSettings
    ):
        """Test a remote source is downloaded, imported and the copy removed."""
        local = write_source("remote.csv", USERS_CSV)
        job = await create_job(db_session, "https://example.com/users.csv", "users", "csv")
        sources = SourceService(import_settings)

        with patch.object(sources, "download", AsyncMock(return_value=local)) as download:
            job = await ImportPipeline(db_session, import_settings, sources).run(job.id)

        download.assert_awaited_once_with("https://example.com/users.csv", job.id)
        assert job.status == JobStatus.COMPLETED
        assert job.success_count == 2
        assert not local.exists()

    @pytest.mark.asyncio
    async def test_download_failure_fails_job(
        self, db_session: AsyncSession, import_settings: ImportSettings
    ):
        """Test a failed download is a fatal source error."""
        job = await create_job(db_session, "https://example.com/gone.csv", "users", "csv")
        sources = SourceService(import_settings)
        error = SourceUnreadableError("https://example.com/gone.csv", "download failed: 404")

        with patch.object(sources, "download", AsyncMock(side_effect=error)):
            job = await ImportPipeline(db_session, import_settings, sources).run(job.id)

        assert job.status == JobStatus.FAILED
        assert job.errors == [
            {
                "row_number": 0,
                "valid": False,
                "errors": [{"field": "job", "message": "source unreadable: download failed: 404"}],
            }
        ]

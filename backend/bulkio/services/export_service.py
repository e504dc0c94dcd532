"""
Export engine: streaming exports and filtered export jobs.

Both paths read the table in keyset-paginated pages (`WHERE id > :last
ORDER BY id LIMIT :page_size`) and serialize each page as soon as it is
fetched, stopping on a short page. Keyset pagination keeps pages disjoint
even while imports write concurrently.

Serialization:
- CSV: header row of column names; booleans true/false; timestamps as
  RFC 3339 UTC seconds; null as an empty cell; tags joined with ","
- NDJSON: one compact object per line; tags as an array; booleans as JSON
  booleans; null values omitted
"""

from __future__ import annotations

import asyncio
import csv
import io
import json
import logging
from collections.abc import AsyncIterator, Sequence
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, TextIO

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from bulkio.core.config import ExportSettings, get_settings
from bulkio.models.article import ArticleTag, Tag
from bulkio.models.base import utc_now
from bulkio.models.job import ExportJob
from bulkio.resources import ResourceSpec, get_resource
from bulkio.schemas.enums import FileFormat, JobStatus, ResourceType
from bulkio.services.exceptions import FatalJobError, ValidationError
from bulkio.services.job_service import ExportJobService

logger = logging.getLogger(__name__)

__all__ = [
    "ExportPipeline",
    "RecordSerializer",
    "export_filename",
    "format_timestamp",
    "iter_pages",
    "resolve_fields",
    "resolve_filters",
    "run_export",
    "stream_export",
]

TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%SZ"

Row = dict[str, Any]


def format_timestamp(value: datetime) -> str:
    """Render a timestamp in UTC; naive values are taken to be UTC already."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).strftime(TIMESTAMP_FORMAT)


def resolve_filters(resource: ResourceSpec, filters: dict[str, Any] | None) -> dict[str, Any]:
    """
    Check export filters against the kind's allowed set and coerce values.

    Raises:
        ValidationError: On unknown keys or values of the wrong type
    """
    resolved: dict[str, Any] = {}
    for name, value in (filters or {}).items():
        expected = resource.filters.get(name)
        if expected is None:
            allowed = ", ".join(resource.filters)
            raise ValidationError(
                f"Unknown filter '{name}' for {resource.resource_type}; allowed: {allowed}",
                field="filters",
            )
        if expected is bool:
            if isinstance(value, str) and value.strip().lower() in ("true", "false"):
                value = value.strip().lower() == "true"
            if not isinstance(value, bool):
                raise ValidationError(f"Filter '{name}' must be true or false", field="filters")
        elif not isinstance(value, str):
            raise ValidationError(f"Filter '{name}' must be a string", field="filters")
        resolved[name] = value
    return resolved


def resolve_fields(resource: ResourceSpec, fields: Sequence[str] | None) -> tuple[str, ...]:
    """
    Pick the output columns; None or empty selects all in canonical order.

    Raises:
        ValidationError: On unknown field names
    """
    if not fields:
        return resource.columns
    unknown = [name for name in fields if name not in resource.columns]
    if unknown:
        raise ValidationError(
            f"Unknown fields for {resource.resource_type}: {', '.join(unknown)}",
            field="fields",
        )
    return tuple(dict.fromkeys(fields))


def export_filename(resource_type: str, job_id: str, file_format: str) -> str:
    return f"{resource_type}_{job_id[:8]}_{utc_now().strftime('%Y%m%dT%H%M%SZ')}.{file_format}"


class RecordSerializer:
    """Turns pages of row dicts into CSV or NDJSON text."""

    def __init__(self, file_format: FileFormat, columns: Sequence[str]):
        self.format = FileFormat(file_format)
        self.columns = tuple(columns)

    def header(self) -> str:
        if self.format is FileFormat.CSV:
            return self._csv_lines([list(self.columns)])
        return ""

    def serialize_page(self, rows: Sequence[Row]) -> str:
        if self.format is FileFormat.CSV:
            return self._csv_lines(
                [[self._csv_cell(row.get(col)) for col in self.columns] for row in rows]
            )
        return "".join(self._ndjson_line(row) for row in rows)

    @staticmethod
    def _csv_lines(rows: list[list[str]]) -> str:
        buffer = io.StringIO()
        csv.writer(buffer, lineterminator="\n").writerows(rows)
        return buffer.getvalue()

    @staticmethod
    def _csv_cell(value: Any) -> str:
        if value is None:
            return ""
        if isinstance(value, bool):
            return "true" if value else "false"
        if isinstance(value, datetime):
            return format_timestamp(value)
        if isinstance(value, list):
            return ",".join(value)
        return str(value)

    def _ndjson_line(self, row: Row) -> str:
        obj: dict[str, Any] = {}
        for col in self.columns:
            value = row.get(col)
            if value is None:
                continue
            if isinstance(value, datetime):
                value = format_timestamp(value)
            obj[col] = value
        return json.dumps(obj, separators=(",", ":"), ensure_ascii=False) + "\n"


def _write_page(out: TextIO, serializer: RecordSerializer, rows: Sequence[Row]) -> None:
    out.write(serializer.serialize_page(rows))


async def _attach_tags(db: AsyncSession, rows: list[Row]) -> None:
    """Add each article's ordered tag list under the "tags" key."""
    ids = [row["id"] for row in rows]
    stmt = (
        select(ArticleTag.article_id, Tag.name)
        .join(Tag, Tag.id == ArticleTag.tag_id)
        .where(ArticleTag.article_id.in_(ids))
        .order_by(ArticleTag.article_id, ArticleTag.position)
    )
    tags: dict[str, list[str]] = {article_id: [] for article_id in ids}
    for article_id, name in (await db.execute(stmt)).all():
        tags[article_id].append(name)
    for row in rows:
        row["tags"] = tags[row["id"]]


async def iter_pages(
    db: AsyncSession,
    resource: ResourceSpec,
    filters: dict[str, Any] | None = None,
    page_size: int = 1000,
) -> AsyncIterator[list[Row]]:
    """Yield keyset-paginated pages of rows as dicts, in id order."""
    table = resource.table
    last_id: str | None = None

    while True:
        stmt = select(table)
        for name, value in (filters or {}).items():
            stmt = stmt.where(table.c[name] == value)
        if last_id is not None:
            stmt = stmt.where(table.c.id > last_id)
        stmt = stmt.order_by(table.c.id).limit(page_size)

        rows = [dict(row) for row in (await db.execute(stmt)).mappings().all()]
        if not rows:
            return
        if resource.has_tags:
            await _attach_tags(db, rows)

        yield rows

        if len(rows) < page_size:
            return
        last_id = rows[-1]["id"]


async def stream_export(
    session_factory: async_sessionmaker[AsyncSession],
    resource_type: ResourceType,
    file_format: FileFormat,
    page_size: int | None = None,
) -> AsyncIterator[str]:
    """
    Serialize a whole table page by page for a streaming response.

    Opens its own session: the generator outlives the request handler.
    """
    resource = get_resource(resource_type)
    serializer = RecordSerializer(file_format, resource.columns)
    page_size = page_size or get_settings().exports.page_size
    count = 0

    async with session_factory() as db:
        yield serializer.header()
        async for page in iter_pages(db, resource, page_size=page_size):
            count += len(page)
            yield serializer.serialize_page(page)

    logger.info(f"Streamed {count} {resource_type} records as {file_format}")


class ExportPipeline:
    """Executes filtered export jobs against one database session."""

    def __init__(self, db: AsyncSession, settings: ExportSettings | None = None):
        self.db = db
        self.settings = settings or get_settings().exports
        self.jobs = ExportJobService(db)

    async def run(self, job_id: str) -> ExportJob:
        """Run a pending export job to a terminal state."""
        job = await self.jobs.get_or_raise(job_id)
        if JobStatus(job.status) is not JobStatus.PENDING:
            logger.warning(f"Export job {job_id} is {job.status}, not running it again")
            return job

        job = await self.jobs.start(job)
        path: Path | None = None
        total = 0

        try:
            resource = get_resource(job.resource_type)
            filters = resolve_filters(resource, job.filters)
            columns = resolve_fields(resource, job.fields)
            try:
                file_format = FileFormat(job.format)
            except ValueError:
                raise FatalJobError(f"unsupported format '{job.format}'") from None

            output_dir = Path(self.settings.output_dir)
            output_dir.mkdir(parents=True, exist_ok=True)
            path = output_dir / export_filename(resource.resource_type, job.id, file_format)
            serializer = RecordSerializer(file_format, columns)

            with path.open("w", encoding="utf-8", newline="") as out:
                await asyncio.to_thread(out.write, serializer.header())
                async for page in iter_pages(self.db, resource, filters, self.settings.page_size):
                    # Page writes run off the event loop
                    await asyncio.to_thread(_write_page, out, serializer, page)
                    total += len(page)
                    job = await self.jobs.update_progress(job, total_records=total)

        except (FatalJobError, ValidationError) as e:
            if path is not None:
                path.unlink(missing_ok=True)
            return await self.jobs.fail(job, e.message, total_records=total)

        except OSError as e:
            logger.error(f"Export job {job.id} could not write {path}: {e}")
            if path is not None:
                path.unlink(missing_ok=True)
            return await self.jobs.fail(job, "export file could not be written", total_records=total)

        return await self.jobs.complete(job, total_records=total, file_path=str(path))


async def run_export(db: AsyncSession, job_id: str) -> None:
    """Job runner entry point for filtered exports."""
    await ExportPipeline(db).run(job_id)

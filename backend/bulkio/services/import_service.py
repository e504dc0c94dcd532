"""
Import pipeline - runs one import job end to end.

Flow per job:
    pending -> processing
    parse -> validate -> identifier gate -> normalize -> upsert (per batch)
    reconcile orphans
    processing -> completed | failed

Design notes:
- parse errors are logged and skipped; they are not records and are not
  counted in total_records
- every parsed record ends up either succeeded or failed, so
  success_count + fail_count == total_records holds for completed jobs
- a fatal error stops the job; batches committed before it stay committed
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterator
from dataclasses import dataclass, field
from itertools import islice
from pathlib import Path

from sqlalchemy.ext.asyncio import AsyncSession

from bulkio.core.config import ImportSettings, get_settings
from bulkio.models.job import ImportJob
from bulkio.normalization import CanonicalRecord, check_identifier
from bulkio.parsers import ParsedItem, ParseError, parse_stream
from bulkio.resources import ResourceSpec, get_resource
from bulkio.schemas.enums import FileFormat, JobStatus
from bulkio.schemas.validation import ValidationOutcome
from bulkio.services.exceptions import FatalJobError, SourceUnreadableError
from bulkio.services.job_service import ImportJobService
from bulkio.services.reconcile_service import ReconcileService
from bulkio.services.source_service import SourceService, is_remote
from bulkio.services.upsert_service import UpsertService

logger = logging.getLogger(__name__)

__all__ = ["ImportPipeline", "run_import"]

# Parsed items pulled per worker-thread hop
PARSE_CHUNK_SIZE = 500


def _take(items: Iterator[ParsedItem], count: int) -> list[ParsedItem]:
    return list(islice(items, count))


@dataclass
class ImportProgress:
    """Running counters and collected outcomes of one import."""

    total: int = 0
    succeeded: int = 0
    failed: int = 0
    errors: list[ValidationOutcome] = field(default_factory=list)
    # Conflict key -> every source row written under it
    written: dict[str, list[int]] = field(default_factory=dict)

    def counters(self) -> dict[str, int]:
        return {
            "total_records": self.total,
            "processed_count": self.succeeded + self.failed,
            "success_count": self.succeeded,
            "fail_count": self.failed,
        }


class ImportPipeline:
    """Executes import jobs against one database session."""

    def __init__(
        self,
        db: AsyncSession,
        settings: ImportSettings | None = None,
        source_service: SourceService | None = None,
    ):
        self.db = db
        self.settings = settings or get_settings().imports
        self.jobs = ImportJobService(db)
        self.upserts = UpsertService(db)
        self.reconciler = ReconcileService(db)
        self.sources = source_service or SourceService(self.settings)

    async def run(self, job_id: str) -> ImportJob:
        """Run a pending import job to a terminal state."""
        job = await self.jobs.get_or_raise(job_id)
        if JobStatus(job.status) is not JobStatus.PENDING:
            logger.warning(f"Import job {job_id} is {job.status}, not running it again")
            return job

        job = await self.jobs.start(job)
        progress = ImportProgress()
        downloaded: Path | None = None

        try:
            resource = get_resource(job.resource_type)
            if is_remote(job.source_location):
                async with self.sources:
                    downloaded = await self.sources.download(job.source_location, job.id)
                path = downloaded
            else:
                path = Path(job.source_location)

            await self._process(job, resource, path, progress)

            report = await self.reconciler.reconcile(resource.resource_type, progress.written)
            progress.succeeded -= report.reclassified
            progress.failed += report.reclassified
            progress.errors.extend(report.outcomes)

        except FatalJobError as e:
            await self.db.refresh(job)
            return await self.jobs.fail(job, e.message, progress.errors, **progress.counters())

        finally:
            if downloaded is not None:
                self.sources.discard(downloaded)

        return await self.jobs.complete(job, progress.errors, **progress.counters())

    async def _process(
        self,
        job: ImportJob,
        resource: ResourceSpec,
        path: Path,
        progress: ImportProgress,
    ) -> None:
        try:
            file_format = FileFormat(job.format)
        except ValueError:
            raise FatalJobError(f"unsupported format '{job.format}'") from None

        try:
            stream = path.open("rb")
        except OSError as e:
            raise SourceUnreadableError(str(path), e.strerror or str(e)) from e

        batch: list[tuple[int, CanonicalRecord]] = []
        with stream:
            items = parse_stream(stream, file_format, self.settings.max_line_bytes)
            # Parsing reads the file, so it runs off the event loop
            while chunk := await asyncio.to_thread(_take, items, PARSE_CHUNK_SIZE):
                for item in chunk:
                    if isinstance(item, ParseError):
                        if item.record_skipped:
                            logger.warning(f"Import job {job.id} row {item.row_number}: {item.message}")
                        else:
                            logger.debug(f"Import job {job.id} row {item.row_number}: {item.message}")
                        continue

                    progress.total += 1
                    outcome = resource.validate(item.data, item.row_number)
                    if outcome.valid:
                        outcome = check_identifier(
                            resource.resource_type, item.data, item.row_number
                        ) or outcome
                    if not outcome.valid:
                        progress.failed += 1
                        progress.errors.append(outcome)
                        continue

                    batch.append((item.row_number, resource.normalize(item.data)))
                    if len(batch) >= self.settings.batch_size:
                        await self._flush(job, resource, batch, progress)
                        batch = []

        await self._flush(job, resource, batch, progress)

    async def _flush(
        self,
        job: ImportJob,
        resource: ResourceSpec,
        batch: list[tuple[int, CanonicalRecord]],
        progress: ImportProgress,
    ) -> None:
        """Write one batch and persist the counters."""
        if batch:
            rows = [row for _, row in batch]
            await self.upserts.upsert_batch(resource, rows, batch[0][0], batch[-1][0])
            progress.succeeded += len(batch)
            for row_number, row in batch:
                key = str(row[resource.conflict_key])
                progress.written.setdefault(key, []).append(row_number)

        await self.jobs.update_progress(job, **progress.counters())


async def run_import(db: AsyncSession, job_id: str) -> None:
    """Job runner entry point for imports."""
    await ImportPipeline(db).run(job_id)

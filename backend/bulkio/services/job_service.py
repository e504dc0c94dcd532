"""
Job tracker for import and export jobs.

State machine:
    pending -> processing -> completed
    pending -> failed
    processing -> failed
completed and failed are terminal; any other move raises
InvalidStateTransitionError.

Design notes:
- creation is idempotent on idempotency_key; callers look the key up before
  doing any work, and a concurrent duplicate insert is resolved through the
  unique constraint by returning the row that won
- counters are persisted at batch boundaries, errors at finalization
- a job-fatal problem is stored as a single synthetic outcome with
  row_number 0 and field "job"
"""

from __future__ import annotations

import logging
from typing import Any, TypeVar

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from bulkio.models.base import utc_now
from bulkio.models.job import ExportJob, ImportJob
from bulkio.schemas.enums import JobStatus
from bulkio.schemas.validation import ValidationOutcome
from bulkio.services.base import BaseService
from bulkio.services.exceptions import InvalidStateTransitionError, NotFoundError

logger = logging.getLogger(__name__)

__all__ = [
    "ExportJobService",
    "ImportJobService",
    "JobService",
    "fatal_outcome",
    "recover_interrupted_jobs",
]

JobType = TypeVar("JobType", ImportJob, ExportJob)

ALLOWED_TRANSITIONS: dict[JobStatus, frozenset[JobStatus]] = {
    JobStatus.PENDING: frozenset({JobStatus.PROCESSING, JobStatus.FAILED}),
    JobStatus.PROCESSING: frozenset({JobStatus.COMPLETED, JobStatus.FAILED}),
    JobStatus.COMPLETED: frozenset(),
    JobStatus.FAILED: frozenset(),
}

INTERRUPTED_MESSAGE = "interrupted by restart"


def fatal_outcome(message: str) -> ValidationOutcome:
    """The synthetic error recorded when a job fails as a whole."""
    return ValidationOutcome.from_errors(0, [("job", message)])


class JobService(BaseService[JobType]):
    """Lifecycle operations shared by import and export jobs."""

    entity_name = "Job"

    async def get_or_raise(self, job_id: str) -> JobType:
        """Get a job by id or raise NotFoundError."""
        job = await self.get_by_id(job_id)
        if job is None:
            raise NotFoundError(self.entity_name, job_id)
        return job

    async def get_by_idempotency_key(self, key: str) -> JobType | None:
        return await self.get_by_field("idempotency_key", key)

    async def create_job(self, job: JobType) -> tuple[JobType, bool]:
        """
        Insert a new job unless its idempotency key is already taken.

        Returns:
            Tuple of (job, created); created is False when an existing job
            with the same key was returned instead
        """
        key = job.idempotency_key
        existing = await self.get_by_idempotency_key(key)
        if existing is not None:
            return existing, False

        self.db.add(job)
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            existing = await self.get_by_idempotency_key(key)
            if existing is None:
                raise
            logger.info(
                f"Concurrent {self.entity_name} creation for key "
                f"'{key}' resolved to {existing.id}"
            )
            return existing, False

        await self.db.refresh(job)
        logger.info(f"Created {self.entity_name} {job.id} ({job.resource_type}/{job.format})")
        return job, True

    def _transition(self, job: JobType, target: JobStatus) -> None:
        current = JobStatus(job.status)
        if target not in ALLOWED_TRANSITIONS[current]:
            raise InvalidStateTransitionError(self.entity_name, current, target)
        now = utc_now()
        job.status = target
        job.updated_at = now
        if target.is_terminal:
            job.completed_at = now

    async def start(self, job: JobType) -> JobType:
        """Move a pending job to processing."""
        self._transition(job, JobStatus.PROCESSING)
        job = await self.add(job)
        logger.info(f"{self.entity_name} {job.id} started")
        return job

    async def update_progress(self, job: JobType, **counters: int) -> JobType:
        """Persist counter values at a batch or page boundary."""
        for name, value in counters.items():
            setattr(job, name, value)
        job.updated_at = utc_now()
        return await self.add(job)

    async def complete(
        self,
        job: JobType,
        errors: list[ValidationOutcome] | None = None,
        **fields: Any,
    ) -> JobType:
        """Finish a processing job successfully, storing its error list."""
        self._transition(job, JobStatus.COMPLETED)
        for name, value in fields.items():
            setattr(job, name, value)
        job.errors = [outcome.to_record() for outcome in errors or []]
        job = await self.add(job)
        logger.info(f"{self.entity_name} {job.id} completed with {len(job.errors)} errors")
        return job

    async def fail(
        self,
        job: JobType,
        message: str,
        errors: list[ValidationOutcome] | None = None,
        **fields: Any,
    ) -> JobType:
        """Fail a job, appending the synthetic job-level error to `errors`."""
        self._transition(job, JobStatus.FAILED)
        for name, value in fields.items():
            setattr(job, name, value)
        outcomes = [*(errors or []), fatal_outcome(message)]
        job.errors = [outcome.to_record() for outcome in outcomes]
        job = await self.add(job)
        logger.error(f"{self.entity_name} {job.id} failed: {message}")
        return job

    async def fail_by_id(self, job_id: str, message: str) -> JobType | None:
        """
        Fail a job from outside its pipeline, keeping stored errors.

        Terminal jobs are left untouched.
        """
        job = await self.get_by_id(job_id)
        if job is None or JobStatus(job.status).is_terminal:
            return job
        existing = [ValidationOutcome.model_validate(e) for e in job.errors or []]
        return await self.fail(job, message, existing)

    async def list_unfinished(self) -> list[JobType]:
        stmt = select(self.model).where(
            self.model.status.in_([JobStatus.PENDING, JobStatus.PROCESSING])
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())


class ImportJobService(JobService[ImportJob]):
    """Service for import jobs."""

    entity_name = "Import job"

    def __init__(self, db: AsyncSession):
        super().__init__(db, ImportJob)


class ExportJobService(JobService[ExportJob]):
    """Service for export jobs."""

    entity_name = "Export job"

    def __init__(self, db: AsyncSession):
        super().__init__(db, ExportJob)


async def recover_interrupted_jobs(db: AsyncSession) -> int:
    """
    Fail every job a previous process left pending or processing.

    Returns:
        Number of jobs marked failed
    """
    recovered = 0
    for service in (ImportJobService(db), ExportJobService(db)):
        for job in await service.list_unfinished():
            await service.fail(job, INTERRUPTED_MESSAGE)
            recovered += 1
    if recovered:
        logger.warning(f"Marked {recovered} interrupted jobs as failed")
    return recovered

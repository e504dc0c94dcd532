"""
In-process background job runner.

Each accepted import or filtered export runs as one asyncio task. The
runner keeps a strong reference to every running task and guarantees that
a job never stays pending/processing because of an unexpected exception:
the catch-all marks it failed with a generic message and logs the
traceback.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from functools import lru_cache

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from bulkio.database import async_session_factory
from bulkio.services.job_service import JobService

logger = logging.getLogger(__name__)

__all__ = ["JobRunner", "get_job_runner"]

INTERNAL_ERROR_MESSAGE = "internal error"

# Receives a session owned by the task and the job id
JobCallable = Callable[[AsyncSession, str], Awaitable[None]]
# Builds the service used to fail the job after an unexpected exception
ServiceFactory = Callable[[AsyncSession], JobService]


class JobRunner:
    """Runs job pipelines as tasks, each with its own database session."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory
        self._tasks: set[asyncio.Task] = set()

    @property
    def active_count(self) -> int:
        return len(self._tasks)

    def submit(
        self,
        job_id: str,
        run: JobCallable,
        service_factory: ServiceFactory,
    ) -> asyncio.Task:
        """Schedule `run` for a job and return its task."""
        task = asyncio.create_task(
            self._execute(job_id, run, service_factory),
            name=f"job-{job_id}",
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        logger.debug(f"Submitted job {job_id} ({len(self._tasks)} active)")
        return task

    async def _execute(
        self,
        job_id: str,
        run: JobCallable,
        service_factory: ServiceFactory,
    ) -> None:
        try:
            async with self.session_factory() as session:
                await run(session, job_id)
        except Exception:
            logger.exception(f"Job {job_id} crashed")
            await self._fail(job_id, service_factory)

    async def _fail(self, job_id: str, service_factory: ServiceFactory) -> None:
        try:
            async with self.session_factory() as session:
                await service_factory(session).fail_by_id(job_id, INTERNAL_ERROR_MESSAGE)
        except Exception:
            logger.exception(f"Could not mark job {job_id} as failed")

    async def drain(self) -> None:
        """Wait until every submitted task has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)


@lru_cache
def get_job_runner() -> JobRunner:
    """Get the process-wide job runner."""
    return JobRunner(async_session_factory)

"""
API dependencies for FastAPI route handlers.

Provides:
- Database session dependency
- Session factory dependency for work that outlives the request
- Background job runner dependency
"""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from bulkio.database import get_db, get_session_factory
from bulkio.services.job_runner import JobRunner, get_job_runner

__all__ = [
    "DbSession",
    "JobRunnerDep",
    "SessionFactory",
]


# Type alias for database session dependency
DbSession = Annotated[AsyncSession, Depends(get_db)]

# Streaming responses open their own session from this factory
SessionFactory = Annotated[async_sessionmaker[AsyncSession], Depends(get_session_factory)]

JobRunnerDep = Annotated[JobRunner, Depends(get_job_runner)]

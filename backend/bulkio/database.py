"""Database engine and session configuration."""

from collections.abc import AsyncGenerator
from pathlib import Path

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel

from bulkio.core.config import get_settings

settings = get_settings()


def _ensure_sqlite_dir(database_url: str) -> None:
    """Create the parent directory of a file-backed SQLite database."""
    url = make_url(database_url)
    if url.get_backend_name() == "sqlite" and url.database and url.database != ":memory:":
        Path(url.database).parent.mkdir(parents=True, exist_ok=True)


_ensure_sqlite_dir(settings.database_url)

# Create async engine
engine = create_async_engine(
    settings.database_url,
    echo=settings.debug,
    future=True,
)

# Session factory
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Dependency that provides a database session.

    Note: Services are responsible for committing their transactions.
    This dependency only provides the session and handles cleanup.
    """
    async with async_session_factory() as session:
        yield session


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Dependency for code that must own its session (background jobs, streaming)."""
    return async_session_factory


async def init_db() -> None:
    """Create tables that do not exist yet."""
    # Import all models so they're registered with SQLModel.metadata
    from bulkio.models.article import Article, ArticleTag, Tag  # noqa: F401
    from bulkio.models.comment import Comment  # noqa: F401
    from bulkio.models.job import ExportJob, ImportJob  # noqa: F401
    from bulkio.models.user import User  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

"""Pytest configuration and fixtures."""

from collections.abc import AsyncGenerator
from pathlib import Path

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel

from bulkio.core.config import ImportSettings, Settings, get_settings
from bulkio.database import get_db, get_session_factory
from bulkio.main import app
from bulkio.services.job_runner import JobRunner, get_job_runner


@pytest.fixture(autouse=True)
def test_settings(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Settings:
    """Point upload and export directories at the test's temporary directory."""
    settings = get_settings()
    monkeypatch.setattr(settings.imports, "upload_dir", str(tmp_path / "uploads"))
    monkeypatch.setattr(settings.exports, "output_dir", str(tmp_path / "exports"))
    return settings


@pytest.fixture
def import_settings(tmp_path: Path) -> ImportSettings:
    """Import settings with a small batch size so tests cross batch boundaries."""
    return ImportSettings(batch_size=2, upload_dir=str(tmp_path / "uploads"))


@pytest.fixture
async def test_engine(tmp_path: Path):
    """Create a test database engine backed by a per-test SQLite file."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        echo=False,
        future=True,
    )

    # Import all models explicitly to ensure they're registered with SQLModel.metadata
    from bulkio.models.article import Article, ArticleTag, Tag  # noqa: F401
    from bulkio.models.comment import Comment  # noqa: F401
    from bulkio.models.job import ExportJob, ImportJob  # noqa: F401
    from bulkio.models.user import User  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the test engine."""
    return async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )


@pytest.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Provide a database session for each test."""
    async with session_factory() as session:
        yield session


@pytest.fixture
async def job_runner(session_factory) -> AsyncGenerator[JobRunner, None]:
    """Job runner whose tasks use the test database."""
    runner = JobRunner(session_factory)
    yield runner
    await runner.drain()


@pytest.fixture
async def client(session_factory, job_runner: JobRunner) -> AsyncGenerator[AsyncClient, None]:
    """Provide an async HTTP client for testing."""

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_job_runner] = lambda: job_runner

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    await job_runner.drain()
    app.dependency_overrides.clear()


@pytest.fixture
def write_source(tmp_path: Path):
    """Write a source file under the test directory and return its path."""

    def _write(name: str, content: str | bytes) -> Path:
        path = tmp_path / "sources" / name
        path.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, str):
            content = content.encode("utf-8")
        path.write_bytes(content)
        return path

    return _write

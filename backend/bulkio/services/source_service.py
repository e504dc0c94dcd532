"""
Import source handling.

Inline uploads are streamed to the upload directory before the job row is
created; remote `file_url` sources are downloaded inside the background
task. Uses niquests AsyncSession for HTTP requests.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Any

import niquests
from fastapi import UploadFile

from bulkio.core.config import ImportSettings, get_settings
from bulkio.models.base import new_id
from bulkio.services.exceptions import SourceUnreadableError

logger = logging.getLogger(__name__)

__all__ = ["SourceService", "is_remote"]

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


def is_remote(location: str) -> bool:
    """Whether a job's source_location is a URL rather than a local path."""
    return location.startswith(("http://", "https://"))


class SourceService:
    """
    Persists import sources to local files.

    Can be used as an async context manager to close the HTTP session.
    """

    def __init__(self, settings: ImportSettings | None = None):
        self.settings = settings or get_settings().imports
        self._session: niquests.AsyncSession | None = None

    async def __aenter__(self) -> "SourceService":
        self._session = niquests.AsyncSession()
        return self

    async def __aexit__(self, *args: Any) -> None:
        if self._session:
            await self._session.close()
            self._session = None

    async def _get_session(self) -> niquests.AsyncSession:
        """Get or create the HTTP session."""
        if self._session is None:
            self._session = niquests.AsyncSession()
        return self._session

    def _upload_dir(self) -> Path:
        path = Path(self.settings.upload_dir)
        path.mkdir(parents=True, exist_ok=True)
        return path

    async def save_upload(self, upload: UploadFile) -> Path:
        """Stream an uploaded file to disk without buffering it whole."""
        name = _UNSAFE_CHARS.sub("_", Path(upload.filename or "upload").name)
        target = self._upload_dir() / f"{new_id()}_{name}"
        size = 0
        with target.open("wb") as out:
            while chunk := await upload.read(self.settings.fetch_chunk_size):
                out.write(chunk)
                size += len(chunk)
        logger.info(f"Saved upload '{upload.filename}' ({size} bytes) to {target}")
        return target

    async def download(self, url: str, job_id: str) -> Path:
        """
        Download a remote source into the upload directory.

        Raises:
            SourceUnreadableError: On network errors or error responses
        """
        session = await self._get_session()
        target = self._upload_dir() / f"{job_id}.download"
        size = 0

        try:
            response = await session.get(
                url,
                stream=True,
                timeout=self.settings.fetch_timeout,
            )
            response.raise_for_status()
            with target.open("wb") as out:
                async for chunk in await response.iter_content(self.settings.fetch_chunk_size):
                    out.write(chunk)
                    size += len(chunk)

        except niquests.exceptions.Timeout as e:
            logger.error(f"Timeout fetching {url}: {e}")
            self.discard(target)
            raise SourceUnreadableError(
                url, f"request timed out after {self.settings.fetch_timeout}s"
            ) from e

        except niquests.exceptions.RequestException as e:
            logger.error(f"Error fetching {url}: {e}")
            self.discard(target)
            raise SourceUnreadableError(url, f"download failed: {e}") from e

        logger.info(f"Downloaded {url} ({size} bytes) to {target}")
        return target

    def discard(self, path: str | Path) -> None:
        """Remove a saved source file if it exists."""
        Path(path).unlink(missing_ok=True)

"""
Application configuration using Pydantic Settings.

Supports environment variable overrides for all settings.
"""

from __future__ import annotations

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class ImportSettings(BaseSettings):
    """Bulk import pipeline settings."""

    model_config = SettingsConfigDict(env_prefix="IMPORT_")

    # Rows per upsert transaction; also the progress-update granularity
    batch_size: int = 2000
    # Lines longer than this are reported and skipped
    max_line_bytes: int = 1024 * 1024
    upload_dir: str = "./data/uploads"
    # Remote file_url downloads
    fetch_timeout: float = 30.0
    fetch_chunk_size: int = 64 * 1024


class ExportSettings(BaseSettings):
    """Export engine settings."""

    model_config = SettingsConfigDict(env_prefix="EXPORT_")

    page_size: int = 1000
    output_dir: str = "./data/exports"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database - single-writer SQLite by default, PostgreSQL via asyncpg also supported
    database_url: str = "sqlite+aiosqlite:///./data/bulkio.db"

    # Application
    app_name: str = "Bulk Import/Export"
    app_version: str = "0.1.0"
    debug: bool = False
    log_level: str = "INFO"
    api_v1_prefix: str = "/api/v1"

    # CORS - comma-separated list of allowed origins
    allowed_origins: list[str] = ["*"]

    # Nested settings for the transfer engine
    imports: ImportSettings = ImportSettings()
    exports: ExportSettings = ExportSettings()


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()

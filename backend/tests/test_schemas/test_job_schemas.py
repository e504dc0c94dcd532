"""Tests for job request/response schemas and validation outcomes."""

from datetime import UTC, datetime

import pytest
from pydantic import ValidationError

from bulkio.models.job import ExportJob, ImportJob
from bulkio.schemas.enums import JobStatus
from bulkio.schemas.job import ExportCreate, ExportJobRead, ImportJobRead, ImportUrlRequest, JobAccepted
from bulkio.schemas.validation import FieldError, ValidationOutcome


class TestImportUrlRequest:
    """Test remote import requests."""

    def test_valid(self):
        data = ImportUrlRequest(resource_type="users", format="csv", file_url=" https://x.test/u.csv ")
        assert data.file_url == "https://x.test/u.csv"

    @pytest.mark.parametrize("url", ["ftp://x.test/u.csv", "/etc/passwd", ""])
    def test_rejects_non_http(self, url: str):
        with pytest.raises(ValidationError):
            ImportUrlRequest(resource_type="users", format="csv", file_url=url)

    def test_rejects_unknown_resource(self):
        with pytest.raises(ValidationError):
            ImportUrlRequest(resource_type="widgets", format="csv", file_url="https://x.test/a")


class TestExportCreate:
    """Test export job requests."""

    def test_defaults(self):
        data = ExportCreate(idempotency_key="k", resource_type="articles", format="ndjson")
        assert data.filters == {}
        assert data.fields is None

    def test_blank_key_rejected(self):
        with pytest.raises(ValidationError):
            ExportCreate(idempotency_key="", resource_type="users", format="csv")


class TestJobResponses:
    """Test responses built from job rows."""

    def test_job_accepted_uses_job_id(self):
        job = ImportJob(
            idempotency_key="k", resource_type="users", format="csv", source_location="/tmp/a"
        )
        body = JobAccepted.model_validate(job).model_dump()
        assert body["job_id"] == job.id
        assert body["status"] == JobStatus.PENDING

    def test_import_job_read_parses_errors(self):
        job = ImportJob(
            idempotency_key="k",
            resource_type="users",
            format="csv",
            source_location="/tmp/a",
            errors=[ValidationOutcome.from_errors(4, [("email", "Email is required")]).to_record()],
        )
        read = ImportJobRead.model_validate(job)
        assert read.errors[0].row_number == 4
        assert read.errors[0].errors == (FieldError(field="email", message="Email is required"),)

    def test_download_url_only_when_completed(self):
        job = ExportJob(idempotency_key="k", resource_type="users", format="csv")
        assert ExportJobRead.model_validate(job).download_url is None

        job.status = JobStatus.COMPLETED
        job.completed_at = datetime.now(UTC)
        read = ExportJobRead.model_validate(job)
        assert read.download_url == f"/api/v1/exports/{job.id}/download"
        assert read.model_dump()["download_url"] == read.download_url

    def test_download_url_follows_api_prefix(self, test_settings, monkeypatch: pytest.MonkeyPatch):
        """Test the link is built under the configured API prefix."""
        monkeypatch.setattr(test_settings, "api_v1_prefix", "/bulk/v2")
        job = ExportJob(idempotency_key="k", resource_type="users", format="csv")
        job.status = JobStatus.COMPLETED
        job.completed_at = datetime.now(UTC)

        read = ExportJobRead.model_validate(job)

        assert read.download_url == f"/bulk/v2/exports/{job.id}/download"


class TestValidationOutcome:
    """Test per-record outcomes."""

    def test_from_errors_valid_when_empty(self):
        outcome = ValidationOutcome.from_errors(2, [], record_id="u1")
        assert outcome.valid is True
        assert outcome.errors == ()

    def test_blank_record_id_is_dropped(self):
        outcome = ValidationOutcome.from_errors(2, [("role", "Role is required")], record_id="")
        assert outcome.record_id is None
        assert "record_id" not in outcome.to_record()

    def test_to_record_round_trip(self):
        outcome = ValidationOutcome.from_errors(7, [("slug", "Slug is required")], record_id="a1")
        assert ValidationOutcome.model_validate(outcome.to_record()) == outcome

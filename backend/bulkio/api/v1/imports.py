"""
Import API endpoints.

- POST /imports - Create an import job (multipart upload or JSON file_url)
- GET /imports/{job_id} - Get import job status, counters and errors

Creation requires an Idempotency-Key header. A replayed key returns the
stored job with 200 and starts nothing; a new key returns 202 once the job
row is persisted and its background task is scheduled.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from fastapi import APIRouter, Header, Path as PathParam, Request, Response, status
from pydantic import ValidationError as PydanticValidationError

from bulkio.api.deps import DbSession, JobRunnerDep
from bulkio.models.job import ImportJob
from bulkio.schemas.enums import FileFormat, ResourceType
from bulkio.schemas.job import ImportJobRead, ImportUrlRequest, JobAccepted
from bulkio.services.exceptions import ValidationError
from bulkio.services.import_service import run_import
from bulkio.services.job_service import ImportJobService
from bulkio.services.source_service import SourceService

logger = logging.getLogger(__name__)

router = APIRouter()

_FORMAT_BY_SUFFIX = {
    ".csv": FileFormat.CSV,
    ".ndjson": FileFormat.NDJSON,
    ".json": FileFormat.NDJSON,
}


def _parse_enum(enum_cls, value: str | None, field: str):
    if not value:
        raise ValidationError(f"{field} is required", field=field)
    try:
        return enum_cls(value.strip().lower())
    except ValueError:
        allowed = ", ".join(member.value for member in enum_cls)
        raise ValidationError(f"{field} must be one of: {allowed}", field=field) from None


async def _create_from_upload(
    request: Request,
    service: ImportJobService,
    idempotency_key: str,
) -> tuple[ImportJob, bool]:
    form = await request.form()
    try:
        upload = form.get("file")
        if upload is None or isinstance(upload, str):
            raise ValidationError("file is required", field="file")

        resource_type = _parse_enum(ResourceType, form.get("resource_type"), "resource_type")
        declared_format = form.get("format")
        if declared_format:
            file_format = _parse_enum(FileFormat, declared_format, "format")
        else:
            suffix = Path(upload.filename or "").suffix.lower()
            if suffix not in _FORMAT_BY_SUFFIX:
                raise ValidationError(
                    "format is required when the file name has no .csv, .ndjson or .json extension",
                    field="format",
                )
            file_format = _FORMAT_BY_SUFFIX[suffix]

        sources = SourceService()
        saved = await sources.save_upload(upload)
    finally:
        await form.close()

    job, created = await service.create_job(
        ImportJob(
            idempotency_key=idempotency_key,
            resource_type=resource_type,
            format=file_format,
            source_location=str(saved),
        )
    )
    if not created:
        # Lost a concurrent race for the same key
        sources.discard(saved)
    return job, created


async def _create_from_url(
    request: Request,
    service: ImportJobService,
    idempotency_key: str,
) -> tuple[ImportJob, bool]:
    try:
        data = ImportUrlRequest.model_validate(await request.json())
    except json.JSONDecodeError:
        raise ValidationError("Request body is not valid JSON") from None
    except PydanticValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(part) for part in first["loc"]) or "body"
        raise ValidationError(f"{field}: {first['msg']}", field=field) from None

    return await service.create_job(
        ImportJob(
            idempotency_key=idempotency_key,
            resource_type=data.resource_type,
            format=data.format,
            source_location=data.file_url,
        )
    )


@router.post(
    "",
    response_model=JobAccepted,
    status_code=status.HTTP_202_ACCEPTED,
    responses={200: {"model": JobAccepted, "description": "Replayed idempotency key"}},
)
async def create_import(
    request: Request,
    response: Response,
    db: DbSession,
    runner: JobRunnerDep,
    idempotency_key: str | None = Header(
        default=None,
        alias="Idempotency-Key",
        description="Client-chosen key; repeating it returns the original job",
    ),
):
    """Create an import job from an uploaded file or a remote URL."""
    if not idempotency_key or not idempotency_key.strip():
        raise ValidationError("Idempotency-Key header is required", field="Idempotency-Key")
    idempotency_key = idempotency_key.strip()
    if len(idempotency_key) > 255:
        raise ValidationError("Idempotency-Key must be at most 255 characters")

    service = ImportJobService(db)
    existing = await service.get_by_idempotency_key(idempotency_key)
    if existing is not None:
        logger.info(f"Replayed idempotency key '{idempotency_key}' -> import job {existing.id}")
        response.status_code = status.HTTP_200_OK
        return JobAccepted.model_validate(existing)

    content_type = request.headers.get("content-type", "")
    if content_type.startswith("multipart/form-data"):
        job, created = await _create_from_upload(request, service, idempotency_key)
    elif content_type.startswith("application/json"):
        job, created = await _create_from_url(request, service, idempotency_key)
    else:
        raise ValidationError("Content-Type must be multipart/form-data or application/json")

    if created:
        runner.submit(job.id, run_import, ImportJobService)
    else:
        response.status_code = status.HTTP_200_OK
    return JobAccepted.model_validate(job)


@router.get("/{job_id}", response_model=ImportJobRead)
async def get_import(
    db: DbSession,
    job_id: str = PathParam(description="Import job identifier"),
):
    """Get an import job's status, counters and collected errors."""
    job = await ImportJobService(db).get_or_raise(job_id)
    return ImportJobRead.model_validate(job)

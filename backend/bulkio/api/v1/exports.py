"""
Export API endpoints.

- GET /exports - Stream a whole table as CSV or NDJSON
- POST /exports - Create a filtered export job
- GET /exports/{job_id} - Get export job status
- GET /exports/{job_id}/download - Download a finished export file
"""

from __future__ import annotations

import logging
from pathlib import Path

from fastapi import APIRouter, Path as PathParam, Query, Response, status
from fastapi.responses import FileResponse, StreamingResponse

from bulkio.api.deps import DbSession, JobRunnerDep, SessionFactory
from bulkio.models.base import utc_now
from bulkio.models.job import ExportJob
from bulkio.resources import get_resource
from bulkio.schemas.enums import FileFormat, JobStatus, ResourceType
from bulkio.schemas.job import ExportCreate, ExportJobRead, JobAccepted
from bulkio.services.exceptions import ConflictError, NotFoundError
from bulkio.services.export_service import (
    resolve_fields,
    resolve_filters,
    run_export,
    stream_export,
)
from bulkio.services.job_service import ExportJobService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("")
async def stream_records(
    session_factory: SessionFactory,
    resource: ResourceType = Query(description="Kind of records to export"),
    format: FileFormat = Query(default=FileFormat.CSV, description="Output format"),
):
    """Stream every record of a kind, page by page, without a job."""
    filename = f"{resource}_{utc_now().strftime('%Y%m%dT%H%M%SZ')}.{format}"
    return StreamingResponse(
        stream_export(session_factory, resource, format),
        media_type=format.media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post(
    "",
    response_model=JobAccepted,
    status_code=status.HTTP_202_ACCEPTED,
    responses={200: {"model": JobAccepted, "description": "Replayed idempotency key"}},
)
async def create_export(
    data: ExportCreate,
    response: Response,
    db: DbSession,
    runner: JobRunnerDep,
):
    """Create a filtered export job that writes a downloadable file."""
    service = ExportJobService(db)
    existing = await service.get_by_idempotency_key(data.idempotency_key)
    if existing is not None:
        logger.info(f"Replayed idempotency key '{data.idempotency_key}' -> export job {existing.id}")
        response.status_code = status.HTTP_200_OK
        return JobAccepted.model_validate(existing)

    resource = get_resource(data.resource_type)
    filters = resolve_filters(resource, data.filters)
    fields = list(resolve_fields(resource, data.fields)) if data.fields else None

    job, created = await service.create_job(
        ExportJob(
            idempotency_key=data.idempotency_key,
            resource_type=data.resource_type,
            format=data.format,
            filters=filters,
            fields=fields,
        )
    )
    if created:
        runner.submit(job.id, run_export, ExportJobService)
    else:
        response.status_code = status.HTTP_200_OK
    return JobAccepted.model_validate(job)


@router.get("/{job_id}", response_model=ExportJobRead)
async def get_export(
    db: DbSession,
    job_id: str = PathParam(description="Export job identifier"),
):
    """Get an export job's status and, once completed, its download URL."""
    job = await ExportJobService(db).get_or_raise(job_id)
    return ExportJobRead.model_validate(job)


@router.get("/{job_id}/download")
async def download_export(
    db: DbSession,
    job_id: str = PathParam(description="Export job identifier"),
):
    """Download the file produced by a completed export job."""
    job = await ExportJobService(db).get_or_raise(job_id)
    if job.status != JobStatus.COMPLETED or not job.file_path:
        raise ConflictError("Export job", "status", job.status)

    path = Path(job.file_path)
    if not path.is_file():
        raise NotFoundError("Export file", job.id)

    return FileResponse(
        path,
        media_type=FileFormat(job.format).media_type,
        filename=path.name,
    )

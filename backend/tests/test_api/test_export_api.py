"""
Tests for Export API endpoints.
"""

import json

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from bulkio.models.job import ExportJob
from bulkio.models.user import User
from bulkio.services.job_runner import JobRunner


@pytest.fixture
async def users(db_session: AsyncSession) -> list[User]:
    """Three users, one of them an admin."""
    users = [
        User(id="u1", email="ann@example.com", name="Ann", role="admin", active=True),
        User(id="u2", email="ben@example.com", name="Ben", role="reader", active=True),
        User(id="u3", email="cy@example.com", name="Cy", role="reader", active=False),
    ]
    db_session.add_all(users)
    await db_session.commit()
    return users


@pytest.mark.asyncio
async def test_stream_csv(client: AsyncClient, users: list[User]):
    """Test a streaming CSV export returns the header and every row."""
    response = await client.get("/api/v1/exports", params={"resource": "users", "format": "csv"})
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert "attachment" in response.headers["content-disposition"]

    lines = response.text.splitlines()
    assert lines[0] == "id,email,name,role,active,created_at,updated_at"
    assert [line.split(",")[0] for line in lines[1:]] == ["u1", "u2", "u3"]


@pytest.mark.asyncio
async def test_stream_ndjson(client: AsyncClient, users: list[User]):
    response = await client.get("/api/v1/exports", params={"resource": "users", "format": "ndjson"})
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("application/x-ndjson")

    records = [json.loads(line) for line in response.text.splitlines()]
    assert [r["email"] for r in records] == ["ann@example.com", "ben@example.com", "cy@example.com"]
    assert records[2]["active"] is False
    assert records[0]["created_at"].endswith("Z")


@pytest.mark.asyncio
async def test_stream_unknown_resource(client: AsyncClient):
    response = await client.get("/api/v1/exports", params={"resource": "widgets"})
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_filtered_export_job(client: AsyncClient, job_runner: JobRunner, users: list[User]):
    """Test role=admin produces a file with only admins, downloadable once completed."""
    response = await client.post(
        "/api/v1/exports",
        json={
            "idempotency_key": "export-admins",
            "resource_type": "users",
            "format": "ndjson",
            "filters": {"role": "admin"},
            "fields": ["id", "email", "role"],
        },
    )
    assert response.status_code == 202
    job_id = response.json()["job_id"]

    await job_runner.drain()

    job = (await client.get(f"/api/v1/exports/{job_id}")).json()
    assert job["status"] == "completed"
    assert job["total_records"] == 1
    assert job["download_url"] == f"/api/v1/exports/{job_id}/download"

    download = await client.get(job["download_url"])
    assert download.status_code == 200
    assert [json.loads(line) for line in download.text.splitlines()] == [
        {"id": "u1", "email": "ann@example.com", "role": "admin"}
    ]


@pytest.mark.asyncio
async def test_replayed_export_key(client: AsyncClient, job_runner: JobRunner, users: list[User]):
    payload = {"idempotency_key": "export-replay", "resource_type": "users", "format": "csv"}
    first = await client.post("/api/v1/exports", json=payload)
    await job_runner.drain()

    second = await client.post("/api/v1/exports", json=payload)

    assert second.status_code == 200
    assert second.json()["job_id"] == first.json()["job_id"]


@pytest.mark.asyncio
async def test_unknown_filter_rejected(client: AsyncClient):
    """Test a filter outside the kind's allowed set is a 400 and creates no job."""
    response = await client.post(
        "/api/v1/exports",
        json={
            "idempotency_key": "export-bad-filter",
            "resource_type": "users",
            "format": "csv",
            "filters": {"email": "ann@example.com"},
        },
    )
    assert response.status_code == 400
    assert "Unknown filter" in response.json()["detail"]


@pytest.mark.asyncio
async def test_unknown_field_rejected(client: AsyncClient):
    response = await client.post(
        "/api/v1/exports",
        json={
            "idempotency_key": "export-bad-field",
            "resource_type": "comments",
            "format": "csv",
            "fields": ["id", "secret"],
        },
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_download_before_completion(client: AsyncClient, db_session: AsyncSession):
    """Test downloading a job that has not finished returns 409."""
    job = ExportJob(idempotency_key="pending-export", resource_type="users", format="csv")
    db_session.add(job)
    await db_session.commit()

    response = await client.get(f"/api/v1/exports/{job.id}/download")
    assert response.status_code == 409

    status = (await client.get(f"/api/v1/exports/{job.id}")).json()
    assert status["download_url"] is None


@pytest.mark.asyncio
async def test_get_export_not_found(client: AsyncClient):
    response = await client.get("/api/v1/exports/does-not-exist")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_export_then_import_round_trip(
    client: AsyncClient, job_runner: JobRunner, users: list[User]
):
    """Test a streamed CSV export re-imports without changes or errors."""
    exported = await client.get("/api/v1/exports", params={"resource": "users", "format": "csv"})

    response = await client.post(
        "/api/v1/imports",
        files={"file": ("users.csv", exported.content, "text/csv")},
        data={"resource_type": "users"},
        headers={"Idempotency-Key": "round-trip"},
    )
    assert response.status_code == 202
    await job_runner.drain()

    job = (await client.get(f"/api/v1/imports/{response.json()['job_id']}")).json()
    assert job["status"] == "completed"
    assert job["success_count"] == 3
    assert job["errors"] == []

    again = await client.get("/api/v1/exports", params={"resource": "users", "format": "csv"})
    assert again.text == exported.text

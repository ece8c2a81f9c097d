"""Health check endpoint tests."""

import pytest


@pytest.mark.asyncio
async def test_health_check(client):
    response = await client.get("/api/v1/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["service"] == "jobdock-api"
    assert data["version"] == "1.0.0"


@pytest.mark.asyncio
async def test_liveness(client):
    response = await client.get("/api/v1/health/live")
    assert response.json() == {"status": "alive"}


@pytest.mark.asyncio
async def test_readiness(client):
    response = await client.get("/api/v1/health/ready")
    assert response.status_code == 200
    checks = response.json()["checks"]
    assert checks["database"] == "ok"
    assert checks["redis"] == "disabled"
    assert checks["archive_storage"] == "ok"


@pytest.mark.asyncio
async def test_trace_id_echoed(client):
    response = await client.get("/api/v1/health", headers={"X-Trace-Id": "trc_fixed"})
    assert response.headers["X-Trace-Id"] == "trc_fixed"

"""Tests for health check endpoints."""

from unittest.mock import AsyncMock, patch

import pytest
from httpx import AsyncClient

from api.routers.health import DependencyCheck


@pytest.mark.asyncio
async def test_health_check(client: AsyncClient) -> None:
    """Test health endpoint returns healthy status."""
    response = await client.get("/health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert "timestamp" in data
    assert data["version"] == "0.1.0"


@pytest.mark.asyncio
async def test_root_returns_info(client: AsyncClient) -> None:
    """Test root endpoint returns API info."""
    response = await client.get("/")

    assert response.status_code == 200
    data = response.json()
    assert data["name"] == "Practice Audit API"
    assert data["version"] == "0.1.0"
    assert data["env"] == "test"


@pytest.mark.asyncio
async def test_v1_root(client: AsyncClient) -> None:
    """Test v1 API root endpoint."""
    response = await client.get("/v1/")

    assert response.status_code == 200
    assert response.json() == {"version": "1", "status": "active"}


@pytest.mark.asyncio
async def test_ready_all_healthy(client: AsyncClient) -> None:
    healthy = DependencyCheck(status="healthy", latency_ms=1.0)
    with (
        patch("api.routers.health.check_database", AsyncMock(return_value=healthy)),
        patch("api.routers.health.check_redis", return_value=healthy),
    ):
        response = await client.get("/ready")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert set(data["checks"]) == {"database", "redis"}


@pytest.mark.asyncio
async def test_ready_degraded(client: AsyncClient) -> None:
    """One failing dependency degrades readiness."""
    healthy = DependencyCheck(status="healthy", latency_ms=1.0)
    down = DependencyCheck(status="unhealthy", error="Connection refused")
    with (
        patch("api.routers.health.check_database", AsyncMock(return_value=healthy)),
        patch("api.routers.health.check_redis", return_value=down),
    ):
        response = await client.get("/ready")

    data = response.json()
    assert data["status"] == "degraded"
    assert data["checks"]["redis"]["error"] == "Connection refused"


@pytest.mark.asyncio
async def test_metrics_endpoint(client: AsyncClient) -> None:
    response = await client.get("/metrics")

    assert response.status_code == 200
    assert b"practice_audit_http_requests_total" in response.content


@pytest.mark.asyncio
async def test_request_id_header(client: AsyncClient) -> None:
    """Every response carries a request id."""
    response = await client.get("/health")
    assert response.headers.get("x-request-id")

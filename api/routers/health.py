"""Health, readiness and metrics endpoints."""

import time
from datetime import UTC, datetime

import structlog
from fastapi import APIRouter, Response
from pydantic import BaseModel, Field
from redis import Redis
from redis.exceptions import RedisError
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from api.config import get_settings
from api.database import get_session_maker
from api.metrics import get_metrics, get_metrics_content_type

router = APIRouter(tags=["Health"])
logger = structlog.get_logger()

VERSION = "0.1.0"

# Track server start time for uptime calculation
_server_start_time = time.time()


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(..., description="Health status: healthy, degraded, unhealthy")
    timestamp: str = Field(..., description="ISO 8601 timestamp")
    version: str = Field(..., description="API version")
    uptime_seconds: int = Field(..., description="Server uptime in seconds")


class DependencyCheck(BaseModel):
    """Individual dependency check result."""

    status: str = Field(..., description="Status: healthy, unhealthy")
    latency_ms: float | None = Field(None, description="Check latency in milliseconds")
    error: str | None = Field(None, description="Error message if unhealthy")


class ReadyResponse(BaseModel):
    """Readiness check response with dependency status."""

    status: str = Field(..., description="Overall status")
    timestamp: str = Field(..., description="ISO 8601 timestamp")
    version: str = Field(..., description="API version")
    uptime_seconds: int = Field(..., description="Server uptime in seconds")
    checks: dict[str, DependencyCheck] = Field(..., description="Individual dependency checks")


class ApiInfoResponse(BaseModel):
    """API information response."""

    name: str
    version: str
    env: str
    docs: str | None


def _uptime() -> int:
    return int(time.time() - _server_start_time)


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """
    Basic health check endpoint.

    Returns healthy if the API is running. Does not check dependencies.
    Use /ready for full dependency checks.
    """
    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(UTC).isoformat(),
        version=VERSION,
        uptime_seconds=_uptime(),
    )


async def check_database() -> DependencyCheck:
    try:
        start = time.perf_counter()
        async with get_session_maker()() as session:
            await session.execute(text("SELECT 1"))
        latency_ms = (time.perf_counter() - start) * 1000
        return DependencyCheck(status="healthy", latency_ms=round(latency_ms, 2))
    except (SQLAlchemyError, OSError) as e:
        logger.warning("database_check_failed", error=str(e))
        return DependencyCheck(status="unhealthy", error=str(e))


def check_redis() -> DependencyCheck:
    try:
        start = time.perf_counter()
        redis = Redis.from_url(str(get_settings().redis_url), socket_timeout=2)
        redis.ping()
        redis.close()
        latency_ms = (time.perf_counter() - start) * 1000
        return DependencyCheck(status="healthy", latency_ms=round(latency_ms, 2))
    except (RedisError, OSError) as e:
        logger.warning("redis_check_failed", error=str(e))
        return DependencyCheck(status="unhealthy", error=str(e))


@router.get("/ready", response_model=ReadyResponse)
async def readiness_check() -> ReadyResponse:
    """
    Readiness check with dependency verification.

    Checks:
    - Database connectivity and latency
    - Redis connectivity and latency (queues and shared locks)
    """
    checks = {
        "database": await check_database(),
        "redis": check_redis(),
    }

    unhealthy_count = sum(1 for c in checks.values() if c.status == "unhealthy")
    if unhealthy_count == 0:
        overall_status = "healthy"
    elif unhealthy_count < len(checks):
        overall_status = "degraded"
    else:
        overall_status = "unhealthy"

    return ReadyResponse(
        status=overall_status,
        timestamp=datetime.now(UTC).isoformat(),
        version=VERSION,
        uptime_seconds=_uptime(),
        checks=checks,
    )


@router.get("/metrics", include_in_schema=False)
async def metrics() -> Response:
    """Prometheus scrape endpoint."""
    return Response(content=get_metrics(), media_type=get_metrics_content_type())


@router.get("/", response_model=ApiInfoResponse)
async def root() -> ApiInfoResponse:
    """Root endpoint with API information."""
    settings = get_settings()
    return ApiInfoResponse(
        name="Practice Audit API",
        version=VERSION,
        env=settings.env,
        docs="/docs" if settings.debug else None,
    )

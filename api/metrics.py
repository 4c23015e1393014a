"""Prometheus metrics for monitoring and observability."""

from __future__ import annotations

import re
import time
from collections.abc import Awaitable, Callable

from fastapi import Request, Response
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)
from starlette.middleware.base import BaseHTTPMiddleware

# Request metrics
REQUEST_COUNT = Counter(
    "practice_audit_http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status_code"],
)

REQUEST_LATENCY = Histogram(
    "practice_audit_http_request_duration_seconds",
    "HTTP request latency in seconds",
    ["method", "endpoint"],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0],
)

REQUEST_IN_PROGRESS = Gauge(
    "practice_audit_http_requests_in_progress",
    "HTTP requests currently being processed",
    ["method", "endpoint"],
)

# Error metrics
ERROR_COUNT = Counter(
    "practice_audit_errors_total",
    "Total application errors",
    ["error_type", "endpoint"],
)

# Business metrics
AUDITS_TOTAL = Counter(
    "practice_audit_audits_total",
    "Total audit attempts",
    ["kind", "status"],
)

LOCK_CONFLICTS_TOTAL = Counter(
    "practice_audit_lock_conflicts_total",
    "Audit requests rejected because the lead was already being audited",
)

BATCHES_TOTAL = Counter(
    "practice_audit_batches_total",
    "Total batch audits run",
    ["kind"],
)

BATCH_DURATION = Histogram(
    "practice_audit_batch_duration_seconds",
    "Batch audit wall-clock time in seconds",
    buckets=[1.0, 5.0, 10.0, 30.0, 60.0, 120.0, 300.0],
)

REPORTS_TOTAL = Counter(
    "practice_audit_reports_total",
    "Total report snapshots created",
    ["type"],
)

REPORT_VIEWS_TOTAL = Counter(
    "practice_audit_report_views_total",
    "Report snapshots opened for the first time",
    ["type"],
)

# Job metrics
JOB_PROCESSING_TIME = Histogram(
    "practice_audit_job_processing_seconds",
    "Job processing time in seconds",
    ["job_type"],
    buckets=[1.0, 5.0, 10.0, 30.0, 60.0, 120.0, 300.0, 600.0],
)


def get_metrics() -> bytes:
    """Generate Prometheus metrics output."""
    metrics: bytes = generate_latest()
    return metrics


def get_metrics_content_type() -> str:
    """Get the content type for Prometheus metrics."""
    content_type: str = CONTENT_TYPE_LATEST
    return content_type


class MetricsMiddleware(BaseHTTPMiddleware):
    """Middleware to collect request metrics."""

    # Paths to exclude from metrics
    EXCLUDE_PATHS = {"/metrics", "/health", "/ready", "/favicon.ico"}

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        if request.url.path in self.EXCLUDE_PATHS:
            return await call_next(request)

        method = request.method
        endpoint = self._normalize_path(request.url.path)

        REQUEST_IN_PROGRESS.labels(method=method, endpoint=endpoint).inc()
        start_time = time.perf_counter()

        try:
            response = await call_next(request)
            REQUEST_COUNT.labels(
                method=method,
                endpoint=endpoint,
                status_code=str(response.status_code),
            ).inc()
            duration = time.perf_counter() - start_time
            REQUEST_LATENCY.labels(method=method, endpoint=endpoint).observe(duration)
            return response

        except Exception as e:
            ERROR_COUNT.labels(
                error_type=type(e).__name__,
                endpoint=endpoint,
            ).inc()
            raise

        finally:
            REQUEST_IN_PROGRESS.labels(method=method, endpoint=endpoint).dec()

    def _normalize_path(self, path: str) -> str:
        """Normalize path by replacing UUIDs and report tokens with placeholders."""
        path = re.sub(
            r"[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}",
            "{id}",
            path,
            flags=re.IGNORECASE,
        )
        # Public report tokens
        path = re.sub(r"^(/v1/reports/)[A-Za-z0-9_-]{16,}$", r"\1{public_id}", path)
        return path


# Helper functions for recording business metrics


def record_audit(kind: str, success: bool = True) -> None:
    """Record one audit attempt."""
    AUDITS_TOTAL.labels(kind=kind, status="completed" if success else "failed").inc()


def record_lock_conflict() -> None:
    """Record an audit rejected by the lead lock."""
    LOCK_CONFLICTS_TOTAL.inc()


def record_batch(kind: str, duration: float) -> None:
    """Record a completed batch."""
    BATCHES_TOTAL.labels(kind=kind).inc()
    BATCH_DURATION.observe(duration)


def record_report_created(report_type: str) -> None:
    """Record a report snapshot created."""
    REPORTS_TOTAL.labels(type=report_type).inc()


def record_report_viewed(report_type: str) -> None:
    REPORT_VIEWS_TOTAL.labels(type=report_type).inc()


def record_job_duration(job_type: str, duration: float) -> None:
    """Record job processing duration."""
    JOB_PROCESSING_TIME.labels(job_type=job_type).observe(duration)

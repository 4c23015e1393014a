"""Tests for metrics module."""

from unittest.mock import MagicMock

import pytest
from prometheus_client import REGISTRY

from api.metrics import (
    MetricsMiddleware,
    get_metrics,
    get_metrics_content_type,
    record_audit,
    record_batch,
    record_job_duration,
    record_lock_conflict,
    record_report_created,
    record_report_viewed,
)


def _sample(name: str, labels: dict[str, str] | None = None) -> float:
    return REGISTRY.get_sample_value(name, labels or {}) or 0.0


class TestMetricsOutput:
    """Tests for metrics output generation."""

    def test_get_metrics_returns_bytes(self):
        output = get_metrics()
        assert isinstance(output, bytes)

    def test_get_metrics_content_type(self):
        content_type = get_metrics_content_type()
        assert "text/plain" in content_type or "openmetrics" in content_type

    def test_get_metrics_contains_custom_metrics(self):
        output = get_metrics().decode("utf-8")
        assert "practice_audit_http_requests_total" in output
        assert "practice_audit_audits_total" in output
        assert "practice_audit_lock_conflicts_total" in output


class TestMetricsMiddleware:
    """Tests for metrics middleware."""

    @pytest.fixture
    def middleware(self):
        app = MagicMock()
        return MetricsMiddleware(app)

    def test_normalize_path_uuid(self, middleware):
        path = "/v1/leads/550e8400-e29b-41d4-a716-446655440000/audit"
        assert middleware._normalize_path(path) == "/v1/leads/{id}/audit"

    def test_normalize_report_token(self, middleware):
        path = "/v1/reports/Xk3_pQ9-aBcDeFgHiJkLmN"
        assert middleware._normalize_path(path) == "/v1/reports/{public_id}"

    def test_normalize_path_static(self, middleware):
        assert middleware._normalize_path("/v1/audits/batch") == "/v1/audits/batch"


class TestBusinessMetrics:
    """Tests for business metric helpers."""

    def test_record_audit(self):
        labels = {"kind": "legacy", "status": "failed"}
        before = _sample("practice_audit_audits_total", labels)
        record_audit("legacy", success=False)
        assert _sample("practice_audit_audits_total", labels) == before + 1

    def test_record_lock_conflict(self):
        before = _sample("practice_audit_lock_conflicts_total")
        record_lock_conflict()
        assert _sample("practice_audit_lock_conflicts_total") == before + 1

    def test_record_batch(self):
        before = _sample("practice_audit_batches_total", {"kind": "seo"})
        record_batch("seo", 2.5)
        assert _sample("practice_audit_batches_total", {"kind": "seo"}) == before + 1

    def test_record_report_created(self):
        before = _sample("practice_audit_reports_total", {"type": "full"})
        record_report_created("full")
        assert _sample("practice_audit_reports_total", {"type": "full"}) == before + 1

    def test_record_report_viewed(self):
        before = _sample("practice_audit_report_views_total", {"type": "design"})
        record_report_viewed("design")
        assert _sample("practice_audit_report_views_total", {"type": "design"}) == before + 1

    def test_record_job_duration(self):
        labels = {"job_type": "batch_audit"}
        before = _sample("practice_audit_job_processing_seconds_count", labels)
        record_job_duration("batch_audit", 12.0)
        assert _sample("practice_audit_job_processing_seconds_count", labels) == before + 1

"""FastAPI dependencies for dependency injection."""

from collections.abc import AsyncIterator
from functools import lru_cache
from typing import Annotated

from fastapi import Depends

from api.config import Settings, get_settings
from api.database import DbSession
from api.exceptions import ServiceUnavailableError
from api.services.audit_store import SqlAuditStore
from api.services.job_service import JobService
from worker.audit.batch import BatchAuditor
from worker.audit.detectors import DetectorRegistry, default_registry
from worker.audit.factory import build_capture, build_lock_registry
from worker.audit.locks import LockRegistry
from worker.audit.pipeline import LeadAuditor
from worker.audit.vision import VisionScorer
from worker.crawler.fetcher import PageCapture
from worker.crawler.render import PageRenderer, RendererConfig
from worker.reports.snapshot import SnapshotBuilder

# Re-export DbSession for convenience
__all__ = [
    "AuditorDep",
    "BatchAuditorDep",
    "DbSession",
    "JobServiceDep",
    "SettingsDep",
    "SnapshotBuilderDep",
    "VisionScorerDep",
]


# Settings dependency
SettingsDep = Annotated[Settings, Depends(get_settings)]


# Singletons owned by the application process


@lru_cache
def get_lock_registry() -> LockRegistry:
    """Process-wide lock registry. Every entry point must share this instance."""
    return build_lock_registry(get_settings())


@lru_cache
def get_detector_registry() -> DetectorRegistry:
    """Detector set used by every deterministic audit."""
    return default_registry()


def get_capture(settings: SettingsDep) -> PageCapture:
    return build_capture(settings)


# Request-scoped services


def get_audit_store(db: DbSession) -> SqlAuditStore:
    return SqlAuditStore(db)


AuditStoreDep = Annotated[SqlAuditStore, Depends(get_audit_store)]


def get_lead_auditor(
    store: AuditStoreDep,
    settings: SettingsDep,
    locks: Annotated[LockRegistry, Depends(get_lock_registry)],
    capture: Annotated[PageCapture, Depends(get_capture)],
    registry: Annotated[DetectorRegistry, Depends(get_detector_registry)],
) -> LeadAuditor:
    return LeadAuditor(
        store=store,
        locks=locks,
        capture=capture,
        registry=registry,
        min_content_length=settings.min_content_length,
    )


AuditorDep = Annotated[LeadAuditor, Depends(get_lead_auditor)]


def get_batch_auditor(auditor: AuditorDep, settings: SettingsDep) -> BatchAuditor:
    return BatchAuditor(auditor, max_batch_size=settings.batch_max_size)


BatchAuditorDep = Annotated[BatchAuditor, Depends(get_batch_auditor)]


def get_snapshot_builder(store: AuditStoreDep) -> SnapshotBuilder:
    return SnapshotBuilder(store)


SnapshotBuilderDep = Annotated[SnapshotBuilder, Depends(get_snapshot_builder)]


def get_vision_scorer(settings: SettingsDep) -> VisionScorer:
    """
    Generative scorer, if an API key is configured.

    Raises:
        ServiceUnavailableError: no API key.
    """
    if not settings.openai_api_key:
        raise ServiceUnavailableError("AI audit is not configured (OPENAI_API_KEY missing)")
    return VisionScorer(
        api_key=settings.openai_api_key,
        model=settings.vision_model,
        base_url=settings.vision_base_url,
        timeout_seconds=settings.vision_timeout_seconds,
        max_text_chars=settings.vision_max_text_chars,
    )


VisionScorerDep = Annotated[VisionScorer, Depends(get_vision_scorer)]


async def get_renderer(settings: SettingsDep) -> AsyncIterator[PageRenderer]:
    """Headless browser for the duration of one request."""
    config = RendererConfig(
        timeout_seconds=settings.render_timeout_seconds,
        settle_ms=settings.render_settle_ms,
        user_agent=settings.capture_user_agent,
    )
    async with PageRenderer(config) as renderer:
        yield renderer


def get_job_service() -> JobService:
    return JobService()


JobServiceDep = Annotated[JobService, Depends(get_job_service)]

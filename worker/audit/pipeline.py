"""Single-lead audit: lock, capture, detect, score, persist, unlock."""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol

import structlog

from api.exceptions import (
    CaptureFailedError,
    ExternalServiceError,
    NotFoundError,
    ScoringError,
    ValidationError,
)
from api.logging import log_domain
from api.metrics import record_audit
from worker.audit.detectors import DetectorRegistry, default_registry
from worker.audit.locks import LockRegistry, hold
from worker.audit.records import AuditKind, AuditRecord, LeadRef
from worker.audit.scoring import build_record, failure_record
from worker.audit.store import AuditStore

if TYPE_CHECKING:
    from worker.audit.vision import VisionScorer
    from worker.crawler.fetcher import CaptureResult
    from worker.crawler.render import PageRenderer

logger = structlog.get_logger(__name__)


class Capture(Protocol):
    """Anything that turns an address into a ``CaptureResult``."""

    async def capture(self, url: str) -> CaptureResult: ...


@dataclass
class AuditOutcome:
    """Structured result of one audit attempt for one lead."""

    lead_id: uuid.UUID
    kind: AuditKind
    success: bool
    score: int | None = None
    confidence: int | None = None
    findings: list[Any] = field(default_factory=list)
    error: str | None = None
    duration_ms: int = 0

    @property
    def findings_count(self) -> int:
        return len(self.findings)

    @classmethod
    def from_record(
        cls, lead_id: uuid.UUID, record: AuditRecord, duration_ms: int
    ) -> AuditOutcome:
        return cls(
            lead_id=lead_id,
            kind=record.kind,
            success=not record.failed,
            score=record.score,
            confidence=record.confidence,
            findings=record.findings_payload(),
            error=record.error,
            duration_ms=duration_ms,
        )

    @classmethod
    def rejected(cls, lead_id: uuid.UUID, kind: AuditKind, error: str) -> AuditOutcome:
        """An attempt that never reached capture (conflict, unknown lead, ...)."""
        return cls(lead_id=lead_id, kind=kind, success=False, error=error)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "lead_id": str(self.lead_id),
            "kind": self.kind.value,
            "success": self.success,
            "score": self.score,
            "confidence": self.confidence,
            "findings_count": self.findings_count,
            "findings": self.findings,
            "error": self.error,
            "duration_ms": self.duration_ms,
        }


@dataclass
class GenerativeAuditOutcome:
    """Design and SEO outcomes written by one generative audit."""

    design: AuditOutcome
    seo: AuditOutcome
    overall_score: int | None = None
    practice_info: dict[str, Any] = field(default_factory=dict)
    summary: str = ""

    @property
    def success(self) -> bool:
        return self.design.success and self.seo.success


class LeadAuditor:
    """
    Audits one lead at a time under its lead lock.

    Capture and scoring failures are recovered into a floor-score record;
    the attempt is always persisted and the lead always marked audited.
    Persistence failures propagate, after the lock is released.
    """

    def __init__(
        self,
        store: AuditStore,
        locks: LockRegistry,
        capture: Capture,
        registry: DetectorRegistry | None = None,
        min_content_length: int = 200,
    ):
        self.store = store
        self.locks = locks
        self.capture = capture
        self.registry = registry or default_registry()
        self.min_content_length = min_content_length

    async def resolve_lead(self, lead_id: uuid.UUID) -> LeadRef:
        """
        Load the lead and check it can be audited.

        Raises:
            NotFoundError: unknown lead.
            ValidationError: lead has no website address.
        """
        lead = await self.store.get_lead(lead_id)
        if lead is None:
            raise NotFoundError("Lead", str(lead_id))
        if not lead.website_url:
            raise ValidationError("Lead has no website URL", field="website_url")
        return lead

    async def audit(self, lead_id: uuid.UUID, kind: AuditKind = AuditKind.LEGACY) -> AuditOutcome:
        """
        Run one deterministic audit and persist its record.

        Raises:
            NotFoundError, ValidationError: before the lock is taken.
            LockConflictError: another audit holds this lead.
            PersistenceError: the record could not be written.
        """
        lead = await self.resolve_lead(lead_id)
        with hold(self.locks, str(lead.id)):
            return await self._audit_locked(lead, kind)

    async def _audit_locked(self, lead: LeadRef, kind: AuditKind) -> AuditOutcome:
        url = lead.website_url or ""
        started = time.perf_counter()
        logger.info("audit_started", lead_id=str(lead.id), kind=kind.value, domain=log_domain(url))

        try:
            capture = await self.capture.capture(url)
            outcome = self.registry.evaluate(capture.text)
            record = build_record(kind, outcome, capture, self.min_content_length)
        except CaptureFailedError as e:
            record = failure_record(kind, e.cause)

        saved = await self.store.upsert_audit(lead.id, kind, record)
        await self.store.mark_audited(lead.id)

        result = AuditOutcome.from_record(lead.id, saved, _elapsed_ms(started))
        self._log_complete(lead, result)
        return result

    async def audit_with_scorer(
        self,
        lead_id: uuid.UUID,
        renderer: PageRenderer,
        scorer: VisionScorer,
    ) -> GenerativeAuditOutcome:
        """
        Render the page, score it with the generative scorer and persist both
        the design and SEO records.

        Raises the same errors as ``audit``, plus:
            ExternalServiceError: the browser could not be launched. Nothing
                is persisted, since the site itself was never tried.
        """
        lead = await self.resolve_lead(lead_id)
        await renderer.start()
        with hold(self.locks, str(lead.id)):
            url = lead.website_url or ""
            started = time.perf_counter()
            logger.info(
                "audit_started", lead_id=str(lead.id), kind="generative", domain=log_domain(url)
            )

            overall: int | None = None
            practice_info: dict[str, Any] = {}
            summary = ""
            try:
                rendered = await renderer.render(url)
                scored = await scorer.score(rendered.screenshot_png, rendered.capture.text, url)
                records = [scored.design_record(), scored.seo_record()]
                overall = scored.overall_score
                practice_info = scored.practice_info
                summary = scored.summary
            except CaptureFailedError as e:
                records = [failure_record(k, e.cause) for k in (AuditKind.DESIGN, AuditKind.SEO)]
            except (ScoringError, ExternalServiceError) as e:
                records = [failure_record(k, e.message) for k in (AuditKind.DESIGN, AuditKind.SEO)]

            outcomes = []
            for record in records:
                saved = await self.store.upsert_audit(lead.id, record.kind, record)
                outcomes.append(AuditOutcome.from_record(lead.id, saved, _elapsed_ms(started)))
            await self.store.mark_audited(lead.id)

        for result in outcomes:
            self._log_complete(lead, result)
        return GenerativeAuditOutcome(
            design=outcomes[0],
            seo=outcomes[1],
            overall_score=overall,
            practice_info=practice_info,
            summary=summary,
        )

    def _log_complete(self, lead: LeadRef, result: AuditOutcome) -> None:
        record_audit(result.kind.value, result.success)
        log = logger.info if result.success else logger.error
        log(
            "audit_completed" if result.success else "audit_failed",
            lead_id=str(lead.id),
            kind=result.kind.value,
            domain=log_domain(lead.website_url),
            duration_ms=result.duration_ms,
            duration_sec=round(result.duration_ms / 1000, 2),
            score=result.score,
            error=result.error,
        )


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)

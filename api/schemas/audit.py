"""Audit request/response schemas."""

import uuid
from typing import Any

from pydantic import BaseModel, Field

from worker.audit.batch import BatchResult
from worker.audit.pipeline import AuditOutcome, GenerativeAuditOutcome
from worker.audit.records import AuditKind


class AuditRequest(BaseModel):
    """Schema for a single-lead audit request."""

    lead_id: uuid.UUID


class BatchAuditRequest(BaseModel):
    """Schema for a batch audit request.

    Size and uniqueness are checked by the batch auditor so the limit
    follows ``BATCH_MAX_SIZE``.
    """

    lead_ids: list[uuid.UUID]
    kind: AuditKind = AuditKind.LEGACY


class AuditResultResponse(BaseModel):
    """Outcome of one audit attempt."""

    lead_id: uuid.UUID
    kind: AuditKind
    success: bool
    score: int | None = None
    confidence: int | None = None
    findings_count: int = 0
    findings: list[Any] = Field(default_factory=list)
    error: str | None = None
    duration_ms: int = 0

    @classmethod
    def from_outcome(cls, outcome: AuditOutcome) -> "AuditResultResponse":
        return cls(
            lead_id=outcome.lead_id,
            kind=outcome.kind,
            success=outcome.success,
            score=outcome.score,
            confidence=outcome.confidence,
            findings_count=outcome.findings_count,
            findings=outcome.findings,
            error=outcome.error,
            duration_ms=outcome.duration_ms,
        )


class GenerativeAuditResponse(BaseModel):
    """Design and SEO outcomes of a generative audit."""

    success: bool
    design: AuditResultResponse
    seo: AuditResultResponse
    overall_score: int | None = None
    practice_info: dict[str, Any] = Field(default_factory=dict)
    summary: str = ""

    @classmethod
    def from_outcome(cls, outcome: GenerativeAuditOutcome) -> "GenerativeAuditResponse":
        return cls(
            success=outcome.success,
            design=AuditResultResponse.from_outcome(outcome.design),
            seo=AuditResultResponse.from_outcome(outcome.seo),
            overall_score=outcome.overall_score,
            practice_info=outcome.practice_info,
            summary=outcome.summary,
        )


class BatchSummary(BaseModel):
    """Aggregate counts for a batch."""

    processed: int
    succeeded: int
    failed: int
    duration_ms: int


class BatchAuditResponse(BaseModel):
    """Per-lead results plus summary."""

    results: list[AuditResultResponse]
    summary: BatchSummary

    @classmethod
    def from_result(cls, result: BatchResult) -> "BatchAuditResponse":
        return cls(
            results=[AuditResultResponse.from_outcome(r) for r in result.results],
            summary=BatchSummary(
                processed=result.processed,
                succeeded=result.succeeded,
                failed=result.failed,
                duration_ms=result.duration_ms,
            ),
        )


class BatchJobResponse(BaseModel):
    """A batch accepted for background execution."""

    job_id: str
    status: str = "queued"
    lead_count: int
    kind: AuditKind

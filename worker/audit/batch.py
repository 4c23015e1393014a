"""Sequential batch audits with per-lead failure isolation."""

from __future__ import annotations

import time
import uuid
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

import structlog

from api.exceptions import AuditServiceError, ValidationError
from api.metrics import record_batch
from worker.audit.pipeline import AuditOutcome, LeadAuditor
from worker.audit.records import AuditKind

logger = structlog.get_logger(__name__)

DEFAULT_MAX_BATCH_SIZE = 10


@dataclass
class BatchResult:
    """Per-lead outcomes plus aggregate counts for one batch."""

    results: list[AuditOutcome] = field(default_factory=list)
    duration_ms: int = 0

    @property
    def processed(self) -> int:
        return len(self.results)

    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def failed(self) -> int:
        return self.processed - self.succeeded

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "results": [r.to_dict() for r in self.results],
            "summary": {
                "processed": self.processed,
                "succeeded": self.succeeded,
                "failed": self.failed,
                "duration_ms": self.duration_ms,
            },
        }


def validate_batch(lead_ids: Sequence[uuid.UUID], max_batch_size: int) -> None:
    """
    Reject malformed batches before any lock or capture work.

    Raises:
        ValidationError: empty, oversized, or containing duplicate ids.
    """
    if not lead_ids:
        raise ValidationError("lead_ids must contain at least one lead", field="lead_ids")
    if len(lead_ids) > max_batch_size:
        raise ValidationError(
            f"Maximum {max_batch_size} leads per batch", field="lead_ids"
        )
    if len(set(lead_ids)) != len(lead_ids):
        raise ValidationError("lead_ids must not contain duplicates", field="lead_ids")


class BatchAuditor:
    """
    Audits a bounded list of leads one after another, in input order.

    Leads are never audited concurrently within a batch. Every lead gets a
    result entry; no single lead's failure aborts the rest.
    """

    def __init__(self, auditor: LeadAuditor, max_batch_size: int = DEFAULT_MAX_BATCH_SIZE):
        self.auditor = auditor
        self.max_batch_size = max_batch_size

    async def run(
        self,
        lead_ids: Sequence[uuid.UUID],
        kind: AuditKind = AuditKind.LEGACY,
    ) -> BatchResult:
        validate_batch(lead_ids, self.max_batch_size)

        started = time.perf_counter()
        result = BatchResult()

        for lead_id in lead_ids:
            try:
                outcome = await self.auditor.audit(lead_id, kind)
            except AuditServiceError as e:
                logger.warning(
                    "batch_lead_failed",
                    lead_id=str(lead_id),
                    kind=kind.value,
                    code=e.code,
                    error=e.message,
                )
                outcome = AuditOutcome.rejected(lead_id, kind, e.message)
            result.results.append(outcome)

        elapsed = time.perf_counter() - started
        result.duration_ms = int(elapsed * 1000)
        record_batch(kind.value, elapsed)

        logger.info(
            "batch_audit_completed",
            kind=kind.value,
            processed=result.processed,
            succeeded=result.succeeded,
            failed=result.failed,
            duration_ms=result.duration_ms,
            avg_per_lead_ms=result.duration_ms // max(result.processed, 1),
        )
        return result

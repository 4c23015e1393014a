"""Background batch audit task."""

import asyncio
import time
import uuid
from typing import Any

import structlog
from rq import get_current_job

from api.config import get_settings
from api.database import get_session_maker, reset_engine
from api.metrics import record_job_duration
from api.services.audit_store import SqlAuditStore
from worker.audit.batch import BatchAuditor
from worker.audit.detectors import default_registry
from worker.audit.factory import build_capture, build_lock_registry
from worker.audit.pipeline import LeadAuditor
from worker.audit.records import AuditKind

logger = structlog.get_logger(__name__)


def run_batch_audit_sync(lead_ids: list[str], kind: str = AuditKind.LEGACY.value) -> dict[str, Any]:
    """
    Synchronous wrapper for the batch audit task.

    This is the entry point for RQ which requires sync functions.
    """
    # Fresh connections for the new event loop
    reset_engine()

    return asyncio.run(run_batch_audit([uuid.UUID(i) for i in lead_ids], AuditKind(kind)))


async def run_batch_audit(lead_ids: list[uuid.UUID], kind: AuditKind) -> dict[str, Any]:
    """
    Audit a batch of leads outside the request cycle.

    Locks always go through Redis here: a worker process never shares an
    in-memory registry with the API.
    """
    settings = get_settings()
    job = get_current_job()
    started = time.perf_counter()

    logger.info(
        "batch_job_started",
        job_id=job.id if job else None,
        lead_count=len(lead_ids),
        kind=kind.value,
    )

    async with get_session_maker()() as db:
        auditor = LeadAuditor(
            store=SqlAuditStore(db),
            locks=build_lock_registry(settings, backend="redis"),
            capture=build_capture(settings),
            registry=default_registry(),
            min_content_length=settings.min_content_length,
        )
        try:
            result = await BatchAuditor(auditor, max_batch_size=settings.batch_max_size).run(
                lead_ids, kind
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise

    if job:
        job.meta["processed"] = result.processed
        job.meta["succeeded"] = result.succeeded
        job.meta["failed"] = result.failed
        job.save_meta()

    record_job_duration("batch_audit", time.perf_counter() - started)
    return result.to_dict()

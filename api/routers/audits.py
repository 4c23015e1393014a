"""Audit endpoints."""

import uuid

from fastapi import APIRouter, Depends, Query, status

from api.deps import (
    AuditorDep,
    BatchAuditorDep,
    JobServiceDep,
    SettingsDep,
    VisionScorerDep,
    get_renderer,
)
from api.schemas.audit import (
    AuditRequest,
    AuditResultResponse,
    BatchAuditRequest,
    BatchAuditResponse,
    BatchJobResponse,
    GenerativeAuditResponse,
)
from api.schemas.responses import SuccessResponse
from worker.audit.batch import validate_batch
from worker.audit.factory import require_shared_locks
from worker.audit.records import AuditKind
from worker.crawler.render import PageRenderer

router = APIRouter(prefix="/audits", tags=["audits"])
leads_router = APIRouter(prefix="/leads", tags=["audits"])


async def _audit(auditor: AuditorDep, lead_id: uuid.UUID, kind: AuditKind) -> SuccessResponse:
    outcome = await auditor.audit(lead_id, kind)
    return SuccessResponse(data=AuditResultResponse.from_outcome(outcome))


@router.post(
    "",
    response_model=SuccessResponse[AuditResultResponse],
    summary="Run a legacy (1-10) audit",
)
async def audit_legacy(body: AuditRequest, auditor: AuditorDep) -> SuccessResponse:
    """
    Capture the lead's website and score it on the 1-10 scale.

    A page that cannot be loaded still produces a persisted floor-score
    record; the response then has ``success: false``.
    """
    return await _audit(auditor, body.lead_id, AuditKind.LEGACY)


@router.post(
    "/design",
    response_model=SuccessResponse[AuditResultResponse],
    summary="Run a design (0-100) audit",
)
async def audit_design(body: AuditRequest, auditor: AuditorDep) -> SuccessResponse:
    return await _audit(auditor, body.lead_id, AuditKind.DESIGN)


@router.post(
    "/seo",
    response_model=SuccessResponse[AuditResultResponse],
    summary="Run an SEO (0-100) audit",
)
async def audit_seo(body: AuditRequest, auditor: AuditorDep) -> SuccessResponse:
    return await _audit(auditor, body.lead_id, AuditKind.SEO)


@router.post(
    "/ai",
    response_model=SuccessResponse[GenerativeAuditResponse],
    summary="Run a screenshot-based design and SEO audit",
)
async def audit_generative(
    body: AuditRequest,
    auditor: AuditorDep,
    scorer: VisionScorerDep,
    renderer: PageRenderer = Depends(get_renderer),
) -> SuccessResponse:
    """
    Render the page in a headless browser and have the vision model score it.

    Writes both the design and the SEO record. Returns 503 when no model
    API key is configured.
    """
    outcome = await auditor.audit_with_scorer(body.lead_id, renderer, scorer)
    return SuccessResponse(data=GenerativeAuditResponse.from_outcome(outcome))


@router.post(
    "/batch",
    response_model=SuccessResponse[BatchAuditResponse] | SuccessResponse[BatchJobResponse],
    summary="Audit several leads sequentially",
)
async def audit_batch(
    body: BatchAuditRequest,
    batch: BatchAuditorDep,
    jobs: JobServiceDep,
    settings: SettingsDep,
    background: bool = Query(False, description="Enqueue instead of running inline"),
) -> SuccessResponse:
    """
    Audit up to ``BATCH_MAX_SIZE`` leads one after another.

    Per-lead failures (unknown lead, audit already running, page not
    loading) are reported in the results and never abort the batch.
    With ``background=true`` the batch runs on the worker queue and the
    response carries the job id to poll at ``/v1/jobs/{job_id}``.
    Background batches need the Redis lock backend.
    """
    if background:
        validate_batch(body.lead_ids, settings.batch_max_size)
        require_shared_locks(settings)
        job_id = jobs.enqueue_batch_audit(body.lead_ids, body.kind)
        return SuccessResponse(
            data=BatchJobResponse(job_id=job_id, lead_count=len(body.lead_ids), kind=body.kind)
        )

    result = await batch.run(body.lead_ids, body.kind)
    return SuccessResponse(data=BatchAuditResponse.from_result(result))


@leads_router.post(
    "/{lead_id}/audit",
    response_model=SuccessResponse[AuditResultResponse],
    status_code=status.HTTP_200_OK,
    summary="Run a legacy audit for one lead",
)
async def audit_lead(lead_id: uuid.UUID, auditor: AuditorDep) -> SuccessResponse:
    return await _audit(auditor, lead_id, AuditKind.LEGACY)

"""Report snapshot endpoints."""

import uuid

from fastapi import APIRouter, Query, status

from api.deps import SettingsDep, SnapshotBuilderDep
from api.schemas.report import ReportCreate, ReportCreatedResponse, ReportSummary, ReportView
from api.schemas.responses import SuccessResponse

router = APIRouter(prefix="/reports", tags=["reports"])


@router.post(
    "",
    response_model=SuccessResponse[ReportCreatedResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Create a report snapshot",
)
async def create_report(
    body: ReportCreate,
    builder: SnapshotBuilderDep,
    settings: SettingsDep,
) -> SuccessResponse:
    """
    Freeze the lead's current audit data into a shareable report.

    ``design`` needs a design or legacy audit, ``seo`` needs an SEO audit,
    ``full`` needs at least one of them.
    """
    snapshot = await builder.build(body.lead_id, body.type)
    return SuccessResponse(
        data=ReportCreatedResponse(
            id=snapshot.id,
            public_id=snapshot.public_id,
            type=snapshot.type,
            url=settings.report_url(snapshot.public_id),
        )
    )


@router.get(
    "",
    response_model=SuccessResponse[list[ReportSummary]],
    summary="List a lead's reports",
)
async def list_reports(
    builder: SnapshotBuilderDep,
    settings: SettingsDep,
    lead_id: uuid.UUID = Query(...),
) -> SuccessResponse:
    snapshots = await builder.list_snapshots(lead_id)
    return SuccessResponse(
        data=[ReportSummary.from_snapshot(s, settings.report_url(s.public_id)) for s in snapshots]
    )


@router.get(
    "/{public_id}",
    response_model=SuccessResponse[ReportView],
    summary="Open a report by its public id",
)
async def open_report(public_id: str, builder: SnapshotBuilderDep) -> SuccessResponse:
    """Public report view. The first open records when the report was viewed."""
    snapshot = await builder.open_snapshot(public_id)
    return SuccessResponse(data=ReportView.from_snapshot(snapshot))

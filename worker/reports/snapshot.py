"""Report snapshots.

A snapshot freezes a lead's audit data at creation time under an
unguessable public token. Later re-audits never change an existing
snapshot; only its view tracking is updated.
"""

from __future__ import annotations

import secrets
import uuid
from datetime import UTC, datetime
from typing import Any

import structlog

from api.exceptions import MissingPrerequisiteError, NotFoundError
from api.metrics import record_report_created, record_report_viewed
from worker.audit.findings import Finding
from worker.audit.records import AuditKind, AuditRecord, ReportSnapshot, ReportType
from worker.audit.scoring import as_current, record_score
from worker.audit.store import AuditStore

logger = structlog.get_logger(__name__)

PUBLIC_ID_BYTES = 16


def new_public_id() -> str:
    """Fresh URL-safe token for a public report link."""
    return secrets.token_urlsafe(PUBLIC_ID_BYTES)


def _isoformat(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def _lift_findings(findings: list[Any]) -> list[dict[str, Any]]:
    lifted = []
    for item in findings:
        if isinstance(item, str):
            lifted.append(Finding.lifted_from_legacy(item).to_dict())
        elif isinstance(item, Finding):
            lifted.append(item.to_dict())
        else:
            lifted.append(item)
    return lifted


def design_facet(
    design: AuditRecord | None, legacy: AuditRecord | None
) -> dict[str, Any] | None:
    """
    Design section of a report.

    The current design record wins; otherwise the legacy record is
    converted to the 0-100 scale with its findings lifted.
    """
    if design is not None:
        return {
            "score": as_current(record_score(design)).score,
            "findings": design.findings_payload(),
            "created_at": _isoformat(design.created_at),
            "source": "design",
        }
    if legacy is not None:
        return {
            "score": as_current(record_score(legacy)).score,
            "findings": _lift_findings(legacy.findings),
            "created_at": _isoformat(legacy.created_at),
            "source": "legacy",
        }
    return None


def seo_facet(seo: AuditRecord | None) -> dict[str, Any] | None:
    """SEO section of a report; there is no legacy SEO generation."""
    if seo is None:
        return None
    return {
        "score": as_current(record_score(seo)).score,
        "findings": seo.findings_payload(),
        "created_at": _isoformat(seo.created_at),
        "source": "seo",
    }


class SnapshotBuilder:
    """Builds, lists and opens report snapshots."""

    def __init__(self, store: AuditStore):
        self.store = store

    async def build(self, lead_id: uuid.UUID, report_type: ReportType) -> ReportSnapshot:
        """
        Merge the lead's audits into a new immutable snapshot.

        Raises:
            NotFoundError: unknown lead.
            MissingPrerequisiteError: the audits this report type needs are absent.
        """
        lead = await self.store.get_lead(lead_id)
        if lead is None:
            raise NotFoundError("Lead", str(lead_id))

        design = await self.store.get_audit(lead_id, AuditKind.DESIGN)
        legacy = await self.store.get_audit(lead_id, AuditKind.LEGACY)
        seo = await self.store.get_audit(lead_id, AuditKind.SEO)

        design_section = design_facet(design, legacy)
        seo_section = seo_facet(seo)

        if report_type is ReportType.DESIGN and design_section is None:
            raise MissingPrerequisiteError(
                "Design audit required. Run a design audit first.", required=["design"]
            )
        if report_type is ReportType.SEO and seo_section is None:
            raise MissingPrerequisiteError(
                "SEO audit required. Run an SEO audit first.", required=["seo"]
            )
        if report_type is ReportType.FULL and design_section is None and seo_section is None:
            raise MissingPrerequisiteError(
                "At least one audit required. Run a design or SEO audit first.",
                required=["design", "seo"],
            )

        include_design = report_type in (ReportType.DESIGN, ReportType.FULL)
        include_seo = report_type in (ReportType.SEO, ReportType.FULL)
        data = {
            "lead": {
                "name": lead.name,
                "website_url": lead.website_url,
                "city": lead.city,
            },
            "generated_at": datetime.now(UTC).isoformat(),
            "type": report_type.value,
            "design_audit": design_section if include_design else None,
            "seo_audit": seo_section if include_seo else None,
        }

        snapshot = await self.store.create_snapshot(
            ReportSnapshot(
                lead_id=lead_id,
                type=report_type,
                data=data,
                public_id=new_public_id(),
            )
        )
        record_report_created(report_type.value)
        logger.info(
            "report_snapshot_created",
            lead_id=str(lead_id),
            report_type=report_type.value,
            design_source=design_section["source"] if include_design and design_section else None,
            has_seo=include_seo and seo_section is not None,
        )
        return snapshot

    async def list_snapshots(self, lead_id: uuid.UUID) -> list[ReportSnapshot]:
        """Snapshots for a lead, newest first."""
        return await self.store.list_snapshots(lead_id)

    async def open_snapshot(self, public_id: str) -> ReportSnapshot:
        """
        Return a snapshot by its public token, marking it viewed on first open.

        Raises:
            NotFoundError: no snapshot has this token.
        """
        snapshot = await self.store.get_snapshot(public_id)
        if snapshot is None:
            raise NotFoundError("Report", public_id)
        if not snapshot.viewed:
            snapshot = await self.store.mark_snapshot_viewed(public_id) or snapshot
            logger.info("report_snapshot_viewed", report_id=str(snapshot.id))
            record_report_viewed(snapshot.type.value)
        return snapshot

"""Audit models.

One table per audit kind. Each table holds at most one live row per lead
(unique ``lead_id``); re-audits overwrite it in place.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, ClassVar

from sqlalchemy import DateTime, ForeignKey, Integer, Text, func
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from api.database import Base
from worker.audit.findings import Finding
from worker.audit.records import AuditKind, AuditRecord


class AuditColumns:
    """Columns shared by every audit table."""

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )

    lead_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("leads.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )

    score: Mapped[int] = mapped_column(Integer, nullable=False)
    findings: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)
    extracted: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict)
    error: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    kind: ClassVar[AuditKind]

    def to_record(self) -> AuditRecord:
        findings: list[Any] = list(self.findings or [])
        if self.kind is not AuditKind.LEGACY:
            findings = [Finding.from_dict(f) for f in findings]
        return AuditRecord(
            kind=self.kind,
            score=self.score,
            findings=findings,
            extracted=dict(self.extracted or {}),
            confidence=getattr(self, "confidence", None),
            error=self.error,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


class LegacyAudit(AuditColumns, Base):
    """Legacy 1-10 audit with plain-text findings."""

    __tablename__ = "audits"

    kind = AuditKind.LEGACY

    confidence: Mapped[int] = mapped_column(Integer, nullable=False)


class DesignAudit(AuditColumns, Base):
    """Current 0-100 design audit."""

    __tablename__ = "design_audits"

    kind = AuditKind.DESIGN


class SeoAudit(AuditColumns, Base):
    """Current 0-100 SEO audit."""

    __tablename__ = "seo_audits"

    kind = AuditKind.SEO


AUDIT_MODELS: dict[AuditKind, type[LegacyAudit] | type[DesignAudit] | type[SeoAudit]] = {
    AuditKind.LEGACY: LegacyAudit,
    AuditKind.DESIGN: DesignAudit,
    AuditKind.SEO: SeoAudit,
}

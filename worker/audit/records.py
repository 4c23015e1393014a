"""Audit record shapes shared by the scoring engine, scorers and storage."""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Any

from worker.audit.findings import Finding


class ScoreScale(StrEnum):
    """Audit generations."""

    LEGACY = "legacy"  # 1-10 with confidence
    CURRENT = "current"  # 0-100


class AuditKind(StrEnum):
    """Audit record families, one live record per lead each."""

    LEGACY = "legacy"
    DESIGN = "design"
    SEO = "seo"

    @property
    def scale(self) -> ScoreScale:
        return ScoreScale.LEGACY if self is AuditKind.LEGACY else ScoreScale.CURRENT


class LeadStatus(StrEnum):
    """Lead audit status."""

    NEW = "NEW"
    AUDITED = "AUDITED"


class ReportType(StrEnum):
    """Report snapshot types."""

    DESIGN = "design"
    SEO = "seo"
    FULL = "full"


@dataclass(frozen=True)
class LeadRef:
    """The fields of a lead the audit core reads."""

    id: uuid.UUID
    name: str | None = None
    website_url: str | None = None
    city: str | None = None
    status: LeadStatus = LeadStatus.NEW


@dataclass
class AuditRecord:
    """One live audit for a lead and kind.

    Legacy records carry plain-text findings and a confidence; current
    records carry structured findings and no confidence.
    """

    kind: AuditKind
    score: int
    findings: list[Any]
    extracted: dict[str, Any] = field(default_factory=dict)
    confidence: int | None = None
    error: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def failed(self) -> bool:
        return self.error is not None

    def findings_payload(self) -> list[Any]:
        """Findings in their stored JSON form."""
        return [f.to_dict() if isinstance(f, Finding) else f for f in self.findings]

    def content(self) -> dict[str, Any]:
        """Everything that is persisted except timestamps."""
        return {
            "score": self.score,
            "confidence": self.confidence,
            "findings": self.findings_payload(),
            "extracted": self.extracted,
            "error": self.error,
        }


@dataclass
class ReportSnapshot:
    """A frozen, publicly addressable copy of audit data."""

    lead_id: uuid.UUID
    type: ReportType
    data: dict[str, Any]
    public_id: str
    id: uuid.UUID | None = None
    viewed: bool = False
    viewed_at: datetime | None = None
    created_at: datetime | None = None

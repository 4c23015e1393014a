"""Report snapshot schemas."""

import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from worker.audit.records import ReportSnapshot, ReportType


class ReportCreate(BaseModel):
    """Schema for creating a report snapshot."""

    lead_id: uuid.UUID
    type: ReportType = Field(ReportType.FULL, description="design, seo or full")


class ReportCreatedResponse(BaseModel):
    """A newly created snapshot and its public link."""

    id: uuid.UUID | None
    public_id: str
    type: ReportType
    url: str


class ReportSummary(BaseModel):
    """Snapshot listing entry with view tracking."""

    id: uuid.UUID | None
    public_id: str
    type: ReportType
    url: str
    viewed: bool
    viewed_at: datetime | None = None
    created_at: datetime | None = None

    @classmethod
    def from_snapshot(cls, snapshot: ReportSnapshot, url: str) -> "ReportSummary":
        return cls(
            id=snapshot.id,
            public_id=snapshot.public_id,
            type=snapshot.type,
            url=url,
            viewed=snapshot.viewed,
            viewed_at=snapshot.viewed_at,
            created_at=snapshot.created_at,
        )


class ReportView(BaseModel):
    """Public view of a snapshot."""

    public_id: str
    type: ReportType
    data: dict[str, Any]
    created_at: datetime | None = None

    @classmethod
    def from_snapshot(cls, snapshot: ReportSnapshot) -> "ReportView":
        return cls(
            public_id=snapshot.public_id,
            type=snapshot.type,
            data=snapshot.data,
            created_at=snapshot.created_at,
        )

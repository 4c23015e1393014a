"""Report snapshot model."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, DateTime, ForeignKey, String, func
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from api.database import Base
from worker.audit.records import ReportSnapshot, ReportType

if TYPE_CHECKING:
    from api.models.lead import Lead


class Report(Base):
    """Report model - a frozen copy of a lead's audit data behind a public link."""

    __tablename__ = "reports"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )

    lead_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("leads.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    type: Mapped[str] = mapped_column(String(20), nullable=False)
    data: Mapped[dict] = mapped_column(JSONB, nullable=False)

    # Public link token
    public_id: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)

    # View tracking
    viewed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    viewed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    # Relationships
    lead: Mapped[Lead] = relationship("Lead", back_populates="reports")

    def to_snapshot(self) -> ReportSnapshot:
        return ReportSnapshot(
            id=self.id,
            lead_id=self.lead_id,
            type=ReportType(self.type),
            data=self.data,
            public_id=self.public_id,
            viewed=self.viewed,
            viewed_at=self.viewed_at,
            created_at=self.created_at,
        )

    def __repr__(self) -> str:
        return f"<Report {self.public_id} ({self.type})>"

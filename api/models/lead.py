"""Lead model."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, String, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from api.database import Base
from worker.audit.records import LeadRef, LeadStatus

if TYPE_CHECKING:
    from api.models.report import Report


class Lead(Base):
    """Lead model - a medical practice whose website gets audited."""

    __tablename__ = "leads"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    website_url: Mapped[str | None] = mapped_column(String(2048), nullable=True)
    city: Mapped[str | None] = mapped_column(String(255), nullable=True)

    status: Mapped[str] = mapped_column(
        String(50),
        default=LeadStatus.NEW.value,
        nullable=False,
        index=True,
    )

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

    # Relationships
    reports: Mapped[list[Report]] = relationship(
        "Report",
        back_populates="lead",
        cascade="all, delete-orphan",
    )

    def to_ref(self) -> LeadRef:
        return LeadRef(
            id=self.id,
            name=self.name,
            website_url=self.website_url,
            city=self.city,
            status=LeadStatus(self.status),
        )

    def __repr__(self) -> str:
        return f"<Lead {self.name}>"

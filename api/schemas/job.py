"""Job-related Pydantic schemas."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class JobStatusResponse(BaseModel):
    """Response schema for job status."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    status: str
    created_at: datetime | None = None
    started_at: datetime | None = None
    ended_at: datetime | None = None
    result: Any | None = None
    error: str | None = None
    meta: dict[str, Any] = Field(default_factory=dict)

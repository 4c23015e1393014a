"""Persistence gateway used by the audit core.

Implementations must make ``upsert_audit`` atomic per (lead, kind): the
same key always replaces the single live record, never duplicates it.
Snapshots are append-only; only their view tracking may change.
"""

import uuid
from typing import Protocol

from worker.audit.records import AuditKind, AuditRecord, LeadRef, ReportSnapshot


class AuditStore(Protocol):
    """Read/write operations the audit core needs from storage."""

    async def get_lead(self, lead_id: uuid.UUID) -> LeadRef | None: ...

    async def mark_audited(self, lead_id: uuid.UUID) -> None: ...

    async def upsert_audit(
        self,
        lead_id: uuid.UUID,
        kind: AuditKind,
        record: AuditRecord,
    ) -> AuditRecord: ...

    async def get_audit(self, lead_id: uuid.UUID, kind: AuditKind) -> AuditRecord | None: ...

    async def create_snapshot(self, snapshot: ReportSnapshot) -> ReportSnapshot: ...

    async def list_snapshots(self, lead_id: uuid.UUID) -> list[ReportSnapshot]: ...

    async def get_snapshot(self, public_id: str) -> ReportSnapshot | None: ...

    async def mark_snapshot_viewed(self, public_id: str) -> ReportSnapshot | None: ...

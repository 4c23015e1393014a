"""PostgreSQL-backed audit store."""

import uuid
from datetime import UTC, datetime

import structlog
from sqlalchemy import func, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from api.exceptions import PersistenceError
from api.models import AUDIT_MODELS, Lead, Report
from worker.audit.records import (
    AuditKind,
    AuditRecord,
    LeadRef,
    LeadStatus,
    ReportSnapshot,
)

logger = structlog.get_logger(__name__)


class SqlAuditStore:
    """
    Audit store on an async SQLAlchemy session.

    Writes run inside a SAVEPOINT so one lead's failed write does not
    poison the surrounding request or batch transaction. The session is
    committed by its owner (``get_db`` or the background task).
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_lead(self, lead_id: uuid.UUID) -> LeadRef | None:
        try:
            lead = await self.db.get(Lead, lead_id)
        except SQLAlchemyError as e:
            raise PersistenceError("get_lead", str(e)) from e
        return lead.to_ref() if lead else None

    async def mark_audited(self, lead_id: uuid.UUID) -> None:
        try:
            async with self.db.begin_nested():
                await self.db.execute(
                    update(Lead)
                    .where(Lead.id == lead_id)
                    .values(status=LeadStatus.AUDITED.value, updated_at=func.now())
                )
        except SQLAlchemyError as e:
            raise PersistenceError("mark_audited", str(e)) from e

    async def upsert_audit(
        self,
        lead_id: uuid.UUID,
        kind: AuditKind,
        record: AuditRecord,
    ) -> AuditRecord:
        """Create or replace the single live record for (lead, kind)."""
        model = AUDIT_MODELS[kind]
        values = record.content()
        if kind is not AuditKind.LEGACY:
            values.pop("confidence")

        stmt = (
            pg_insert(model)
            .values(id=uuid.uuid4(), lead_id=lead_id, **values)
            .on_conflict_do_update(
                index_elements=[model.lead_id],
                set_={**values, "updated_at": func.now()},
            )
            .returning(model)
        )

        try:
            async with self.db.begin_nested():
                result = await self.db.scalars(
                    stmt, execution_options={"populate_existing": True}
                )
                row = result.one()
        except SQLAlchemyError as e:
            logger.error(
                "audit_persist_failed", lead_id=str(lead_id), kind=kind.value, error=str(e)
            )
            raise PersistenceError("upsert_audit", str(e)) from e

        return row.to_record()

    async def get_audit(self, lead_id: uuid.UUID, kind: AuditKind) -> AuditRecord | None:
        model = AUDIT_MODELS[kind]
        try:
            result = await self.db.execute(select(model).where(model.lead_id == lead_id))
            row = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise PersistenceError("get_audit", str(e)) from e
        return row.to_record() if row else None

    async def create_snapshot(self, snapshot: ReportSnapshot) -> ReportSnapshot:
        report = Report(
            lead_id=snapshot.lead_id,
            type=snapshot.type.value,
            data=snapshot.data,
            public_id=snapshot.public_id,
        )
        try:
            async with self.db.begin_nested():
                self.db.add(report)
                await self.db.flush()
            await self.db.refresh(report)
        except SQLAlchemyError as e:
            raise PersistenceError("create_snapshot", str(e)) from e
        return report.to_snapshot()

    async def list_snapshots(self, lead_id: uuid.UUID) -> list[ReportSnapshot]:
        try:
            result = await self.db.execute(
                select(Report)
                .where(Report.lead_id == lead_id)
                .order_by(Report.created_at.desc())
            )
        except SQLAlchemyError as e:
            raise PersistenceError("list_snapshots", str(e)) from e
        return [r.to_snapshot() for r in result.scalars().all()]

    async def get_snapshot(self, public_id: str) -> ReportSnapshot | None:
        try:
            result = await self.db.execute(select(Report).where(Report.public_id == public_id))
            report = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise PersistenceError("get_snapshot", str(e)) from e
        return report.to_snapshot() if report else None

    async def mark_snapshot_viewed(self, public_id: str) -> ReportSnapshot | None:
        """Set view tracking on first open; later opens leave it unchanged."""
        try:
            async with self.db.begin_nested():
                await self.db.execute(
                    update(Report)
                    .where(Report.public_id == public_id, Report.viewed.is_(False))
                    .values(viewed=True, viewed_at=datetime.now(UTC))
                    .execution_options(synchronize_session=False)
                )
            result = await self.db.execute(
                select(Report)
                .where(Report.public_id == public_id)
                .execution_options(populate_existing=True)
            )
            report = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise PersistenceError("mark_snapshot_viewed", str(e)) from e
        return report.to_snapshot() if report else None

"""Tests for the background batch audit task."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from worker.audit.locks import AuditLockRegistry
from worker.audit.records import AuditKind
from worker.tasks.batch import run_batch_audit


def _session_maker(session: MagicMock) -> MagicMock:
    context = MagicMock()
    context.__aenter__ = AsyncMock(return_value=session)
    context.__aexit__ = AsyncMock(return_value=False)
    return MagicMock(return_value=MagicMock(return_value=context))


@pytest.fixture
def session() -> MagicMock:
    db = MagicMock()
    db.commit = AsyncMock()
    db.rollback = AsyncMock()
    return db


class TestRunBatchAudit:
    """Tests for run_batch_audit with storage and capture faked."""

    @pytest.mark.asyncio
    async def test_commits_and_returns_summary(self, store, capture, session) -> None:
        leads = [store.add_lead(website_url=f"https://p{i}.example") for i in range(2)]
        job = MagicMock()
        job.meta = {}

        with (
            patch("worker.tasks.batch.get_session_maker", _session_maker(session)),
            patch("worker.tasks.batch.SqlAuditStore", return_value=store),
            patch("worker.tasks.batch.build_lock_registry", return_value=AuditLockRegistry()),
            patch("worker.tasks.batch.build_capture", return_value=capture),
            patch("worker.tasks.batch.get_current_job", return_value=job),
        ):
            result = await run_batch_audit([lead.id for lead in leads], AuditKind.LEGACY)

        assert result["summary"]["processed"] == 2
        assert result["summary"]["succeeded"] == 2
        assert [r["lead_id"] for r in result["results"]] == [str(lead.id) for lead in leads]
        session.commit.assert_awaited_once()
        assert job.meta["processed"] == 2
        job.save_meta.assert_called_once()

    @pytest.mark.asyncio
    async def test_rolls_back_on_persistence_failure(self, store, capture, session) -> None:
        lead = store.add_lead()
        store.failing_leads.add(lead.id)

        with (
            patch("worker.tasks.batch.get_session_maker", _session_maker(session)),
            patch("worker.tasks.batch.SqlAuditStore", return_value=store),
            patch("worker.tasks.batch.build_lock_registry", return_value=AuditLockRegistry()),
            patch("worker.tasks.batch.build_capture", return_value=capture),
            patch("worker.tasks.batch.get_current_job", return_value=None),
        ):
            result = await run_batch_audit([lead.id], AuditKind.LEGACY)

        # Persistence errors are per-lead failures inside a batch
        assert result["summary"]["failed"] == 1
        assert "upsert_audit failed" in result["results"][0]["error"]
        session.commit.assert_awaited_once()

"""Tests for batch audits."""

import uuid

import pytest

from api.exceptions import ValidationError
from tests.fixtures.pages import COMPLETE_PRACTICE_HTML, timeout_error
from worker.audit.batch import BatchAuditor, BatchResult, validate_batch
from worker.audit.pipeline import AuditOutcome, LeadAuditor
from worker.audit.records import AuditKind, LeadStatus


@pytest.fixture
def batch(store, locks, capture) -> BatchAuditor:
    return BatchAuditor(LeadAuditor(store=store, locks=locks, capture=capture), max_batch_size=5)


class TestValidateBatch:
    """Tests for batch validation."""

    def test_empty(self) -> None:
        with pytest.raises(ValidationError, match="at least one"):
            validate_batch([], 10)

    def test_oversized(self) -> None:
        with pytest.raises(ValidationError, match="Maximum 3 leads per batch"):
            validate_batch([uuid.uuid4() for _ in range(4)], 3)

    def test_duplicates(self) -> None:
        lead_id = uuid.uuid4()
        with pytest.raises(ValidationError, match="duplicates"):
            validate_batch([lead_id, lead_id], 10)

    def test_at_limit_is_accepted(self) -> None:
        validate_batch([uuid.uuid4() for _ in range(3)], 3)


class TestBatchAuditor:
    """Tests for sequential batch execution."""

    @pytest.mark.asyncio
    async def test_one_timeout_does_not_abort(self, store, capture, batch) -> None:
        """Three leads where the second times out yield three results in order."""
        leads = [
            store.add_lead(name=f"Practice {i}", website_url=f"https://practice{i}.example")
            for i in range(3)
        ]
        capture.pages[leads[0].website_url] = COMPLETE_PRACTICE_HTML
        capture.pages[leads[1].website_url] = timeout_error(leads[1].website_url)
        capture.pages[leads[2].website_url] = COMPLETE_PRACTICE_HTML

        result = await batch.run([lead.id for lead in leads])

        assert [r.lead_id for r in result.results] == [lead.id for lead in leads]
        assert result.processed == 3
        assert result.succeeded == 2
        assert result.failed == 1
        assert "timeout" in result.results[1].error
        assert result.results[1].score == 1
        assert all(store.leads[lead.id].status is LeadStatus.AUDITED for lead in leads)
        assert capture.calls == [lead.website_url for lead in leads]

    @pytest.mark.asyncio
    async def test_unknown_and_conflicting_leads_reported(self, store, locks, batch) -> None:
        """Rejected leads get a result entry and the batch continues."""
        ok = store.add_lead(website_url="https://ok.example")
        busy = store.add_lead(website_url="https://busy.example")
        no_site = store.add_lead(website_url=None)
        unknown = uuid.uuid4()
        locks.acquire(str(busy.id))

        result = await batch.run([unknown, busy.id, no_site.id, ok.id])

        assert result.processed == 4
        assert result.succeeded == 1
        errors = [r.error for r in result.results]
        assert "not found" in errors[0]
        assert errors[1] == "Audit already in progress for this lead"
        assert errors[2] == "Lead has no website URL"
        assert errors[3] is None
        assert (busy.id, AuditKind.LEGACY) not in store.audits

    @pytest.mark.asyncio
    async def test_invalid_batch_has_no_side_effects(self, store, capture, batch) -> None:
        leads = [store.add_lead() for _ in range(6)]

        with pytest.raises(ValidationError):
            await batch.run([lead.id for lead in leads])

        assert capture.calls == []

    @pytest.mark.asyncio
    async def test_kind_applies_to_all(self, store, batch) -> None:
        leads = [store.add_lead(website_url=f"https://p{i}.example") for i in range(2)]

        result = await batch.run([lead.id for lead in leads], AuditKind.SEO)

        assert all(r.kind is AuditKind.SEO for r in result.results)
        assert all((lead.id, AuditKind.SEO) in store.audits for lead in leads)


class TestBatchResult:
    """Tests for the batch result shape."""

    def test_to_dict(self) -> None:
        ok_id, bad_id = uuid.uuid4(), uuid.uuid4()
        result = BatchResult(
            results=[
                AuditOutcome(lead_id=ok_id, kind=AuditKind.LEGACY, success=True, score=8),
                AuditOutcome.rejected(bad_id, AuditKind.LEGACY, "Lead not found"),
            ],
            duration_ms=1200,
        )

        data = result.to_dict()

        assert data["summary"] == {
            "processed": 2,
            "succeeded": 1,
            "failed": 1,
            "duration_ms": 1200,
        }
        assert data["results"][0]["lead_id"] == str(ok_id)
        assert data["results"][1]["error"] == "Lead not found"

"""Tests for the scoring engine."""

import pytest

from tests.fixtures.pages import (
    BARE_HTML,
    COMPLETE_PRACTICE_HTML,
    PORTAL_ONLY_HTML,
    capture_from_html,
)
from worker.audit import detectors as d
from worker.audit.detectors import default_registry
from worker.audit.findings import Finding, Impact
from worker.audit.records import AuditKind
from worker.audit.scoring import (
    CONFIDENCE_FAILED,
    CONFIDENCE_FULL,
    CONFIDENCE_THIN,
    CurrentScore,
    LegacyScore,
    as_current,
    build_record,
    design_findings,
    failure_record,
    legacy_findings,
    legacy_to_current,
    record_score,
    score_current,
    score_legacy,
    seo_findings,
)

ALL_PRESENT = {name: True for name in default_registry().names}
ALL_MISSING = {name: False for name in default_registry().names}


def _outcome(**present: bool) -> dict[str, bool]:
    outcome = dict(ALL_MISSING)
    outcome.update(present)
    return outcome


class TestLegacyScore:
    """Tests for the 1-10 policy."""

    def test_everything_present(self) -> None:
        """A page with every check scores 10."""
        assert score_legacy(ALL_PRESENT, content_length=500).score == 10

    def test_everything_missing_floors_at_two(self) -> None:
        """All penalties together take 8 points off."""
        assert score_legacy(ALL_MISSING, content_length=500).score == 2

    def test_only_portal_rounds_half_up(self) -> None:
        """2.5 rounds up to 3."""
        result = score_legacy(_outcome(**{d.PATIENT_PORTAL: True}), content_length=500)
        assert result.score == 3

    def test_missing_new_patient_only(self) -> None:
        """9.5 rounds up to 10."""
        outcome = dict(ALL_PRESENT)
        outcome[d.NEW_PATIENT] = False
        assert score_legacy(outcome, content_length=500).score == 10

    def test_missing_phone_and_appointment(self) -> None:
        outcome = dict(ALL_PRESENT)
        outcome[d.PHONE] = False
        outcome[d.APPOINTMENT] = False
        assert score_legacy(outcome, content_length=500).score == 6

    def test_unscored_checks_do_not_matter(self) -> None:
        """Testimonials, services and location never change the legacy score."""
        outcome = dict(ALL_PRESENT)
        outcome[d.TESTIMONIALS] = False
        outcome[d.SERVICES] = False
        outcome[d.LOCATION] = False
        assert score_legacy(outcome, content_length=500).score == 10

    def test_confidence_depends_on_content_length(self) -> None:
        """Thin pages get lower confidence; the threshold is exclusive."""
        assert score_legacy(ALL_PRESENT, 201).confidence == CONFIDENCE_FULL
        assert score_legacy(ALL_PRESENT, 200).confidence == CONFIDENCE_THIN
        assert score_legacy(ALL_PRESENT, 50, min_content_length=40).confidence == CONFIDENCE_FULL

    def test_findings_order_and_cap(self) -> None:
        """Findings follow the fixed priority order and cover six checks."""
        findings = legacy_findings(ALL_MISSING)
        assert len(findings) == 6
        assert findings[0].startswith("No clear booking or appointment section")
        assert findings[1].startswith("Phone number not easily found")
        assert findings[-1].startswith("No new patient section")

    def test_no_findings_when_complete(self) -> None:
        assert legacy_findings(ALL_PRESENT) == []

    def test_portal_has_no_finding(self) -> None:
        """A missing portal costs points but produces no legacy finding."""
        outcome = dict(ALL_PRESENT)
        outcome[d.PATIENT_PORTAL] = False
        assert legacy_findings(outcome) == []


class TestScoreGenerations:
    """Tests for legacy and current score types."""

    @pytest.mark.parametrize("score", [0, 11])
    def test_legacy_range(self, score: int) -> None:
        with pytest.raises(ValueError):
            LegacyScore(score=score, confidence=3)

    @pytest.mark.parametrize("confidence", [0, 6])
    def test_confidence_range(self, confidence: int) -> None:
        with pytest.raises(ValueError):
            LegacyScore(score=5, confidence=confidence)

    @pytest.mark.parametrize("score", [-1, 101])
    def test_current_range(self, score: int) -> None:
        with pytest.raises(ValueError):
            CurrentScore(score=score)

    def test_legacy_to_current(self) -> None:
        assert legacy_to_current(LegacyScore(score=7, confidence=4)).score == 70
        assert legacy_to_current(LegacyScore(score=1, confidence=1)).score == 10

    def test_as_current(self) -> None:
        assert as_current(LegacyScore(score=4, confidence=2)).score == 40
        assert as_current(CurrentScore(score=63)).score == 63

    def test_record_score(self) -> None:
        """Stored records map to their own generation."""
        legacy = record_score(failure_record(AuditKind.LEGACY, "timeout"))
        current = record_score(failure_record(AuditKind.SEO, "timeout"))

        assert legacy == LegacyScore(score=1, confidence=CONFIDENCE_FAILED)
        assert current == CurrentScore(score=0)


class TestCurrentScore:
    """Tests for the 0-100 policy."""

    def test_no_findings(self) -> None:
        assert score_current([]).score == 100

    def test_penalties_by_impact(self) -> None:
        findings = [
            Finding("A", "critical issue", Impact.CRITICAL),
            Finding("A", "major issue", Impact.MAJOR),
            Finding("A", "moderate issue", Impact.MODERATE),
            Finding("A", "minor issue", Impact.MINOR),
        ]
        assert score_current(findings).score == 50

    def test_clamped_at_zero(self) -> None:
        findings = [Finding("A", f"issue {i}", Impact.CRITICAL) for i in range(6)]
        assert score_current(findings).score == 0


class TestDesignFindings:
    """Tests for design findings on captured pages."""

    def test_complete_page_has_no_findings(self) -> None:
        capture = capture_from_html("https://example.com", COMPLETE_PRACTICE_HTML)
        outcome = default_registry().evaluate(capture.text)
        assert design_findings(outcome, capture) == []

    def test_bare_page_is_capped_and_ordered(self) -> None:
        """At most ten findings, critical conversion issues first."""
        capture = capture_from_html("https://example.com", BARE_HTML)
        outcome = default_registry().evaluate(capture.text)
        findings = design_findings(outcome, capture)

        assert len(findings) == 10
        assert findings[0].issue == "No clear appointment booking button"
        assert findings[0].impact is Impact.CRITICAL
        assert findings[1].issue == "Phone number not visible or not clickable"

    def test_phone_text_without_tel_link(self) -> None:
        """A visible but unlinked number is a major mobile finding."""
        html = "<html><body><p>Call (555) 123-4567</p></body></html>"
        capture = capture_from_html("https://example.com", html)
        outcome = default_registry().evaluate(capture.text)
        issues = {f.issue: f for f in design_findings(outcome, capture)}

        assert "Phone number is displayed but not clickable" in issues
        assert issues["Phone number is displayed but not clickable"].impact is Impact.MAJOR
        assert "Phone number not visible or not clickable" not in issues


class TestSeoFindings:
    """Tests for SEO findings on captured pages."""

    def test_complete_page_only_thin_content(self) -> None:
        capture = capture_from_html("https://example.com", COMPLETE_PRACTICE_HTML)
        outcome = default_registry().evaluate(capture.text)
        findings = seo_findings(outcome, capture)

        assert [f.issue for f in findings] == ["Thin content (low word count)"]
        assert findings[0].details == f"{capture.word_count} words on the page"

    def test_bare_page(self) -> None:
        capture = capture_from_html("https://example.com", BARE_HTML)
        outcome = default_registry().evaluate(capture.text)
        findings = seo_findings(outcome, capture)

        assert [f.impact for f in findings] == [
            Impact.CRITICAL,  # short title
            Impact.MAJOR,  # no location content
            Impact.MODERATE,  # no meta description
            Impact.MODERATE,  # no structured data
            Impact.MODERATE,  # thin content
        ]
        assert score_current(findings).score == 35

    def test_plain_http_flagged(self) -> None:
        capture = capture_from_html("http://example.com", COMPLETE_PRACTICE_HTML)
        outcome = default_registry().evaluate(capture.text)
        issues = [f.issue for f in seo_findings(outcome, capture)]
        assert "Website not using HTTPS" in issues

    def test_long_title_flagged(self) -> None:
        html = f"<html><head><title>{'Family Medicine ' * 6}</title></head><body></body></html>"
        capture = capture_from_html("https://example.com", html)
        findings = seo_findings(default_registry().evaluate(capture.text), capture)
        assert findings[0].issue == "Page title too long (may be truncated in search results)"
        assert findings[0].impact is Impact.MODERATE

    def test_missing_alt_text(self) -> None:
        html = '<html><body><img src="a.png"><img src="b.png" alt="Dr. Lee"></body></html>'
        capture = capture_from_html("https://example.com", html)
        findings = seo_findings(default_registry().evaluate(capture.text), capture)
        assert findings[-1].issue == "Images missing alt text"
        assert findings[-1].details == "1 of 2 images"


class TestBuildRecord:
    """Tests for record construction."""

    def test_legacy_record_for_complete_page(self) -> None:
        capture = capture_from_html("https://example.com", COMPLETE_PRACTICE_HTML)
        outcome = default_registry().evaluate(capture.text)
        record = build_record(AuditKind.LEGACY, outcome, capture)

        assert record.score == 10
        assert record.confidence == CONFIDENCE_FULL
        assert record.findings == []
        assert record.failed is False
        assert record.extracted["title"] == capture.title
        assert record.extracted["textContentLength"] == capture.content_length
        assert record.extracted[d.APPOINTMENT] is True

    def test_legacy_record_portal_only(self) -> None:
        capture = capture_from_html("https://example.com", PORTAL_ONLY_HTML)
        outcome = default_registry().evaluate(capture.text)
        record = build_record(AuditKind.LEGACY, outcome, capture)

        assert record.score == 3
        assert record.confidence == CONFIDENCE_THIN
        assert len(record.findings) == 6

    def test_design_record_carries_signals(self) -> None:
        capture = capture_from_html("https://example.com", COMPLETE_PRACTICE_HTML)
        outcome = default_registry().evaluate(capture.text)
        record = build_record(AuditKind.DESIGN, outcome, capture)

        assert record.score == 100
        assert record.confidence is None
        assert record.extracted["has_viewport_meta"] is True
        assert record.extracted["tel_link_count"] == 1

    def test_seo_record_extracted_fields(self) -> None:
        capture = capture_from_html("https://example.com", COMPLETE_PRACTICE_HTML)
        outcome = default_registry().evaluate(capture.text)
        record = build_record(AuditKind.SEO, outcome, capture)

        assert record.score == 90
        assert record.extracted["isHttps"] is True
        assert record.extracted["hasStructuredData"] is True
        assert record.extracted["findingsCount"] == 1
        assert record.extracted["wordCount"] == capture.word_count

    def test_same_input_same_record(self) -> None:
        """Re-scoring the same page yields identical content."""
        capture = capture_from_html("https://example.com", COMPLETE_PRACTICE_HTML)
        outcome = default_registry().evaluate(capture.text)
        first = build_record(AuditKind.SEO, outcome, capture)
        second = build_record(AuditKind.SEO, outcome, capture)
        assert first.content() == second.content()


class TestFailureRecord:
    """Tests for floor-score records."""

    def test_legacy_failure(self) -> None:
        record = failure_record(AuditKind.LEGACY, "timeout")

        assert record.score == 1
        assert record.confidence == CONFIDENCE_FAILED
        assert record.findings == ["Website could not be loaded: timeout"]
        assert record.extracted == {}
        assert record.error == "timeout"
        assert record.failed is True

    @pytest.mark.parametrize("kind", [AuditKind.DESIGN, AuditKind.SEO])
    def test_current_failure(self, kind: AuditKind) -> None:
        record = failure_record(kind, "HTTP 503")

        assert record.score == 0
        assert record.confidence is None
        assert record.extracted == {"error": "HTTP 503"}
        assert len(record.findings) == 1
        finding = record.findings[0]
        assert finding.impact is Impact.CRITICAL
        assert finding.category == "Accessibility"
        assert finding.issue == "Website could not be loaded: HTTP 503"

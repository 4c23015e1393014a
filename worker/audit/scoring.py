"""Deterministic scoring of detector outcomes.

Two policies coexist:

* Legacy (1-10): start at 10, subtract a fixed penalty per missing check,
  round half up, clamp to [1, 10]. Comes with a 1-5 confidence.
* Current (0-100): start at 100, subtract a penalty per finding by impact,
  clamp to [0, 100].

Every function here is pure: identical inputs give identical records, which
is what makes re-audits idempotent.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from api.config import CURRENT_FAILURE_SCORE, LEGACY_FAILURE_SCORE
from worker.audit import detectors as d
from worker.audit.detectors import DetectorOutcome
from worker.audit.findings import Finding, Impact
from worker.audit.records import AuditKind, AuditRecord, ScoreScale

if TYPE_CHECKING:
    from worker.crawler.fetcher import CaptureResult

LEGACY_MIN, LEGACY_MAX = 1, 10
CURRENT_MIN, CURRENT_MAX = 0, 100

LEGACY_MAX_FINDINGS = 6
CURRENT_MAX_FINDINGS = 10

CONFIDENCE_FAILED = 1
CONFIDENCE_THIN = 2
CONFIDENCE_FULL = 4

# Penalty per missing check, in finding precedence order
LEGACY_PENALTIES: tuple[tuple[str, float], ...] = (
    (d.APPOINTMENT, 2.0),
    (d.PHONE, 2.0),
    (d.ADDRESS, 1.0),
    (d.HOURS, 1.0),
    (d.INSURANCE, 1.0),
    (d.NEW_PATIENT, 0.5),
    (d.PATIENT_PORTAL, 0.5),
)

LEGACY_FINDING_TEXT: tuple[tuple[str, str], ...] = (
    (d.APPOINTMENT, "No clear booking or appointment section - patients expect to schedule online."),
    (d.PHONE, "Phone number not easily found - patients can't easily contact the office."),
    (d.ADDRESS, "Office address not clearly displayed - hurts local SEO and trust."),
    (d.HOURS, "Business hours not visible - patients can't check when you're open."),
    (d.INSURANCE, "No insurance info - this is often the first thing patients look for."),
    (d.NEW_PATIENT, "No new patient section - first-time visitors need clear next steps."),
)

IMPACT_PENALTIES: dict[Impact, int] = {
    Impact.CRITICAL: 20,
    Impact.MAJOR: 15,
    Impact.MODERATE: 10,
    Impact.MINOR: 5,
}

SEO_TITLE_MIN, SEO_TITLE_MAX = 10, 60
SEO_MIN_WORDS = 300


# ============================================================================
# Score generations
# ============================================================================


@dataclass(frozen=True)
class LegacyScore:
    """Legacy 1-10 score with a 1-5 confidence."""

    score: int
    confidence: int

    def __post_init__(self) -> None:
        if not LEGACY_MIN <= self.score <= LEGACY_MAX:
            raise ValueError(f"legacy score {self.score} outside [1, 10]")
        if not 1 <= self.confidence <= 5:
            raise ValueError(f"confidence {self.confidence} outside [1, 5]")


@dataclass(frozen=True)
class CurrentScore:
    """Current 0-100 score."""

    score: int

    def __post_init__(self) -> None:
        if not CURRENT_MIN <= self.score <= CURRENT_MAX:
            raise ValueError(f"current score {self.score} outside [0, 100]")


ScoreGeneration = LegacyScore | CurrentScore


def legacy_to_current(legacy: LegacyScore) -> CurrentScore:
    """Convert a 1-10 score to the 0-100 scale."""
    return CurrentScore(score=legacy.score * 10)


def as_current(score: ScoreGeneration) -> CurrentScore:
    """Express either generation on the 0-100 scale."""
    return legacy_to_current(score) if isinstance(score, LegacyScore) else score


def record_score(record: AuditRecord) -> ScoreGeneration:
    """
    The typed score of a stored record.

    Raises:
        ValueError: the stored score is outside its generation's range.
    """
    if record.kind.scale is ScoreScale.LEGACY:
        return LegacyScore(score=record.score, confidence=record.confidence or CONFIDENCE_FAILED)
    return CurrentScore(score=record.score)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _clamp(value: int, low: int, high: int) -> int:
    return max(low, min(high, value))


# ============================================================================
# Legacy policy
# ============================================================================


def score_legacy(
    outcome: DetectorOutcome,
    content_length: int,
    min_content_length: int = 200,
) -> LegacyScore:
    """Score detector outcomes on the 1-10 scale."""
    raw = 10.0
    for check, penalty in LEGACY_PENALTIES:
        if not outcome.get(check, False):
            raw -= penalty

    score = _clamp(_round_half_up(raw), LEGACY_MIN, LEGACY_MAX)
    confidence = CONFIDENCE_FULL if content_length > min_content_length else CONFIDENCE_THIN
    return LegacyScore(score=score, confidence=confidence)


def legacy_findings(outcome: DetectorOutcome) -> list[str]:
    """Plain-text findings for missing checks, highest priority first."""
    findings = [text for check, text in LEGACY_FINDING_TEXT if not outcome.get(check, False)]
    return findings[:LEGACY_MAX_FINDINGS]


# ============================================================================
# Current policy
# ============================================================================


def score_current(findings: list[Finding]) -> CurrentScore:
    """Score a findings list on the 0-100 scale."""
    score = CURRENT_MAX - sum(IMPACT_PENALTIES[f.impact] for f in findings)
    return CurrentScore(score=_clamp(score, CURRENT_MIN, CURRENT_MAX))


def design_findings(outcome: DetectorOutcome, capture: CaptureResult) -> list[Finding]:
    """Conversion and design findings, ordered by priority and capped."""
    signals = capture.signals
    findings: list[Finding] = []

    # Critical: primary conversion elements
    if not (signals.has_appointment_link or outcome.get(d.APPOINTMENT, False)):
        findings.append(
            Finding(
                category="Conversion",
                issue="No clear appointment booking button",
                impact=Impact.CRITICAL,
                recommendation=(
                    "Add a prominent 'Book Appointment' or 'Schedule Now' button in the "
                    "header and hero section. Make it stand out with a contrasting color."
                ),
            )
        )

    has_phone = outcome.get(d.PHONE, False)
    if not signals.has_tel_links and not has_phone:
        findings.append(
            Finding(
                category="Conversion",
                issue="Phone number not visible or not clickable",
                impact=Impact.CRITICAL,
                recommendation=(
                    "Display the phone number prominently in the header and make it a "
                    "tap-to-call link for mobile users."
                ),
            )
        )
    elif not signals.has_tel_links:
        findings.append(
            Finding(
                category="Mobile Experience",
                issue="Phone number is displayed but not clickable",
                impact=Impact.MAJOR,
                recommendation=(
                    "Convert the phone number to a 'tel:' link so mobile users can tap "
                    "to call directly."
                ),
            )
        )

    # Major: trust and patient information
    if not outcome.get(d.ADDRESS, False):
        findings.append(
            Finding(
                category="Trust & Credibility",
                issue="Office address not prominently displayed",
                impact=Impact.MAJOR,
                recommendation=(
                    "Add the full address in the footer and consider an embedded map "
                    "for easy navigation."
                ),
            )
        )
    if not outcome.get(d.HOURS, False):
        findings.append(
            Finding(
                category="Trust & Credibility",
                issue="Office hours not listed",
                impact=Impact.MAJOR,
                recommendation=(
                    "Display office hours clearly on the homepage and contact page. "
                    "Patients need to know when they can reach you."
                ),
            )
        )
    if not outcome.get(d.INSURANCE, False):
        findings.append(
            Finding(
                category="Patient Information",
                issue="No insurance information visible",
                impact=Impact.MAJOR,
                recommendation=(
                    "Add an 'Insurance We Accept' section. This is one of the first "
                    "things new patients look for."
                ),
            )
        )
    if not outcome.get(d.NEW_PATIENT, False):
        findings.append(
            Finding(
                category="Patient Information",
                issue="No clear path for new patients",
                impact=Impact.MAJOR,
                recommendation=(
                    "Create a 'New Patients' section explaining how to get started, "
                    "what to bring, and what to expect."
                ),
            )
        )

    # Moderate: user experience
    if not signals.has_viewport_meta:
        findings.append(
            Finding(
                category="Mobile Experience",
                issue="Website may not be mobile-optimized",
                impact=Impact.MODERATE,
                recommendation=(
                    "Ensure the site is fully responsive. Most healthcare searches "
                    "happen on mobile devices."
                ),
            )
        )
    if not signals.has_hero_section:
        findings.append(
            Finding(
                category="Visual Design",
                issue="No clear hero section with value proposition",
                impact=Impact.MODERATE,
                recommendation=(
                    "Add a hero section with a clear headline, brief description, and "
                    "prominent call-to-action button."
                ),
            )
        )
    if not (signals.has_testimonials_markup or outcome.get(d.TESTIMONIALS, False)):
        findings.append(
            Finding(
                category="Trust & Credibility",
                issue="No patient testimonials or reviews",
                impact=Impact.MODERATE,
                recommendation=(
                    "Add a testimonials section with patient reviews. Social proof "
                    "increases conversion rates."
                ),
            )
        )
    if not signals.has_forms:
        findings.append(
            Finding(
                category="Conversion",
                issue="No contact or inquiry form",
                impact=Impact.MODERATE,
                recommendation=(
                    "Add a simple contact form for patients who prefer not to call. "
                    "Include fields for name, phone, email, and message."
                ),
            )
        )

    # Minor: nice-to-haves
    if not (signals.has_patient_portal_link or outcome.get(d.PATIENT_PORTAL, False)):
        findings.append(
            Finding(
                category="Patient Experience",
                issue="No patient portal link visible",
                impact=Impact.MINOR,
                recommendation=(
                    "If you have a patient portal, make it easily accessible from the "
                    "homepage header."
                ),
            )
        )
    if not signals.has_social_links:
        findings.append(
            Finding(
                category="Online Presence",
                issue="No social media links",
                impact=Impact.MINOR,
                recommendation=(
                    "Add links to the practice's social media profiles to build "
                    "community and trust."
                ),
            )
        )

    return findings[:CURRENT_MAX_FINDINGS]


def seo_findings(outcome: DetectorOutcome, capture: CaptureResult) -> list[Finding]:
    """On-page and local SEO findings, ordered by priority and capped."""
    signals = capture.signals
    title = capture.title.strip()
    findings: list[Finding] = []

    if len(title) < SEO_TITLE_MIN:
        findings.append(
            Finding(
                category="Meta Tags",
                issue="Missing or too short page title",
                impact=Impact.CRITICAL,
                recommendation="Add descriptive title tag (50-60 characters)",
            )
        )
    elif len(title) > SEO_TITLE_MAX:
        findings.append(
            Finding(
                category="Meta Tags",
                issue="Page title too long (may be truncated in search results)",
                impact=Impact.MODERATE,
                recommendation="Shorten title to 50-60 characters",
            )
        )

    if not capture.url.lower().startswith("https://"):
        findings.append(
            Finding(
                category="Security",
                issue="Website not using HTTPS",
                impact=Impact.MAJOR,
                recommendation="Install SSL certificate and redirect to HTTPS",
            )
        )

    if not outcome.get(d.LOCATION, False):
        findings.append(
            Finding(
                category="Local SEO",
                issue="No location-specific content",
                impact=Impact.MAJOR,
                recommendation="Add content about your service area and location",
            )
        )

    if not signals.meta_description:
        findings.append(
            Finding(
                category="Meta Tags",
                issue="Missing meta description",
                impact=Impact.MODERATE,
                recommendation="Write a 140-160 character description naming the practice and city",
            )
        )

    if not signals.has_structured_data:
        findings.append(
            Finding(
                category="Structured Data",
                issue="No structured data detected",
                impact=Impact.MODERATE,
                recommendation="Add LocalBusiness or MedicalBusiness schema markup",
            )
        )

    if capture.word_count < SEO_MIN_WORDS:
        findings.append(
            Finding(
                category="Content",
                issue="Thin content (low word count)",
                impact=Impact.MODERATE,
                recommendation="Add more detailed content about services and expertise",
                details=f"{capture.word_count} words on the page",
            )
        )

    if signals.images_missing_alt:
        findings.append(
            Finding(
                category="Accessibility",
                issue="Images missing alt text",
                impact=Impact.MINOR,
                recommendation="Add descriptive alt text to all images",
                details=f"{signals.images_missing_alt} of {signals.image_count} images",
            )
        )

    return findings[:CURRENT_MAX_FINDINGS]


# ============================================================================
# Records
# ============================================================================


def build_record(
    kind: AuditKind,
    outcome: DetectorOutcome,
    capture: CaptureResult,
    min_content_length: int = 200,
) -> AuditRecord:
    """Score one captured page into an audit record of the given kind."""
    extracted: dict[str, Any] = {
        "title": capture.title,
        **outcome,
        "textContentLength": capture.content_length,
    }

    if kind is AuditKind.LEGACY:
        legacy = score_legacy(outcome, capture.content_length, min_content_length)
        return AuditRecord(
            kind=kind,
            score=legacy.score,
            confidence=legacy.confidence,
            findings=legacy_findings(outcome),
            extracted=extracted,
        )

    if kind is AuditKind.DESIGN:
        findings = design_findings(outcome, capture)
        extracted.update(capture.signals.to_dict())
    else:
        findings = seo_findings(outcome, capture)
        extracted.update(
            {
                "titleLength": len(capture.title),
                "wordCount": capture.word_count,
                "isHttps": capture.url.lower().startswith("https://"),
                "hasStructuredData": capture.signals.has_structured_data,
                "findingsCount": len(findings),
            }
        )

    return AuditRecord(
        kind=kind,
        score=score_current(findings).score,
        findings=findings,
        extracted=extracted,
    )


def failure_record(kind: AuditKind, cause: str) -> AuditRecord:
    """Floor-score record for an attempt whose page could not be captured or scored."""
    issue = f"Website could not be loaded: {cause}"

    if kind is AuditKind.LEGACY:
        return AuditRecord(
            kind=kind,
            score=LEGACY_FAILURE_SCORE,
            confidence=CONFIDENCE_FAILED,
            findings=[issue],
            extracted={},
            error=cause,
        )

    return AuditRecord(
        kind=kind,
        score=CURRENT_FAILURE_SCORE,
        findings=[
            Finding(
                category="Accessibility",
                issue=issue,
                impact=Impact.CRITICAL,
                recommendation=(
                    "Ensure the website is accessible and loads within a reasonable time frame."
                ),
            )
        ],
        extracted={"error": cause},
        error=cause,
    )

"""Heuristic detectors for patient-facing practice website features.

Each detector is a named, pure predicate over the page's extracted
text. Detectors share no state and can run in any order; scoring only
ever sees the registry's output map, never the raw text.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable
from dataclasses import dataclass

DetectorOutcome = dict[str, bool]

# Check names
APPOINTMENT = "hasAppointmentKeywords"
PHONE = "hasPhoneVisible"
ADDRESS = "hasAddress"
HOURS = "hasHours"
INSURANCE = "hasInsurance"
NEW_PATIENT = "hasNewPatientInfo"
PATIENT_PORTAL = "hasPatientPortal"
TESTIMONIALS = "hasTestimonials"
SERVICES = "hasServices"
LOCATION = "hasLocationContent"

PHONE_PATTERN = re.compile(r"(\+?1?[-.\s]?)?\(?\d{3}\)?[-.\s]?\d{3}[-.\s]?\d{4}")

ADDRESS_PATTERNS = (
    re.compile(
        r"\d{1,5}\s+[a-z]+\s+(street|st|avenue|ave|road|rd|boulevard|blvd|drive|dr"
        r"|lane|ln|way|court|ct|parkway|pkwy)\b",
        re.IGNORECASE,
    ),
    re.compile(r"\bsuite\s+[a-z0-9]+", re.IGNORECASE),
    re.compile(r"\b\d{5}(-\d{4})?\b"),
)

HOURS_PATTERNS = (
    re.compile(r"\b(monday|tuesday|wednesday|thursday|friday|saturday|sunday)\b", re.IGNORECASE),
    re.compile(r"\b(mon|tue|wed|thu|fri|sat|sun)\s*[-–:]", re.IGNORECASE),
    re.compile(r"office hours|hours of operation", re.IGNORECASE),
    re.compile(
        r"\d{1,2}(:\d{2})?\s*(am|pm)\s*(-|–|to)+\s*\d{1,2}(:\d{2})?\s*(am|pm)",
        re.IGNORECASE,
    ),
)

APPOINTMENT_KEYWORDS = (
    "book",
    "schedule",
    "appointment",
    "request appointment",
    "book online",
)
INSURANCE_KEYWORDS = (
    "insurance",
    "accepted insurance",
    "we accept",
    "medicare",
    "medicaid",
    "blue cross",
    "aetna",
    "cigna",
    "united healthcare",
)
NEW_PATIENT_KEYWORDS = (
    "new patient",
    "new patients",
    "patient forms",
    "intake form",
    "first visit",
    "become a patient",
)
PATIENT_PORTAL_KEYWORDS = ("patient portal", "mychart", "patient login", "my health", "online portal")
TESTIMONIAL_KEYWORDS = ("testimonial", "reviews", "what our patients say", "patient stories", "5 stars")
SERVICES_KEYWORDS = ("our services", "services", "treatments", "procedures", "specialties")
LOCATION_KEYWORDS = ("city", "area", "serving", "located", "near")


def normalize_text(text: str) -> str:
    """Lower-case and collapse whitespace."""
    return " ".join(text.split()).lower()


def has_phone(text: str) -> bool:
    return PHONE_PATTERN.search(text) is not None


def has_address(text: str) -> bool:
    return any(p.search(text) for p in ADDRESS_PATTERNS)


def has_hours(text: str) -> bool:
    return any(p.search(text) for p in HOURS_PATTERNS)


def keyword_predicate(keywords: Iterable[str]) -> Callable[[str], bool]:
    """Build a case-insensitive any-substring predicate."""
    needles = tuple(k.lower() for k in keywords)

    def predicate(text: str) -> bool:
        lowered = text.lower()
        return any(k in lowered for k in needles)

    return predicate


@dataclass(frozen=True)
class Detector:
    """A named boolean check over page text."""

    name: str
    predicate: Callable[[str], bool]

    def __call__(self, text: str) -> bool:
        return bool(self.predicate(normalize_text(text)))


class DetectorRegistry:
    """Ordered collection of detectors evaluated independently."""

    def __init__(self, detectors: Iterable[Detector] = ()):
        self._detectors: dict[str, Detector] = {}
        for detector in detectors:
            self.register(detector)

    def register(self, detector: Detector) -> None:
        if detector.name in self._detectors:
            raise ValueError(f"Detector '{detector.name}' is already registered")
        self._detectors[detector.name] = detector

    @property
    def names(self) -> list[str]:
        return list(self._detectors)

    def get(self, name: str) -> Detector:
        return self._detectors[name]

    def evaluate(self, text: str) -> DetectorOutcome:
        """Run every detector against the same text."""
        normalized = normalize_text(text)
        return {name: bool(d.predicate(normalized)) for name, d in self._detectors.items()}


def default_registry() -> DetectorRegistry:
    """The standard practice-website checks."""
    return DetectorRegistry(
        [
            Detector(APPOINTMENT, keyword_predicate(APPOINTMENT_KEYWORDS)),
            Detector(PHONE, has_phone),
            Detector(ADDRESS, has_address),
            Detector(HOURS, has_hours),
            Detector(INSURANCE, keyword_predicate(INSURANCE_KEYWORDS)),
            Detector(NEW_PATIENT, keyword_predicate(NEW_PATIENT_KEYWORDS)),
            Detector(PATIENT_PORTAL, keyword_predicate(PATIENT_PORTAL_KEYWORDS)),
            Detector(TESTIMONIALS, keyword_predicate(TESTIMONIAL_KEYWORDS)),
            Detector(SERVICES, keyword_predicate(SERVICES_KEYWORDS)),
            Detector(LOCATION, keyword_predicate(LOCATION_KEYWORDS)),
        ]
    )

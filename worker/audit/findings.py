"""Structured audit findings."""

from dataclasses import dataclass
from enum import StrEnum
from typing import Any


class Impact(StrEnum):
    """How much a finding hurts patient conversion."""

    CRITICAL = "critical"
    MAJOR = "major"
    MODERATE = "moderate"
    MINOR = "minor"


@dataclass(frozen=True)
class Finding:
    """A single observation with a severity and a recommended fix."""

    category: str
    issue: str
    impact: Impact
    recommendation: str = ""
    details: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to the JSON shape stored on audit rows."""
        data: dict[str, Any] = {
            "category": self.category,
            "issue": self.issue,
            "impact": self.impact.value,
            "recommendation": self.recommendation,
        }
        if self.details:
            data["details"] = self.details
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Finding":
        """Build a finding from its stored JSON shape.

        Raises ValueError for an unknown impact or a missing issue.
        """
        issue = data.get("issue")
        if not isinstance(issue, str) or not issue:
            raise ValueError("finding is missing an issue")
        return cls(
            category=str(data.get("category") or "General"),
            issue=issue,
            impact=Impact(str(data.get("impact", "")).lower()),
            recommendation=str(data.get("recommendation") or ""),
            details=data.get("details") or None,
        )

    @classmethod
    def lifted_from_legacy(cls, text: str) -> "Finding":
        """Lift a legacy plain-text finding into the structured shape."""
        return cls(category="Design", issue=text, impact=Impact.MAJOR, recommendation="")

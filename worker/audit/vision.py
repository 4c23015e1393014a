"""Generative (vision model) scorer.

Sends a screenshot plus extracted text to an OpenAI-compatible chat
completions endpoint and turns the JSON answer into the same audit
records the deterministic engine produces.
"""

from __future__ import annotations

import base64
import json
import math
import time
from dataclasses import dataclass, field
from typing import Any

import httpx
import structlog

from api.exceptions import ExternalServiceError, ScoringError
from api.logging import log_domain
from worker.audit.findings import Finding
from worker.audit.records import AuditKind, AuditRecord
from worker.audit.scoring import CurrentScore

logger = structlog.get_logger(__name__)

SYSTEM_PROMPT = """You are an expert web design and SEO auditor specializing in medical practice websites.
You analyze websites from both a design/UX perspective and an SEO perspective.
You provide actionable, specific findings that a web designer can use to pitch services.

For medical practice websites, you understand:
- Patient journey and conversion optimization
- Trust signals and credibility markers
- Local SEO for healthcare
- Mobile-first medical search behavior
- Appointment booking optimization

Be specific and reference what you actually see in the screenshot and content."""

USER_PROMPT = """Analyze this medical practice website: {url}

SCREENSHOT: [Attached image]

PAGE CONTENT (extracted text):
{text}

Respond with JSON in exactly this shape:

{{
  "designScore": <0-100 score for design/UX>,
  "seoScore": <0-100 score for SEO>,
  "overallScore": <0-100 weighted average>,
  "designFindings": [
    {{"category": "<Conversion|Mobile|Trust|Visual|Navigation|Content>",
      "issue": "<specific issue observed>",
      "impact": "<critical|major|moderate|minor>",
      "recommendation": "<specific actionable fix>",
      "details": "<what you observed that led to this finding>"}}
  ],
  "seoFindings": [
    {{"category": "<On-Page|Technical|Local|Content|Performance>",
      "issue": "<specific SEO issue>",
      "impact": "<critical|major|moderate|minor>",
      "recommendation": "<specific fix>",
      "details": "<technical details>"}}
  ],
  "practiceInfo": {{
    "type": "<type of medical practice>",
    "specialties": ["<specialties mentioned>"],
    "services": ["<services offered>"],
    "location": "<city/state if mentioned>",
    "targetAudience": "<who the practice seems to target>",
    "uniqueSellingPoints": ["<what makes them different>"],
    "tone": "<professional|friendly|clinical|modern|outdated>"
  }},
  "summary": "<2-3 sentence executive summary>"
}}

Focus on findings that would justify a website redesign project.
Be honest but frame issues as opportunities for improvement.
Limit to 5-7 findings per category, prioritizing the most impactful issues."""


@dataclass
class ScoredAudit:
    """Validated result of a generative audit."""

    design_score: int
    seo_score: int
    overall_score: int
    design_findings: list[Finding]
    seo_findings: list[Finding]
    practice_info: dict[str, Any] = field(default_factory=dict)
    summary: str = ""

    @classmethod
    def from_payload(cls, data: Any) -> ScoredAudit:
        """
        Validate a decoded model response.

        Raises:
            ScoringError: if scores are missing or out of range, or findings
                are malformed.
        """
        if not isinstance(data, dict):
            raise ScoringError("Scorer response is not a JSON object")

        def score(key: str) -> int:
            value = data.get(key)
            if isinstance(value, bool) or not isinstance(value, int | float):
                raise ScoringError(f"Scorer response missing numeric '{key}'")
            if not math.isfinite(value):
                raise ScoringError(f"Scorer response '{key}' is not a finite number")
            try:
                return CurrentScore(score=round(value)).score
            except ValueError as e:
                raise ScoringError(str(e)) from e

        def findings(key: str) -> list[Finding]:
            raw = data.get(key) or []
            if not isinstance(raw, list):
                raise ScoringError(f"Scorer response '{key}' is not a list")
            try:
                return [Finding.from_dict(item) for item in raw]
            except (ValueError, AttributeError) as e:
                raise ScoringError(f"Malformed finding in '{key}': {e}") from e

        design_score = score("designScore")
        seo_score = score("seoScore")
        overall = data.get("overallScore")
        overall_score = (
            score("overallScore")
            if overall is not None
            else round((design_score + seo_score) / 2)
        )

        practice_info = data.get("practiceInfo") or {}
        if not isinstance(practice_info, dict):
            raise ScoringError("Scorer response 'practiceInfo' is not an object")

        return cls(
            design_score=design_score,
            seo_score=seo_score,
            overall_score=overall_score,
            design_findings=findings("designFindings"),
            seo_findings=findings("seoFindings"),
            practice_info=practice_info,
            summary=str(data.get("summary") or ""),
        )

    def design_record(self) -> AuditRecord:
        return AuditRecord(
            kind=AuditKind.DESIGN,
            score=self.design_score,
            findings=list(self.design_findings),
            extracted={"practiceInfo": self.practice_info, "summary": self.summary},
        )

    def seo_record(self) -> AuditRecord:
        return AuditRecord(
            kind=AuditKind.SEO,
            score=self.seo_score,
            findings=list(self.seo_findings),
            extracted={"practiceInfo": self.practice_info},
        )


class VisionScorer:
    """Scores a rendered page with a multimodal chat model."""

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o",
        base_url: str = "https://api.openai.com/v1",
        timeout_seconds: float = 60.0,
        max_text_chars: int = 8000,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self.max_text_chars = max_text_chars
        self._transport = transport

    def _payload(self, screenshot_png: bytes, text: str, url: str) -> dict[str, Any]:
        image = base64.b64encode(screenshot_png).decode("ascii")
        prompt = USER_PROMPT.format(url=url, text=text[: self.max_text_chars])
        return {
            "model": self.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": prompt},
                        {
                            "type": "image_url",
                            "image_url": {"url": f"data:image/png;base64,{image}", "detail": "high"},
                        },
                    ],
                },
            ],
            "response_format": {"type": "json_object"},
            "max_tokens": 4000,
            "temperature": 0.3,
        }

    async def score(self, screenshot_png: bytes, text: str, url: str) -> ScoredAudit:
        """
        Ask the model for design and SEO scores.

        Raises:
            ExternalServiceError: on timeout, transport failure or a non-200 reply.
            ScoringError: if the reply cannot be decoded into a ``ScoredAudit``.
        """
        started = time.perf_counter()
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout_seconds, transport=self._transport
            ) as client:
                response = await client.post(
                    f"{self.base_url}/chat/completions",
                    headers=headers,
                    json=self._payload(screenshot_png, text, url),
                )
        except httpx.TimeoutException as e:
            raise ExternalServiceError("vision scorer", "timeout") from e
        except httpx.HTTPError as e:
            raise ExternalServiceError("vision scorer", str(e) or type(e).__name__) from e

        if response.status_code != 200:
            raise ExternalServiceError(
                "vision scorer", f"HTTP {response.status_code}: {response.text[:200]}"
            )

        try:
            content = response.json()["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise ScoringError("Scorer returned an unexpected envelope") from e
        if not content:
            raise ScoringError("No response from scorer")

        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            raise ScoringError("Scorer response is not valid JSON") from e

        result = ScoredAudit.from_payload(data)
        logger.info(
            "vision_scored",
            domain=log_domain(url),
            model=self.model,
            design_score=result.design_score,
            seo_score=result.seo_score,
            latency_ms=round((time.perf_counter() - started) * 1000, 1),
        )
        return result

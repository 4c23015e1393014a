"""Single-page capture over HTTP with an overall timeout."""

import asyncio
import time
from dataclasses import dataclass
from datetime import UTC, datetime

import httpx
import structlog

from api.exceptions import CaptureFailedError
from api.logging import log_domain
from worker.extraction.page import ExtractedPage, PageSignals, extract_page

logger = structlog.get_logger(__name__)

DEFAULT_HEADERS = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.5",
}


@dataclass
class CaptureResult:
    """Extracted content of one page. Never persisted."""

    url: str
    final_url: str
    text: str
    title: str
    signals: PageSignals
    fetch_time_ms: int
    fetched_at: datetime

    @property
    def content_length(self) -> int:
        return len(self.text)

    @property
    def word_count(self) -> int:
        return len(self.text.split())

    @classmethod
    def from_page(
        cls,
        url: str,
        final_url: str,
        page: ExtractedPage,
        fetch_time_ms: int,
        fetched_at: datetime,
    ) -> "CaptureResult":
        return cls(
            url=url,
            final_url=final_url,
            text=page.text,
            title=page.title,
            signals=page.signals,
            fetch_time_ms=fetch_time_ms,
            fetched_at=fetched_at,
        )


class PageCapture:
    """
    Fetch-and-parse capture of a single page.

    Either a complete ``CaptureResult`` is returned or ``CaptureFailedError``
    is raised; there are no partial results. Timeouts are flagged so callers
    can tell them apart from other failures.
    """

    def __init__(
        self,
        user_agent: str,
        timeout: float = 20.0,
        max_bytes: int = 5_000_000,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.user_agent = user_agent
        self.timeout = timeout
        self.max_bytes = max_bytes
        self._transport = transport

    async def capture(self, url: str) -> CaptureResult:
        """
        Fetch ``url`` and extract its text and title.

        Raises:
            CaptureFailedError: on timeout, network/DNS failure, non-success
                status or a non-HTML response.
        """
        started = time.perf_counter()
        fetched_at = datetime.now(UTC)

        try:
            async with asyncio.timeout(self.timeout):
                response = await self._fetch(url)
        except (TimeoutError, httpx.TimeoutException) as e:
            logger.warning("capture_timeout", domain=log_domain(url), timeout_s=self.timeout)
            raise CaptureFailedError("timeout", timeout=True, url=url) from e
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            cause = str(e) or type(e).__name__
            logger.warning("capture_failed", domain=log_domain(url), error=cause)
            raise CaptureFailedError(cause, url=url) from e

        if not response.is_success:
            raise CaptureFailedError(f"HTTP {response.status_code}", url=url)

        content_type = response.headers.get("content-type", "")
        if content_type and "html" not in content_type.lower():
            raise CaptureFailedError(f"Unsupported content type: {content_type}", url=url)

        if len(response.content) > self.max_bytes:
            raise CaptureFailedError(
                f"Page too large ({len(response.content)} bytes)", url=url
            )

        page = extract_page(response.text)
        fetch_time_ms = int((time.perf_counter() - started) * 1000)

        logger.debug(
            "page_captured",
            domain=log_domain(url),
            content_length=page.content_length,
            fetch_time_ms=fetch_time_ms,
        )

        return CaptureResult.from_page(
            url=url,
            final_url=str(response.url),
            page=page,
            fetch_time_ms=fetch_time_ms,
            fetched_at=fetched_at,
        )

    async def _fetch(self, url: str) -> httpx.Response:
        async with httpx.AsyncClient(
            timeout=self.timeout,
            follow_redirects=True,
            max_redirects=5,
            transport=self._transport,
        ) as client:
            return await client.get(url, headers={"User-Agent": self.user_agent, **DEFAULT_HEADERS})

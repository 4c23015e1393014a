"""Headless-browser capture for the generative scoring path.

Renders a page with Playwright, takes a viewport screenshot and extracts
the same text/title/signals as the HTTP capture, under the same failure
contract.
"""

import asyncio
import time
from dataclasses import dataclass, field
from datetime import UTC, datetime

import structlog
from playwright.async_api import Browser, Page, Playwright, async_playwright
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeout

from api.exceptions import CaptureFailedError, ExternalServiceError
from api.logging import log_domain
from worker.crawler.fetcher import CaptureResult
from worker.extraction.page import extract_page

logger = structlog.get_logger(__name__)


@dataclass
class RendererConfig:
    """Configuration for the renderer."""

    timeout_seconds: float = 25.0
    settle_ms: int = 2000  # wait after load for lazy content
    viewport_width: int = 1440
    viewport_height: int = 900
    user_agent: str | None = None


@dataclass
class RenderedPage:
    """Screenshot plus extracted content of a rendered page."""

    screenshot_png: bytes
    capture: CaptureResult = field(repr=False)


class PageRenderer:
    """Renders pages using a Playwright headless browser."""

    def __init__(self, config: RendererConfig | None = None):
        self.config = config or RendererConfig()
        self._playwright: Playwright | None = None
        self._browser: Browser | None = None
        self._lock = asyncio.Lock()

    async def __aenter__(self) -> "PageRenderer":
        """Async context manager entry."""
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.stop()

    async def start(self) -> None:
        """
        Start the browser.

        Raises:
            ExternalServiceError: if Chromium cannot be launched.
        """
        async with self._lock:
            if self._browser is None:
                self._playwright = await async_playwright().start()
                try:
                    self._browser = await self._playwright.chromium.launch(headless=True)
                except PlaywrightError as e:
                    await self._playwright.stop()
                    self._playwright = None
                    raise ExternalServiceError("browser", str(e)) from e

    async def stop(self) -> None:
        """Stop the browser."""
        async with self._lock:
            if self._browser:
                await self._browser.close()
                self._browser = None
            if self._playwright:
                await self._playwright.stop()
                self._playwright = None

    async def render(self, url: str) -> RenderedPage:
        """
        Render ``url`` and capture a screenshot and its content.

        The whole render, settle wait and screenshot included, runs under
        one ``timeout_seconds`` budget.

        Raises:
            CaptureFailedError: on timeout or browser errors.
            ExternalServiceError: if Chromium cannot be launched.
        """
        if not self._browser:
            await self.start()

        started = time.perf_counter()
        fetched_at = datetime.now(UTC)
        timeout_ms = self.config.timeout_seconds * 1000

        page: Page | None = None
        try:
            async with asyncio.timeout(self.config.timeout_seconds):
                page = await self._browser.new_page(  # type: ignore[union-attr]
                    viewport={
                        "width": self.config.viewport_width,
                        "height": self.config.viewport_height,
                    },
                    user_agent=self.config.user_agent,
                )
                response = await page.goto(url, timeout=timeout_ms, wait_until="networkidle")
                if response is not None and not response.ok:
                    raise CaptureFailedError(f"HTTP {response.status}", url=url)

                await page.wait_for_timeout(self.config.settle_ms)

                screenshot = await page.screenshot(type="png", full_page=False)
                html = await page.content()
                final_url = page.url
        except (TimeoutError, PlaywrightTimeout) as e:
            logger.warning("render_timeout", domain=log_domain(url))
            raise CaptureFailedError("timeout", timeout=True, url=url) from e
        except PlaywrightError as e:
            logger.warning("render_failed", domain=log_domain(url), error=str(e))
            raise CaptureFailedError(str(e), url=url) from e
        finally:
            if page:
                await page.close()

        extracted = extract_page(html)
        return RenderedPage(
            screenshot_png=screenshot,
            capture=CaptureResult.from_page(
                url=url,
                final_url=final_url,
                page=extracted,
                fetch_time_ms=int((time.perf_counter() - started) * 1000),
                fetched_at=fetched_at,
            ),
        )

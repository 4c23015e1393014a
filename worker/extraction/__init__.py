"""HTML text and signal extraction."""

from worker.extraction.page import ExtractedPage, PageSignals, extract_page

__all__ = [
    "ExtractedPage",
    "PageSignals",
    "extract_page",
]

"""Page capture over HTTP and through a headless browser."""

# Use explicit imports when needed:
# from worker.crawler.fetcher import PageCapture, CaptureResult
# from worker.crawler.render import PageRenderer  (requires Playwright browsers)

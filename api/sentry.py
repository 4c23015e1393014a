"""Sentry error tracking integration."""

from __future__ import annotations

from typing import Any

import sentry_sdk
import structlog
from sentry_sdk.integrations.asyncio import AsyncioIntegration
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.httpx import HttpxIntegration
from sentry_sdk.integrations.logging import LoggingIntegration
from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration
from sentry_sdk.integrations.starlette import StarletteIntegration

from api.config import get_settings
from api.exceptions import AuditServiceError

logger = structlog.get_logger(__name__)

# Flag to track if Sentry is initialized
_sentry_initialized = False

IGNORED_TRANSACTIONS = {"/health", "/ready", "/metrics"}
SENSITIVE_HEADERS = ("authorization", "cookie", "x-api-key")


def init_sentry() -> bool:
    """Initialize Sentry SDK if configured.

    Returns True if Sentry was initialized, False otherwise.
    """
    global _sentry_initialized

    settings = get_settings()

    if not settings.sentry_dsn:
        logger.info("sentry_disabled", reason="SENTRY_DSN not configured")
        return False

    if _sentry_initialized:
        return True

    sentry_sdk.init(
        dsn=settings.sentry_dsn,
        environment=settings.env,
        release="practice-audit@0.1.0",
        sample_rate=1.0,
        traces_sample_rate=0.1 if settings.is_production else 1.0,
        send_default_pii=False,
        integrations=[
            FastApiIntegration(transaction_style="endpoint"),
            StarletteIntegration(transaction_style="endpoint"),
            SqlalchemyIntegration(),
            HttpxIntegration(),
            AsyncioIntegration(),
            LoggingIntegration(
                level=None,  # Capture all logs as breadcrumbs
                event_level=None,  # Don't create events for logs
            ),
        ],
        before_send=_before_send,
        before_send_transaction=_before_send_transaction,
    )

    _sentry_initialized = True
    logger.info("sentry_initialized", environment=settings.env)
    return True


def _before_send(event: dict[str, Any], hint: dict[str, Any]) -> dict[str, Any] | None:
    """Drop client errors and scrub sensitive headers."""
    if "exc_info" in hint:
        _, exc_value, _ = hint["exc_info"]
        # 4xx audit errors are caller mistakes or expected conflicts
        if isinstance(exc_value, AuditServiceError) and exc_value.status_code < 500:
            return None

    headers = event.get("request", {}).get("headers")
    if headers:
        for header in SENSITIVE_HEADERS:
            if header in headers:
                headers[header] = "[Filtered]"

    return event


def _before_send_transaction(
    event: dict[str, Any], hint: dict[str, Any]  # noqa: ARG001
) -> dict[str, Any] | None:
    """Filter health check and metrics transactions."""
    if event.get("transaction") in IGNORED_TRANSACTIONS:
        return None
    return event


def capture_exception(exception: BaseException) -> str | None:
    """Capture an exception and send to Sentry.

    Returns the event ID if captured, None otherwise.
    """
    if not _sentry_initialized:
        return None
    event_id: str | None = sentry_sdk.capture_exception(exception)
    return event_id

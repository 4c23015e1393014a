"""Builds the audit collaborators from settings.

Shared by the API dependencies and the background tasks so both entry
points lock and capture the same way.
"""

from api.config import Settings
from api.exceptions import ServiceUnavailableError
from worker.audit.locks import AuditLockRegistry, LockRegistry, RedisAuditLockRegistry
from worker.crawler.fetcher import PageCapture
from worker.redis import LOCK_PREFIX, get_redis_connection


def build_lock_registry(settings: Settings, backend: str | None = None) -> LockRegistry:
    """Lock registry for the configured backend, or ``backend`` when given."""
    if (backend or settings.lock_backend) == "redis":
        return RedisAuditLockRegistry(
            get_redis_connection(),
            prefix=LOCK_PREFIX,
            ttl_seconds=settings.lock_ttl_seconds,
        )
    return AuditLockRegistry()


def require_shared_locks(settings: Settings) -> None:
    """
    Refuse background work unless the API locks in Redis.

    Worker processes always lock in Redis; an in-process registry on the
    API side would let a single-lead audit and a queued batch hold the
    same lead at once.

    Raises:
        ServiceUnavailableError: the configured lock backend is not Redis.
    """
    if settings.lock_backend != "redis":
        raise ServiceUnavailableError(
            "Background audits require LOCK_BACKEND=redis so the API and workers share audit locks"
        )


def build_capture(settings: Settings) -> PageCapture:
    """HTTP page capture configured from settings."""
    return PageCapture(
        user_agent=settings.capture_user_agent,
        timeout=settings.capture_timeout_seconds,
        max_bytes=settings.capture_max_bytes,
    )

"""Per-lead audit locks.

At most one audit may be in flight for a lead at any time, whichever
entry point started it (single-lead endpoint, AI endpoint, batch job).
A registry is owned by the application and injected into the auditor;
there is no module-level lock table.

Locks carry no TTL in the in-memory backend. A holder that never
releases leaves the key locked, so callers go through ``hold()``,
which releases on every exit path.
"""

from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Protocol

import structlog
from redis import Redis

from api.exceptions import LockConflictError
from api.metrics import record_lock_conflict

logger = structlog.get_logger(__name__)


class LockRegistry(Protocol):
    """Mutual-exclusion table keyed by lead identifier."""

    def acquire(self, key: str) -> bool: ...

    def release(self, key: str) -> None: ...

    def is_held(self, key: str) -> bool: ...


class AuditLockRegistry:
    """In-process lock registry guarded by a mutex.

    Only covers a single process. Use ``RedisAuditLockRegistry`` when API
    processes and RQ workers audit the same leads.
    """

    def __init__(self) -> None:
        self._held: set[str] = set()
        self._mutex = threading.Lock()

    def acquire(self, key: str) -> bool:
        """Mark ``key`` as held. Returns False, without side effects, if it already is."""
        with self._mutex:
            if key in self._held:
                return False
            self._held.add(key)
            return True

    def release(self, key: str) -> None:
        """Clear the held marker. Safe for keys that were never held."""
        with self._mutex:
            self._held.discard(key)

    def is_held(self, key: str) -> bool:
        with self._mutex:
            return key in self._held

    def active_count(self) -> int:
        with self._mutex:
            return len(self._held)


class RedisAuditLockRegistry:
    """Lock registry shared across processes via Redis ``SET NX``."""

    def __init__(
        self,
        conn: Redis,
        prefix: str = "practice-audit:lock:",
        ttl_seconds: int | None = None,
    ):
        self._conn = conn
        self._prefix = prefix
        self._ttl = ttl_seconds

    def _key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    def acquire(self, key: str) -> bool:
        acquired = self._conn.set(self._key(key), "1", nx=True, ex=self._ttl)
        return bool(acquired)

    def release(self, key: str) -> None:
        self._conn.delete(self._key(key))

    def is_held(self, key: str) -> bool:
        return bool(self._conn.exists(self._key(key)))

    def active_count(self) -> int:
        return sum(1 for _ in self._conn.scan_iter(match=f"{self._prefix}*"))


@contextmanager
def hold(registry: LockRegistry, key: str) -> Iterator[str]:
    """
    Hold ``key`` for the duration of the block.

    Raises:
        LockConflictError: if another audit already holds the key.
    """
    if not registry.acquire(key):
        logger.warning("audit_lock_conflict", lock_key=key)
        record_lock_conflict()
        raise LockConflictError(key)
    try:
        yield key
    finally:
        registry.release(key)

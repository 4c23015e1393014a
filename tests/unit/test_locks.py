"""Tests for per-lead audit locks."""

import threading
from unittest.mock import MagicMock, patch

import pytest

from api.config import Settings
from api.exceptions import LockConflictError, ServiceUnavailableError
from worker.audit.factory import build_lock_registry, require_shared_locks
from worker.audit.locks import AuditLockRegistry, RedisAuditLockRegistry, hold


class TestAuditLockRegistry:
    """Tests for the in-process registry."""

    def test_acquire_free_key(self) -> None:
        """A free key can be acquired and is then held."""
        registry = AuditLockRegistry()
        assert registry.acquire("lead-1") is True
        assert registry.is_held("lead-1")

    def test_acquire_held_key_fails(self) -> None:
        """A held key cannot be acquired twice."""
        registry = AuditLockRegistry()
        registry.acquire("lead-1")
        assert registry.acquire("lead-1") is False
        assert registry.active_count() == 1

    def test_keys_are_independent(self) -> None:
        """Holding one lead does not block another."""
        registry = AuditLockRegistry()
        assert registry.acquire("lead-1")
        assert registry.acquire("lead-2")
        assert registry.active_count() == 2

    def test_release_frees_key(self) -> None:
        """After release the key can be acquired again."""
        registry = AuditLockRegistry()
        registry.acquire("lead-1")
        registry.release("lead-1")
        assert not registry.is_held("lead-1")
        assert registry.acquire("lead-1")

    def test_release_unknown_key_is_noop(self) -> None:
        """Releasing a key that was never held does nothing."""
        registry = AuditLockRegistry()
        registry.release("never-held")
        assert registry.active_count() == 0

    def test_concurrent_acquire_single_winner(self) -> None:
        """Only one of many racing threads acquires the same key."""
        registry = AuditLockRegistry()
        barrier = threading.Barrier(16)
        wins: list[bool] = []
        wins_lock = threading.Lock()

        def contend() -> None:
            barrier.wait()
            acquired = registry.acquire("lead-1")
            with wins_lock:
                wins.append(acquired)

        threads = [threading.Thread(target=contend) for _ in range(16)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert wins.count(True) == 1
        assert len(wins) == 16


class TestHold:
    """Tests for the hold() context manager."""

    def test_hold_releases_on_exit(self) -> None:
        """The key is held inside the block and free after it."""
        registry = AuditLockRegistry()
        with hold(registry, "lead-1") as key:
            assert key == "lead-1"
            assert registry.is_held("lead-1")
        assert not registry.is_held("lead-1")

    def test_hold_releases_on_exception(self) -> None:
        """The key is released when the block raises."""
        registry = AuditLockRegistry()
        with pytest.raises(RuntimeError):
            with hold(registry, "lead-1"):
                raise RuntimeError("capture exploded")
        assert not registry.is_held("lead-1")

    def test_hold_conflict(self) -> None:
        """A second holder gets a conflict and the first keeps the lock."""
        registry = AuditLockRegistry()
        with hold(registry, "lead-1"):
            with pytest.raises(LockConflictError) as exc_info:
                with hold(registry, "lead-1"):
                    pass
            assert registry.is_held("lead-1")

        assert exc_info.value.status_code == 409
        assert exc_info.value.key == "lead-1"
        assert not registry.is_held("lead-1")


class TestRedisAuditLockRegistry:
    """Tests for the Redis-backed registry against a mocked connection."""

    def test_acquire_uses_set_nx(self) -> None:
        """Acquire issues SET NX on the prefixed key."""
        conn = MagicMock()
        conn.set.return_value = True
        registry = RedisAuditLockRegistry(conn, prefix="test:lock:", ttl_seconds=60)

        assert registry.acquire("lead-1") is True
        conn.set.assert_called_once_with("test:lock:lead-1", "1", nx=True, ex=60)

    def test_acquire_held_returns_false(self) -> None:
        """SET NX returning None means someone else holds the key."""
        conn = MagicMock()
        conn.set.return_value = None
        registry = RedisAuditLockRegistry(conn, prefix="test:lock:")

        assert registry.acquire("lead-1") is False

    def test_release_deletes_key(self) -> None:
        """Release deletes the prefixed key."""
        conn = MagicMock()
        registry = RedisAuditLockRegistry(conn, prefix="test:lock:")

        registry.release("lead-1")
        conn.delete.assert_called_once_with("test:lock:lead-1")

    def test_is_held_checks_existence(self) -> None:
        """is_held reflects EXISTS."""
        conn = MagicMock()
        conn.exists.return_value = 1
        registry = RedisAuditLockRegistry(conn, prefix="test:lock:")

        assert registry.is_held("lead-1") is True
        conn.exists.assert_called_once_with("test:lock:lead-1")


class _KeyStore:
    """Just enough of a Redis connection for SET NX / DEL / EXISTS."""

    def __init__(self) -> None:
        self.keys: dict[str, str] = {}

    def set(self, name, value, nx=False, ex=None):
        if nx and name in self.keys:
            return None
        self.keys[name] = value
        return True

    def delete(self, name):
        return 1 if self.keys.pop(name, None) is not None else 0

    def exists(self, name):
        return int(name in self.keys)


class TestLocksAcrossEntryPoints:
    """The API process and the background worker must exclude each other."""

    def test_api_and_worker_share_redis_locks(self) -> None:
        """With the Redis backend a lead held by the API blocks the worker."""
        conn = _KeyStore()
        settings = Settings(lock_backend="redis")

        with patch("worker.audit.factory.get_redis_connection", return_value=conn):
            api_locks = build_lock_registry(settings)
            worker_locks = build_lock_registry(settings, backend="redis")

        assert api_locks.acquire("lead-1") is True
        assert worker_locks.acquire("lead-1") is False
        assert worker_locks.is_held("lead-1")

        api_locks.release("lead-1")
        assert worker_locks.acquire("lead-1") is True

    def test_memory_backend_refuses_background_work(self) -> None:
        """An in-process registry cannot see worker locks, so queuing is refused."""
        with pytest.raises(ServiceUnavailableError) as exc_info:
            require_shared_locks(Settings(lock_backend="memory"))

        assert exc_info.value.status_code == 503

    def test_redis_backend_allows_background_work(self) -> None:
        require_shared_locks(Settings(lock_backend="redis"))

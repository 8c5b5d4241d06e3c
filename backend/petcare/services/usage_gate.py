# petcare/services/usage_gate.py
import logging
import threading
from contextlib import contextmanager
from typing import Dict, Optional

from redis.exceptions import LockError, RedisError

from petcare.config import GUEST_USAGE_LIMIT, USAGE_BACKEND, USAGE_LOCK_TIMEOUT_SECONDS
from petcare.errors import ExternalServiceError, QuotaExceededError
from petcare.models.triage_models import UsageStatus
from petcare.services import redis_client
from petcare.services.redis_client import usage_key, usage_lock_key

logger = logging.getLogger(__name__)


# ------------------------------- Stores -------------------------------
class InMemoryUsageStore:
    """Counters in a dict, one lock per identity. Single-process deployments and tests.

    A per-identity lock lives only while some request holds or waits for it.
    """

    def __init__(self):
        self._counts: Dict[str, int] = {}
        self._locks: Dict[str, threading.Lock] = {}
        self._users: Dict[str, int] = {}
        self._registry = threading.Lock()

    def get(self, key: str) -> int:
        return self._counts.get(key, 0)

    def incr(self, key: str) -> int:
        with self._registry:
            self._counts[key] = self._counts.get(key, 0) + 1
            return self._counts[key]

    def reset(self, key: str) -> None:
        with self._registry:
            self._counts.pop(key, None)

    @contextmanager
    def lock(self, key: str):
        with self._registry:
            lock = self._locks.setdefault(key, threading.Lock())
            self._users[key] = self._users.get(key, 0) + 1
        try:
            with lock:
                yield
        finally:
            with self._registry:
                self._users[key] -= 1
                if not self._users[key]:
                    del self._users[key]
                    del self._locks[key]


class RedisUsageStore:
    """Counters as Redis keys, serialized per identity with a Redis lock."""

    def __init__(self, client=None, lock_timeout: float = USAGE_LOCK_TIMEOUT_SECONDS):
        self._r = client if client is not None else redis_client.r
        self._lock_timeout = lock_timeout

    def get(self, key: str) -> int:
        try:
            return int(self._r.get(usage_key(key)) or 0)
        except RedisError as e:
            raise ExternalServiceError(f"Usage store unavailable: {e}") from e

    def incr(self, key: str) -> int:
        try:
            return int(self._r.incr(usage_key(key)))
        except RedisError as e:
            raise ExternalServiceError(f"Usage store unavailable: {e}") from e

    def reset(self, key: str) -> None:
        self._r.delete(usage_key(key))

    @contextmanager
    def lock(self, key: str):
        lock = self._r.lock(usage_lock_key(key), timeout=self._lock_timeout, blocking_timeout=self._lock_timeout)
        try:
            acquired = lock.acquire()
        except RedisError as e:
            raise ExternalServiceError(f"Usage store unavailable: {e}") from e
        if not acquired:
            raise ExternalServiceError(f"Timed out waiting for usage lock of {key}")
        try:
            yield
        finally:
            try:
                lock.release()
            except LockError:
                logger.warning(f"⚠️ Usage lock for {key} expired before release")


# ------------------------------- Gate -------------------------------
class UsageGate:
    """Free-analysis quota for guest identities.

    `guard(identity)` must wrap check -> analysis -> increment so that two
    requests from the same guest cannot both pass the check. Different
    identities never share a lock.
    """

    def __init__(self, store, max_uses: int = GUEST_USAGE_LIMIT):
        self.store = store
        self.max_uses = max_uses

    def status(self, identity: str) -> UsageStatus:
        return UsageStatus(identity=identity, count=self.store.get(identity), limit=self.max_uses)

    def check(self, identity: str) -> UsageStatus:
        status = self.status(identity)
        if status.exhausted:
            logger.info(f"🚫 Guest {identity} refused: {status.count}/{status.limit} analyses used")
            raise QuotaExceededError(status.count, status.limit)
        return status

    def increment(self, identity: str) -> UsageStatus:
        count = self.store.incr(identity)
        logger.info(f"📈 Guest {identity} usage now {count}/{self.max_uses}")
        return UsageStatus(identity=identity, count=count, limit=self.max_uses)

    def reset(self, identity: str) -> None:
        with self.store.lock(identity):
            self.store.reset(identity)
        logger.info(f"🔄 Usage counter reset for {identity}")

    def guard(self, identity: str):
        return self.store.lock(identity)


# ------------------------------- Process-wide gate -------------------------------
_gate: Optional[UsageGate] = None
_gate_lock = threading.Lock()


def build_usage_store(backend: str = USAGE_BACKEND):
    if backend == "redis":
        return RedisUsageStore()
    if backend == "memory":
        return InMemoryUsageStore()
    raise ValueError(f"Unknown USAGE_BACKEND '{backend}' (expected 'memory' or 'redis')")


def get_usage_gate() -> UsageGate:
    global _gate
    if _gate is None:
        with _gate_lock:
            if _gate is None:
                _gate = UsageGate(build_usage_store())
    return _gate

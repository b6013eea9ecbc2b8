"""Process-level per-key locks serializing read-modify-write on a wallet.

The database row lock (SELECT ... FOR UPDATE) covers multiple processes on
PostgreSQL; this registry covers threads in one process and backends such
as SQLite that ignore row locks. Both are taken for every wallet mutation.
"""

import threading
import time
from contextlib import contextmanager
from typing import Dict, Hashable, Iterator

from creator_wallet.config import settings
from creator_wallet.domain.exceptions import WalletBusy
from creator_wallet.infrastructure.observability.metrics import lock_wait_histogram


class LockRegistry:
    """Hands out one re-entrant lock per key, created lazily"""

    def __init__(self, timeout: float | None = None):
        self._guard = threading.Lock()
        self._locks: Dict[Hashable, threading.RLock] = {}
        self.timeout = timeout if timeout is not None else settings.wallet_lock_timeout_seconds

    def _lock_for(self, key: Hashable) -> threading.RLock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.RLock()
                self._locks[key] = lock
            return lock

    @contextmanager
    def hold(self, key: Hashable) -> Iterator[None]:
        """Block until `key` is free (up to the timeout), then hold it"""
        lock = self._lock_for(key)
        start = time.monotonic()
        if not lock.acquire(timeout=self.timeout):
            raise WalletBusy(f"Timed out after {self.timeout}s waiting for {key!r}")
        lock_wait_histogram.observe(time.monotonic() - start)
        try:
            yield
        finally:
            lock.release()


# Shared by every session in the process
_registry: LockRegistry | None = None
_init_lock = threading.Lock()


def get_lock_registry() -> LockRegistry:
    global _registry
    if _registry is None:
        with _init_lock:
            if _registry is None:
                _registry = LockRegistry()
    return _registry

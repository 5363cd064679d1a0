"""Per-key mutual exclusion for ledger and billing commands.

Refund mutations on the same transaction and billing passes over the same
subscription must never interleave. Commands are dispatched through
process_exclusively(), which holds the key's lock around the whole command,
unit-of-work commit included.
"""

from collections.abc import Iterator
from contextlib import contextmanager
from threading import Lock, RLock

from protean.utils.globals import current_domain

from sandbox.config import get_config
from sandbox.exceptions import ResourceBusyError


class KeyedLock:
    """One re-entrant lock per key, created on demand and dropped when idle."""

    def __init__(self) -> None:
        self._guard = Lock()
        self._locks: dict[str, RLock] = {}
        self._holders: dict[str, int] = {}

    def _checkout(self, key: str) -> RLock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = RLock()
                self._locks[key] = lock
            self._holders[key] = self._holders.get(key, 0) + 1
            return lock

    def _checkin(self, key: str) -> None:
        with self._guard:
            self._holders[key] -= 1
            if self._holders[key] == 0:
                del self._holders[key]
                del self._locks[key]

    @contextmanager
    def hold(self, key: str, timeout: float | None = None) -> Iterator[None]:
        """Hold the lock for ``key``; raise ResourceBusyError if not acquired in time."""
        lock = self._checkout(key)
        acquired = lock.acquire(timeout=timeout) if timeout is not None else lock.acquire()
        if not acquired:
            self._checkin(key)
            raise ResourceBusyError(f"Another operation is in progress for {key}", key=key)
        try:
            yield
        finally:
            lock.release()
            self._checkin(key)

    def active_keys(self) -> list[str]:
        with self._guard:
            return list(self._locks)


_locks = KeyedLock()


def transaction_key(transaction_id: str) -> str:
    return f"transaction:{transaction_id}"


def subscription_key(subscription_id: str) -> str:
    return f"subscription:{subscription_id}"


def process_exclusively(command, key: str, timeout: float | None = None):
    """Process ``command`` synchronously while holding the lock for ``key``."""
    if timeout is None:
        timeout = get_config().billing.lock_timeout_seconds
    with _locks.hold(key, timeout=timeout):
        return current_domain.process(command, asynchronous=False)

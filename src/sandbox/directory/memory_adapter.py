"""In-memory account directory.

Every account is active until explicitly deactivated.
"""

from threading import Lock

from sandbox.directory.port import AccountDirectory


class InMemoryDirectory(AccountDirectory):
    def __init__(self) -> None:
        self._inactive: set[str] = set()
        self._lock = Lock()

    def is_active(self, account_id: str) -> bool:
        with self._lock:
            return bool(account_id) and str(account_id) not in self._inactive

    def deactivate(self, account_id: str) -> None:
        with self._lock:
            self._inactive.add(str(account_id))

    def activate(self, account_id: str) -> None:
        with self._lock:
            self._inactive.discard(str(account_id))

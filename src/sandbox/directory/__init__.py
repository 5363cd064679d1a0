"""Account directory factory.

Provides get_directory() / set_directory() to swap implementations.
"""

from sandbox.directory.memory_adapter import InMemoryDirectory
from sandbox.directory.port import AccountDirectory

_current_directory: AccountDirectory | None = None


def get_directory() -> AccountDirectory:
    """Return the current account directory (in-memory by default)."""
    global _current_directory
    if _current_directory is None:
        _current_directory = InMemoryDirectory()
    return _current_directory


def set_directory(directory: AccountDirectory) -> None:
    """Override the active account directory (useful for tests)."""
    global _current_directory
    _current_directory = directory


def reset_directory() -> None:
    """Reset to default directory."""
    global _current_directory
    _current_directory = None

"""Event notifier factory and the fire-and-forget notify() helper.

Provides get_notifier() / set_notifier() to swap implementations. Command
handlers call notify() after their changes are staged; a failing or slow
notifier is logged and never undoes the change that triggered it.
"""

import structlog

from sandbox.config import get_config
from sandbox.notifier.memory_adapter import InMemoryNotifier
from sandbox.notifier.port import EventNotifier, WebhookEvent
from sandbox.utils.timeouts import run_with_timeout

logger = structlog.get_logger(__name__)

_current_notifier: EventNotifier | None = None


def get_notifier() -> EventNotifier:
    """Return the current notifier (in-memory by default)."""
    global _current_notifier
    if _current_notifier is None:
        _current_notifier = InMemoryNotifier()
    return _current_notifier


def set_notifier(notifier: EventNotifier) -> None:
    """Override the active notifier (useful for tests)."""
    global _current_notifier
    _current_notifier = notifier


def reset_notifier() -> None:
    """Reset to default notifier."""
    global _current_notifier
    _current_notifier = None


def notify(event_name: str, payload: dict, merchant_id: str) -> WebhookEvent | None:
    """Emit ``event_name`` for ``merchant_id``; return the event, or None if emission failed."""
    event = WebhookEvent(event_name=event_name, merchant_id=str(merchant_id), payload=payload)
    try:
        run_with_timeout(get_notifier().emit, get_config().notifier.timeout_seconds, event)
    except Exception as exc:
        logger.warning(
            "Notification emission failed",
            event_name=event_name,
            merchant_id=str(merchant_id),
            error=str(exc),
        )
        return None
    return event

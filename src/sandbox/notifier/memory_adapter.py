"""In-memory notifier that records every emitted event.

Used as the default adapter in development and by tests that assert on the
notifications a command produced.
"""

from threading import Lock

from sandbox.notifier.port import EventNotifier, WebhookEvent


class InMemoryNotifier(EventNotifier):
    def __init__(self) -> None:
        self.events: list[WebhookEvent] = []
        self._lock = Lock()

    def emit(self, event: WebhookEvent) -> None:
        with self._lock:
            self.events.append(event)

    def names(self) -> list[str]:
        """Event names in emission order."""
        with self._lock:
            return [event.event_name for event in self.events]

    def for_merchant(self, merchant_id: str) -> list[WebhookEvent]:
        with self._lock:
            return [event for event in self.events if event.merchant_id == merchant_id]

    def clear(self) -> None:
        with self._lock:
            self.events.clear()

"""Event notifier port.

The sandbox hands lifecycle and ledger events to a notifier and forgets
about them. Delivery, retries and signing belong to the adapter.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import UTC, datetime
from uuid import uuid4


@dataclass(frozen=True)
class WebhookEvent:
    """An outbound notification for a merchant."""

    event_name: str
    merchant_id: str
    payload: dict
    event_id: str = field(default_factory=lambda: f"evt_{uuid4().hex}")
    occurred_at: datetime = field(default_factory=lambda: datetime.now(UTC))


class EventNotifier(ABC):
    @abstractmethod
    def emit(self, event: WebhookEvent) -> None:
        """Hand ``event`` over for delivery."""
        ...

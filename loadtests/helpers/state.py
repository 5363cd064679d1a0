"""Per-user state tracking for Locust load test scenarios.

Each Locust user instance maintains its own state and shares nothing with other users.
State tracks entity IDs returned by creation endpoints so follow-up
operations can reference them.
"""

from dataclasses import dataclass, field


@dataclass
class LedgerState:
    """Tracks a transaction and the refunds requested against it."""

    merchant_id: str | None = None
    transaction_id: str | None = None
    amount: int = 0
    refund_ids: list[str] = field(default_factory=list)
    refunded_amount: int = 0


@dataclass
class SubscriptionState:
    """Tracks state for a single simulated subscription lifecycle."""

    merchant_id: str | None = None
    subscription_id: str | None = None
    current_status: str = "active"
    next_billing_date: str | None = None

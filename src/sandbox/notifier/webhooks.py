"""Webhook notifications: the notifier reacts to refund and subscription events.

Each domain event that a merchant can subscribe to is forwarded through
notify() once the change that raised it has been committed. The payload is
the event's own fields, with datetimes rendered as ISO-8601 strings.
"""

from datetime import datetime

from protean import handle
from protean.utils.reflection import declared_fields

from sandbox.domain import sandbox
from sandbox.notifier import notify
from sandbox.refund.events import (
    RefundCancelled,
    RefundCompleted,
    RefundCreated,
    RefundFailed,
    RefundStatusOverridden,
)
from sandbox.refund.refund import Refund
from sandbox.subscription.events import (
    SubscriptionAmountUpdated,
    SubscriptionBilled,
    SubscriptionBillingFailed,
    SubscriptionCancellationScheduled,
    SubscriptionCancelled,
    SubscriptionCreated,
    SubscriptionPaused,
    SubscriptionReactivated,
    SubscriptionResumed,
)
from sandbox.subscription.subscription import Subscription


def event_payload(event) -> dict:
    payload = {}
    for name in declared_fields(event):
        if name.startswith("_"):
            continue
        value = getattr(event, name)
        payload[name] = value.isoformat() if isinstance(value, datetime) else value
    return payload


def _forward(event_name: str, event) -> None:
    notify(event_name, event_payload(event), str(event.merchant_id))


@sandbox.event_handler(part_of=Refund)
class RefundWebhookHandler:
    @handle(RefundCreated)
    def on_refund_created(self, event: RefundCreated) -> None:
        _forward("refund.created", event)

    @handle(RefundCompleted)
    def on_refund_completed(self, event: RefundCompleted) -> None:
        _forward("refund.completed", event)

    @handle(RefundFailed)
    def on_refund_failed(self, event: RefundFailed) -> None:
        _forward("refund.failed", event)

    @handle(RefundCancelled)
    def on_refund_cancelled(self, event: RefundCancelled) -> None:
        _forward("refund.cancelled", event)

    @handle(RefundStatusOverridden)
    def on_refund_updated(self, event: RefundStatusOverridden) -> None:
        _forward("refund.updated", event)


@sandbox.event_handler(part_of=Subscription)
class SubscriptionWebhookHandler:
    @handle(SubscriptionCreated)
    def on_subscription_created(self, event: SubscriptionCreated) -> None:
        _forward("subscription.created", event)

    @handle(SubscriptionBilled)
    def on_subscription_billed(self, event: SubscriptionBilled) -> None:
        _forward("subscription.billed", event)

    @handle(SubscriptionBillingFailed)
    def on_subscription_billing_failed(self, event: SubscriptionBillingFailed) -> None:
        _forward("subscription.billing_failed", event)

    @handle(SubscriptionCancellationScheduled)
    def on_cancellation_scheduled(self, event: SubscriptionCancellationScheduled) -> None:
        _forward("subscription.cancellation_scheduled", event)

    @handle(SubscriptionCancelled)
    def on_subscription_cancelled(self, event: SubscriptionCancelled) -> None:
        _forward("subscription.cancelled", event)

    @handle(SubscriptionReactivated)
    def on_subscription_reactivated(self, event: SubscriptionReactivated) -> None:
        _forward("subscription.reactivated", event)

    @handle(SubscriptionPaused)
    def on_subscription_paused(self, event: SubscriptionPaused) -> None:
        _forward("subscription.paused", event)

    @handle(SubscriptionResumed)
    def on_subscription_resumed(self, event: SubscriptionResumed) -> None:
        _forward("subscription.resumed", event)

    @handle(SubscriptionAmountUpdated)
    def on_subscription_updated(self, event: SubscriptionAmountUpdated) -> None:
        _forward("subscription.updated", event)

"""Billing history: one row per billing pass outcome of a subscription.

Feeds GET /subscriptions/{id}/billing-history. Charged, declined and
trial-skipped passes are recorded, as are scheduled cancellations that a
billing pass completed.
"""

from uuid import uuid4

from protean.core.projector import on
from protean.fields import DateTime, Identifier, Integer, String
from protean.utils.globals import current_domain

from sandbox.domain import sandbox
from sandbox.subscription.events import (
    SubscriptionBilled,
    SubscriptionBillingFailed,
    SubscriptionCancelled,
    SubscriptionTrialCycleSkipped,
)
from sandbox.subscription.subscription import Subscription, as_utc


@sandbox.projection
class BillingHistory:
    entry_id = Identifier(identifier=True, required=True)
    subscription_id = Identifier(required=True)
    merchant_id = Identifier(required=True)
    result = String(required=True, max_length=20)  # billed, failed, trial_skipped, cancelled
    billing_cycle = Integer()
    amount = Integer()
    currency = String(max_length=3)
    transaction_id = Identifier()
    error_code = String(max_length=50)
    reason = String(max_length=500)
    next_billing_date = DateTime()
    occurred_at = DateTime(required=True)


def _record(**fields) -> None:
    current_domain.repository_for(BillingHistory).add(BillingHistory(entry_id=str(uuid4()), **fields))


@sandbox.projector(projector_for=BillingHistory, aggregates=[Subscription])
class BillingHistoryProjector:
    @on(SubscriptionBilled)
    def on_subscription_billed(self, event):
        _record(
            subscription_id=event.subscription_id,
            merchant_id=event.merchant_id,
            result="billed",
            billing_cycle=event.billing_cycle,
            amount=event.amount,
            currency=event.currency,
            transaction_id=event.transaction_id,
            next_billing_date=event.next_billing_date,
            occurred_at=event.billed_at,
        )

    @on(SubscriptionBillingFailed)
    def on_subscription_billing_failed(self, event):
        _record(
            subscription_id=event.subscription_id,
            merchant_id=event.merchant_id,
            result="failed",
            billing_cycle=event.billing_cycle,
            amount=event.amount,
            transaction_id=event.transaction_id,
            error_code=event.error_code,
            reason=event.reason,
            occurred_at=event.failed_at,
        )

    @on(SubscriptionTrialCycleSkipped)
    def on_trial_cycle_skipped(self, event):
        _record(
            subscription_id=event.subscription_id,
            merchant_id=event.merchant_id,
            result="trial_skipped",
            next_billing_date=event.next_billing_date,
            occurred_at=event.skipped_at,
        )

    @on(SubscriptionCancelled)
    def on_subscription_cancelled(self, event):
        if not event.at_period_end:
            return
        _record(
            subscription_id=event.subscription_id,
            merchant_id=event.merchant_id,
            result="cancelled",
            reason=event.reason,
            occurred_at=event.cancelled_at,
        )


def billing_history(subscription_id: str) -> list[BillingHistory]:
    """Entries for a subscription, oldest first."""
    entries = (
        current_domain.repository_for(BillingHistory)._dao.query.filter(subscription_id=str(subscription_id)).all().items
    )
    return sorted(entries, key=lambda entry: as_utc(entry.occurred_at))

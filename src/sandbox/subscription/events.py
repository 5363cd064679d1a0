"""Domain events for the Subscription aggregate.

All events are versioned, immutable facts representing subscription state
changes. Billing events carry the cycle number so the billing history can be
rebuilt from them alone.
"""

from protean.fields import Boolean, DateTime, Identifier, Integer, String

from sandbox.domain import sandbox


@sandbox.event(part_of="Subscription")
class SubscriptionCreated:
    """A customer subscribed to a plan."""

    __version__ = 1

    subscription_id = Identifier(required=True)
    merchant_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    plan_id = Identifier(required=True)
    amount = Integer(required=True)
    currency = String(required=True)
    interval = String(required=True)
    interval_count = Integer(required=True)
    status = String(required=True)
    trial_end = DateTime()
    next_billing_date = DateTime(required=True)
    created_at = DateTime(required=True)


@sandbox.event(part_of="Subscription")
class SubscriptionTrialCycleSkipped:
    """A billing pass fell inside the trial; the date moved on without a charge."""

    __version__ = 1

    subscription_id = Identifier(required=True)
    merchant_id = Identifier(required=True)
    previous_billing_date = DateTime(required=True)
    next_billing_date = DateTime(required=True)
    skipped_at = DateTime(required=True)


@sandbox.event(part_of="Subscription")
class SubscriptionBilled:
    __version__ = 1

    subscription_id = Identifier(required=True)
    merchant_id = Identifier(required=True)
    transaction_id = Identifier(required=True)
    amount = Integer(required=True)
    currency = String(required=True)
    billing_cycle = Integer(required=True)
    next_billing_date = DateTime(required=True)
    billed_at = DateTime(required=True)


@sandbox.event(part_of="Subscription")
class SubscriptionBillingFailed:
    """A billing pass could not collect payment; the subscription is past due."""

    __version__ = 1

    subscription_id = Identifier(required=True)
    merchant_id = Identifier(required=True)
    transaction_id = Identifier()
    amount = Integer(required=True)
    billing_cycle = Integer(required=True)
    error_code = String(required=True)
    reason = String()
    failed_at = DateTime(required=True)


@sandbox.event(part_of="Subscription")
class SubscriptionCancellationScheduled:
    __version__ = 1

    subscription_id = Identifier(required=True)
    merchant_id = Identifier(required=True)
    reason = String()
    effective_at = DateTime(required=True)
    scheduled_at = DateTime(required=True)


@sandbox.event(part_of="Subscription")
class SubscriptionCancelled:
    __version__ = 1

    subscription_id = Identifier(required=True)
    merchant_id = Identifier(required=True)
    reason = String()
    at_period_end = Boolean(default=False)
    cancelled_at = DateTime(required=True)


@sandbox.event(part_of="Subscription")
class SubscriptionReactivated:
    __version__ = 1

    subscription_id = Identifier(required=True)
    merchant_id = Identifier(required=True)
    next_billing_date = DateTime()
    reactivated_at = DateTime(required=True)


@sandbox.event(part_of="Subscription")
class SubscriptionPaused:
    __version__ = 1

    subscription_id = Identifier(required=True)
    merchant_id = Identifier(required=True)
    reason = String()
    paused_at = DateTime(required=True)


@sandbox.event(part_of="Subscription")
class SubscriptionResumed:
    __version__ = 1

    subscription_id = Identifier(required=True)
    merchant_id = Identifier(required=True)
    resumed_at = DateTime(required=True)


@sandbox.event(part_of="Subscription")
class SubscriptionAmountUpdated:
    """The plan price changed; it applies from the next billing cycle."""

    __version__ = 1

    subscription_id = Identifier(required=True)
    merchant_id = Identifier(required=True)
    old_amount = Integer(required=True)
    new_amount = Integer(required=True)
    updated_at = DateTime(required=True)

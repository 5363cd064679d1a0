"""Subscription lifecycle entry points.

Mutations on an existing subscription are dispatched while holding that
subscription's lock, so a manual billing pass, a runner pass and a
cancellation for the same subscription never interleave.
"""

import json
import math
from datetime import datetime

from protean.utils.globals import current_domain

from sandbox.subscription.amount import UpdateSubscriptionAmount
from sandbox.subscription.billing import BillingOutcome, ProcessBilling
from sandbox.subscription.cancellation import CancelSubscription, ReactivateSubscription
from sandbox.subscription.creation import CreateSubscription
from sandbox.subscription.pause import PauseSubscription, ResumeSubscription
from sandbox.subscription.subscription import Subscription
from sandbox.utils.locks import process_exclusively, subscription_key
from sandbox.utils.repository import get_or_raise


def get_subscription(subscription_id: str) -> Subscription:
    return get_or_raise(Subscription, subscription_id)


def create_subscription(
    merchant_id: str,
    customer_id: str,
    plan_id: str,
    amount: int,
    currency: str = "USD",
    interval: str = "monthly",
    interval_count: int = 1,
    trial_days: int = 0,
    metadata: dict | None = None,
) -> Subscription:
    subscription_id = current_domain.process(
        CreateSubscription(
            merchant_id=merchant_id,
            customer_id=customer_id,
            plan_id=plan_id,
            amount=amount,
            currency=currency,
            interval=interval,
            interval_count=interval_count,
            trial_days=trial_days,
            metadata=json.dumps(metadata) if metadata else None,
        ),
        asynchronous=False,
    )
    return get_subscription(subscription_id)


def _dispatch(subscription_id: str, command) -> Subscription:
    process_exclusively(command, subscription_key(subscription_id))
    return get_subscription(subscription_id)


def process_billing(subscription_id: str, as_of: datetime | None = None) -> BillingOutcome:
    """Run one billing pass now (or as of ``as_of``)."""
    return process_exclusively(
        ProcessBilling(subscription_id=subscription_id, as_of=as_of),
        subscription_key(subscription_id),
    )


def cancel_subscription(
    subscription_id: str,
    cancel_at_period_end: bool = False,
    reason: str | None = None,
) -> Subscription:
    return _dispatch(
        subscription_id,
        CancelSubscription(
            subscription_id=subscription_id,
            cancel_at_period_end=cancel_at_period_end,
            reason=reason,
        ),
    )


def reactivate_subscription(subscription_id: str) -> Subscription:
    return _dispatch(subscription_id, ReactivateSubscription(subscription_id=subscription_id))


def pause_subscription(subscription_id: str, reason: str | None = None) -> Subscription:
    return _dispatch(subscription_id, PauseSubscription(subscription_id=subscription_id, reason=reason))


def resume_subscription(subscription_id: str) -> Subscription:
    return _dispatch(subscription_id, ResumeSubscription(subscription_id=subscription_id))


def update_subscription_amount(subscription_id: str, new_amount: int) -> Subscription:
    return _dispatch(
        subscription_id,
        UpdateSubscriptionAmount(subscription_id=subscription_id, new_amount=new_amount),
    )


def list_subscriptions(
    merchant_id: str,
    status: str | None = None,
    interval: str | None = None,
    page: int = 1,
    limit: int = 20,
) -> dict:
    """A page of the merchant's subscriptions, newest first, with pagination info."""
    page = max(page, 1)
    limit = max(limit, 1)
    result = current_domain.repository_for(Subscription).page_for_merchant(
        merchant_id,
        status=status,
        interval=interval,
        page=page,
        limit=limit,
    )
    return {
        "subscriptions": list(result.items),
        "page": page,
        "limit": limit,
        "total": result.total,
        "pages": math.ceil(result.total / limit) if result.total else 0,
        "has_next": result.has_next,
        "has_prev": page > 1,
    }

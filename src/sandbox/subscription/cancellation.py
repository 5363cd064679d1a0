"""Subscription cancellation and reactivation: commands and handlers."""

from protean import handle
from protean.fields import Boolean, Identifier, String
from protean.utils.globals import current_domain

from sandbox.config import get_config
from sandbox.domain import sandbox
from sandbox.subscription.subscription import Subscription
from sandbox.utils.repository import get_or_raise


@sandbox.command(part_of="Subscription")
class CancelSubscription:
    """Cancel now, or at the end of the current billing period."""

    subscription_id = Identifier(required=True)
    cancel_at_period_end = Boolean(default=False)
    reason = String(max_length=500)


@sandbox.command(part_of="Subscription")
class ReactivateSubscription:
    subscription_id = Identifier(required=True)


@sandbox.command_handler(part_of=Subscription)
class SubscriptionCancellationHandler:
    @handle(CancelSubscription)
    def cancel_subscription(self, command):
        subscription = get_or_raise(Subscription, command.subscription_id)
        subscription.cancel(
            reason=command.reason,
            at_period_end=bool(command.cancel_at_period_end),
            defer=get_config().billing.honor_cancel_at_period_end,
        )
        current_domain.repository_for(Subscription).add(subscription)
        return str(subscription.id)

    @handle(ReactivateSubscription)
    def reactivate_subscription(self, command):
        subscription = get_or_raise(Subscription, command.subscription_id)
        subscription.reactivate()
        current_domain.repository_for(Subscription).add(subscription)
        return str(subscription.id)

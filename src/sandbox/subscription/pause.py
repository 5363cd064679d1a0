"""Subscription pause and resume: commands and handlers.

A paused subscription is never picked up by the billing runner.
"""

from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from sandbox.domain import sandbox
from sandbox.subscription.subscription import Subscription
from sandbox.utils.repository import get_or_raise


@sandbox.command(part_of="Subscription")
class PauseSubscription:
    subscription_id = Identifier(required=True)
    reason = String(max_length=500)


@sandbox.command(part_of="Subscription")
class ResumeSubscription:
    subscription_id = Identifier(required=True)


@sandbox.command_handler(part_of=Subscription)
class SubscriptionPauseHandler:
    @handle(PauseSubscription)
    def pause_subscription(self, command):
        subscription = get_or_raise(Subscription, command.subscription_id)
        subscription.pause(command.reason)
        current_domain.repository_for(Subscription).add(subscription)
        return str(subscription.id)

    @handle(ResumeSubscription)
    def resume_subscription(self, command):
        subscription = get_or_raise(Subscription, command.subscription_id)
        subscription.resume()
        current_domain.repository_for(Subscription).add(subscription)
        return str(subscription.id)

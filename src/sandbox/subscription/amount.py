"""Subscription price change: command and handler."""

from protean import handle
from protean.fields import Identifier, Integer
from protean.utils.globals import current_domain

from sandbox.domain import sandbox
from sandbox.subscription.subscription import Subscription
from sandbox.utils.repository import get_or_raise


@sandbox.command(part_of="Subscription")
class UpdateSubscriptionAmount:
    """Change the amount charged from the next billing cycle."""

    subscription_id = Identifier(required=True)
    new_amount = Integer(required=True)


@sandbox.command_handler(part_of=Subscription)
class UpdateSubscriptionAmountHandler:
    @handle(UpdateSubscriptionAmount)
    def update_amount(self, command):
        subscription = get_or_raise(Subscription, command.subscription_id)
        subscription.update_amount(command.new_amount)
        current_domain.repository_for(Subscription).add(subscription)
        return str(subscription.id)

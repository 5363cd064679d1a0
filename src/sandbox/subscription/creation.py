"""Subscription creation: command and handler."""

import json

import structlog
from protean import handle
from protean.fields import Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from sandbox.directory import get_directory
from sandbox.domain import sandbox
from sandbox.exceptions import NotActiveError
from sandbox.subscription.subscription import Subscription

logger = structlog.get_logger(__name__)


@sandbox.command(part_of="Subscription")
class CreateSubscription:
    """Subscribe a customer to a merchant's plan."""

    merchant_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    plan_id = Identifier(required=True)
    amount = Integer(required=True)
    currency = String(max_length=3, default="USD")
    interval = String(required=True, max_length=10)
    interval_count = Integer(default=1)
    trial_days = Integer(default=0)
    metadata = Text()  # JSON object


@sandbox.command_handler(part_of=Subscription)
class CreateSubscriptionHandler:
    @handle(CreateSubscription)
    def create_subscription(self, command):
        directory = get_directory()
        if not directory.is_active(command.merchant_id):
            raise NotActiveError("Merchant is not active", merchant_id=str(command.merchant_id))
        if not directory.is_active(command.customer_id):
            raise NotActiveError("Customer is not active", customer_id=str(command.customer_id))

        metadata = command.metadata
        if metadata and not isinstance(metadata, str):
            metadata = json.dumps(metadata)

        subscription = Subscription.create(
            merchant_id=command.merchant_id,
            customer_id=command.customer_id,
            plan_id=command.plan_id,
            amount=command.amount,
            currency=command.currency or "USD",
            interval=command.interval,
            interval_count=1 if command.interval_count is None else command.interval_count,
            trial_days=command.trial_days or 0,
            metadata=metadata,
        )
        current_domain.repository_for(Subscription).add(subscription)

        logger.info(
            "Subscription created",
            subscription_id=str(subscription.id),
            merchant_id=str(command.merchant_id),
            status=subscription.status,
            next_billing_date=subscription.next_billing_date.isoformat(),
        )
        return str(subscription.id)

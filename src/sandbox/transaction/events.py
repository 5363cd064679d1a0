"""Domain events for the Transaction aggregate."""

from protean.fields import DateTime, Identifier, Integer, String

from sandbox.domain import sandbox


@sandbox.event(part_of="Transaction")
class TransactionCreated:
    """A simulated charge was recorded and awaits settlement."""

    __version__ = 1

    transaction_id = Identifier(required=True)
    merchant_id = Identifier(required=True)
    reference = String(required=True)
    amount = Integer(required=True)
    currency = String(required=True)
    subscription_id = Identifier()
    billing_cycle = Integer()
    created_at = DateTime(required=True)


@sandbox.event(part_of="Transaction")
class TransactionSucceeded:
    __version__ = 1

    transaction_id = Identifier(required=True)
    merchant_id = Identifier(required=True)
    amount = Integer(required=True)
    gateway_transaction_id = String()
    settled_at = DateTime(required=True)


@sandbox.event(part_of="Transaction")
class TransactionFailed:
    __version__ = 1

    transaction_id = Identifier(required=True)
    merchant_id = Identifier(required=True)
    reason = String()
    settled_at = DateTime(required=True)


@sandbox.event(part_of="Transaction")
class TransactionRefunded:
    """Part or all of the charge was credited back to the customer."""

    __version__ = 1

    transaction_id = Identifier(required=True)
    merchant_id = Identifier(required=True)
    amount = Integer(required=True)
    refunded_amount = Integer(required=True)
    refund_status = String(required=True)
    refunded_at = DateTime(required=True)

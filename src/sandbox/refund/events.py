"""Domain events for the Refund aggregate.

All events are versioned, immutable facts representing refund state changes.
"""

from protean.fields import DateTime, Identifier, Integer, String

from sandbox.domain import sandbox


@sandbox.event(part_of="Refund")
class RefundCreated:
    """A refund was requested and recorded as pending."""

    __version__ = 1

    refund_id = Identifier(required=True)
    reference = String(required=True)
    transaction_id = Identifier(required=True)
    merchant_id = Identifier(required=True)
    amount = Integer(required=True)
    currency = String(required=True)
    refund_type = String(required=True)
    reason = String(required=True)
    created_at = DateTime(required=True)


@sandbox.event(part_of="Refund")
class RefundCompleted:
    """The gateway settled the refund and the transaction was credited."""

    __version__ = 1

    refund_id = Identifier(required=True)
    reference = String(required=True)
    transaction_id = Identifier(required=True)
    merchant_id = Identifier(required=True)
    amount = Integer(required=True)
    gateway_refund_id = String()
    processed_at = DateTime(required=True)


@sandbox.event(part_of="Refund")
class RefundFailed:
    """The gateway declined the refund. The record is terminal."""

    __version__ = 1

    refund_id = Identifier(required=True)
    reference = String(required=True)
    transaction_id = Identifier(required=True)
    merchant_id = Identifier(required=True)
    amount = Integer(required=True)
    failure_reason = String()
    processed_at = DateTime(required=True)


@sandbox.event(part_of="Refund")
class RefundCancelled:
    __version__ = 1

    refund_id = Identifier(required=True)
    reference = String(required=True)
    merchant_id = Identifier(required=True)
    reason = String()
    cancelled_at = DateTime(required=True)


@sandbox.event(part_of="Refund")
class RefundStatusOverridden:
    """An administrator forced the refund into a new status."""

    __version__ = 1

    refund_id = Identifier(required=True)
    reference = String(required=True)
    merchant_id = Identifier(required=True)
    previous_status = String(required=True)
    new_status = String(required=True)
    notes = String()
    updated_at = DateTime(required=True)

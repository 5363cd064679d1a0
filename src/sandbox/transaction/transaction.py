"""Transaction aggregate (CQRS): a simulated one-time or subscription charge.

A transaction is created pending, settled once through the gateway, and then
accumulates refund credits. The refunded total is the ledger's ceiling:

    0 <= refunded_amount <= amount

State Machine:
    PENDING → SUCCESS
    PENDING → FAILED

Refund summary:
    NONE → PARTIALLY_REFUNDED → FULLY_REFUNDED
"""

from datetime import UTC, datetime
from enum import Enum
from uuid import uuid4

from protean.exceptions import ValidationError
from protean.fields import DateTime, Identifier, Integer, String, Text

from sandbox.domain import sandbox
from sandbox.exceptions import AmountExceededError, InvalidAmountError, NotRefundableError
from sandbox.transaction.events import (
    TransactionCreated,
    TransactionFailed,
    TransactionRefunded,
    TransactionSucceeded,
)


class TransactionStatus(Enum):
    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"


class RefundSummary(Enum):
    NONE = "none"
    PARTIALLY_REFUNDED = "partially_refunded"
    FULLY_REFUNDED = "fully_refunded"


_VALID_TRANSITIONS = {
    TransactionStatus.PENDING: {TransactionStatus.SUCCESS, TransactionStatus.FAILED},
    TransactionStatus.SUCCESS: set(),  # Terminal
    TransactionStatus.FAILED: set(),  # Terminal
}


@sandbox.aggregate
class Transaction:
    merchant_id = Identifier(required=True)
    customer_id = Identifier()
    reference = String(required=True, max_length=50)
    amount = Integer(required=True, min_value=1)
    currency = String(max_length=3, default="USD")
    status = String(
        max_length=20,
        choices=TransactionStatus,
        default=TransactionStatus.PENDING.value,
    )
    refunded_amount = Integer(default=0, min_value=0)
    refund_status = String(
        max_length=30,
        choices=RefundSummary,
        default=RefundSummary.NONE.value,
    )
    subscription_id = Identifier()
    billing_cycle = Integer()
    gateway_transaction_id = String(max_length=255)
    gateway_message = String(max_length=500)
    metadata = Text()  # JSON object
    settled_at = DateTime()
    last_refunded_at = DateTime()
    created_at = DateTime()
    updated_at = DateTime()

    @classmethod
    def create(
        cls,
        merchant_id: str,
        amount: int,
        currency: str = "USD",
        customer_id: str | None = None,
        subscription_id: str | None = None,
        billing_cycle: int | None = None,
        metadata: str | None = None,
    ):
        """Record a new pending charge."""
        if amount is None or amount <= 0:
            raise InvalidAmountError("Transaction amount must be a positive integer", amount=amount)

        now = datetime.now(UTC)
        reference = f"TXN-{uuid4().hex[:12].upper()}"
        transaction = cls(
            merchant_id=merchant_id,
            customer_id=customer_id,
            reference=reference,
            amount=amount,
            currency=(currency or "USD").upper(),
            subscription_id=subscription_id,
            billing_cycle=billing_cycle,
            metadata=metadata,
            created_at=now,
            updated_at=now,
        )
        transaction.raise_(
            TransactionCreated(
                transaction_id=str(transaction.id),
                merchant_id=str(merchant_id),
                reference=reference,
                amount=amount,
                currency=transaction.currency,
                subscription_id=subscription_id,
                billing_cycle=billing_cycle,
                created_at=now,
            )
        )
        return transaction

    @property
    def remaining_amount(self) -> int:
        return self.amount - (self.refunded_amount or 0)

    def _assert_can_transition(self, target_status: TransactionStatus) -> None:
        current = TransactionStatus(self.status)
        if target_status not in _VALID_TRANSITIONS.get(current, set()):
            raise ValidationError({"status": [f"Cannot transition from {current.value} to {target_status.value}"]})

    def mark_succeeded(self, gateway_transaction_id: str | None, gateway_message: str | None = None) -> None:
        self._assert_can_transition(TransactionStatus.SUCCESS)
        now = datetime.now(UTC)
        self.status = TransactionStatus.SUCCESS.value
        self.gateway_transaction_id = gateway_transaction_id
        self.gateway_message = gateway_message
        self.settled_at = now
        self.updated_at = now
        self.raise_(
            TransactionSucceeded(
                transaction_id=str(self.id),
                merchant_id=str(self.merchant_id),
                amount=self.amount,
                gateway_transaction_id=gateway_transaction_id,
                settled_at=now,
            )
        )

    def mark_failed(self, gateway_message: str | None) -> None:
        self._assert_can_transition(TransactionStatus.FAILED)
        now = datetime.now(UTC)
        self.status = TransactionStatus.FAILED.value
        self.gateway_message = gateway_message
        self.settled_at = now
        self.updated_at = now
        self.raise_(
            TransactionFailed(
                transaction_id=str(self.id),
                merchant_id=str(self.merchant_id),
                reason=gateway_message,
                settled_at=now,
            )
        )

    def credit(self, amount: int, refund_type: str) -> None:
        """Apply a settled refund to the refunded total.

        The increment is refused rather than clamped when it would push the
        refunded total past the charged amount.
        """
        if TransactionStatus(self.status) != TransactionStatus.SUCCESS:
            raise NotRefundableError(
                "Only successful transactions can be refunded",
                transaction_id=str(self.id),
                status=self.status,
            )
        if amount is None or amount <= 0:
            raise InvalidAmountError("Refund amount must be a positive integer", amount=amount)
        if amount > self.remaining_amount:
            raise AmountExceededError(
                f"Refund of {amount} exceeds the remaining refundable amount of {self.remaining_amount}",
                remaining_amount=self.remaining_amount,
                transaction_id=str(self.id),
            )

        now = datetime.now(UTC)
        self.refunded_amount = (self.refunded_amount or 0) + amount
        if refund_type == "full" or self.refunded_amount == self.amount:
            self.refund_status = RefundSummary.FULLY_REFUNDED.value
        else:
            self.refund_status = RefundSummary.PARTIALLY_REFUNDED.value
        self.last_refunded_at = now
        self.updated_at = now
        self.raise_(
            TransactionRefunded(
                transaction_id=str(self.id),
                merchant_id=str(self.merchant_id),
                amount=amount,
                refunded_amount=self.refunded_amount,
                refund_status=self.refund_status,
                refunded_at=now,
            )
        )

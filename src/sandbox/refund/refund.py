"""Refund aggregate (CQRS): a request to return money from a transaction.

Refunds are recorded against a successful Transaction and never deleted.
The refund type is derived at creation: ``full`` when the refund covers the
whole transaction amount, ``partial`` otherwise.

State Machine:
    PENDING → PROCESSING → COMPLETED
    PROCESSING → FAILED
    PENDING → CANCELLED

COMPLETED, FAILED and CANCELLED are terminal for normal operations. The
administrative override may move a refund between any statuses except out of
COMPLETED.
"""

from datetime import UTC, datetime
from enum import Enum

from protean.fields import DateTime, Identifier, Integer, String, Text, ValueObject

from sandbox.domain import sandbox
from sandbox.exceptions import InvalidStatusError
from sandbox.refund.events import (
    RefundCancelled,
    RefundCompleted,
    RefundCreated,
    RefundFailed,
    RefundStatusOverridden,
)


class RefundStatus(Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class RefundType(Enum):
    FULL = "full"
    PARTIAL = "partial"


class RefundMethod(Enum):
    ORIGINAL_PAYMENT_METHOD = "original_payment_method"
    BANK_TRANSFER = "bank_transfer"
    WALLET = "wallet"


# Refunds in these statuses count against the transaction's refundable balance
OUTSTANDING_STATUSES = (
    RefundStatus.PENDING.value,
    RefundStatus.PROCESSING.value,
    RefundStatus.COMPLETED.value,
)

_VALID_TRANSITIONS = {
    RefundStatus.PENDING: {RefundStatus.PROCESSING, RefundStatus.CANCELLED},
    RefundStatus.PROCESSING: {RefundStatus.COMPLETED, RefundStatus.FAILED},
    RefundStatus.COMPLETED: set(),  # Terminal
    RefundStatus.FAILED: set(),  # Terminal
    RefundStatus.CANCELLED: set(),  # Terminal
}


@sandbox.value_object(part_of="Refund")
class ApprovalInfo:
    """Who signed off a completed refund, and when."""

    approved_by = String(max_length=255, required=True)
    approved_at = DateTime(required=True)
    notes = String(max_length=1000)


@sandbox.aggregate
class Refund:
    reference = String(required=True, max_length=50)
    transaction_id = Identifier(required=True)
    merchant_id = Identifier(required=True)
    amount = Integer(required=True, min_value=1)
    currency = String(max_length=3, default="USD")
    reason = String(required=True, max_length=500)
    refund_type = String(max_length=10, choices=RefundType, required=True)
    status = String(
        max_length=20,
        choices=RefundStatus,
        default=RefundStatus.PENDING.value,
    )
    refund_method = String(
        max_length=30,
        choices=RefundMethod,
        default=RefundMethod.ORIGINAL_PAYMENT_METHOD.value,
    )
    approval_info = ValueObject(ApprovalInfo)
    gateway_refund_id = String(max_length=255)
    gateway_message = String(max_length=500)
    failure_reason = String(max_length=500)
    metadata = Text()  # JSON object
    processed_at = DateTime()
    created_at = DateTime()
    updated_at = DateTime()

    @classmethod
    def create(
        cls,
        reference: str,
        transaction_id: str,
        merchant_id: str,
        amount: int,
        transaction_amount: int,
        currency: str,
        reason: str,
        refund_method: str | None = None,
        metadata: str | None = None,
    ):
        """Record a new pending refund; its type follows from the amounts."""
        now = datetime.now(UTC)
        refund_type = RefundType.FULL if amount == transaction_amount else RefundType.PARTIAL
        refund = cls(
            reference=reference,
            transaction_id=transaction_id,
            merchant_id=merchant_id,
            amount=amount,
            currency=currency,
            reason=reason,
            refund_type=refund_type.value,
            refund_method=refund_method or RefundMethod.ORIGINAL_PAYMENT_METHOD.value,
            metadata=metadata,
            created_at=now,
            updated_at=now,
        )
        refund.raise_(
            RefundCreated(
                refund_id=str(refund.id),
                reference=reference,
                transaction_id=str(transaction_id),
                merchant_id=str(merchant_id),
                amount=amount,
                currency=currency,
                refund_type=refund_type.value,
                reason=reason,
                created_at=now,
            )
        )
        return refund

    def _assert_can_transition(self, target_status: RefundStatus) -> None:
        current = RefundStatus(self.status)
        if target_status not in _VALID_TRANSITIONS.get(current, set()):
            raise InvalidStatusError(
                f"Cannot transition refund from {current.value} to {target_status.value}",
                refund_id=str(self.id),
                status=current.value,
            )

    def _stamp_approval(self, approved_by: str, notes: str | None, now: datetime) -> None:
        if self.approval_info is None:
            self.approval_info = ApprovalInfo(approved_by=approved_by, approved_at=now, notes=notes)

    def start_processing(self) -> None:
        """Hand the refund to the gateway."""
        self._assert_can_transition(RefundStatus.PROCESSING)
        self.status = RefundStatus.PROCESSING.value
        self.updated_at = datetime.now(UTC)

    def complete(self, gateway_refund_id: str | None, gateway_message: str | None = None) -> None:
        self._assert_can_transition(RefundStatus.COMPLETED)
        now = datetime.now(UTC)
        self.status = RefundStatus.COMPLETED.value
        self.gateway_refund_id = gateway_refund_id
        self.gateway_message = gateway_message
        self.processed_at = now
        self.updated_at = now
        self._stamp_approval("system", "Processed automatically", now)
        self.raise_(
            RefundCompleted(
                refund_id=str(self.id),
                reference=self.reference,
                transaction_id=str(self.transaction_id),
                merchant_id=str(self.merchant_id),
                amount=self.amount,
                gateway_refund_id=gateway_refund_id,
                processed_at=now,
            )
        )

    def fail(self, failure_reason: str | None, gateway_message: str | None = None) -> None:
        self._assert_can_transition(RefundStatus.FAILED)
        now = datetime.now(UTC)
        self.status = RefundStatus.FAILED.value
        self.failure_reason = failure_reason
        self.gateway_message = gateway_message
        self.processed_at = now
        self.updated_at = now
        self.raise_(
            RefundFailed(
                refund_id=str(self.id),
                reference=self.reference,
                transaction_id=str(self.transaction_id),
                merchant_id=str(self.merchant_id),
                amount=self.amount,
                failure_reason=failure_reason,
                processed_at=now,
            )
        )

    def cancel(self, reason: str | None) -> None:
        self._assert_can_transition(RefundStatus.CANCELLED)
        now = datetime.now(UTC)
        self.status = RefundStatus.CANCELLED.value
        self.failure_reason = reason
        self.updated_at = now
        self.raise_(
            RefundCancelled(
                refund_id=str(self.id),
                reference=self.reference,
                merchant_id=str(self.merchant_id),
                reason=reason,
                cancelled_at=now,
            )
        )

    def override_status(self, target_status: RefundStatus, notes: str | None = None, approved_by: str = "admin") -> bool:
        """Force the refund into ``target_status``.

        Returns False when the refund is already in that status. Leaving
        COMPLETED is refused because the transaction has been credited. The
        caller applies the transaction credit before overriding to COMPLETED.
        """
        current = RefundStatus(self.status)
        if target_status == current:
            return False
        if current == RefundStatus.COMPLETED:
            raise InvalidStatusError(
                "A completed refund cannot change status",
                refund_id=str(self.id),
                status=current.value,
            )

        now = datetime.now(UTC)
        self.status = target_status.value
        self.updated_at = now
        if target_status == RefundStatus.COMPLETED:
            self.processed_at = now
            self._stamp_approval(approved_by, notes, now)
        elif target_status == RefundStatus.FAILED:
            self.processed_at = now
            if notes:
                self.failure_reason = notes
        elif target_status == RefundStatus.CANCELLED and notes:
            self.failure_reason = notes

        self.raise_(
            RefundStatusOverridden(
                refund_id=str(self.id),
                reference=self.reference,
                merchant_id=str(self.merchant_id),
                previous_status=current.value,
                new_status=target_status.value,
                notes=notes,
                updated_at=now,
            )
        )
        return True

"""Refund request: command and handler.

Validates the request against the transaction's refundable balance and
records the refund as pending. Checks run in a fixed order so callers always
see the most fundamental problem first.
"""

import json
from uuid import uuid4

import structlog
from protean import handle
from protean.fields import Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from sandbox.domain import sandbox
from sandbox.exceptions import (
    AmountExceededError,
    DuplicateRefundError,
    InvalidAmountError,
    NotRefundableError,
    UnauthorizedError,
)
from sandbox.refund.refund import Refund, RefundMethod
from sandbox.transaction.transaction import Transaction, TransactionStatus
from sandbox.utils.repository import get_or_raise

logger = structlog.get_logger(__name__)


@sandbox.command(part_of="Refund")
class RequestRefund:
    """Request a refund against a successful transaction."""

    merchant_id = Identifier(required=True)
    transaction_id = Identifier(required=True)
    amount = Integer(required=True)
    reason = String(required=True, max_length=500)
    refund_method = String(max_length=30, choices=RefundMethod)
    metadata = Text()  # JSON object


def _generate_reference(repo) -> str:
    while True:
        reference = f"REF-{uuid4().hex[:12].upper()}"
        if repo.find_by_reference(reference) is None:
            return reference


@sandbox.command_handler(part_of=Refund)
class RequestRefundHandler:
    @handle(RequestRefund)
    def request_refund(self, command):
        transaction = get_or_raise(Transaction, command.transaction_id)
        if str(transaction.merchant_id) != str(command.merchant_id):
            raise UnauthorizedError(
                "Transaction belongs to another merchant",
                transaction_id=str(transaction.id),
            )

        if transaction.status != TransactionStatus.SUCCESS.value:
            raise NotRefundableError(
                "Only successful transactions can be refunded",
                transaction_id=str(transaction.id),
                status=transaction.status,
            )

        amount = command.amount
        if amount <= 0 or amount > transaction.amount:
            raise InvalidAmountError(
                f"Refund amount must be between 1 and {transaction.amount}",
                amount=amount,
            )

        repo = current_domain.repository_for(Refund)
        outstanding = repo.outstanding_for_transaction(transaction.id)
        committed = sum(refund.amount for refund in outstanding)
        if committed + amount > transaction.amount:
            remaining = transaction.amount - committed
            raise AmountExceededError(
                f"Refund amount exceeds the remaining refundable amount of {remaining}",
                remaining_amount=remaining,
                transaction_id=str(transaction.id),
            )

        if any(refund.amount == amount for refund in outstanding):
            raise DuplicateRefundError(
                "A refund for this amount is already in progress or completed",
                transaction_id=str(transaction.id),
                amount=amount,
            )

        metadata = command.metadata
        if metadata and not isinstance(metadata, str):
            metadata = json.dumps(metadata)

        refund = Refund.create(
            reference=_generate_reference(repo),
            transaction_id=str(transaction.id),
            merchant_id=str(command.merchant_id),
            amount=amount,
            transaction_amount=transaction.amount,
            currency=transaction.currency,
            reason=command.reason,
            refund_method=command.refund_method,
            metadata=metadata,
        )
        repo.add(refund)

        logger.info(
            "Refund requested",
            refund_id=str(refund.id),
            reference=refund.reference,
            transaction_id=str(transaction.id),
            amount=amount,
            refund_type=refund.refund_type,
        )
        return str(refund.id)

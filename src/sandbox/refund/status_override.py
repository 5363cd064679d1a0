"""Administrative refund status override: command and handler.

Moving a refund into completed applies the same transaction credit as a
gateway settlement, guarded against overflowing the transaction amount.
Reopening a failed or cancelled refund puts its amount back against the
transaction's balance, so it is refused when the balance cannot hold it.
"""

import structlog
from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from sandbox.domain import sandbox
from sandbox.exceptions import AmountExceededError
from sandbox.refund.refund import OUTSTANDING_STATUSES, Refund, RefundStatus
from sandbox.transaction.transaction import Transaction
from sandbox.utils.repository import get_or_raise

logger = structlog.get_logger(__name__)


@sandbox.command(part_of="Refund")
class UpdateRefundStatus:
    refund_id = Identifier(required=True)
    status = String(required=True, max_length=20, choices=RefundStatus)
    notes = String(max_length=1000)
    approved_by = String(max_length=255)


def _assert_balance_holds(refund: Refund, transaction: Transaction) -> None:
    others = [
        other
        for other in current_domain.repository_for(Refund).outstanding_for_transaction(transaction.id)
        if str(other.id) != str(refund.id)
    ]
    committed = sum(other.amount for other in others)
    if committed + refund.amount > transaction.amount:
        remaining = transaction.amount - committed
        raise AmountExceededError(
            f"Reopening this refund exceeds the remaining refundable amount of {remaining}",
            remaining_amount=remaining,
            refund_id=str(refund.id),
            transaction_id=str(transaction.id),
        )


@sandbox.command_handler(part_of=Refund)
class UpdateRefundStatusHandler:
    @handle(UpdateRefundStatus)
    def update_refund_status(self, command):
        refund = get_or_raise(Refund, command.refund_id)
        target = RefundStatus(command.status)
        if target.value == refund.status:
            return str(refund.id)

        reopening = refund.status not in OUTSTANDING_STATUSES and target.value in OUTSTANDING_STATUSES
        if reopening or target == RefundStatus.COMPLETED:
            transaction = get_or_raise(Transaction, refund.transaction_id)
            if reopening:
                _assert_balance_holds(refund, transaction)
            if target == RefundStatus.COMPLETED:
                transaction.credit(refund.amount, refund.refund_type)
                current_domain.repository_for(Transaction).add(transaction)

        previous = refund.status
        refund.override_status(target, notes=command.notes, approved_by=command.approved_by or "admin")
        current_domain.repository_for(Refund).add(refund)

        logger.info(
            "Refund status overridden",
            refund_id=str(refund.id),
            reference=refund.reference,
            previous_status=previous,
            new_status=refund.status,
        )
        return str(refund.id)

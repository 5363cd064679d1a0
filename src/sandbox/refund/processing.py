"""Refund settlement: command and handler.

Hands a pending refund to the gateway. A successful settlement credits the
transaction; a declined one leaves it untouched. Both outcomes are terminal,
a declined refund needs a fresh request. A gateway that times out or
raises is treated as a decline.
"""

import structlog
from protean import handle
from protean.fields import Identifier
from protean.utils.globals import current_domain

from sandbox.config import get_config
from sandbox.domain import sandbox
from sandbox.exceptions import CollaboratorTimeoutError
from sandbox.gateway import get_gateway
from sandbox.gateway.port import RefundResult
from sandbox.refund.refund import Refund
from sandbox.transaction.transaction import Transaction
from sandbox.utils.repository import get_or_raise
from sandbox.utils.timeouts import run_with_timeout

logger = structlog.get_logger(__name__)


@sandbox.command(part_of="Refund")
class ProcessRefund:
    """Settle a pending refund through the gateway."""

    refund_id = Identifier(required=True)


@sandbox.command_handler(part_of=Refund)
class ProcessRefundHandler:
    @handle(ProcessRefund)
    def process_refund(self, command):
        refund = get_or_raise(Refund, command.refund_id)
        refund.start_processing()
        transaction = get_or_raise(Transaction, refund.transaction_id)

        try:
            result = run_with_timeout(
                get_gateway().create_refund,
                get_config().gateway.timeout_seconds,
                transaction.gateway_transaction_id,
                refund.amount,
                refund.reason,
            )
        except CollaboratorTimeoutError as exc:
            result = RefundResult(
                success=False,
                gateway_status="timeout",
                gateway_message=exc.message,
                failure_reason=exc.message,
            )
        except Exception as exc:
            logger.warning(
                "Gateway refund raised",
                refund_id=str(refund.id),
                reference=refund.reference,
                error=repr(exc),
            )
            result = RefundResult(
                success=False,
                gateway_status="error",
                gateway_message=f"Gateway error: {exc}"[:500],
                failure_reason=f"Gateway error: {exc}"[:500],
            )

        if result.success:
            transaction.credit(refund.amount, refund.refund_type)
            refund.complete(result.gateway_refund_id, result.gateway_message)
            current_domain.repository_for(Transaction).add(transaction)
            logger.info(
                "Refund completed",
                refund_id=str(refund.id),
                reference=refund.reference,
                refunded_amount=transaction.refunded_amount,
            )
        else:
            refund.fail(result.failure_reason, result.gateway_message)
            logger.warning(
                "Refund failed",
                refund_id=str(refund.id),
                reference=refund.reference,
                reason=result.failure_reason,
            )

        current_domain.repository_for(Refund).add(refund)
        return str(refund.id)

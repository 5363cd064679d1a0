"""Refund cancellation: command and handler."""

from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from sandbox.domain import sandbox
from sandbox.refund.refund import Refund
from sandbox.utils.repository import get_or_raise


@sandbox.command(part_of="Refund")
class CancelRefund:
    """Withdraw a refund that has not been processed yet."""

    refund_id = Identifier(required=True)
    reason = String(max_length=500)


@sandbox.command_handler(part_of=Refund)
class CancelRefundHandler:
    @handle(CancelRefund)
    def cancel_refund(self, command):
        refund = get_or_raise(Refund, command.refund_id)
        refund.cancel(command.reason)
        current_domain.repository_for(Refund).add(refund)
        return str(refund.id)

"""One-time charge: command and handler.

Creates a transaction and settles it in one step, giving sandbox users a
refundable transaction to work with.
"""

import json

from protean import handle
from protean.fields import Identifier, Integer, String, Text

from sandbox.domain import sandbox
from sandbox.transaction.service import TransactionService
from sandbox.transaction.transaction import Transaction


@sandbox.command(part_of="Transaction")
class CreateTransaction:
    """Charge a customer once."""

    merchant_id = Identifier(required=True)
    customer_id = Identifier()
    amount = Integer(required=True)
    currency = String(max_length=3, default="USD")
    metadata = Text()  # JSON object


@sandbox.command_handler(part_of=Transaction)
class CreateTransactionHandler:
    @handle(CreateTransaction)
    def create_transaction(self, command):
        service = TransactionService()
        transaction = service.create(
            merchant_id=command.merchant_id,
            amount=command.amount,
            currency=command.currency or "USD",
            customer_id=command.customer_id,
            metadata=json.loads(command.metadata) if command.metadata else None,
        )
        service.settle(transaction)
        return str(transaction.id)

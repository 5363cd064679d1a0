"""Transaction collaborator used by billing and the charge command.

Creates and settles simulated charges inside the caller's unit of work, so a
subscription billing pass and the charge it produces commit together.
"""

import json

import structlog
from protean.utils.globals import current_domain

from sandbox.config import get_config
from sandbox.directory import get_directory
from sandbox.exceptions import CollaboratorTimeoutError, CreationError
from sandbox.gateway import get_gateway
from sandbox.gateway.port import ChargeResult
from sandbox.transaction.transaction import Transaction
from sandbox.utils.timeouts import run_with_timeout

logger = structlog.get_logger(__name__)


class TransactionService:
    def create(
        self,
        merchant_id: str,
        amount: int,
        currency: str = "USD",
        customer_id: str | None = None,
        subscription_id: str | None = None,
        billing_cycle: int | None = None,
        metadata: dict | None = None,
    ) -> Transaction:
        """Persist a pending transaction or raise CreationError."""
        if not get_directory().is_active(merchant_id):
            raise CreationError("Merchant is not active", merchant_id=str(merchant_id))
        if amount is None or amount <= 0:
            raise CreationError("Transaction amount must be positive", amount=amount)

        transaction = Transaction.create(
            merchant_id=merchant_id,
            amount=amount,
            currency=currency,
            customer_id=customer_id,
            subscription_id=subscription_id,
            billing_cycle=billing_cycle,
            metadata=json.dumps(metadata) if metadata else None,
        )
        current_domain.repository_for(Transaction).add(transaction)
        return transaction

    def settle(self, transaction: Transaction) -> ChargeResult:
        """Charge the transaction through the gateway and record the result.

        A gateway timeout or a gateway error is recorded as an ordinary
        decline.
        """
        gateway = get_gateway()
        try:
            result = run_with_timeout(
                gateway.create_charge,
                get_config().gateway.timeout_seconds,
                transaction.amount,
                transaction.currency,
                transaction.reference,
                json.loads(transaction.metadata) if transaction.metadata else None,
            )
        except CollaboratorTimeoutError as exc:
            result = ChargeResult(
                success=False,
                gateway_status="timeout",
                gateway_message=exc.message,
                failure_reason=exc.message,
            )
        except Exception as exc:
            logger.warning(
                "Gateway charge raised",
                transaction_id=str(transaction.id),
                reference=transaction.reference,
                error=repr(exc),
            )
            result = ChargeResult(
                success=False,
                gateway_status="error",
                gateway_message=f"Gateway error: {exc}"[:500],
                failure_reason=f"Gateway error: {exc}"[:500],
            )

        if result.success:
            transaction.mark_succeeded(result.gateway_transaction_id, result.gateway_message)
        else:
            transaction.mark_failed(result.gateway_message or result.failure_reason)
            logger.warning(
                "Charge declined",
                transaction_id=str(transaction.id),
                reference=transaction.reference,
                reason=result.failure_reason,
            )
        current_domain.repository_for(Transaction).add(transaction)
        return result

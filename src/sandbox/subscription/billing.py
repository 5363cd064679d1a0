"""Billing pass: command, handler and outcome.

One pass either completes a scheduled cancellation, skips a trial cycle, or
charges the subscription through the transaction collaborator. Collection
failures are returned as outcomes and committed, never raised: the
subscription must stay past due even though the charge did not go through.
"""

from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum

import structlog
from protean import handle
from protean.fields import DateTime, Identifier
from protean.utils.globals import current_domain

from sandbox.domain import sandbox
from sandbox.exceptions import BillingFailedError, CreationError, SandboxError
from sandbox.subscription.subscription import Subscription, as_utc
from sandbox.transaction.service import TransactionService
from sandbox.utils.repository import get_or_raise

logger = structlog.get_logger(__name__)


class BillingResult(Enum):
    TRIAL_SKIPPED = "trial_skipped"
    BILLED = "billed"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class BillingOutcome:
    """What a single billing pass did to a subscription."""

    subscription_id: str
    result: BillingResult
    status: str
    next_billing_date: datetime | None
    billing_cycle: int
    transaction_id: str | None = None
    error_code: str | None = None
    message: str | None = None

    @property
    def success(self) -> bool:
        return self.result != BillingResult.FAILED

    def as_error(self) -> SandboxError:
        """The typed error matching a failed outcome."""
        context = {"subscription_id": self.subscription_id, "transaction_id": self.transaction_id}
        if self.error_code == "CREATION_ERROR":
            return CreationError(self.message or "Billing transaction could not be created", **context)
        return BillingFailedError(self.message or "Billing charge was declined", **context)

    def to_dict(self) -> dict:
        return {
            "subscription_id": self.subscription_id,
            "result": self.result.value,
            "status": self.status,
            "next_billing_date": self.next_billing_date.isoformat() if self.next_billing_date else None,
            "billing_cycle": self.billing_cycle,
            "transaction_id": self.transaction_id,
            "error_code": self.error_code,
            "message": self.message,
        }


@sandbox.command(part_of="Subscription")
class ProcessBilling:
    """Run one billing pass for a due subscription."""

    subscription_id = Identifier(required=True)
    as_of = DateTime()  # Optional: bill as of this time (defaults to now)


def _outcome(subscription, result: BillingResult, **kwargs) -> BillingOutcome:
    return BillingOutcome(
        subscription_id=str(subscription.id),
        result=result,
        status=subscription.status,
        next_billing_date=subscription.next_billing_date,
        billing_cycle=subscription.billing_cycles_completed or 0,
        **kwargs,
    )


@sandbox.command_handler(part_of=Subscription)
class ProcessBillingHandler:
    @handle(ProcessBilling)
    def process_billing(self, command):
        now = as_utc(command.as_of) or datetime.now(UTC)
        repo = current_domain.repository_for(Subscription)
        subscription = get_or_raise(Subscription, command.subscription_id)
        subscription.assert_billable(now)

        if subscription.cancellation_due(now):
            subscription.complete_scheduled_cancellation(now)
            repo.add(subscription)
            logger.info("Scheduled cancellation completed", subscription_id=str(subscription.id))
            return _outcome(subscription, BillingResult.CANCELLED)

        if subscription.in_trial(now):
            subscription.skip_trial_cycle(now)
            repo.add(subscription)
            logger.info(
                "Trial cycle skipped",
                subscription_id=str(subscription.id),
                next_billing_date=subscription.next_billing_date.isoformat(),
            )
            return _outcome(subscription, BillingResult.TRIAL_SKIPPED)

        service = TransactionService()
        try:
            transaction = service.create(
                merchant_id=subscription.merchant_id,
                amount=subscription.amount,
                currency=subscription.currency,
                customer_id=subscription.customer_id,
                subscription_id=str(subscription.id),
                billing_cycle=(subscription.billing_cycles_completed or 0) + 1,
            )
        except CreationError as exc:
            subscription.record_billing_failure(exc.error_code, exc.message, now)
            repo.add(subscription)
            logger.warning(
                "Billing transaction creation failed",
                subscription_id=str(subscription.id),
                error=exc.message,
            )
            return _outcome(
                subscription,
                BillingResult.FAILED,
                error_code=exc.error_code,
                message=exc.message,
            )

        charge = service.settle(transaction)
        if charge.success:
            subscription.record_billing_success(str(transaction.id), now)
            repo.add(subscription)
            logger.info(
                "Subscription billed",
                subscription_id=str(subscription.id),
                transaction_id=str(transaction.id),
                billing_cycle=subscription.billing_cycles_completed,
            )
            return _outcome(subscription, BillingResult.BILLED, transaction_id=str(transaction.id))

        reason = charge.failure_reason or charge.gateway_message
        subscription.record_billing_failure("BILLING_FAILED", reason, now, transaction_id=str(transaction.id))
        repo.add(subscription)
        logger.warning(
            "Subscription billing failed",
            subscription_id=str(subscription.id),
            transaction_id=str(transaction.id),
            reason=reason,
        )
        return _outcome(
            subscription,
            BillingResult.FAILED,
            transaction_id=str(transaction.id),
            error_code="BILLING_FAILED",
            message=reason,
        )

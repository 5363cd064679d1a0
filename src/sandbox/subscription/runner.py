"""Billing runner: batch driver over due subscriptions.

Invoked by a scheduler or on demand. Selects trialing and active
subscriptions whose billing date has passed and runs one billing pass for
each. Passes for the same subscription are serialized through its lock;
distinct subscriptions may be billed concurrently when more than one worker
is configured. An error on one subscription (for example NotDue because an
overlapping run got there first, or an unexpected crash) is logged and
counted under its code, and the batch goes on.
"""

from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from datetime import UTC, datetime

import structlog
from protean.utils.globals import current_domain

from sandbox.config import get_config
from sandbox.domain import sandbox
from sandbox.exceptions import SandboxError
from sandbox.subscription.billing import BillingOutcome, BillingResult, ProcessBilling
from sandbox.subscription.subscription import Subscription, as_utc
from sandbox.utils.locks import process_exclusively, subscription_key

logger = structlog.get_logger(__name__)


@dataclass
class BillingRunSummary:
    as_of: datetime
    processed: int = 0
    billed: int = 0
    trial_skipped: int = 0
    cancelled: int = 0
    failed: int = 0
    errors: dict[str, str] = field(default_factory=dict)

    def record(self, subscription_id: str, result: BillingOutcome | SandboxError) -> None:
        self.processed += 1
        if isinstance(result, SandboxError):
            self.errors[subscription_id] = result.error_code
        elif result.result == BillingResult.BILLED:
            self.billed += 1
        elif result.result == BillingResult.TRIAL_SKIPPED:
            self.trial_skipped += 1
        elif result.result == BillingResult.CANCELLED:
            self.cancelled += 1
        else:
            self.failed += 1

    def to_dict(self) -> dict:
        return {
            "as_of": self.as_of.isoformat(),
            "processed": self.processed,
            "billed": self.billed,
            "trial_skipped": self.trial_skipped,
            "cancelled": self.cancelled,
            "failed": self.failed,
            "errors": dict(self.errors),
        }


class BillingRunner:
    def __init__(self, max_workers: int | None = None) -> None:
        self.max_workers = max_workers or get_config().billing.runner_max_workers

    def _bill(self, subscription_id: str, as_of: datetime) -> BillingOutcome | SandboxError:
        try:
            return process_exclusively(
                ProcessBilling(subscription_id=subscription_id, as_of=as_of),
                subscription_key(subscription_id),
            )
        except SandboxError as exc:
            logger.warning(
                "Billing pass skipped",
                subscription_id=subscription_id,
                error_code=exc.error_code,
                error=exc.message,
            )
            return exc
        except Exception as exc:
            logger.exception("Billing pass crashed", subscription_id=subscription_id, error=repr(exc))
            return SandboxError(str(exc), "UNEXPECTED_ERROR", status_code=500)

    def _bill_in_context(self, subscription_id: str, as_of: datetime) -> BillingOutcome | SandboxError:
        with sandbox.domain_context():
            return self._bill(subscription_id, as_of)

    def run(self, as_of: datetime | None = None) -> BillingRunSummary:
        as_of = as_utc(as_of) or datetime.now(UTC)
        due = current_domain.repository_for(Subscription).due_for_billing(as_of)
        subscription_ids = [str(subscription.id) for subscription in due]
        summary = BillingRunSummary(as_of=as_of)

        if self.max_workers <= 1 or len(subscription_ids) <= 1:
            for subscription_id in subscription_ids:
                summary.record(subscription_id, self._bill(subscription_id, as_of))
        else:
            with ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="billing-runner") as executor:
                futures = {
                    executor.submit(self._bill_in_context, subscription_id, as_of): subscription_id
                    for subscription_id in subscription_ids
                }
                for future in as_completed(futures):
                    summary.record(futures[future], future.result())

        logger.info(
            "Billing run finished",
            as_of=as_of.isoformat(),
            processed=summary.processed,
            billed=summary.billed,
            trial_skipped=summary.trial_skipped,
            cancelled=summary.cancelled,
            failed=summary.failed,
            errors=len(summary.errors),
        )
        return summary

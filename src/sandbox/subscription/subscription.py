"""Subscription aggregate (CQRS): recurring billing for a merchant's customer.

A subscription bills once per interval. A trial defers charging until the
trial ends; a declined charge leaves the subscription past due with the
billing date unchanged, so the next on-demand pass retries the same cycle.

State Machine:
    TRIALING → ACTIVE (first charged pass)
    TRIALING/ACTIVE → PAST_DUE (charge declined) → ACTIVE (next successful pass)
    ACTIVE ⇄ PAUSED
    any non-cancelled → CANCELLED → ACTIVE (reactivate)
"""

from datetime import UTC, datetime, timedelta
from enum import Enum

from protean.fields import Boolean, DateTime, Identifier, Integer, String, Text

from sandbox.domain import sandbox
from sandbox.exceptions import (
    InvalidAmountError,
    InvalidIntervalError,
    InvalidStatusError,
    NotActiveError,
    NotDueError,
)
from sandbox.subscription.clock import BillingInterval, next_billing_date
from sandbox.subscription.events import (
    SubscriptionAmountUpdated,
    SubscriptionBilled,
    SubscriptionBillingFailed,
    SubscriptionCancellationScheduled,
    SubscriptionCancelled,
    SubscriptionCreated,
    SubscriptionPaused,
    SubscriptionReactivated,
    SubscriptionResumed,
    SubscriptionTrialCycleSkipped,
)

DEFAULT_CANCELLATION_REASON = "Cancelled by customer"
DEFAULT_PAUSE_REASON = "Paused by customer"


class SubscriptionStatus(Enum):
    TRIALING = "trialing"
    ACTIVE = "active"
    PAST_DUE = "past_due"
    PAUSED = "paused"
    CANCELLED = "cancelled"


# Statuses the billing runner picks up on its own
SCHEDULED_STATUSES = (SubscriptionStatus.TRIALING.value, SubscriptionStatus.ACTIVE.value)

# Statuses an on-demand billing pass accepts
BILLABLE_STATUSES = (*SCHEDULED_STATUSES, SubscriptionStatus.PAST_DUE.value)


def as_utc(value: datetime | None) -> datetime | None:
    """Treat naive datetimes as UTC so stored and supplied instants compare."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


@sandbox.aggregate
class Subscription:
    merchant_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    plan_id = Identifier(required=True)
    amount = Integer(required=True, min_value=1)
    currency = String(max_length=3, default="USD")
    interval = String(max_length=10, choices=BillingInterval, required=True)
    interval_count = Integer(default=1, min_value=1)
    status = String(
        max_length=20,
        choices=SubscriptionStatus,
        default=SubscriptionStatus.ACTIVE.value,
    )
    current_period_start = DateTime()
    current_period_end = DateTime()
    next_billing_date = DateTime()
    trial_start = DateTime()
    trial_end = DateTime()
    billing_cycles_completed = Integer(default=0, min_value=0)
    cancel_at_period_end = Boolean(default=False)
    cancelled_at = DateTime()
    cancellation_reason = String(max_length=500)
    paused_at = DateTime()
    pause_reason = String(max_length=500)
    resumed_at = DateTime()
    reactivated_at = DateTime()
    last_billed_at = DateTime()
    last_billing_attempt = DateTime()
    metadata = Text()  # JSON object
    created_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Factory method
    # -------------------------------------------------------------------
    @classmethod
    def create(
        cls,
        merchant_id: str,
        customer_id: str,
        plan_id: str,
        amount: int,
        currency: str,
        interval: str,
        interval_count: int = 1,
        trial_days: int = 0,
        metadata: str | None = None,
        now: datetime | None = None,
    ):
        """Start a subscription, in trial when ``trial_days`` is positive."""
        try:
            unit = BillingInterval(interval)
        except ValueError as exc:
            raise InvalidIntervalError(f"Unrecognized billing interval: {interval}", interval=interval) from exc
        if interval_count is None or interval_count < 1:
            raise InvalidIntervalError("Interval count must be at least 1", interval_count=interval_count)
        if amount is None or amount <= 0:
            raise InvalidAmountError("Subscription amount must be a positive integer", amount=amount)

        now = as_utc(now) or datetime.now(UTC)
        period_end = next_billing_date(now, unit, interval_count)
        trial_days = trial_days or 0
        if trial_days > 0:
            status = SubscriptionStatus.TRIALING
            trial_start, trial_end = now, now + timedelta(days=trial_days)
        else:
            status = SubscriptionStatus.ACTIVE
            trial_start = trial_end = None

        subscription = cls(
            merchant_id=merchant_id,
            customer_id=customer_id,
            plan_id=plan_id,
            amount=amount,
            currency=(currency or "USD").upper(),
            interval=unit.value,
            interval_count=interval_count,
            status=status.value,
            current_period_start=now,
            current_period_end=period_end,
            next_billing_date=period_end,
            trial_start=trial_start,
            trial_end=trial_end,
            billing_cycles_completed=0,
            metadata=metadata,
            created_at=now,
            updated_at=now,
        )
        subscription.raise_(
            SubscriptionCreated(
                subscription_id=str(subscription.id),
                merchant_id=str(merchant_id),
                customer_id=str(customer_id),
                plan_id=str(plan_id),
                amount=amount,
                currency=subscription.currency,
                interval=unit.value,
                interval_count=interval_count,
                status=status.value,
                trial_end=trial_end,
                next_billing_date=period_end,
                created_at=now,
            )
        )
        return subscription

    # -------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------
    def _require_status(self, action: str, *allowed: SubscriptionStatus) -> None:
        if self.status not in {status.value for status in allowed}:
            raise InvalidStatusError(
                f"Cannot {action} a subscription that is {self.status}",
                subscription_id=str(self.id),
                status=self.status,
            )

    def _advance(self, anchor: datetime) -> datetime:
        return next_billing_date(as_utc(anchor), self.interval, self.interval_count or 1)

    # -------------------------------------------------------------------
    # Billing
    # -------------------------------------------------------------------
    def assert_billable(self, now: datetime) -> None:
        """Raise NotActive or NotDue unless a billing pass may run at ``now``."""
        if self.status not in BILLABLE_STATUSES:
            raise NotActiveError(
                f"Subscription is {self.status} and cannot be billed",
                subscription_id=str(self.id),
                status=self.status,
            )
        if self.next_billing_date is None or as_utc(self.next_billing_date) > now:
            raise NotDueError(
                "Subscription is not due for billing",
                subscription_id=str(self.id),
                next_billing_date=self.next_billing_date.isoformat() if self.next_billing_date else None,
            )

    def cancellation_due(self, now: datetime) -> bool:
        """True when a period-end cancellation has reached its boundary."""
        return bool(self.cancel_at_period_end) and (
            self.current_period_end is None or as_utc(self.current_period_end) <= now
        )

    def in_trial(self, now: datetime) -> bool:
        return self.trial_end is not None and as_utc(self.trial_end) > now

    def skip_trial_cycle(self, now: datetime) -> None:
        """Move the billing date on by one interval without charging."""
        previous = as_utc(self.next_billing_date)
        self.next_billing_date = self._advance(previous)
        self.updated_at = now
        self.raise_(
            SubscriptionTrialCycleSkipped(
                subscription_id=str(self.id),
                merchant_id=str(self.merchant_id),
                previous_billing_date=previous,
                next_billing_date=self.next_billing_date,
                skipped_at=now,
            )
        )

    def record_billing_success(self, transaction_id: str, now: datetime) -> None:
        self.billing_cycles_completed = (self.billing_cycles_completed or 0) + 1
        self.last_billed_at = now
        self.current_period_start = now
        self.current_period_end = self._advance(now)
        self.next_billing_date = self.current_period_end
        self.status = SubscriptionStatus.ACTIVE.value
        self.updated_at = now
        self.raise_(
            SubscriptionBilled(
                subscription_id=str(self.id),
                merchant_id=str(self.merchant_id),
                transaction_id=str(transaction_id),
                amount=self.amount,
                currency=self.currency,
                billing_cycle=self.billing_cycles_completed,
                next_billing_date=self.next_billing_date,
                billed_at=now,
            )
        )

    def record_billing_failure(
        self,
        error_code: str,
        reason: str | None,
        now: datetime,
        transaction_id: str | None = None,
    ) -> None:
        """Mark the subscription past due. The billing date is left as is."""
        self.last_billing_attempt = now
        self.status = SubscriptionStatus.PAST_DUE.value
        self.updated_at = now
        self.raise_(
            SubscriptionBillingFailed(
                subscription_id=str(self.id),
                merchant_id=str(self.merchant_id),
                transaction_id=transaction_id,
                amount=self.amount,
                billing_cycle=(self.billing_cycles_completed or 0) + 1,
                error_code=error_code,
                reason=reason,
                failed_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Cancellation
    # -------------------------------------------------------------------
    def _mark_cancelled(self, now: datetime, at_period_end: bool) -> None:
        self.status = SubscriptionStatus.CANCELLED.value
        self.cancelled_at = now
        self.updated_at = now
        self.raise_(
            SubscriptionCancelled(
                subscription_id=str(self.id),
                merchant_id=str(self.merchant_id),
                reason=self.cancellation_reason,
                at_period_end=at_period_end,
                cancelled_at=now,
            )
        )

    def cancel(
        self,
        reason: str | None = None,
        at_period_end: bool = False,
        defer: bool = True,
        now: datetime | None = None,
    ) -> None:
        """Cancel now, or schedule cancellation for the end of the period.

        With ``defer`` False a period-end request is recorded but takes effect
        immediately. A paused subscription is never billed, so its period never
        closes: a period-end request while paused also cancels at once.
        """
        self._require_status(
            "cancel",
            SubscriptionStatus.TRIALING,
            SubscriptionStatus.ACTIVE,
            SubscriptionStatus.PAST_DUE,
            SubscriptionStatus.PAUSED,
        )
        now = as_utc(now) or datetime.now(UTC)
        self.cancel_at_period_end = bool(at_period_end)
        self.cancellation_reason = reason or DEFAULT_CANCELLATION_REASON

        if at_period_end and defer and self.status != SubscriptionStatus.PAUSED.value:
            self.updated_at = now
            self.raise_(
                SubscriptionCancellationScheduled(
                    subscription_id=str(self.id),
                    merchant_id=str(self.merchant_id),
                    reason=self.cancellation_reason,
                    effective_at=self.current_period_end or now,
                    scheduled_at=now,
                )
            )
            return

        self._mark_cancelled(now, at_period_end=False)

    def complete_scheduled_cancellation(self, now: datetime) -> None:
        self._mark_cancelled(now, at_period_end=True)

    def reactivate(self, now: datetime | None = None) -> None:
        """Bring a cancelled subscription back. The billing date is kept."""
        self._require_status("reactivate", SubscriptionStatus.CANCELLED)
        now = as_utc(now) or datetime.now(UTC)
        self.status = SubscriptionStatus.ACTIVE.value
        self.cancelled_at = None
        self.cancellation_reason = None
        self.cancel_at_period_end = False
        self.reactivated_at = now
        self.updated_at = now
        self.raise_(
            SubscriptionReactivated(
                subscription_id=str(self.id),
                merchant_id=str(self.merchant_id),
                next_billing_date=self.next_billing_date,
                reactivated_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Pause / resume
    # -------------------------------------------------------------------
    def pause(self, reason: str | None = None, now: datetime | None = None) -> None:
        self._require_status("pause", SubscriptionStatus.ACTIVE)
        now = as_utc(now) or datetime.now(UTC)
        self.status = SubscriptionStatus.PAUSED.value
        self.paused_at = now
        self.pause_reason = reason or DEFAULT_PAUSE_REASON
        self.resumed_at = None
        self.updated_at = now
        self.raise_(
            SubscriptionPaused(
                subscription_id=str(self.id),
                merchant_id=str(self.merchant_id),
                reason=self.pause_reason,
                paused_at=now,
            )
        )

    def resume(self, now: datetime | None = None) -> None:
        self._require_status("resume", SubscriptionStatus.PAUSED)
        now = as_utc(now) or datetime.now(UTC)
        self.status = SubscriptionStatus.ACTIVE.value
        self.resumed_at = now
        self.paused_at = None
        self.pause_reason = None
        self.updated_at = now
        self.raise_(
            SubscriptionResumed(
                subscription_id=str(self.id),
                merchant_id=str(self.merchant_id),
                resumed_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Plan changes
    # -------------------------------------------------------------------
    def update_amount(self, new_amount: int, now: datetime | None = None) -> None:
        """Change the price charged from the next cycle on."""
        self._require_status("update", SubscriptionStatus.ACTIVE)
        if new_amount is None or new_amount <= 0:
            raise InvalidAmountError("Subscription amount must be a positive integer", amount=new_amount)

        now = as_utc(now) or datetime.now(UTC)
        old_amount = self.amount
        self.amount = new_amount
        self.updated_at = now
        self.raise_(
            SubscriptionAmountUpdated(
                subscription_id=str(self.id),
                merchant_id=str(self.merchant_id),
                old_amount=old_amount,
                new_amount=new_amount,
                updated_at=now,
            )
        )

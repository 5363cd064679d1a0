"""Application tests for a single billing pass."""

from datetime import UTC, datetime, timedelta

import pytest
from protean import current_domain
from sandbox.exceptions import BillingFailedError, CreationError, NotActiveError, NotDueError
from sandbox.subscription import lifecycle
from sandbox.subscription.billing import BillingResult
from sandbox.subscription.clock import next_billing_date
from sandbox.subscription.subscription import SubscriptionStatus, as_utc
from sandbox.transaction.transaction import Transaction, TransactionStatus


def _subscribe(**overrides):
    defaults = {
        "merchant_id": "m-1",
        "customer_id": "c-1",
        "plan_id": "plan-basic",
        "amount": 1500,
        "interval": "monthly",
    }
    defaults.update(overrides)
    return lifecycle.create_subscription(**defaults)


def _due(subscription):
    return as_utc(subscription.next_billing_date)


class TestSuccessfulBilling:
    def test_charge_advances_the_period(self):
        sub = _subscribe()
        as_of = _due(sub) + timedelta(hours=1)

        outcome = lifecycle.process_billing(sub.id, as_of=as_of)

        assert outcome.success is True
        assert outcome.result == BillingResult.BILLED
        assert outcome.billing_cycle == 1
        billed = lifecycle.get_subscription(sub.id)
        assert billed.status == SubscriptionStatus.ACTIVE.value
        assert billed.billing_cycles_completed == 1
        assert as_utc(billed.last_billed_at) == as_of
        assert as_utc(billed.current_period_start) == as_of
        assert as_utc(billed.next_billing_date) == next_billing_date(as_of, "monthly")

    def test_charge_creates_tagged_transaction(self):
        sub = _subscribe(amount=4200, currency="eur")
        outcome = lifecycle.process_billing(sub.id, as_of=_due(sub))

        transaction = current_domain.repository_for(Transaction).get(outcome.transaction_id)
        assert transaction.status == TransactionStatus.SUCCESS.value
        assert transaction.amount == 4200
        assert transaction.currency == "EUR"
        assert transaction.subscription_id == sub.id
        assert transaction.billing_cycle == 1
        assert transaction.customer_id == "c-1"

    def test_second_pass_before_next_date_is_not_due(self):
        sub = _subscribe()
        lifecycle.process_billing(sub.id, as_of=_due(sub))
        with pytest.raises(NotDueError):
            lifecycle.process_billing(sub.id, as_of=_due(sub) + timedelta(days=1))

    def test_not_due_before_billing_date(self):
        sub = _subscribe()
        with pytest.raises(NotDueError):
            lifecycle.process_billing(sub.id, as_of=datetime.now(UTC) + timedelta(days=3))


class TestTrialBilling:
    def test_trial_pass_skips_charge_and_advances_date(self, gateway):
        sub = _subscribe(trial_days=45)
        prior = _due(sub)

        outcome = lifecycle.process_billing(sub.id, as_of=prior + timedelta(hours=1))

        assert outcome.result == BillingResult.TRIAL_SKIPPED
        assert outcome.transaction_id is None
        skipped = lifecycle.get_subscription(sub.id)
        assert skipped.status == SubscriptionStatus.TRIALING.value
        assert skipped.billing_cycles_completed == 0
        assert as_utc(skipped.next_billing_date) == next_billing_date(prior, "monthly")
        assert [call for call in gateway.calls if call["method"] == "create_charge"] == []

    def test_trial_pass_early_in_trial_is_not_due(self):
        sub = _subscribe(trial_days=7)
        with pytest.raises(NotDueError):
            lifecycle.process_billing(sub.id, as_of=datetime.now(UTC) + timedelta(days=3))

    def test_first_charge_after_trial_activates(self):
        sub = _subscribe(trial_days=7)
        outcome = lifecycle.process_billing(sub.id, as_of=_due(sub))
        assert outcome.result == BillingResult.BILLED
        assert lifecycle.get_subscription(sub.id).status == SubscriptionStatus.ACTIVE.value


class TestFailedBilling:
    def test_declined_charge_leaves_subscription_past_due(self, gateway):
        sub = _subscribe()
        gateway.configure(should_succeed=False, failure_reason="Card declined")

        outcome = lifecycle.process_billing(sub.id, as_of=_due(sub))

        assert outcome.success is False
        assert outcome.result == BillingResult.FAILED
        assert outcome.error_code == "BILLING_FAILED"
        assert outcome.message == "Card declined"
        failed = lifecycle.get_subscription(sub.id)
        assert failed.status == SubscriptionStatus.PAST_DUE.value
        assert failed.billing_cycles_completed == 0
        assert as_utc(failed.next_billing_date) == _due(sub)
        assert failed.last_billing_attempt is not None
        transaction = current_domain.repository_for(Transaction).get(outcome.transaction_id)
        assert transaction.status == TransactionStatus.FAILED.value

    def test_failed_outcome_maps_to_billing_failed_error(self, gateway):
        sub = _subscribe()
        gateway.configure(should_succeed=False)
        outcome = lifecycle.process_billing(sub.id, as_of=_due(sub))
        error = outcome.as_error()
        assert isinstance(error, BillingFailedError)
        assert error.status_code == 402

    def test_inactive_merchant_is_a_creation_error(self, directory):
        sub = _subscribe()
        directory.deactivate("m-1")

        outcome = lifecycle.process_billing(sub.id, as_of=_due(sub))

        assert outcome.result == BillingResult.FAILED
        assert outcome.error_code == "CREATION_ERROR"
        assert outcome.transaction_id is None
        assert isinstance(outcome.as_error(), CreationError)
        assert lifecycle.get_subscription(sub.id).status == SubscriptionStatus.PAST_DUE.value

    def test_past_due_recovers_on_demand(self, gateway):
        sub = _subscribe()
        gateway.configure(should_succeed=False)
        lifecycle.process_billing(sub.id, as_of=_due(sub))
        gateway.configure(should_succeed=True)

        outcome = lifecycle.process_billing(sub.id, as_of=_due(sub) + timedelta(days=2))

        assert outcome.result == BillingResult.BILLED
        recovered = lifecycle.get_subscription(sub.id)
        assert recovered.status == SubscriptionStatus.ACTIVE.value
        assert recovered.billing_cycles_completed == 1

    def test_gateway_error_leaves_subscription_past_due(self, unreachable_gateway):
        sub = _subscribe()

        outcome = lifecycle.process_billing(sub.id, as_of=_due(sub))

        assert outcome.success is False
        assert outcome.error_code == "BILLING_FAILED"
        assert "gateway unreachable" in outcome.message
        failed = lifecycle.get_subscription(sub.id)
        assert failed.status == SubscriptionStatus.PAST_DUE.value
        assert as_utc(failed.next_billing_date) == _due(sub)
        transaction = current_domain.repository_for(Transaction).get(outcome.transaction_id)
        assert transaction.status == TransactionStatus.FAILED.value
        assert len(unreachable_gateway.calls) == 1


class TestNotBillable:
    def test_paused_is_not_active(self):
        sub = _subscribe()
        lifecycle.pause_subscription(sub.id)
        with pytest.raises(NotActiveError):
            lifecycle.process_billing(sub.id, as_of=_due(sub))

    def test_cancelled_is_not_active(self):
        sub = _subscribe()
        lifecycle.cancel_subscription(sub.id)
        with pytest.raises(NotActiveError):
            lifecycle.process_billing(sub.id, as_of=_due(sub))

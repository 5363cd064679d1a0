"""Application tests for webhook notifications raised by ledger and lifecycle changes."""

from datetime import timedelta

import pytest
from protean import current_domain
from sandbox.exceptions import InvalidAmountError
from sandbox.notifier import set_notifier
from sandbox.notifier.port import EventNotifier
from sandbox.refund import ledger
from sandbox.refund.refund import RefundStatus
from sandbox.subscription import lifecycle
from sandbox.subscription.subscription import SubscriptionStatus, as_utc
from sandbox.transaction.charge import CreateTransaction


class BrokenNotifier(EventNotifier):
    def emit(self, event):
        raise RuntimeError("webhook queue is down")


def _charge(amount=10000):
    return current_domain.process(
        CreateTransaction(merchant_id="m-1", customer_id="c-1", amount=amount),
        asynchronous=False,
    )


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


class TestRefundNotifications:
    def test_refund_lifecycle_events(self, notifier):
        txn_id = _charge()
        refund = ledger.create_refund("m-1", txn_id, 2000, "reason")
        ledger.process_refund(refund.id)
        assert notifier.names() == ["refund.created", "refund.completed"]

    def test_payload_carries_event_fields(self, notifier):
        txn_id = _charge()
        refund = ledger.create_refund("m-1", txn_id, 2000, "reason")
        event = notifier.events[0]
        assert event.merchant_id == "m-1"
        assert event.payload["refund_id"] == refund.id
        assert event.payload["amount"] == 2000
        assert isinstance(event.payload["created_at"], str)

    def test_failed_cancelled_and_updated(self, notifier, gateway):
        txn_id = _charge()
        gateway.configure(should_succeed=True, refunds_should_succeed=False)
        failed = ledger.create_refund("m-1", txn_id, 1000, "reason")
        ledger.process_refund(failed.id)
        cancelled = ledger.create_refund("m-1", txn_id, 2000, "reason")
        ledger.cancel_refund(cancelled.id)
        overridden = ledger.create_refund("m-1", txn_id, 3000, "reason")
        ledger.update_refund_status(overridden.id, "failed")

        names = notifier.names()
        assert "refund.failed" in names
        assert "refund.cancelled" in names
        assert names[-1] == "refund.updated"

    def test_rejected_request_emits_nothing(self, notifier):
        txn_id = _charge()
        notifier.clear()
        with pytest.raises(InvalidAmountError):
            ledger.create_refund("m-1", txn_id, 20000, "reason")
        assert notifier.names() == []


class TestSubscriptionNotifications:
    def test_lifecycle_events(self, notifier):
        sub = _subscribe()
        lifecycle.pause_subscription(sub.id)
        lifecycle.resume_subscription(sub.id)
        lifecycle.update_subscription_amount(sub.id, 1800)
        lifecycle.cancel_subscription(sub.id)
        lifecycle.reactivate_subscription(sub.id)
        assert notifier.names() == [
            "subscription.created",
            "subscription.paused",
            "subscription.resumed",
            "subscription.updated",
            "subscription.cancelled",
            "subscription.reactivated",
        ]

    def test_billing_events(self, notifier, gateway):
        billed = _subscribe()
        lifecycle.process_billing(billed.id, as_of=as_utc(billed.next_billing_date))
        assert notifier.names()[-1] == "subscription.billed"

        failing = _subscribe()
        gateway.configure(should_succeed=False)
        lifecycle.process_billing(failing.id, as_of=as_utc(failing.next_billing_date))
        assert notifier.names()[-1] == "subscription.billing_failed"
        assert notifier.events[-1].payload["error_code"] == "BILLING_FAILED"

    def test_scheduled_cancellation_events(self, notifier):
        sub = _subscribe()
        lifecycle.cancel_subscription(sub.id, cancel_at_period_end=True)
        assert notifier.names()[-1] == "subscription.cancellation_scheduled"
        lifecycle.process_billing(sub.id, as_of=as_utc(sub.current_period_end) + timedelta(minutes=1))
        assert notifier.names()[-1] == "subscription.cancelled"
        assert notifier.events[-1].payload["at_period_end"] is True


class TestNotifierFailure:
    def test_broken_notifier_does_not_undo_changes(self):
        set_notifier(BrokenNotifier())
        txn_id = _charge()
        refund = ledger.create_refund("m-1", txn_id, 2000, "reason")
        refund = ledger.process_refund(refund.id)
        assert refund.status == RefundStatus.COMPLETED.value

        sub = _subscribe()
        assert lifecycle.pause_subscription(sub.id).status == SubscriptionStatus.PAUSED.value

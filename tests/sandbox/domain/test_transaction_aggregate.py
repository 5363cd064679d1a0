"""Tests for the Transaction aggregate: settlement and refund credits."""

import pytest
from protean.exceptions import ValidationError
from sandbox.exceptions import AmountExceededError, InvalidAmountError, NotRefundableError
from sandbox.transaction.events import (
    TransactionCreated,
    TransactionFailed,
    TransactionRefunded,
    TransactionSucceeded,
)
from sandbox.transaction.transaction import RefundSummary, Transaction, TransactionStatus


def _settled(amount=10000):
    transaction = Transaction.create(merchant_id="m-1", amount=amount, currency="usd")
    transaction.mark_succeeded("gw-txn-1", "ok")
    transaction._events.clear()
    return transaction


class TestTransactionCreation:
    def test_create_is_pending_with_reference(self):
        transaction = Transaction.create(merchant_id="m-1", amount=5000, customer_id="c-1")
        assert transaction.status == TransactionStatus.PENDING.value
        assert transaction.reference.startswith("TXN-")
        assert transaction.refunded_amount == 0
        assert transaction.refund_status == RefundSummary.NONE.value
        assert transaction.remaining_amount == 5000

    def test_currency_is_upper_cased(self):
        transaction = Transaction.create(merchant_id="m-1", amount=5000, currency="eur")
        assert transaction.currency == "EUR"

    def test_create_raises_event(self):
        transaction = Transaction.create(merchant_id="m-1", amount=5000)
        assert len(transaction._events) == 1
        event = transaction._events[0]
        assert isinstance(event, TransactionCreated)
        assert event.amount == 5000
        assert event.reference == transaction.reference

    @pytest.mark.parametrize("amount", [0, -100])
    def test_non_positive_amount_rejected(self, amount):
        with pytest.raises(InvalidAmountError):
            Transaction.create(merchant_id="m-1", amount=amount)


class TestSettlement:
    def test_mark_succeeded(self):
        transaction = Transaction.create(merchant_id="m-1", amount=5000)
        transaction.mark_succeeded("gw-1", "Charge successful")
        assert transaction.status == TransactionStatus.SUCCESS.value
        assert transaction.gateway_transaction_id == "gw-1"
        assert transaction.settled_at is not None
        assert isinstance(transaction._events[-1], TransactionSucceeded)

    def test_mark_failed(self):
        transaction = Transaction.create(merchant_id="m-1", amount=5000)
        transaction.mark_failed("Card declined")
        assert transaction.status == TransactionStatus.FAILED.value
        assert transaction.gateway_message == "Card declined"
        assert isinstance(transaction._events[-1], TransactionFailed)

    def test_cannot_settle_twice(self):
        transaction = _settled()
        with pytest.raises(ValidationError):
            transaction.mark_failed("late decline")


class TestCredit:
    def test_partial_credit(self):
        transaction = _settled()
        transaction.credit(3000, "partial")
        assert transaction.refunded_amount == 3000
        assert transaction.remaining_amount == 7000
        assert transaction.refund_status == RefundSummary.PARTIALLY_REFUNDED.value
        event = transaction._events[-1]
        assert isinstance(event, TransactionRefunded)
        assert event.refunded_amount == 3000

    def test_partials_reaching_the_total_mark_fully_refunded(self):
        transaction = _settled()
        transaction.credit(4000, "partial")
        transaction.credit(6000, "partial")
        assert transaction.refunded_amount == 10000
        assert transaction.refund_status == RefundSummary.FULLY_REFUNDED.value

    def test_full_credit(self):
        transaction = _settled()
        transaction.credit(10000, "full")
        assert transaction.refund_status == RefundSummary.FULLY_REFUNDED.value
        assert transaction.remaining_amount == 0

    def test_credit_beyond_remaining_is_refused(self):
        transaction = _settled()
        transaction.credit(7000, "partial")
        with pytest.raises(AmountExceededError) as exc_info:
            transaction.credit(4000, "partial")
        assert exc_info.value.remaining_amount == 3000
        assert transaction.refunded_amount == 7000

    def test_credit_on_failed_transaction_is_refused(self):
        transaction = Transaction.create(merchant_id="m-1", amount=5000)
        transaction.mark_failed("declined")
        with pytest.raises(NotRefundableError):
            transaction.credit(1000, "partial")

    def test_zero_credit_is_refused(self):
        transaction = _settled()
        with pytest.raises(InvalidAmountError):
            transaction.credit(0, "partial")

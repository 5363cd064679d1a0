"""Application tests for the refund ledger via the ledger entry points."""

import pytest
from protean import current_domain
from sandbox.exceptions import (
    AmountExceededError,
    DuplicateRefundError,
    InvalidAmountError,
    InvalidStatusError,
    NotFoundError,
    NotRefundableError,
    UnauthorizedError,
)
from sandbox.refund import ledger
from sandbox.refund.refund import Refund, RefundStatus, RefundType
from sandbox.transaction.charge import CreateTransaction
from sandbox.transaction.transaction import RefundSummary, Transaction, TransactionStatus


def _charge(amount=10000, merchant_id="m-1"):
    return current_domain.process(
        CreateTransaction(merchant_id=merchant_id, customer_id="c-1", amount=amount),
        asynchronous=False,
    )


def _transaction(transaction_id):
    return current_domain.repository_for(Transaction).get(transaction_id)


class TestCreateRefund:
    def test_partial_refund_is_pending(self):
        txn_id = _charge()
        refund = ledger.create_refund("m-1", txn_id, 3000, "Damaged item")
        assert refund.status == RefundStatus.PENDING.value
        assert refund.refund_type == RefundType.PARTIAL.value
        assert refund.reference.startswith("REF-")
        assert refund.currency == "USD"
        # The transaction is only credited on settlement
        assert _transaction(txn_id).refunded_amount == 0

    def test_refund_method_and_metadata_are_kept(self):
        txn_id = _charge()
        refund = ledger.create_refund(
            "m-1", txn_id, 3000, "Damaged item", refund_method="wallet", metadata={"ticket": "T-1"}
        )
        assert refund.refund_method == "wallet"
        assert refund.metadata == '{"ticket": "T-1"}'

    def test_unknown_transaction(self):
        with pytest.raises(NotFoundError):
            ledger.create_refund("m-1", "does-not-exist", 100, "reason")

    def test_other_merchants_transaction(self):
        txn_id = _charge(merchant_id="m-1")
        with pytest.raises(UnauthorizedError):
            ledger.create_refund("m-2", txn_id, 100, "reason")

    def test_failed_transaction_is_not_refundable(self, gateway):
        gateway.configure(should_succeed=False)
        txn_id = _charge()
        assert _transaction(txn_id).status == TransactionStatus.FAILED.value
        with pytest.raises(NotRefundableError):
            ledger.create_refund("m-1", txn_id, 100, "reason")

    @pytest.mark.parametrize("amount", [0, -5, 10001])
    def test_amount_out_of_range(self, amount):
        txn_id = _charge()
        with pytest.raises(InvalidAmountError):
            ledger.create_refund("m-1", txn_id, amount, "reason")

    def test_ownership_is_checked_before_amount(self):
        txn_id = _charge()
        with pytest.raises(UnauthorizedError):
            ledger.create_refund("m-2", txn_id, 0, "reason")

    def test_pending_refunds_count_against_the_balance(self):
        txn_id = _charge()
        ledger.create_refund("m-1", txn_id, 7000, "first")
        with pytest.raises(AmountExceededError) as exc_info:
            ledger.create_refund("m-1", txn_id, 4000, "second")
        assert exc_info.value.remaining_amount == 3000

    def test_cancelled_refunds_free_the_balance(self):
        txn_id = _charge()
        first = ledger.create_refund("m-1", txn_id, 7000, "first")
        ledger.cancel_refund(first.id, reason="Mistake")
        second = ledger.create_refund("m-1", txn_id, 10000, "second")
        assert second.refund_type == RefundType.FULL.value

    def test_same_amount_is_a_duplicate(self):
        txn_id = _charge()
        ledger.create_refund("m-1", txn_id, 3000, "first")
        with pytest.raises(DuplicateRefundError):
            ledger.create_refund("m-1", txn_id, 3000, "again")

    def test_exceeded_is_reported_before_duplicate(self):
        txn_id = _charge()
        ledger.create_refund("m-1", txn_id, 6000, "first")
        with pytest.raises(AmountExceededError):
            ledger.create_refund("m-1", txn_id, 6000, "again")

    def test_failed_refund_amount_can_be_requested_again(self, gateway):
        txn_id = _charge()
        gateway.configure(should_succeed=True, refunds_should_succeed=False)
        first = ledger.create_refund("m-1", txn_id, 3000, "first")
        ledger.process_refund(first.id)
        second = ledger.create_refund("m-1", txn_id, 3000, "retry")
        assert second.status == RefundStatus.PENDING.value


class TestProcessRefund:
    def test_full_refund_settles_transaction(self):
        txn_id = _charge()
        refund = ledger.create_refund("m-1", txn_id, 10000, "Order cancelled")
        assert refund.refund_type == RefundType.FULL.value

        refund = ledger.process_refund(refund.id)

        assert refund.status == RefundStatus.COMPLETED.value
        assert refund.gateway_refund_id.startswith("fake_ref_")
        assert refund.approval_info.approved_by == "system"
        transaction = _transaction(txn_id)
        assert transaction.refunded_amount == 10000
        assert transaction.refund_status == RefundSummary.FULLY_REFUNDED.value

    def test_second_refund_exceeding_remaining_is_rejected(self):
        txn_id = _charge()
        first = ledger.create_refund("m-1", txn_id, 6000, "first")
        ledger.process_refund(first.id)
        with pytest.raises(AmountExceededError) as exc_info:
            ledger.create_refund("m-1", txn_id, 5000, "second")
        assert exc_info.value.remaining_amount == 4000
        assert _transaction(txn_id).refund_status == RefundSummary.PARTIALLY_REFUNDED.value

    def test_gateway_decline_fails_refund_and_leaves_transaction(self, gateway):
        txn_id = _charge()
        gateway.configure(should_succeed=True, refunds_should_succeed=False)
        refund = ledger.create_refund("m-1", txn_id, 3000, "reason")

        refund = ledger.process_refund(refund.id)

        assert refund.status == RefundStatus.FAILED.value
        assert refund.failure_reason == "Insufficient balance"
        assert _transaction(txn_id).refunded_amount == 0

    def test_gateway_error_fails_refund_instead_of_raising(self, unreachable_gateway):
        unreachable_gateway.reachable = True
        txn_id = _charge()
        refund = ledger.create_refund("m-1", txn_id, 3000, "reason")
        unreachable_gateway.reachable = False

        refund = ledger.process_refund(refund.id)

        assert refund.status == RefundStatus.FAILED.value
        assert "gateway unreachable" in refund.failure_reason
        assert refund.processed_at is not None
        assert _transaction(txn_id).refunded_amount == 0

    def test_gateway_receives_the_original_charge_id(self, gateway):
        txn_id = _charge()
        refund = ledger.create_refund("m-1", txn_id, 2500, "reason")
        ledger.process_refund(refund.id)
        call = gateway.calls[-1]
        assert call["method"] == "create_refund"
        assert call["gateway_transaction_id"] == _transaction(txn_id).gateway_transaction_id
        assert call["amount"] == 2500

    def test_processed_refund_cannot_be_processed_again(self):
        txn_id = _charge()
        refund = ledger.create_refund("m-1", txn_id, 2500, "reason")
        ledger.process_refund(refund.id)
        with pytest.raises(InvalidStatusError):
            ledger.process_refund(refund.id)

    def test_unknown_refund(self):
        with pytest.raises(NotFoundError):
            ledger.process_refund("missing")


class TestCancelRefund:
    def test_cancel_pending(self):
        txn_id = _charge()
        refund = ledger.create_refund("m-1", txn_id, 3000, "reason")
        refund = ledger.cancel_refund(refund.id, reason="Customer kept item")
        assert refund.status == RefundStatus.CANCELLED.value
        assert refund.failure_reason == "Customer kept item"

    def test_cannot_cancel_completed(self):
        txn_id = _charge()
        refund = ledger.create_refund("m-1", txn_id, 3000, "reason")
        ledger.process_refund(refund.id)
        with pytest.raises(InvalidStatusError):
            ledger.cancel_refund(refund.id)


class TestUpdateRefundStatus:
    def test_override_to_completed_credits_transaction(self):
        txn_id = _charge()
        refund = ledger.create_refund("m-1", txn_id, 4000, "reason")
        refund = ledger.update_refund_status(refund.id, "completed", notes="Paid by cheque", approved_by="ops")
        assert refund.status == RefundStatus.COMPLETED.value
        assert refund.approval_info.approved_by == "ops"
        assert _transaction(txn_id).refunded_amount == 4000

    def test_override_to_same_status_changes_nothing(self, notifier):
        txn_id = _charge()
        refund = ledger.create_refund("m-1", txn_id, 4000, "reason")
        notifier.clear()
        refund = ledger.update_refund_status(refund.id, "pending")
        assert refund.status == RefundStatus.PENDING.value
        assert notifier.names() == []

    def test_completed_refund_cannot_be_overridden(self):
        txn_id = _charge()
        refund = ledger.create_refund("m-1", txn_id, 4000, "reason")
        ledger.process_refund(refund.id)
        with pytest.raises(InvalidStatusError):
            ledger.update_refund_status(refund.id, "failed")
        assert _transaction(txn_id).refunded_amount == 4000

    def test_override_to_completed_cannot_overflow(self):
        txn_id = _charge()
        first = ledger.create_refund("m-1", txn_id, 6000, "first")
        ledger.update_refund_status(first.id, "failed")
        second = ledger.create_refund("m-1", txn_id, 7000, "second")
        ledger.process_refund(second.id)
        with pytest.raises(AmountExceededError):
            ledger.update_refund_status(first.id, "completed")
        assert ledger.get_refund(first.id).status == RefundStatus.FAILED.value

    def test_reopening_cancelled_refund_cannot_overcommit_balance(self):
        txn_id = _charge()
        first = ledger.create_refund("m-1", txn_id, 6000, "first")
        ledger.cancel_refund(first.id)
        second = ledger.create_refund("m-1", txn_id, 5000, "second")

        with pytest.raises(AmountExceededError) as exc:
            ledger.update_refund_status(first.id, "pending")

        assert exc.value.remaining_amount == 5000
        assert ledger.get_refund(first.id).status == RefundStatus.CANCELLED.value
        outstanding = current_domain.repository_for(Refund).outstanding_for_transaction(txn_id)
        assert sum(refund.amount for refund in outstanding) == 5000

        # The other refund still settles normally
        assert ledger.process_refund(second.id).status == RefundStatus.COMPLETED.value
        assert _transaction(txn_id).refunded_amount == 5000

    def test_completing_failed_refund_counts_pending_refunds(self, gateway):
        txn_id = _charge()
        gateway.configure(should_succeed=True, refunds_should_succeed=False)
        first = ledger.create_refund("m-1", txn_id, 6000, "first")
        ledger.process_refund(first.id)
        gateway.configure(should_succeed=True)
        ledger.create_refund("m-1", txn_id, 5000, "second")

        with pytest.raises(AmountExceededError):
            ledger.update_refund_status(first.id, "completed")

        assert ledger.get_refund(first.id).status == RefundStatus.FAILED.value
        assert _transaction(txn_id).refunded_amount == 0

    def test_reopening_within_balance_is_allowed(self):
        txn_id = _charge()
        first = ledger.create_refund("m-1", txn_id, 3000, "first")
        ledger.cancel_refund(first.id)
        ledger.create_refund("m-1", txn_id, 5000, "second")

        refund = ledger.update_refund_status(first.id, "pending")

        assert refund.status == RefundStatus.PENDING.value


class TestRefundQueries:
    def test_lookup_by_reference(self):
        txn_id = _charge()
        refund = ledger.create_refund("m-1", txn_id, 1000, "reason")
        assert ledger.get_refund_by_reference(refund.reference).id == refund.id

    def test_unknown_reference(self):
        with pytest.raises(NotFoundError):
            ledger.get_refund_by_reference("REF-NOPE")

    def test_list_is_scoped_and_paginated(self):
        txn_id = _charge(amount=100000)
        for amount in (1000, 2000, 3000):
            ledger.create_refund("m-1", txn_id, amount, "reason")
        other = _charge(merchant_id="m-2")
        ledger.create_refund("m-2", other, 500, "reason")

        page = ledger.list_refunds("m-1", page=1, per_page=2)
        assert page["total"] == 3
        assert page["pages"] == 2
        assert len(page["refunds"]) == 2
        assert page["has_next"] is True
        assert page["has_prev"] is False
        assert all(r.merchant_id == "m-1" for r in page["refunds"])

        last = ledger.list_refunds("m-1", page=2, per_page=2)
        assert len(last["refunds"]) == 1
        assert last["has_prev"] is True

    def test_list_filters_by_status_and_type(self):
        txn_id = _charge(amount=5000)
        partial = ledger.create_refund("m-1", txn_id, 1000, "reason")
        ledger.process_refund(partial.id)
        ledger.create_refund("m-1", txn_id, 2000, "reason")

        completed = ledger.list_refunds("m-1", status="completed")
        assert [r.id for r in completed["refunds"]] == [partial.id]
        assert ledger.list_refunds("m-1", refund_type="full")["total"] == 0
        assert ledger.list_refunds("m-1", transaction_id=txn_id)["total"] == 2

    def test_stats(self, gateway):
        txn_id = _charge(amount=10000)
        done = ledger.create_refund("m-1", txn_id, 1000, "reason")
        ledger.process_refund(done.id)
        gateway.configure(should_succeed=True, refunds_should_succeed=False)
        failed = ledger.create_refund("m-1", txn_id, 2000, "reason")
        ledger.process_refund(failed.id)
        ledger.create_refund("m-1", txn_id, 3000, "reason")

        stats = ledger.refund_stats("m-1")

        assert stats["total_refunds"] == 3
        assert stats["total_amount"] == 6000
        assert stats["completed_refunds"] == 1
        assert stats["failed_refunds"] == 1
        assert stats["pending_refunds"] == 1
        assert stats["partial_refunds"] == 3
        assert stats["full_refunds"] == 0
        assert stats["success_rate"] == pytest.approx(100 / 3)

    def test_stats_for_merchant_without_refunds(self):
        stats = ledger.refund_stats("m-empty")
        assert stats["total_refunds"] == 0
        assert stats["success_rate"] == 0.0

    def test_refunds_are_persisted(self):
        txn_id = _charge()
        refund = ledger.create_refund("m-1", txn_id, 1000, "reason")
        stored = current_domain.repository_for(Refund).get(refund.id)
        assert stored.amount == 1000

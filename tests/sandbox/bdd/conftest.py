"""Shared BDD fixtures and step definitions for the Sandbox domain."""

import pytest
from protean import current_domain
from pytest_bdd import given, parsers, then
from sandbox.exceptions import SandboxError
from sandbox.subscription import lifecycle
from sandbox.transaction.charge import CreateTransaction
from sandbox.transaction.transaction import Transaction


@pytest.fixture()
def error():
    """Container for captured sandbox errors."""
    return {"exc": None}


@pytest.fixture()
def ledger_state():
    """Ids and results collected while a refund scenario runs."""
    return {"transaction_id": None, "refund": None}


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse('a settled transaction of {amount:d} for merchant "{merchant_id}"'))
def settled_transaction(ledger_state, amount, merchant_id):
    ledger_state["transaction_id"] = current_domain.process(
        CreateTransaction(merchant_id=merchant_id, customer_id="c-bdd", amount=amount),
        asynchronous=False,
    )


@given("the gateway declines refunds")
def gateway_declines_refunds(gateway):
    gateway.configure(should_succeed=True, refunds_should_succeed=False)


@given("the gateway declines charges")
def gateway_declines_charges(gateway):
    gateway.configure(should_succeed=False)


@given("a monthly subscription without a trial", target_fixture="sub")
def active_subscription():
    return lifecycle.create_subscription(
        merchant_id="m-bdd",
        customer_id="c-bdd",
        plan_id="plan-bdd",
        amount=2000,
        interval="monthly",
    )


@given(parsers.cfparse("a monthly subscription with a {days:d} day trial"), target_fixture="sub")
def trialing_subscription(days):
    return lifecycle.create_subscription(
        merchant_id="m-bdd",
        customer_id="c-bdd",
        plan_id="plan-bdd",
        amount=2000,
        interval="monthly",
        trial_days=days,
    )


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the request fails with "{error_code}"'))
def request_fails(error, error_code):
    assert error["exc"] is not None, "Expected a sandbox error but none was raised"
    assert isinstance(error["exc"], SandboxError)
    assert error["exc"].error_code == error_code


@then(parsers.cfparse("the transaction refunded amount is {amount:d}"))
def transaction_refunded_amount(ledger_state, amount):
    transaction = current_domain.repository_for(Transaction).get(ledger_state["transaction_id"])
    assert transaction.refunded_amount == amount


@then(parsers.cfparse('the subscription status is "{status}"'))
def subscription_status_is(sub, status):
    assert lifecycle.get_subscription(sub.id).status == status

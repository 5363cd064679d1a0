"""Tests for the error taxonomy's codes and response bodies."""

import pytest
from sandbox.exceptions import (
    AmountExceededError,
    BillingFailedError,
    CreationError,
    DuplicateRefundError,
    InvalidAmountError,
    InvalidIntervalError,
    InvalidStatusError,
    NotActiveError,
    NotDueError,
    NotFoundError,
    NotRefundableError,
    SandboxError,
    UnauthorizedError,
)


@pytest.mark.parametrize(
    ("error_cls", "code", "status"),
    [
        (NotFoundError, "NOT_FOUND", 404),
        (UnauthorizedError, "UNAUTHORIZED", 403),
        (InvalidAmountError, "INVALID_AMOUNT", 400),
        (DuplicateRefundError, "DUPLICATE_REFUND", 409),
        (NotRefundableError, "NOT_REFUNDABLE", 422),
        (InvalidStatusError, "INVALID_STATUS", 409),
        (NotActiveError, "NOT_ACTIVE", 409),
        (NotDueError, "NOT_DUE", 409),
        (InvalidIntervalError, "INVALID_INTERVAL", 400),
        (CreationError, "CREATION_ERROR", 502),
        (BillingFailedError, "BILLING_FAILED", 402),
    ],
)
def test_error_codes(error_cls, code, status):
    error = error_cls("message", id="x-1")
    assert isinstance(error, SandboxError)
    assert error.error_code == code
    assert error.status_code == status
    assert error.to_dict() == {"error": "message", "error_code": code, "context": {"id": "x-1"}}


def test_amount_exceeded_carries_remaining_amount():
    error = AmountExceededError("too much", remaining_amount=2000)
    assert error.remaining_amount == 2000
    assert error.to_dict()["context"]["remaining_amount"] == 2000
    assert error.status_code == 400

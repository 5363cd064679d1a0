"""
Sandbox error taxonomy.

Every expected failure of the refund ledger, the subscription lifecycle and
their collaborators is raised as a subclass of SandboxError. Each error
carries a machine-readable code and the HTTP status the API layer renders it
with, so callers never need to parse messages.
"""

from typing import Any


class SandboxError(Exception):
    """
    Base sandbox error.

    Attributes:
        message: Human-readable error message
        error_code: Machine-readable error code for API responses
        status_code: HTTP status code for this error type
        context: Additional context data about the error
    """

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        status_code: int = 400,
        context: dict[str, Any] | None = None,
    ):
        self.message = message
        self.error_code = error_code or "SANDBOX_ERROR"
        self.status_code = status_code
        self.context = context or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for API responses."""
        return {
            "error": self.message,
            "error_code": self.error_code,
            "context": self.context,
        }


class NotFoundError(SandboxError):
    """A transaction, refund or subscription does not exist."""

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message, "NOT_FOUND", status_code=404, context=context)


class UnauthorizedError(SandboxError):
    """The record belongs to a different merchant."""

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message, "UNAUTHORIZED", status_code=403, context=context)


class InvalidAmountError(SandboxError):
    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message, "INVALID_AMOUNT", status_code=400, context=context)


class AmountExceededError(SandboxError):
    """Refund would push the refunded total past the transaction amount."""

    def __init__(self, message: str, remaining_amount: int, **context: Any) -> None:
        self.remaining_amount = remaining_amount
        context["remaining_amount"] = remaining_amount
        super().__init__(message, "AMOUNT_EXCEEDED", status_code=400, context=context)


class DuplicateRefundError(SandboxError):
    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message, "DUPLICATE_REFUND", status_code=409, context=context)


class NotRefundableError(SandboxError):
    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message, "NOT_REFUNDABLE", status_code=422, context=context)


class InvalidStatusError(SandboxError):
    """Operation attempted from a state that does not allow it."""

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message, "INVALID_STATUS", status_code=409, context=context)


class NotActiveError(SandboxError):
    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message, "NOT_ACTIVE", status_code=409, context=context)


class NotDueError(SandboxError):
    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message, "NOT_DUE", status_code=409, context=context)


class InvalidIntervalError(SandboxError):
    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message, "INVALID_INTERVAL", status_code=400, context=context)


class CreationError(SandboxError):
    """A collaborator could not create the record it was asked for."""

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message, "CREATION_ERROR", status_code=502, context=context)


class BillingFailedError(SandboxError):
    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message, "BILLING_FAILED", status_code=402, context=context)


class CollaboratorTimeoutError(SandboxError):
    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message, "COLLABORATOR_TIMEOUT", status_code=504, context=context)


class ResourceBusyError(SandboxError):
    """Another operation holds the lock for this transaction or subscription."""

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message, "RESOURCE_BUSY", status_code=409, context=context)

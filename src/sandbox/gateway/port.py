"""Payment gateway port (abstract interface).

Defines the contract that every simulated gateway adapter must implement.
The sandbox never talks to a real payment network: adapters decide whether a
charge or refund succeeds, deterministically (FakeGateway) or by policy
(SimulatedGateway), without any domain or application code changing.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class ChargeResult:
    """Result of a charge attempt."""

    success: bool
    gateway_transaction_id: str | None = None
    gateway_status: str | None = None
    gateway_message: str | None = None
    failure_reason: str | None = None


@dataclass(frozen=True)
class RefundResult:
    """Result of a refund attempt."""

    success: bool
    gateway_refund_id: str | None = None
    gateway_status: str | None = None
    gateway_message: str | None = None
    failure_reason: str | None = None


class PaymentGateway(ABC):
    """Abstract payment gateway interface."""

    @abstractmethod
    def create_charge(
        self,
        amount: int,
        currency: str,
        reference: str,
        metadata: dict | None = None,
    ) -> ChargeResult:
        """Charge ``amount`` minor units via the gateway."""
        ...

    @abstractmethod
    def create_refund(
        self,
        gateway_transaction_id: str | None,
        amount: int,
        reason: str,
    ) -> RefundResult:
        """Refund part or all of a previous charge."""
        ...

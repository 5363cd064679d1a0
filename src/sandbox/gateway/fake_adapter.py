"""Configurable fake payment gateway for development and testing.

This adapter simulates a gateway without any randomness. It can be
configured at runtime to succeed or fail, making it useful for:
- Manual API testing via /sandbox/gateway/configure
- Automated tests with predictable outcomes

Charges and refunds can be failed independently, so a test can let the
billing charge through and still decline the refund that follows.
"""

from uuid import uuid4

from sandbox.gateway.port import ChargeResult, PaymentGateway, RefundResult


class FakeGateway(PaymentGateway):
    """Configurable fake payment gateway."""

    def __init__(self) -> None:
        self.should_succeed: bool = True
        self.refunds_should_succeed: bool = True
        self.failure_reason: str = "Card declined"
        self.refund_failure_reason: str = "Insufficient balance"
        self.calls: list[dict] = []

    def configure(
        self,
        should_succeed: bool,
        failure_reason: str = "Card declined",
        refunds_should_succeed: bool | None = None,
        refund_failure_reason: str = "Insufficient balance",
    ) -> None:
        """Configure gateway behavior at runtime.

        ``refunds_should_succeed`` defaults to ``should_succeed``.
        """
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason
        self.refunds_should_succeed = should_succeed if refunds_should_succeed is None else refunds_should_succeed
        self.refund_failure_reason = refund_failure_reason

    def create_charge(
        self,
        amount: int,
        currency: str,
        reference: str,
        metadata: dict | None = None,
    ) -> ChargeResult:
        self.calls.append(
            {
                "method": "create_charge",
                "amount": amount,
                "currency": currency,
                "reference": reference,
                "metadata": metadata or {},
            }
        )

        if self.should_succeed:
            return ChargeResult(
                success=True,
                gateway_transaction_id=f"fake_txn_{uuid4().hex[:12]}",
                gateway_status="succeeded",
                gateway_message="Charge successful",
            )
        return ChargeResult(
            success=False,
            gateway_status="failed",
            gateway_message=self.failure_reason,
            failure_reason=self.failure_reason,
        )

    def create_refund(
        self,
        gateway_transaction_id: str | None,
        amount: int,
        reason: str,
    ) -> RefundResult:
        self.calls.append(
            {
                "method": "create_refund",
                "gateway_transaction_id": gateway_transaction_id,
                "amount": amount,
                "reason": reason,
            }
        )

        if self.refunds_should_succeed:
            return RefundResult(
                success=True,
                gateway_refund_id=f"fake_ref_{uuid4().hex[:12]}",
                gateway_status="succeeded",
                gateway_message="Refund processed successfully",
            )
        return RefundResult(
            success=False,
            gateway_status="failed",
            gateway_message=self.refund_failure_reason,
            failure_reason=self.refund_failure_reason,
        )

"""Probabilistic gateway that approves a configurable share of requests.

Mirrors how a public sandbox behaves: most charges and refunds go through,
a few are declined. Pass a seed to make a run reproducible.
"""

import random
from uuid import uuid4

from sandbox.gateway.port import ChargeResult, PaymentGateway, RefundResult


class SimulatedGateway(PaymentGateway):
    """Randomised gateway with independent charge and refund success rates."""

    def __init__(
        self,
        charge_success_rate: float = 0.95,
        refund_success_rate: float = 0.95,
        seed: int | None = None,
    ) -> None:
        self.charge_success_rate = charge_success_rate
        self.refund_success_rate = refund_success_rate
        self._rng = random.Random(seed)

    def create_charge(
        self,
        amount: int,
        currency: str,
        reference: str,
        metadata: dict | None = None,
    ) -> ChargeResult:
        if self._rng.random() < self.charge_success_rate:
            return ChargeResult(
                success=True,
                gateway_transaction_id=f"sim_txn_{uuid4().hex[:12]}",
                gateway_status="succeeded",
                gateway_message=f"Charged {amount} {currency}",
            )
        return ChargeResult(
            success=False,
            gateway_status="failed",
            gateway_message="Do not honor",
            failure_reason="Do not honor",
        )

    def create_refund(
        self,
        gateway_transaction_id: str | None,
        amount: int,
        reason: str,
    ) -> RefundResult:
        if self._rng.random() < self.refund_success_rate:
            return RefundResult(
                success=True,
                gateway_refund_id=f"sim_ref_{uuid4().hex[:12]}",
                gateway_status="succeeded",
                gateway_message="Refund processed successfully",
            )
        return RefundResult(
            success=False,
            gateway_status="failed",
            gateway_message="Refund failed - insufficient balance",
            failure_reason="INSUFFICIENT_BALANCE",
        )

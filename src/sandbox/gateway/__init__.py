"""Payment gateway factory.

Provides get_gateway() / set_gateway() to swap implementations:
- FakeGateway for development and testing (default)
- SimulatedGateway for probabilistic sandbox runs (SANDBOX_GATEWAY_MODE=simulated)
"""

from sandbox.config import get_config
from sandbox.gateway.fake_adapter import FakeGateway
from sandbox.gateway.port import PaymentGateway
from sandbox.gateway.simulated_adapter import SimulatedGateway

_current_gateway: PaymentGateway | None = None


def get_gateway() -> PaymentGateway:
    """Return the current payment gateway, built from configuration on first use."""
    global _current_gateway
    if _current_gateway is None:
        settings = get_config().gateway
        if settings.mode == "simulated":
            _current_gateway = SimulatedGateway(
                charge_success_rate=settings.charge_success_rate,
                refund_success_rate=settings.refund_success_rate,
                seed=settings.seed,
            )
        elif settings.mode == "fake":
            _current_gateway = FakeGateway()
        else:
            raise ValueError(f"Unknown gateway mode: {settings.mode}")
    return _current_gateway


def set_gateway(gateway: PaymentGateway) -> None:
    """Override the active payment gateway (useful for tests)."""
    global _current_gateway
    _current_gateway = gateway


def reset_gateway() -> None:
    """Reset to default gateway."""
    global _current_gateway
    _current_gateway = None

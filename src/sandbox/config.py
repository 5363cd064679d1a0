"""
Sandbox runtime configuration.

Domain wiring (databases, event processing) lives in domain.toml. The knobs
here control the simulated collaborators and the billing runner and are read
from SANDBOX_* environment variables.
"""

import os

from pydantic import BaseModel, ConfigDict, Field


class GatewayConfig(BaseModel):
    """Simulated gateway configuration"""

    model_config = ConfigDict()

    mode: str = Field("fake", description="Gateway adapter (fake, simulated)")
    charge_success_rate: float = Field(0.95, ge=0.0, le=1.0, description="Charge success probability")
    refund_success_rate: float = Field(0.95, ge=0.0, le=1.0, description="Refund success probability")
    seed: int | None = Field(None, description="RNG seed for reproducible simulations")
    timeout_seconds: float = Field(5.0, gt=0, description="Time limit for a single gateway call")


class NotifierConfig(BaseModel):
    """Webhook notifier configuration"""

    model_config = ConfigDict()

    timeout_seconds: float = Field(2.0, gt=0, description="Time limit for a single emit call")


class BillingConfig(BaseModel):
    """Subscription billing configuration"""

    model_config = ConfigDict()

    runner_max_workers: int = Field(1, ge=1, description="Subscriptions billed concurrently per run")
    lock_timeout_seconds: float = Field(10.0, gt=0, description="Wait limit for a per-key lock")
    honor_cancel_at_period_end: bool = Field(
        True,
        description="Defer cancellation to the period end when requested (False cancels immediately)",
    )


class LoggingConfig(BaseModel):
    """Structured logging configuration"""

    model_config = ConfigDict()

    level: str = Field("INFO", description="Root log level")
    format: str = Field("console", description="Renderer (console, json)")


class SandboxConfig(BaseModel):
    """Main sandbox configuration"""

    model_config = ConfigDict()

    gateway: GatewayConfig = Field(default_factory=GatewayConfig)
    notifier: NotifierConfig = Field(default_factory=NotifierConfig)
    billing: BillingConfig = Field(default_factory=BillingConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def from_env(cls) -> "SandboxConfig":
        """Create configuration from SANDBOX_* environment variables"""
        seed = os.getenv("SANDBOX_GATEWAY_SEED")
        return cls(
            gateway=GatewayConfig(
                mode=os.getenv("SANDBOX_GATEWAY_MODE", "fake"),
                charge_success_rate=float(os.getenv("SANDBOX_CHARGE_SUCCESS_RATE", "0.95")),
                refund_success_rate=float(os.getenv("SANDBOX_REFUND_SUCCESS_RATE", "0.95")),
                seed=int(seed) if seed else None,
                timeout_seconds=float(os.getenv("SANDBOX_GATEWAY_TIMEOUT", "5.0")),
            ),
            notifier=NotifierConfig(
                timeout_seconds=float(os.getenv("SANDBOX_NOTIFIER_TIMEOUT", "2.0")),
            ),
            billing=BillingConfig(
                runner_max_workers=int(os.getenv("SANDBOX_RUNNER_MAX_WORKERS", "1")),
                lock_timeout_seconds=float(os.getenv("SANDBOX_LOCK_TIMEOUT", "10.0")),
                honor_cancel_at_period_end=os.getenv("SANDBOX_HONOR_CANCEL_AT_PERIOD_END", "true").lower()
                == "true",
            ),
            logging=LoggingConfig(
                level=os.getenv("SANDBOX_LOG_LEVEL", "INFO"),
                format=os.getenv("SANDBOX_LOG_FORMAT", "console"),
            ),
        )


_current_config: SandboxConfig | None = None


def get_config() -> SandboxConfig:
    """Return the active configuration, loading it from the environment once."""
    global _current_config
    if _current_config is None:
        _current_config = SandboxConfig.from_env()
    return _current_config


def set_config(config: SandboxConfig) -> None:
    """Override the active configuration (useful for tests)."""
    global _current_config
    _current_config = config


def reset_config() -> None:
    global _current_config
    _current_config = None

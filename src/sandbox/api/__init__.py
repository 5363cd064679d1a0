"""Sandbox API package."""

from sandbox.api.errors import register_error_handlers
from sandbox.api.routes import refund_router, sandbox_router, subscription_router, transaction_router

__all__ = [
    "refund_router",
    "register_error_handlers",
    "sandbox_router",
    "subscription_router",
    "transaction_router",
]

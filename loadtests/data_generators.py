"""Faker-based data generators for Locust load test scenarios.

Each generator produces payloads that pass the sandbox's validation rules
and match the exact field names expected by the API's Pydantic request
schemas. Amounts are integers in minor currency units.
"""

import random
import uuid

from faker import Faker

fake = Faker()


def merchant_id() -> str:
    """Generate merchant IDs like 'merch-a1b2c3d4'."""
    return f"merch-{uuid.uuid4().hex[:8]}"


def customer_id() -> str:
    return f"cust-{uuid.uuid4().hex[:8]}"


# ---------- Transactions ----------


def transaction_data(amount: int | None = None) -> dict:
    """Generate CreateTransactionRequest payload."""
    return {
        "customer_id": customer_id(),
        "amount": amount or random.randint(1000, 50000),
        "currency": random.choice(["USD", "USD", "EUR", "GBP"]),
        "metadata": {"order": f"ord-{uuid.uuid4().hex[:8]}", "channel": random.choice(["web", "pos"])},
    }


# ---------- Refunds ----------


def refund_data(transaction_id: str, amount: int) -> dict:
    """Generate CreateRefundRequest payload."""
    return {
        "transaction_id": transaction_id,
        "amount": amount,
        "reason": fake.sentence(nb_words=6),
        "refund_method": random.choice(["original_payment_method", "bank_transfer", "wallet"]),
    }


def partial_amounts(total: int, parts: int = 2) -> list[int]:
    """Split ``total`` into ``parts`` distinct positive amounts that sum to at most ``total``."""
    share = total // (parts + 1)
    return [share + i for i in range(parts)]


# ---------- Subscriptions ----------


def subscription_data(trial_days: int | None = None) -> dict:
    """Generate CreateSubscriptionRequest payload."""
    return {
        "customer_id": customer_id(),
        "plan_id": f"plan-{fake.word()}",
        "amount": random.choice([999, 1999, 4999, 9999]),
        "currency": "USD",
        "interval": random.choice(["daily", "weekly", "monthly", "monthly", "yearly"]),
        "interval_count": random.choice([1, 1, 1, 3]),
        "trial_days": random.choice([0, 0, 7, 14]) if trial_days is None else trial_days,
        "metadata": {"seats": random.randint(1, 25)},
    }


def pause_reason() -> str:
    return random.choice(["Travelling", "Budget review", "Seasonal break"])


def cancellation_data(at_period_end: bool | None = None) -> dict:
    return {
        "cancel_at_period_end": random.choice([True, False]) if at_period_end is None else at_period_end,
        "reason": fake.sentence(nb_words=4),
    }

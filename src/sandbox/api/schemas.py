"""Pydantic request/response schemas for the Sandbox API.

These are external contracts (anti-corruption layer), separate from the
internal Protean commands. Amounts are integers in minor currency units.
"""

import json
from datetime import datetime

from pydantic import BaseModel, Field

# Metadata is a flat map of scalars, never an arbitrary blob
Metadata = dict[str, str | int | float | bool]


def _load_metadata(raw: str | None) -> Metadata | None:
    return json.loads(raw) if raw else None


# ---------------------------------------------------------------------------
# Transactions
# ---------------------------------------------------------------------------
class CreateTransactionRequest(BaseModel):
    customer_id: str | None = None
    amount: int = Field(gt=0)
    currency: str = Field(default="USD", min_length=3, max_length=3)
    metadata: Metadata | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "customer_id": "cust-001",
                    "amount": 10000,
                    "currency": "USD",
                    "metadata": {"order": "ord-001"},
                }
            ]
        }
    }


class TransactionResponse(BaseModel):
    id: str
    reference: str
    merchant_id: str
    customer_id: str | None = None
    amount: int
    currency: str
    status: str
    refunded_amount: int
    remaining_amount: int
    refund_status: str
    subscription_id: str | None = None
    billing_cycle: int | None = None
    gateway_message: str | None = None
    metadata: Metadata | None = None
    settled_at: datetime | None = None
    created_at: datetime | None = None

    @classmethod
    def from_aggregate(cls, transaction) -> "TransactionResponse":
        return cls(
            id=str(transaction.id),
            reference=transaction.reference,
            merchant_id=str(transaction.merchant_id),
            customer_id=str(transaction.customer_id) if transaction.customer_id else None,
            amount=transaction.amount,
            currency=transaction.currency,
            status=transaction.status,
            refunded_amount=transaction.refunded_amount or 0,
            remaining_amount=transaction.remaining_amount,
            refund_status=transaction.refund_status,
            subscription_id=str(transaction.subscription_id) if transaction.subscription_id else None,
            billing_cycle=transaction.billing_cycle,
            gateway_message=transaction.gateway_message,
            metadata=_load_metadata(transaction.metadata),
            settled_at=transaction.settled_at,
            created_at=transaction.created_at,
        )


# ---------------------------------------------------------------------------
# Refunds
# ---------------------------------------------------------------------------
class CreateRefundRequest(BaseModel):
    transaction_id: str
    amount: int
    reason: str = Field(min_length=1, max_length=500)
    refund_method: str | None = None
    metadata: Metadata | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "transaction_id": "txn-001",
                    "amount": 2500,
                    "reason": "Item returned",
                    "refund_method": "original_payment_method",
                }
            ]
        }
    }


class CancelRefundRequest(BaseModel):
    reason: str | None = Field(default=None, max_length=500)


class UpdateRefundStatusRequest(BaseModel):
    status: str  # pending, processing, completed, failed, cancelled
    notes: str | None = Field(default=None, max_length=1000)
    approved_by: str | None = None


class ApprovalInfoSchema(BaseModel):
    approved_by: str
    approved_at: datetime
    notes: str | None = None


class RefundResponse(BaseModel):
    id: str
    reference: str
    transaction_id: str
    merchant_id: str
    amount: int
    currency: str
    reason: str
    type: str
    status: str
    refund_method: str
    failure_reason: str | None = None
    approval_info: ApprovalInfoSchema | None = None
    metadata: Metadata | None = None
    processed_at: datetime | None = None
    created_at: datetime | None = None

    @classmethod
    def from_aggregate(cls, refund) -> "RefundResponse":
        approval = refund.approval_info
        return cls(
            id=str(refund.id),
            reference=refund.reference,
            transaction_id=str(refund.transaction_id),
            merchant_id=str(refund.merchant_id),
            amount=refund.amount,
            currency=refund.currency,
            reason=refund.reason,
            type=refund.refund_type,
            status=refund.status,
            refund_method=refund.refund_method,
            failure_reason=refund.failure_reason,
            approval_info=(
                ApprovalInfoSchema(
                    approved_by=approval.approved_by,
                    approved_at=approval.approved_at,
                    notes=approval.notes,
                )
                if approval
                else None
            ),
            metadata=_load_metadata(refund.metadata),
            processed_at=refund.processed_at,
            created_at=refund.created_at,
        )


class PaginationSchema(BaseModel):
    page: int
    per_page: int
    total: int
    pages: int
    has_next: bool
    has_prev: bool


class RefundListResponse(BaseModel):
    refunds: list[RefundResponse]
    pagination: PaginationSchema


class RefundStatsResponse(BaseModel):
    total_refunds: int
    total_amount: int
    pending_refunds: int
    processing_refunds: int
    completed_refunds: int
    failed_refunds: int
    cancelled_refunds: int
    full_refunds: int
    partial_refunds: int
    success_rate: float


# ---------------------------------------------------------------------------
# Subscriptions
# ---------------------------------------------------------------------------
class CreateSubscriptionRequest(BaseModel):
    customer_id: str
    plan_id: str
    amount: int
    currency: str = Field(default="USD", min_length=3, max_length=3)
    interval: str  # daily, weekly, monthly, yearly
    interval_count: int = 1
    trial_days: int = Field(default=0, ge=0)
    metadata: Metadata | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "customer_id": "cust-001",
                    "plan_id": "plan-pro",
                    "amount": 2900,
                    "currency": "USD",
                    "interval": "monthly",
                    "interval_count": 1,
                    "trial_days": 14,
                }
            ]
        }
    }


class CancelSubscriptionRequest(BaseModel):
    cancel_at_period_end: bool = False
    reason: str | None = Field(default=None, max_length=500)


class PauseSubscriptionRequest(BaseModel):
    reason: str | None = Field(default=None, max_length=500)


class UpdateSubscriptionAmountRequest(BaseModel):
    amount: int


class ProcessBillingRequest(BaseModel):
    as_of: datetime | None = None


class SubscriptionResponse(BaseModel):
    id: str
    merchant_id: str
    customer_id: str
    plan_id: str
    amount: int
    currency: str
    interval: str
    interval_count: int
    status: str
    current_period_start: datetime | None = None
    current_period_end: datetime | None = None
    next_billing_date: datetime | None = None
    trial_start: datetime | None = None
    trial_end: datetime | None = None
    billing_cycles_completed: int
    cancel_at_period_end: bool
    cancelled_at: datetime | None = None
    cancellation_reason: str | None = None
    paused_at: datetime | None = None
    pause_reason: str | None = None
    resumed_at: datetime | None = None
    reactivated_at: datetime | None = None
    last_billed_at: datetime | None = None
    last_billing_attempt: datetime | None = None
    metadata: Metadata | None = None
    created_at: datetime | None = None

    @classmethod
    def from_aggregate(cls, subscription) -> "SubscriptionResponse":
        return cls(
            id=str(subscription.id),
            merchant_id=str(subscription.merchant_id),
            customer_id=str(subscription.customer_id),
            plan_id=str(subscription.plan_id),
            amount=subscription.amount,
            currency=subscription.currency,
            interval=subscription.interval,
            interval_count=subscription.interval_count,
            status=subscription.status,
            current_period_start=subscription.current_period_start,
            current_period_end=subscription.current_period_end,
            next_billing_date=subscription.next_billing_date,
            trial_start=subscription.trial_start,
            trial_end=subscription.trial_end,
            billing_cycles_completed=subscription.billing_cycles_completed or 0,
            cancel_at_period_end=bool(subscription.cancel_at_period_end),
            cancelled_at=subscription.cancelled_at,
            cancellation_reason=subscription.cancellation_reason,
            paused_at=subscription.paused_at,
            pause_reason=subscription.pause_reason,
            resumed_at=subscription.resumed_at,
            reactivated_at=subscription.reactivated_at,
            last_billed_at=subscription.last_billed_at,
            last_billing_attempt=subscription.last_billing_attempt,
            metadata=_load_metadata(subscription.metadata),
            created_at=subscription.created_at,
        )


class SubscriptionListResponse(BaseModel):
    subscriptions: list[SubscriptionResponse]
    pagination: PaginationSchema


class BillingOutcomeResponse(BaseModel):
    subscription_id: str
    result: str  # billed, trial_skipped, cancelled, failed
    status: str
    next_billing_date: datetime | None = None
    billing_cycle: int
    transaction_id: str | None = None
    error_code: str | None = None
    message: str | None = None


class BillingRunRequest(BaseModel):
    as_of: datetime | None = None


class BillingRunResponse(BaseModel):
    as_of: datetime
    processed: int
    billed: int
    trial_skipped: int
    cancelled: int
    failed: int
    errors: dict[str, str]


class BillingHistoryEntrySchema(BaseModel):
    result: str
    billing_cycle: int | None = None
    amount: int | None = None
    currency: str | None = None
    transaction_id: str | None = None
    error_code: str | None = None
    reason: str | None = None
    next_billing_date: datetime | None = None
    occurred_at: datetime


class BillingHistoryResponse(BaseModel):
    subscription_id: str
    entries: list[BillingHistoryEntrySchema]


# ---------------------------------------------------------------------------
# Sandbox controls
# ---------------------------------------------------------------------------
class ConfigureGatewayRequest(BaseModel):
    should_succeed: bool = True
    failure_reason: str = "Card declined"
    refunds_should_succeed: bool | None = None
    refund_failure_reason: str = "Insufficient balance"


class GatewayConfigResponse(BaseModel):
    gateway: str
    should_succeed: bool
    failure_reason: str
    refunds_should_succeed: bool
    refund_failure_reason: str


class WebhookEventSchema(BaseModel):
    event_id: str
    event_name: str
    merchant_id: str
    payload: dict
    occurred_at: datetime


class WebhookEventListResponse(BaseModel):
    events: list[WebhookEventSchema]

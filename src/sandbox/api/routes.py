"""FastAPI routes for the Sandbox domain: transactions, refunds and subscriptions.

The calling merchant is identified by the X-Merchant-Id header.
"""

import json
import os

from fastapi import APIRouter, Header, HTTPException
from protean.utils.globals import current_domain

from sandbox.api.schemas import (
    BillingHistoryEntrySchema,
    BillingHistoryResponse,
    BillingOutcomeResponse,
    BillingRunRequest,
    BillingRunResponse,
    CancelRefundRequest,
    CancelSubscriptionRequest,
    ConfigureGatewayRequest,
    CreateRefundRequest,
    CreateSubscriptionRequest,
    CreateTransactionRequest,
    GatewayConfigResponse,
    PaginationSchema,
    PauseSubscriptionRequest,
    ProcessBillingRequest,
    RefundListResponse,
    RefundResponse,
    RefundStatsResponse,
    SubscriptionListResponse,
    SubscriptionResponse,
    TransactionResponse,
    UpdateRefundStatusRequest,
    UpdateSubscriptionAmountRequest,
    WebhookEventListResponse,
    WebhookEventSchema,
)
from sandbox.exceptions import UnauthorizedError
from sandbox.gateway import get_gateway
from sandbox.gateway.fake_adapter import FakeGateway
from sandbox.notifier import get_notifier
from sandbox.notifier.memory_adapter import InMemoryNotifier
from sandbox.projections.billing_history import billing_history
from sandbox.refund import ledger
from sandbox.subscription import lifecycle
from sandbox.subscription.runner import BillingRunner
from sandbox.transaction.charge import CreateTransaction
from sandbox.transaction.transaction import Transaction
from sandbox.utils.repository import get_or_raise


def _ensure_owner(record, merchant_id: str) -> None:
    if str(record.merchant_id) != str(merchant_id):
        raise UnauthorizedError(
            f"{type(record).__name__} belongs to another merchant",
            id=str(record.id),
        )


# ---------------------------------------------------------------------------
# Transaction Router
# ---------------------------------------------------------------------------
transaction_router = APIRouter(prefix="/transactions", tags=["transactions"])


@transaction_router.post("", status_code=201, response_model=TransactionResponse)
async def create_transaction(
    body: CreateTransactionRequest,
    x_merchant_id: str = Header(),
) -> TransactionResponse:
    """Charge a customer once; the charge is settled immediately."""
    command = CreateTransaction(
        merchant_id=x_merchant_id,
        customer_id=body.customer_id,
        amount=body.amount,
        currency=body.currency,
        metadata=json.dumps(body.metadata) if body.metadata else None,
    )
    transaction_id = current_domain.process(command, asynchronous=False)
    return TransactionResponse.from_aggregate(get_or_raise(Transaction, transaction_id))


@transaction_router.get("/{transaction_id}", response_model=TransactionResponse)
async def get_transaction(transaction_id: str, x_merchant_id: str = Header()) -> TransactionResponse:
    transaction = get_or_raise(Transaction, transaction_id)
    _ensure_owner(transaction, x_merchant_id)
    return TransactionResponse.from_aggregate(transaction)


# ---------------------------------------------------------------------------
# Refund Router
# ---------------------------------------------------------------------------
refund_router = APIRouter(prefix="/refunds", tags=["refunds"])


@refund_router.post("", status_code=201, response_model=RefundResponse)
async def create_refund(body: CreateRefundRequest, x_merchant_id: str = Header()) -> RefundResponse:
    """Request a refund against one of the merchant's successful transactions."""
    refund = ledger.create_refund(
        merchant_id=x_merchant_id,
        transaction_id=body.transaction_id,
        amount=body.amount,
        reason=body.reason,
        refund_method=body.refund_method,
        metadata=body.metadata,
    )
    return RefundResponse.from_aggregate(refund)


@refund_router.get("", response_model=RefundListResponse)
async def list_refunds(
    x_merchant_id: str = Header(),
    status: str | None = None,
    type: str | None = None,
    transaction_id: str | None = None,
    page: int = 1,
    per_page: int = 20,
) -> RefundListResponse:
    result = ledger.list_refunds(
        x_merchant_id,
        status=status,
        refund_type=type,
        transaction_id=transaction_id,
        page=page,
        per_page=per_page,
    )
    return RefundListResponse(
        refunds=[RefundResponse.from_aggregate(refund) for refund in result["refunds"]],
        pagination=PaginationSchema(
            page=result["page"],
            per_page=result["per_page"],
            total=result["total"],
            pages=result["pages"],
            has_next=result["has_next"],
            has_prev=result["has_prev"],
        ),
    )


@refund_router.get("/stats", response_model=RefundStatsResponse)
async def refund_stats(x_merchant_id: str = Header(), status: str | None = None) -> RefundStatsResponse:
    return RefundStatsResponse(**ledger.refund_stats(x_merchant_id, status=status))


@refund_router.get("/reference/{reference}", response_model=RefundResponse)
async def get_refund_by_reference(reference: str, x_merchant_id: str = Header()) -> RefundResponse:
    refund = ledger.get_refund_by_reference(reference)
    _ensure_owner(refund, x_merchant_id)
    return RefundResponse.from_aggregate(refund)


@refund_router.get("/{refund_id}", response_model=RefundResponse)
async def get_refund(refund_id: str, x_merchant_id: str = Header()) -> RefundResponse:
    refund = ledger.get_refund(refund_id)
    _ensure_owner(refund, x_merchant_id)
    return RefundResponse.from_aggregate(refund)


@refund_router.post("/{refund_id}/process", response_model=RefundResponse)
async def process_refund(refund_id: str, x_merchant_id: str = Header()) -> RefundResponse:
    """Settle a pending refund through the gateway."""
    _ensure_owner(ledger.get_refund(refund_id), x_merchant_id)
    return RefundResponse.from_aggregate(ledger.process_refund(refund_id))


@refund_router.post("/{refund_id}/cancel", response_model=RefundResponse)
async def cancel_refund(
    refund_id: str,
    body: CancelRefundRequest,
    x_merchant_id: str = Header(),
) -> RefundResponse:
    _ensure_owner(ledger.get_refund(refund_id), x_merchant_id)
    return RefundResponse.from_aggregate(ledger.cancel_refund(refund_id, reason=body.reason))


@refund_router.put("/{refund_id}/status", response_model=RefundResponse)
async def update_refund_status(
    refund_id: str,
    body: UpdateRefundStatusRequest,
    x_merchant_id: str = Header(),
) -> RefundResponse:
    """Administrative status override."""
    _ensure_owner(ledger.get_refund(refund_id), x_merchant_id)
    refund = ledger.update_refund_status(
        refund_id,
        body.status,
        notes=body.notes,
        approved_by=body.approved_by,
    )
    return RefundResponse.from_aggregate(refund)


# ---------------------------------------------------------------------------
# Subscription Router
# ---------------------------------------------------------------------------
subscription_router = APIRouter(prefix="/subscriptions", tags=["subscriptions"])


def _owned_subscription(subscription_id: str, merchant_id: str):
    subscription = lifecycle.get_subscription(subscription_id)
    _ensure_owner(subscription, merchant_id)
    return subscription


@subscription_router.post("", status_code=201, response_model=SubscriptionResponse)
async def create_subscription(
    body: CreateSubscriptionRequest,
    x_merchant_id: str = Header(),
) -> SubscriptionResponse:
    subscription = lifecycle.create_subscription(
        merchant_id=x_merchant_id,
        customer_id=body.customer_id,
        plan_id=body.plan_id,
        amount=body.amount,
        currency=body.currency,
        interval=body.interval,
        interval_count=body.interval_count,
        trial_days=body.trial_days,
        metadata=body.metadata,
    )
    return SubscriptionResponse.from_aggregate(subscription)


@subscription_router.get("", response_model=SubscriptionListResponse)
async def list_subscriptions(
    x_merchant_id: str = Header(),
    status: str | None = None,
    interval: str | None = None,
    page: int = 1,
    limit: int = 20,
) -> SubscriptionListResponse:
    result = lifecycle.list_subscriptions(x_merchant_id, status=status, interval=interval, page=page, limit=limit)
    return SubscriptionListResponse(
        subscriptions=[SubscriptionResponse.from_aggregate(s) for s in result["subscriptions"]],
        pagination=PaginationSchema(
            page=result["page"],
            per_page=result["limit"],
            total=result["total"],
            pages=result["pages"],
            has_next=result["has_next"],
            has_prev=result["has_prev"],
        ),
    )


@subscription_router.post("/billing/run", response_model=BillingRunResponse)
async def run_billing(body: BillingRunRequest) -> BillingRunResponse:
    """Bill every due subscription (what the scheduler triggers)."""
    summary = BillingRunner().run(as_of=body.as_of)
    return BillingRunResponse(
        as_of=summary.as_of,
        processed=summary.processed,
        billed=summary.billed,
        trial_skipped=summary.trial_skipped,
        cancelled=summary.cancelled,
        failed=summary.failed,
        errors=summary.errors,
    )


@subscription_router.get("/{subscription_id}", response_model=SubscriptionResponse)
async def get_subscription(subscription_id: str, x_merchant_id: str = Header()) -> SubscriptionResponse:
    return SubscriptionResponse.from_aggregate(_owned_subscription(subscription_id, x_merchant_id))


@subscription_router.post("/{subscription_id}/billing", response_model=BillingOutcomeResponse)
async def process_billing(
    subscription_id: str,
    body: ProcessBillingRequest,
    x_merchant_id: str = Header(),
) -> BillingOutcomeResponse:
    """Run one billing pass on demand.

    A declined or uncreatable charge is committed (the subscription is past
    due) and then reported with the matching error status.
    """
    _owned_subscription(subscription_id, x_merchant_id)
    outcome = lifecycle.process_billing(subscription_id, as_of=body.as_of)
    if not outcome.success:
        error = outcome.as_error()
        error.context.update(outcome.to_dict())
        raise error
    return BillingOutcomeResponse(**outcome.to_dict())


@subscription_router.post("/{subscription_id}/cancel", response_model=SubscriptionResponse)
async def cancel_subscription(
    subscription_id: str,
    body: CancelSubscriptionRequest,
    x_merchant_id: str = Header(),
) -> SubscriptionResponse:
    _owned_subscription(subscription_id, x_merchant_id)
    subscription = lifecycle.cancel_subscription(
        subscription_id,
        cancel_at_period_end=body.cancel_at_period_end,
        reason=body.reason,
    )
    return SubscriptionResponse.from_aggregate(subscription)


@subscription_router.post("/{subscription_id}/reactivate", response_model=SubscriptionResponse)
async def reactivate_subscription(subscription_id: str, x_merchant_id: str = Header()) -> SubscriptionResponse:
    _owned_subscription(subscription_id, x_merchant_id)
    return SubscriptionResponse.from_aggregate(lifecycle.reactivate_subscription(subscription_id))


@subscription_router.post("/{subscription_id}/pause", response_model=SubscriptionResponse)
async def pause_subscription(
    subscription_id: str,
    body: PauseSubscriptionRequest,
    x_merchant_id: str = Header(),
) -> SubscriptionResponse:
    _owned_subscription(subscription_id, x_merchant_id)
    return SubscriptionResponse.from_aggregate(lifecycle.pause_subscription(subscription_id, reason=body.reason))


@subscription_router.post("/{subscription_id}/resume", response_model=SubscriptionResponse)
async def resume_subscription(subscription_id: str, x_merchant_id: str = Header()) -> SubscriptionResponse:
    _owned_subscription(subscription_id, x_merchant_id)
    return SubscriptionResponse.from_aggregate(lifecycle.resume_subscription(subscription_id))


@subscription_router.put("/{subscription_id}/amount", response_model=SubscriptionResponse)
async def update_subscription_amount(
    subscription_id: str,
    body: UpdateSubscriptionAmountRequest,
    x_merchant_id: str = Header(),
) -> SubscriptionResponse:
    _owned_subscription(subscription_id, x_merchant_id)
    return SubscriptionResponse.from_aggregate(lifecycle.update_subscription_amount(subscription_id, body.amount))


@subscription_router.get("/{subscription_id}/billing-history", response_model=BillingHistoryResponse)
async def get_billing_history(subscription_id: str, x_merchant_id: str = Header()) -> BillingHistoryResponse:
    _owned_subscription(subscription_id, x_merchant_id)
    entries = [
        BillingHistoryEntrySchema(
            result=entry.result,
            billing_cycle=entry.billing_cycle,
            amount=entry.amount,
            currency=entry.currency,
            transaction_id=str(entry.transaction_id) if entry.transaction_id else None,
            error_code=entry.error_code,
            reason=entry.reason,
            next_billing_date=entry.next_billing_date,
            occurred_at=entry.occurred_at,
        )
        for entry in billing_history(subscription_id)
    ]
    return BillingHistoryResponse(subscription_id=subscription_id, entries=entries)


# ---------------------------------------------------------------------------
# Sandbox Controls Router
# ---------------------------------------------------------------------------
sandbox_router = APIRouter(prefix="/sandbox", tags=["sandbox"])


@sandbox_router.post("/gateway/configure", response_model=GatewayConfigResponse)
async def configure_gateway(body: ConfigureGatewayRequest) -> GatewayConfigResponse:
    """Configure the FakeGateway behavior (non-production only).

    This endpoint is only available when PROTEAN_ENV is not 'production'.
    It allows toggling charge and refund outcomes for manual API testing.
    """
    if os.environ.get("PROTEAN_ENV") == "production":
        raise HTTPException(status_code=403, detail="Gateway configuration not available in production")

    gateway = get_gateway()
    if not isinstance(gateway, FakeGateway):
        raise HTTPException(status_code=400, detail="Gateway configuration only available for FakeGateway")

    gateway.configure(
        should_succeed=body.should_succeed,
        failure_reason=body.failure_reason,
        refunds_should_succeed=body.refunds_should_succeed,
        refund_failure_reason=body.refund_failure_reason,
    )
    return GatewayConfigResponse(
        gateway=type(gateway).__name__,
        should_succeed=gateway.should_succeed,
        failure_reason=gateway.failure_reason,
        refunds_should_succeed=gateway.refunds_should_succeed,
        refund_failure_reason=gateway.refund_failure_reason,
    )


@sandbox_router.get("/events", response_model=WebhookEventListResponse)
async def list_webhook_events(x_merchant_id: str = Header()) -> WebhookEventListResponse:
    """Webhook events recorded for the merchant by the in-memory notifier."""
    notifier = get_notifier()
    if not isinstance(notifier, InMemoryNotifier):
        raise HTTPException(status_code=400, detail="Event listing only available for InMemoryNotifier")

    return WebhookEventListResponse(
        events=[
            WebhookEventSchema(
                event_id=event.event_id,
                event_name=event.event_name,
                merchant_id=event.merchant_id,
                payload=event.payload,
                occurred_at=event.occurred_at,
            )
            for event in notifier.for_merchant(x_merchant_id)
        ]
    )

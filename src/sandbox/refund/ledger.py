"""Refund ledger entry points.

Every mutation is dispatched while holding the lock of the refund's
transaction, so balance checks and credits for one transaction never
interleave. Read-side helpers cover lookups, listings and statistics.
"""

import json
import math

from protean.utils.globals import current_domain

from sandbox.exceptions import NotFoundError
from sandbox.refund.cancellation import CancelRefund
from sandbox.refund.creation import RequestRefund
from sandbox.refund.processing import ProcessRefund
from sandbox.refund.refund import Refund, RefundStatus, RefundType
from sandbox.refund.status_override import UpdateRefundStatus
from sandbox.utils.locks import process_exclusively, transaction_key
from sandbox.utils.repository import get_or_raise


def get_refund(refund_id: str) -> Refund:
    return get_or_raise(Refund, refund_id)


def get_refund_by_reference(reference: str) -> Refund:
    refund = current_domain.repository_for(Refund).find_by_reference(reference)
    if refund is None:
        raise NotFoundError("Refund not found", resource="refund", reference=reference)
    return refund


def _refund_key(refund_id: str) -> str:
    return transaction_key(get_refund(refund_id).transaction_id)


def create_refund(
    merchant_id: str,
    transaction_id: str,
    amount: int,
    reason: str,
    refund_method: str | None = None,
    metadata: dict | None = None,
) -> Refund:
    refund_id = process_exclusively(
        RequestRefund(
            merchant_id=merchant_id,
            transaction_id=transaction_id,
            amount=amount,
            reason=reason,
            refund_method=refund_method,
            metadata=json.dumps(metadata) if metadata else None,
        ),
        transaction_key(transaction_id),
    )
    return get_refund(refund_id)


def process_refund(refund_id: str) -> Refund:
    process_exclusively(ProcessRefund(refund_id=refund_id), _refund_key(refund_id))
    return get_refund(refund_id)


def cancel_refund(refund_id: str, reason: str | None = None) -> Refund:
    process_exclusively(CancelRefund(refund_id=refund_id, reason=reason), _refund_key(refund_id))
    return get_refund(refund_id)


def update_refund_status(
    refund_id: str,
    status: str,
    notes: str | None = None,
    approved_by: str | None = None,
) -> Refund:
    process_exclusively(
        UpdateRefundStatus(refund_id=refund_id, status=status, notes=notes, approved_by=approved_by),
        _refund_key(refund_id),
    )
    return get_refund(refund_id)


def list_refunds(
    merchant_id: str,
    status: str | None = None,
    refund_type: str | None = None,
    transaction_id: str | None = None,
    page: int = 1,
    per_page: int = 20,
) -> dict:
    """A page of the merchant's refunds, newest first, with pagination info."""
    page = max(page, 1)
    per_page = max(per_page, 1)
    result = current_domain.repository_for(Refund).page_for_merchant(
        merchant_id,
        status=status,
        refund_type=refund_type,
        transaction_id=transaction_id,
        page=page,
        per_page=per_page,
    )
    return {
        "refunds": list(result.items),
        "page": page,
        "per_page": per_page,
        "total": result.total,
        "pages": math.ceil(result.total / per_page) if result.total else 0,
        "has_next": result.has_next,
        "has_prev": page > 1,
    }


def refund_stats(merchant_id: str, status: str | None = None) -> dict:
    """Counts per status and type, total amount and success rate."""
    refunds = current_domain.repository_for(Refund).for_merchant(merchant_id, status=status)
    total = len(refunds)
    stats = {
        "total_refunds": total,
        "total_amount": sum(refund.amount for refund in refunds),
    }
    for refund_status in RefundStatus:
        stats[f"{refund_status.value}_refunds"] = sum(1 for r in refunds if r.status == refund_status.value)
    for refund_type in RefundType:
        stats[f"{refund_type.value}_refunds"] = sum(1 for r in refunds if r.refund_type == refund_type.value)
    stats["success_rate"] = (stats["completed_refunds"] / total) * 100 if total else 0.0
    return stats

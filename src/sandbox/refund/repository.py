"""Repository for the Refund aggregate.

The base repository provides standard CRUD operations. The query methods
here back the ledger checks and the merchant-facing listings.
"""

from sandbox.domain import sandbox
from sandbox.refund.refund import OUTSTANDING_STATUSES, Refund

_BATCH_SIZE = 100


@sandbox.repository(part_of=Refund)
class RefundRepository:
    def _fetch_all(self, **filters) -> list[Refund]:
        """Return every refund matching ``filters``, newest first."""
        refunds: list[Refund] = []
        offset = 0
        while True:
            page = self._dao.query.filter(**filters).order_by("-created_at").offset(offset).limit(_BATCH_SIZE).all()
            refunds.extend(page.items)
            if not page.has_next:
                return refunds
            offset += _BATCH_SIZE

    def find_by_reference(self, reference: str) -> Refund | None:
        matches = self._dao.query.filter(reference=reference).all().items
        return matches[0] if matches else None

    def outstanding_for_transaction(self, transaction_id: str) -> list[Refund]:
        """Refunds that still count against the transaction's balance."""
        return [
            refund
            for refund in self._fetch_all(transaction_id=str(transaction_id))
            if refund.status in OUTSTANDING_STATUSES
        ]

    def for_merchant(self, merchant_id: str, status: str | None = None) -> list[Refund]:
        filters = {"merchant_id": str(merchant_id)}
        if status:
            filters["status"] = status
        return self._fetch_all(**filters)

    def page_for_merchant(
        self,
        merchant_id: str,
        status: str | None = None,
        refund_type: str | None = None,
        transaction_id: str | None = None,
        page: int = 1,
        per_page: int = 20,
    ):
        """One page of a merchant's refunds, newest first, as a ResultSet."""
        filters = {"merchant_id": str(merchant_id)}
        if status:
            filters["status"] = status
        if refund_type:
            filters["refund_type"] = refund_type
        if transaction_id:
            filters["transaction_id"] = str(transaction_id)
        return (
            self._dao.query.filter(**filters)
            .order_by("-created_at")
            .offset((page - 1) * per_page)
            .limit(per_page)
            .all()
        )

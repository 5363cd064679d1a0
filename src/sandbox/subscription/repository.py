"""Repository for the Subscription aggregate."""

from datetime import datetime

from sandbox.domain import sandbox
from sandbox.subscription.subscription import SCHEDULED_STATUSES, Subscription, as_utc

_BATCH_SIZE = 100


@sandbox.repository(part_of=Subscription)
class SubscriptionRepository:
    def _fetch_all(self, **filters) -> list[Subscription]:
        subscriptions: list[Subscription] = []
        offset = 0
        while True:
            page = self._dao.query.filter(**filters).offset(offset).limit(_BATCH_SIZE).all()
            subscriptions.extend(page.items)
            if not page.has_next:
                return subscriptions
            offset += _BATCH_SIZE

    def due_for_billing(self, as_of: datetime) -> list[Subscription]:
        """Trialing and active subscriptions whose billing date has passed.

        Paused, past-due and cancelled subscriptions are never returned.
        """
        as_of = as_utc(as_of)
        due = []
        for status in SCHEDULED_STATUSES:
            for subscription in self._fetch_all(status=status):
                if subscription.next_billing_date is None:
                    continue
                if as_utc(subscription.next_billing_date) <= as_of:
                    due.append(subscription)
        return sorted(due, key=lambda s: as_utc(s.next_billing_date))

    def page_for_merchant(
        self,
        merchant_id: str,
        status: str | None = None,
        interval: str | None = None,
        page: int = 1,
        limit: int = 20,
    ):
        """One page of a merchant's subscriptions, newest first, as a ResultSet."""
        filters = {"merchant_id": str(merchant_id)}
        if status:
            filters["status"] = status
        if interval:
            filters["interval"] = interval
        return (
            self._dao.query.filter(**filters)
            .order_by("-created_at")
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )

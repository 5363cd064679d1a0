"""Billing clock: next billing instant for an interval descriptor.

Daily and weekly intervals are fixed-length additions. Monthly and yearly
intervals move by calendar months; when the target month is shorter than the
anchor's day-of-month the day is clamped to the month's last day, so
Jan 31 + 1 month is Feb 28 (or 29) and Feb 29 + 1 year is Feb 28.
"""

import calendar
from datetime import datetime, timedelta
from enum import Enum


class BillingInterval(Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


def _add_months(anchor: datetime, months: int) -> datetime:
    month_index = anchor.month - 1 + months
    year = anchor.year + month_index // 12
    month = month_index % 12 + 1
    day = min(anchor.day, calendar.monthrange(year, month)[1])
    return anchor.replace(year=year, month=month, day=day)


def next_billing_date(anchor: datetime, interval: str | BillingInterval, count: int = 1) -> datetime:
    """Return ``anchor`` advanced by ``count`` units of ``interval``.

    Time of day and tzinfo are preserved. Raises ValueError for an
    unrecognized interval or a count below 1.
    """
    unit = BillingInterval(interval)
    if count < 1:
        raise ValueError(f"Interval count must be at least 1, got {count}")

    if unit == BillingInterval.DAILY:
        return anchor + timedelta(days=count)
    if unit == BillingInterval.WEEKLY:
        return anchor + timedelta(days=7 * count)
    if unit == BillingInterval.MONTHLY:
        return _add_months(anchor, count)
    return _add_months(anchor, 12 * count)

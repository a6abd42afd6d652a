"""Billing period resolution for scheduled invoicing."""

import datetime as dt
from typing import Optional, Union

from billing_engine.models import BillingCycle, DateRange

FALLBACK_WINDOW_DAYS = 30


def resolve_billing_period(
    cycle: Union[BillingCycle, str, None], now: Optional[dt.datetime] = None
) -> DateRange:
    """Return the window ``[start, now]`` a billing cycle covers at ``now``.

    - WEEKLY: trailing 7 days
    - MONTHLY: first day of the current month
    - QUARTERLY: first day of the current calendar quarter
    - YEARLY / ANNUALLY: January 1 of the current year
    - anything else: trailing 30 days

    Calendar-aligned starts are at midnight.

    Example:
        >>> resolve_billing_period("QUARTERLY", dt.datetime(2024, 5, 17, 9)).start
        datetime.datetime(2024, 4, 1, 0, 0)
    """
    now = now or dt.datetime.now()
    midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
    value = cycle.value if isinstance(cycle, BillingCycle) else str(cycle or "").upper()

    if value == BillingCycle.WEEKLY.value:
        start = now - dt.timedelta(days=7)
    elif value == BillingCycle.MONTHLY.value:
        start = midnight.replace(day=1)
    elif value == BillingCycle.QUARTERLY.value:
        first_month = ((now.month - 1) // 3) * 3 + 1
        start = midnight.replace(month=first_month, day=1)
    elif value in (BillingCycle.YEARLY.value, BillingCycle.ANNUALLY.value):
        start = midnight.replace(month=1, day=1)
    else:
        start = now - dt.timedelta(days=FALLBACK_WINDOW_DAYS)

    return DateRange(start=start, end=now)

"""Calendar-month usage windows (UTC)."""

from datetime import datetime, timedelta, timezone
from typing import Optional

from packages.billing.models.domain.usage import UsagePeriod


def month_start(now: Optional[datetime] = None) -> datetime:
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    now = now.astimezone(timezone.utc)
    return now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def current_period(now: Optional[datetime] = None) -> UsagePeriod:
    """First of month 00:00:00 to last of month 23:59:59.999."""
    start = month_start(now)
    if start.month == 12:
        next_start = start.replace(year=start.year + 1, month=1)
    else:
        next_start = start.replace(month=start.month + 1)
    return UsagePeriod(start=start, end=next_start - timedelta(milliseconds=1))

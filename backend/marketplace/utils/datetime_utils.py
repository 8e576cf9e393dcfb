"""
Timezone-aware datetime utilities.

All timestamps stored on milestones and plans are UTC and timezone-aware.
"""

import math
from datetime import datetime, timezone
from typing import Optional

# UTC timezone constant
UTC = timezone.utc


def now_utc() -> datetime:
    """
    Get current UTC datetime (timezone-aware).

    Replaces datetime.utcnow() which is deprecated in Python 3.12+.
    """
    return datetime.now(UTC)


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """
    Ensure datetime is timezone-aware and in UTC.

    Args:
        dt: datetime to convert (can be None, naive, or timezone-aware)

    Returns:
        Optional[datetime]: UTC timezone-aware datetime, or None if input is None
    """
    if dt is None:
        return None

    if dt.tzinfo is None:
        # Naive datetime - assume UTC
        return dt.replace(tzinfo=UTC)

    return dt.astimezone(UTC)


def month_key(dt: datetime) -> str:
    """Calendar month bucket used for usage counters, e.g. ``2026-10``."""
    return ensure_utc(dt).strftime("%Y-%m")


def days_until(due: datetime, now: datetime) -> int:
    """
    Whole days between ``now`` and ``due``, rounded up.

    The distance is absolute, so an overdue date still yields a positive count.

    Example:
        >>> days_until(datetime(2026, 1, 3, 1, tzinfo=UTC), datetime(2026, 1, 1, tzinfo=UTC))
        3
    """
    seconds = abs((ensure_utc(due) - ensure_utc(now)).total_seconds())
    return math.ceil(seconds / 86400)

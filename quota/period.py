"""Accounting period keys.

Counters are stored per period key, so a new period simply starts without a
record and the user is initialized again on first use.
"""

from datetime import datetime, timezone
from typing import Callable, Optional

LIFETIME = "lifetime"
MONTHLY = "monthly"
DAILY = "daily"

PeriodKeyFunc = Callable[[], str]


def period_key(period: str, now: Optional[datetime] = None) -> str:
    """
    Return the storage key for the accounting period containing ``now``.

    Examples:
        >>> period_key("lifetime")
        'lifetime'
        >>> period_key("monthly", datetime(2026, 10, 17, tzinfo=timezone.utc))
        '2026-10'
        >>> period_key("daily", datetime(2026, 10, 17, tzinfo=timezone.utc))
        '2026-10-17'
    """
    if period == LIFETIME:
        return LIFETIME

    now = now or datetime.now(timezone.utc)
    if period == MONTHLY:
        return now.strftime("%Y-%m")
    if period == DAILY:
        return now.strftime("%Y-%m-%d")
    raise ValueError(f"Unsupported quota period: {period}")


def period_ttl_seconds(period: str) -> Optional[int]:
    """Upper bound on how long a period's counter is worth keeping."""
    if period == MONTHLY:
        return 32 * 24 * 3600
    if period == DAILY:
        return 2 * 24 * 3600
    return None


def make_period_key_func(period: str) -> PeriodKeyFunc:
    # Validate eagerly so a bad setting fails at startup
    period_key(period)
    return lambda: period_key(period)

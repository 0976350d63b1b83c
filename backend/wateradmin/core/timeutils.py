"""UTC helpers.

Timestamps are stored as naive UTC. Drivers that hand back aware values
(PostgreSQL ``timestamptz``) are normalised before any arithmetic.
"""

from datetime import datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def naive_utc(dt: Optional[datetime]) -> Optional[datetime]:
    if dt is None or dt.tzinfo is None:
        return dt
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def aware_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC so serialised values carry an explicit offset."""
    if dt is None:
        return None
    return naive_utc(dt).replace(tzinfo=timezone.utc)


def isoformat_utc(dt: Optional[datetime]) -> Optional[str]:
    value = aware_utc(dt)
    return value.isoformat() if value else None


def minutes_until(moment: Optional[datetime], now: Optional[datetime] = None) -> Optional[int]:
    """Whole minutes left until ``moment``; None when there is no deadline, 0 once passed."""
    if moment is None:
        return None
    now = now or utcnow()
    remaining = (naive_utc(moment) - now).total_seconds()
    return max(0, int(remaining // 60))

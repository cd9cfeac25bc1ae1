"""
Date/time helpers shared by the OTP, token and session services.

Every timestamp the services compare is a timezone-aware UTC ``datetime``.
Documents read back from MongoDB are normalised through :func:`ensure_utc`
so a client configured without ``tz_aware=True`` cannot produce naive/aware
comparison errors.
"""

from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Callable, Optional

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    """Current time as a timezone-aware UTC ``datetime``."""
    return datetime.now(timezone.utc)


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Return *value* as an aware UTC datetime; naive values are assumed UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def ceil_seconds_until(target: datetime, now: datetime) -> int:
    """Whole seconds from *now* until *target*, rounded up (never negative)."""
    return max(0, math.ceil((target - now).total_seconds()))


def ceil_minutes_until(target: datetime, now: datetime) -> int:
    """Whole minutes from *now* until *target*, rounded up (never negative)."""
    return max(0, math.ceil((target - now).total_seconds() / 60))

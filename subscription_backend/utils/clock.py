"""Clock used for every timestamp the service writes or compares.

The offset makes it possible to move "now" forward, so paid-period expiry can
be exercised without waiting for it.
"""

import threading
from datetime import datetime, timedelta, timezone
from typing import Optional

from subscription_backend.logging_config import get_logger

logger = get_logger(__name__)


class Clock:
    """UTC clock with an optional forward offset.

    Args:
        fixed_now: Pin the clock to this instant instead of the system time
    """

    def __init__(self, fixed_now: Optional[datetime] = None) -> None:
        self._lock = threading.RLock()
        self._fixed_now = _as_utc(fixed_now) if fixed_now is not None else None
        self._offset = timedelta(0)

    def now(self) -> datetime:
        """Current time as a timezone-aware UTC datetime."""
        with self._lock:
            base = self._fixed_now or datetime.now(timezone.utc)
            return base + self._offset

    def advance(self, days: int = 0, hours: int = 0, minutes: int = 0) -> datetime:
        """Move the clock forward.

        Returns:
            The new current time

        Raises:
            ValueError: If any value is negative
        """
        if days < 0 or hours < 0 or minutes < 0:
            raise ValueError("Cannot move the clock backwards")

        with self._lock:
            self._offset += timedelta(days=days, hours=hours, minutes=minutes)
            new_now = self.now()

        logger.debug("clock_advanced", days=days, hours=hours, minutes=minutes, now=new_now.isoformat())
        return new_now


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Normalize a stored timestamp to aware UTC (naive values are taken as UTC)."""
    if value is None:
        return None
    return _as_utc(value)

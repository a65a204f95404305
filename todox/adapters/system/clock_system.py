from todox.ports.clock import Clock
from datetime import datetime, timezone

class SystemClock(Clock):
    """System adapter backed by the current UTC time."""

    def now(self) -> datetime:
        """Returns the current time in UTC (aware)."""
        return datetime.now(timezone.utc)

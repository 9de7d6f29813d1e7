# app/core/clock.py
from datetime import datetime, timezone


class Clock:
    """
    Source of "now" for lifecycle decisions.

    Returns timezone-aware UTC datetimes. Services take a Clock instead
    of calling datetime.now() so that expiry logic can be driven from
    tests.
    """

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


system_clock = Clock()

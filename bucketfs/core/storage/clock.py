"""Time source for key timestamps and metadata stamps."""

from datetime import datetime, timedelta, timezone
from typing import Protocol

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class Clock(Protocol):
    """
    Anything that can tell the time.

    Injected rather than calling datetime.now() inline so tests can pin
    the timestamp prefix and reproduce same-millisecond collisions.
    """

    def now(self) -> datetime:
        """Current time, timezone-aware UTC."""
        ...


class SystemClock:
    """Wall clock."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


def to_millis(moment: datetime) -> int:
    """Milliseconds since the epoch, as used in key prefixes."""
    return (moment - _EPOCH) // timedelta(milliseconds=1)


def to_iso(moment: datetime) -> str:
    """ISO-8601 with millisecond precision and a trailing Z."""
    return moment.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")

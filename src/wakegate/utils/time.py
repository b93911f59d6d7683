"""Time utilities."""

from datetime import datetime, timezone


def utc_now() -> datetime:
    """Return a timezone-aware UTC timestamp."""
    return datetime.now(timezone.utc)


def epoch_millis(now: datetime | None = None) -> int:
    """Return integer epoch milliseconds for ``now`` (defaults to the current time)."""
    if now is None:
        now = utc_now()
    return int(now.timestamp() * 1000)


def from_epoch_millis(value: int) -> datetime:
    """Convert epoch milliseconds back to a timezone-aware UTC datetime."""
    return datetime.fromtimestamp(value / 1000, tz=timezone.utc)

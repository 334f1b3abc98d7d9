"""Time helpers shared by the domain and services."""

from datetime import datetime, timezone


def utc_now() -> datetime:
    """Current UTC time as a naive datetime (stored without tzinfo)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)

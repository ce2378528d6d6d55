"""Time utilities"""

from datetime import datetime, timezone


def get_now() -> datetime:
    """Get current UTC datetime."""
    return datetime.now(timezone.utc)


def utc_timestamp() -> str:
    """ISO-8601 UTC timestamp used for ``recorded_at`` fields."""
    return get_now().isoformat()

from datetime import datetime, timezone


def utcnow() -> datetime:
    """Current UTC time, tz-aware. Snapshot ``fetched_at`` values use this."""
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime) -> datetime:
    """Attach UTC to a naive datetime; aware values pass through.

    Motor hands back ``fetched_at`` naive, so snapshot reads go through here
    before the value leaves the service.
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt

from datetime import datetime, timezone
from zoneinfo import ZoneInfo


def naive_utc_now() -> datetime:
    """
    Get current UTC datetime as a naive datetime (no timezone info).
    Every timestamp column in the store is naive UTC.

    Returns:
        datetime: Current UTC datetime without timezone info
    """
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(dt: datetime) -> datetime:
    """
    Convert a datetime object to naive UTC (no timezone info).

    Args:
        dt: Datetime object to convert

    Returns:
        datetime: Naive UTC datetime
    """
    if dt.tzinfo is None:
        # Already naive, assume it's UTC
        return dt
    else:
        utc_dt = dt.astimezone(timezone.utc)
        return utc_dt.replace(tzinfo=None)


def from_naive_utc(dt: datetime, zone: ZoneInfo = ZoneInfo("UTC")) -> datetime:
    """
    Convert a naive UTC datetime (no timezone info) to a timezone-aware datetime.

    Args:
        dt: Naive UTC datetime to convert
        zone: Timezone to use for the conversion (default: UTC)

    Returns:
        datetime: Timezone-aware datetime
    """
    if dt.tzinfo is not None:
        raise ValueError("Input datetime must be naive (no timezone info)")
    return dt.replace(tzinfo=timezone.utc).astimezone(zone)


def from_epoch_ms(value: int | None) -> datetime | None:
    """Convert epoch milliseconds (as sent by payment webhooks) to naive UTC."""
    if value is None:
        return None
    return datetime.fromtimestamp(value / 1000, tz=timezone.utc).replace(tzinfo=None)


def start_of_day(now: datetime, zone: ZoneInfo = ZoneInfo("UTC")) -> datetime:
    """
    Start of the calendar day containing `now` in `zone`, as naive UTC.

    Args:
        now: Naive UTC reference time
        zone: Zone whose midnight defines the day boundary

    Returns:
        datetime: Naive UTC datetime of local midnight
    """
    local_now = from_naive_utc(now, zone)
    local_midnight = local_now.replace(hour=0, minute=0, second=0, microsecond=0)
    return to_naive_utc(local_midnight)

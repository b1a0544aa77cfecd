"""
Time bucketing and date-window resolution for statistics queries.

All timestamps are normalized to UTC. Week buckets start on Monday.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

from quiztrack.core.entities import BucketType
from quiztrack.core.errors import ValidationError

DEFAULT_DAYS = 30


def ensure_utc(timestamp: datetime) -> datetime:
    """Treat naive datetimes as UTC and convert aware ones to UTC."""
    if timestamp.tzinfo is None:
        return timestamp.replace(tzinfo=UTC)
    return timestamp.astimezone(UTC)


def parse_bucket_type(value: str | None, default: BucketType = BucketType.DAY) -> BucketType:
    """Parse a range name; unknown or missing values fall back to the default."""
    if not value:
        return default
    try:
        return BucketType(value.strip().lower())
    except ValueError:
        return default


def calculate_bucket_start(timestamp: datetime, bucket_type: BucketType) -> datetime:
    """Calculate the start of the bucket containing a timestamp."""
    ts = ensure_utc(timestamp)

    if bucket_type == BucketType.HOUR:
        return ts.replace(minute=0, second=0, microsecond=0)
    elif bucket_type == BucketType.DAY:
        return ts.replace(hour=0, minute=0, second=0, microsecond=0)
    elif bucket_type == BucketType.WEEK:
        day = ts.replace(hour=0, minute=0, second=0, microsecond=0)
        return day - timedelta(days=day.weekday())
    else:
        msg = f"Unknown bucket type: {bucket_type}"
        raise ValueError(msg)


def resolve_window(
    now: datetime,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    days: int | None = None,
    default_days: int = DEFAULT_DAYS,
) -> tuple[datetime, datetime]:
    """
    Resolve the query window (inclusive bounds).

    Explicit dates take precedence over `days`, which takes precedence over
    the default trailing window. A lone start runs to now; a lone end looks
    back `days` (or the default) from that end. days=0 means the default.
    """
    if not days:
        days = None
    elif days < 0:
        raise ValidationError(f"days must be positive, got {days}", field_name="days")

    now = ensure_utc(now)
    try:
        lookback = timedelta(days=days if days is not None else default_days)
        if start_date is not None or end_date is not None:
            end = ensure_utc(end_date) if end_date is not None else now
            start = ensure_utc(start_date) if start_date is not None else end - lookback
        else:
            end = now
            start = now - lookback
    except OverflowError as e:
        field_name = "endDate" if end_date is not None else "days"
        raise ValidationError(f"{field_name} is out of range", field_name=field_name) from e

    if start > end:
        raise ValidationError("startDate must not be after endDate", field_name="startDate")

    return start, end

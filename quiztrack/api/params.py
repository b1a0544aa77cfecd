"""Query parameter parsing shared by the stats routes."""

from __future__ import annotations

from datetime import UTC, date, datetime, time

from quiztrack.core.errors import ValidationError


def parse_datetime(dt_str: str, field_name: str, end_of_day: bool = False) -> datetime:
    """
    Parse an ISO date or datetime query value to an aware UTC datetime.

    A bare date means midnight, or the last microsecond of that day when
    end_of_day is set (so endDate=2026-01-31 includes the 31st).
    """
    value = dt_str.strip()
    try:
        if len(value) == 10:
            day = date.fromisoformat(value)
            return datetime.combine(day, time.max if end_of_day else time.min, tzinfo=UTC)

        if value.endswith("Z"):
            value = value[:-1] + "+00:00"
        dt = datetime.fromisoformat(value)
    except ValueError as e:
        raise ValidationError(f"Invalid {field_name}: {dt_str}", field_name=field_name) from e

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def parse_optional_datetime(
    dt_str: str | None, field_name: str, end_of_day: bool = False
) -> datetime | None:
    if not dt_str:
        return None
    return parse_datetime(dt_str, field_name, end_of_day=end_of_day)

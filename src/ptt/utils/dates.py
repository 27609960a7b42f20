"""
Date helpers for the Production Timeline Tracker.

All timestamps handled by the engine are naive UTC datetimes.
"""

from datetime import UTC, date, datetime

from ptt.errors import ValidationError

DISPLAY_FORMAT = "%d-%b-%y"


def utcnow() -> datetime:
    """Current time as a naive UTC datetime."""
    return datetime.now(UTC).replace(tzinfo=None)


def to_naive_utc(value: datetime) -> datetime:
    """Drop timezone info after converting aware datetimes to UTC."""
    if value.tzinfo is not None:
        return value.astimezone(UTC).replace(tzinfo=None)
    return value


def parse_completion_date(value: str | date | datetime) -> datetime:
    """
    Parse a completion date supplied by a caller.

    Accepts datetimes, dates (midnight is assumed) and ISO-8601 strings.

    Raises:
        ValidationError: If the value cannot be interpreted as a date
    """
    if isinstance(value, datetime):
        return to_naive_utc(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            return to_naive_utc(datetime.fromisoformat(text))
        except ValueError as e:
            raise ValidationError(f"Invalid actual_completion date format: {value!r}") from e
    raise ValidationError(f"Invalid actual_completion date format: {value!r}")


def same_day(a: datetime | None, b: datetime | None) -> bool:
    """Compare two optional datetimes at day granularity."""
    if a is None or b is None:
        return a is None and b is None
    return a.date() == b.date()


def format_display_date(value: datetime | None) -> str:
    """Format a date the way timeline reports show it, e.g. '02-Jan-24'."""
    if value is None:
        return "N/A"
    return value.strftime(DISPLAY_FORMAT)

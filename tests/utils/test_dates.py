"""
Tests for date helpers.
"""

from datetime import UTC, date, datetime, timedelta, timezone

import pytest

from ptt.errors import ValidationError
from ptt.utils.dates import (
    format_display_date,
    parse_completion_date,
    same_day,
    to_naive_utc,
    utcnow,
)


def test_utcnow_is_naive():
    assert utcnow().tzinfo is None


def test_to_naive_utc_converts_aware_values():
    aware = datetime(2024, 1, 2, 3, 0, tzinfo=timezone(timedelta(hours=8)))
    assert to_naive_utc(aware) == datetime(2024, 1, 1, 19, 0)


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("2024-01-02", datetime(2024, 1, 2)),
        ("2024-01-02T10:30:00", datetime(2024, 1, 2, 10, 30)),
        ("2024-01-02T10:30:00Z", datetime(2024, 1, 2, 10, 30)),
        ("2024-01-02T10:30:00+02:00", datetime(2024, 1, 2, 8, 30)),
        (date(2024, 1, 2), datetime(2024, 1, 2)),
        (datetime(2024, 1, 2, 5, tzinfo=UTC), datetime(2024, 1, 2, 5)),
    ],
)
def test_parse_completion_date(value, expected):
    assert parse_completion_date(value) == expected


@pytest.mark.parametrize("value", ["", "yesterday", "2024-13-01", 20240102])
def test_parse_completion_date_rejects_garbage(value):
    with pytest.raises(ValidationError, match="Invalid actual_completion date format"):
        parse_completion_date(value)


def test_same_day():
    assert same_day(datetime(2024, 1, 2, 1), datetime(2024, 1, 2, 23))
    assert not same_day(datetime(2024, 1, 2), datetime(2024, 1, 3))
    assert not same_day(datetime(2024, 1, 2), None)
    assert same_day(None, None)


def test_format_display_date():
    assert format_display_date(datetime(2024, 1, 2)) == "02-Jan-24"
    assert format_display_date(None) == "N/A"

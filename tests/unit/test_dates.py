from datetime import date

import pytest
from freezegun import freeze_time

from punklist.utils.dates import local_today, parse_day_label, utc_timestamp


@pytest.mark.parametrize(
    "label,today,expected",
    [
        ("wed apr 23", date(2025, 4, 20), "2025-04-23"),
        ("Sat Oct 25", date(2025, 10, 1), "2025-10-25"),
        ("sun jun 1 2025", date(2026, 3, 1), "2025-06-01"),
        ("tue sept 9", date(2025, 9, 1), "2025-09-09"),
        # early January listed in late December
        ("fri jan 2", date(2025, 12, 20), "2026-01-02"),
        # late December still showing in early January
        ("mon dec 29", date(2026, 1, 5), "2025-12-29"),
    ],
)
def test_parse_day_label(label, today, expected):
    assert parse_day_label(label, today) == expected


@pytest.mark.parametrize("label", ["", None, "blah", "feb 30", "sat"])
def test_parse_day_label_unparseable(label):
    assert parse_day_label(label, date(2025, 1, 1)) is None


@freeze_time("2026-02-01T12:00:00Z")
def test_utc_timestamp():
    assert utc_timestamp() == "2026-02-01T12:00:00.000Z"


@freeze_time("2026-02-01T05:00:00Z")
def test_local_today_is_pacific():
    assert local_today() == date(2026, 1, 31)

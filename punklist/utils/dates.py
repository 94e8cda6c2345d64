import re
from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo

from punklist import config

MONTHS = {
    "jan": 1, "feb": 2, "mar": 3, "apr": 4, "may": 5, "jun": 6,
    "jul": 7, "aug": 8, "sep": 9, "oct": 10, "nov": 11, "dec": 12,
}


def utc_timestamp():
    """ISO-8601 UTC timestamp with a trailing Z."""
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z"


def local_today():
    """Today's date in the listings' timezone (the Bay Area)."""
    return datetime.now(ZoneInfo(config.TIMEZONE)).date()


def parse_day_label(label, today=None):
    """
    Convert a listing day label to an ISO date string.
    Handles: "wed apr 23", "Sat Oct 25", "sun jun 1 2025"
    The year is inferred from today: dates more than half a year in the
    past roll forward, dates more than half a year ahead roll back.
    Returns None if the label can't be parsed.
    """
    if not label:
        return None
    today = today or local_today()

    match = re.search(r"([a-z]{3})[a-z]*\.?\s+(\d{1,2})(?:\s+(\d{4}))?", label.lower())
    if not match or match.group(1) not in MONTHS:
        return None

    month = MONTHS[match.group(1)]
    day = int(match.group(2))
    explicit_year = match.group(3)

    try:
        if explicit_year:
            return date(int(explicit_year), month, day).isoformat()
        candidate = date(today.year, month, day)
        if candidate < today - timedelta(days=182):
            candidate = date(today.year + 1, month, day)
        elif candidate > today + timedelta(days=182):
            candidate = date(today.year - 1, month, day)
    except ValueError:
        return None

    return candidate.isoformat()

"""
Name: Clock helpers (UTC timestamps)

Responsibilities:
  - Single source of "now" in UTC for records, audit entries and snapshots
  - Render timestamps as ISO-8601 with millisecond precision and a "Z" suffix
  - Parse user / stored timestamps leniently (datetime, date, ISO string)

Notes:
  - Naive datetimes are interpreted as UTC
  - A bare date ("2024-05-01") means midnight UTC of that day
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_iso(moment: datetime) -> str:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    moment = moment.astimezone(timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def now_iso() -> str:
    return to_iso(utc_now())


def today_stamp() -> str:
    """YYYY-MM-DD (UTC) used in exported file names."""
    return utc_now().strftime("%Y-%m-%d")


def parse_timestamp(value: Any) -> datetime | None:
    """
    Convert a datetime / date / ISO string into an aware UTC datetime.

    Returns None for empty or unparseable values instead of raising, so
    records with broken dates simply fall outside date filters.
    """
    if value is None or value == "":
        return None

    if isinstance(value, datetime):
        moment = value
    elif isinstance(value, date):
        moment = datetime(value.year, value.month, value.day)
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            moment = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None

    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)

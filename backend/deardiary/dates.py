"""
Dear Diary — Date and Timestamp Helpers
=========================================

What:  Conversions between wire strings and Python date/datetime values.
Who:   Schemas (serialization), validation (entryDate) and the client models.

Wire formats:
    entryDate   yyyy-MM-dd
    timestamps  ISO-8601 UTC with microseconds, e.g. 2024-01-01T10:00:00.123456Z

The parser is lenient in the other direction: it also accepts timestamps
without fractional seconds, with an explicit offset, or a bare date.
"""

import re
from datetime import date, datetime, timezone
from typing import Optional

ENTRY_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Attaches UTC to naive datetimes (SQLite drops tzinfo) and converts aware ones."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def format_timestamp(value: datetime) -> str:
    return as_utc(value).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


def parse_entry_date(value: str) -> Optional[date]:
    """Returns the date for a strict yyyy-MM-dd string, or None."""
    if not isinstance(value, str) or not ENTRY_DATE_PATTERN.fullmatch(value):
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        return None


def parse_timestamp(value: str) -> datetime:
    """
    Parses a server timestamp into an aware UTC datetime.

    Tries, in order: ISO-8601 with fractional seconds, ISO-8601 without them,
    and a bare yyyy-MM-dd (midnight UTC).

    Raises:
        ValueError: none of the formats match.
    """
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    for fmt in (
        "%Y-%m-%dT%H:%M:%S.%f%z",
        "%Y-%m-%dT%H:%M:%S%z",
        "%Y-%m-%dT%H:%M:%S.%f",
        "%Y-%m-%dT%H:%M:%S",
    ):
        try:
            return as_utc(datetime.strptime(text, fmt))
        except ValueError:
            continue
    day = parse_entry_date(value.strip())
    if day is not None:
        return datetime(day.year, day.month, day.day, tzinfo=timezone.utc)
    raise ValueError(f"Unrecognized timestamp format: {value!r}")

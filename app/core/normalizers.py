# app/core/normalizers.py

"""
Data normalization utilities for attendance events.

Ensures names and dates compare equal regardless of source.
"""

from datetime import date, datetime
from typing import Any, Optional
from zoneinfo import ZoneInfo
import re

from app.config import get_settings

settings = get_settings()

CANONICAL_DATE = re.compile(r"[0-9]{4}-[0-9]{2}-[0-9]{2}")

# Layouts seen in CSV exports and in spreadsheet round-trips
_DATE_FORMATS = [
    "%Y-%m-%d",
    "%Y/%m/%d",
    "%Y/%m/%d %H:%M",
    "%Y/%m/%d %H:%M:%S",
    "%Y年%m月%d日",
    "%m/%d/%Y",
    "%Y.%m.%d",
]

# Date.toString() output, e.g. "Tue Mar 05 2024 00:00:00 GMT+0900 (Japan Standard Time)"
_JS_DATE_STRING = re.compile(
    r"^[A-Za-z]{3} ([A-Za-z]{3} \d{2} \d{4} \d{2}:\d{2}:\d{2}) GMT([+-]\d{4})"
)


def normalize_name(name: Optional[str]) -> str:
    """
    Normalize a person's name for matching.

    - Removes all whitespace, full-width spaces included
    - Strips a trailing employee number ("田中01" -> "田中")
    """
    if not name:
        return ""

    name = re.sub(r"\s+", "", str(name))
    return re.sub(r"[0-9]+$", "", name)


def normalize_date(value: Any) -> str:
    """
    Normalize a date to a YYYY-MM-DD string.

    Aware timestamps are read in the configured local timezone so an
    instant like 2024-03-04T15:00:00Z lands on 2024-03-05 in Tokyo.
    Unparseable input is returned unchanged.
    """
    if value is None:
        return ""

    if isinstance(value, datetime):
        return _format(_to_local(value))

    if isinstance(value, date):
        return value.isoformat()

    text = str(value).strip()
    if CANONICAL_DATE.fullmatch(text):
        return text

    parsed = parse_datetime(text)
    if parsed is None:
        return str(value)
    return _format(_to_local(parsed))


def parse_calendar_date(text: Optional[str]) -> str | None:
    """Strict variant of normalize_date: None when the text is not a real date."""
    if not text:
        return None

    text = text.strip()
    if CANONICAL_DATE.fullmatch(text):
        try:
            return date.fromisoformat(text).isoformat()
        except ValueError:
            return None

    parsed = parse_datetime(text)
    if parsed is None:
        return None
    return _format(_to_local(parsed))


def parse_datetime(text: str) -> datetime | None:
    """Parse a date/time string in any of the supported layouts."""
    if not text:
        return None

    # Try ISO format first
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        pass

    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue

    match = _JS_DATE_STRING.match(text)
    if match:
        try:
            return datetime.strptime(f"{match.group(1)} {match.group(2)}", "%b %d %Y %H:%M:%S %z")
        except ValueError:
            return None

    return None


def _to_local(value: datetime) -> datetime:
    """Convert aware datetimes to the local timezone; naive ones are already local."""
    if value.tzinfo is None:
        return value
    return value.astimezone(ZoneInfo(settings.timezone))


def _format(value: datetime) -> str:
    return f"{value.year:04d}-{value.month:02d}-{value.day:02d}"

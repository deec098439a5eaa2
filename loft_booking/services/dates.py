"""Conversion between calendar dates and the vendor's date strings.

The vendor speaks local wall-clock time without an offset
(``2025-10-25T14:30:00``) in requests, but its responses mix several
variants. Everything returned here is a naive datetime in local time.
"""

from __future__ import annotations

import re
from datetime import date, datetime
from typing import Optional

WIRE_FORMAT = "%Y-%m-%dT%H:%M:%S"

_PARSE_FORMATS = (
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%dT%H:%M:%S.%f",
    "%Y-%m-%dT%H:%M:%S%z",
    "%Y-%m-%dT%H:%M:%S.%f%z",
)

# .NET serializers emit up to seven fractional digits; strptime accepts six.
_FRACTION = re.compile(r"(\.\d{6})\d+")


def format_for_wire(value: date) -> str:
    """Render the start of ``value``'s calendar day in the vendor format."""

    day = value.date() if isinstance(value, datetime) else value
    return datetime(day.year, day.month, day.day).strftime(WIRE_FORMAT)


def parse_from_wire(value: Optional[str]) -> Optional[datetime]:
    """Parse a vendor date string, returning ``None`` when nothing matches."""

    if not value or not isinstance(value, str):
        return None
    text = _FRACTION.sub(r"\1", value.strip())

    for pattern in _PARSE_FORMATS:
        try:
            return _to_local_naive(datetime.strptime(text, pattern))
        except ValueError:
            continue

    # ISO-8601 with a trailing Z, then anything else fromisoformat accepts.
    for candidate in (text.replace("Z", "+00:00"), text):
        try:
            return _to_local_naive(datetime.fromisoformat(candidate))
        except ValueError:
            continue
    return None


def _to_local_naive(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone().replace(tzinfo=None)

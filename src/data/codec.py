"""Wire-format helpers for the data service.

The service is inconsistent about how it writes timestamps, so decoding
accepts several ISO-8601 variants. Encoding always emits one canonical form.
"""

from __future__ import annotations

import re
from datetime import date, datetime, time, timedelta, timezone

# Tried in order. %z accepts "Z", "+0000" and "+00:00".
_DATETIME_FORMATS = (
    "%Y-%m-%dT%H:%M:%S.%f%z",
    "%Y-%m-%dT%H:%M:%S%z",
)

_CANONICAL_FORMAT = "%Y-%m-%dT%H:%M:%SZ"

_DURATION_RE = re.compile(r"^\s*(\d+):([0-5]?\d):([0-5]?\d)(?:\.\d+)?\s*$")


def parse_api_datetime(value: str | datetime) -> datetime:
    """Decode a service timestamp into an aware datetime.

    Accepts fractional and whole seconds, with a literal ``Z`` or a numeric
    offset. Naive values are taken as UTC.

    Raises:
        ValueError: if no accepted variant matches.
    """
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)

    text = value.strip()
    for fmt in _DATETIME_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue

    # Offset-less variants
    for fmt in ("%Y-%m-%dT%H:%M:%S.%f", "%Y-%m-%dT%H:%M:%S"):
        try:
            return datetime.strptime(text, fmt).replace(tzinfo=timezone.utc)
        except ValueError:
            continue

    raise ValueError(f"Cannot decode date string {value!r}")


def format_api_datetime(value: datetime) -> str:
    """Encode a datetime in the canonical ``YYYY-MM-DDTHH:MM:SSZ`` form."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime(_CANONICAL_FORMAT)


def parse_api_date(value: str | date) -> date:
    """Decode a calendar date given as ``YYYY-MM-DD`` or a full timestamp."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = value.strip()
    try:
        return date.fromisoformat(text)
    except ValueError:
        return parse_api_datetime(text).date()


def parse_time_of_day(value: str | time) -> time:
    """Decode ``HH:MM:SS`` with an optional ``Z`` / numeric offset."""
    if isinstance(value, time):
        return value
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return time.fromisoformat(text)
    except ValueError as exc:
        raise ValueError(f"Cannot decode time string {value!r}") from exc


def parse_duration(value: str) -> timedelta | None:
    """Parse an ``H:MM:SS`` duration string; None when malformed."""
    match = _DURATION_RE.match(value or "")
    if not match:
        return None
    hours, minutes, seconds = (int(part) for part in match.groups())
    return timedelta(hours=hours, minutes=minutes, seconds=seconds)

"""
Session date handling.

Every week/level computation works on calendar days in UTC. Session dates
are stored and compared as canonical ``YYYY-MM-DD`` strings or ``date``
objects; nothing here ever looks at the server's local timezone.
"""

import re
from datetime import date, datetime, timedelta, timezone
from typing import Tuple, Union

CANONICAL_DATE_RE = re.compile(r"[0-9]{4}-[0-9]{2}-[0-9]{2}")

# Loose calendar-day spellings we accept and re-pad: 2025-1-5, 2025/01/05
_LOOSE_DAY_RE = re.compile(r"([0-9]{4})[-/]([0-9]{1,2})[-/]([0-9]{1,2})")


class InvalidSessionDate(ValueError):
    """Raised when a session date cannot be reduced to a calendar day."""


def _parse_utc_day(value: str) -> date:
    match = _LOOSE_DAY_RE.fullmatch(value)
    if match:
        year, month, day = (int(part) for part in match.groups())
        return date(year, month, day)

    # Full timestamps: anything with an offset is converted to UTC first,
    # naive timestamps are taken as UTC already.
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc)
    return parsed.date()


def normalize_date_to_iso(value: str) -> str:
    """
    Normalize a date string to ``YYYY-MM-DD``.

    Canonical input is returned unchanged. Other spellings are parsed as a
    UTC calendar day and reformatted. Empty or unparseable input comes back
    untouched; use :func:`parse_session_date` wherever the result feeds a
    computation.
    """
    if not value:
        return value
    if CANONICAL_DATE_RE.fullmatch(value):
        return value
    try:
        return _parse_utc_day(value.strip()).isoformat()
    except ValueError:
        return value


def parse_session_date(value: Union[str, date, datetime]) -> date:
    """
    Strict variant of :func:`normalize_date_to_iso` returning a ``date``.

    Raises:
        InvalidSessionDate: when the value is not a recognizable calendar day
    """
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        raise InvalidSessionDate(f"Unsupported date value: {value!r}")

    normalized = normalize_date_to_iso(value)
    if not CANONICAL_DATE_RE.fullmatch(normalized or ""):
        raise InvalidSessionDate(f"Invalid date: {value!r} (expected YYYY-MM-DD)")
    try:
        return date.fromisoformat(normalized)
    except ValueError as e:
        # 2025-02-30 and friends
        raise InvalidSessionDate(f"Invalid date: {value!r} ({e})") from e


def week_window(day: Union[str, date]) -> Tuple[date, date]:
    """
    Sunday-based week containing ``day``: [start, end) with start a Sunday.

    A Sunday belongs to the week it starts.
    """
    day = parse_session_date(day)
    days_since_sunday = (day.weekday() + 1) % 7  # Monday=0 ... Sunday=6
    start = day - timedelta(days=days_since_sunday)
    return start, start + timedelta(days=7)

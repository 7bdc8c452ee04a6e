# -*- coding: utf-8 -*-
"""
Conversions between calendar date tokens, epoch milliseconds and display text.

Tokens come in two shapes: ``YYYYMMDD`` (a bare date, local midnight) and
``YYYYMMDDTHHMMSS`` with an optional trailing ``Z`` (UTC). Nothing in here
raises on bad input; unknown moments are reported as timestamp 0.
"""
from __future__ import annotations

import re
import time
import typing as t
from datetime import datetime, timezone


DISPLAY_DATE_FORMAT = "%Y-%m-%d"
DISPLAY_DATETIME_FORMAT = "%b %d, %Y %I:%M %p"

_HINT_CLOCK = re.compile(r"(\d{1,2})(?::(\d{2}))?")


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


def _to_datetime(token: str) -> t.Optional[datetime]:
    """Build a datetime from a token, aware (UTC) for ``Z`` tokens, naive otherwise."""
    if "T" in token:
        year = int(token[0:4])
        month = int(token[4:6])
        day = int(token[6:8])
        hour = int(token[9:11] or "0")
        minute = int(token[11:13] or "0")
        second = int(token[13:15] or "0")
        if token.endswith("Z"):
            return datetime(year, month, day, hour, minute, second, tzinfo=timezone.utc)
        return datetime(year, month, day, hour, minute, second)

    if len(token) >= 8:
        return datetime(int(token[0:4]), int(token[4:6]), int(token[6:8]))

    return None


def ical_to_timestamp(token: t.Optional[str]) -> int:
    """Convert a calendar date token to epoch milliseconds.

    :param token: ``YYYYMMDD`` or ``YYYYMMDDTHHMMSS[Z]``.
    :return: Milliseconds since the epoch, or 0 if the token can't be read.
    """
    if not token:
        return 0
    try:
        dt = _to_datetime(token.strip())
        if dt is None:
            return 0
        # Naive datetimes are interpreted in local time by .timestamp()
        return int(dt.timestamp() * 1000)
    except (ValueError, OverflowError, OSError):
        return 0


def format_ical_datetime(token: t.Optional[str]) -> t.Optional[str]:
    """Formats a calendar token for display.

    Bare dates become ``YYYY-MM-DD``; date-times become e.g. ``May 10, 2024 11:59 PM``
    in local time. If parsing fails, returns the original token.

    :param token: Calendar date token.
    :return: Display string, or None for a missing token.
    """
    if not token:
        return None
    token = token.strip()
    try:
        dt = _to_datetime(token)
        if dt is None:
            return token
        if "T" not in token:
            return dt.strftime(DISPLAY_DATE_FORMAT)
        if dt.tzinfo is not None:
            dt = dt.astimezone()
        return dt.strftime(DISPLAY_DATETIME_FORMAT)
    except (ValueError, OverflowError, OSError):
        return token


def parse_time_hint(hint: t.Optional[str]) -> t.Optional[tuple[int, int]]:
    """Parse an inline clock time such as ``8:55 a.m.`` or ``11PM`` into 24h (hour, minute).

    :param hint: Time text found in a title.
    :return: (hour, minute) or None if no clock digits are present.
    """
    if not hint:
        return None
    normalized = re.sub(r"[\s.]", "", hint.lower())
    match = _HINT_CLOCK.match(normalized)
    if not match:
        return None

    hour = int(match.group(1))
    minute = int(match.group(2)) if match.group(2) else 0
    is_pm = normalized.endswith("pm")
    is_am = normalized.endswith("am")
    if minute > 59 or hour > (12 if is_pm or is_am else 23):
        return None

    if is_pm and hour != 12:
        hour += 12
    elif is_am and hour == 12:
        hour = 0
    return hour, minute


def date_portion(token: t.Optional[str]) -> t.Optional[str]:
    """First eight digits of a token (``YYYYMMDD``), or None if there aren't eight."""
    if not token:
        return None
    digits = re.sub(r"\D", "", token)[:8]
    return digits if len(digits) == 8 else None


def combine_date_and_time(date_str: str, hour: int, minute: int) -> str:
    """Build a floating local date-time token from ``YYYYMMDD`` and a clock time."""
    return f"{date_str}T{hour:02d}{minute:02d}00"

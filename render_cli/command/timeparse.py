"""Relative (``15m``, ``2h``, ``1d``) and RFC 3339 time arguments."""

from __future__ import annotations

import re
from datetime import datetime, timedelta

_RELATIVE = re.compile(r"^(\d+)([smhd])$")

_UNITS = {
    "s": timedelta(seconds=1),
    "m": timedelta(minutes=1),
    "h": timedelta(hours=1),
    "d": timedelta(days=1),
}


def _parse_relative(now: datetime, text: str) -> datetime | None:
    match = _RELATIVE.match(text)
    if not match:
        return None
    return now - _UNITS[match.group(2)] * int(match.group(1))


def parse_time(now: datetime, text: str | None) -> datetime | None:
    """Return the absolute time *text* refers to, or None if it is not a time."""
    if not text:
        return None
    relative = _parse_relative(now, text)
    if relative is not None:
        return relative
    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        return None
    # RFC 3339 requires an offset
    if parsed.tzinfo is None:
        return None
    return parsed


def to_rfc3339(value: datetime | None) -> str | None:
    if value is None:
        return None
    return value.isoformat().replace("+00:00", "Z")

"""Datetime parsing: upstream RFC 3339 input -> strict UTC output."""

from __future__ import annotations

import re
from datetime import datetime, timezone

import pendulum

# Full date, full time, optional fraction, then ``Z`` or a numeric offset with
# or without a colon. Anything else (date-only, bare times, ISO week dates) is
# rejected before pendulum sees it.
_RFC3339_RE = re.compile(
    r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}(?:\.\d+)?(?:Z|[+-](?:[01]\d|2[0-3]):?[0-5]\d)$"
)
# Syncthing emits nanosecond fractions; Python datetimes stop at microseconds.
_EXCESS_FRACTION_RE = re.compile(r"(\.\d{6})\d+")
# ``+0700`` -> ``+07:00``
_COMPACT_OFFSET_RE = re.compile(r"([+-]\d{2})(\d{2})$")


def parse_upstream_time(value: str | None) -> datetime | None:
    """Parse a Syncthing timestamp into an aware UTC datetime.

    Accepts:
    - 2026-02-05T20:10:00.123456789+01:00 (RFC3339, nanoseconds)
    - 2026-02-05T20:10:00Z (RFC3339, seconds)
    - 2026-02-05T20:10:00.5+0100 (fraction, offset without colon)

    Blank, partial, out-of-range and otherwise unparseable values return None.
    """
    if value is None:
        return None
    text = value.strip()
    if not _RFC3339_RE.match(text):
        return None

    text = _EXCESS_FRACTION_RE.sub(r"\1", text)
    text = _COMPACT_OFFSET_RE.sub(r"\1:\2", text)

    try:
        parsed = pendulum.parse(text, strict=True)
        if not isinstance(parsed, pendulum.DateTime):
            return None
        utc = parsed.in_timezone("UTC")
        return datetime(
            utc.year,
            utc.month,
            utc.day,
            utc.hour,
            utc.minute,
            utc.second,
            utc.microsecond,
            tzinfo=timezone.utc,
        )
    except (ValueError, OverflowError):
        return None


def now_utc() -> datetime:
    """Return the current UTC datetime."""
    return datetime.now(timezone.utc)

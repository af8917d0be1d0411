"""
Time helpers for epoch-millisecond timestamps.

All history timestamps are integer epoch milliseconds (UTC). Rolling windows
and cooldowns are expressed in whole days of ``DAY_MS`` each; no calendar or
DST arithmetic is involved.
"""

from __future__ import annotations

import math
import time
from datetime import datetime, timezone
from typing import Any, Optional

DAY_MS = 24 * 60 * 60 * 1000

# Range representable as a UTC datetime (years 1 to 9999).
MIN_TS_MS = int(datetime(1, 1, 1, tzinfo=timezone.utc).timestamp() * 1000)
MAX_TS_MS = int(datetime(9999, 12, 31, 23, 59, 59, tzinfo=timezone.utc).timestamp() * 1000)


def now_ms() -> int:
    """Return the current time as integer epoch milliseconds."""
    return int(time.time() * 1000)


def resolve_now(now: Optional[int]) -> int:
    """Return ``now`` if given, else the current time."""
    return now_ms() if now is None else now


def window_cutoff_ms(days: int, now: Optional[int] = None) -> int:
    """Return the inclusive lower bound of a trailing ``days`` window."""
    return resolve_now(now) - days * DAY_MS


def parse_timestamp_ms(value: Any) -> Optional[int]:
    """Parse a stored or imported timestamp into epoch milliseconds.

    Accepts:
      - finite ``int`` / ``float`` values (booleans are rejected);
      - numeric strings, e.g. ``"1718000000000"``;
      - ISO-8601 date or datetime strings; naive values are taken as UTC.

    Values outside years 1 to 9999 are not usable.

    Returns:
        Epoch milliseconds, or ``None`` if ``value`` is not a usable timestamp.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return _in_range(value)
    if not isinstance(value, str):
        return None

    text = value.strip()
    if not text:
        return None

    try:
        number = float(text)
    except ValueError:
        pass
    else:
        return _in_range(number)

    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return _in_range(parsed.timestamp() * 1000)


def _in_range(value: int | float) -> Optional[int]:
    if isinstance(value, float) and not math.isfinite(value):
        return None
    if not MIN_TS_MS <= value <= MAX_TS_MS:
        return None
    return int(value)


def format_ts(ts: int) -> str:
    """Render epoch milliseconds as ``YYYY-MM-DD HH:MM`` (UTC).

    Values the platform cannot convert are rendered as the raw number.
    """
    try:
        return datetime.fromtimestamp(ts / 1000, tz=timezone.utc).strftime("%Y-%m-%d %H:%M")
    except (ValueError, OverflowError, OSError):
        return str(ts)


def utcnow() -> datetime:
    """Return the current UTC datetime with timezone info."""
    return datetime.now(tz=timezone.utc)

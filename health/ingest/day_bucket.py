"""Timestamp parsing and calendar-day resolution for raw samples.

A sample's day comes from the first date-bearing field present, in order:
explicit ``date``, then the end timestamp, then the start timestamp.
Unparseable values resolve to None and the caller skips the sample.
"""

import math
import re
from datetime import UTC, date, datetime
from typing import Any

_DAY_PREFIX = re.compile(r"^\d{4}-\d{2}-\d{2}")

DATE_KEYS = ("date",)
END_KEYS = ("end", "endDate")
START_KEYS = ("start", "startDate")

# Export formats seen in the wild besides strict ISO 8601
_FALLBACK_FORMATS = (
    "%Y-%m-%d %H:%M:%S %z",  # Health Auto Export: 2024-03-14 23:05:00 -0500
    "%Y-%m-%d %H:%M %z",
    "%Y/%m/%d %H:%M:%S",
)


def first_present(sample: dict[str, Any], keys: tuple[str, ...]) -> Any:
    for key in keys:
        value = sample.get(key)
        if value is not None and value != "":
            return value
    return None


def parse_timestamp(value: Any) -> datetime | None:
    """Parse a vendor timestamp into an aware UTC datetime.

    Accepts ISO 8601 strings (naive values are read as UTC), the Health Auto
    Export ``YYYY-MM-DD HH:MM:SS ±HHMM`` format and Unix epoch seconds.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        if not math.isfinite(value):
            return None
        try:
            return datetime.fromtimestamp(value, tz=UTC)
        except (OverflowError, OSError, ValueError):
            return None
    if not isinstance(value, str):
        return None

    raw = value.strip()
    parsed: datetime | None = None
    try:
        parsed = datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except ValueError:
        for fmt in _FALLBACK_FORMATS:
            try:
                parsed = datetime.strptime(raw, fmt)
                break
            except ValueError:
                continue
    if parsed is None:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)


def resolve_day(value: Any) -> date | None:
    """Resolve one date-bearing value to a calendar date.

    A leading ``YYYY-MM-DD`` is taken verbatim (the vendor's local day);
    anything else is parsed as a full timestamp and rendered as its UTC date.
    """
    if isinstance(value, str) and _DAY_PREFIX.match(value):
        try:
            return date.fromisoformat(value[:10])
        except ValueError:
            return None
    parsed = parse_timestamp(value)
    return parsed.date() if parsed else None


def sample_day(sample: dict[str, Any]) -> date | None:
    """Pick the sample's day using date > end > start precedence."""
    for keys in (DATE_KEYS, END_KEYS, START_KEYS):
        value = first_present(sample, keys)
        if value is not None:
            return resolve_day(value)
    return None

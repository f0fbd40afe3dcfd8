"""
Wire-format parsing helpers.

Every helper here distinguishes "absent" (None / empty string -> returns
None) from "present but malformed" (raises `ParseError`). Callers decide
whether an absent value is acceptable; nothing here defaults a missing
timestamp to "now".
"""

import re
from datetime import datetime, timedelta, timezone
from typing import Any, Iterable, Optional

from errors import ParseError

# RFC 3339 profile: date 'T' time, optional fraction, 'Z' or numeric offset.
_RFC3339 = re.compile(
    r"^(\d{4})-(\d{2})-(\d{2})[Tt](\d{2}):(\d{2}):(\d{2})(?:\.(\d+))?"
    r"(?:([Zz])|([+-])(\d{2}):(\d{2}))$",
    re.ASCII,
)

_INTEGER = re.compile(r"^[+-]?\d+$", re.ASCII)

# ids are stored in BIGINT columns
MAX_ID = 2**63 - 1


def _is_absent(raw: Any) -> bool:
    return raw is None or (isinstance(raw, str) and raw.strip() == "")


def parse_timestamp(raw: Any, field: str = "timestamp") -> Optional[datetime]:
    """Parse an RFC 3339 timestamp into an aware UTC datetime.

    Fractional seconds are optional; digits past microseconds are dropped.
    """

    if _is_absent(raw):
        return None
    if not isinstance(raw, str):
        raise ParseError(field, f"{field} must be an RFC 3339 timestamp string")

    m = _RFC3339.match(raw.strip())
    if m is None:
        raise ParseError(
            field, f"{field} must be an RFC 3339 timestamp (e.g. 2026-02-25T10:00:00Z)"
        )

    year, month, day, hour, minute, second = (int(g) for g in m.group(1, 2, 3, 4, 5, 6))
    fraction = m.group(7) or ""
    micros = int((fraction + "000000")[:6])

    if m.group(8):
        tz = timezone.utc
    else:
        off_h, off_m = int(m.group(10)), int(m.group(11))
        if off_h > 23 or off_m > 59:
            raise ParseError(field, f"{field} has an invalid UTC offset")
        offset = timedelta(hours=off_h, minutes=off_m)
        tz = timezone(-offset if m.group(9) == "-" else offset)

    try:
        value = datetime(year, month, day, hour, minute, second, micros, tzinfo=tz)
        return value.astimezone(timezone.utc)
    except (ValueError, OverflowError) as e:
        raise ParseError(field, f"{field} is not a valid date/time: {e}") from e


def parse_enum(raw: Any, allowed: Iterable[str], field: str = "value") -> Optional[str]:
    """Case-insensitive match against `allowed`; returns the canonical value."""

    if _is_absent(raw):
        return None
    choices = sorted(allowed)
    if isinstance(raw, str):
        wanted = raw.strip().lower()
        for choice in choices:
            if choice.lower() == wanted:
                return choice
    raise ParseError(field, f"{field} must be one of: {', '.join(choices)}")


def parse_integer(raw: Any, field: str = "value") -> Optional[int]:
    """Parse a whole number. Non-integral values are rejected, not rounded."""

    if _is_absent(raw):
        return None
    # bool is an int subclass; true/false is never a count
    if isinstance(raw, bool):
        raise ParseError(field, f"{field} must be a whole number")
    if isinstance(raw, int):
        return raw
    if isinstance(raw, float):
        if raw.is_integer():
            return int(raw)
        raise ParseError(field, f"{field} must be a whole number")
    if isinstance(raw, str) and _INTEGER.match(raw.strip()):
        return int(raw.strip())
    raise ParseError(field, f"{field} must be a whole number")


def parse_text(raw: Any, field: str = "value") -> Optional[str]:
    if _is_absent(raw):
        return None
    if not isinstance(raw, str):
        raise ParseError(field, f"{field} must be a string")
    return raw.strip()


def parse_baby_id(raw: Any) -> int:
    """Baby identifiers are positive integers; anything else is rejected."""

    try:
        value = parse_integer(raw, "baby_id")
    except ParseError:
        raise ParseError("baby_id", "invalid baby id") from None
    if value is None or not 0 < value <= MAX_ID:
        raise ParseError("baby_id", "invalid baby id")
    return value

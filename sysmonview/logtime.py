"""Time parsing and range helpers for the log viewer.

Times are handled as milliseconds since the epoch.  User-supplied times and
event ``SystemTime`` attributes are interpreted in local time, as the
viewer always has; display of a range uses UTC.
"""

from __future__ import annotations

import datetime
import re
import time

__all__ = [
    "time_str_to_ms",
    "system_time_str_to_ms",
    "parse_time_range",
    "in_range",
    "format_ms",
]

Bounds = tuple["int | None", "int | None"]

_DATE_TIME = re.compile(
    r"\s*([+-]?\d{1,4})-\s*(\d{1,2})-\s*(\d{1,2})\s*(?:\s+|(?=\d))"
    r"(\d{1,2})\s*:\s*(\d{1,2})"
)
_DATE_T_TIME = re.compile(
    r"\s*([+-]?\d{1,4})-\s*(\d{1,2})-\s*(\d{1,2})T"
    r"\s*(\d{1,2})\s*:\s*(\d{1,2})\s*:\s*(\d{1,2})"
)
_SECONDS = re.compile(r"\s*(\d{1,2})")
_DIGITS = re.compile(r"\s*\+?(\d*)")


def _check_fields(month: int, day: int, hour: int, minute: int) -> None:
    if not (1 <= month <= 12 and 1 <= day <= 31 and 0 <= hour <= 23 and 0 <= minute <= 59):
        raise ValueError("date or time field out of range")


def _local_ms(year: int, month: int, day: int, hour: int, minute: int,
              second: int, ms: int) -> int:
    stamp = time.mktime((year, month, day, hour, minute, second, 0, 0, 0))
    return int(stamp) * 1000 + ms


def _leading_number(text: str) -> int:
    match = _DIGITS.match(text)
    digits = match.group(1) if match else ""
    return int(digits) if digits else 0


def time_str_to_ms(text: str) -> int:
    """Parse ``YYYY-MM-DD HH:MM[:SS[.nnn]]`` (local time) into milliseconds.

    Digits after the dot are taken as a millisecond count.  Raises
    ValueError if the date and hours/minutes cannot be read.
    """
    match = _DATE_TIME.match(text)
    if match is None:
        raise ValueError(f"cannot parse time: {text!r}")
    year, month, day, hour, minute = (int(g) for g in match.groups())
    _check_fields(month, day, hour, minute)
    rest = text[match.end():]
    if not rest.startswith(":"):
        return _local_ms(year, month, day, hour, minute, 0, 0)

    sec_match = _SECONDS.match(rest, 1)
    if sec_match is None or int(sec_match.group(1)) > 61:
        return _local_ms(year, month, day, hour, minute, 0, 0)
    second = int(sec_match.group(1))
    rest = rest[sec_match.end():]
    if not rest.startswith("."):
        return _local_ms(year, month, day, hour, minute, second, 0)
    return _local_ms(year, month, day, hour, minute, second, _leading_number(rest[1:]))


def system_time_str_to_ms(text: str) -> int:
    """Parse an event ``SystemTime`` (``YYYY-MM-DDTHH:MM:SS.nnnnnnnnnZ``).

    The fraction is read as nanoseconds and reduced to milliseconds.
    Raises ValueError if the text does not have that shape.
    """
    match = _DATE_T_TIME.match(text)
    if match is None:
        raise ValueError(f"cannot parse system time: {text!r}")
    year, month, day, hour, minute, second = (int(g) for g in match.groups())
    _check_fields(month, day, hour, minute)
    if second > 61:
        raise ValueError("seconds out of range")
    rest = text[match.end():]
    if not rest.startswith("."):
        raise ValueError(f"system time lacks a fraction: {text!r}")
    nanos = _leading_number(rest[1:])
    return _local_ms(year, month, day, hour, minute, second, nanos // (1000 * 1000))


def _optional_time(token: str) -> int | None:
    try:
        return time_str_to_ms(token)
    except (ValueError, OverflowError):
        return None


def parse_time_range(text: str) -> tuple[int | None, int | None]:
    """Parse ``start,end`` into a pair of millisecond bounds.

    Either side may be missing (a leading comma means no start).  A side
    that is missing or cannot be parsed is None.
    """
    tokens = [t for t in text.split(",") if t]
    if not tokens:
        return (None, None)
    if text.startswith(","):
        return (None, _optional_time(tokens[0]))
    start = _optional_time(tokens[0])
    end = _optional_time(tokens[1]) if len(tokens) > 1 else None
    return (start, end)


def in_range(bounds: tuple[int | None, int | None], value: int) -> bool:
    """True if ``value`` lies within ``bounds``; None is unbounded."""
    low, high = bounds
    if low is not None and low > value:
        return False
    if high is not None and high < value:
        return False
    return True


def format_ms(ms: int | None) -> str:
    """Render milliseconds since the epoch as ``YYYY-MM-DD HH:MM:SS.mmm`` UTC.

    None, meaning an open bound, renders as ``-1``.
    """
    if ms is None:
        return "-1"
    seconds, millis = divmod(ms, 1000)
    moment = datetime.datetime.fromtimestamp(seconds, tz=datetime.timezone.utc)
    return f"{moment.strftime('%Y-%m-%d %H:%M:%S')}.{millis:03d}"
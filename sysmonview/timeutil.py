"""Timestamps in 100-nanosecond ticks since the epoch, and GUID text.

A *tick* count is the number of 100 ns intervals since 1970-01-01 UTC.
Arithmetic on ticks truncates toward zero, and the millisecond and
nanosecond parts are reported as unsigned 32-bit values.
"""

from __future__ import annotations

import time
from dataclasses import dataclass

__all__ = [
    "Guid",
    "system_time_ticks",
    "ticks_to_seconds",
    "ticks_milliseconds",
    "ticks_nanoseconds",
    "filetime_to_ticks",
    "ticks_to_system_time_string",
    "guid_to_string",
]

TICKS_PER_SECOND = 1000 * 1000 * 10
TICKS_PER_MILLISECOND = 1000 * 10
_UINT32 = 0xFFFFFFFF
_UINT64 = 0xFFFFFFFFFFFFFFFF
_INT32_MIN = -(2 ** 31)
_INT32_MAX = 2 ** 31 - 1


def _trunc_div(a: int, b: int) -> int:
    quotient = abs(a) // abs(b)
    return quotient if (a >= 0) == (b > 0) else -quotient


def _trunc_mod(a: int, b: int) -> int:
    return a - b * _trunc_div(a, b)


@dataclass(frozen=True)
class Guid:
    """A GUID in its classic four-field layout."""

    data1: int
    data2: int
    data3: int
    data4: bytes

    def __post_init__(self) -> None:
        if not 0 <= self.data1 <= _UINT32:
            raise ValueError("data1 must fit in 32 bits")
        if not 0 <= self.data2 <= 0xFFFF:
            raise ValueError("data2 must fit in 16 bits")
        if not 0 <= self.data3 <= 0xFFFF:
            raise ValueError("data3 must fit in 16 bits")
        data4 = bytes(self.data4)
        if len(data4) != 8:
            raise ValueError("data4 must be exactly 8 bytes")
        object.__setattr__(self, "data4", data4)

    def __str__(self) -> str:
        return guid_to_string(self)


def system_time_ticks() -> int:
    """Current time in ticks, at microsecond resolution."""
    micros = time.time_ns() // 1000
    return micros * 10


def ticks_to_seconds(ticks: int) -> int:
    """Whole seconds since the epoch, truncated toward zero."""
    return _trunc_div(ticks, TICKS_PER_SECOND)


def ticks_milliseconds(ticks: int) -> int:
    """The millisecond component (0-999 for non-negative ticks)."""
    return _trunc_mod(_trunc_div(ticks, TICKS_PER_MILLISECOND), 1000) & _UINT32


def ticks_nanoseconds(ticks: int) -> int:
    """The sub-second component expressed in nanoseconds."""
    return (_trunc_mod(ticks, TICKS_PER_SECOND) * 100) & _UINT32


def filetime_to_ticks(seconds: int, nanoseconds: int) -> int:
    """Convert a seconds/nanoseconds file timestamp to ticks."""
    return seconds * TICKS_PER_SECOND + _trunc_div(nanoseconds, 100)


def _civil_from_days(days: int) -> tuple[int, int, int]:
    """Proleptic Gregorian (year, month, day) for days since 1970-01-01."""
    z = days + 719468
    era = z // 146097
    doe = z - era * 146097
    yoe = (doe - doe // 1460 + doe // 36524 - doe // 146096) // 365
    year = yoe + era * 400
    doy = doe - (365 * yoe + yoe // 4 - yoe // 100)
    mp = (5 * doy + 2) // 153
    day = doy - (153 * mp + 2) // 5 + 1
    month = mp + 3 if mp < 10 else mp - 9
    if month <= 2:
        year += 1
    return year, month, day


def ticks_to_system_time_string(ticks: int) -> str:
    """Render ticks as ``YYYY-MM-DDTHH:MM:SS.nnnnnnnnnZ`` in UTC.

    A time whose year cannot be represented gives
    ``Incorrect filetime: 0x<hex>`` instead.
    """
    seconds = ticks_to_seconds(ticks)
    days, rem = divmod(seconds, 86400)
    hour, rem = divmod(rem, 3600)
    minute, second = divmod(rem, 60)
    year, month, day = _civil_from_days(days)
    if not _INT32_MIN <= year - 1900 <= _INT32_MAX:
        return f"Incorrect filetime: 0x{ticks & _UINT64:x}"
    return (
        f"{year & _UINT32:04d}-{month:02d}-{day:02d}"
        f"T{hour:02d}:{minute:02d}:{second:02d}"
        f".{ticks_nanoseconds(ticks):09d}Z"
    )


def guid_to_string(guid: Guid) -> str:
    """Braced, hyphenated lower-case text of a GUID."""
    d4 = guid.data4
    return (
        f"{{{guid.data1:08x}-{guid.data2:04x}-{guid.data3:04x}-"
        f"{d4[0]:02x}{d4[1]:02x}-{d4.hex()[4:]}}}"
    )
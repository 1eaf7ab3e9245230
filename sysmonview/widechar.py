"""UTF-8/UTF-16 conversion and string routines over 16-bit code units.

Wide strings are handled as sequences of UTF-16 code units (ints).  A
Python ``str`` is accepted wherever a wide string is expected and is
turned into its UTF-16 code units first.  As with null-terminated
strings, a sequence ends at its first zero unit.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

__all__ = [
    "utf8_to_utf16",
    "utf16_to_utf8",
    "wide_compare",
    "wide_compare_n",
    "wide_casecompare",
    "wide_casecompare_n",
    "wide_find",
    "wide_rfind",
    "wide_find_sub",
    "wide_span",
    "wide_upper",
    "wide_lower",
]

WideLike = str | Sequence[int]


def _units(s: WideLike) -> list[int]:
    """Return the code units of ``s`` up to (not including) the first zero."""
    if s is None:
        raise TypeError("wide string must not be None")
    if isinstance(s, str):
        raw: Iterable[int] = _str_units(s)
    else:
        raw = s
    units: list[int] = []
    for unit in raw:
        if unit == 0:
            break
        units.append(unit & 0xFFFF)
    return units


def _str_units(s: str) -> Iterable[int]:
    for ch in s:
        code = ord(ch)
        if code > 0xFFFF:
            code -= 0x10000
            yield 0xD800 | (code >> 10)
            yield 0xDC00 | (code & 0x3FF)
        else:
            yield code


def _unit(c: int | str) -> int:
    if isinstance(c, str):
        if len(c) != 1:
            raise ValueError("expected a single character")
        return ord(c)
    return c


def _capacity(limit: int | None) -> int | None:
    if limit is None or limit == 0:
        return None
    if limit < 0:
        raise ValueError("limit must not be negative")
    return limit


def utf8_to_utf16(src: bytes | str, limit: int | None = None) -> list[int]:
    """Decode null-terminated UTF-8 into UTF-16 code units.

    ``limit`` is the size of the target buffer in code units, counting the
    terminator; output is silently cut short when it fills.  ``None`` or 0
    means no limit.  Raises ValueError on a malformed sequence or when a
    surrogate pair would not fit.
    """
    if src is None:
        raise TypeError("source must not be None")
    data = src.encode("utf-8") if isinstance(src, str) else bytes(src)
    end = data.find(b"\x00")
    if end >= 0:
        data = data[:end]
    cap = _capacity(limit)
    size = len(data)

    def at(k: int) -> int:
        return data[k] if k < size else 0

    out: list[int] = []
    pos = 0
    while pos < size and (cap is None or len(out) < cap - 1):
        b0 = data[pos]
        if b0 & 0x80:
            b1, b2, b3 = at(pos + 1), at(pos + 2), at(pos + 3)
            if (b0 & 0xE0) == 0xC0 and (b1 & 0xC0) == 0x80:
                code = (b1 & 0x3F) | ((b0 & 0x1F) << 6)
                pos += 2
            elif (b0 & 0xF0) == 0xE0 and (b1 & 0xC0) == 0x80 and (b2 & 0xC0) == 0x80:
                code = (b2 & 0x3F) | ((b1 & 0x3F) << 6) | ((b0 & 0x0F) << 12)
                pos += 3
            elif ((b0 & 0xF8) == 0xF0 and (b1 & 0xC0) == 0x80
                  and (b2 & 0xC0) == 0x80 and (b3 & 0xC0) == 0x80):
                code = ((b3 & 0x3F) | ((b2 & 0x3F) << 6)
                        | ((b1 & 0x3F) << 12) | ((b0 & 0x07) << 18))
                pos += 4
            else:
                raise ValueError(f"invalid UTF-8 sequence at byte {pos}")
        else:
            code = b0
            pos += 1

        if code > 0xFFFF:
            if cap is not None and len(out) == cap - 2:
                raise ValueError("no room for surrogate pair")
            code -= 0x10000
            out.append(0xD800 | ((code & 0xFFC00) >> 10))
            out.append(0xDC00 | (code & 0x3FF))
        else:
            out.append(code)
    return out


def utf16_to_utf8(src: WideLike, limit: int | None = None) -> bytes:
    """Encode null-terminated UTF-16 code units as UTF-8.

    ``limit`` is the size of the target buffer in bytes, counting the
    terminator; output is silently cut short when it fills, but a
    multi-byte character that does not fit raises ValueError.  ``None`` or 0
    means no limit.  An unpaired high surrogate raises ValueError.
    """
    units = _units(src)
    cap = _capacity(limit)
    out = bytearray()
    pos = 0
    while pos < len(units) and (cap is None or len(out) < cap - 1):
        first = units[pos]
        if (first & 0xFC00) == 0xD800:
            second = units[pos + 1] if pos + 1 < len(units) else 0
            if (second & 0xFC00) != 0xDC00:
                raise ValueError(f"unpaired surrogate at unit {pos}")
            code = ((second & 0x3FF) | ((first & 0x3FF) << 10)) + 0x10000
            pos += 2
        else:
            code = first
            pos += 1

        if code > 0xFFFF:
            needed = 4
            encoded = (
                0xF0 | ((code & 0x001C0000) >> 18),
                0x80 | ((code & 0x0003F000) >> 12),
                0x80 | ((code & 0x00000FC0) >> 6),
                0x80 | (code & 0x0000003F),
            )
        elif code > 0x7FF:
            needed = 3
            encoded = (
                0xE0 | ((code & 0xF000) >> 12),
                0x80 | ((code & 0x0FC0) >> 6),
                0x80 | (code & 0x003F),
            )
        elif code > 0x7F:
            needed = 2
            encoded = (0xC0 | ((code & 0x7C0) >> 6), 0x80 | (code & 0x03F))
        else:
            out.append(code)
            continue
        if cap is not None and not len(out) < cap - needed:
            raise ValueError("no room for multi-byte character")
        out.extend(encoded)
    return bytes(out)


def _compare(a: list[int], b: list[int], n: int | None, fold: bool) -> int:
    length = max(len(a), len(b))
    if n is not None:
        length = min(length, max(n, 0))
    for k in range(length):
        c1 = a[k] if k < len(a) else 0
        c2 = b[k] if k < len(b) else 0
        if fold:
            c1, c2 = wide_upper(c1), wide_upper(c2)
        if c1 < c2:
            return -1
        if c1 > c2:
            return 1
    return 0


def wide_compare(s1: WideLike, s2: WideLike) -> int:
    """Compare two wide strings; return -1, 0 or 1."""
    return _compare(_units(s1), _units(s2), None, False)


def wide_compare_n(s1: WideLike, s2: WideLike, n: int) -> int:
    """Compare at most ``n`` units of two wide strings; return -1, 0 or 1."""
    return _compare(_units(s1), _units(s2), n, False)


def wide_casecompare(s1: WideLike, s2: WideLike) -> int:
    """Compare two wide strings ignoring ASCII case; return -1, 0 or 1."""
    return _compare(_units(s1), _units(s2), None, True)


def wide_casecompare_n(s1: WideLike, s2: WideLike, n: int) -> int:
    """Compare at most ``n`` units ignoring ASCII case; return -1, 0 or 1."""
    return _compare(_units(s1), _units(s2), n, True)


def wide_find(s: WideLike, c: int | str) -> int | None:
    """Index of the first ``c`` in ``s``; a zero ``c`` finds the terminator."""
    units = _units(s)
    target = _unit(c)
    if target == 0:
        return len(units)
    try:
        return units.index(target)
    except ValueError:
        return None


def wide_rfind(s: WideLike, c: int | str) -> int | None:
    """Index of the last ``c`` in ``s``; a zero ``c`` finds the terminator."""
    units = _units(s)
    target = _unit(c)
    if target == 0:
        return len(units)
    for index in reversed(range(len(units))):
        if units[index] == target:
            return index
    return None


def wide_find_sub(haystack: WideLike, needle: WideLike) -> int | None:
    """Index of the first occurrence of ``needle``; None if absent or empty."""
    hay = _units(haystack)
    pin = _units(needle)
    if not hay or not pin:
        return None
    width = len(pin)
    for start in range(len(hay) - width + 1):
        if hay[start:start + width] == pin:
            return start
    return None


def wide_span(s: WideLike, accept: WideLike) -> int:
    """Length of the leading run of ``s`` made only of units in ``accept``."""
    units = _units(s)
    allowed = set(_units(accept))
    count = 0
    for unit in units:
        if unit not in allowed:
            break
        count += 1
    return count


def wide_upper(c: int | str) -> int | str:
    """Upper-case an ASCII letter; other units are returned unchanged."""
    code = _unit(c)
    if ord("a") <= code <= ord("z"):
        code = code - ord("a") + ord("A")
    return chr(code) if isinstance(c, str) else code


def wide_lower(c: int | str) -> int | str:
    """Lower-case an ASCII letter; other units are returned unchanged."""
    code = _unit(c)
    if ord("A") <= code <= ord("Z"):
        code = code - ord("A") + ord("a")
    return chr(code) if isinstance(c, str) else code
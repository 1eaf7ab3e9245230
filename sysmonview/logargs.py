"""Command-line options of the log viewer."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field

from .logtime import format_ms, parse_time_range

__all__ = [
    "ViewOptions",
    "parse_event_ids",
    "parse_event_fields",
    "parse_record_range",
    "parse_filter",
    "parse_args",
    "usage_text",
    "describe_options",
]

_ULONG_MAX = 0xFFFFFFFFFFFFFFFF
_UINT32 = 0xFFFFFFFF
_SPACE = " \t\n\r\f\v"
_OPTIONS_WITH_ARG = set("ertfE")
_OPTIONS_FLAG = set("h?XT")

Bounds = tuple["int | None", "int | None"]


@dataclass
class ViewOptions:
    """What to show: selected events, ranges, filters and field lists.

    ``action`` is None for normal viewing, ``"help"`` to show usage, or
    ``"describe"`` to show the options parsed up to that point.
    """

    event_ids: set[int] = field(default_factory=set)
    event_fields: dict[int, set[str]] = field(default_factory=dict)
    record_range: tuple[int | None, int | None] = (None, None)
    time_range: tuple[int | None, int | None] = (None, None)
    filters: dict[str, set[str]] = field(default_factory=dict)
    extra_cr: bool = False
    action: str | None = None


def _strtoul(text: str, base: int = 0) -> int:
    s = text.lstrip(_SPACE)
    negative = False
    if s and s[0] in "+-":
        negative = s[0] == "-"
        s = s[1:]
    if base in (0, 16) and s[:2].lower() == "0x" and s[2:3] and s[2] in "0123456789abcdefABCDEF":
        s = s[2:]
        base = 16
    elif base == 0:
        base = 8 if s.startswith("0") else 10
    value = 0
    for ch in s:
        try:
            digit = int(ch, base)
        except ValueError:
            break
        value = value * base + digit
    if value > _ULONG_MAX:
        return _ULONG_MAX
    return (-value) & _ULONG_MAX if negative else value


class _Tokens:
    """Successive tokens split on delimiters that may change per call."""

    def __init__(self, text: str) -> None:
        self._text = text
        self._pos = 0

    def next(self, delims: str) -> str | None:
        text, pos = self._text, self._pos
        while pos < len(text) and text[pos] in delims:
            pos += 1
        if pos >= len(text):
            self._pos = pos
            return None
        end = pos
        while end < len(text) and text[end] not in delims:
            end += 1
        self._pos = min(end + 1, len(text))
        return text[pos:end]

    def rest(self, delims: str) -> list[str]:
        tokens = []
        while (token := self.next(delims)) is not None:
            tokens.append(token)
        return tokens


def _bound(value: int) -> int | None:
    return None if value == _ULONG_MAX else value


def parse_event_ids(text: str) -> set[int]:
    """Comma-separated event ids (decimal, 0x hex or 0 octal) as a set."""
    return {_strtoul(token) & _UINT32 for token in _Tokens(text).rest(",")}


def parse_event_fields(text: str) -> tuple[int, set[str]]:
    """Parse ``<eventID>=<field>,<field>...`` into an id and its field names."""
    tokens = _Tokens(text)
    first = tokens.next("=")
    if first is None:
        return (0, set())
    return (_strtoul(first) & _UINT32, set(tokens.rest(",")))


def parse_record_range(text: str) -> tuple[int | None, int | None]:
    """Parse ``min,max`` record ids; a missing side is None."""
    tokens = _Tokens(text)
    first = tokens.next(",")
    if first is None:
        return (None, None)
    if text.startswith(","):
        return (None, _bound(_strtoul(first, 10)))
    second = tokens.next(",")
    return (
        _bound(_strtoul(first, 10)),
        _bound(_strtoul(second, 10)) if second is not None else None,
    )


def parse_filter(text: str) -> tuple[str, set[str]]:
    """Parse ``<field>=<value>,<value>...`` into a field name and allowed values."""
    tokens = _Tokens(text)
    name = tokens.next("=")
    if name is None:
        return ("", set())
    return (name, set(tokens.rest(",")))


def _merge_bounds(current: tuple[int | None, int | None],
                  new: tuple[int | None, int | None]) -> tuple[int | None, int | None]:
    return (
        new[0] if new[0] is not None else current[0],
        new[1] if new[1] is not None else current[1],
    )


def _apply(options: ViewOptions, opt: str, arg: str | None) -> None:
    if opt == "e":
        options.event_ids |= parse_event_ids(arg)
    elif opt == "r":
        options.record_range = _merge_bounds(options.record_range, parse_record_range(arg))
    elif opt == "t":
        options.time_range = _merge_bounds(options.time_range, parse_time_range(arg))
    elif opt == "f":
        name, values = parse_filter(arg)
        if name and values:
            options.filters.setdefault(name, set()).update(values)
    elif opt == "E":
        event_id, names = parse_event_fields(arg)
        options.event_fields.setdefault(event_id, set()).update(names)
    elif opt == "X":
        options.extra_cr = True
    elif opt == "T":
        options.action = "describe"
    else:
        options.action = "help"


def parse_args(argv: Sequence[str]) -> ViewOptions:
    """Parse the viewer's switches (without the program name).

    Parsing stops at the first switch that asks for help or a description,
    or at an unknown switch or a missing argument, which ask for help.
    Arguments that are not switches are ignored.
    """
    options = ViewOptions()
    args = list(argv)
    index = 0
    while index < len(args):
        arg = args[index]
        index += 1
        if arg == "--":
            break
        if not arg.startswith("-") or arg == "-":
            continue
        pos = 1
        while pos < len(arg):
            opt = arg[pos]
            pos += 1
            if opt in _OPTIONS_WITH_ARG:
                if pos < len(arg):
                    value = arg[pos:]
                elif index < len(args):
                    value = args[index]
                    index += 1
                else:
                    options.action = "help"
                    return options
                _apply(options, opt, value)
                break
            if opt not in _OPTIONS_FLAG:
                opt = "?"
            _apply(options, opt, None)
            if options.action is not None:
                return options
    return options


def usage_text() -> str:
    """The viewer's help text."""
    return (
        "sysmonview v1.0 - Converts Sysmon syslog XML to human readable form\n"
        "\n"
        "Usage:\n"
        "            sysmonview [<options>]\n"
        "  -e   Only display events with matching eventID. Specify comma-separated list\n"
        "       of eventIDs and/or multiple -e switches.\n"
        "  -r   Only display events within the specified range of recordIDs. Specify\n"
        "       min,max. If min is missing, start from the beginning; if end is missing,\n"
        "       continue to end.\n"
        "  -t   Only display events within the specified time stamps. Specify start,end.\n"
        "       Time format is YYYY-MM-DD HH:MM[:SS[.nnn]] where nnn is milliseconds.\n"
        "       If start is missing, start at beginning; if end is missing, continue to\n"
        "       the end.\n"
        "  -f   For events that have a particular field, only display events that match\n"
        "       the given value (case sensitive). e.g. '-f Image=/bin/touch'\n"
        "  -E   Only display the specified fields for the specified event. Specify\n"
        "       <eventID>=<comma-separated list of fields>. Can use multiple times.\n"
        "  -X   Print a blank link between events.\n"
        "  -h   Display this help.\n"
        "  -?   Display this help.\n"
        "\n"
        "Supply input data on standard input; writes to standard output. By default all\n"
        "events are displayed but switches can be used to only display certain events,\n"
        "and to only display certain fields within the events that are displayed.\n"
        "\n"
        "Wrap arguments in quotes (e.g. \"<argument>\") if argument contains spaces.\n"
        "\n"
        "Typical usage:\n"
        "  sudo tail -f /var/log/syslog | sysmonview\n"
        "\n"
    )


def _signed(value: int | None) -> int:
    if value is None:
        return -1
    return value - (1 << 64) if value >= (1 << 63) else value


def describe_options(options: ViewOptions) -> str:
    """Text listing the settings held by ``options``."""
    lines = ["Event Ids: " + "".join(f"{eid} " for eid in sorted(options.event_ids))]
    lines.append("Event Id Fields:")
    for event_id in sorted(options.event_fields):
        names = "".join(f"{name} " for name in sorted(options.event_fields[event_id]))
        lines.append(f"  {event_id} ({names})")
    lines.append("")
    low, high = options.record_range
    lines.append(f"Record Id range = {_signed(low)}, {_signed(high)}")
    start, end = options.time_range
    lines.append(f"Time range = {format_ms(start)} - {format_ms(end)}")
    lines.append("Filters:")
    for name in sorted(options.filters):
        lines.append(f"  {name}:")
        lines.extend(f"    {value}" for value in sorted(options.filters[name]))
    return "\n".join(lines) + "\n"
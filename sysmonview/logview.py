"""Viewer that turns syslog lines holding event XML into readable text."""

from __future__ import annotations

import re
import sys
import xml.etree.ElementTree as ET
from collections.abc import Iterable, Mapping, Sequence
from typing import TextIO

from .logargs import ViewOptions, describe_options, parse_args, usage_text
from .logtime import in_range, system_time_str_to_ms

__all__ = ["SYSMON_ID", "EVENT_TAG", "event_name", "render_line", "view", "main"]

SYSMON_ID = " sysmon"
EVENT_TAG = "<Event>"
_ULONG_MAX = 0xFFFFFFFFFFFFFFFF
_UINT32 = 0xFFFFFFFF
_NUMBER = re.compile(r"\s*([+-]?)(0[xX][0-9a-fA-F]+|0[0-7]*|[1-9]\d*)")


def _strtoul(text: str) -> int:
    match = _NUMBER.match(text)
    if match is None:
        return 0
    sign, digits = match.groups()
    if digits[:2].lower() == "0x":
        value = int(digits[2:], 16)
    elif digits.startswith("0"):
        value = int(digits, 8)
    else:
        value = int(digits)
    if value > _ULONG_MAX:
        return _ULONG_MAX
    return (-value) & _ULONG_MAX if sign == "-" else value


def _text(element: ET.Element | None) -> str | None:
    if element is None:
        return None
    return "".join(element.itertext())


def _bounded(bounds: tuple[int | None, int | None]) -> bool:
    return bounds[0] is not None or bounds[1] is not None


def event_name(event_id: int, event_names: Mapping[int, str] | None = None) -> str:
    """The name of an event id, or the id itself when no name is known."""
    if event_names is not None and event_id in event_names:
        return event_names[event_id]
    return str(event_id)


def render_line(line: str, options: ViewOptions,
                event_names: Mapping[int, str] | None = None) -> str | None:
    """Render one log line as text, or None if it is not shown.

    Lines without an event record, and events excluded by ``options``,
    give None.  Raises ValueError if the event XML is malformed.
    """
    start = line.find(SYSMON_ID)
    if start < 0:
        return None
    tag = line.find(EVENT_TAG, start + len(SYSMON_ID))
    if tag < 0:
        return None
    try:
        root = ET.fromstring(line[tag:])
    except ET.ParseError as exc:
        raise ValueError(f"malformed event XML: {exc}") from exc
    if root.tag != "Event":
        return None

    id_text = _text(root.find("System/EventID"))
    if id_text is None:
        return None
    event_id = _strtoul(id_text) & _UINT32
    if options.event_ids and event_id not in options.event_ids:
        return None

    record_text = _text(root.find("System/EventRecordID"))
    if record_text is None:
        return None
    if _bounded(options.record_range) and not in_range(
            options.record_range, _strtoul(record_text)):
        return None

    if _bounded(options.time_range):
        created = root.find("System/TimeCreated")
        stamp = created.get("SystemTime") if created is not None else None
        if stamp is None:
            return None
        try:
            when = system_time_str_to_ms(stamp)
        except (ValueError, OverflowError):
            when = _ULONG_MAX
        if not in_range(options.time_range, when):
            return None

    data = root.find("EventData")
    if data is None:
        return None
    items = [(d.get("Name", ""), "".join(d.itertext())) for d in data if d.tag == "Data"]

    for name, value in items:
        allowed = options.filters.get(name)
        if allowed is not None and value not in allowed:
            return None

    shown = options.event_fields.get(event_id)
    lines = [f"Event {event_name(event_id, event_names)}\n"]
    for name, value in items:
        if shown is not None and name not in shown:
            continue
        lines.append(f"\t{name}: {value if value else '--NULL--'}\n")
    if options.extra_cr:
        lines.append("\n")
    return "".join(lines)


def view(lines: Iterable[str], options: ViewOptions, out: TextIO | None = None,
         event_names: Mapping[int, str] | None = None) -> int:
    """Write the events among ``lines`` to ``out``; return how many were shown.

    Malformed event records are reported on standard error and skipped.
    """
    out = out if out is not None else sys.stdout
    shown = 0
    for line in lines:
        try:
            text = render_line(line, options, event_names)
        except ValueError as exc:
            print(exc, file=sys.stderr)
            continue
        if text is not None:
            out.write(text)
            shown += 1
    return shown


def main(argv: Sequence[str] | None = None) -> int:
    """Run the viewer over standard input."""
    options = parse_args(sys.argv[1:] if argv is None else argv)
    if options.action == "help":
        sys.stdout.write(usage_text())
        return 0
    if options.action == "describe":
        sys.stdout.write(describe_options(options))
        return 0
    view(sys.stdin, options, sys.stdout)
    return 0
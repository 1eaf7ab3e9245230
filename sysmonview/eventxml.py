"""Rendering of monitoring events as single-line XML records."""

from __future__ import annotations

import os
import socket
import threading
from collections.abc import Sequence
from dataclasses import dataclass, field

from .timeutil import Guid, system_time_ticks, ticks_to_system_time_string

__all__ = ["EventDescriptor", "EventType", "format_event"]

PROVIDER_NAME = "Linux-Sysmon"
CHANNEL = "Linux-Sysmon/Operational"

_TEXT_ESCAPES = {"&": "&amp;", "<": "&lt;", ">": "&gt;", '"': "&quot;", "\r": "&#13;"}
_ATTR_ESCAPES = {
    "&": "&amp;", "<": "&lt;", ">": "&gt;", '"': "&quot;",
    "\n": "&#10;", "\r": "&#13;", "\t": "&#9;",
}


@dataclass(frozen=True)
class EventDescriptor:
    """The identifying numbers of an event."""

    id: int
    version: int = 0
    level: int = 0
    task: int = 0
    opcode: int = 0
    keyword: int = 0


@dataclass(frozen=True)
class EventType:
    """An event's name, descriptor and ordered field names."""

    name: str
    descriptor: EventDescriptor
    field_names: tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        object.__setattr__(self, "field_names", tuple(self.field_names))


def _escape_text(text: str) -> str:
    return "".join(_TEXT_ESCAPES.get(ch, ch) for ch in text)


def _escape_attr(text: str) -> str:
    pieces = []
    for ch in text:
        if ch in _ATTR_ESCAPES:
            pieces.append(_ATTR_ESCAPES[ch])
        elif ord(ch) >= 0x80:
            pieces.append(f"&#x{ord(ch):X};")
        else:
            pieces.append(ch)
    return "".join(pieces)


def _element(name: str, text: str | None = None, **attrs: str) -> str:
    attr_text = "".join(f' {key}="{_escape_attr(value)}"' for key, value in attrs.items())
    if text is None:
        return f"<{name}{attr_text}/>"
    return f"<{name}{attr_text}>{_escape_text(text)}</{name}>"


def _hostname() -> str:
    try:
        return socket.gethostname()
    except OSError:
        return ""


def format_event(event_type: EventType, values: Sequence[str | None],
                 provider_guid: Guid | str,
                 record_id: int = 0,
                 system_time: str | int | None = None,
                 hostname: str | None = None,
                 process_id: int | None = None,
                 thread_id: int | None = None,
                 user_id: int | None = None) -> str:
    """Render an event as an ``<Event>`` XML string.

    ``values`` are the field values in the order of the event type's field
    names; None renders as empty.  ``system_time`` may be text or ticks;
    it and the host, process, thread and user ids default to the current
    ones.  Raises ValueError if there are more values than field names.
    """
    if len(values) > len(event_type.field_names):
        raise ValueError("more values than field names")

    if system_time is None:
        system_time = system_time_ticks()
    if isinstance(system_time, int):
        system_time = ticks_to_system_time_string(system_time)
    if hostname is None:
        hostname = _hostname()
    if process_id is None:
        process_id = os.getpid()
    if thread_id is None:
        thread_id = threading.get_native_id()
    if user_id is None:
        user_id = os.geteuid()

    desc = event_type.descriptor
    system = "".join([
        _element("Provider", Name=PROVIDER_NAME, Guid=str(provider_guid)),
        _element("EventID", str(desc.id)),
        _element("Version", str(desc.version)),
        _element("Level", str(desc.level)),
        _element("Task", str(desc.task)),
        _element("Opcode", str(desc.opcode)),
        _element("Keywords", f"0x{desc.keyword:x}"),
        _element("TimeCreated", SystemTime=system_time),
        _element("EventRecordID", str(record_id)),
        _element("Correlation"),
        _element("Execution", ProcessID=str(process_id), ThreadID=str(thread_id)),
        _element("Channel", CHANNEL),
        _element("Computer", hostname),
        _element("Security", UserId=str(user_id)),
    ])
    data = "".join(
        _element("Data", value if value is not None else "", Name=name)
        for name, value in zip(event_type.field_names, values)
    )
    data_section = f"<EventData>{data}</EventData>" if data else "<EventData/>"
    return f"<Event><System>{system}</System>{data_section}</Event>"
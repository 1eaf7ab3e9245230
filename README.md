# sysmonview

A viewer for Sysmon-style XML events written to syslog, together with the
helpers a Linux monitoring agent needs: wide-string conversion, 100 ns
timestamps, process details from `/proc`, TCP and UDP connection tracking,
and rendering of events as single-line XML.

It needs nothing beyond the Python standard library (Python 3.10 or later).

## Installing

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## The `sysmonview` command

The command reads syslog lines on standard input. Lines that contain
` sysmon` followed by an `<Event>` record are parsed; every other line is
skipped. Each event that passes the filters is printed as

```
Event <id>
	<Field>: <value>
```

with `--NULL--` shown for an empty value. The command has no table of event
names, so events are headed by their numeric ID. An event record that is not
well-formed XML is reported on standard error and skipped.

```
tail -f /var/log/syslog | sysmonview
```

| Switch | Meaning |
| ------ | ------- |
| `-e 1,3` | Only show events with these IDs (decimal, `0x` hex or leading-`0` octal). Can be repeated. |
| `-r min,max` | Only show events whose record ID is in range. Either end may be left out (`-r ,50`, `-r 10`). |
| `-t start,end` | Only show events created in a time range, each given as `YYYY-MM-DD HH:MM[:SS[.nnn]]` in local time. Either end may be left out. |
| `-f Field=v1,v2` | For events that have the field, only show those whose value is one of those given (case sensitive). |
| `-E id=Field1,Field2` | For the given event ID, only show the listed fields. Can be repeated. |
| `-X` | Print a blank line after each event. |
| `-T` | Print the settings read so far and stop. |
| `-h`, `-?` | Show help and stop. An unknown switch or a missing argument also shows help. |

Quote arguments that contain spaces:

```
sysmonview -t "2024-01-01 10:00,2024-01-01 11:00" -f Image=/bin/touch
```

## Using the library

Viewing, with your own names for event IDs:

```python
import sys
from sysmonview.logargs import parse_args
from sysmonview.logview import view

options = parse_args(["-e", "1", "-X"])
with open("syslog.txt") as lines:
    shown = view(lines, options, sys.stdout, {1: "Process Create"})
```

`render_line(line, options, event_names)` renders a single line, returning
`None` for lines that are not shown. `sysmonview.logargs` also offers
`ViewOptions`, `parse_event_ids`, `parse_event_fields`, `parse_record_range`,
`parse_filter`, `usage_text` and `describe_options`; `sysmonview.logtime`
has `time_str_to_ms`, `system_time_str_to_ms`, `parse_time_range`,
`in_range` and `format_ms`.

### Other modules

- `sysmonview.widechar`: `utf8_to_utf16` and `utf16_to_utf8` with an
  optional buffer limit (raising `ValueError` on malformed input), and
  comparison and search over UTF-16 code units: `wide_compare`,
  `wide_compare_n`, `wide_casecompare`, `wide_casecompare_n`, `wide_find`,
  `wide_rfind`, `wide_find_sub`, `wide_span`, `wide_upper`, `wide_lower`.
- `sysmonview.timeutil`: times as 100 ns ticks since the epoch:
  `system_time_ticks`, `ticks_to_seconds`, `ticks_milliseconds`,
  `ticks_nanoseconds`, `filetime_to_ticks`,
  `ticks_to_system_time_string` (`YYYY-MM-DDTHH:MM:SS.nnnnnnnnnZ`), and the
  `Guid` class with `guid_to_string`.
- `sysmonview.procinfo`: `read_boot_info`, `read_process_info`,
  `read_process`, `process_name`, `enum_processes`, `str_is_num` and
  `username_for_uid`. Functions that read `/proc` take a `proc_root`
  argument so they can be pointed at another tree.
- `sysmonview.addresses`: `AddrAndPort` and `PacketAddresses`, hashable
  values with a 64-bit FNV `fnv_hash()`.
- `sysmonview.connections`: `ConnectionTracker(stale_seconds,
  check_seconds, clock)` pairs TCP state transitions (`TcpState`) with the
  process that caused them: `seen_connect`, `seen_full_accept`,
  `seen_accept`, `close_accept`.
- `sysmonview.udpproc`: `path_to_inode`, `inode_to_addr` and `lookup_udp`
  map a process's descriptor to UDP endpoints through `/proc/net/udp` and
  `/proc/net/udp6`.
- `sysmonview.udp`: `UdpTracker(recv_map, send_map, proc_root, clock)`
  decides which UDP sends and receives to report (`seen_udp_recv`,
  `seen_udp_send`, `program_terminated`); `DictTelemetryMap` is an
  in-memory stand-in for the kernel-side maps.
- `sysmonview.eventxml`: `format_event` renders an `EventType` (with its
  `EventDescriptor`) and field values as an `<Event>` XML string.

## What it does not do

This package does not capture events. There is no agent, no kernel probes
and no syslog writer: the trackers and `format_event` are building blocks
that are fed by the caller. It also does not compute file hashes for
events.
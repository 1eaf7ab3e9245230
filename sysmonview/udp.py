"""Rate limiting of UDP send and receive reports.

A kernel-side map records, for each socket, when it was last reported, and
is consulted before an observation is passed on.  This tracker keeps a
local copy of the same information so that it can age entries out, refill
the kernel map when it saturates, and clean up after processes that exit.

Received packets are keyed by process id and file descriptor, combined as
``(pid << 32) | fd``.  Sent packets are keyed by their addresses.  Times
are ticks of 100 ns since the epoch.
"""

from __future__ import annotations

import os
from collections.abc import Callable, Hashable
from dataclasses import dataclass, field
from typing import Any

from .addresses import PacketAddresses
from .timeutil import TICKS_PER_SECOND, system_time_ticks
from .udpproc import lookup_udp

__all__ = [
    "DEFAULT_REPORT_INTERVAL",
    "DEFAULT_PURGE_COUNT",
    "DictTelemetryMap",
    "UdpTracker",
]

DEFAULT_REPORT_INTERVAL = 60 * TICKS_PER_SECOND
DEFAULT_PURGE_COUNT = 256
_UINT32 = 0xFFFFFFFF


@dataclass
class DictTelemetryMap:
    """A telemetry map held in a dictionary."""

    entries: dict[Hashable, Any] = field(default_factory=dict)

    def lookup(self, key: Hashable) -> Any | None:
        """The value stored for ``key``, or None if there is none."""
        return self.entries.get(key)

    def update(self, key: Hashable, value: Any) -> None:
        """Create or overwrite the entry for ``key``."""
        self.entries[key] = value

    def delete(self, key: Hashable) -> bool:
        """Remove the entry for ``key``; True if it was present."""
        return self.entries.pop(key, None) is not None

    def __contains__(self, key: object) -> bool:
        return key in self.entries

    def __len__(self) -> int:
        return len(self.entries)


def _pid_fd(pid: int, fd: int) -> int:
    return (pid << 32) | (fd & _UINT32)


class UdpTracker:
    """Decides which UDP observations are worth reporting.

    ``recv_map`` and ``send_map`` are the kernel-side maps; anything with
    ``lookup``, ``update`` and ``delete`` will do.  ``report_interval`` and
    ``purge_count`` may be changed on an instance.
    """

    report_interval: int = DEFAULT_REPORT_INTERVAL
    purge_count: int = DEFAULT_PURGE_COUNT

    def __init__(self, recv_map: Any = None, send_map: Any = None,
                 proc_root: str | os.PathLike[str] = "/proc",
                 clock: Callable[[], int] | None = None) -> None:
        self.recv_map = recv_map if recv_map is not None else DictTelemetryMap()
        self.send_map = send_map if send_map is not None else DictTelemetryMap()
        self.proc_root = proc_root
        self._clock = clock or system_time_ticks
        self._recv_times: dict[int, int] = {}
        self._recv_by_pid: dict[int, dict[int, tuple[int, PacketAddresses]]] = {}
        self._send_times: dict[int, tuple[int, PacketAddresses]] = {}
        self._send_by_pid: dict[int, dict[PacketAddresses, int]] = {}

    # local records -----------------------------------------------------

    def _find_recv(self, pid: int, fd: int, addrs: PacketAddresses | None,
                   erase: bool) -> int:
        fds = self._recv_by_pid.get(pid)
        if fds is None or fd not in fds:
            return 0
        when, seen = fds[fd]
        last = when if addrs is not None and seen == addrs else 0
        if erase:
            del fds[fd]
            if not fds:
                del self._recv_by_pid[pid]
        return last

    def _update_recv(self, pid: int, fd: int, ctime: int,
                     addrs: PacketAddresses) -> int:
        fds = self._recv_by_pid.setdefault(pid, {})
        previous = fds.get(fd)
        fds[fd] = (ctime, addrs)
        if previous is not None and previous[1] == addrs:
            return previous[0]
        return 0

    def _find_send(self, pid: int, addrs: PacketAddresses, erase: bool) -> int:
        known = self._send_by_pid.get(pid)
        if known is None or addrs not in known:
            return 0
        last = known[addrs]
        if erase:
            del known[addrs]
            if not known:
                del self._send_by_pid[pid]
        return last

    def _update_send(self, pid: int, ctime: int, addrs: PacketAddresses) -> int:
        known = self._send_by_pid.setdefault(pid, {})
        last = known.get(addrs, 0)
        known[addrs] = ctime
        return last

    # ageing ------------------------------------------------------------

    def _purge(self, now: int) -> None:
        while self._recv_times:
            when = min(self._recv_times)
            if now - when <= self.report_interval:
                break
            key = self._recv_times.pop(when)
            pid, fd = key >> 32, key & _UINT32
            last = self.recv_map.lookup(key)
            if last is None:
                self._find_recv(pid, fd, None, True)
            elif now - last > self.report_interval:
                self.recv_map.delete(key)
                self._find_recv(pid, fd, None, True)
            else:
                addrs = lookup_udp(pid, fd, self.proc_root)
                if addrs is not None:
                    self._update_recv(pid, fd, last, addrs)
                    self._recv_times.setdefault(last, key)
                else:
                    self._find_recv(pid, fd, None, True)

        while self._send_times:
            when = min(self._send_times)
            if now - when <= self.report_interval:
                break
            pid, addrs = self._send_times.pop(when)
            last = self.send_map.lookup(addrs)
            if last is None:
                self._find_send(pid, addrs, True)
            elif now - last > self.report_interval:
                self.send_map.delete(addrs)
                self._find_send(pid, addrs, True)
            else:
                self._update_send(pid, last, addrs)
                self._send_times.setdefault(last, (pid, addrs))

    # observations ------------------------------------------------------

    def seen_udp_recv(self, pid: int, fd: int) -> PacketAddresses | None:
        """Handle a read on a UDP socket.

        Returns the socket's addresses when the observation should be
        reported, otherwise None (also when the socket cannot be found).
        """
        now = self._clock()
        addrs = lookup_udp(pid, fd, self.proc_root)
        if addrs is None:
            return None
        key = _pid_fd(pid, fd)

        last = self.recv_map.lookup(key)
        if last is None:
            # The kernel map is full: clear out its oldest entries.
            for when in sorted(self._recv_times)[:self.purge_count]:
                self.recv_map.delete(self._recv_times[when])
            last = self._find_recv(pid, fd, addrs, False)
            if last > 0:
                self.recv_map.update(key, last)
            else:
                self.recv_map.update(key, now)
                self._update_recv(pid, fd, now, addrs)
                self._recv_times.setdefault(now, key)
            self._purge(now)
            return addrs if now - last > self.report_interval else None

        previous = self._find_recv(pid, fd, addrs, False)
        if previous > 0:
            if now - previous > self.report_interval:
                self.recv_map.update(key, now)
                old = self._update_recv(pid, fd, now, addrs)
                self._recv_times.pop(old, None)
                self._recv_times.setdefault(now, key)
                self._purge(now)
                return addrs
            self.recv_map.update(key, previous)
            self._purge(now)
            return None

        self._update_recv(pid, fd, last, addrs)
        self._recv_times.setdefault(last, key)
        self._purge(now)
        return addrs

    def seen_udp_send(self, addresses: PacketAddresses, pid: int) -> bool:
        """Handle an outgoing UDP packet; True if it should be reported."""
        now = self._clock()

        last = self.send_map.lookup(addresses)
        if last is None:
            for when in sorted(self._send_times)[:self.purge_count]:
                self.send_map.delete(self._send_times[when][1])
            last = self._find_send(pid, addresses, False)
            if last > 0:
                self.send_map.update(addresses, last)
            else:
                self.send_map.update(addresses, now)
                self._update_send(pid, now, addresses)
                self._send_times.setdefault(now, (pid, addresses))
            self._purge(now)
            return now - last > self.report_interval

        previous = self._find_send(pid, addresses, False)
        if previous > 0:
            if now - previous > self.report_interval:
                self.send_map.update(addresses, now)
                old = self._update_send(pid, now, addresses)
                self._send_times.pop(old, None)
                self._send_times.setdefault(now, (pid, addresses))
                self._purge(now)
                return True
            self.send_map.update(addresses, previous)
            self._purge(now)
            return False

        self._update_send(pid, last, addresses)
        self._send_times.setdefault(last, (pid, addresses))
        self._purge(now)
        return True

    def program_terminated(self, pid: int) -> None:
        """Drop what is known about ``pid``'s sockets.

        Send records are only cleared for a process that also has receive
        records.
        """
        fds = self._recv_by_pid.pop(pid, None)
        if fds is None:
            return
        for when, _ in fds.values():
            key = self._recv_times.pop(when, None)
            if key is not None:
                self.recv_map.delete(key)

        known = self._send_by_pid.pop(pid, None)
        if known is None:
            return
        for when in known.values():
            entry = self._send_times.pop(when, None)
            if entry is not None:
                self.send_map.delete(entry[1])
"""Tracking of TCP connect and accept transitions.

Outbound connections are seen in three steps: CLOSE to SYN_SENT in the
context of the connecting process, SYN_SENT to ESTABLISHED in some other
context, and finally a move to CLOSE.  The process id of the first step is
remembered so that it can be reported for the second.

Inbound connections are seen first as a state transition that carries the
full source and destination, and later as a call to ``accept()`` that
carries only the source.  The transition is remembered until the call
claims it.

Entries that are never claimed age out after a stale period; the check for
stale entries runs at most once per check period.
"""

from __future__ import annotations

import enum
from collections.abc import Callable, Hashable

from .addresses import AddrAndPort
from .timeutil import TICKS_PER_SECOND, system_time_ticks

__all__ = ["TcpState", "ConnectionTracker"]


class TcpState(enum.IntEnum):
    """TCP socket states as numbered by the kernel."""

    ESTABLISHED = 1
    SYN_SENT = 2
    SYN_RECV = 3
    FIN_WAIT1 = 4
    FIN_WAIT2 = 5
    TIME_WAIT = 6
    CLOSE = 7
    CLOSE_WAIT = 8
    LAST_ACK = 9
    LISTEN = 10
    CLOSING = 11
    NEW_SYN_RECV = 12


class ConnectionTracker:
    """Pairs TCP state transitions with the processes that caused them.

    Durations are given in seconds; times are ticks of 100 ns since the
    epoch, as returned by ``clock``.
    """

    def __init__(self, stale_seconds: int, check_seconds: int,
                 clock: Callable[[], int] | None = None) -> None:
        self._clock = clock or system_time_ticks
        self.stale_duration = stale_seconds * TICKS_PER_SECOND
        self.check_duration = check_seconds * TICKS_PER_SECOND
        self._connects: dict[Hashable, tuple[int, int]] = {}
        self._connect_times: dict[int, Hashable] = {}
        self._accepts: dict[AddrAndPort, tuple[AddrAndPort, int]] = {}
        self._accept_times: dict[int, AddrAndPort] = {}
        self._last_checked = self._clock()

    @property
    def pending_connects(self) -> dict[Hashable, int]:
        """Socket ids awaiting establishment, mapped to their process ids."""
        return {sock: pid for sock, (pid, _) in self._connects.items()}

    @property
    def pending_accepts(self) -> dict[AddrAndPort, AddrAndPort]:
        """Accepted sources not yet claimed, mapped to their destinations."""
        return {src: dest for src, (dest, _) in self._accepts.items()}

    def _purge_stale(self) -> None:
        now = self._clock()
        if now - self._last_checked > self.check_duration:
            for when in sorted(self._connect_times):
                if now - when <= self.stale_duration:
                    break
                self._connects.pop(self._connect_times.pop(when), None)
            for when in sorted(self._accept_times):
                if now - when <= self.stale_duration:
                    break
                self._accepts.pop(self._accept_times.pop(when), None)
        self._last_checked = self._clock()

    def seen_connect(self, sock_id: Hashable, pid: int, new_state: int,
                     event_time: int) -> int:
        """Record a connect transition.

        Returns the pid of the process that started the connection when
        a later transition for the same socket is seen, otherwise 0.
        """
        result = 0
        if new_state == TcpState.CLOSE:
            entry = self._connects.pop(sock_id, None)
            if entry is not None:
                self._connect_times.pop(entry[1], None)
        elif sock_id not in self._connects:
            self._connects[sock_id] = (pid, event_time)
            self._connect_times.setdefault(event_time, sock_id)
        else:
            result = self._connects[sock_id][0]
            if new_state == TcpState.ESTABLISHED:
                del self._connects[sock_id]
                self._connect_times.pop(event_time, None)

        self._purge_stale()
        return result

    def seen_full_accept(self, source: AddrAndPort, dest: AddrAndPort,
                         event_time: int) -> None:
        """Remember an established inbound connection by its source."""
        self._accepts.pop(source, None)
        self._accepts[source] = (dest, event_time)
        self._accept_times.setdefault(event_time, source)
        self._purge_stale()

    def seen_accept(self, source: AddrAndPort) -> AddrAndPort | None:
        """Claim the remembered connection for ``source``.

        Returns its destination, or None if nothing was remembered.
        """
        entry = self._accepts.pop(source, None)
        if entry is None:
            return None
        dest, when = entry
        self._accept_times.pop(when, None)
        return dest

    def close_accept(self, source: AddrAndPort, dest: AddrAndPort) -> None:
        """Forget the remembered connection if it matches ``source`` and ``dest``."""
        entry = self._accepts.get(source)
        if entry is None or entry[0] != dest:
            return
        self._accept_times.pop(entry[1], None)
        del self._accepts[source]
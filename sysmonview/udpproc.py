"""Mapping of a process's socket descriptors to UDP endpoints via procfs."""

from __future__ import annotations

import os
import re
from pathlib import Path

from .addresses import PacketAddresses

__all__ = [
    "INODE_SOCK_PRE1",
    "INODE_SOCK_PRE2",
    "path_to_inode",
    "inode_to_addr",
    "lookup_udp",
]

INODE_SOCK_PRE1 = "socket:["
INODE_SOCK_PRE2 = "[0000]:"
_UINT32 = 0xFFFFFFFF
_UINT64 = 0xFFFFFFFFFFFFFFFF

_ATOI = re.compile(r"[ \t\n\r\f\v]*([+-]?\d+)")
_HEX = r"([0-9A-Fa-f]+)"
_UDP_LINE = re.compile(
    r"\s*(\d+):\s+([0-9A-Fa-f]{1,32}):" + _HEX
    + r"\s+([0-9A-Fa-f]{1,32}):" + _HEX
    + r"\s+" + _HEX
    + r"\s+" + _HEX + ":" + _HEX
    + r"\s+" + _HEX + ":" + _HEX
    + r"\s+" + _HEX
    + r"\s+(\d+)\s+(\d+)\s+(\d+)"
)


def path_to_inode(path: str | bytes) -> int:
    """Inode number of a socket descriptor's link target, or 0 if not a socket."""
    if isinstance(path, bytes):
        path = os.fsdecode(path)
    for prefix in (INODE_SOCK_PRE1, INODE_SOCK_PRE2):
        if path.startswith(prefix):
            match = _ATOI.match(path, len(prefix))
            return int(match.group(1)) & _UINT64 if match else 0
    return 0


def _hex_word(text: str) -> int:
    return min(int(text, 16), _UINT64) & _UINT32 if text else 0


def _ipv6_bytes(text: str) -> bytes:
    words = [text[start:start + 8] for start in range(0, 32, 8)]
    return b"".join(_hex_word(word).to_bytes(4, "little") for word in words)


def inode_to_addr(inode: int, ipv4: bool = True,
                  proc_root: str | os.PathLike[str] = "/proc") -> PacketAddresses | None:
    """Find the UDP socket with ``inode`` in the proc UDP table.

    ``ipv4`` selects the IPv4 or the IPv6 table; the family of the result
    follows the width of the address found.  Returns None when the table
    cannot be read or holds no matching socket.
    """
    table = Path(proc_root) / "net" / ("udp" if ipv4 else "udp6")
    try:
        handle = open(table, "r", errors="replace")
    except OSError:
        return None
    with handle:
        handle.readline()
        for line in handle:
            match = _UDP_LINE.match(line)
            if match is None or int(match.group(14)) != inode:
                continue
            local_text, remote_text = match.group(2), match.group(4)
            local_port = int(match.group(3), 16) & 0xFFFF
            remote_port = int(match.group(5), 16) & 0xFFFF
            if len(local_text) == 8:
                return PacketAddresses(
                    ipv4=True,
                    local_addr=_hex_word(local_text).to_bytes(4, "little"),
                    local_port=local_port,
                    remote_addr=_hex_word(remote_text).to_bytes(4, "little"),
                    remote_port=remote_port,
                )
            if len(local_text) == 32:
                return PacketAddresses(
                    ipv4=False,
                    local_addr=_ipv6_bytes(local_text),
                    local_port=local_port,
                    remote_addr=_ipv6_bytes(remote_text),
                    remote_port=remote_port,
                )
    return None


def lookup_udp(pid: int, fd: int,
               proc_root: str | os.PathLike[str] = "/proc") -> PacketAddresses | None:
    """The UDP endpoints behind descriptor ``fd`` of process ``pid``, if any."""
    link = Path(proc_root) / str(pid) / "fd" / str(fd)
    try:
        target = os.readlink(link)
    except OSError:
        return None
    inode = path_to_inode(target)
    if inode == 0:
        return None
    return inode_to_addr(inode, True, proc_root) or inode_to_addr(inode, False, proc_root)
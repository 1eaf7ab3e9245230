"""Address and port values used as keys by the network trackers."""

from __future__ import annotations

import ipaddress
from dataclasses import dataclass

__all__ = ["AddrAndPort", "PacketAddresses", "FNV_INIT", "FNV_MULT"]

FNV_INIT = 0xCBF29CE484222325
FNV_MULT = 0x100000001B3
_MASK64 = 0xFFFFFFFFFFFFFFFF


def _normalise(addr: bytes, ipv4: bool) -> bytes:
    data = bytes(addr)
    width = 4 if ipv4 else 16
    if len(data) < width:
        raise ValueError(f"address needs at least {width} bytes")
    return data[:width].ljust(16, b"\x00")


def _check_port(port: int) -> None:
    if not 0 <= port <= 0xFFFF:
        raise ValueError("port must fit in 16 bits")


def _step(value: int, byte: int | None = None) -> int:
    value = (value * FNV_MULT) & _MASK64
    return value ^ byte if byte is not None else value


def _fold_addr(value: int, addr: bytes, ipv4: bool) -> int:
    for index, byte in enumerate(addr):
        value = _step(value, byte if not ipv4 or index < 4 else None)
    return value


def _fold_port(value: int, port: int) -> int:
    value = _step(value, port >> 8)
    return _step(value, port & 0xFF)


def _ip(addr: bytes, ipv4: bool) -> ipaddress.IPv4Address | ipaddress.IPv6Address:
    return ipaddress.IPv4Address(addr[:4]) if ipv4 else ipaddress.IPv6Address(addr)


@dataclass(frozen=True)
class AddrAndPort:
    """An IPv4 or IPv6 address with a port.

    Only the first four address bytes count for IPv4.
    """

    addr: bytes
    ipv4: bool
    port: int

    def __post_init__(self) -> None:
        object.__setattr__(self, "addr", _normalise(self.addr, self.ipv4))
        _check_port(self.port)

    @property
    def ip(self) -> ipaddress.IPv4Address | ipaddress.IPv6Address:
        return _ip(self.addr, self.ipv4)

    def fnv_hash(self) -> int:
        """64-bit Fowler-Noll-Vo hash of the address, family and port."""
        value = _fold_addr(FNV_INIT, self.addr, self.ipv4)
        value = _step(value, int(self.ipv4))
        return _fold_port(value, self.port)

    def __hash__(self) -> int:
        return self.fnv_hash()


@dataclass(frozen=True)
class PacketAddresses:
    """Local and remote addresses and ports of a packet."""

    ipv4: bool = True
    local_addr: bytes = bytes(16)
    local_port: int = 0
    remote_addr: bytes = bytes(16)
    remote_port: int = 0

    def __post_init__(self) -> None:
        object.__setattr__(self, "local_addr", _normalise(self.local_addr, self.ipv4))
        object.__setattr__(self, "remote_addr", _normalise(self.remote_addr, self.ipv4))
        _check_port(self.local_port)
        _check_port(self.remote_port)

    @property
    def local_ip(self) -> ipaddress.IPv4Address | ipaddress.IPv6Address:
        return _ip(self.local_addr, self.ipv4)

    @property
    def remote_ip(self) -> ipaddress.IPv4Address | ipaddress.IPv6Address:
        return _ip(self.remote_addr, self.ipv4)

    def fnv_hash(self) -> int:
        """64-bit Fowler-Noll-Vo hash of family, addresses and ports."""
        value = _step(FNV_INIT, int(self.ipv4))
        value = _fold_addr(value, self.local_addr, self.ipv4)
        value = _fold_addr(value, self.remote_addr, self.ipv4)
        value = _fold_port(value, self.local_port)
        return _fold_port(value, self.remote_port)

    def __hash__(self) -> int:
        return self.fnv_hash()
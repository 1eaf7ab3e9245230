import ipaddress

import pytest

from sysmonview.addresses import AddrAndPort, PacketAddresses

V4 = bytes([10, 0, 0, 1])
V6 = bytes(range(1, 17))


def test_addr_ipv4_ignores_trailing_bytes():
    a = AddrAndPort(V4 + b"\xff" * 12, True, 80)
    b = AddrAndPort(V4, True, 80)
    assert a == b
    assert a.fnv_hash() == b.fnv_hash()
    assert a.ip == ipaddress.IPv4Address("10.0.0.1")


def test_addr_family_and_port_matter():
    v4 = AddrAndPort(V4 + bytes(12), True, 80)
    v6 = AddrAndPort(V4 + bytes(12), False, 80)
    assert v4 != v6
    assert v4.fnv_hash() != v6.fnv_hash()
    assert AddrAndPort(V4, True, 80) != AddrAndPort(V4, True, 81)


def test_addr_ipv6_compares_all_bytes():
    a = AddrAndPort(V6, False, 443)
    changed = AddrAndPort(V6[:15] + b"\x00", False, 443)
    assert a != changed
    assert a.ip == ipaddress.IPv6Address(V6)


def test_addr_hash_is_64_bit_and_usable_as_key():
    a = AddrAndPort(V6, False, 65535)
    assert 0 <= a.fnv_hash() < 2 ** 64
    table = {a: "seen"}
    assert table[AddrAndPort(V6, False, 65535)] == "seen"


def test_addr_validation():
    with pytest.raises(ValueError):
        AddrAndPort(b"\x01\x02", True, 1)
    with pytest.raises(ValueError):
        AddrAndPort(V4, False, 1)
    with pytest.raises(ValueError):
        AddrAndPort(V4, True, 70000)


def test_packet_defaults():
    p = PacketAddresses()
    assert p.ipv4 is True
    assert p.local_addr == bytes(16)
    assert p.remote_addr == bytes(16)
    assert (p.local_port, p.remote_port) == (0, 0)


def test_packet_ipv4_equality_and_hash():
    a = PacketAddresses(True, V4 + b"\x09" * 12, 53, V4[::-1], 1234)
    b = PacketAddresses(True, V4, 53, V4[::-1] + b"\x07" * 12, 1234)
    assert a == b
    assert hash(a) == hash(b)
    assert {a: 5}[b] == 5
    assert a.remote_ip == ipaddress.IPv4Address("1.0.0.10")


def test_packet_differences():
    base = PacketAddresses(True, V4, 53, V4, 1234)
    assert base != PacketAddresses(True, V4, 54, V4, 1234)
    assert base != PacketAddresses(True, V4, 53, V4, 1235)
    assert base != PacketAddresses(False, V4 + bytes(12), 53, V4 + bytes(12), 1234)
    swapped = PacketAddresses(True, V4, 1234, V4, 53)
    assert base.fnv_hash() != swapped.fnv_hash()


def test_packet_hash_range():
    p = PacketAddresses(False, V6, 1, V6[::-1], 2)
    assert 0 <= p.fnv_hash() < 2 ** 64
    assert p.fnv_hash() == PacketAddresses(False, V6, 1, V6[::-1], 2).fnv_hash()


def test_packet_validation():
    with pytest.raises(ValueError):
        PacketAddresses(False, V4, 1, V6, 2)
    with pytest.raises(ValueError):
        PacketAddresses(True, V4, -1, V4, 2)
import ipaddress
import os

import pytest

from sysmonview.addresses import PacketAddresses
from sysmonview.udp import DictTelemetryMap, UdpTracker

HEADER = ("  sl  local_address rem_address   st tx_queue rx_queue tr tm->when "
          "retrnsmt   uid  timeout inode ref pointer drops\n")
LINE_A = ("  0: 0100007F:0035 00000000:0000 07 00000000:00000000 00:00000000 "
          "00000000   101        0 12345 2 0000000000000000 0\n")
LINE_B = ("  1: 0100007F:0036 00000000:0000 07 00000000:00000000 00:00000000 "
          "00000000   101        0 23456 2 0000000000000000 0\n")
PID = 42


def key(pid, fd):
    return (pid << 32) | fd


@pytest.fixture
def proc(tmp_path):
    root = tmp_path / "proc"
    fd_dir = root / str(PID) / "fd"
    fd_dir.mkdir(parents=True)
    os.symlink("socket:[12345]", fd_dir / "3")
    os.symlink("socket:[23456]", fd_dir / "4")
    (root / "net").mkdir()
    (root / "net" / "udp").write_text(HEADER + LINE_A + LINE_B)
    return root


@pytest.fixture
def clock():
    return [1000]


def make_tracker(proc, clock):
    tracker = UdpTracker(DictTelemetryMap(), DictTelemetryMap(), proc, lambda: clock[0])
    tracker.report_interval = 100
    return tracker


def test_dict_map_operations():
    m = DictTelemetryMap()
    assert m.lookup("a") is None
    m.update("a", 5)
    assert m.lookup("a") == 5
    assert "a" in m
    assert m.delete("a") is True
    assert m.delete("a") is False
    assert len(m) == 0


def test_recv_unknown_descriptor(proc, clock):
    tracker = make_tracker(proc, clock)
    assert tracker.seen_udp_recv(PID, 9) is None


def test_recv_with_kernel_entry(proc, clock):
    tracker = make_tracker(proc, clock)
    tracker.recv_map.update(key(PID, 3), 950)
    addrs = tracker.seen_udp_recv(PID, 3)
    assert addrs is not None
    assert addrs.local_ip == ipaddress.ip_address("127.0.0.1")
    assert addrs.local_port == 53

    clock[0] = 1050
    assert tracker.seen_udp_recv(PID, 3) is None
    assert tracker.recv_map.lookup(key(PID, 3)) == 950

    clock[0] = 1100
    assert tracker.seen_udp_recv(PID, 3) == addrs
    assert tracker.recv_map.lookup(key(PID, 3)) == 1100


def test_recv_when_kernel_map_full(proc, clock):
    tracker = make_tracker(proc, clock)
    assert tracker.seen_udp_recv(PID, 3) is not None
    assert tracker.recv_map.lookup(key(PID, 3)) == 1000


def test_recv_full_map_clears_oldest(proc, clock):
    tracker = make_tracker(proc, clock)
    tracker.purge_count = 1
    tracker.seen_udp_recv(PID, 3)
    clock[0] = 1010
    result = tracker.seen_udp_recv(PID, 4)
    assert result is not None
    assert result.local_port == 0x36
    assert key(PID, 3) not in tracker.recv_map
    assert tracker.recv_map.lookup(key(PID, 4)) == 1010


def test_send_rate_limited(proc, clock):
    tracker = make_tracker(proc, clock)
    addrs = PacketAddresses(True, bytes([10, 0, 0, 1]), 5000, bytes([10, 0, 0, 2]), 53)
    assert tracker.seen_udp_send(addrs, PID) is True
    assert tracker.send_map.lookup(addrs) == 1000

    clock[0] = 1050
    assert tracker.seen_udp_send(addrs, PID) is False
    assert tracker.send_map.lookup(addrs) == 1000

    clock[0] = 1200
    assert tracker.seen_udp_send(addrs, PID) is True
    assert tracker.send_map.lookup(addrs) == 1200


def test_stale_recv_entry_purged(proc, clock):
    tracker = make_tracker(proc, clock)
    tracker.seen_udp_recv(PID, 3)
    assert key(PID, 3) in tracker.recv_map
    clock[0] = 5000
    addrs = PacketAddresses(True, bytes([10, 0, 0, 1]), 5000, bytes([10, 0, 0, 2]), 53)
    tracker.seen_udp_send(addrs, 7)
    assert key(PID, 3) not in tracker.recv_map
    assert addrs in tracker.send_map


def test_program_terminated_clears_kernel_entries(proc, clock):
    tracker = make_tracker(proc, clock)
    tracker.seen_udp_recv(PID, 3)
    addrs = PacketAddresses(True, bytes([10, 0, 0, 1]), 5000, bytes([10, 0, 0, 2]), 53)
    tracker.seen_udp_send(addrs, PID)
    tracker.program_terminated(PID)
    assert key(PID, 3) not in tracker.recv_map
    assert addrs not in tracker.send_map


def test_program_terminated_without_recv_keeps_send(proc, clock):
    tracker = make_tracker(proc, clock)
    addrs = PacketAddresses(True, bytes([10, 0, 0, 1]), 5000, bytes([10, 0, 0, 2]), 53)
    tracker.seen_udp_send(addrs, PID)
    tracker.program_terminated(PID)
    assert addrs in tracker.send_map
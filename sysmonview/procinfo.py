"""Process, boot and user details read from a procfs tree."""

from __future__ import annotations

import math
import os
import pwd
import re
import time
from dataclasses import dataclass, field
from pathlib import Path

__all__ = [
    "BootInfo",
    "ProcessInfo",
    "ProcessRecord",
    "read_boot_info",
    "read_process_info",
    "read_process",
    "process_name",
    "str_is_num",
    "enum_processes",
    "username_for_uid",
]

TICKS_PER_SECOND = 1000 * 1000 * 10
CMDLINE_MAX = 128 * 1024 - 1
PATH_MAX = 4096
SID_SIZE = 8
_UINT32 = 0xFFFFFFFF
_UINT64 = 0xFFFFFFFFFFFFFFFF
_DEFAULT_CLK_TCK = 100

_FLOAT = re.compile(r"\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")
_INT = re.compile(r"\s*([+-]?\d+)")
_HEX = re.compile(r"\s*(?:0[xX])?([0-9a-fA-F]+)")


@dataclass(frozen=True)
class BootInfo:
    """Boot time in seconds since the epoch, clock ticks per second, machine id."""

    boot_seconds: float = 0.0
    clk_tck: int = _DEFAULT_CLK_TCK
    machine_id: int = 0


@dataclass(frozen=True)
class ProcessInfo:
    """Details taken from a process's stat and sessionid files."""

    start_time: int = 0
    pts: int = 0
    ppid: int = 0
    session_id: int = _UINT32
    process_key: int = 0


@dataclass(frozen=True)
class ProcessRecord:
    """A process-creation record for a running process."""

    pid: int
    info: ProcessInfo
    uid: int
    image_path: str = ""
    command_line: str = ""
    current_directory: str = ""
    extension_sizes: dict[str, int] = field(default_factory=dict)


def _leading_int(text: str) -> int:
    match = _INT.match(text)
    return int(match.group(1)) if match else 0


def _round_half_away(value: float) -> int:
    if value >= 0:
        return int(math.floor(value + 0.5))
    return -int(math.floor(-value + 0.5))


def _clock_ticks() -> int:
    try:
        ticks = os.sysconf("SC_CLK_TCK")
    except (ValueError, OSError, AttributeError):
        return _DEFAULT_CLK_TCK
    return ticks if ticks > 0 else _DEFAULT_CLK_TCK


def _read_machine_id(etc_root: Path) -> int:
    try:
        with open(etc_root / "machine-id", "rb") as handle:
            head = handle.read(8)
    except OSError:
        return 0
    if len(head) != 8:
        return 0
    match = _HEX.match(head.decode("ascii", errors="replace"))
    return int(match.group(1), 16) if match else 0


def read_boot_info(proc_root: str | os.PathLike[str] = "/proc",
                   etc_root: str | os.PathLike[str] = "/etc") -> BootInfo:
    """Work out the boot time, clock tick rate and machine id.

    An unreadable uptime file gives a boot time of 0; an empty one gives
    the defaults for everything.
    """
    proc = Path(proc_root)
    try:
        uptime_text = (proc / "uptime").read_text(errors="replace")
    except OSError:
        boot_seconds = 0.0
    else:
        if not uptime_text.strip():
            return BootInfo()
        match = _FLOAT.match(uptime_text)
        uptime = float(match.group(1)) if match else 0.0
        boot_seconds = time.time() - uptime
    return BootInfo(
        boot_seconds=boot_seconds,
        clk_tck=_clock_ticks(),
        machine_id=_read_machine_id(Path(etc_root)),
    )


def read_process_info(pid: int, boot: BootInfo | None = None,
                      proc_root: str | os.PathLike[str] = "/proc") -> ProcessInfo:
    """Read start time, pts, parent, session and process key for ``pid``.

    Raises ValueError for a non-positive pid or a malformed stat file, and
    OSError when the stat file cannot be read.
    """
    if pid <= 0:
        raise ValueError("pid must be positive")
    boot = boot or BootInfo()
    proc = Path(proc_root) / str(pid)
    with open(proc / "stat", "rb") as handle:
        text = handle.read(2047).decode("utf-8", errors="replace")

    close = text.rfind(")")
    if close < 0:
        raise ValueError("stat file has no command name")
    fields = text[close + 1:].split()
    if len(fields) < 25:
        raise ValueError("stat file has too few fields")
    ppid = _leading_int(fields[1]) & _UINT32
    pts = _leading_int(fields[4]) & 0xFF
    match = _FLOAT.match(fields[19])
    clk_ticks = float(match.group(1)) if match else 0.0
    process_key = _leading_int(fields[24]) & _UINT64

    session_id = _UINT32
    try:
        session_text = (proc / "sessionid").read_text(errors="replace")
    except OSError:
        pass
    else:
        if not session_text.strip():
            raise ValueError("sessionid file is empty")
        session_id = _leading_int(session_text) & _UINT32

    start_time = _round_half_away(
        ((clk_ticks / boot.clk_tck) + boot.boot_seconds) * TICKS_PER_SECOND
    )
    return ProcessInfo(
        start_time=start_time,
        pts=pts,
        ppid=ppid,
        session_id=session_id,
        process_key=process_key,
    )


def _read_link(path: Path) -> bytes:
    try:
        target = os.readlink(os.fsencode(path))
    except OSError:
        return b""
    return target[:PATH_MAX - 1].split(b"\x00", 1)[0]


def read_process(pid: int, max_size: int | None = None,
                 boot: BootInfo | None = None,
                 proc_root: str | os.PathLike[str] = "/proc") -> ProcessRecord:
    """Build a process record for ``pid`` from its procfs entries.

    ``max_size`` is the number of bytes available for the image path,
    working directory and command line, each counted with its terminator.
    When they do not all fit, the command line is cut short first; if the
    working directory does not fit it and the command line are dropped; if
    the image path does not fit, all three are dropped.  None means no
    limit.  Raises OSError if the command line cannot be read.
    """
    proc = Path(proc_root) / str(pid)
    with open(proc / "cmdline", "rb") as handle:
        raw = handle.read(CMDLINE_MAX)
    if raw.endswith(b"\x00"):
        raw = raw[:-1]
    cmdline = raw.replace(b"\x00", b" ")

    image = _read_link(proc / "exe")
    cwd = _read_link(proc / "cwd")

    try:
        uid = os.stat(proc).st_uid
    except OSError:
        uid = _UINT32

    image_len = len(image) + 1
    cwd_len = len(cwd) + 1
    cmd_len = len(cmdline) + 1
    if max_size is not None:
        if image_len > max_size:
            image_len = cwd_len = cmd_len = 0
        elif image_len + cwd_len > max_size:
            cwd_len = cmd_len = 0
        elif image_len + cwd_len + cmd_len > max_size:
            cmd_len = max_size - image_len - cwd_len

    try:
        info = read_process_info(pid, boot, proc_root)
    except (OSError, ValueError):
        info = ProcessInfo(session_id=0)

    return ProcessRecord(
        pid=pid,
        info=info,
        uid=uid,
        image_path=os.fsdecode(image) if image_len else "",
        command_line=os.fsdecode(cmdline[:cmd_len]) if cmd_len else "",
        current_directory=os.fsdecode(cwd) if cwd_len else "",
        extension_sizes={
            "Sid": SID_SIZE,
            "ImagePath": image_len,
            "CommandLine": cmd_len,
            "CurrentDirectory": cwd_len,
        },
    )


def process_name(pid: int | None = None,
                 proc_root: str | os.PathLike[str] = "/proc") -> str:
    """Return the base name of a process's first argument or executable.

    ``None`` or a non-positive pid means the current process.  Raises
    OSError if neither the command line nor the executable link is
    readable, and ValueError if the name ends in a slash.
    """
    proc = Path(proc_root)
    entry = proc / (str(pid) if pid is not None and pid > 0 else "self")

    raw = b""
    try:
        with open(entry / "cmdline", "rb") as handle:
            raw = handle.read(PATH_MAX - 1)
    except OSError:
        raw = b""

    if len(raw) <= 1:
        raw = os.readlink(os.fsencode(entry / "exe"))[:PATH_MAX - 1]
        if not raw:
            raise ValueError("empty executable link")

    first = raw.split(b"\x00", 1)[0]
    slash = first.rfind(b"/")
    if slash >= 0:
        name = first[slash:].lstrip(b"/")
        if not name:
            raise ValueError("process name ends in a slash")
    else:
        name = first
    return os.fsdecode(name)


def str_is_num(s: str | None) -> bool:
    """True if ``s`` is a non-empty run of ASCII digits."""
    if not s:
        return False
    return s.isascii() and s.isdigit()


def enum_processes(limit: int | None = None,
                   proc_root: str | os.PathLike[str] = "/proc") -> list[int]:
    """List process ids found as numeric directories, at most ``limit``.

    Raises OSError if the proc directory cannot be read.
    """
    pids: list[int] = []
    with os.scandir(proc_root) as entries:
        for entry in entries:
            if limit is not None and len(pids) >= limit:
                break
            if entry.is_dir(follow_symlinks=False) and str_is_num(entry.name):
                pids.append(int(entry.name))
    return pids


def username_for_uid(uid: int) -> str | None:
    """The login name for ``uid``, or None if there is none."""
    try:
        return pwd.getpwuid(uid).pw_name
    except (KeyError, OverflowError):
        return None
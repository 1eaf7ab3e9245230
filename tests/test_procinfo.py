import os
import time

import pytest

from sysmonview.procinfo import (
    BootInfo,
    enum_processes,
    process_name,
    read_boot_info,
    read_process,
    read_process_info,
    str_is_num,
    username_for_uid,
)

PID = 1234


def _stat_text():
    tokens = ["S"] + ["0"] * 51
    tokens[1] = "42"
    tokens[4] = str(0x8803)
    tokens[19] = "500"
    tokens[24] = "12345"
    return f"{PID} (my (odd) prog) " + " ".join(tokens) + "\n"


@pytest.fixture
def proc_root(tmp_path):
    root = tmp_path / "proc"
    entry = root / str(PID)
    entry.mkdir(parents=True)
    (entry / "cmdline").write_bytes(b"/usr/bin/my-tool\x00--flag\x00value\x00")
    (entry / "stat").write_text(_stat_text())
    (entry / "sessionid").write_text("7")
    image = tmp_path / "bin" / "my-tool"
    image.parent.mkdir()
    image.write_bytes(b"binary")
    workdir = tmp_path / "work"
    workdir.mkdir()
    os.symlink(image, entry / "exe")
    os.symlink(workdir, entry / "cwd")
    return root


def test_read_process_info_fields(proc_root):
    info = read_process_info(PID, BootInfo(boot_seconds=1000.0, clk_tck=100), proc_root)
    assert info.ppid == 42
    assert info.pts == 3
    assert info.process_key == 12345
    assert info.session_id == 7
    assert info.start_time == 10_050_000_000


def test_read_process_info_missing_session(proc_root):
    (proc_root / str(PID) / "sessionid").unlink()
    info = read_process_info(PID, BootInfo(), proc_root)
    assert info.session_id == 0xFFFFFFFF


def test_read_process_info_errors(proc_root, tmp_path):
    with pytest.raises(ValueError):
        read_process_info(0, BootInfo(), proc_root)
    with pytest.raises(FileNotFoundError):
        read_process_info(99, BootInfo(), proc_root)
    (proc_root / str(PID) / "stat").write_text("1234 no close paren S 1 2 3")
    with pytest.raises(ValueError):
        read_process_info(PID, BootInfo(), proc_root)


def test_read_process_full(proc_root, tmp_path):
    record = read_process(PID, None, BootInfo(), proc_root)
    assert record.command_line == "/usr/bin/my-tool --flag value"
    assert record.image_path == str(tmp_path / "bin" / "my-tool")
    assert record.current_directory == str(tmp_path / "work")
    assert record.uid == os.stat(proc_root / str(PID)).st_uid
    assert record.info.ppid == 42
    assert record.extension_sizes["CommandLine"] == len(record.command_line) + 1


def test_read_process_truncates_command_line(proc_root, tmp_path):
    image = str(tmp_path / "bin" / "my-tool")
    cwd = str(tmp_path / "work")
    room = len(image) + 1 + len(cwd) + 1 + 5
    record = read_process(PID, room, BootInfo(), proc_root)
    assert record.command_line == "/usr/bin/my-tool --flag value"[:5]
    assert record.current_directory == cwd
    assert record.image_path == image


def test_read_process_drops_everything_when_image_too_long(proc_root):
    record = read_process(PID, 3, BootInfo(), proc_root)
    assert (record.image_path, record.command_line, record.current_directory) == ("", "", "")


def test_read_process_drops_cwd_and_cmdline(proc_root, tmp_path):
    image = str(tmp_path / "bin" / "my-tool")
    record = read_process(PID, len(image) + 2, BootInfo(), proc_root)
    assert record.image_path == image
    assert record.current_directory == ""
    assert record.command_line == ""


def test_read_process_missing_cmdline(proc_root):
    with pytest.raises(FileNotFoundError):
        read_process(4321, None, BootInfo(), proc_root)


def test_process_name_from_cmdline(proc_root):
    assert process_name(PID, proc_root) == "my-tool"


def test_process_name_falls_back_to_exe(proc_root):
    (proc_root / str(PID) / "cmdline").write_bytes(b"")
    assert process_name(PID, proc_root) == "my-tool"


def test_process_name_without_slash(proc_root):
    (proc_root / str(PID) / "cmdline").write_bytes(b"sshd: worker\x00")
    assert process_name(PID, proc_root) == "sshd: worker"


def test_process_name_trailing_slash(proc_root):
    (proc_root / str(PID) / "cmdline").write_bytes(b"/usr/bin/\x00")
    with pytest.raises(ValueError):
        process_name(PID, proc_root)


def test_str_is_num():
    assert str_is_num("12345") is True
    assert str_is_num("") is False
    assert str_is_num(None) is False
    assert str_is_num("12a") is False
    assert str_is_num("-1") is False


def test_enum_processes(tmp_path):
    for name in ("1", "22", "333", "abc"):
        (tmp_path / name).mkdir()
    (tmp_path / "44").write_text("not a dir")
    os.symlink(tmp_path / "1", tmp_path / "self")
    assert sorted(enum_processes(None, tmp_path)) == [1, 22, 333]
    limited = enum_processes(2, tmp_path)
    assert len(limited) == 2
    assert set(limited) <= {1, 22, 333}


def test_read_boot_info(tmp_path):
    proc = tmp_path / "proc"
    etc = tmp_path / "etc"
    proc.mkdir()
    etc.mkdir()
    (proc / "uptime").write_text("100.50 200.00\n")
    (etc / "machine-id").write_text("0123abcd0000000000000000000000ff\n")
    before = time.time()
    info = read_boot_info(proc, etc)
    after = time.time()
    assert before - 100.5 - 1 <= info.boot_seconds <= after - 100.5 + 1
    assert info.machine_id == 0x0123ABCD
    assert info.clk_tck > 0


def test_read_boot_info_missing_files(tmp_path):
    info = read_boot_info(tmp_path / "none", tmp_path / "none")
    assert info.boot_seconds == 0.0
    assert info.machine_id == 0


def test_read_boot_info_empty_uptime(tmp_path):
    (tmp_path / "uptime").write_text("")
    assert read_boot_info(tmp_path, tmp_path) == BootInfo()


def test_username_for_uid():
    import pwd

    uid = os.getuid()
    try:
        expected = pwd.getpwuid(uid).pw_name
    except KeyError:
        expected = None
    assert username_for_uid(uid) == expected
    assert username_for_uid(987654321) is None
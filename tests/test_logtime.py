import pytest

from sysmonview.logtime import (
    format_ms,
    in_range,
    parse_time_range,
    system_time_str_to_ms,
    time_str_to_ms,
)


def test_seconds_and_millis_add_to_minute_base():
    base = time_str_to_ms("2021-06-15 10:30")
    assert time_str_to_ms("2021-06-15 10:30:00") == base
    assert time_str_to_ms("2021-06-15 10:30:07") - base == 7 * 1000
    assert time_str_to_ms("2021-06-15 10:30:07.250") - base == 7 * 1000 + 250


def test_later_time_is_larger():
    assert time_str_to_ms("2021-06-15 10:31") > time_str_to_ms("2021-06-15 10:30:59.999")


def test_bad_time_raises():
    with pytest.raises(ValueError):
        time_str_to_ms("yesterday")
    with pytest.raises(ValueError):
        time_str_to_ms("2021-13-01 10:00")


def test_malformed_seconds_fall_back_to_minute():
    assert time_str_to_ms("2021-06-15 10:30:xx") == time_str_to_ms("2021-06-15 10:30")


def test_system_time_matches_user_time():
    user = time_str_to_ms("2021-06-15 10:30:07.123")
    system = system_time_str_to_ms("2021-06-15T10:30:07.123456789Z")
    assert system == user


def test_system_time_requires_fraction():
    with pytest.raises(ValueError):
        system_time_str_to_ms("2021-06-15T10:30:07Z")
    with pytest.raises(ValueError):
        system_time_str_to_ms("2021-06-15 10:30:07.0Z")


def test_parse_time_range_both():
    start, end = parse_time_range("2021-06-15 10:00,2021-06-15 11:00")
    assert start == time_str_to_ms("2021-06-15 10:00")
    assert end == time_str_to_ms("2021-06-15 11:00")


def test_parse_time_range_open_ends():
    assert parse_time_range(",2021-06-15 11:00") == (None, time_str_to_ms("2021-06-15 11:00"))
    assert parse_time_range("2021-06-15 10:00") == (time_str_to_ms("2021-06-15 10:00"), None)
    assert parse_time_range("") == (None, None)
    assert parse_time_range(",") == (None, None)


def test_parse_time_range_bad_side_is_none():
    assert parse_time_range("junk,2021-06-15 11:00") == (None, time_str_to_ms("2021-06-15 11:00"))


def test_in_range():
    assert in_range((None, None), 5)
    assert in_range((5, 10), 5)
    assert in_range((5, 10), 10)
    assert not in_range((5, 10), 4)
    assert not in_range((5, 10), 11)
    assert in_range((None, 10), 0)
    assert not in_range((5, None), 1)


def test_format_ms():
    assert format_ms(None) == "-1"
    assert format_ms(0) == "1970-01-01 00:00:00.000"
    assert format_ms(1500).endswith(":01.500")
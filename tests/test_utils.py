"""
Input parsing for race results, bib numbers and composite participation ids.
"""

from __future__ import annotations

import pytest

from marathon_portal.errors import InvalidArgument, ValidationError
from marathon_portal.utils import (
    normalize_time_record,
    parse_entry_number,
    parse_participation_id,
    parse_standings,
)


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("09:30", "09:30:00"),
        ("9:30", "09:30:00"),
        ("3:45:10", "03:45:10"),
        ("23:59:59", "23:59:59"),
        ("2:5:00", "02:05:00"),
        (" 0:00 ", "00:00:00"),
    ],
)
def test_time_record_is_normalized(raw: str, expected: str) -> None:
    assert normalize_time_record(raw) == expected


def test_hours_out_of_range() -> None:
    with pytest.raises(ValidationError) as exc_info:
        normalize_time_record("25:00")
    assert "hours must be 0-23" in str(exc_info.value)


def test_minutes_and_seconds_out_of_range_name_the_component() -> None:
    with pytest.raises(ValidationError, match="minutes"):
        normalize_time_record("10:60")
    with pytest.raises(ValidationError, match="seconds"):
        normalize_time_record("10:30:61")


@pytest.mark.parametrize("raw", ["", "abc", "10", "1:2:3:4", "100:00", "10-30", None])
def test_malformed_time_is_rejected(raw) -> None:
    with pytest.raises(ValidationError):
        normalize_time_record(raw)


def test_standings_parse() -> None:
    assert parse_standings(12) == 12
    assert parse_standings(" 7 ") == 7
    with pytest.raises(ValidationError):
        parse_standings("first")
    with pytest.raises(ValidationError):
        parse_standings(None)


def test_entry_number_must_be_positive_integer() -> None:
    assert parse_entry_number("15") == 15
    assert parse_entry_number(3) == 3
    for bad in (0, -4, "abc", "1.5", 2.5, True):
        with pytest.raises(InvalidArgument):
            parse_entry_number(bad)


def test_participation_id_round_trip_and_errors() -> None:
    assert parse_participation_id("3-7") == (3, 7)
    for bad in ("3", "3-7-1", "a-7", "3-", "-3-7", "3-²", "٣-7"):
        with pytest.raises(ValidationError):
            parse_participation_id(bad)


@pytest.mark.parametrize("raw", ["٠٩:٣٠", "0９:30", "09:3٠:00"])
def test_time_record_only_accepts_ascii_digits(raw: str) -> None:
    with pytest.raises(ValidationError):
        normalize_time_record(raw)


def test_numbers_only_accept_ascii_digits() -> None:
    with pytest.raises(ValidationError):
        parse_standings("١٢")
    with pytest.raises(InvalidArgument):
        parse_entry_number("４２")

"""
Tests for lenient cell coercion helpers.
"""
import pytest

from mma_importer.utils.coercion import (
    CombinedStrikes,
    is_blank,
    parse_boolean,
    parse_combined_sig_str,
    parse_control_time,
    parse_int,
    parse_number,
    parse_optional_int,
    parse_percent,
    parse_time,
)


@pytest.mark.parametrize("raw,expected", [
    ("52.3%", 52.3),
    ("$1,200", 1200.0),
    ("-4", -4.0),
    ("abc", 0.0),
    ("", 0.0),
    (None, 0.0),
])
def test_parse_number(raw, expected):
    assert parse_number(raw) == expected


def test_parse_number_uses_caller_default():
    assert parse_number("n/a", default=-1.0) == -1.0


@pytest.mark.parametrize("raw,expected", [
    ("28", 28),
    (" 28 ", 28),
    ("6.9", 6),
    ("1,024", 1024),
    ("NULL", 0),
    ("", 0),
])
def test_parse_int(raw, expected):
    assert parse_int(raw) == expected


def test_parse_int_default():
    assert parse_int("", 3) == 3
    assert parse_int("none", 5) == 5


def test_parse_optional_int_keeps_zero_distinct_from_absent():
    assert parse_optional_int("0") == 0
    assert parse_optional_int("") is None
    assert parse_optional_int("   ") is None
    assert parse_optional_int("NULL") is None
    assert parse_optional_int("n/a") is None
    assert parse_optional_int("12") == 12


@pytest.mark.parametrize("raw", ["true", "TRUE", "yes", "Y", "1", " y "])
def test_parse_boolean_truthy(raw):
    assert parse_boolean(raw) is True


@pytest.mark.parametrize("raw", ["false", "no", "0", "", None, "maybe", "Title Bout"])
def test_parse_boolean_falsy(raw):
    assert parse_boolean(raw) is False


def test_is_blank():
    assert is_blank(None)
    assert is_blank("  ")
    assert is_blank("NULL")
    assert not is_blank("0")


@pytest.mark.parametrize("raw,expected", [
    ("4:59", "4:59"),
    ("299", "4:59"),
    ("60", "1:00"),
    ("5", "0:05"),
    ("", "0:00"),
    (None, "0:00"),
])
def test_parse_time(raw, expected):
    assert parse_time(raw) == expected


@pytest.mark.parametrize("raw,expected", [
    ("2:30", 150),
    ("150", 150),
    ("0:07", 7),
    ("", 0),
])
def test_parse_control_time(raw, expected):
    assert parse_control_time(raw) == expected


@pytest.mark.parametrize("raw,expected", [
    ("10 of 20 - 50%", CombinedStrikes(10, 20, 50)),
    ("10 OF 20 - 50", CombinedStrikes(10, 20, 50)),
    ("7of9-77%", CombinedStrikes(7, 9, 77)),
])
def test_parse_combined_sig_str(raw, expected):
    assert parse_combined_sig_str(raw) == expected


@pytest.mark.parametrize("raw", ["", "NULL", "10/20", None])
def test_parse_combined_sig_str_no_match(raw):
    assert parse_combined_sig_str(raw) is None


def test_parse_percent():
    assert parse_percent("45%") == 45
    assert parse_percent("Head 45%") == 45
    assert parse_percent("NULL") is None
    assert parse_percent("-") is None

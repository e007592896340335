"""
Tests for the quote-aware CSV parser used by the import wizard.
"""
import pytest

from mma_importer.domain.imports.processors.csv_processor import decode_upload, parse_csv, split_csv_line


def test_quoted_comma_stays_in_one_cell():
    headers, rows = parse_csv('name,note\n"Doe, John","hi"')

    assert headers == ["name", "note"]
    assert rows == [{"name": "Doe, John", "note": "hi"}]


def test_header_and_cell_whitespace_is_trimmed():
    headers, rows = parse_csv(" first_name , last_name \n  Jon ,Jones  ")

    assert headers == ["first_name", "last_name"]
    assert rows[0] == {"first_name": "Jon", "last_name": "Jones"}


def test_short_rows_are_back_filled_with_empty_strings():
    headers, rows = parse_csv("a,b,c\n1,2")

    assert rows == [{"a": "1", "b": "2", "c": ""}]


def test_extra_values_are_dropped(caplog):
    with caplog.at_level("WARNING"):
        headers, rows = parse_csv("a,b\n1,2,3,4")

    assert rows == [{"a": "1", "b": "2"}]
    assert "more values than headers" in caplog.text


def test_blank_lines_are_skipped():
    headers, rows = parse_csv("a,b\n1,2\n\n   \n3,4\n")

    assert [r["a"] for r in rows] == ["1", "3"]


def test_empty_content_returns_no_headers():
    assert parse_csv("") == ([], [])
    assert parse_csv("\n\n  \n") == ([], [])


def test_header_only_file_has_no_rows():
    headers, rows = parse_csv("first_name,last_name\n")

    assert headers == ["first_name", "last_name"]
    assert rows == []


def test_crlf_line_endings():
    headers, rows = parse_csv("a,b\r\n1,2\r\n3,4\r\n")

    assert headers == ["a", "b"]
    assert len(rows) == 2
    assert rows[1] == {"a": "3", "b": "4"}


def test_combined_strike_cell_is_not_split():
    headers, rows = parse_csv('fighter,r1_sig_str\nJon Jones,"10 of 20 - 50%"')

    assert rows[0]["r1_sig_str"] == "10 of 20 - 50%"


def test_split_csv_line_strips_all_quotes():
    assert split_csv_line('"a","b, c",d') == ["a", "b, c", "d"]


def test_decode_upload_strips_byte_order_mark():
    content = "\ufefffirst_name,last_name\nJon,Jones".encode("utf-8")

    headers, _ = parse_csv(decode_upload(content))

    assert headers[0] == "first_name"


def test_decode_upload_rejects_non_utf8():
    with pytest.raises(UnicodeDecodeError):
        decode_upload(b"\xff\xfe\x00bad")

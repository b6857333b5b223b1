from __future__ import annotations

import pytest

from kvlog import ReadError
from kvlog.record import encode_record, split_record


def test_encode_record():
    assert encode_record("k", '"v"') == b'k,"v"\n'
    assert encode_record("", "1") == b",1\n"


def test_encode_record_is_utf8():
    assert encode_record("k", '"é"') == 'k,"é"\n'.encode()


def test_split_on_single_comma():
    assert split_record("a,b", 0) == ("a", "b")


def test_split_on_first_comma_only():
    assert split_record("a,b,c", 0) == ("a", "b,c")
    assert split_record('k,"a,b"\n', 3) == ("k", '"a,b"')


def test_split_strips_one_newline():
    assert split_record("a,b\n", 0) == ("a", "b")


def test_split_empty_key_and_value():
    assert split_record(",", 0) == ("", "")


def test_split_without_separator_names_line():
    with pytest.raises(ReadError) as excinfo:
        split_record("garbage\n", 7)
    err = excinfo.value
    assert err.line_number == 7
    assert err.line == "garbage"
    assert "line 7" in str(err)
    assert "`garbage`" in str(err)

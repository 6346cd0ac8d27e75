"""Tests for identifier and index validation helpers."""

import pytest

from common.exceptions import (
    InvalidIdentifierError,
    MissingFileNameError,
    MissingIdentifierError,
    MissingIndexError,
)
from common.utils import (
    generate_upload_id,
    is_safe_name,
    parse_chunk_index,
    require_file_name,
    require_upload_id,
)


@pytest.mark.parametrize("raw, expected", [("0", 0), ("7", 7), (" 12 ", 12), (3, 3), ("007", 7)])
def test_parse_chunk_index_valid(raw, expected):
    assert parse_chunk_index(raw) == expected


@pytest.mark.parametrize("raw", [None, "", "abc", "-1", "1.5", -2, True, "²"])
def test_parse_chunk_index_invalid(raw):
    with pytest.raises(MissingIndexError):
        parse_chunk_index(raw)


@pytest.mark.parametrize("name", ["abc123", "greeting.txt", "my file (1).bin"])
def test_safe_names(name):
    assert is_safe_name(name)


@pytest.mark.parametrize("name", ["", ".", "..", ".hidden", "a/b", "..\\x", "nul\x00"])
def test_unsafe_names(name):
    assert not is_safe_name(name)


def test_require_upload_id():
    assert require_upload_id("abc123") == "abc123"
    with pytest.raises(MissingIdentifierError):
        require_upload_id(None)
    with pytest.raises(MissingIdentifierError):
        require_upload_id("")
    with pytest.raises(InvalidIdentifierError):
        require_upload_id("../etc")


def test_require_file_name():
    assert require_file_name("greeting.txt") == "greeting.txt"
    with pytest.raises(MissingFileNameError):
        require_file_name(None)
    with pytest.raises(InvalidIdentifierError):
        require_file_name("../../passwd")


def test_generate_upload_id_is_safe_and_unique():
    first = generate_upload_id()
    second = generate_upload_id()
    assert first != second
    assert is_safe_name(first)

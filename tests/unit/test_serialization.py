"""Unit tests for PHP serialization helpers."""

import pytest

from s3_media_migrator.utils.serialization import (
    as_list,
    is_serialized,
    maybe_unserialize,
    serialize,
    unserialize,
)


class TestIsSerialized:
    @pytest.mark.parametrize(
        "value",
        ["N;", "b:1;", "i:42;", "d:0.5;", 's:3:"abc";', 'a:1:{i:0;s:1:"x";}'],
    )
    def test_serialized_values(self, value):
        assert is_serialized(value)

    @pytest.mark.parametrize("value", ["", "abc", "2.6.1", "https://example.com", None, 5])
    def test_plain_values(self, value):
        assert not is_serialized(value)


def test_serialize_matches_php_format():
    assert serialize({"key": "2023/05/a.jpg"}) == 'a:1:{s:3:"key";s:13:"2023/05/a.jpg";}'


def test_unserialize_decodes_strings():
    assert unserialize('a:1:{s:4:"file";s:5:"a.jpg";}') == {"file": "a.jpg"}


def test_unserialize_counts_bytes_not_characters():
    assert unserialize('s:6:"cafés";') == "cafés"


def test_unserialize_invalid_raises_value_error():
    with pytest.raises(ValueError):
        unserialize("not serialized")


def test_maybe_unserialize_leaves_plain_strings():
    assert maybe_unserialize("https://example.com") == "https://example.com"
    assert maybe_unserialize("b:0;") is False


def test_as_list():
    assert as_list(unserialize('a:2:{i:0;s:1:"a";i:1;s:1:"b";}')) == ["a", "b"]
    assert as_list(["a"]) == ["a"]
    assert as_list("a") == []

from __future__ import annotations

import pytest

from kvlog import JsonCodec, get_codec, register_codec
from kvlog.codec import codec_names


class _BadTombstone:
    def __init__(self, tombstone):
        self.tombstone = tombstone

    def encode(self, value):
        return str(value)

    def decode(self, text):
        return text


def test_json_codec_is_compact():
    codec = JsonCodec()
    assert codec.encode({"n": 1}) == '{"n":1}'
    assert codec.encode([1, "a,b"]) == '[1,"a,b"]'
    assert codec.encode("hello") == '"hello"'
    assert codec.encode(42) == "42"


def test_json_codec_keeps_unicode_and_escapes_newlines():
    codec = JsonCodec()
    assert codec.encode("héllo") == '"héllo"'
    assert "\n" not in codec.encode("two\nlines")
    assert codec.decode(codec.encode("two\nlines")) == "two\nlines"


def test_json_codec_refuses_none():
    with pytest.raises(ValueError, match="unset"):
        JsonCodec().encode(None)


def test_json_codec_refuses_nan():
    with pytest.raises(ValueError):
        JsonCodec().encode(float("nan"))


def test_json_tombstone():
    codec = JsonCodec()
    assert codec.tombstone == "null"
    assert codec.decode(codec.tombstone) is None


def test_default_registry_has_json():
    assert "json" in codec_names()
    assert isinstance(get_codec("json"), JsonCodec)


def test_unknown_codec():
    with pytest.raises(ValueError, match="Unknown codec: nope"):
        get_codec("nope")


@pytest.mark.parametrize("tombstone", ["", "a\nb", "x\r", None, 0])
def test_register_rejects_bad_tombstone(tombstone):
    with pytest.raises(ValueError, match="tombstone"):
        register_codec(f"bad-{tombstone!r}", _BadTombstone(tombstone))


def test_register_rejects_duplicate_name():
    with pytest.raises(ValueError, match="already registered"):
        register_codec("json", JsonCodec())

"""Value codecs: how values are turned into record text and back.

A codec has three parts:

    tombstone   reserved literal marking a deleted key; never produced by encode()
    encode(v)   value -> single-line text
    decode(t)   text -> value

The default is JsonCodec (compact JSON, tombstone ``null``):

    foo,"hello"
    bar,42
    foo,null        # tombstone: foo is now absent
    baz,{"n":1}

Codecs are looked up by name through a small registry so the CLI and
kvlog.toml can select one.
"""

from __future__ import annotations

import json
from typing import Any, Protocol, TypeVar

T = TypeVar("T")

JSON_TOMBSTONE = "null"


class ValueCodec(Protocol[T]):
    """Converts values of one type to and from single-line text."""

    tombstone: str

    def encode(self, value: T) -> str:
        """Return the text form of value. Must not return the tombstone."""
        ...

    def decode(self, text: str) -> T:
        """Parse text produced by encode()."""
        ...


class JsonCodec:
    """Compact JSON, as written by ``json.dumps(separators=(",", ":"))``."""

    tombstone = JSON_TOMBSTONE

    def encode(self, value: Any) -> str:
        if value is None:
            # JSON null is the tombstone; a live None cannot be stored.
            msg = "None cannot be stored as a value (use unset to remove a key)"
            raise ValueError(msg)
        return json.dumps(value, separators=(",", ":"), ensure_ascii=False, allow_nan=False)

    def decode(self, text: str) -> Any:
        return json.loads(text)

    def __repr__(self) -> str:
        return "JsonCodec()"


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

_CODECS: dict[str, ValueCodec[Any]] = {}


def check_tombstone(tombstone: object) -> str:
    """Validate a codec's tombstone literal and return it."""
    if not isinstance(tombstone, str) or not tombstone:
        msg = f"Codec tombstone must be a non-empty string, got {tombstone!r}"
        raise ValueError(msg)
    if "\n" in tombstone or "\r" in tombstone:
        msg = f"Codec tombstone must be a single line, got {tombstone!r}"
        raise ValueError(msg)
    return tombstone


def register_codec(name: str, codec: ValueCodec[Any]) -> None:
    """Register codec under name. Raises ValueError on a bad tombstone or a taken name."""
    check_tombstone(getattr(codec, "tombstone", None))
    if name in _CODECS:
        msg = f"Codec already registered: {name}"
        raise ValueError(msg)
    _CODECS[name] = codec


def get_codec(name: str) -> ValueCodec[Any]:
    try:
        return _CODECS[name]
    except KeyError:
        known = ", ".join(sorted(_CODECS))
        msg = f"Unknown codec: {name} (known: {known})"
        raise ValueError(msg) from None


def codec_names() -> list[str]:
    return sorted(_CODECS)


register_codec("json", JsonCodec())

"""Persistent key-value store backed by a single append-only log file.

Log format (UTF-8, one record per line):
    <key>,<value-text>\\n

    foo,"hello"
    bar,42
    foo,null        # tombstone: foo removed
    baz,{"n":1}

Folding the log oldest-to-newest gives the current map: {"bar": 42, "baz": {"n": 1}}.

Keys use [0-9A-Za-z :/.] only, so the first comma always separates key from
value. Values go through an injected codec (JsonCodec by default); the codec
reserves one literal as the tombstone.

Records are only ever appended. There is no index: every read scans the log.
"""

from kvlog.codec import JsonCodec, ValueCodec, get_codec, register_codec
from kvlog.errors import InvalidKeyError, ReadError, StoreClosedError, StoreError, WriteError
from kvlog.keys import is_valid_key, validate_key
from kvlog.store import Store

__all__ = [
    "InvalidKeyError",
    "JsonCodec",
    "ReadError",
    "Store",
    "StoreClosedError",
    "StoreError",
    "ValueCodec",
    "WriteError",
    "get_codec",
    "is_valid_key",
    "register_codec",
    "validate_key",
]

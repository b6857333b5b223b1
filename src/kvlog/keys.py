"""Key validation.

Keys are restricted so that a record line needs no escaping: no comma (the
record separator) and no newline (the record terminator).
"""

from __future__ import annotations

import re

from kvlog.errors import InvalidKeyError

_KEY_RE = re.compile(r"[0-9A-Za-z :/.]*")


def validate_key(key: str) -> str:
    """Return key unchanged if every character is allowed, else raise InvalidKeyError."""
    if _KEY_RE.fullmatch(key) is None:
        raise InvalidKeyError(key)
    return key


def is_valid_key(key: str) -> bool:
    return _KEY_RE.fullmatch(key) is not None

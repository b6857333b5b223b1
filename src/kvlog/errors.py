"""Exceptions raised by the log store.

Every error the store raises derives from StoreError, so callers (the CLI in
particular) can catch one type.
"""

from __future__ import annotations


class StoreError(Exception):
    """Base class for store failures."""


class InvalidKeyError(StoreError):
    """A key contains characters outside the allowed set."""

    def __init__(self, key: str) -> None:
        self.key = key
        super().__init__(f"Key `{key}` contains invalid characters")


class WriteError(StoreError):
    """Appending a record failed (I/O or value encoding)."""

    def __init__(self, cause: str) -> None:
        self.cause = cause
        super().__init__(f"Unable to write record: {cause}")


class ReadError(StoreError):
    """Scanning the log failed (I/O, malformed line, or value decoding)."""

    def __init__(self, cause: str, *, line_number: int | None = None, line: str | None = None) -> None:
        self.cause = cause
        self.line_number = line_number
        self.line = line
        super().__init__(f"Unable to read record: {cause}")

    @classmethod
    def invalid_line(cls, line_number: int, line: str) -> ReadError:
        return cls(f"Invalid data at line {line_number}: `{line}`", line_number=line_number, line=line)


class StoreClosedError(StoreError):
    """The store handle (and every clone of it) has been closed."""

    def __init__(self, path: object) -> None:
        super().__init__(f"Store is closed: {path}")

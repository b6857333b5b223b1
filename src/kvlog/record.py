"""Record line format: ``<key>,<value-text>\\n``.

Keys never contain a comma (see kvlog.keys), so the first comma on a line is
always the separator. Value text may contain further commas.
"""

from __future__ import annotations

from kvlog.errors import ReadError


def encode_record(key: str, text: str) -> bytes:
    """Encode one record as a UTF-8 line, newline included."""
    return f"{key},{text}\n".encode()


def split_record(line: str, line_number: int) -> tuple[str, str]:
    """Split a log line into (key, value text) on the first comma.

    A single trailing newline is ignored. Raises ReadError naming the
    zero-based line number when the line has no separator.
    """
    if line.endswith("\n"):
        line = line[:-1]
    key, sep, text = line.partition(",")
    if not sep:
        raise ReadError.invalid_line(line_number, line)
    return key, text

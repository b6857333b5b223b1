"""Append-only log store.

Store is the public API:
    store = Store.open("/path/to/db.log")
    store.set("greeting", "hello")
    store.get("greeting")         # -> "hello"
    store.unset("greeting")       # appends a tombstone
    store.load_map()              # -> {} (fold of the whole log)

Writes append one ``<key>,<value>\\n`` line; reads rewind and fold the log
from the first line to the last, so the last record for a key wins.

Concurrent writes: every Store clone shares one file descriptor opened with
O_APPEND and one threading.Lock held for a whole append or scan. Lines of
PIPE_BUF bytes or more are also written under flock(LOCK_EX), since O_APPEND
only guarantees atomicity for shorter writes.
"""

from __future__ import annotations

import contextlib
import fcntl
import io
import logging
import os
import threading
from pathlib import Path
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from kvlog.codec import ValueCodec, check_tombstone, get_codec
from kvlog.errors import ReadError, StoreClosedError, StoreError, WriteError
from kvlog.keys import validate_key
from kvlog.record import encode_record, split_record

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

T = TypeVar("T")
Acc = TypeVar("Acc")

logger = logging.getLogger("kvlog.store")

_PIPE_BUF = 4096
_TAIL_CHUNK = 8192


@contextlib.contextmanager
def _flocked(raw: io.FileIO) -> Iterator[None]:
    fcntl.flock(raw, fcntl.LOCK_EX)
    try:
        yield
    finally:
        fcntl.flock(raw, fcntl.LOCK_UN)


class _LogFile:
    """An open log file and the lock guarding its cursor. Shared by Store clones."""

    def __init__(self, path: Path, *, sync: bool = False) -> None:
        self.path = path
        self.sync = sync
        self.lock = threading.Lock()
        self.handles = 0
        # a+b: create if missing, never truncate, every write goes to EOF.
        self._raw: io.FileIO | None = open(path, "a+b", buffering=0)  # noqa: SIM115

    @property
    def closed(self) -> bool:
        return self._raw is None

    def _require_open(self) -> io.FileIO:
        if self._raw is None:
            raise StoreClosedError(self.path)
        return self._raw

    # ------------------------------------------------------------------
    # Write side
    # ------------------------------------------------------------------

    def append(self, line: bytes) -> None:
        """Append one encoded record with a single write request."""
        with self.lock:
            raw = self._require_open()
            try:
                if len(line) >= _PIPE_BUF:
                    with _flocked(raw):
                        _write_all(raw, line)
                else:
                    _write_all(raw, line)
                if self.sync:
                    os.fsync(raw.fileno())
            except OSError as exc:
                raise WriteError(str(exc)) from exc

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    def scan(self, step: Callable[[str, str, Acc], Acc], initial: Acc) -> Acc:
        """Fold step over every record, oldest first.

        Value-decoding failures inside step (ValueError / TypeError) and I/O
        failures become ReadError; StoreErrors raised by step pass through.
        """
        with self.lock:
            raw = self._require_open()
            acc = initial
            line_number = 0
            try:
                raw.seek(0)
                reader = io.BufferedReader(raw)
                try:
                    for line_number, data in enumerate(reader):
                        key, text = split_record(data.decode("utf-8"), line_number)
                        acc = step(key, text, acc)
                finally:
                    reader.detach()
            except StoreError:
                raise
            except OSError as exc:
                raise ReadError(str(exc)) from exc
            except (ValueError, TypeError) as exc:
                msg = f"{exc} (line {line_number})"
                raise ReadError(msg, line_number=line_number) from exc
            return acc

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------

    def repair_tail(self) -> int:
        """Truncate bytes after the last newline. Returns the number dropped."""
        with self.lock:
            raw = self._require_open()
            with _flocked(raw):
                fd = raw.fileno()
                size = os.fstat(fd).st_size
                keep = 0
                pos = size
                while pos > 0:
                    start = max(0, pos - _TAIL_CHUNK)
                    chunk = os.pread(fd, pos - start, start)
                    idx = chunk.rfind(b"\n")
                    if idx != -1:
                        keep = start + idx + 1
                        break
                    pos = start
                if keep < size:
                    os.ftruncate(fd, keep)
                return size - keep

    def acquire(self) -> None:
        """Register one more Store handle on this file."""
        with self.lock:
            self._require_open()
            self.handles += 1

    def release(self) -> bool:
        """Drop one handle; close the file when none remain. Returns True if closed."""
        with self.lock:
            self.handles -= 1
            if self.handles > 0 or self._raw is None:
                return False
            self._raw.close()
            self._raw = None
            return True

    def close(self) -> None:
        with self.lock:
            if self._raw is not None:
                self._raw.close()
                self._raw = None


def _write_all(raw: io.FileIO, data: bytes) -> None:
    view = memoryview(data)
    while view:
        written = raw.write(view)
        if not written:
            msg = "short write"
            raise OSError(msg)
        view = view[written:]


class Store(Generic[T]):
    """Key-value store over one append-only log file.

    Handles are cheap to clone; every clone shares the file, its cursor and
    its lock. Closing a handle only retires that handle; the file is closed
    once every clone has been closed.
    """

    def __init__(self, log: _LogFile, codec: ValueCodec[T]) -> None:
        log.acquire()
        self._log = log
        self._codec = codec
        self._closed = False

    @classmethod
    def open(
        cls,
        path: Path | str,
        codec: ValueCodec[Any] | None = None,
        *,
        repair_tail: bool = False,
        sync: bool = False,
    ) -> Store[Any]:
        """Open (creating if missing) the log at path.

        repair_tail drops a partial trailing line left by a crash mid-append;
        without it such a line makes every scan fail with ReadError.
        sync fsyncs after each append.
        """
        if codec is None:
            codec = get_codec("json")
        check_tombstone(codec.tombstone)

        log = _LogFile(Path(path), sync=sync)
        logger.debug("opened %s (codec=%r, sync=%s)", log.path, codec, sync)
        if repair_tail:
            try:
                dropped = log.repair_tail()
            except BaseException:
                log.close()
                raise
            if dropped:
                logger.warning("dropped %d byte(s) of partial record at end of %s", dropped, log.path)
        return cls(log, codec)

    # ------------------------------------------------------------------
    # Handle
    # ------------------------------------------------------------------

    @property
    def path(self) -> Path:
        return self._log.path

    @property
    def codec(self) -> ValueCodec[T]:
        return self._codec

    @property
    def closed(self) -> bool:
        return self._closed

    def clone(self) -> Store[T]:
        """Return another handle on the same file and lock."""
        return Store(self._live(), self._codec)

    __copy__ = clone

    def close(self) -> None:
        """Close this handle. The file itself closes with the last open clone."""
        if self._closed:
            return
        self._closed = True
        if self._log.release():
            logger.debug("closed %s", self._log.path)

    def _live(self) -> _LogFile:
        if self._closed:
            raise StoreClosedError(self._log.path)
        return self._log

    def __enter__(self) -> Store[T]:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def __repr__(self) -> str:
        state = "closed" if self.closed else "open"
        return f"Store({str(self.path)!r}, {state})"

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    def set(self, key: str, value: T) -> None:
        """Append ``key,<encoded value>``."""
        key = validate_key(key)
        try:
            text = self._codec.encode(value)
        except (TypeError, ValueError) as exc:
            raise WriteError(str(exc)) from exc
        if text == self._codec.tombstone:
            msg = f"value for `{key}` encodes to the tombstone literal {text!r}"
            raise WriteError(msg)
        if "\n" in text:
            msg = f"encoded value for `{key}` contains a newline"
            raise WriteError(msg)
        self._live().append(encode_record(key, text))

    def unset(self, key: str) -> None:
        """Append a tombstone for key. Earlier records are kept."""
        key = validate_key(key)
        self._live().append(encode_record(key, self._codec.tombstone))

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def scan(self, step: Callable[[str, str, Acc], Acc], initial: Acc) -> Acc:
        """Fold step(key, value_text, acc) over every record in append order."""
        return self._live().scan(step, initial)

    def get(self, key: str) -> T | None:
        """Return the current value for key, or None if absent or deleted."""
        key = validate_key(key)
        codec = self._codec

        def step(k: str, text: str, value: T | None) -> T | None:
            if k != key:
                return value
            if text == codec.tombstone:
                return None
            return codec.decode(text)

        return self._live().scan(step, None)

    def contains(self, key: str) -> bool:
        key = validate_key(key)
        tombstone = self._codec.tombstone

        def step(k: str, text: str, present: bool) -> bool:
            return text != tombstone if k == key else present

        return self._live().scan(step, False)

    def load_map(self) -> dict[str, T]:
        """Fold the whole log into a dict of live keys."""
        codec = self._codec

        def step(k: str, text: str, mapping: dict[str, T]) -> dict[str, T]:
            value = None if text == codec.tombstone else codec.decode(text)
            if value is None:
                mapping.pop(k, None)
            else:
                mapping[k] = value
            return mapping

        return self._live().scan(step, {})

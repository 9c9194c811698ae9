from __future__ import annotations

import queue
import threading
from typing import Optional, Protocol, Sequence, runtime_checkable

from procshell.errors import LineBufferOverflowError

DEFAULT_LINE_BUFFER_SIZE = 16384


@runtime_checkable
class ByteWriter(Protocol):
    def write(self, data: bytes) -> int: ...


def _strip_cr(line: bytes) -> bytes:
    if line.endswith(b"\r"):
        return line[:-1]
    return line


def _decode(data: bytes) -> str:
    return data.decode("utf-8", errors="replace")


class OutputBuffer(ByteWriter):
    """
    Thread-safe accumulating byte buffer.

    lines() keeps a cursor into the buffer, so each complete line is split
    out once and cached. An unterminated tail is returned as a provisional
    last element but is not cached until its newline arrives.
    """

    def __init__(self) -> None:
        self._buf = bytearray()
        self._lines: list[str] = []
        self._cursor = 0
        self._lock = threading.Lock()

    def write(self, data: bytes) -> int:
        with self._lock:
            self._buf.extend(data)
        return len(data)

    def lines(self) -> list[str]:
        with self._lock:
            while True:
                idx = self._buf.find(b"\n", self._cursor)
                if idx < 0:
                    break
                self._lines.append(_decode(_strip_cr(bytes(self._buf[self._cursor : idx]))))
                self._cursor = idx + 1
            out = list(self._lines)
            if self._cursor < len(self._buf):
                out.append(_decode(_strip_cr(bytes(self._buf[self._cursor :]))))
            return out

    def getvalue(self) -> bytes:
        with self._lock:
            return bytes(self._buf)

    def text(self) -> str:
        return _decode(self.getvalue())

    def __len__(self) -> int:
        with self._lock:
            return len(self._buf)


class OutputStream(ByteWriter):
    """
    Incremental line framer feeding a queue.

    Each complete line (without its "\\n" or "\\r\\n") is put on the queue as
    soon as its newline is written. put() blocks when a bounded queue is full.
    The tail of an unterminated line is carried over between writes, up to
    line_buffer_size bytes.
    """

    def __init__(
        self,
        stream_queue: "queue.Queue[Optional[str]]",
        line_buffer_size: int = DEFAULT_LINE_BUFFER_SIZE,
    ) -> None:
        self._queue = stream_queue
        self._carry = bytearray()
        self._capacity = DEFAULT_LINE_BUFFER_SIZE
        self._used = False
        self.set_line_buffer_size(line_buffer_size)

    @property
    def line_buffer_size(self) -> int:
        return self._capacity

    def set_line_buffer_size(self, n: int) -> None:
        if self._used:
            raise RuntimeError("line buffer size can only be changed before the first write")
        if n <= 0:
            raise ValueError("line buffer size must be positive")
        self._capacity = n

    def write(self, data: bytes) -> int:
        self._used = True
        first = 0
        total = len(data)

        while True:
            nl = data.find(b"\n", first)
            if nl < 0:
                break
            line = bytes(data[first:nl])
            if self._carry:
                line = bytes(self._carry) + line
                self._carry.clear()
            self._queue.put(_decode(_strip_cr(line)))
            first = nl + 1

        if first < total:
            remain = total - first
            if len(self._carry) + remain > self._capacity:
                raise LineBufferOverflowError(consumed=first, capacity=self._capacity)
            self._carry.extend(data[first:])

        return total

    def flush(self) -> None:
        if not self._carry:
            return
        line = _strip_cr(bytes(self._carry))
        self._carry.clear()
        self._queue.put(_decode(line))

    def lines(self) -> "queue.Queue[Optional[str]]":
        return self._queue


class TeeWriter(ByteWriter):
    """Copies every write to all of its sinks, in order."""

    def __init__(self, sinks: Sequence[ByteWriter]) -> None:
        self._sinks = list(sinks)

    def write(self, data: bytes) -> int:
        for sink in self._sinks:
            sink.write(data)
        return len(data)

import queue
import threading
from typing import Optional

import pytest

from procshell.errors import LineBufferOverflowError
from procshell.proc.buffers import OutputBuffer, OutputStream, TeeWriter


def _drain(q: "queue.Queue[Optional[str]]") -> list[Optional[str]]:
    items: list[Optional[str]] = []
    while True:
        try:
            items.append(q.get_nowait())
        except queue.Empty:
            return items


def test_stream_splits_lines_in_one_write() -> None:
    q: "queue.Queue[Optional[str]]" = queue.Queue()
    stream = OutputStream(q)

    assert stream.write(b"abc\ndef\n") == 8
    assert _drain(q) == ["abc", "def"]


def test_stream_joins_partial_line_across_writes() -> None:
    q: "queue.Queue[Optional[str]]" = queue.Queue()
    stream = OutputStream(q)

    stream.write(b"ab")
    assert _drain(q) == []
    stream.write(b"c\n")
    assert _drain(q) == ["abc"]


def test_stream_strips_carriage_return() -> None:
    q: "queue.Queue[Optional[str]]" = queue.Queue()
    stream = OutputStream(q)

    stream.write(b"one\r\ntwo\r")
    stream.write(b"\nthree\n")
    assert _drain(q) == ["one", "two", "three"]


def test_stream_keeps_empty_lines() -> None:
    q: "queue.Queue[Optional[str]]" = queue.Queue()
    stream = OutputStream(q)

    stream.write(b"\n\nx\n")
    assert _drain(q) == ["", "", "x"]


def test_stream_overflow_reports_consumed_bytes() -> None:
    q: "queue.Queue[Optional[str]]" = queue.Queue()
    stream = OutputStream(q, line_buffer_size=4)

    with pytest.raises(LineBufferOverflowError) as excinfo:
        stream.write(b"ok\nabcdefgh")

    assert excinfo.value.consumed == 3
    assert excinfo.value.capacity == 4
    assert _drain(q) == ["ok"]


def test_stream_overflow_counts_carry_over() -> None:
    q: "queue.Queue[Optional[str]]" = queue.Queue()
    stream = OutputStream(q, line_buffer_size=3)

    # Exactly at capacity is fine.
    stream.write(b"abc")
    with pytest.raises(LineBufferOverflowError) as excinfo:
        stream.write(b"d")
    assert excinfo.value.consumed == 0


def test_stream_flush_emits_partial_line() -> None:
    q: "queue.Queue[Optional[str]]" = queue.Queue()
    stream = OutputStream(q)

    stream.write(b"done\ntail")
    stream.flush()
    stream.flush()
    assert _drain(q) == ["done", "tail"]


def test_stream_buffer_size_only_before_first_write() -> None:
    q: "queue.Queue[Optional[str]]" = queue.Queue()
    stream = OutputStream(q)
    stream.set_line_buffer_size(8)
    assert stream.line_buffer_size == 8

    stream.write(b"x\n")
    with pytest.raises(RuntimeError):
        stream.set_line_buffer_size(16)

    with pytest.raises(ValueError):
        OutputStream(q, line_buffer_size=0)


def test_stream_lines_returns_queue() -> None:
    q: "queue.Queue[Optional[str]]" = queue.Queue()
    assert OutputStream(q).lines() is q


def test_stream_blocks_on_full_queue() -> None:
    q: "queue.Queue[Optional[str]]" = queue.Queue(maxsize=1)
    stream = OutputStream(q)
    writer = threading.Thread(target=stream.write, args=(b"a\nb\n",), daemon=True)
    writer.start()

    writer.join(timeout=0.2)
    assert writer.is_alive()

    assert q.get(timeout=1) == "a"
    assert q.get(timeout=1) == "b"
    writer.join(timeout=1)
    assert not writer.is_alive()


def test_buffer_lines_do_not_duplicate() -> None:
    buf = OutputBuffer()
    buf.write(b"123\n")

    assert buf.lines() == ["123"]
    assert buf.lines() == ["123"]

    buf.write(b"456\r\n")
    assert buf.lines() == ["123", "456"]


def test_buffer_partial_tail_is_provisional() -> None:
    buf = OutputBuffer()
    buf.write(b"1\n2")
    assert buf.lines() == ["1", "2"]

    buf.write(b"3\n")
    assert buf.lines() == ["1", "23"]
    assert buf.getvalue() == b"1\n23\n"
    assert buf.text() == "1\n23\n"
    assert len(buf) == 5


def test_buffer_concurrent_writers() -> None:
    buf = OutputBuffer()

    def _writer() -> None:
        for _ in range(200):
            buf.write(b"x\n")

    threads = [threading.Thread(target=_writer) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(buf) == 8 * 200 * 2
    assert buf.lines() == ["x"] * 1600


def test_tee_writes_every_sink() -> None:
    a = OutputBuffer()
    b = OutputBuffer()
    tee = TeeWriter([a, b])

    assert tee.write(b"hi") == 2
    assert a.getvalue() == b"hi"
    assert b.getvalue() == b"hi"

from __future__ import annotations

import socket
import threading

import pytest

from peerchat.peer_connection import MAX_LINE_BYTES, PeerConnection
from peerchat.state import ConnectionStatus, PeerAddress


@pytest.fixture
def pair():
    local, remote = socket.socketpair()
    writer = PeerConnection(PeerAddress("10.0.0.1", 7000), local, is_outbound=True)
    reader = PeerConnection(PeerAddress("10.0.0.2", 7001), remote, is_outbound=False)
    yield writer, reader
    writer.close()
    reader.close()


def test_concurrent_writers_never_interleave_lines(pair) -> None:
    writer, reader = pair
    hello = "*** alice has connected ***"
    # lines larger than the socket buffer force partial sends inside sendall
    payloads = {
        tag: [f"[{tag}]: {i:04d} " + tag * 4000 for i in range(100)]
        for tag in ("a", "b", "c", "d")
    }
    expected = {hello} | {line for lines in payloads.values() for line in lines}
    start = threading.Barrier(len(payloads) + 1)

    def _write(lines) -> None:
        start.wait()
        for line in lines:
            writer.send_line(line)

    threads = [threading.Thread(target=_write, args=(lines,)) for lines in payloads.values()]
    for t in threads:
        t.start()
    start.wait()
    writer.send_line(hello)

    received = [reader.read_line() for _ in range(len(expected))]
    for t in threads:
        t.join()

    assert set(received) == expected
    for tag, lines in payloads.items():
        own = [line for line in received if line.startswith(f"[{tag}]: ")]
        assert own == lines


def test_read_line_strips_crlf_and_returns_trailing_data_at_eof(pair) -> None:
    writer, reader = pair
    writer.socket.sendall(b"first\r\nsecond\n\nlast without newline")
    writer.socket.shutdown(socket.SHUT_WR)

    assert reader.read_line() == "first"
    assert reader.read_line() == "second"
    assert reader.read_line() == ""
    assert reader.read_line() == "last without newline"
    assert reader.read_line() is None


def test_oversized_line_is_rejected(pair) -> None:
    writer, reader = pair
    chunk = b"x" * (MAX_LINE_BYTES + 1)

    def _send() -> None:
        try:
            writer.socket.sendall(chunk)
        except OSError:
            pass

    sender = threading.Thread(target=_send, daemon=True)
    sender.start()

    with pytest.raises(ValueError):
        reader.read_line()


def test_close_is_idempotent_and_blocks_further_writes(pair) -> None:
    writer, reader = pair
    writer.mark_online()
    assert writer.status is ConnectionStatus.ONLINE

    writer.close()
    writer.close()

    assert writer.status is ConnectionStatus.CLOSED
    with pytest.raises(OSError):
        writer.send_line("too late")
    assert reader.read_line() is None

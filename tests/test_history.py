from __future__ import annotations

import threading
from datetime import datetime

import pytest

from peerchat.history import HistoryLog
from peerchat.state import Direction, HistoryEntry


def test_append_beyond_capacity_keeps_last_entries_in_order() -> None:
    log = HistoryLog(capacity=1000)
    for i in range(1001):
        log.record(Direction.SENT, f"msg {i}")

    assert len(log) == 1000
    texts = [entry.text for entry in log.entries()]
    assert texts == [f"msg {i}" for i in range(1, 1001)]


def test_tail_returns_most_recent_in_chronological_order() -> None:
    log = HistoryLog(capacity=10)
    for i in range(5):
        log.record(Direction.RECEIVED, str(i))

    assert [e.text for e in log.tail(3)] == ["2", "3", "4"]
    assert [e.text for e in log.tail(20)] == ["0", "1", "2", "3", "4"]
    assert log.tail(0) == ()
    # tail does not consume anything
    assert len(log) == 5
    assert log.tail(3) == log.tail(3)


def test_clear_empties_the_log() -> None:
    log = HistoryLog()
    log.record(Direction.SENT, "hello")
    log.clear()
    assert len(log) == 0
    assert log.export_lines() == []


def test_export_lines_format() -> None:
    log = HistoryLog()
    stamp = datetime(2024, 3, 1, 12, 30, 5)
    log.append(HistoryEntry(Direction.SENT, "[alice]: hi", stamp))
    log.append(HistoryEntry(Direction.RECEIVED, "[bob]: hey", stamp))

    assert log.export_lines() == [
        "[2024-03-01 12:30:05] [SENT] [alice]: hi",
        "[2024-03-01 12:30:05] [RECV] [bob]: hey",
    ]


def test_concurrent_appends_are_all_counted() -> None:
    log = HistoryLog(capacity=5000)

    def _writer(tag: int) -> None:
        for i in range(500):
            log.record(Direction.RECEIVED, f"{tag}-{i}")

    threads = [threading.Thread(target=_writer, args=(n,)) for n in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(log) == 2000
    # per-writer order is preserved
    for tag in range(4):
        own = [e.text for e in log.entries() if e.text.startswith(f"{tag}-")]
        assert own == [f"{tag}-{i}" for i in range(500)]


def test_invalid_capacity() -> None:
    with pytest.raises(ValueError):
        HistoryLog(capacity=0)

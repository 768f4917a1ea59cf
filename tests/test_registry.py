from __future__ import annotations

import threading

import pytest

from peerchat.errors import DuplicateConnectionError
from peerchat.registry import ConnectionRegistry
from peerchat.state import PeerAddress

from conftest import FakeConnection


def test_duplicate_register_keeps_first_connection() -> None:
    registry = ConnectionRegistry()
    address = PeerAddress("127.0.0.1", 5000)
    first, second = FakeConnection(port=5000), FakeConnection(port=5000)

    registry.register(address, first)
    with pytest.raises(DuplicateConnectionError):
        registry.register(address, second)

    assert registry.get(address) is first
    assert len(registry) == 1


def test_unregister_absent_address_is_noop() -> None:
    registry = ConnectionRegistry()
    conn = FakeConnection()
    registry.register(conn.address, conn)

    assert registry.unregister(PeerAddress("192.168.0.9", 1)) is None
    assert registry.snapshot() == [conn]

    assert registry.unregister(conn.address) is conn
    assert registry.unregister(conn.address) is None
    assert len(registry) == 0


def test_unregister_with_stale_connection_keeps_current_entry() -> None:
    registry = ConnectionRegistry()
    current, stale = FakeConnection(), FakeConnection()
    registry.register(current.address, current)

    registry.unregister(stale.address, stale)

    assert registry.get(current.address) is current


def test_addresses_compare_structurally() -> None:
    registry = ConnectionRegistry()
    registry.register(PeerAddress("10.0.0.1", 7000), FakeConnection())

    assert PeerAddress("10.0.0.1", 7000) in registry
    assert PeerAddress("10.0.0.1", 7001) not in registry


def test_snapshot_is_a_detached_copy() -> None:
    registry = ConnectionRegistry()
    conns = [FakeConnection(port=7000 + i) for i in range(3)]
    for conn in conns:
        registry.register(conn.address, conn)

    snapshot = registry.snapshot()
    for conn in conns:
        registry.unregister(conn.address)

    assert snapshot == conns
    assert registry.snapshot() == []


def test_concurrent_register_same_address_has_single_winner() -> None:
    registry = ConnectionRegistry()
    address = PeerAddress("10.0.0.1", 7000)
    barrier = threading.Barrier(8)
    winners = []
    lock = threading.Lock()

    def _attempt() -> None:
        conn = FakeConnection()
        barrier.wait()
        try:
            registry.register(address, conn)
        except DuplicateConnectionError:
            return
        with lock:
            winners.append(conn)

    threads = [threading.Thread(target=_attempt) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(winners) == 1
    assert registry.get(address) is winners[0]


def test_snapshot_while_mutating_from_other_threads() -> None:
    registry = ConnectionRegistry()
    stop = threading.Event()

    def _churn() -> None:
        i = 0
        while not stop.is_set():
            conn = FakeConnection(port=10000 + (i % 50))
            try:
                registry.register(conn.address, conn)
            except DuplicateConnectionError:
                registry.unregister(conn.address)
            i += 1

    worker = threading.Thread(target=_churn)
    worker.start()
    try:
        for _ in range(500):
            for conn in registry.snapshot():
                assert conn.address.port >= 10000
    finally:
        stop.set()
        worker.join()

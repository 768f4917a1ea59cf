from __future__ import annotations

import sys
import time
from pathlib import Path
from typing import Callable, List

import pytest

# Ensure local "src/" takes precedence over any globally-installed "peerchat" package.
ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"

src_str = str(SRC)
if src_str not in sys.path:
    sys.path.insert(0, src_str)

from peerchat.config import NodeSettings  # noqa: E402
from peerchat.node import ChatNode  # noqa: E402
from peerchat.state import PeerAddress  # noqa: E402


def wait_for(predicate: Callable[[], bool], timeout: float = 5.0, interval: float = 0.02) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()


class FakeConnection:
    """Stand-in for PeerConnection that records writes instead of using a socket."""

    def __init__(self, host: str = "10.0.0.1", port: int = 7000, fail: bool = False) -> None:
        self.address = PeerAddress(host, port)
        self.fail = fail
        self.sent: List[str] = []
        self.closed = False

    def send_line(self, text: str) -> None:
        if self.fail:
            raise BrokenPipeError("broken pipe")
        self.sent.append(text)

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def make_node():
    nodes: List[ChatNode] = []

    def _make(username: str) -> ChatNode:
        settings = NodeSettings(
            username=username,
            listen_host="127.0.0.1",
            listen_port=0,
            connect_timeout=2.0,
            accept_poll_interval=0.05,
            shutdown_timeout=3.0,
        )
        messages: List[str] = []
        node = ChatNode(settings, display=messages.append)
        node.messages = messages
        nodes.append(node)
        return node

    yield _make

    for node in nodes:
        node.shutdown()

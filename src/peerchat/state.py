"""Shared data models for the peerchat node."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


@dataclass(frozen=True, slots=True)
class PeerAddress:
    """Endereço ``host:port`` de um peer; chave do ``ConnectionRegistry``."""

    host: str
    port: int

    def __str__(self) -> str:
        return f"{self.host}:{self.port}"

    @classmethod
    def parse(cls, value: str) -> "PeerAddress":
        """Interpreta ``ip:port``. Levanta ``ValueError`` se inválido."""

        host, sep, port = value.strip().rpartition(":")
        if not sep or not host or not port:
            raise ValueError(f"endereço inválido: {value!r}")
        port_number = int(port)
        if port_number < 1 or port_number > 65535:
            raise ValueError(f"porta fora do intervalo: {port_number}")
        return cls(host, port_number)


class ConnectionStatus(str, Enum):
    CONNECTING = "Connecting"
    ONLINE = "Online"
    CLOSING = "Closing"
    CLOSED = "Closed"


class Direction(str, Enum):
    SENT = "SENT"
    RECEIVED = "RECV"


@dataclass(frozen=True, slots=True)
class HistoryEntry:
    """Registro imutável de uma linha enviada ou recebida."""

    direction: Direction
    text: str
    timestamp: datetime = field(default_factory=datetime.now)

    def format(self) -> str:
        return f"[{self.timestamp.strftime(TIMESTAMP_FORMAT)}] [{self.direction.value}] {self.text}"
